"""Race phase identifiers.

A race runs: opening -> pace -> mid (or mid1..midN) -> closing.
Phase ids are the keys of ``Participant.phase_history``.
"""

from __future__ import annotations

from racetally.models import PhaseKind

OPENING = "opening"
PACE = "pace"
MID = "mid"
CLOSING = "closing"

_LABELS: dict[PhaseKind, str] = {
    PhaseKind.opening: "Opening",
    PhaseKind.pace: "Pace",
    PhaseKind.mid: "Mid",
    PhaseKind.closing: "Closing",
}


def phase_sequence(mid_phase_count: int = 1) -> list[str]:
    """Return the ordered phase ids for a race with the given number of mid phases."""
    if mid_phase_count < 1:
        raise ValueError(f"A race needs at least one mid phase, got {mid_phase_count}")
    if mid_phase_count == 1:
        mids = [MID]
    else:
        mids = [f"{MID}{i}" for i in range(1, mid_phase_count + 1)]
    return [OPENING, PACE, *mids, CLOSING]


def phase_kind(phase_id: str) -> PhaseKind:
    """Map a phase id ("mid2", "closing", ...) to its kind.

    Raises:
        ValueError: If phase_id is not a race phase.
    """
    if phase_id in (OPENING, PACE, CLOSING):
        return PhaseKind(phase_id)
    if phase_id == MID or (phase_id.startswith(MID) and phase_id[len(MID) :].isdigit()):
        return PhaseKind.mid
    raise ValueError(f"Unknown phase: {phase_id!r}")


def phase_label(phase_id: str) -> str:
    """Return a display label, numbering mid phases ("Mid 2")."""
    kind = phase_kind(phase_id)
    label = _LABELS[kind]
    if kind == PhaseKind.mid and phase_id != MID:
        return f"{label} {phase_id[len(MID):]}"
    return label


def phase_matches(configured: str, phase_id: str) -> bool:
    """Return True if a configured phase (e.g. a unique skill's "mid") covers phase_id."""
    if configured == phase_id:
        return True
    return configured == MID and phase_kind(phase_id) == PhaseKind.mid
