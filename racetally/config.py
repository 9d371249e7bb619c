from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="RACETALLY_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Token the block-dialect dice bot prints in front of every roll.
    # Its presence anywhere in a paste selects the block parser.
    marker_token: str = "🎲"

    # Labels accepted on the line that closes a multi-line block ("合計: 15").
    sum_labels: list[str] = ["合計", "sum", "total"]

    # Dice kinds used by the GM for race-wide rolls.
    pace_notation: str = "1d9"
    photo_die: str = "1d5"
    margin_die: str = "1d2"

    # Flat bonus added alongside the Stable unique-skill die.
    stable_skill_bonus: int = 5


settings = Settings()
