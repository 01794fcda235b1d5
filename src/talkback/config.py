"""Runtime configuration for talkback."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(env_prefix="TALKBACK_", env_file=".env", extra="ignore")

    app_name: str = "talkback"
    log_level: str = "INFO"
    locale: str = Field(default="en-US", description="Recognition language passed to the STT backend.")
    grace_interval_seconds: float = Field(
        default=0.25,
        ge=0.0,
        description="Extra capture time after speech completes, before a listen window closes.",
    )
    pacing_interval_seconds: float = Field(default=0.2, ge=0.0, description="Pause between dialogue steps.")
    voice_a_id: str | None = None
    voice_b_id: str | None = None
    speech_rate: int | None = None
    speech_volume: float | None = Field(default=None, ge=0.0, le=1.0)
    mix_with_others: bool = False
    duck_others: bool = True
    listen_slice_seconds: float = Field(
        default=1.0,
        gt=0.0,
        le=5.0,
        description="Length of each microphone slice sent for recognition while a listen window is open.",
    )
    sensitivity_threshold: float = Field(
        default=0.01,
        ge=0.0,
        le=1.0,
        description="Mean 16-bit sample magnitude (0..1) below which a slice counts as silence.",
    )
    screen_reader_poll_seconds: float = Field(default=2.0, gt=0.0)


settings = Settings()
