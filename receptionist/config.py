"""Application configuration."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from receptionist.models import ScheduledJob, ScheduleSpec


class ConfigError(RuntimeError):
    """Raised when the bot configuration file cannot be loaded."""


class Settings(BaseSettings):
    """Environment-driven settings validated at startup."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    openai_api_key: str = Field(..., alias="OPENAI_API_KEY")
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    # Overrides the model named in the bot config file when set.
    openai_model: str | None = Field(default=None, alias="OPENAI_MODEL")
    signal_cli_path: str = Field(default="signal-cli", alias="SIGNAL_CLI_PATH")
    signal_account: str = Field(..., alias="SIGNAL_ACCOUNT")
    signal_device_name: str = Field(default="receptionist", alias="SIGNAL_DEVICE_NAME")
    signal_poll_interval_seconds: float = Field(default=2.0, alias="SIGNAL_POLL_INTERVAL_SECONDS")
    bot_config_path: Path = Field(default=Path("bot_config.json"), alias="BOT_CONFIG_PATH")
    database_path: Path = Field(default=Path("receptionist.db"), alias="DATABASE_PATH")
    request_timeout_seconds: float = Field(default=30.0, alias="REQUEST_TIMEOUT_SECONDS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


class HistoryConfig(BaseModel):
    enabled: bool = True
    limit: int = Field(default=10, ge=1)
    # "memory" keeps turns for the process lifetime, "sqlite" uses DATABASE_PATH.
    backend: str = "memory"


class CalendarConfig(BaseModel):
    enabled: bool = False
    credentials_path: Path = Path("credentials.json")
    calendar_id: str = ""
    # Applied to booking times given without a UTC offset.
    timezone: str = "UTC"


class AIConfig(BaseModel):
    enabled: bool = False
    model: str = "gpt-4o-mini"
    system_prompt: str = "You are a helpful assistant for a salon. Keep replies short."
    max_iterations: int = Field(default=5, ge=1)
    fallback_to_default: bool = True
    # Sent when the tool loop runs out of iterations; empty disables it.
    exhausted_reply: str = "Sorry, I couldn't finish that request. Please try again."
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    calendar: CalendarConfig = Field(default_factory=CalendarConfig)


class Service(BaseModel):
    name: str
    duration: int = Field(..., gt=0, description="Minutes")
    price: float


class AutoReplyConfig(BaseModel):
    enabled: bool = True
    keywords: dict[str, str] = Field(default_factory=dict)
    use_default_reply: bool = False
    default_reply: str = "Thanks for your message! We'll get back to you soon."


class ScheduleConfig(BaseModel):
    """Schedule descriptor; delay and interval are in milliseconds."""

    immediate: bool = False
    delay: int = Field(default=0, ge=0)
    interval: int | None = Field(default=None, ge=0)


class AutoSendMessage(BaseModel):
    to: str
    message: str
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)

    def to_job(self) -> ScheduledJob:
        interval = self.schedule.interval
        return ScheduledJob(
            to=self.to,
            message=self.message,
            schedule=ScheduleSpec(
                immediate=self.schedule.immediate,
                delay=self.schedule.delay / 1000,
                interval=interval / 1000 if interval else None,
            ),
        )


class AutoSendConfig(BaseModel):
    enabled: bool = False
    messages: list[AutoSendMessage] = Field(default_factory=list)


class BehaviourConfig(BaseModel):
    log_messages: bool = True
    ignore_own_messages: bool = True
    ignore_broadcast: bool = True
    ignore_groups: bool = False


class BotConfig(BaseModel):
    """Structured bot behaviour loaded from a JSON file."""

    name: str = "Receptionist"
    currency: str = "LKR"
    ai: AIConfig = Field(default_factory=AIConfig)
    services: dict[str, Service] = Field(default_factory=dict)
    auto_reply: AutoReplyConfig = Field(default_factory=AutoReplyConfig)
    auto_send: AutoSendConfig = Field(default_factory=AutoSendConfig)
    bot: BehaviourConfig = Field(default_factory=BehaviourConfig)
    dedup_reset_seconds: float = Field(default=3600.0, gt=0)

    def scheduled_jobs(self) -> list[ScheduledJob]:
        return [item.to_job() for item in self.auto_send.messages]


def load_settings() -> Settings:
    """Load and validate settings."""

    return Settings()


def load_bot_config(path: Path) -> BotConfig:
    """Read and validate the JSON bot configuration."""

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read bot config {path}: {exc}") from exc
    try:
        return BotConfig.model_validate_json(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid bot config {path}: {exc}") from exc
