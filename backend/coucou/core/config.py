"""coucoubot configuration"""

import logging
import sys
from functools import lru_cache
from pathlib import Path
from urllib.parse import quote

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# === Path Configuration ===
COUCOU_DIR = Path(__file__).parent.parent
BACKEND_DIR = COUCOU_DIR.parent

BOT_SCOPES = [
    "user:bot",  # Bot identifier
    "user:read:chat",  # Read chat messages
    "user:write:chat",  # Send chat messages
]

DEFAULT_CALLBACK_URL = "https://irc.geekingfrog.com/twitch/notifications"
OAUTH_AUTHORIZE_URL = "https://id.twitch.tv/oauth2/authorize"
DEFAULT_REDIRECT_URI = "http://localhost:4343/oauth/callback"


def authorize_url(client_id: str, redirect_uri: str = DEFAULT_REDIRECT_URI) -> str:
    """URL the bot account opens once to grant the chat scopes."""
    scope = "+".join(quote(s, safe="") for s in BOT_SCOPES)
    return (
        f"{OAUTH_AUTHORIZE_URL}?client_id={client_id}"
        f"&redirect_uri={quote(redirect_uri, safe='')}&response_type=code&scope={scope}"
    )


class StreamWatcherSpec(BaseModel):
    """Static pairing of a Twitch account with the chat channel to notify."""

    twitch_login: str
    chat_nick: str
    chat_channel: str


DEFAULT_WATCHERS = [
    StreamWatcherSpec(twitch_login="artart78", chat_nick="artart78", chat_channel="#arch-fr-free"),
    StreamWatcherSpec(twitch_login="gikiam", chat_nick="gikiam", chat_channel="#arch-fr-free"),
    StreamWatcherSpec(
        twitch_login="geekingfrog", chat_nick="Geekingfrog", chat_channel="#arch-fr-free"
    ),
    StreamWatcherSpec(
        twitch_login="shampooingonthemove", chat_nick="Shampooing", chat_channel="#arch-fr-free"
    ),
]


class CoucouSettings(BaseSettings):
    """coucoubot settings"""

    model_config = SettingsConfigDict(
        env_file=BACKEND_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Twitch API (token endpoint + webhook hub)
    twitch_client_id: str = Field(..., min_length=1, description="Twitch OAuth Client ID")
    twitch_client_secret: str = Field(..., min_length=1, description="Twitch OAuth Client Secret")
    twitch_webhook_server_port: int = Field(..., ge=1, le=65535, description="Webhook listen port")
    twitch_webhook_callback_url: str = Field(default=DEFAULT_CALLBACK_URL)
    twitch_webhook_secret: str = Field(default="", description="HMAC secret for push notifications")

    # Chat account
    bot_id: str = Field(..., min_length=1, description="Bot User ID")
    owner_id: str = Field(default="", description="Owner User ID")
    bot_nick: str = Field(default="coucoubot", description="Name used to address the bot")
    channels: list[str] = Field(default_factory=lambda: ["#arch-fr-free"])

    # Database
    database_url: str = Field(..., description="PostgreSQL database URL")

    # Behaviour
    url_history_size: int = Field(default=10, ge=1)
    stream_watchers: list[StreamWatcherSpec] = Field(
        default_factory=lambda: list(DEFAULT_WATCHERS)
    )

    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL starts with postgresql://"""
        if not v.startswith("postgresql://"):
            raise ValueError("DATABASE_URL must start with 'postgresql://'")
        return v

    @field_validator("channels")
    @classmethod
    def normalize_channels(cls, v: list[str]) -> list[str]:
        """Lowercase channel names and make sure they carry a leading '#'."""
        normalized = []
        for channel in v:
            channel = channel.strip().lower()
            if channel:
                normalized.append(channel if channel.startswith("#") else f"#{channel}")
        return normalized

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper


@lru_cache
def get_settings() -> CoucouSettings:
    """Get cached settings instance"""
    return CoucouSettings()  # type: ignore[call-arg]


def describe_validation_error(error: ValidationError) -> list[str]:
    """One human readable line per missing or invalid setting."""
    lines = []
    for err in error.errors():
        name = ".".join(str(part) for part in err["loc"]).upper()
        if err["type"] == "missing":
            lines.append(f"{name}: missing")
        else:
            lines.append(f"{name}: {err['msg']}")
    return lines


def load_settings_or_exit() -> CoucouSettings:
    """Validate configuration at startup, exiting with status 1 on failure."""
    try:
        return get_settings()
    except ValidationError as e:
        bot_logger = logging.getLogger("Bot")
        bot_logger.error(
            "Invalid configuration:\n"
            + "\n".join(f"  - {line}" for line in describe_validation_error(e))
        )
        sys.exit(1)
