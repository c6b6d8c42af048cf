"""
Configuration for the expense tracker backend.

Settings are read from environment variables (prefix ``EXPENSES_``) and an
optional ``.env`` file. The resulting object is built once at startup and
handed to ``create_app``; nothing reads configuration from module globals.
"""

from typing import Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="EXPENSES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Credentials
    jwt_secret: SecretStr = Field(..., description="Key used to sign access tokens")
    jwt_algorithm: str = Field(default="HS256")
    token_ttl_days: int = Field(default=30, ge=1, description="Access token lifetime")
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # Storage
    store_backend: Literal["firestore", "memory"] = Field(default="firestore")
    firestore_database_id: str = Field(default="(default)")
    service_account: Optional[str] = Field(
        default=None,
        description="Service account JSON, inline or as a path to a file",
    )

    # Time windows are anchored to "now" in this zone
    timezone: str = Field(default="UTC")

    # HTTP
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)
