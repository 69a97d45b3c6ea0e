"""Runtime configuration loaded from AZURE_DEVOPS_* environment variables."""
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Connection and policy settings.

    One instance per process; nothing mutates it after load.
    """

    model_config = SettingsConfigDict(
        env_prefix="AZURE_DEVOPS_",
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    organization_url: str = Field("", description="e.g. https://dev.azure.com/contoso")
    personal_access_token: Optional[str] = Field(None, repr=False)
    default_project: Optional[str] = None
    api_version: str = "7.1"
    request_timeout: float = Field(30.0, gt=0, description="Per-request timeout in seconds")

    # Comma-separated team names, e.g. "Team Alpha,Team Beta".
    # Absent or blank means no board is accessible.
    allowed_team_boards: Optional[str] = None
    # False switches the server to open mode: no team-board checks at all.
    enforce_team_boards: bool = True

    log_level: str = "INFO"

    @field_validator("organization_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
