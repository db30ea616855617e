"""Provisioner configuration using pydantic-settings.

This module defines the WorkingDirSettings class that reads configuration
from environment variables with the PRWORKSPACE_ prefix. The token is the
only required field.
"""

from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from prworkspace.models import CloneStrategy


class WorkingDirSettings(BaseSettings):
    """Workspace provisioner configuration from environment variables.

    All environment variables are prefixed with PRWORKSPACE_ (e.g.,
    PRWORKSPACE_GITHUB_TOKEN).

    Required fields (must be set via environment variables):
    - github_token: Token served to git through the credential store
    """

    model_config = SettingsConfigDict(
        env_prefix="PRWORKSPACE_",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # GitHub Configuration
    # -------------------------------------------------------------------------
    # Token written to the credential store before every clone
    github_token: str

    # Host the credential entry is written for (supports GitHub Enterprise)
    github_hostname: str = "github.com"

    # -------------------------------------------------------------------------
    # Workspace Configuration
    # -------------------------------------------------------------------------
    # Root directory for pull request checkouts
    data_dir: str = "/var/lib/prworkspace"

    # "branch" checks out the head branch, "merge" simulates the merge
    checkout_strategy: CloneStrategy = CloneStrategy.FAST_CHECKOUT

    # History depth for the merge-simulated clone and fetch
    checkout_depth: int = 50

    # Identity recorded on the merge commit
    git_user_name: str = "prworkspace"
    git_user_email: str = "prworkspace@localhost"

    # -------------------------------------------------------------------------
    # Credential Store Configuration
    # -------------------------------------------------------------------------
    # Directory holding .git-credentials; defaults to the user's home
    home_dir: Optional[str] = None

    # Point global git config at the credential store after each write
    configure_git_helper: bool = False

    # -------------------------------------------------------------------------
    # Logging Configuration
    # -------------------------------------------------------------------------
    log_level: str = "INFO"

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("github_token")
    @classmethod
    def validate_github_token(cls, v: str) -> str:
        """Validate that GitHub token is not empty."""
        if not v or not v.strip():
            raise ValueError("github_token cannot be empty")
        return v

    @field_validator("github_hostname")
    @classmethod
    def validate_github_hostname(cls, v: str) -> str:
        """Validate that the hostname is a bare host, not a URL."""
        if not v or not v.strip():
            raise ValueError("github_hostname cannot be empty")
        if "://" in v or "/" in v:
            raise ValueError("github_hostname must be a hostname, not a URL")
        return v

    @field_validator("data_dir")
    @classmethod
    def validate_data_dir(cls, v: str) -> str:
        """Validate that the data directory is an absolute path."""
        if not Path(v).is_absolute():
            raise ValueError("data_dir must be an absolute path")
        return v

    @field_validator("checkout_depth")
    @classmethod
    def validate_checkout_depth(cls, v: int) -> int:
        """Validate that checkout depth is positive."""
        if v < 1:
            raise ValueError("checkout_depth must be at least 1")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize the log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"log_level must be a standard level name, got {v}")
        return level


def get_settings() -> WorkingDirSettings:
    """Create and return WorkingDirSettings instance.

    Returns:
        WorkingDirSettings: Configured settings instance.

    Raises:
        pydantic.ValidationError: If required fields are missing or invalid.
    """
    return WorkingDirSettings()
