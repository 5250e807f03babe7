"""
Configuration data models for treesync.

These models define the structure of .treesync.json and
~/.config/treesync/config.json files, with validation and type safety
via Pydantic.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SyncConfig(BaseModel):
    """
    Publish behavior for `treesync sync`.

    Holds the retry policy plus the commit identity and message that the
    publish step writes with.
    """
    max_attempts: int = Field(
        default=3,
        ge=1,
        description="Maximum publish attempts before giving up"
    )
    retry_delay: float = Field(
        default=5.0,
        ge=0.0,
        description="Seconds to wait between attempts"
    )
    backoff_multiplier: float = Field(
        default=1.0,
        ge=1.0,
        description="Delay multiplier per retry (1.0 keeps a fixed delay)"
    )
    max_retry_delay: Optional[float] = Field(
        default=None,
        ge=0.0,
        description="Upper bound for a single delay when backoff is enabled"
    )
    author_name: str = Field(
        default="GitHub Actions",
        description="Commit author name"
    )
    author_email: str = Field(
        default="actions@github.com",
        description="Commit author email"
    )
    commit_message: str = Field(
        default="Update files",
        description="Message used for publish commits"
    )
    remote: str = Field(
        default="origin",
        description="Remote to pull from and push to"
    )
    rebase_on_pull: bool = Field(
        default=True,
        description="Set pull.rebase so published history stays linear"
    )
    git_timeout: int = Field(
        default=120,
        ge=1,
        description="Timeout in seconds for a single git command"
    )

    @field_validator("author_name", "author_email", "commit_message", "remote")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Reject empty identity, message and remote values."""
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    def delay_for(self, attempt: int) -> float:
        """
        Seconds to wait after a failed attempt.

        Args:
            attempt: 1-based number of the attempt that just failed

        Returns:
            The delay before the next attempt

        Example:
            >>> SyncConfig(retry_delay=5).delay_for(2)
            5.0
            >>> SyncConfig(retry_delay=1, backoff_multiplier=2).delay_for(3)
            4.0
        """
        delay = self.retry_delay * (self.backoff_multiplier ** max(attempt - 1, 0))
        if self.max_retry_delay is not None:
            delay = min(delay, self.max_retry_delay)
        return float(delay)


class TransformConfig(BaseModel):
    """
    Defaults for `treesync transform`.
    """
    field: str = Field(
        default="spec.version",
        description="Dotted path of the YAML field to rewrite"
    )
    extensions: list[str] = Field(
        default_factory=lambda: [".yml", ".yaml"],
        description="File suffixes treated as YAML"
    )

    @field_validator("field")
    @classmethod
    def validate_field(cls, v: str) -> str:
        if not v or any(not part for part in v.split(".")):
            raise ValueError(f"invalid dotted field path: {v!r}")
        return v


class TreesyncConfig(BaseModel):
    """
    Top-level treesync configuration.

    Loaded from defaults, user config, project config, and env vars.

    Example:
        >>> config = TreesyncConfig(sync=SyncConfig(max_attempts=5))
        >>> config.sync.max_attempts
        5
    """
    sync: SyncConfig = Field(
        default_factory=SyncConfig,
        description="Publish settings"
    )
    transform: TransformConfig = Field(
        default_factory=TransformConfig,
        description="YAML rewrite settings"
    )

    model_config = ConfigDict(
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,
    )
