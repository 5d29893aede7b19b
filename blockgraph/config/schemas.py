"""
Configuration Schemas for blockgraph.

Pydantic models for runtime settings. Values come from BLOCKGRAPH_*
environment variables (see get_settings()) and may be overridden by
command-line flags.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..channels import DEFAULT_CHANNEL_CAPACITY

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class AppSettings(BaseModel):
    """
    Application settings model.

    Used for type-safe settings access by the runtime, the scheduler and
    the built-in components.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Service identity
    service_name: str = "blockgraph"
    environment: str = "development"
    debug: bool = False

    # Logging
    log_level: str = Field("INFO", description="Root log level")
    json_logs: bool = Field(False, description="Emit JSON log records")

    # Documents
    config_dir: str = Field(".", description="Base directory for configuration documents")

    # Execution
    run_duration: float | None = Field(
        None,
        gt=0,
        description="Seconds to run before shutting down (None = until signalled)",
    )
    send_interval: float = Field(1.0, gt=0, description="Seconds between channel writes")
    call_interval: float = Field(1.0, gt=0, description="Seconds between function calls")
    channel_capacity: int = Field(
        DEFAULT_CHANNEL_CAPACITY,
        ge=1,
        description="Buffered messages per exported channel",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept level names in any case."""
        level = str(v).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level {v!r} (expected one of {', '.join(LOG_LEVELS)})")
        return level
