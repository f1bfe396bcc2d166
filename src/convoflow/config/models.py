"""Configuration models.

Settings and flow file schemas, defined with Pydantic for validation and
YAML loading.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class FlowSettings(BaseModel):
    """Runtime settings for a flow dialog."""

    log_level: LogLevel = Field(
        default="WARNING",
        description="Log level the CLI configures when --log-level is not given",
    )
    max_wait_seconds: float | None = Field(
        default=None,
        ge=0,
        description=(
            "Upper bound for 'wait' commands. Waits are in-process sleeps and do not "
            "survive a restart, so long waits should be avoided."
        ),
    )
    template_cache_size: int = Field(
        default=256, gt=0, description="Number of compiled message templates to cache"
    )
    wildcard_dialog: str = Field(
        default="*",
        description="Dialog name used for result handlers whose target is computed at run time",
    )


class FlowFileConfig(BaseModel):
    """A dialog described in a YAML file."""

    name: str = Field(min_length=1, description="Dialog name, used to qualify flow keys")
    flows: dict[str, Any] = Field(
        default_factory=dict, description="Entry point id -> flow (e.g. onStart)"
    )
    settings: FlowSettings = Field(default_factory=FlowSettings)
