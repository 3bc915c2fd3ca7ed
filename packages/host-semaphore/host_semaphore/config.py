"""host-semaphore — Limiter configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. Environment variables prefixed with HOST_SEMAPHORE_
    3. System config: /etc/host-semaphore/config.yaml
    4. User config:   ~/.config/host-semaphore/config.yaml
    5. An explicit config file passed to ``Settings.load()``

File values reach pydantic-settings as init arguments, which outrank the
environment.

All settings are immutable after load.  Call ``Settings.load()`` once at
startup and hand the instance to ``Semaphore.from_settings()``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class LockConfig(BaseModel):
    """Slot acquisition and liveness probing."""

    probe: Literal["signal", "psutil"] = Field(
        default="signal",
        description=(
            "Liveness probe used to detect dead holders. "
            "signal — os.kill(pid, 0). "
            "psutil — psutil.Process, also treats zombie processes as dead."
        ),
    )
    poll_interval: Annotated[float, Field(gt=0.0, le=60.0)] = Field(
        default=0.1,
        description="Initial seconds between liveness re-checks while waiting for a slot.",
    )
    max_poll_interval: Annotated[float, Field(gt=0.0, le=600.0)] = Field(
        default=2.0,
        description="Upper bound for the doubling re-check interval.",
    )
    acquire_timeout: Annotated[float, Field(gt=0.0)] | None = Field(
        default=None,
        description="Seconds to wait for a slot before giving up. None = wait forever.",
    )

    @model_validator(mode="after")
    def check_poll_bounds(self) -> "LockConfig":
        if self.max_poll_interval < self.poll_interval:
            raise ValueError("max_poll_interval must be >= poll_interval")
        return self


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    format: Literal["json", "console"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="HOST_SEMAPHORE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    hosts: dict[str, Annotated[int, Field(ge=1)]] = Field(
        default_factory=lambda: {"debian": 1, "kde": 1},
        description="Maximum concurrent holders per host.  Order is preserved.",
    )
    locks: LockConfig = Field(default_factory=LockConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("hosts")
    @classmethod
    def require_hosts(cls, v: dict[str, int]) -> dict[str, int]:
        if not v:
            raise ValueError("at least one host must be configured")
        return v

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from file + environment variables."""
        data: dict[str, object] = {}

        candidates = [
            Path("/etc/host-semaphore/config.yaml"),
            Path.home() / ".config" / "host-semaphore" / "config.yaml",
        ]
        if config_file:
            candidates.append(config_file)

        for path in candidates:
            if path.exists():
                import yaml  # lazy: only needed when a file exists

                with path.open() as f:
                    loaded = yaml.safe_load(f) or {}
                    data.update(loaded)

        return cls(**data)


# Module-level cache for applications; the limiter never reads it implicitly.
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def override_settings(settings: Settings) -> None:
    """Replace the module-level cache. Used in tests."""
    global _settings
    _settings = settings
