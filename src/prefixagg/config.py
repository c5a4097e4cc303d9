"""
Configuration management for prefixagg.

Settings come from environment variables (optionally loaded from a .env file)
and are overridden by command-line options. The resulting Config is passed
explicitly to the pipeline; nothing in the core reads global state.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from prefixagg import __version__
from prefixagg.errors import ConfigError


# Destination value meaning "write to standard output"
STDOUT_MARKER = "-"

DEFAULT_USER_AGENT = f"prefixagg/{__version__}"

ENV_LOCATIONS = [
    Path.home() / ".prefixagg" / ".env",
    Path.home() / ".config" / "prefixagg" / ".env",
    Path.cwd() / ".env",
]


def load_env_files(locations: list[Path] | None = None) -> Path | None:
    """Load the first .env file found. Returns its path, if any."""
    for env_path in locations or ENV_LOCATIONS:
        if env_path.exists():
            load_dotenv(env_path)
            return env_path
    return None


def _env_bool(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def _env_number(name: str, default: str, convert: type) -> Any:
    value = os.getenv(name, default)
    try:
        return convert(value)
    except ValueError:
        raise ConfigError(f"Invalid value for {name}: {value!r}") from None


@dataclass
class Config:
    """Settings for one aggregation run."""

    destination: str = STDOUT_MARKER
    sources: list[str] = field(default_factory=list)

    # Directory for the staging file (default: next to destination)
    staging_dir: Path | None = None

    # 0 = warnings only, 1 = info, 2+ = debug; negative = errors only
    verbosity: int = 0
    log_file: str | None = None
    syslog: bool = False

    # HTTP
    timeout: float = 30.0
    connect_timeout: float = 10.0
    concurrency: int = 8
    user_agent: str = DEFAULT_USER_AGENT

    @property
    def is_stdout(self) -> bool:
        return str(self.destination) == STDOUT_MARKER

    @classmethod
    def from_env(cls, **overrides: Any) -> "Config":
        """Load configuration from environment variables.

        Keyword arguments whose value is not None take precedence.

        Raises:
            ConfigError: a numeric variable could not be parsed
        """
        tempdir = os.getenv("PREFIXAGG_TEMPDIR")
        config = cls(
            staging_dir=Path(tempdir) if tempdir else None,
            log_file=os.getenv("PREFIXAGG_LOG_FILE") or None,
            syslog=_env_bool(os.getenv("PREFIXAGG_SYSLOG")),
            timeout=_env_number("PREFIXAGG_TIMEOUT", "30", float),
            concurrency=_env_number("PREFIXAGG_CONCURRENCY", "8", int),
            user_agent=os.getenv("PREFIXAGG_USER_AGENT", DEFAULT_USER_AGENT),
        )
        return replace(config, **{k: v for k, v in overrides.items() if v is not None})
