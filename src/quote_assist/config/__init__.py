"""Configuration for the quote assistant.

Resolve once, then freeze:

    config = resolve_config({"model": "gemini-2.0-flash"}).to_frozen()

Precedence: programmatic > environment (and .env) > pyproject.toml > defaults.
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .env_loader import EnvironmentConfigLoader, parse_env_file
from .file_loader import ConfigFileError, FileConfigLoader, find_pyproject
from .resolver import PROFILE_ENV_VAR, ConfigResolver
from .schema import ENV_PREFIX, QuoteAssistSettings
from .types import ConfigOrigin, FrozenConfig, ResolvedConfig, SourceMap

_resolver = ConfigResolver()


def resolve_config(
    programmatic: Mapping[str, Any] | None = None,
    *,
    profile: str | None = None,
    env_file: str | Path | None = None,
    project_root: Path | None = None,
) -> ResolvedConfig:
    """Resolve configuration from every source; see `ConfigResolver.resolve`."""
    return _resolver.resolve(
        programmatic,
        profile=profile,
        env_file=env_file,
        project_root=project_root,
    )


__all__ = [  # noqa: RUF022
    "resolve_config",
    "ResolvedConfig",
    "FrozenConfig",
    "SourceMap",
    "ConfigOrigin",
    "QuoteAssistSettings",
    "ConfigResolver",
    "FileConfigLoader",
    "EnvironmentConfigLoader",
    "ConfigFileError",
    "find_pyproject",
    "parse_env_file",
    "ENV_PREFIX",
    "PROFILE_ENV_VAR",
]
