"""Configuration resolution with precedence handling.

Sources are merged in increasing precedence:
defaults < project file (``[tool.quote_assist]``) < environment < programmatic.
"""

from collections.abc import Mapping
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from quote_assist.exceptions import ConfigurationError

from .env_loader import EnvironmentConfigLoader
from .file_loader import FileConfigLoader
from .schema import ENV_PREFIX, QuoteAssistSettings
from .types import ConfigOrigin, ResolvedConfig

log = logging.getLogger(__name__)

PROFILE_ENV_VAR = f"{ENV_PREFIX}PROFILE"


class ConfigResolver:
    """Merges every configuration source and validates the result once."""

    def __init__(self) -> None:  # noqa: D107
        self.file_loader = FileConfigLoader()
        self.env_loader = EnvironmentConfigLoader()

    def resolve(
        self,
        programmatic: Mapping[str, Any] | None = None,
        *,
        profile: str | None = None,
        env_file: str | Path | None = None,
        project_root: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> ResolvedConfig:
        """Resolve configuration from all sources.

        Args:
            programmatic: Overrides with the highest precedence.
            profile: Profile in ``[tool.quote_assist.profiles]``; defaults to
                ``QUOTE_ASSIST_PROFILE``.
            env_file: Optional .env file layered under the real environment.
            project_root: Where to start looking for pyproject.toml.
            environ: Environment mapping to use instead of ``os.environ``.

        Raises:
            ConfigurationError: If a source is malformed or the merged values
                do not validate.
        """
        env = os.environ if environ is None else environ
        if profile is None:
            profile = env.get(PROFILE_ENV_VAR)

        known = set(QuoteAssistSettings.field_names())
        merged: dict[str, Any] = {}
        origin: dict[str, ConfigOrigin] = {}

        def apply(values: Mapping[str, Any], source: ConfigOrigin) -> None:
            for name, value in values.items():
                if name not in known:
                    log.debug("Ignoring unknown %s config key '%s'.", source, name)
                    continue
                merged[name] = value
                origin[name] = source

        apply(QuoteAssistSettings.defaults(), "default")
        apply(self.file_loader.load_project_config(project_root, profile), "file")
        apply(self.env_loader.load_env_config(env_file, environ=env), "env")
        if programmatic:
            apply(programmatic, "programmatic")

        try:
            settings = QuoteAssistSettings.model_validate(merged)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

        resolved = ResolvedConfig(**settings.to_dict(), origin=origin)
        log.debug("Resolved configuration:\n%s", resolved.audit())
        return resolved
