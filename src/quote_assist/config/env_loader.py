"""Environment configuration from ``QUOTE_ASSIST_*`` variables and .env files.

A .env file is read into a mapping and layered under the real environment;
``os.environ`` itself is never modified.
"""

from collections.abc import Mapping
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from quote_assist.exceptions import ConfigurationError

from .schema import ENV_PREFIX, QuoteAssistSettings


def parse_env_file(env_file: str | Path) -> dict[str, str]:
    """Parse ``KEY=VALUE`` lines; blank lines and ``#`` comments are skipped.

    Raises:
        ConfigurationError: If the file is missing or a line is malformed.
    """
    path = Path(env_file)
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise ConfigurationError(f"Cannot read environment file {path}: {e}") from e

    values: dict[str, str] = {}
    for line_num, raw_line in enumerate(lines, 1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line.removeprefix("export ").lstrip()
        key, sep, value = line.partition("=")
        if not sep or not key.strip():
            raise ConfigurationError(
                f"{path}:{line_num}: expected KEY=VALUE, got {raw_line!r}"
            )
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":  # noqa: PLR2004
            value = value[1:-1]
        values[key.strip()] = value
    return values


class EnvironmentConfigLoader:
    """Collects the settings that are explicitly set in the environment."""

    def load_env_config(
        self,
        env_file: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        """Return validated values for every ``QUOTE_ASSIST_*`` field that is set.

        Args:
            env_file: Optional .env file; real environment variables win.
            environ: Environment to read instead of ``os.environ``.

        Raises:
            ConfigurationError: If a value does not validate.
        """
        source: dict[str, str] = {}
        if env_file:
            source.update(parse_env_file(env_file))
        source.update(os.environ if environ is None else environ)

        raw = {
            name: source[var]
            for name in QuoteAssistSettings.field_names()
            if (var := f"{ENV_PREFIX}{name.upper()}") in source
        }
        if not raw:
            return {}

        try:
            settings = QuoteAssistSettings.model_validate(
                {**QuoteAssistSettings.defaults(), **raw}
            )
        except ValidationError as e:
            names = ", ".join(f"{ENV_PREFIX}{name.upper()}" for name in raw)
            raise ConfigurationError(f"Invalid environment values ({names}): {e}") from e
        return {name: getattr(settings, name) for name in raw}

    def summary(self, environ: Mapping[str, str] | None = None) -> dict[str, str]:
        """``QUOTE_ASSIST_*`` variables currently set, secrets redacted."""
        source = os.environ if environ is None else environ
        return {
            key: "<redacted>" if key.endswith("API_KEY") else value
            for key, value in source.items()
            if key.startswith(ENV_PREFIX)
        }
