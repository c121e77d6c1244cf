"""Config file discovery and loading.

Walk-up finder locates validatable.toml, similar to how git finds .git/.
Supports VALIDATABLE_CONFIG env var and --config CLI flag overrides.
Rule-set files are loaded explicitly by path.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from validatable.config.models import RuleSetConfig
from validatable.domain.errors import ConfigurationError

CONFIG_FILENAME = "validatable.toml"
CONFIG_ENV_VAR = "VALIDATABLE_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for validatable.toml.

    Returns the path to the config file, or None if not found.
    Checks VALIDATABLE_CONFIG env var first.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        if p.is_file():
            return p
        return None

    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise ConfigurationError(msg) from exc


def load_rule_set(path: Path) -> RuleSetConfig:
    """Parse a rule-set TOML file.

    Raises:
        ConfigurationError: Missing file, invalid TOML, or schema violations.
    """
    if not path.is_file():
        msg = f"Rule set not found: {path}"
        raise ConfigurationError(msg)
    try:
        return RuleSetConfig.model_validate(_read_toml(path))
    except ValidationError as exc:
        msg = f"Invalid rule set {path}: {exc}"
        raise ConfigurationError(msg) from exc
