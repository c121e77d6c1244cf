"""Pydantic configuration models with code-baked defaults.

Two file shapes share these models:
- ``validatable.toml`` — project settings; sparse, only overrides.
- Rule-set files — ``[fields.<name>]`` tables, each an ordered list of
  rule specs referring to registered rule kinds.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

# --- validatable.toml sections ---


class EngineConfig(BaseModel):
    """[engine] section."""

    model_config = {"frozen": True}

    auto_validate: bool = True


class RulesConfig(BaseModel):
    """[rules] section."""

    model_config = {"frozen": True}

    path: str | None = None


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    disabled: list[str] = Field(default_factory=list)


class LogConfig(BaseModel):
    """[log] section."""

    model_config = {"frozen": True}

    quiet_engine: bool = False


# --- Rule-set files ---


class RuleSpec(BaseModel):
    """One rule: a registered kind, an optional message override, factory params."""

    model_config = {"frozen": True, "extra": "forbid"}

    kind: str
    message: str | None = None
    params: dict[str, Any] = Field(default_factory=dict)


class FieldSpec(BaseModel):
    """[fields.<name>] table. Rule order is evaluation order."""

    model_config = {"frozen": True, "extra": "forbid"}

    rules: list[RuleSpec] = Field(default_factory=list)
    initial: Any = None
    auto_validate: bool | None = None
    depends_on: list[str] = Field(default_factory=list)


class RuleSetConfig(BaseModel):
    """A named collection of fields, in file order."""

    model_config = {"frozen": True}

    fields: dict[str, FieldSpec] = Field(default_factory=dict)
