"""Pydantic configuration models for SkillBundle builds.

This module defines the declarative build configuration used by the
CLI (``python -m skillbundle_cli compile --config build.yaml``).

String values may contain ``${VAR}`` placeholders that are resolved
from environment variables at load time.  Unset variables resolve to
an empty string and emit a warning.

Example config (YAML)::

    source: ./catalog
    output: ./plugins
    stacks: [react-stack]
    templates:
      provider: http
      options:
        base_url: https://cdn.example.com/templates
        headers:
          Authorization: Bearer ${TEMPLATES_TOKEN}
    catalog:
      name: acme-skills
      owner_name: Acme
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

_logger = logging.getLogger(__name__)


class TemplateSourceConfig(BaseModel):
    """Where agent templates and partials are read from."""

    provider: str = Field("fs", description="Template source type ('fs' or 'http')")
    options: dict[str, Any] = Field(
        default_factory=dict,
        description="Source-specific options passed to the source constructor",
    )


class CatalogConfig(BaseModel):
    """Settings for the published catalog index.

    Attributes:
        path: Where the catalog index is written.
        plugin_root: Directory holding the bundles, relative to the
            directory that contains ``.claude-plugin/``.
    """

    name: str = Field(..., description="Catalog name")
    owner_name: str = Field(..., description="Catalog owner's display name")
    owner_email: str | None = Field(None, description="Catalog owner's contact email")
    version: str = Field("1.0.0", description="Catalog version")
    description: str | None = Field(None, description="Catalog description")
    path: Path = Field(
        Path(".claude-plugin/marketplace.json"), description="Output path of the catalog index"
    )
    plugin_root: str = Field("./plugins", description="Bundle directory relative to the catalog")


class BuildConfig(BaseModel):
    """Top-level configuration for a SkillBundle build.

    Attributes:
        source: Root of the source tree (``skills-matrix.yaml``,
            ``skills/``, ``templates/``, ``agents.yaml``, ``stacks/``).
        output: Directory receiving one bundle per stack, named after
            the stack.
        stacks: Stacks to compile.  Empty compiles every stack under
            ``<source>/stacks``.
        templates: Template source.  Defaults to ``<source>/templates``.
        catalog: Catalog index settings, required by ``publish``.
    """

    source: Path = Field(..., description="Root of the source tree")
    output: Path = Field(Path("plugins"), description="Directory that receives the bundles")
    stacks: list[str] = Field(default_factory=list, description="Stacks to compile")
    templates: TemplateSourceConfig | None = Field(None, description="Template source")
    catalog: CatalogConfig | None = Field(None, description="Catalog index settings")


# ------------------------------------------------------------------
# Loading
# ------------------------------------------------------------------


def load_config(path: Path) -> BuildConfig:
    """Read a JSON or YAML build config and resolve ``${VAR}`` placeholders.

    Raises:
        FileNotFoundError: If *path* does not exist.
        pydantic.ValidationError: If the document does not describe a
            :class:`BuildConfig`.
    """
    raw = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(raw)
    else:
        data = json.loads(raw)
    return BuildConfig(**resolve_env_vars(data or {}))


# ------------------------------------------------------------------
# Environment variable resolution
# ------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def resolve_env_vars(data: Any) -> Any:
    """Recursively resolve ``${VAR}`` placeholders in config data.

    Walks dicts, lists, and strings.  Non-string scalars (``int``,
    ``float``, ``bool``, ``None``) are returned as-is.

    Unset environment variables resolve to an empty string and a
    warning is logged.

    Args:
        data: Parsed config data (typically the dict returned by
            ``json.loads`` or ``yaml.safe_load``).

    Returns:
        A new data structure with all ``${VAR}`` placeholders
        replaced by their environment variable values.
    """
    if isinstance(data, str):
        return _resolve_env_vars_in_string(data)
    if isinstance(data, dict):
        return {k: resolve_env_vars(v) for k, v in data.items()}
    if isinstance(data, list):
        return [resolve_env_vars(item) for item in data]
    return data


def _resolve_env_vars_in_string(value: str) -> str:
    """Replace ``${VAR_NAME}`` tokens in *value* with ``os.environ``."""

    def _replace(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name, "")
        if not env_value:
            _logger.warning(
                "Environment variable '%s' is not set or empty",
                var_name,
            )
        return env_value

    return _ENV_VAR_RE.sub(_replace, value)
