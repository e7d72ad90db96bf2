"""Load a skill source tree from local disk.

:class:`LocalSourceLoader` parses the on-disk documents of a source
tree into the raw records consumed by :func:`skillbundle_core.build_catalog`
and the compiler.  It does no normalization of its own.

Expected layout::

    root/
    ├── skills-matrix.yaml          # categories, relationships, aliases
    ├── agents.yaml                 # agent profiles
    ├── skills/
    │   └── frontend/react/
    │       ├── SKILL.md            # YAML header (name, description) + body
    │       ├── metadata.yaml       # category, relations, tags, ...
    │       └── examples/basic.md   # optional resources
    ├── templates/
    │   ├── agent.md
    │   └── partials/workflow.md
    └── stacks/
        └── react-stack/
            └── config.yaml

A ``SKILL.md`` without a ``metadata.yaml`` beside it (or the other way
round) is skipped, as is a ``SKILL.md`` whose header cannot be parsed.
Structural problems with the required files raise
:class:`~skillbundle_core.SourceError`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from skillbundle_core import (
    AgentProfile,
    Catalog,
    SourceError,
    build_catalog,
    split_frontmatter,
)
from skillbundle_core.records import (
    MatrixConfig,
    ProfilesConfig,
    SkillMetadataConfig,
    SkillRecord,
    StackConfig,
)
from skillbundle_fs.local import DEFAULT_MAX_FILE_BYTES, LocalTemplateSource

_logger = logging.getLogger(__name__)

MATRIX_FILE = "skills-matrix.yaml"
PROFILES_FILE = "agents.yaml"
SKILLS_DIR = "skills"
TEMPLATES_DIR = "templates"
STACKS_DIR = "stacks"
STACK_CONFIG_FILE = "config.yaml"
SKILL_FILE = "SKILL.md"
METADATA_FILE = "metadata.yaml"

_ModelT = TypeVar("_ModelT", bound=BaseModel)


class LocalSourceLoader:
    """Reader for a skill source tree rooted at *root*.

    Args:
        root: Top-level directory of the source tree.
        max_file_bytes: Maximum allowed size of any single file.

    Raises:
        NotADirectoryError: If *root* does not exist or is not a
            directory.

    Example::

        loader = LocalSourceLoader(Path("./src"))
        catalog = loader.load_catalog()
        stack = loader.load_stack("react-stack")
    """

    def __init__(self, root: Path, *, max_file_bytes: int = DEFAULT_MAX_FILE_BYTES) -> None:
        self._root = Path(root)
        if not self._root.is_dir():
            raise NotADirectoryError(f"Source root does not exist: {self._root}")
        self._max_file_bytes = max_file_bytes

    @property
    def root(self) -> Path:
        return self._root

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def load_matrix(self) -> MatrixConfig:
        """Parse ``skills-matrix.yaml``.

        Raises:
            SourceError: If the file is missing, not valid YAML, or does
                not describe a skills matrix.
        """
        return self._load_model(self._root / MATRIX_FILE, MatrixConfig)

    def load_skills(self) -> list[SkillRecord]:
        """Read every skill under ``skills/`` in path order.

        Raises:
            SourceError: If a ``metadata.yaml`` is not valid YAML or does
                not describe skill metadata.
        """
        skills_root = self._root / SKILLS_DIR
        if not skills_root.is_dir():
            raise SourceError(f"Skills directory does not exist: {skills_root}")

        for metadata_path in sorted(skills_root.rglob(METADATA_FILE)):
            if not (metadata_path.parent / SKILL_FILE).is_file():
                _logger.debug("Skipping %s: no %s beside it", metadata_path, SKILL_FILE)

        records = []
        for skill_md in sorted(skills_root.rglob(SKILL_FILE)):
            record = self._load_skill(skill_md.parent, skills_root)
            if record is not None:
                records.append(record)
        _logger.debug("Loaded %d skill(s) from %s", len(records), skills_root)
        return records

    def load_catalog(self) -> Catalog:
        """Load the matrix and every skill, then build the catalog."""
        return build_catalog(self.load_matrix(), self.load_skills())

    # ------------------------------------------------------------------
    # Profiles, stacks, templates
    # ------------------------------------------------------------------

    def load_profiles(self) -> dict[str, AgentProfile]:
        """Parse ``agents.yaml`` into profiles keyed by agent name.

        A missing file yields no profiles.
        """
        path = self._root / PROFILES_FILE
        if not path.is_file():
            _logger.debug("No %s in %s", PROFILES_FILE, self._root)
            return {}
        config = self._load_model(path, ProfilesConfig)
        return {
            name: AgentProfile.from_config(name, profile) for name, profile in config.agents.items()
        }

    def list_stacks(self) -> list[str]:
        """Return the identifiers of every stack that has a config file."""
        stacks_root = self._root / STACKS_DIR
        if not stacks_root.is_dir():
            return []
        return sorted(p.parent.name for p in stacks_root.glob(f"*/{STACK_CONFIG_FILE}"))

    def load_stack(self, stack_id: str) -> StackConfig:
        """Parse ``stacks/<stack_id>/config.yaml``.

        Raises:
            SourceError: If the stack does not exist or its config is
                malformed.
        """
        stacks_root = (self._root / STACKS_DIR).resolve()
        path = (stacks_root / stack_id / STACK_CONFIG_FILE).resolve()
        if not path.is_relative_to(stacks_root):
            raise SourceError(f"Invalid stack_id: {stack_id!r}")
        return self._load_model(path, StackConfig)

    def template_source(self) -> LocalTemplateSource:
        """Return a template source over ``templates/``."""
        return LocalTemplateSource(self._root / TEMPLATES_DIR, max_file_bytes=self._max_file_bytes)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read_text(self, path: Path) -> str:
        if not path.is_file():
            raise SourceError(f"File not found: {path}")
        if path.stat().st_size > self._max_file_bytes:
            raise SourceError(f"{path} exceeds maximum size ({self._max_file_bytes} bytes)")
        return path.read_text(encoding="utf-8")

    def _read_yaml(self, path: Path) -> Any:
        try:
            return yaml.safe_load(self._read_text(path))
        except yaml.YAMLError as exc:
            raise SourceError(f"Invalid YAML in {path}: {exc}") from exc

    def _load_model(self, path: Path, model: type[_ModelT]) -> _ModelT:
        data = self._read_yaml(path)
        try:
            return model.model_validate(data if data is not None else {})
        except ValidationError as exc:
            raise SourceError(f"Invalid {path.name} at {path}:\n{exc}") from exc

    def _load_skill(self, skill_dir: Path, skills_root: Path) -> SkillRecord | None:
        relative = skill_dir.relative_to(skills_root).as_posix()
        metadata_path = skill_dir / METADATA_FILE
        if not metadata_path.is_file():
            _logger.debug("Skipping skill %s: no %s", relative, METADATA_FILE)
            return None

        raw = self._read_text(skill_dir / SKILL_FILE)
        header, body = split_frontmatter(raw)
        name = header.get("name")
        if not isinstance(name, str) or not name:
            _logger.debug("Skipping skill %s: missing or unparseable header", relative)
            return None

        metadata = self._load_model(metadata_path, SkillMetadataConfig)
        return SkillRecord(
            id=name,
            description=str(header.get("description") or ""),
            content=body,
            metadata=metadata,
            resources=self._read_resources(skill_dir),
            path=relative,
        )

    def _read_resources(self, skill_dir: Path) -> dict[str, str]:
        resources: dict[str, str] = {}
        for path in sorted(skill_dir.rglob("*")):
            if not path.is_file():
                continue
            relative = path.relative_to(skill_dir)
            if relative.as_posix() in (SKILL_FILE, METADATA_FILE):
                continue
            if _inside_nested_skill(skill_dir, relative):
                continue
            resources[relative.as_posix()] = self._read_text(path)
        return resources


def _inside_nested_skill(skill_dir: Path, relative: Path) -> bool:
    current = skill_dir
    for part in relative.parts[:-1]:
        current = current / part
        if (current / SKILL_FILE).is_file():
            return True
    return False
