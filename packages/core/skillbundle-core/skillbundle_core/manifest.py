"""Manifest generation and bundle assembly.

The manifest describes a bundle and declares its entry points.  An
entry point is declared only when documents of that kind exist, since
an empty declared entry point is a validation error downstream.

Example::

    from skillbundle_core import BundleMetadata, assemble_bundle, generate_manifest

    metadata = BundleMetadata(name="react-stack", author="vince")
    manifest = generate_manifest(compiled.documents, metadata)
    bundle = assemble_bundle(compiled, manifest)
    bundle.files[".claude-plugin/plugin.json"]
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from skillbundle_core.compiler import AGENTS_DIR, HOOKS_PATH, SKILLS_DIR, CompiledBundle
from skillbundle_core.models import CompiledDocument, TextFiles
from skillbundle_core.records import StackConfig

_logger = logging.getLogger(__name__)

MANIFEST_DIR = ".claude-plugin"
MANIFEST_PATH = f"{MANIFEST_DIR}/plugin.json"
README_PATH = "README.md"

SKILLS_ENTRY_POINT = f"./{SKILLS_DIR}/"
AGENTS_ENTRY_POINT = f"./{AGENTS_DIR}/"
HOOKS_ENTRY_POINT = f"./{HOOKS_PATH}"

DEFAULT_VERSION = "1.0.0"
DEFAULT_LICENSE = "MIT"

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:[-+].*)?$")


class PluginAuthor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    email: str | None = None


class RemoteSource(BaseModel):
    """Remote coordinates of a bundle, optionally pinned to a revision.

    Attributes:
        source: ``"github"`` (uses ``repo``) or ``"url"`` (uses ``url``).
        ref: Branch, tag, or commit to pin.
    """

    model_config = ConfigDict(frozen=True)

    source: Literal["github", "url"]
    repo: str | None = None
    url: str | None = None
    ref: str | None = None

    def to_dict(self) -> dict[str, str]:
        return self.model_dump(exclude_none=True)


class BundleMetadata(BaseModel):
    """Bundle-level metadata supplied by the caller."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str = DEFAULT_VERSION
    description: str | None = None
    author: str | None = None
    author_email: str | None = None
    license: str = DEFAULT_LICENSE
    keywords: tuple[str, ...] = ()
    philosophy: str | None = None
    principles: tuple[str, ...] = ()

    @classmethod
    def from_stack(cls, stack: StackConfig) -> BundleMetadata:
        """Take bundle metadata from a stack definition; tags become keywords."""
        return cls(
            name=stack.name,
            version=stack.version,
            description=stack.description,
            author=stack.author,
            author_email=stack.author_email,
            keywords=tuple(stack.tags),
            philosophy=stack.philosophy,
            principles=tuple(stack.principles),
        )


class BundleManifest(BaseModel):
    """Contents of ``.claude-plugin/plugin.json``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    version: str = DEFAULT_VERSION
    description: str | None = None
    author: PluginAuthor | None = None
    license: str = DEFAULT_LICENSE
    keywords: tuple[str, ...] = ()
    skills: str | None = None
    agents: str | None = None
    hooks: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize with optional fields omitted when unset or empty."""
        data: dict[str, Any] = {"name": self.name, "version": self.version}
        if self.description:
            data["description"] = self.description
        if self.author is not None:
            data["author"] = self.author.model_dump(exclude_none=True)
        data["license"] = self.license
        if self.keywords:
            data["keywords"] = list(self.keywords)
        for key in ("skills", "agents", "hooks"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2) + "\n"

    @property
    def entry_points(self) -> dict[str, str]:
        """Declared entry points keyed by kind."""
        pairs = (("skills", self.skills), ("agents", self.agents), ("hooks", self.hooks))
        return {k: v for k, v in pairs if v}


class Bundle(BaseModel):
    """The physical layout of a bundle as a value.

    Attributes:
        files: Read-only relative path -> text, including the serialized
            manifest.
        location: Where the bundle lives once published: a path relative
            to the catalog root, or remote coordinates.
    """

    model_config = ConfigDict(frozen=True)

    files: TextFiles = Field(default_factory=dict, validate_default=True)
    location: str | RemoteSource | None = None

    def load_manifest(self) -> BundleManifest:
        """Parse the bundle's manifest.

        Raises:
            KeyError: If the bundle has no manifest file.
            ValueError: If the manifest is not valid JSON or does not
                describe a manifest.
        """
        return BundleManifest.model_validate(json.loads(self.files[MANIFEST_PATH]))


def _paths(documents: Iterable[CompiledDocument] | CompiledBundle) -> list[str]:
    if isinstance(documents, CompiledBundle):
        documents = documents.documents
    return [d.path for d in documents]


def generate_manifest(
    documents: Iterable[CompiledDocument] | CompiledBundle, metadata: BundleMetadata
) -> BundleManifest:
    """Build the manifest for a set of compiled documents.

    Entry points are declared only for document kinds that are present.
    ``author`` is set only when a name is given.
    """
    paths = _paths(documents)
    author = None
    if metadata.author:
        author = PluginAuthor(name=metadata.author, email=metadata.author_email)
    manifest = BundleManifest(
        name=metadata.name,
        version=metadata.version or DEFAULT_VERSION,
        description=metadata.description,
        author=author,
        license=metadata.license,
        keywords=metadata.keywords,
        skills=SKILLS_ENTRY_POINT if any(p.startswith(f"{SKILLS_DIR}/") for p in paths) else None,
        agents=AGENTS_ENTRY_POINT if any(p.startswith(f"{AGENTS_DIR}/") for p in paths) else None,
        hooks=HOOKS_ENTRY_POINT if HOOKS_PATH in paths else None,
    )
    _logger.debug("Generated manifest for '%s': %s", manifest.name, sorted(manifest.entry_points))
    return manifest


def generate_readme(
    documents: Iterable[CompiledDocument] | CompiledBundle, metadata: BundleMetadata
) -> CompiledDocument:
    """Render ``README.md`` for a bundle."""
    paths = _paths(documents)
    agents = sorted(
        p[len(AGENTS_DIR) + 1 : -len(".md")]
        for p in paths
        if p.startswith(f"{AGENTS_DIR}/") and p.endswith(".md")
    )
    skills = sorted(
        p.split("/")[1] for p in paths if p.startswith(f"{SKILLS_DIR}/") and p.endswith("/SKILL.md")
    )

    lines = [f"# {metadata.name}", "", metadata.description or "An agent skill bundle.", ""]
    if metadata.keywords:
        lines += ["## Tags", "", " ".join(f"`{t}`" for t in metadata.keywords), ""]
    if agents:
        lines += ["## Agents", "", *(f"- `{a}`" for a in agents), ""]
    if skills:
        lines += ["## Skills", "", *(f"- `{s}`" for s in skills), ""]
    if metadata.philosophy:
        lines += ["## Philosophy", "", metadata.philosophy.strip(), ""]
    if metadata.principles:
        lines += ["## Principles", "", *(f"- {p}" for p in metadata.principles), ""]
    return CompiledDocument(path=README_PATH, content="\n".join(lines))


def bump_version(
    manifest: BundleManifest, part: Literal["major", "minor", "patch"]
) -> BundleManifest:
    """Return a copy of *manifest* with its version bumped.

    Raises:
        ValueError: If *part* is unknown or the current version is not
            ``MAJOR.MINOR.PATCH``.
    """
    match = _VERSION_RE.match(manifest.version)
    if not match:
        raise ValueError(f"Cannot bump non-semver version '{manifest.version}'")
    major, minor, patch = (int(g) for g in match.groups())
    if part == "major":
        version = f"{major + 1}.0.0"
    elif part == "minor":
        version = f"{major}.{minor + 1}.0"
    elif part == "patch":
        version = f"{major}.{minor}.{patch + 1}"
    else:
        raise ValueError(f"Unknown version part '{part}' (expected major, minor or patch)")
    return manifest.model_copy(update={"version": version})


def assemble_bundle(
    compiled: CompiledBundle | Iterable[CompiledDocument],
    manifest: BundleManifest,
    *,
    readme: CompiledDocument | None = None,
    location: str | RemoteSource | None = None,
) -> Bundle:
    """Lay documents, the README, and the serialized manifest into a file map.

    Paths in the file map are exactly where the writer persists them.

    Raises:
        ValueError: If two documents share a path.
    """
    documents = compiled.documents if isinstance(compiled, CompiledBundle) else tuple(compiled)
    if readme is not None:
        documents = (*documents, readme)

    files: dict[str, str] = {}
    for document in documents:
        if document.path in files:
            raise ValueError(f"Duplicate document path '{document.path}'")
        files[document.path] = document.content
    files[MANIFEST_PATH] = manifest.to_json()
    return Bundle(files=files, location=location)
