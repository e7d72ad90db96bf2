"""Schema validator for bundles, manifests, and documents.

Validation never raises on bad input: every finding becomes a
:class:`ValidationIssue` tagged ``error`` or ``warning`` together with
the location it was found at.  Errors block publication; warnings do
not.

The validator only looks at a :class:`~skillbundle_core.Bundle` file
map, so a hand-written bundle read from disk is checked exactly like a
freshly compiled one.

JSON Schemas (Draft 7) ship in the package's ``schemas/`` directory:

* ``plugin.schema.json`` -- ``.claude-plugin/plugin.json``
* ``skill-frontmatter.schema.json`` -- ``SKILL.md`` headers
* ``agent-frontmatter.schema.json`` -- agent document headers
* ``hooks.schema.json`` -- ``hooks/hooks.json``
* ``marketplace.schema.json`` -- catalog index files

Example::

    from skillbundle_core import validate_bundle

    report = validate_bundle(bundle)
    for issue in report.errors:
        print(issue)   # hooks/hooks.json: declared hooks entry point ... does not exist
"""

from __future__ import annotations

import functools
import json
import logging
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

from jsonschema import Draft7Validator
from pydantic import BaseModel, ConfigDict

from skillbundle_core.manifest import MANIFEST_PATH, README_PATH, Bundle
from skillbundle_core.models import Severity
from skillbundle_core.parsing import parse_frontmatter

_logger = logging.getLogger(__name__)

SCHEMAS_DIR = Path(__file__).parent / "schemas"

KEBAB_CASE_RE = re.compile(r"^[a-z][a-z0-9]*(-[a-z0-9]+)*$")
SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)

DEPRECATED_SKILL_KEYS = ("category", "author", "version")

SKILL_FILE = "SKILL.md"


class ValidationIssue(BaseModel):
    """One finding of the schema validator.

    Attributes:
        severity: ``error`` blocks publication, ``warning`` does not.
        location: Bundle-relative path (and field) the issue refers to.
        message: Human-readable description of what failed and why.
    """

    model_config = ConfigDict(frozen=True)

    severity: Severity
    location: str
    message: str

    def __str__(self) -> str:
        return f"{self.location}: {self.message}"


class ValidationReport(BaseModel):
    """Every issue found in one bundle.

    A report is the only proof of validation the catalog publisher
    accepts; it carries the bundle it was computed for.
    """

    model_config = ConfigDict(frozen=True)

    bundle: Bundle
    issues: tuple[ValidationIssue, ...] = ()

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity is Severity.WARNING]

    @property
    def ok(self) -> bool:
        return not self.errors


def _error(location: str, message: str) -> ValidationIssue:
    return ValidationIssue(severity=Severity.ERROR, location=location, message=message)


def _warning(location: str, message: str) -> ValidationIssue:
    return ValidationIssue(severity=Severity.WARNING, location=location, message=message)


# ------------------------------------------------------------------
# Schemas
# ------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def load_schema(name: str) -> dict[str, Any]:
    """Load a packaged JSON schema by name, e.g. ``"plugin"``.

    Raises:
        FileNotFoundError: If no such schema ships with the package.
    """
    with open(SCHEMAS_DIR / f"{name}.schema.json", encoding="utf-8") as f:
        return json.load(f)


@functools.lru_cache(maxsize=None)
def _validator(name: str) -> Draft7Validator:
    return Draft7Validator(load_schema(name))


def _schema_issues(name: str, data: Any, location: str) -> list[ValidationIssue]:
    errors = sorted(
        _validator(name).iter_errors(data),
        key=lambda e: ([str(p) for p in e.absolute_path], e.message),
    )
    issues = []
    for error in errors:
        field = ".".join(str(p) for p in error.absolute_path)
        issues.append(_error(f"{location}:{field}" if field else location, error.message))
    return issues


# ------------------------------------------------------------------
# Individual documents
# ------------------------------------------------------------------


def validate_manifest_data(data: Any, *, location: str = MANIFEST_PATH) -> list[ValidationIssue]:
    """Validate a parsed manifest.

    Checks the plugin schema, a kebab-case ``name``, and a semver
    ``version``.  A missing ``description`` is a warning.
    """
    issues = _schema_issues("plugin", data, location)
    if not isinstance(data, dict):
        return issues

    name = data.get("name")
    if isinstance(name, str) and name and not KEBAB_CASE_RE.match(name):
        issues.append(_error(f"{location}:name", f"name must be kebab-case: '{name}'"))
    version = data.get("version")
    if isinstance(version, str) and not SEMVER_RE.match(version):
        issues.append(
            _error(
                f"{location}:version",
                f"version '{version}' is not valid semver (MAJOR.MINOR.PATCH)",
            )
        )
    if not data.get("description"):
        issues.append(_warning(location, "Missing description (recommended for discoverability)"))
    return issues


def _header_issues(
    schema: str, content: str, location: str
) -> tuple[dict[str, Any] | None, list[ValidationIssue]]:
    header = parse_frontmatter(content)
    if header is None:
        return None, [_error(location, "Missing or invalid YAML header block")]
    issues = _schema_issues(schema, header, location)
    name = header.get("name")
    if isinstance(name, str) and name and not KEBAB_CASE_RE.match(name):
        issues.append(_error(f"{location}:name", f"name must be kebab-case: '{name}'"))
    return header, issues


def validate_skill_document(content: str, *, location: str = SKILL_FILE) -> list[ValidationIssue]:
    """Validate the header of a ``SKILL.md`` document.

    Deprecated header keys (``category``, ``author``, ``version``)
    belong in ``metadata.yaml`` and are reported as warnings.
    """
    header, issues = _header_issues("skill-frontmatter", content, location)
    if header is None:
        return issues
    for key in DEPRECATED_SKILL_KEYS:
        if key in header:
            issues.append(
                _warning(f"{location}:{key}", f"Deprecated key '{key}' (use metadata.yaml instead)")
            )
    parent = location.rsplit("/", 2)
    if len(parent) == 3 and parent[2] == SKILL_FILE and header.get("name") not in (None, parent[1]):
        issues.append(
            _warning(
                f"{location}:name",
                f"name '{header['name']}' does not match directory '{parent[1]}'",
            )
        )
    return issues


def validate_agent_document(content: str, *, location: str = "agent.md") -> list[ValidationIssue]:
    """Validate the header of an agent document."""
    _, issues = _header_issues("agent-frontmatter", content, location)
    return issues


def validate_hooks_data(data: Any, *, location: str = "hooks/hooks.json") -> list[ValidationIssue]:
    return _schema_issues("hooks", data, location)


def validate_catalog_data(
    data: Any, *, location: str = "marketplace.json"
) -> list[ValidationIssue]:
    """Validate a serialized catalog index against the marketplace schema."""
    return _schema_issues("marketplace", data, location)


# ------------------------------------------------------------------
# Whole bundles
# ------------------------------------------------------------------


def _entry_path(value: str) -> str:
    return value[2:] if value.startswith("./") else value


def _check_directory(
    files: dict[str, str], kind: str, declared: str, is_document: Callable[[str], bool]
) -> list[ValidationIssue]:
    prefix = _entry_path(declared).rstrip("/") + "/"
    under = [p for p in files if p.startswith(prefix)]
    if not under:
        return [_error(MANIFEST_PATH, f"Declared {kind} entry point '{declared}' does not exist")]
    if not any(is_document(p[len(prefix) :]) for p in under):
        message = f"Declared {kind} entry point '{declared}' contains no {kind} documents"
        return [_error(MANIFEST_PATH, message)]
    return []


def _is_skill_document(relative: str) -> bool:
    parts = relative.split("/")
    return len(parts) == 2 and parts[1] == SKILL_FILE


def _is_agent_document(relative: str) -> bool:
    return "/" not in relative and relative.endswith(".md")


def _check_hooks(files: dict[str, str], declared: str) -> list[ValidationIssue]:
    path = _entry_path(declared)
    if path not in files:
        return [_error(MANIFEST_PATH, f"Declared hooks entry point '{declared}' does not exist")]
    if not files[path].strip():
        return [_error(path, f"Declared hooks entry point '{declared}' is empty")]
    try:
        data = json.loads(files[path])
    except json.JSONDecodeError as exc:
        return [_error(path, f"Invalid JSON: {exc}")]
    return validate_hooks_data(data, location=path)


def validate_bundle(bundle: Bundle) -> ValidationReport:
    """Validate a bundle's manifest, entry points, and documents.

    Every issue is reported, not just the first.

    Args:
        bundle: The bundle to check.

    Returns:
        A :class:`ValidationReport` holding *bundle* and every issue.
    """
    files = bundle.files
    issues: list[ValidationIssue] = []
    manifest: dict[str, Any] = {}

    if MANIFEST_PATH not in files:
        issues.append(_error(MANIFEST_PATH, "Missing plugin manifest"))
    else:
        try:
            data = json.loads(files[MANIFEST_PATH])
        except json.JSONDecodeError as exc:
            issues.append(_error(MANIFEST_PATH, f"Invalid JSON: {exc}"))
        else:
            issues.extend(validate_manifest_data(data))
            if isinstance(data, dict):
                manifest = data

    skills_dir, agents_dir = "skills/", "agents/"
    declared_skills = manifest.get("skills")
    declared_agents = manifest.get("agents")
    declared_hooks = manifest.get("hooks")

    if isinstance(declared_skills, str):
        issues.extend(_check_directory(files, "skills", declared_skills, _is_skill_document))
        skills_dir = _entry_path(declared_skills).rstrip("/") + "/"
    if isinstance(declared_agents, str):
        issues.extend(_check_directory(files, "agents", declared_agents, _is_agent_document))
        agents_dir = _entry_path(declared_agents).rstrip("/") + "/"
    if isinstance(declared_hooks, str):
        issues.extend(_check_hooks(files, declared_hooks))

    for path in sorted(files):
        if path.startswith(skills_dir) and _is_skill_document(path[len(skills_dir) :]):
            issues.extend(validate_skill_document(files[path], location=path))
        elif path.startswith(agents_dir) and _is_agent_document(path[len(agents_dir) :]):
            issues.extend(validate_agent_document(files[path], location=path))

    if manifest:
        if declared_skills is None and any(p.startswith(skills_dir) for p in files):
            issues.append(_warning(skills_dir, "Content is not declared in the manifest"))
        if declared_agents is None and any(p.startswith(agents_dir) for p in files):
            issues.append(_warning(agents_dir, "Content is not declared in the manifest"))
        if declared_hooks is None and "hooks/hooks.json" in files:
            issues.append(_warning("hooks/hooks.json", "Content is not declared in the manifest"))

    if README_PATH not in files:
        issues.append(_warning(README_PATH, "Missing README.md (recommended for documentation)"))

    report = ValidationReport(bundle=bundle, issues=tuple(issues))
    _logger.debug(
        "Validated bundle: %d error(s), %d warning(s)", len(report.errors), len(report.warnings)
    )
    return report
