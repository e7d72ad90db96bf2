"""Build pipeline driven by a :class:`~skillbundle_cli.config.BuildConfig`.

Each stack under ``<source>/stacks`` becomes one bundle::

    load catalog -> validate selection -> fetch templates -> compile
    -> manifest + README -> assemble -> validate -> write

Bundles that fail selection or schema validation are never written.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

from skillbundle_cli.config import BuildConfig, TemplateSourceConfig
from skillbundle_core import (
    MANIFEST_PATH,
    AgentProfile,
    BundleManifest,
    BundleMetadata,
    Catalog,
    CompiledBundle,
    SkillBundleError,
    SkillRouting,
    SourceError,
    TemplateSource,
    ValidationReport,
    assemble_bundle,
    bump_version,
    compile_bundle,
    fetch_templates,
    generate_manifest,
    generate_readme,
    publish_catalog,
    validate_bundle,
    validate_selection,
)
from skillbundle_fs import (
    LocalSourceLoader,
    LocalTemplateSource,
    read_bundle,
    write_bundle,
    write_catalog,
)
from skillbundle_fs.loader import TEMPLATES_DIR
from skillbundle_fs.writer import MANAGED_DIRS
from skillbundle_http import HTTPTemplateSource

_logger = logging.getLogger(__name__)

#: Template source types accepted in a build config.
SUPPORTED_TEMPLATE_SOURCES: frozenset[str] = frozenset({"fs", "http"})

VersionPart = Literal["major", "minor", "patch"]


class BuildError(SkillBundleError):
    """A stack could not be turned into a valid bundle.

    Attributes:
        stack: The stack identifier.
        problems: Every reason, one line each.
    """

    def __init__(self, stack: str, problems: Iterable[object]) -> None:
        self.stack = stack
        self.problems = tuple(str(p) for p in problems)
        lines = "\n".join(f"  - {p}" for p in self.problems)
        super().__init__(f"Stack '{stack}' failed to build:\n{lines}")


class BuildResult(BaseModel):
    """One bundle written to disk."""

    model_config = ConfigDict(frozen=True)

    stack: str
    path: Path
    version: str
    content_hash: str
    report: ValidationReport


# ------------------------------------------------------------------
# Template sources
# ------------------------------------------------------------------


def resolve_template_source(
    config: TemplateSourceConfig | None, loader: LocalSourceLoader
) -> TemplateSource:
    """Map a template source config to a concrete source.

    Args:
        config: Source type and options.  ``None`` reads templates
            from ``<source>/templates``.
        loader: Loader of the source tree, used for the default root.

    Raises:
        ValueError: If the source type is not recognized.
    """
    if config is None:
        return loader.template_source()

    options: dict[str, Any] = config.options
    if config.provider == "fs":
        root = Path(options["root"]) if "root" in options else loader.root / TEMPLATES_DIR
        return LocalTemplateSource(root)

    if config.provider == "http":
        # Only pass constructor-safe keys; runtime objects like
        # ``client`` cannot come from a config file.
        safe_http_keys = {"base_url", "headers", "params", "require_tls", "max_response_bytes"}
        filtered = {k: v for k, v in options.items() if k in safe_http_keys}
        return HTTPTemplateSource(**filtered)

    raise ValueError(
        f"Unknown template source type: {config.provider!r}. "
        f"Supported types: {', '.join(sorted(SUPPORTED_TEMPLATE_SOURCES))}"
    )


# ------------------------------------------------------------------
# Compile
# ------------------------------------------------------------------


def _managed_content(files: dict[str, str]) -> dict[str, str]:
    return {p: c for p, c in files.items() if p.split("/", 1)[0] in MANAGED_DIRS}


def _carry_version(
    manifest: BundleManifest, compiled: CompiledBundle, dest: Path, part: VersionPart
) -> BundleManifest:
    """Continue the version of a previous build at *dest*.

    The previous version is kept when the compiled content is unchanged
    and bumped by *part* otherwise.
    """
    if not (dest / MANIFEST_PATH).is_file():
        return manifest
    previous = read_bundle(dest)
    manifest = manifest.model_copy(update={"version": previous.load_manifest().version})
    current = {d.path: d.content for d in compiled.documents}
    if _managed_content(previous.files) == current:
        _logger.info("Bundle '%s' unchanged at %s", manifest.name, manifest.version)
        return manifest
    return bump_version(manifest, part)


async def build_stack(
    loader: LocalSourceLoader,
    catalog: Catalog,
    profiles: dict[str, AgentProfile],
    source: TemplateSource,
    stack_id: str,
    *,
    output: Path,
    bump: VersionPart | None = None,
) -> BuildResult:
    """Compile one stack and write its bundle to ``<output>/<stack name>``.

    Args:
        loader: Loader of the source tree.
        catalog: Catalog built from the source tree.
        profiles: Agent profiles keyed by name.
        source: Where templates and partials are read from.
        stack_id: Directory name under ``<source>/stacks``.
        output: Directory receiving the bundle.
        bump: When set and a previous build exists at the destination,
            continue its version, bumped by this part if the content
            changed.

    Raises:
        BuildError: If the selection is invalid or the assembled
            bundle fails schema validation.  Nothing is written.
        SourceError: If the stack names an unknown agent profile.
        MissingProfileError: If a profile is broken.
    """
    stack = loader.load_stack(stack_id)
    result = validate_selection(catalog, stack.skills)
    for warning in result.warnings:
        _logger.warning("Stack '%s': %s", stack_id, warning)
    if result.validated is None:
        raise BuildError(stack_id, result.errors)

    unknown = [name for name in stack.agents if name not in profiles]
    if unknown:
        raise SourceError(f"Stack '{stack_id}' references unknown agent(s): {', '.join(unknown)}")
    agents = [profiles[name] for name in stack.agents]

    templates = await fetch_templates(source, [t for p in agents for t in p.template_ids])
    compiled = compile_bundle(
        catalog,
        result.validated,
        agents,
        templates,
        name=stack.name,
        routing=SkillRouting(routes=stack.routing),
        hooks=stack.hooks,
    )

    metadata = BundleMetadata.from_stack(stack)
    manifest = generate_manifest(compiled, metadata)
    dest = output / stack.name
    if bump is not None:
        manifest = _carry_version(manifest, compiled, dest, bump)

    bundle = assemble_bundle(compiled, manifest, readme=generate_readme(compiled, metadata))
    report = validate_bundle(bundle)
    for issue in report.warnings:
        _logger.warning("Bundle '%s': %s", stack.name, issue)
    if not report.ok:
        raise BuildError(stack_id, report.errors)

    write_bundle(bundle, dest)
    return BuildResult(
        stack=stack_id,
        path=dest,
        version=manifest.version,
        content_hash=compiled.content_hash,
        report=report,
    )


async def build(
    config: BuildConfig,
    *,
    stacks: Sequence[str] | None = None,
    bump: VersionPart | None = None,
) -> list[BuildResult]:
    """Compile every requested stack of *config*.

    Args:
        config: The build configuration.
        stacks: Stacks to compile; overrides ``config.stacks``.  When
            both are empty every stack in the source tree is compiled.
        bump: Forwarded to :func:`build_stack`.

    Returns:
        One result per stack, in request order.
    """
    loader = LocalSourceLoader(config.source)
    catalog = loader.load_catalog()
    profiles = loader.load_profiles()
    stack_ids = list(stacks or config.stacks or loader.list_stacks())
    if not stack_ids:
        raise SourceError(f"No stacks to compile in {loader.root}")

    source = resolve_template_source(config.templates, loader)
    try:
        results = []
        for stack_id in stack_ids:
            results.append(
                await build_stack(
                    loader, catalog, profiles, source, stack_id, output=config.output, bump=bump
                )
            )
    finally:
        if isinstance(source, HTTPTemplateSource):
            await source.aclose()
    return results


# ------------------------------------------------------------------
# Validate / publish
# ------------------------------------------------------------------


def validate_paths(paths: Iterable[Path]) -> list[ValidationReport]:
    """Validate bundle directories already on disk."""
    return [validate_bundle(read_bundle(path)) for path in paths]


def find_bundles(output: Path) -> list[Path]:
    """Return every bundle directory directly under *output*, sorted by name."""
    if not output.is_dir():
        raise SourceError(f"Output directory does not exist: {output}")
    return sorted(p for p in output.iterdir() if (p / MANIFEST_PATH).is_file())


def publish(config: BuildConfig) -> Path:
    """Validate every bundle under ``config.output`` and write the catalog index.

    Raises:
        ValueError: If *config* has no ``catalog`` section.
        UnvalidatedBundleError: If any bundle fails validation.  The
            index is not written in that case.
    """
    if config.catalog is None:
        raise ValueError("Publishing requires a 'catalog' section in the build config")
    settings = config.catalog
    reports = validate_paths(find_bundles(config.output))
    index = publish_catalog(
        reports,
        name=settings.name,
        owner_name=settings.owner_name,
        owner_email=settings.owner_email,
        version=settings.version,
        description=settings.description,
        plugin_root=settings.plugin_root,
    )
    return write_catalog(index, settings.path)
