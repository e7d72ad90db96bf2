"""Core pipeline for compiling agent skill bundles.

This package turns a declarative catalog of skills and agent templates
into installable, versioned plugin bundles:

* :func:`build_catalog` -- normalize raw records into a :class:`Catalog`.
* :func:`compute_availability` / :func:`validate_selection` -- evaluate
  a :class:`Selection` against the catalog's relationship rules.
* :func:`compile_bundle` -- merge a :class:`ValidatedSelection` with
  agent templates into :class:`CompiledDocument` values.
* :func:`generate_manifest` / :func:`assemble_bundle` -- describe and lay
  out a :class:`Bundle`.
* :func:`validate_bundle` -- check a bundle against packaged JSON schemas.
* :func:`publish_catalog` -- aggregate validated bundles into a
  :class:`CatalogIndex`.
* :class:`TemplateSource` -- abstract base class for template backends.
* :class:`SkillBundleError` -- base class for all library exceptions.

Every stage is a pure function of its inputs.  File and network I/O
live in the ``skillbundle-fs`` and ``skillbundle-http`` packages.

Install::

    pip install skillbundle
"""

from skillbundle_core.catalog import Catalog, build_catalog
from skillbundle_core.compiler import (
    AgentCompilation,
    CompiledBundle,
    CompileWarning,
    SkillRouting,
    compile_agent,
    compile_bundle,
    content_hash,
)
from skillbundle_core.exceptions import (
    CatalogError,
    DanglingReferenceError,
    DuplicateIdentifierError,
    MissingProfileError,
    SkillBundleError,
    SourceError,
    TemplateNotFoundError,
    UnvalidatedBundleError,
)
from skillbundle_core.manifest import (
    MANIFEST_PATH,
    Bundle,
    BundleManifest,
    BundleMetadata,
    PluginAuthor,
    RemoteSource,
    assemble_bundle,
    bump_version,
    generate_manifest,
    generate_readme,
)
from skillbundle_core.models import (
    AgentProfile,
    Category,
    CompiledDocument,
    Selection,
    SelectionIssue,
    Severity,
    SkillEntry,
    SuggestedStack,
    ValidatedSelection,
)
from skillbundle_core.parsing import parse_frontmatter, render_frontmatter, split_frontmatter
from skillbundle_core.provider import TemplateSource, fetch_templates
from skillbundle_core.publisher import (
    CatalogEntry,
    CatalogIndex,
    CatalogOwner,
    infer_category,
    publish_catalog,
)
from skillbundle_core.resolver import (
    AvailabilityReport,
    SelectionResult,
    SkillAvailability,
    compute_availability,
    resolve_alias,
    stack_selection,
    validate_selection,
)
from skillbundle_core.rules import (
    AlternativeGroup,
    AvailabilityStatus,
    Conflicts,
    Discourages,
    ExclusiveCategory,
    MatchMode,
    Recommends,
    RelationshipRule,
    RequiredCategory,
    Requires,
    Rule,
    SetupFor,
)
from skillbundle_core.validation import (
    ValidationIssue,
    ValidationReport,
    validate_agent_document,
    validate_bundle,
    validate_catalog_data,
    validate_hooks_data,
    validate_manifest_data,
    validate_skill_document,
)

__all__ = [
    "MANIFEST_PATH",
    "AgentCompilation",
    "AgentProfile",
    "AlternativeGroup",
    "AvailabilityReport",
    "AvailabilityStatus",
    "Bundle",
    "BundleManifest",
    "BundleMetadata",
    "Catalog",
    "CatalogEntry",
    "CatalogError",
    "CatalogIndex",
    "CatalogOwner",
    "Category",
    "CompileWarning",
    "CompiledBundle",
    "CompiledDocument",
    "Conflicts",
    "DanglingReferenceError",
    "Discourages",
    "DuplicateIdentifierError",
    "ExclusiveCategory",
    "MatchMode",
    "MissingProfileError",
    "PluginAuthor",
    "Recommends",
    "RelationshipRule",
    "RemoteSource",
    "RequiredCategory",
    "Requires",
    "Rule",
    "Selection",
    "SelectionIssue",
    "SelectionResult",
    "SetupFor",
    "Severity",
    "SkillAvailability",
    "SkillBundleError",
    "SkillEntry",
    "SkillRouting",
    "SourceError",
    "SuggestedStack",
    "TemplateNotFoundError",
    "TemplateSource",
    "UnvalidatedBundleError",
    "ValidatedSelection",
    "ValidationIssue",
    "ValidationReport",
    "assemble_bundle",
    "build_catalog",
    "bump_version",
    "compile_agent",
    "compile_bundle",
    "compute_availability",
    "content_hash",
    "fetch_templates",
    "generate_manifest",
    "generate_readme",
    "infer_category",
    "parse_frontmatter",
    "publish_catalog",
    "render_frontmatter",
    "resolve_alias",
    "split_frontmatter",
    "stack_selection",
    "validate_agent_document",
    "validate_bundle",
    "validate_catalog_data",
    "validate_hooks_data",
    "validate_manifest_data",
    "validate_selection",
    "validate_skill_document",
]
