"""Catalog publisher: aggregate validated bundles into a discovery index.

The publisher only accepts :class:`~skillbundle_core.ValidationReport`
objects that passed, so "is in the catalog" always implies "passed
schema validation".  The index is rebuilt from scratch on every run.

Example::

    from skillbundle_core import publish_catalog, validate_bundle

    reports = [validate_bundle(b) for b in bundles]
    index = publish_catalog(
        [r for r in reports if r.ok],
        name="my-marketplace",
        owner_name="Platform Team",
    )
    print(index.stats())
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict

from skillbundle_core.exceptions import UnvalidatedBundleError
from skillbundle_core.manifest import DEFAULT_VERSION, PluginAuthor, RemoteSource
from skillbundle_core.validation import ValidationReport, validate_bundle

_logger = logging.getLogger(__name__)

MARKETPLACE_SCHEMA_URL = "https://anthropic.com/claude-code/marketplace.schema.json"
UNCATEGORIZED = "uncategorized"

_CATEGORY_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(p), c)
    for p, c in [
        (r"^(skill-)?setup-", "setup"),
        (r"^(skill-)?backend-", "backend"),
        (r"^(skill-)?frontend-", "frontend"),
        (r"^(skill-)?(express|fastify|hono|drizzle|prisma|better-auth)", "backend"),
        (r"^(skill-)?(react-testing|vue-test|karma)", "testing"),
        (r"^(skill-)?(react-query|swr|trpc|graphql|msw|mocks)", "api"),
        (r"^(skill-)?(react-hook-form|vee-validate|zod)", "forms"),
        (r"^(skill-)?(react-intl|next-intl|vue-i18n)", "i18n"),
        (r"^(skill-)?(react-native|expo)", "mobile"),
        (r"^(skill-)?(react|vue|angular|solid|next|nuxt|remix)", "frontend"),
        (r"^(skill-)?(tailwind|scss|cva|shadcn|radix)", "frontend"),
        (r"^(skill-)?(framer-motion|css-animations|view-transitions)", "frontend"),
        (r"^(skill-)?(zustand|mobx|redux|jotai|pinia|ngrx)", "frontend"),
        (r"^(skill-)?(vitest|cypress|playwright|jest|testing)", "testing"),
        (r"^(skill-)?(websockets|socket-io|sse)", "api"),
        (r"^(skill-)?(posthog|axiom|pino|sentry)", "observability"),
        (r"^(skill-)?github-actions", "devops"),
        (r"^(skill-)?(turborepo|storybook|tooling)", "tooling"),
        (r"^(skill-)?security", "security"),
    ]
]


def infer_category(name: str) -> str | None:
    """Map a bundle name to a category using a fixed pattern table.

    More specific patterns are tried first, so ``react-query`` is
    ``api`` while ``react`` is ``frontend``.
    """
    for pattern, category in _CATEGORY_PATTERNS:
        if pattern.match(name):
            return category
    return None


class CatalogOwner(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    email: str | None = None


class CatalogEntry(BaseModel):
    """One bundle listed in a catalog index."""

    model_config = ConfigDict(frozen=True)

    name: str
    source: str | RemoteSource
    description: str | None = None
    version: str | None = None
    author: PluginAuthor | None = None
    keywords: tuple[str, ...] = ()
    category: str | None = None

    def to_dict(self) -> dict[str, Any]:
        source = self.source if isinstance(self.source, str) else self.source.to_dict()
        data: dict[str, Any] = {"name": self.name, "source": source}
        if self.description:
            data["description"] = self.description
        if self.version:
            data["version"] = self.version
        if self.author is not None:
            data["author"] = self.author.model_dump(exclude_none=True)
        if self.keywords:
            data["keywords"] = list(self.keywords)
        if self.category:
            data["category"] = self.category
        return data


class CatalogIndex(BaseModel):
    """A discovery file referencing many bundle roots.

    Entries are sorted by name.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str = DEFAULT_VERSION
    description: str | None = None
    owner: CatalogOwner
    plugin_root: str
    entries: tuple[CatalogEntry, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "$schema": MARKETPLACE_SCHEMA_URL,
            "name": self.name,
            "version": self.version,
        }
        if self.description:
            data["description"] = self.description
        data["owner"] = self.owner.model_dump(exclude_none=True)
        data["metadata"] = {"pluginRoot": self.plugin_root}
        data["plugins"] = [entry.to_dict() for entry in self.entries]
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2) + "\n"

    def grouped(self) -> dict[str, list[CatalogEntry]]:
        """Group entries by category; categories are sorted by name."""
        groups: dict[str, list[CatalogEntry]] = {}
        for entry in self.entries:
            groups.setdefault(entry.category or UNCATEGORIZED, []).append(entry)
        return dict(sorted(groups.items()))

    def stats(self) -> dict[str, Any]:
        """Return ``{"total": n, "by_category": {category: count}}``."""
        return {
            "total": len(self.entries),
            "by_category": {c: len(e) for c, e in self.grouped().items()},
        }


def publish_catalog(
    reports: Iterable[ValidationReport],
    *,
    name: str,
    owner_name: str,
    owner_email: str | None = None,
    version: str = DEFAULT_VERSION,
    description: str | None = None,
    plugin_root: str = "./plugins",
    categorize: Callable[[str], str | None] = infer_category,
) -> CatalogIndex:
    """Build a catalog index from validated bundles.

    Args:
        reports: One passed :class:`~skillbundle_core.ValidationReport`
            per bundle.
        name: Catalog name.
        owner_name: Catalog owner's display name.
        owner_email: Catalog owner's contact email.
        version: Catalog version.
        description: Catalog description.
        plugin_root: Directory holding local bundles, relative to the
            catalog file.  Bundles without a ``location`` are assumed to
            live at ``./<plugin_root>/<name>``.
        categorize: Maps a bundle name to a category (or ``None``).

    Returns:
        The catalog index, entries sorted by name.

    Raises:
        UnvalidatedBundleError: If any input is not a passed
            validation report, or if its bundle no longer passes.
            Nothing is published in that case.
        ValueError: If two bundles share a name.
    """
    reports = list(reports)
    for position, report in enumerate(reports):
        if not isinstance(report, ValidationReport):
            raise UnvalidatedBundleError(
                f"Input #{position} is a {type(report).__name__}, not a validation report; "
                "run validate_bundle() first"
            )
        if not report.ok:
            errors = "; ".join(str(e) for e in report.errors)
            raise UnvalidatedBundleError(f"Input #{position} failed validation: {errors}")
        if not validate_bundle(report.bundle).ok:
            raise UnvalidatedBundleError(
                f"Input #{position} no longer passes validation; its report is stale"
            )

    root = plugin_root[2:] if plugin_root.startswith("./") else plugin_root
    root = root.rstrip("/")
    entries: dict[str, CatalogEntry] = {}
    for report in reports:
        manifest = report.bundle.load_manifest()
        if manifest.name in entries:
            raise ValueError(f"Duplicate bundle name '{manifest.name}'")
        location = report.bundle.location
        entries[manifest.name] = CatalogEntry(
            name=manifest.name,
            source=location if location is not None else f"./{root}/{manifest.name}",
            description=manifest.description,
            version=manifest.version,
            author=manifest.author,
            keywords=manifest.keywords,
            category=categorize(manifest.name),
        )
        _logger.debug("Catalog entry '%s' -> %s", manifest.name, entries[manifest.name].source)

    index = CatalogIndex(
        name=name,
        version=version,
        description=description,
        owner=CatalogOwner(name=owner_name, email=owner_email),
        plugin_root=plugin_root,
        entries=tuple(sorted(entries.values(), key=lambda e: e.name)),
    )
    _logger.info("Published catalog '%s' with %d bundle(s)", name, len(index.entries))
    return index
