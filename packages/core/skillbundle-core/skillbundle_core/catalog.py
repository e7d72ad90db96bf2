"""Normalized, read-only catalog of skills, categories, and rules.

:func:`build_catalog` turns the raw records handed over by the
config-loading collaborator into a :class:`Catalog`:

* every alias in every rule is resolved to a canonical identifier,
* per-skill metadata relations (``conflicts_with``, ``requires``,
  ``compatible_with``, ``provides_setup_for``) and matrix-level rules
  are merged into one flat rule list,
* category definitions become :class:`~skillbundle_core.rules.ExclusiveCategory`
  and :class:`~skillbundle_core.rules.RequiredCategory` rules so that the
  resolver evaluates them like any other rule.

The build is all-or-nothing: a duplicate identifier raises
:class:`~skillbundle_core.DuplicateIdentifierError` and unknown
references raise :class:`~skillbundle_core.DanglingReferenceError`
before any lookup table is exposed.

Example::

    from skillbundle_core import build_catalog

    catalog = build_catalog(matrix_config, skill_records)
    catalog.get_skill("react").category
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence

from skillbundle_core.exceptions import (
    CatalogError,
    DanglingReferenceError,
    DuplicateIdentifierError,
)
from skillbundle_core.models import Category, SkillEntry, SuggestedStack, display_name, skill_slug
from skillbundle_core.records import MatrixConfig, SkillRecord
from skillbundle_core.rules import (
    AlternativeGroup,
    Conflicts,
    Discourages,
    ExclusiveCategory,
    MatchMode,
    Recommends,
    RequiredCategory,
    Requires,
    Rule,
    SetupFor,
)

_logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"^[a-z][a-z0-9]*(-[a-z0-9]+)*$")

_METADATA_REASON = "Defined in skill metadata"


class Catalog:
    """Lookup tables over an immutable set of skills and rules.

    Instances are built by :func:`build_catalog`; they are never
    mutated afterwards, so a catalog can be shared freely between
    concurrent resolver and compiler calls.
    """

    def __init__(
        self,
        *,
        version: str,
        skills: Sequence[SkillEntry],
        categories: Mapping[str, Category],
        rules: Sequence[Rule],
        aliases: Mapping[str, str],
        stacks: Sequence[SuggestedStack] = (),
    ) -> None:
        self._version = version
        self._skills: dict[str, SkillEntry] = {s.id: s for s in skills}
        self._categories = dict(categories)
        self._rules = tuple(rules)
        self._aliases = dict(aliases)
        self._aliases_reverse = {full: alias for alias, full in self._aliases.items()}
        self._stacks = {s.id: s for s in stacks}

        self._by_category: dict[str, list[str]] = {}
        for skill in skills:
            self._by_category.setdefault(skill.category, []).append(skill.id)

        self._rules_by_skill: dict[str, list[Rule]] = {}
        for rule in self._rules:
            for skill_id in dict.fromkeys(rule.references()):
                self._rules_by_skill.setdefault(skill_id, []).append(rule)

    def __repr__(self) -> str:
        return f"Catalog({len(self._skills)} skills, {len(self._rules)} rules)"

    def __contains__(self, skill_id: object) -> bool:
        return skill_id in self._skills

    @property
    def version(self) -> str:
        return self._version

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    @property
    def aliases(self) -> dict[str, str]:
        return dict(self._aliases)

    def list_skills(self) -> list[SkillEntry]:
        """Return every skill in load order."""
        return list(self._skills.values())

    def get_skill(self, skill_id: str) -> SkillEntry:
        """Return a skill by identifier or alias.

        Raises:
            KeyError: If no such skill exists.
        """
        return self._skills[self.resolve(skill_id)]

    def resolve(self, alias_or_id: str) -> str:
        """Map an alias to its canonical identifier; identifiers pass through."""
        return self._aliases.get(alias_or_id, alias_or_id)

    def alias_of(self, skill_id: str) -> str | None:
        return self._aliases_reverse.get(skill_id)

    def skills_in_category(self, category_id: str) -> list[str]:
        """Return the identifiers of a category in load order."""
        return list(self._by_category.get(category_id, ()))

    def get_category(self, category_id: str) -> Category | None:
        return self._categories.get(category_id)

    def list_categories(self) -> list[Category]:
        """Return category definitions ordered by ``order`` then id."""
        return sorted(self._categories.values(), key=lambda c: (c.order, c.id))

    def category_lineage(self, category_id: str) -> list[str]:
        """Return *category_id* followed by its ancestors."""
        lineage = [category_id]
        current = self._categories.get(category_id)
        while current is not None and current.parent and current.parent not in lineage:
            lineage.append(current.parent)
            current = self._categories.get(current.parent)
        return lineage

    def is_exclusive(self, category_id: str) -> bool:
        """Whether only one skill of *category_id* may be selected.

        A defined category decides for itself.  An undefined category is
        exclusive if any of its skills is flagged exclusive.
        """
        category = self._categories.get(category_id)
        if category is not None:
            return category.exclusive
        return any(self._skills[s].exclusive for s in self._by_category.get(category_id, ()))

    def rules_for(self, skill_id: str) -> list[Rule]:
        """Return every rule that references *skill_id*, in rule order."""
        return list(self._rules_by_skill.get(self.resolve(skill_id), ()))

    def alternatives_for(self, skill_id: str) -> list[str]:
        """Return skills grouped as alternatives to *skill_id*."""
        result: list[str] = []
        for rule in self.rules_for(skill_id):
            if isinstance(rule, AlternativeGroup):
                result.extend(s for s in rule.skills if s != skill_id and s not in result)
        return result

    def conflicts_with_any(self, skill_id: str, selected: Iterable[str]) -> bool:
        """Whether *skill_id* conflicts with any identifier in *selected*."""
        selected = set(selected)
        for rule in self.rules_for(skill_id):
            if isinstance(rule, Conflicts) and any(
                s in selected for s in rule.skills if s != skill_id
            ):
                return True
        return False

    def list_stacks(self) -> list[SuggestedStack]:
        return list(self._stacks.values())

    def get_stack(self, stack_id: str) -> SuggestedStack:
        """Return a suggested stack.

        Raises:
            KeyError: If no such stack exists.
        """
        return self._stacks[stack_id]


def build_catalog(matrix: MatrixConfig, skills: Sequence[SkillRecord]) -> Catalog:
    """Normalize raw records into a :class:`Catalog`.

    Args:
        matrix: Parsed ``skills-matrix.yaml``.
        skills: One record per skill, in load order.

    Returns:
        The normalized catalog.

    Raises:
        DuplicateIdentifierError: If two records share an identifier.
        CatalogError: If an identifier yields no kebab-case output name.
        DanglingReferenceError: If any rule or stack references an
            identifier that is not in *skills*.  Every dangling
            reference is listed.
    """
    aliases = dict(matrix.skill_aliases)

    def resolve(ref: str) -> str:
        return aliases.get(ref, ref)

    entries: list[SkillEntry] = []
    seen: set[str] = set()
    for record in skills:
        if record.id in seen:
            raise DuplicateIdentifierError(record.id)
        seen.add(record.id)
        entry = _to_entry(record)
        if not _SLUG_RE.match(entry.slug):
            raise CatalogError(
                f"Skill identifier '{record.id}' has no kebab-case output name "
                f"(got '{entry.slug}')"
            )
        entries.append(entry)

    rules: list[Rule] = []
    dangling: list[tuple[str, str]] = []

    def add(rule: Rule, origin: str) -> None:
        for ref in rule.references():
            if ref not in seen:
                dangling.append((origin, ref))
        rules.append(rule)

    # Matrix-level relations.
    relationships = matrix.relationships
    for i, conflict in enumerate(relationships.conflicts):
        add(
            Conflicts(skills=tuple(resolve(s) for s in conflict.skills), reason=conflict.reason),
            f"relationships.conflicts[{i}]",
        )
    for i, discourage in enumerate(relationships.discourages):
        add(
            Discourages(
                skills=tuple(resolve(s) for s in discourage.skills), reason=discourage.reason
            ),
            f"relationships.discourages[{i}]",
        )
    for i, require in enumerate(relationships.requires):
        add(
            Requires(
                skill=resolve(require.skill),
                needs=tuple(resolve(n) for n in require.needs),
                match=MatchMode.ANY if require.needs_any else MatchMode.ALL,
                reason=require.reason,
            ),
            f"relationships.requires[{i}]",
        )
    for i, recommend in enumerate(relationships.recommends):
        add(
            Recommends(
                when=resolve(recommend.when),
                suggest=tuple(resolve(s) for s in recommend.suggest),
                reason=recommend.reason,
            ),
            f"relationships.recommends[{i}]",
        )
    for i, group in enumerate(relationships.alternatives):
        add(
            AlternativeGroup(purpose=group.purpose, skills=tuple(resolve(s) for s in group.skills)),
            f"relationships.alternatives[{i}]",
        )

    # Per-skill relations from metadata.yaml.
    for record in skills:
        meta = record.metadata
        origin = f"skill '{record.id}' metadata"
        for other in meta.conflicts_with:
            add(Conflicts(skills=(record.id, resolve(other)), reason=_METADATA_REASON), origin)
        if meta.requires:
            add(
                Requires(
                    skill=record.id,
                    needs=tuple(resolve(r) for r in meta.requires),
                    match=MatchMode.ALL,
                    reason=_METADATA_REASON,
                ),
                origin,
            )
        if meta.compatible_with:
            add(
                Recommends(
                    when=record.id,
                    suggest=tuple(resolve(c) for c in meta.compatible_with),
                    reason="Compatible with this skill",
                ),
                origin,
            )
        if meta.provides_setup_for:
            add(
                SetupFor(setup=record.id, usage=tuple(resolve(u) for u in meta.provides_setup_for)),
                origin,
            )
        for setup in meta.requires_setup:
            if resolve(setup) not in seen:
                dangling.append((origin, resolve(setup)))

    stacks = []
    for stack in matrix.suggested_stacks:
        resolved = {
            category: {sub: resolve(ref) for sub, ref in subs.items()}
            for category, subs in stack.skills.items()
        }
        skill_ids = tuple(dict.fromkeys(i for subs in resolved.values() for i in subs.values()))
        dangling.extend((f"suggested stack '{stack.id}'", i) for i in skill_ids if i not in seen)
        stacks.append(
            SuggestedStack(
                id=stack.id,
                name=stack.name,
                description=stack.description,
                audience=tuple(stack.audience),
                skills=resolved,
                skill_ids=skill_ids,
                philosophy=stack.philosophy,
            )
        )

    if dangling:
        raise DanglingReferenceError(dict.fromkeys(dangling))

    categories = {
        key: Category(
            id=cfg.id,
            name=cfg.name,
            description=cfg.description,
            parent=cfg.parent,
            exclusive=cfg.exclusive,
            required=cfg.required,
            order=cfg.order,
        )
        for key, cfg in matrix.categories.items()
    }
    rules = _dedupe_symmetric(rules)
    rules.extend(_category_rules(entries, categories))

    catalog = Catalog(
        version=matrix.version,
        skills=entries,
        categories=categories,
        rules=rules,
        aliases=aliases,
        stacks=stacks,
    )
    _logger.debug("Built %r", catalog)
    return catalog


def _to_entry(record: SkillRecord) -> SkillEntry:
    meta = record.metadata
    return SkillEntry(
        id=record.id,
        slug=skill_slug(record.id),
        name=meta.cli_name or display_name(record.id),
        description=meta.cli_description or record.description,
        category=meta.category,
        exclusive=meta.category_exclusive,
        author=meta.author,
        tags=tuple(meta.tags),
        usage_guidance=meta.usage_guidance,
        content=record.content,
        resources=dict(record.resources),
    )


def _dedupe_symmetric(rules: list[Rule]) -> list[Rule]:
    """Drop conflict/discourage rules covered by another rule of the same kind.

    A rule is covered when its members are a strict subset of another
    rule's, or equal to an earlier one's; the first reason wins.
    """
    keys = [
        (rule.kind, frozenset(rule.skills))
        if isinstance(rule, (Conflicts, Discourages))
        else None
        for rule in rules
    ]
    result: list[Rule] = []
    for i, rule in enumerate(rules):
        key = keys[i]
        if key is not None and any(
            other is not None
            and other[0] == key[0]
            and (key[1] < other[1] or (key[1] == other[1] and j < i))
            for j, other in enumerate(keys)
        ):
            continue
        result.append(rule)
    return result


def _category_rules(
    entries: Sequence[SkillEntry], categories: Mapping[str, Category]
) -> list[Rule]:
    members: dict[str, list[str]] = {}
    exclusive_flags: dict[str, bool] = {}
    for entry in entries:
        members.setdefault(entry.category, []).append(entry.id)
        if entry.exclusive:
            exclusive_flags[entry.category] = True
        exclusive_flags.setdefault(entry.category, False)

    rules: list[Rule] = []
    for category_id, skill_ids in members.items():
        category = categories.get(category_id)
        exclusive = category.exclusive if category is not None else exclusive_flags[category_id]
        if exclusive and len(skill_ids) > 1:
            rules.append(ExclusiveCategory(category=category_id, skills=tuple(skill_ids)))
    for category_id, category in categories.items():
        if category.required:
            rules.append(
                RequiredCategory(category=category_id, skills=tuple(members.get(category_id, ())))
            )
    return rules
