"""Selection resolver: availability hints and selection validation.

Both operations are pure functions of ``(catalog, selection)``.  The
selection is always an explicit argument; nothing here keeps track of
an "active" selection, and validity is recomputed on every call.

Example::

    from skillbundle_core import Selection, validate_selection

    result = validate_selection(catalog, Selection(["zustand"]))
    if not result.ok:
        for failure in result.errors:
            print(failure)          # zustand requires react
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from pydantic import BaseModel, ConfigDict

from skillbundle_core.catalog import Catalog
from skillbundle_core.models import Selection, SelectionIssue, Severity, ValidatedSelection
from skillbundle_core.rules import AvailabilityStatus, Hint

_logger = logging.getLogger(__name__)

_PRECEDENCE = {
    AvailabilityStatus.DISABLED: 0,
    AvailabilityStatus.DISCOURAGED: 1,
    AvailabilityStatus.RECOMMENDED: 2,
}


class SkillAvailability(BaseModel):
    """Availability of one skill given the current selection.

    ``reason`` is empty when ``status`` is
    :attr:`~skillbundle_core.AvailabilityStatus.SELECTABLE`.
    """

    model_config = ConfigDict(frozen=True)

    skill_id: str
    category: str
    status: AvailabilityStatus
    reason: str = ""
    selected: bool = False
    alternatives: tuple[str, ...] = ()


class AvailabilityReport:
    """Read-only availability of every catalog entry, in catalog order."""

    def __init__(self, entries: Iterable[SkillAvailability]) -> None:
        self._entries = {e.skill_id: e for e in entries}

    def __iter__(self) -> Iterator[SkillAvailability]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, skill_id: str) -> SkillAvailability:
        return self._entries[skill_id]

    def for_category(self, category_id: str) -> list[SkillAvailability]:
        """Return the options of one category in catalog order."""
        return [e for e in self._entries.values() if e.category == category_id]

    def with_status(self, status: AvailabilityStatus) -> list[SkillAvailability]:
        return [e for e in self._entries.values() if e.status is status]


class SelectionResult(BaseModel):
    """Outcome of :func:`validate_selection`.

    Attributes:
        selection: A :class:`~skillbundle_core.ValidatedSelection` when
            there are no errors, otherwise the plain resolved
            :class:`~skillbundle_core.Selection`.
        errors: Every blocking failure, in rule order.
        warnings: Every advisory finding, in rule order.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    selection: Selection
    errors: tuple[SelectionIssue, ...] = ()
    warnings: tuple[SelectionIssue, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def validated(self) -> ValidatedSelection | None:
        """The validated selection, or ``None`` if validation failed."""
        if isinstance(self.selection, ValidatedSelection):
            return self.selection
        return None


def resolve_alias(catalog: Catalog, alias_or_id: str) -> str:
    """Return the canonical identifier for an alias or identifier."""
    return catalog.resolve(alias_or_id)


def _resolve_selection(catalog: Catalog, selection: Selection | Iterable[str]) -> Selection:
    if not isinstance(selection, Selection):
        selection = Selection(selection)
    return Selection(catalog.resolve(s) for s in selection)


def compute_availability(
    catalog: Catalog, selection: Selection | Iterable[str]
) -> AvailabilityReport:
    """Compute the availability of every catalog entry.

    An entry is disabled when a conflicting skill is selected or when
    its exclusive category is already satisfied by a different member;
    discouraged when a discouraged partner is selected; recommended when
    a selected skill suggests it.  Disabled wins over discouraged, which
    wins over recommended.

    Args:
        catalog: The catalog to evaluate against.
        selection: The current selection (aliases allowed).

    Returns:
        One :class:`SkillAvailability` per catalog entry.
    """
    selected = _resolve_selection(catalog, selection).skill_ids
    entries = []
    for skill in catalog.list_skills():
        hints: list[Hint] = []
        for rule in catalog.rules_for(skill.id):
            hint = rule.assess(skill.id, selected, catalog)
            if hint is not None:
                hints.append(hint)
        # min() keeps the first hint among equals, i.e. rule order.
        best = min(hints, key=lambda h: _PRECEDENCE[h.status], default=None)
        entries.append(
            SkillAvailability(
                skill_id=skill.id,
                category=skill.category,
                status=best.status if best else AvailabilityStatus.SELECTABLE,
                reason=best.reason if best else "",
                selected=skill.id in selected,
                alternatives=tuple(catalog.alternatives_for(skill.id)),
            )
        )
    return AvailabilityReport(entries)


def validate_selection(catalog: Catalog, selection: Selection | Iterable[str]) -> SelectionResult:
    """Check a selection against every rule of the catalog.

    All failures are collected; evaluation never stops at the first
    one.  Unknown identifiers are failures of kind ``unknown_skill``.

    Args:
        catalog: The catalog to evaluate against.
        selection: The selection to check (aliases allowed).

    Returns:
        A :class:`SelectionResult`.  ``result.selection`` is a
        :class:`~skillbundle_core.ValidatedSelection` only when
        ``result.ok`` is true.
    """
    resolved = _resolve_selection(catalog, selection)
    issues: list[SelectionIssue] = []

    known = []
    for skill_id in resolved:
        if skill_id in catalog:
            known.append(skill_id)
        else:
            issues.append(
                SelectionIssue(
                    kind="unknown_skill",
                    severity=Severity.ERROR,
                    message=f"Unknown skill '{skill_id}'",
                    skills=(skill_id,),
                )
            )

    for rule in catalog.rules:
        issues.extend(rule.check(known, catalog))

    errors = tuple(i for i in issues if i.severity is Severity.ERROR)
    warnings = tuple(i for i in issues if i.severity is Severity.WARNING)
    _logger.debug(
        "Validated %d skill(s): %d error(s), %d warning(s)",
        len(resolved),
        len(errors),
        len(warnings),
    )
    if errors:
        return SelectionResult(selection=resolved, errors=errors, warnings=warnings)
    return SelectionResult(
        selection=ValidatedSelection(resolved, warnings), errors=(), warnings=warnings
    )


def stack_selection(catalog: Catalog, stack_id: str) -> Selection:
    """Return the selection of a suggested stack.

    Raises:
        KeyError: If *stack_id* is not a suggested stack of *catalog*.
    """
    return Selection(catalog.get_stack(stack_id).skill_ids)
