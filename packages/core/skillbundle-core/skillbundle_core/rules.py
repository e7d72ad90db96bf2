"""Relationship rules between skills, modelled as data.

Every rule kind is a frozen pydantic model tagged by ``kind``.  The
resolver evaluates a rule list generically through three methods, so a
new rule kind needs no resolver change:

* :meth:`Rule.references` -- identifiers the rule mentions (used for
  dangling-reference checks and the per-skill rule index).
* :meth:`Rule.check` -- findings for a complete selection.
* :meth:`Rule.assess` -- an availability hint for one candidate skill
  given the current selection.

All rules are symmetric where that is meaningful: ``Conflicts`` and
``Discourages`` hold between every pair of their members without a
mirrored entry.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING, Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from skillbundle_core.models import SelectionIssue, Severity

if TYPE_CHECKING:
    from skillbundle_core.catalog import Catalog


class MatchMode(str, Enum):
    """How a :class:`Requires` rule's dependencies are matched."""

    ALL = "all"
    ANY = "any"


class AvailabilityStatus(str, Enum):
    """Availability of one skill given the current selection.

    Listed from highest to lowest precedence after ``SELECTABLE``.
    """

    SELECTABLE = "selectable"
    DISABLED = "disabled"
    DISCOURAGED = "discouraged"
    RECOMMENDED = "recommended"


class Hint(BaseModel):
    """A rule's opinion about one candidate skill."""

    model_config = ConfigDict(frozen=True)

    status: AvailabilityStatus
    reason: str


def _with_reason(message: str, reason: str) -> str:
    return f"{message}: {reason}" if reason else message


class Rule(BaseModel):
    """Base class of every relationship rule."""

    model_config = ConfigDict(frozen=True)

    @abstractmethod
    def references(self) -> tuple[str, ...]:
        """Return every skill identifier this rule mentions."""

    def check(self, selected: Sequence[str], catalog: Catalog) -> list[SelectionIssue]:
        """Return the findings of this rule for a complete selection."""
        return []

    def assess(self, skill_id: str, selected: Sequence[str], catalog: Catalog) -> Hint | None:
        """Return an availability hint for *skill_id*, if the rule has one."""
        return None


class Conflicts(Rule):
    """No two members may be selected together."""

    kind: Literal["conflicts"] = "conflicts"
    skills: tuple[str, ...]
    reason: str = ""

    def references(self) -> tuple[str, ...]:
        return self.skills

    def check(self, selected: Sequence[str], catalog: Catalog) -> list[SelectionIssue]:
        present = [s for s in selected if s in self.skills]
        if len(present) < 2:
            return []
        return [
            SelectionIssue(
                kind="conflict",
                severity=Severity.ERROR,
                message=_with_reason(f"{' conflicts with '.join(present)}", self.reason),
                skills=tuple(present),
            )
        ]

    def assess(self, skill_id: str, selected: Sequence[str], catalog: Catalog) -> Hint | None:
        if skill_id not in self.skills:
            return None
        others = [s for s in selected if s in self.skills and s != skill_id]
        if not others:
            return None
        return Hint(
            status=AvailabilityStatus.DISABLED,
            reason=f"{self.reason or 'Conflicting skills'} (conflicts with {others[0]})",
        )


class Discourages(Rule):
    """Members may coexist but doing so is not recommended."""

    kind: Literal["discourages"] = "discourages"
    skills: tuple[str, ...]
    reason: str = ""

    def references(self) -> tuple[str, ...]:
        return self.skills

    def check(self, selected: Sequence[str], catalog: Catalog) -> list[SelectionIssue]:
        present = [s for s in selected if s in self.skills]
        if len(present) < 2:
            return []
        return [
            SelectionIssue(
                kind="discouraged",
                severity=Severity.WARNING,
                message=_with_reason(f"{' with '.join(present)} is discouraged", self.reason),
                skills=tuple(present),
            )
        ]

    def assess(self, skill_id: str, selected: Sequence[str], catalog: Catalog) -> Hint | None:
        if skill_id not in self.skills:
            return None
        if not any(s in self.skills and s != skill_id for s in selected):
            return None
        return Hint(status=AvailabilityStatus.DISCOURAGED, reason=self.reason or "Not recommended")


class Requires(Rule):
    """Selecting ``skill`` mandates all (or any) of ``needs``."""

    kind: Literal["requires"] = "requires"
    skill: str
    needs: tuple[str, ...]
    match: MatchMode = MatchMode.ALL
    reason: str = ""

    def references(self) -> tuple[str, ...]:
        return (self.skill, *self.needs)

    def check(self, selected: Sequence[str], catalog: Catalog) -> list[SelectionIssue]:
        if self.skill not in selected:
            return []
        if self.match is MatchMode.ANY:
            if any(n in selected for n in self.needs):
                return []
            missing = list(self.needs)
            wanted = " or ".join(missing)
        else:
            missing = [n for n in self.needs if n not in selected]
            if not missing:
                return []
            wanted = ", ".join(missing)
        return [
            SelectionIssue(
                kind="missing_requirement",
                severity=Severity.ERROR,
                message=_with_reason(f"{self.skill} requires {wanted}", self.reason),
                skills=(self.skill, *missing),
            )
        ]


class Recommends(Rule):
    """Advisory: when ``when`` is selected, highlight ``suggest``."""

    kind: Literal["recommends"] = "recommends"
    when: str
    suggest: tuple[str, ...]
    reason: str = ""

    def references(self) -> tuple[str, ...]:
        return (self.when, *self.suggest)

    def check(self, selected: Sequence[str], catalog: Catalog) -> list[SelectionIssue]:
        if self.when not in selected:
            return []
        issues = []
        for suggested in self.suggest:
            if suggested in selected or catalog.conflicts_with_any(suggested, selected):
                continue
            issues.append(
                SelectionIssue(
                    kind="missing_recommendation",
                    severity=Severity.WARNING,
                    message=_with_reason(f"{self.when} recommends {suggested}", self.reason),
                    skills=(self.when, suggested),
                )
            )
        return issues

    def assess(self, skill_id: str, selected: Sequence[str], catalog: Catalog) -> Hint | None:
        if self.when not in selected or skill_id not in self.suggest or skill_id in selected:
            return None
        return Hint(
            status=AvailabilityStatus.RECOMMENDED,
            reason=f"{self.reason or 'Recommended'} (recommended by {self.when})",
        )


class AlternativeGroup(Rule):
    """Informational grouping of interchangeable skills."""

    kind: Literal["alternatives"] = "alternatives"
    purpose: str
    skills: tuple[str, ...]

    def references(self) -> tuple[str, ...]:
        return self.skills


class ExclusiveCategory(Rule):
    """At most one member of ``category`` may be selected."""

    kind: Literal["exclusive_category"] = "exclusive_category"
    category: str
    skills: tuple[str, ...]

    def references(self) -> tuple[str, ...]:
        return self.skills

    def check(self, selected: Sequence[str], catalog: Catalog) -> list[SelectionIssue]:
        present = [s for s in selected if s in self.skills]
        if len(present) <= 1:
            return []
        return [
            SelectionIssue(
                kind="category_exclusive",
                severity=Severity.ERROR,
                message=(
                    f"Category '{self.category}' only allows one selection, "
                    f"but multiple selected: {', '.join(present)}"
                ),
                skills=tuple(present),
            )
        ]

    def assess(self, skill_id: str, selected: Sequence[str], catalog: Catalog) -> Hint | None:
        if skill_id not in self.skills:
            return None
        others = [s for s in selected if s in self.skills and s != skill_id]
        if not others:
            return None
        return Hint(
            status=AvailabilityStatus.DISABLED,
            reason=(
                f"Category '{self.category}' allows one selection "
                f"({others[0]} already selected)"
            ),
        )


class RequiredCategory(Rule):
    """At least one member of ``category`` must be selected."""

    kind: Literal["required_category"] = "required_category"
    category: str
    skills: tuple[str, ...]

    def references(self) -> tuple[str, ...]:
        return self.skills

    def check(self, selected: Sequence[str], catalog: Catalog) -> list[SelectionIssue]:
        if any(s in self.skills for s in selected):
            return []
        options = f" (one of: {', '.join(self.skills)})" if self.skills else ""
        return [
            SelectionIssue(
                kind="category_required",
                severity=Severity.ERROR,
                message=f"Category '{self.category}' requires a selection{options}",
                skills=self.skills,
            )
        ]


class SetupFor(Rule):
    """``setup`` configures ``usage`` skills; alone it is probably a mistake."""

    kind: Literal["setup_for"] = "setup_for"
    setup: str
    usage: tuple[str, ...]

    def references(self) -> tuple[str, ...]:
        return (self.setup, *self.usage)

    def check(self, selected: Sequence[str], catalog: Catalog) -> list[SelectionIssue]:
        if self.setup not in selected or any(u in selected for u in self.usage):
            return []
        return [
            SelectionIssue(
                kind="unused_setup",
                severity=Severity.WARNING,
                message=(
                    f"Setup skill {self.setup} selected but no corresponding usage skills: "
                    f"{', '.join(self.usage)}"
                ),
                skills=(self.setup, *self.usage),
            )
        ]


RelationshipRule = Annotated[
    Union[
        Conflicts,
        Discourages,
        Requires,
        Recommends,
        AlternativeGroup,
        ExclusiveCategory,
        RequiredCategory,
        SetupFor,
    ],
    Field(discriminator="kind"),
]
