"""Immutable value types shared by every stage of the pipeline.

Every type here is either a frozen pydantic model or a read-only class.
Stages hand these values to each other; none of them is mutated after
creation.  "Changing" a :class:`Selection` returns a new one.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from enum import Enum
from types import MappingProxyType
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer

from skillbundle_core.records import AgentProfileConfig

_AUTHOR_SUFFIX_RE = re.compile(r"\s*\(@[\w.-]+\)$")
_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")


def _freeze(value: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(value))


#: Read-only ``path -> text`` mapping.  Assigning to it raises ``TypeError``.
TextFiles = Annotated[
    Mapping[str, str],
    AfterValidator(_freeze),
    PlainSerializer(lambda value: dict(value), return_type=dict[str, str]),
]


class Severity(str, Enum):
    """Severity of a selection or validation finding."""

    ERROR = "error"
    WARNING = "warning"


def skill_slug(skill_id: str) -> str:
    """Return the kebab-case output name for a skill identifier.

    ``"frontend/react (@vince)"`` becomes ``"react"``, ``"Next.js"`` becomes
    ``"next-js"`` and ``"c++"`` becomes ``"c"``.  Computed once when the
    catalog is built; an empty result means the id has no usable name.
    """
    last = _AUTHOR_SUFFIX_RE.sub("", skill_id.rsplit("/", 1)[-1]).strip()
    return _NON_SLUG_RE.sub("-", last.lower()).strip("-")


def display_name(skill_id: str) -> str:
    """Derive a display name: ``"state-zustand (@vince)"`` -> ``"State Zustand"``."""
    return " ".join(word.capitalize() for word in skill_slug(skill_id).split("-") if word)


class SkillEntry(BaseModel):
    """One reusable content unit of the catalog.

    ``id`` is the canonical identifier; ``slug`` is derived from it at
    load time and used for output paths.  Neither is re-derived later.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    slug: str
    name: str
    description: str = ""
    category: str
    exclusive: bool = True
    author: str = ""
    tags: tuple[str, ...] = ()
    usage_guidance: str | None = None
    content: str = ""
    resources: TextFiles = Field(default_factory=dict, validate_default=True)


class Category(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    parent: str | None = None
    exclusive: bool = True
    required: bool = False
    order: int = 0


class SuggestedStack(BaseModel):
    """A pre-configured selection with every alias resolved."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    audience: tuple[str, ...] = ()
    skills: dict[str, dict[str, str]] = Field(default_factory=dict)
    skill_ids: tuple[str, ...] = ()
    philosophy: str = ""


class SelectionIssue(BaseModel):
    """One failed (or merely advisory) rule of a selection.

    Attributes:
        kind: Machine-readable rule kind, e.g. ``"conflict"`` or
            ``"missing_requirement"``.
        severity: :attr:`Severity.ERROR` blocks compilation,
            :attr:`Severity.WARNING` does not.
        message: Human-readable explanation naming the skills involved.
        skills: Identifiers involved in the finding.
    """

    model_config = ConfigDict(frozen=True)

    kind: str
    severity: Severity
    message: str
    skills: tuple[str, ...] = ()

    def __str__(self) -> str:
        return self.message


class Selection:
    """An ordered, de-duplicated set of skill identifiers.

    Order is the caller's selection order.  It does not influence
    resolution but is preserved so that compiled output is
    deterministic.

    Example::

        selection = Selection(["react", "zustand"])
        selection = selection.with_skill("scss")
        "react" in selection  # True
    """

    __slots__ = ("_ids",)

    def __init__(self, skill_ids: Iterable[str] = ()) -> None:
        if isinstance(skill_ids, str):
            raise TypeError("skill_ids must be an iterable of identifiers, not a string")
        self._ids: tuple[str, ...] = tuple(dict.fromkeys(skill_ids))

    @property
    def skill_ids(self) -> tuple[str, ...]:
        return self._ids

    def with_skill(self, skill_id: str) -> Selection:
        """Return a new selection with *skill_id* appended."""
        return Selection((*self._ids, skill_id))

    def without_skill(self, skill_id: str) -> Selection:
        """Return a new selection without *skill_id*."""
        return Selection(s for s in self._ids if s != skill_id)

    def __contains__(self, skill_id: object) -> bool:
        return skill_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Selection):
            return NotImplemented
        return self._ids == other._ids

    def __hash__(self) -> int:
        return hash(self._ids)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self._ids)!r})"


class ValidatedSelection(Selection):
    """A selection that passed :func:`~skillbundle_core.validate_selection`.

    Only the resolver creates these.  The template compiler refuses any
    other :class:`Selection`.  Non-blocking warnings found during
    validation travel with the value.
    """

    __slots__ = ("_warnings",)

    def __init__(self, skill_ids: Iterable[str], warnings: Iterable[SelectionIssue] = ()) -> None:
        super().__init__(skill_ids)
        self._warnings: tuple[SelectionIssue, ...] = tuple(warnings)

    @property
    def warnings(self) -> tuple[SelectionIssue, ...]:
        return self._warnings


class AgentProfile(BaseModel):
    """A named target agent: base template, ordered partials, preloads.

    Attributes:
        name: Agent name; also the compiled document's file stem.
        template: Base template identifier.
        partials: Partials placed between the base and the skills.
        ending_partials: Partials placed after the skills.
        preloaded_skills: Skills always included for this agent,
            regardless of the user's selection.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    template: str = "agent"
    partials: tuple[str, ...] = ()
    ending_partials: tuple[str, ...] = ()
    preloaded_skills: tuple[str, ...] = ()
    tools: tuple[str, ...] = ()
    disallowed_tools: tuple[str, ...] = ()
    model: str | None = None
    permission_mode: str | None = None

    @classmethod
    def from_config(cls, name: str, config: AgentProfileConfig) -> AgentProfile:
        """Build a profile from its ``agents.yaml`` entry."""
        return cls(name=name, **config.model_dump())

    @property
    def template_ids(self) -> tuple[str, ...]:
        """Every template identifier the profile needs, in document order."""
        return tuple(dict.fromkeys((self.template, *self.partials, *self.ending_partials)))


class CompiledDocument(BaseModel):
    """One output artifact of the template compiler.

    Attributes:
        path: Relative path inside the bundle, e.g. ``agents/x.md``.
        content: Final rendered text.
        contributors: Skill identifiers whose content contributed.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    content: str
    contributors: tuple[str, ...] = ()
