"""Exception hierarchy for SkillBundle.

All exceptions raised by :mod:`skillbundle_core` (and by the source and
writer collaborators that follow the library conventions) inherit from
:class:`SkillBundleError`, allowing callers to catch the entire family
with a single ``except`` clause.

Only *fatal* conditions are exceptions:

* :class:`CatalogError` -- malformed catalog input (duplicate or
  dangling identifiers).  Raised before any resolution is attempted.
* :class:`MissingProfileError` -- an agent profile references a
  template, partial, or preloaded skill that does not exist.
* :class:`UnvalidatedBundleError` -- a bundle that has not passed
  schema validation was handed to the catalog publisher.

Selection violations and schema-validation findings are *values*
(:class:`~skillbundle_core.SelectionIssue`,
:class:`~skillbundle_core.ValidationIssue`), never exceptions.
"""

from __future__ import annotations

from collections.abc import Iterable


class SkillBundleError(Exception):
    """Base exception for all SkillBundle library errors."""


class SourceError(SkillBundleError):
    """A source tree or configuration file is malformed."""


class CatalogError(SkillBundleError, ValueError):
    """The catalog input is inconsistent and no model can be built."""


class DuplicateIdentifierError(CatalogError):
    """Two skill records share the same identifier.

    Attributes:
        skill_id: The identifier that appears more than once.
    """

    def __init__(self, skill_id: str) -> None:
        super().__init__(f"Duplicate skill identifier '{skill_id}'")
        self.skill_id = skill_id


class DanglingReferenceError(CatalogError):
    """One or more rules reference identifiers absent from the catalog.

    Every dangling reference is reported, not just the first one.

    Attributes:
        references: ``(origin, skill_id)`` pairs where *origin*
            describes the rule or record holding the reference.
    """

    def __init__(self, references: Iterable[tuple[str, str]]) -> None:
        self.references = tuple(references)
        lines = [f"  - {origin}: '{skill_id}'" for origin, skill_id in self.references]
        super().__init__("Unknown skill references:\n" + "\n".join(lines))


class MissingProfileError(SkillBundleError, LookupError):
    """An agent profile references templates or skills that do not exist.

    This is fatal for the bundle being compiled: it indicates a broken
    profile definition rather than an optional gap.

    Attributes:
        profile: Name of the agent profile.
        missing: Every missing identifier, in profile order.

    Example::

        try:
            compile_agent(catalog, selection, profile, templates)
        except MissingProfileError as exc:
            print(exc.missing)
    """

    def __init__(self, profile: str, missing: Iterable[str], *, kind: str = "template") -> None:
        self.profile = profile
        self.missing = tuple(missing)
        self.kind = kind
        names = ", ".join(f"'{m}'" for m in self.missing)
        super().__init__(f"Agent profile '{profile}' references missing {kind}(s): {names}")


class UnvalidatedBundleError(SkillBundleError):
    """A bundle that has not passed schema validation cannot be published."""


class TemplateNotFoundError(SkillBundleError, LookupError):
    """A requested template or partial does not exist in a template source.

    Example::

        try:
            body = await source.get_template("workflow")
        except TemplateNotFoundError:
            print("Template not found")
    """
