"""Tests for compute_availability and validate_selection."""

import itertools

import pytest

from skillbundle_core import (
    AvailabilityStatus,
    Catalog,
    ExclusiveCategory,
    MatchMode,
    Requires,
    Selection,
    Severity,
    ValidatedSelection,
    build_catalog,
    compute_availability,
    resolve_alias,
    stack_selection,
    validate_selection,
)
from skillbundle_core.records import MatrixConfig, SkillMetadataConfig, SkillRecord

_SKILLS = {
    "react": "framework",
    "vue": "framework",
    "scss": "styling",
    "tailwind": "styling",
    "zustand": "state",
    "mobx": "state",
    "vitest": "testing",
}


def _catalog(relationships: dict | None = None, **matrix) -> Catalog:
    records = [
        SkillRecord(
            id=skill_id,
            description=f"{skill_id} skill",
            metadata=SkillMetadataConfig(category=category, category_exclusive=False),
        )
        for skill_id, category in _SKILLS.items()
    ]
    matrix.setdefault(
        "categories",
        {
            "framework": {"id": "framework", "name": "Framework"},
            "styling": {"id": "styling", "name": "Styling"},
            "state": {"id": "state", "name": "State", "exclusive": False},
        },
    )
    if relationships is None:
        relationships = {
            "conflicts": [{"skills": ["scss", "tailwind"], "reason": "Pick one styling approach"}],
            "requires": [{"skill": "zustand", "needs": ["react"], "needs_any": True}],
            "recommends": [
                {"when": "react", "suggest": ["zustand", "vitest"], "reason": "Works well"}
            ],
        }
    return build_catalog(
        MatrixConfig(version="1.0.0", relationships=relationships, **matrix), records
    )


class TestValidateSelection:
    def test_conflict_and_exclusivity_both_reported(self):
        result = validate_selection(_catalog(), Selection(["scss", "tailwind"]))
        assert not result.ok
        assert [e.kind for e in result.errors] == ["conflict", "category_exclusive"]
        assert result.validated is None

    def test_single_styling_choice_accepted(self):
        result = validate_selection(_catalog(), Selection(["scss"]))
        assert result.ok
        assert isinstance(result.selection, ValidatedSelection)
        assert result.selection.skill_ids == ("scss",)

    def test_requires_any_rejected_alone(self):
        result = validate_selection(_catalog(), Selection(["zustand"]))
        assert not result.ok
        assert len(result.errors) == 1
        assert result.errors[0].kind == "missing_requirement"
        assert "requires react" in result.errors[0].message
        assert result.errors[0].skills == ("zustand", "react")

    def test_requires_any_satisfied(self):
        result = validate_selection(_catalog(), Selection(["zustand", "react"]))
        assert result.ok

    def test_requires_all_lists_missing(self):
        catalog = _catalog({"requires": [{"skill": "vitest", "needs": ["react", "zustand"]}]})
        result = validate_selection(catalog, ["vitest", "react"])
        assert [str(e) for e in result.errors] == ["vitest requires zustand"]

    def test_requires_any_message_lists_options(self):
        catalog = _catalog(
            {"requires": [{"skill": "vitest", "needs": ["react", "vue"], "needs_any": True}]}
        )
        result = validate_selection(catalog, ["vitest"])
        assert str(result.errors[0]) == "vitest requires react or vue"

    def test_all_failures_collected(self):
        result = validate_selection(_catalog(), ["scss", "tailwind", "zustand", "svelte"])
        kinds = sorted(e.kind for e in result.errors)
        assert kinds == ["category_exclusive", "conflict", "missing_requirement", "unknown_skill"]

    def test_unknown_skill_is_failure(self):
        result = validate_selection(_catalog(), ["svelte"])
        assert [str(e) for e in result.errors] == ["Unknown skill 'svelte'"]

    def test_required_category(self):
        catalog = _catalog(
            categories={"framework": {"id": "framework", "name": "Framework", "required": True}}
        )
        result = validate_selection(catalog, ["scss"])
        assert [e.kind for e in result.errors] == ["category_required"]
        assert "react, vue" in result.errors[0].message

    def test_missing_recommendation_warning(self):
        result = validate_selection(_catalog(), ["react", "zustand"])
        assert result.ok
        assert [w.kind for w in result.warnings] == ["missing_recommendation"]
        assert result.warnings[0].severity is Severity.WARNING
        assert "react recommends vitest" in result.warnings[0].message
        assert result.selection.warnings == result.warnings

    def test_recommendation_skipped_when_conflicting(self):
        catalog = _catalog(
            {
                "conflicts": [{"skills": ["scss", "tailwind"]}],
                "recommends": [{"when": "react", "suggest": ["tailwind"]}],
            }
        )
        result = validate_selection(catalog, ["react", "scss"])
        assert result.warnings == ()

    def test_discouraged_is_warning(self):
        catalog = _catalog({"discourages": [{"skills": ["zustand", "mobx"], "reason": "Pick one"}]})
        result = validate_selection(catalog, ["zustand", "mobx"])
        assert result.ok
        assert [w.kind for w in result.warnings] == ["discouraged"]

    def test_unused_setup_warning(self):
        records = [
            SkillRecord(
                id="setup-env",
                description="Env setup",
                metadata=SkillMetadataConfig(category="setup", provides_setup_for=["react"]),
            ),
            *[
                SkillRecord(id=s, description=s, metadata=SkillMetadataConfig(category=c))
                for s, c in _SKILLS.items()
            ],
        ]
        catalog = build_catalog(MatrixConfig(version="1.0.0"), records)
        result = validate_selection(catalog, ["setup-env"])
        assert [w.kind for w in result.warnings] == ["unused_setup"]
        assert validate_selection(catalog, ["setup-env", "react"]).warnings == ()

    def test_aliases_resolved(self):
        catalog = _catalog(skill_aliases={"r": "react"})
        result = validate_selection(catalog, ["r", "zustand"])
        assert result.ok
        assert result.selection.skill_ids == ("react", "zustand")
        assert resolve_alias(catalog, "r") == "react"

    def test_selection_not_mutated(self):
        selection = Selection(["scss", "tailwind"])
        validate_selection(_catalog(), selection)
        assert selection.skill_ids == ("scss", "tailwind")

    def test_validity_recomputed_each_call(self):
        catalog = _catalog()
        selection = Selection(["zustand"])
        assert not validate_selection(catalog, selection).ok
        assert validate_selection(catalog, selection.with_skill("react")).ok


class TestSelectionProperties:
    def test_conflict_symmetry(self):
        catalog = _catalog()
        for order in (["scss", "tailwind"], ["tailwind", "scss"]):
            result = validate_selection(catalog, order)
            assert "conflict" in {e.kind for e in result.errors}

    def test_requires_soundness_and_exclusivity(self):
        catalog = _catalog(
            {
                "conflicts": [{"skills": ["scss", "tailwind"]}],
                "requires": [
                    {"skill": "zustand", "needs": ["react"]},
                    {"skill": "vitest", "needs": ["react", "zustand"]},
                ],
            }
        )
        requires = [r for r in catalog.rules if isinstance(r, Requires)]
        exclusive = [r for r in catalog.rules if isinstance(r, ExclusiveCategory)]
        assert all(r.match is MatchMode.ALL for r in requires)
        ids = list(_SKILLS)
        accepted = 0
        for size in range(len(ids) + 1):
            for combo in itertools.combinations(ids, size):
                if not validate_selection(catalog, combo).ok:
                    continue
                accepted += 1
                chosen = set(combo)
                for rule in requires:
                    if rule.skill in chosen:
                        assert set(rule.needs) <= chosen
                for rule in exclusive:
                    assert len(chosen & set(rule.skills)) <= 1
        assert accepted > 0


class TestComputeAvailability:
    def test_conflict_partner_disabled(self):
        report = compute_availability(_catalog(), Selection(["scss"]))
        tailwind = report["tailwind"]
        assert tailwind.status is AvailabilityStatus.DISABLED
        assert tailwind.reason == "Pick one styling approach (conflicts with scss)"
        assert report["scss"].selected is True
        assert report["scss"].status is AvailabilityStatus.SELECTABLE

    def test_exclusive_category_disabled(self):
        report = compute_availability(_catalog(), ["react"])
        assert report["vue"].status is AvailabilityStatus.DISABLED
        assert "react already selected" in report["vue"].reason

    def test_recommended(self):
        report = compute_availability(_catalog(), ["react"])
        assert report["zustand"].status is AvailabilityStatus.RECOMMENDED
        assert report["zustand"].reason == "Works well (recommended by react)"
        assert report["vitest"].status is AvailabilityStatus.RECOMMENDED
        assert report["mobx"].status is AvailabilityStatus.SELECTABLE

    def test_disabled_beats_recommended(self):
        catalog = _catalog({"recommends": [{"when": "react", "suggest": ["vue"]}]})
        report = compute_availability(catalog, ["react"])
        assert report["vue"].status is AvailabilityStatus.DISABLED

    def test_discouraged_beats_recommended(self):
        catalog = _catalog(
            {
                "discourages": [{"skills": ["react", "mobx"], "reason": "Prefer zustand"}],
                "recommends": [{"when": "react", "suggest": ["mobx"]}],
            }
        )
        report = compute_availability(catalog, ["react"])
        assert report["mobx"].status is AvailabilityStatus.DISCOURAGED
        assert report["mobx"].reason == "Prefer zustand"

    def test_selected_recommendation_not_recommended(self):
        report = compute_availability(_catalog(), ["react", "zustand"])
        assert report["zustand"].status is AvailabilityStatus.SELECTABLE

    def test_empty_selection_everything_selectable(self):
        report = compute_availability(_catalog(), Selection())
        assert len(report) == len(_SKILLS)
        assert all(e.status is AvailabilityStatus.SELECTABLE for e in report)

    def test_for_category_in_catalog_order(self):
        report = compute_availability(_catalog(), [])
        assert [e.skill_id for e in report.for_category("styling")] == ["scss", "tailwind"]

    def test_alternatives_reported(self):
        catalog = _catalog({"alternatives": [{"purpose": "State", "skills": ["zustand", "mobx"]}]})
        report = compute_availability(catalog, [])
        assert report["mobx"].alternatives == ("zustand",)

    def test_with_status(self):
        report = compute_availability(_catalog(), ["scss"])
        assert [e.skill_id for e in report.with_status(AvailabilityStatus.DISABLED)] == ["tailwind"]


class TestStackSelection:
    def test_stack_selection(self):
        catalog = _catalog(
            suggested_stacks=[
                {
                    "id": "react-basic",
                    "name": "React basic",
                    "skills": {"frontend": {"framework": "react", "state": "zustand"}},
                }
            ]
        )
        selection = stack_selection(catalog, "react-basic")
        assert selection == Selection(["react", "zustand"])
        assert validate_selection(catalog, selection).ok

    def test_unknown_stack(self):
        with pytest.raises(KeyError):
            stack_selection(_catalog(), "missing")


class TestSelection:
    def test_deduplicates_preserving_order(self):
        assert Selection(["b", "a", "b"]).skill_ids == ("b", "a")

    def test_string_rejected(self):
        with pytest.raises(TypeError):
            Selection("react")

    def test_with_and_without_return_new_values(self):
        selection = Selection(["a"])
        added = selection.with_skill("b")
        assert added.skill_ids == ("a", "b")
        assert added.without_skill("a").skill_ids == ("b",)
        assert selection.skill_ids == ("a",)
