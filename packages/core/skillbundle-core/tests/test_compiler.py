"""Tests for the template compiler."""

import json
import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from skillbundle_core import (
    AgentProfile,
    Catalog,
    MissingProfileError,
    Selection,
    SkillRouting,
    build_catalog,
    compile_agent,
    compile_bundle,
    content_hash,
    split_frontmatter,
    validate_selection,
)
from skillbundle_core.records import MatrixConfig, SkillMetadataConfig, SkillRecord

_TEMPLATES = {
    "agent": "# {{ name }}\n\n{{ description }}\n",
    "core-principles": "Core principles for {{ name }}.",
    "workflow": "Workflow steps.",
    "reminders": "Remember the rules.",
}


def _record(skill_id: str, category: str, **metadata) -> SkillRecord:
    resources = metadata.pop("resources", {})
    return SkillRecord(
        id=skill_id,
        description=f"{skill_id} skill",
        content=f"# {skill_id}\n\nUse {skill_id}.\n",
        metadata=SkillMetadataConfig(category=category, category_exclusive=False, **metadata),
        resources=resources,
    )


def _catalog(*extra: SkillRecord) -> Catalog:
    matrix = MatrixConfig(
        version="1.0.0",
        categories={
            "frontend": {"id": "frontend", "name": "Frontend", "exclusive": False},
            "framework": {
                "id": "framework",
                "name": "Framework",
                "parent": "frontend",
                "exclusive": False,
            },
            "styling": {
                "id": "styling",
                "name": "Styling",
                "parent": "frontend",
                "exclusive": False,
            },
        },
    )
    records = [
        _record("react", "framework"),
        _record("zustand", "state", usage_guidance="Use for client state"),
        _record("scss", "styling"),
        *extra,
    ]
    return build_catalog(matrix, records)


def _validated(catalog: Catalog, skill_ids):
    result = validate_selection(catalog, skill_ids)
    assert result.ok, result.errors
    return result.selection


def _profile(**overrides) -> AgentProfile:
    data = {
        "name": "frontend-developer",
        "description": "Builds UIs",
        "partials": ("core-principles", "workflow"),
        "ending_partials": ("reminders",),
        "preloaded_skills": ("react",),
    }
    data.update(overrides)
    return AgentProfile(**data)


class TestCompileAgent:
    def test_document_layout(self):
        catalog = _catalog()
        compilation = compile_agent(catalog, _validated(catalog, ["react"]), _profile(), _TEMPLATES)
        assert compilation.document.path == "agents/frontend-developer.md"
        assert compilation.document.content == (
            "---\n"
            "name: frontend-developer\n"
            "description: Builds UIs\n"
            "skills: react\n"
            "---\n"
            "\n"
            "# frontend-developer\n\nBuilds UIs"
            "\n\n---\n\n"
            "Core principles for frontend-developer."
            "\n\n---\n\n"
            "Workflow steps."
            "\n\n---\n\n"
            "# react\n\nUse react."
            "\n\n---\n\n"
            "Remember the rules.\n"
        )
        assert compilation.document.contributors == ("react",)
        assert compilation.warnings == ()

    def test_missing_templates_all_named(self):
        catalog = _catalog()
        templates = {"agent": _TEMPLATES["agent"], "core-principles": "x"}
        with pytest.raises(MissingProfileError) as exc_info:
            compile_agent(catalog, _validated(catalog, []), _profile(), templates)
        assert exc_info.value.profile == "frontend-developer"
        assert exc_info.value.missing == ("workflow", "reminders")

    def test_unknown_preloaded_skill(self):
        catalog = _catalog()
        profile = _profile(preloaded_skills=("svelte",))
        with pytest.raises(MissingProfileError) as exc_info:
            compile_agent(catalog, _validated(catalog, []), profile, _TEMPLATES)
        assert exc_info.value.kind == "skill"
        assert exc_info.value.missing == ("svelte",)

    def test_plain_selection_refused(self):
        with pytest.raises(TypeError, match="ValidatedSelection"):
            compile_agent(_catalog(), Selection(["react"]), _profile(), _TEMPLATES)

    def test_dynamic_skills_listed_in_index(self):
        catalog = _catalog()
        compilation = compile_agent(
            catalog, _validated(catalog, ["react", "zustand"]), _profile(), _TEMPLATES
        )
        content = compilation.document.content
        assert "## Available Skills\n\n- `zustand`: Use for client state" in content
        assert content.index("Use react.") < content.index("## Available Skills")
        assert content.index("## Available Skills") < content.index("Remember the rules.")
        assert compilation.document.contributors == ("react", "zustand")

    def test_header_fields(self):
        catalog = _catalog()
        profile = _profile(
            tools=("Read", "Write"),
            disallowed_tools=("Bash",),
            model="sonnet",
            permission_mode="default",
        )
        compilation = compile_agent(catalog, _validated(catalog, []), profile, _TEMPLATES)
        header, _ = split_frontmatter(compilation.document.content)
        assert header == {
            "name": "frontend-developer",
            "description": "Builds UIs",
            "tools": "Read, Write",
            "disallowedTools": "Bash",
            "model": "sonnet",
            "permissionMode": "default",
            "skills": "react",
        }

    def test_inlined_sections_not_repeated(self):
        catalog = _catalog()
        templates = {
            **_TEMPLATES,
            "agent": "# {{ name }}\n\n{{ core_partials }}\n\n## Skills\n\n{{ skills }}",
        }
        compilation = compile_agent(catalog, _validated(catalog, ["react"]), _profile(), templates)
        _, body = split_frontmatter(compilation.document.content)
        assert body.count("Workflow steps.") == 1
        assert body.count("Use react.") == 1
        assert body.endswith("\n\n---\n\nRemember the rules.")

    def test_index_appended_when_only_skills_inlined(self):
        catalog = _catalog()
        templates = {**_TEMPLATES, "agent": "# {{ name }}\n\n{{ skills }}\n"}
        compilation = compile_agent(
            catalog, _validated(catalog, ["react", "zustand"]), _profile(), templates
        )
        _, body = split_frontmatter(compilation.document.content)
        assert body.count("Use react.") == 1
        assert "- `zustand`: Use for client state" in body
        assert body.index("Use react.") < body.index("## Available Skills")
        assert compilation.document.contributors == ("react", "zustand")

    def test_inlined_index_not_repeated(self):
        catalog = _catalog()
        templates = {**_TEMPLATES, "agent": "# {{ name }}\n\n{{ skill_index }}\n"}
        compilation = compile_agent(
            catalog, _validated(catalog, ["react", "zustand"]), _profile(), templates
        )
        _, body = split_frontmatter(compilation.document.content)
        assert body.count("## Available Skills") == 1
        assert body.count("Use react.") == 1

    def test_single_partial_inlined(self):
        catalog = _catalog()
        templates = {**_TEMPLATES, "agent": "# {{ name }}\n\n{{ workflow }}"}
        compilation = compile_agent(catalog, _validated(catalog, []), _profile(), templates)
        _, body = split_frontmatter(compilation.document.content)
        assert body.count("Workflow steps.") == 1
        assert "Core principles for frontend-developer." in body

    def test_unknown_placeholder_warns(self, caplog):
        catalog = _catalog()
        templates = {**_TEMPLATES, "agent": "# {{ name }} {{ mystery }}"}
        with caplog.at_level(logging.WARNING, logger="skillbundle_core.compiler"):
            compilation = compile_agent(catalog, _validated(catalog, []), _profile(), templates)
        assert [w.placeholder for w in compilation.warnings] == ["mystery"]
        assert compilation.warnings[0].template == "agent"
        assert "mystery" in caplog.text
        assert "{{" not in compilation.document.content

    def test_routing_by_parent_category(self):
        catalog = _catalog()
        routing = SkillRouting(routes={"frontend-developer": ("frontend",)})
        compilation = compile_agent(
            catalog,
            _validated(catalog, ["zustand", "scss"]),
            _profile(preloaded_skills=()),
            _TEMPLATES,
            routing=routing,
        )
        assert compilation.document.contributors == ("scss",)

    def test_routing_without_entry_keeps_everything(self):
        catalog = _catalog()
        routing = SkillRouting(routes={"other": ("state",)})
        relevant = routing.relevant_skills("frontend-developer", ["zustand", "scss"], catalog)
        assert relevant == ["zustand", "scss"]


class TestCompileBundle:
    def _bundle(self, catalog, **kwargs):
        profiles = [_profile(), _profile(name="tester", description="Writes tests", partials=())]
        return compile_bundle(
            catalog, _validated(catalog, ["zustand"]), profiles, _TEMPLATES, name="demo", **kwargs
        )

    def test_document_order(self):
        catalog = _catalog(
            _record("vitest", "testing", resources={"reference.md": "ref", "examples/a.md": "a"})
        )
        profiles = [_profile(preloaded_skills=("vitest",))]
        bundle = compile_bundle(
            catalog,
            _validated(catalog, ["zustand"]),
            profiles,
            _TEMPLATES,
            name="demo",
            hooks={"PostToolUse": [{"hooks": [{"type": "command", "command": "lint"}]}]},
        )
        assert bundle.paths == [
            "agents/frontend-developer.md",
            "skills/zustand/SKILL.md",
            "skills/vitest/SKILL.md",
            "skills/vitest/examples/a.md",
            "skills/vitest/reference.md",
            "hooks/hooks.json",
        ]
        hooks = json.loads(bundle.get("hooks/hooks.json").content)
        assert hooks["hooks"]["PostToolUse"][0]["hooks"][0]["command"] == "lint"

    def test_skill_document(self):
        bundle = self._bundle(_catalog())
        assert bundle.get("skills/react/SKILL.md").content == (
            "---\nname: react\ndescription: react skill\n---\n\n# react\n\nUse react.\n"
        )

    def test_every_agent_compiled(self):
        bundle = self._bundle(_catalog())
        assert bundle.paths[:2] == ["agents/frontend-developer.md", "agents/tester.md"]
        assert bundle.get("agents/missing.md") is None

    def test_no_hooks_document_without_hooks(self):
        assert "hooks/hooks.json" not in self._bundle(_catalog()).paths

    def test_duplicate_profile_names(self):
        catalog = _catalog()
        with pytest.raises(ValueError, match="Duplicate agent profile"):
            compile_bundle(
                catalog, _validated(catalog, []), [_profile(), _profile()], _TEMPLATES, name="x"
            )

    def test_slug_collision(self):
        catalog = _catalog(_record("frontend/react (@vince)", "ui"))
        with pytest.raises(ValueError, match="share the output name 'react'"):
            compile_bundle(
                catalog,
                _validated(catalog, ["react", "frontend/react (@vince)"]),
                [],
                _TEMPLATES,
                name="x",
            )

    def test_plain_selection_refused(self):
        with pytest.raises(TypeError):
            compile_bundle(_catalog(), Selection(), [], _TEMPLATES, name="x")

    def test_parallel_compilation_is_deterministic(self):
        catalog = _catalog()
        selection = _validated(catalog, ["zustand", "scss"])
        profiles = [_profile(), _profile(name="tester", partials=())]

        def run(_):
            return compile_bundle(catalog, selection, profiles, _TEMPLATES, name="demo")

        with ThreadPoolExecutor(max_workers=4) as pool:
            bundles = list(pool.map(run, range(8)))
        assert len({b.digest for b in bundles}) == 1
        assert all(b == bundles[0] for b in bundles)

    def test_content_hash_changes_with_content(self):
        catalog = _catalog()
        first = self._bundle(catalog)
        templates = {**_TEMPLATES, "workflow": "Different steps."}
        second = compile_bundle(
            catalog, _validated(catalog, ["zustand"]), [_profile()], templates, name="demo"
        )
        assert first.content_hash != second.content_hash
        assert len(first.content_hash) == 7


class TestContentHash:
    def test_known_value(self):
        assert content_hash("hello") == "2cf24db"
