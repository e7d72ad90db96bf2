"""Tests for manifest generation, README rendering, and bundle assembly."""

import json

import pytest

from skillbundle_core import (
    MANIFEST_PATH,
    BundleManifest,
    BundleMetadata,
    CompiledBundle,
    CompiledDocument,
    RemoteSource,
    assemble_bundle,
    bump_version,
    generate_manifest,
    generate_readme,
)
from skillbundle_core.records import StackConfig


def _documents(*paths: str) -> list[CompiledDocument]:
    return [CompiledDocument(path=p, content=f"content of {p}") for p in paths]


def _compiled() -> CompiledBundle:
    return CompiledBundle(
        name="demo",
        documents=tuple(
            _documents(
                "agents/frontend-developer.md",
                "skills/react/SKILL.md",
                "skills/react/reference.md",
                "hooks/hooks.json",
            )
        ),
    )


class TestGenerateManifest:
    def test_entry_points_for_present_kinds(self):
        manifest = generate_manifest(_compiled(), BundleMetadata(name="demo"))
        assert manifest.entry_points == {
            "skills": "./skills/",
            "agents": "./agents/",
            "hooks": "./hooks/hooks.json",
        }

    def test_absent_kinds_not_declared(self):
        manifest = generate_manifest(
            _documents("skills/react/SKILL.md"), BundleMetadata(name="demo")
        )
        assert manifest.entry_points == {"skills": "./skills/"}
        assert "agents" not in manifest.to_dict()
        assert "hooks" not in manifest.to_dict()

    def test_defaults(self):
        manifest = generate_manifest([], BundleMetadata(name="demo"))
        assert manifest.to_dict() == {"name": "demo", "version": "1.0.0", "license": "MIT"}

    def test_author_only_with_name(self):
        metadata = BundleMetadata(name="demo", author="vince", author_email="v@example.com")
        manifest = generate_manifest([], metadata)
        assert manifest.to_dict()["author"] == {"name": "vince", "email": "v@example.com"}
        no_author = generate_manifest([], BundleMetadata(name="demo", author_email="v@example.com"))
        assert "author" not in no_author.to_dict()

    def test_key_order(self):
        metadata = BundleMetadata(
            name="demo", description="Demo bundle", author="vince", keywords=("react",)
        )
        manifest = generate_manifest(_compiled(), metadata)
        assert list(manifest.to_dict()) == [
            "name",
            "version",
            "description",
            "author",
            "license",
            "keywords",
            "skills",
            "agents",
            "hooks",
        ]

    def test_to_json(self):
        manifest = generate_manifest([], BundleMetadata(name="demo"))
        text = manifest.to_json()
        assert text.endswith("}\n")
        assert json.loads(text)["name"] == "demo"

    def test_metadata_from_stack(self):
        stack = StackConfig(
            name="react-stack",
            version="2.1.0",
            author="vince",
            description="React stack",
            tags=["react", "frontend"],
            philosophy="Ship small.",
            principles=["Test first"],
        )
        metadata = BundleMetadata.from_stack(stack)
        assert metadata.keywords == ("react", "frontend")
        assert metadata.version == "2.1.0"
        assert metadata.principles == ("Test first",)


class TestGenerateReadme:
    def test_sections(self):
        metadata = BundleMetadata(
            name="demo",
            description="Demo bundle",
            keywords=("react",),
            philosophy="Ship small.",
            principles=("Test first",),
        )
        readme = generate_readme(_compiled(), metadata)
        assert readme.path == "README.md"
        assert readme.content.startswith("# demo\n\nDemo bundle\n")
        assert "## Tags\n\n`react`" in readme.content
        assert "## Agents\n\n- `frontend-developer`" in readme.content
        assert "## Skills\n\n- `react`\n" in readme.content
        assert "## Philosophy\n\nShip small." in readme.content
        assert "## Principles\n\n- Test first" in readme.content

    def test_default_description(self):
        readme = generate_readme([], BundleMetadata(name="demo"))
        assert "An agent skill bundle." in readme.content
        assert "## Agents" not in readme.content


class TestBumpVersion:
    @pytest.mark.parametrize(
        ("part", "expected"),
        [("major", "2.0.0"), ("minor", "1.3.0"), ("patch", "1.2.4")],
    )
    def test_bump(self, part, expected):
        manifest = BundleManifest(name="demo", version="1.2.3")
        assert bump_version(manifest, part).version == expected
        assert manifest.version == "1.2.3"

    def test_non_semver_rejected(self):
        with pytest.raises(ValueError, match="non-semver"):
            bump_version(BundleManifest(name="demo", version="v1"), "patch")

    def test_unknown_part_rejected(self):
        with pytest.raises(ValueError, match="Unknown version part"):
            bump_version(BundleManifest(name="demo"), "build")


class TestAssembleBundle:
    def test_files_include_manifest_and_readme(self):
        compiled = _compiled()
        metadata = BundleMetadata(name="demo")
        manifest = generate_manifest(compiled, metadata)
        bundle = assemble_bundle(compiled, manifest, readme=generate_readme(compiled, metadata))
        assert set(bundle.files) == {
            "agents/frontend-developer.md",
            "skills/react/SKILL.md",
            "skills/react/reference.md",
            "hooks/hooks.json",
            "README.md",
            MANIFEST_PATH,
        }
        assert bundle.load_manifest() == manifest

    def test_duplicate_paths_rejected(self):
        documents = _documents("agents/a.md", "agents/a.md")
        with pytest.raises(ValueError, match="Duplicate document path"):
            assemble_bundle(documents, BundleManifest(name="demo"))

    def test_location(self):
        remote = RemoteSource(source="github", repo="acme/skills", ref="v1.0.0")
        bundle = assemble_bundle([], BundleManifest(name="demo"), location=remote)
        assert bundle.location.to_dict() == {
            "source": "github",
            "repo": "acme/skills",
            "ref": "v1.0.0",
        }

    def test_load_manifest_without_manifest(self):
        bundle = assemble_bundle([], BundleManifest(name="demo"))
        files = {k: v for k, v in bundle.files.items() if k != MANIFEST_PATH}
        with pytest.raises(KeyError):
            type(bundle)(files=files).load_manifest()
