"""Compile a bundle step by step with the library API.

This script walks the sample catalog in ``examples/catalog`` through
every stage of the pipeline without the CLI, printing what each stage
produces.

Flow:
    1. Load the catalog, agent profiles, and templates from disk
    2. Evaluate a selection: availability, then validation
    3. Compile the agents and skills of the selection
    4. Generate the manifest and README, assemble and validate the bundle
    5. Write the bundle and a catalog index to a temporary directory

Requirements:
    pip install skillbundle

Usage:
    python examples/compile_stack.py
"""

import asyncio
import tempfile
from pathlib import Path

from skillbundle_core import (
    BundleMetadata,
    SkillRouting,
    assemble_bundle,
    compile_bundle,
    compute_availability,
    fetch_templates,
    generate_manifest,
    generate_readme,
    publish_catalog,
    validate_bundle,
    validate_selection,
)
from skillbundle_fs import LocalSourceLoader, write_bundle, write_catalog


async def main() -> None:
    # ------------------------------------------------------------------
    # 1. Load the source tree
    # ------------------------------------------------------------------
    loader = LocalSourceLoader(Path(__file__).resolve().parent / "catalog")
    catalog = loader.load_catalog()
    profiles = loader.load_profiles()

    print(f"=== Catalog ({len(catalog.list_skills())} skills) ===")
    for skill in catalog.list_skills():
        print(f"  - {skill.slug:14s} [{skill.category}] {skill.description}")
    print()

    # ------------------------------------------------------------------
    # 2. Evaluate a selection
    # ------------------------------------------------------------------
    picks = ["react", "scss-modules"]
    print(f"=== Availability after selecting {picks} ===")
    for entry in compute_availability(catalog, picks):
        reason = f" ({entry.reason})" if entry.reason else ""
        print(f"  - {entry.skill_id:28s} {entry.status.value}{reason}")
    print()

    rejected = validate_selection(catalog, [*picks, "tailwind"])
    print("=== Adding tailwind ===")
    for issue in rejected.errors:
        print(f"  ! {issue}")
    print()

    result = validate_selection(catalog, [*picks, "zustand", "vitest"])
    if result.validated is None:
        raise SystemExit(f"Selection rejected: {[str(e) for e in result.errors]}")

    # ------------------------------------------------------------------
    # 3. Compile
    # ------------------------------------------------------------------
    agents = [profiles["frontend-developer"], profiles["frontend-reviewer"]]
    templates = await fetch_templates(
        loader.template_source(), [t for p in agents for t in p.template_ids]
    )
    compiled = compile_bundle(
        catalog,
        result.validated,
        agents,
        templates,
        name="react-starter",
        routing=SkillRouting(routes={"frontend-reviewer": ("frontend",)}),
    )

    print(f"=== Compiled '{compiled.name}' ({compiled.content_hash}) ===")
    for path in compiled.paths:
        print(f"  - {path}")
    print()

    # ------------------------------------------------------------------
    # 4. Manifest, README, validation
    # ------------------------------------------------------------------
    metadata = BundleMetadata(
        name="react-starter",
        description="React starter bundle",
        author="vince",
        keywords=("react",),
    )
    manifest = generate_manifest(compiled, metadata)
    bundle = assemble_bundle(compiled, manifest, readme=generate_readme(compiled, metadata))
    report = validate_bundle(bundle)
    print(f"=== Validation: {'ok' if report.ok else 'failed'} ===")
    for issue in report.issues:
        print(f"  - {issue.severity.value}: {issue}")
    print()

    # ------------------------------------------------------------------
    # 5. Write the bundle and a catalog index
    # ------------------------------------------------------------------
    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp)
        write_bundle(bundle, root / "plugins" / manifest.name)
        index = publish_catalog([report], name="sample-skills", owner_name="vince")
        path = write_catalog(index, root / ".claude-plugin" / "marketplace.json")
        print(f"=== {path.relative_to(root)} ===")
        print(path.read_text(encoding="utf-8"))


if __name__ == "__main__":
    asyncio.run(main())
