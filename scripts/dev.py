#!/usr/bin/env python3
"""Development task runner for SkillBundle.

Usage:
    python scripts/dev.py check            # ruff + format check + mypy + schema check
    python scripts/dev.py fix              # ruff format + ruff --fix
    python scripts/dev.py test [pkg ...]   # pytest, optionally only core/fs/http/cli
    python scripts/dev.py cov              # pytest with coverage of the import packages
    python scripts/dev.py schemas          # check the packaged JSON schemas are valid Draft 7
    python scripts/dev.py example          # compile, validate and publish the sample catalog
    python scripts/dev.py clean            # remove caches and the sample marketplace

Extra arguments after ``test`` that are not package names go to pytest.
"""

from __future__ import annotations

import json
import shutil
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
EXAMPLE_CONFIG = ROOT / "examples" / "build.yaml"
EXAMPLE_OUTPUT = ROOT / "examples" / "marketplace"

#: Short name -> distribution directory, in dependency order.
PACKAGES = {
    "core": ROOT / "packages" / "core" / "skillbundle-core",
    "fs": ROOT / "packages" / "providers" / "skillbundle-fs",
    "http": ROOT / "packages" / "providers" / "skillbundle-http",
    "cli": ROOT / "packages" / "integrations" / "skillbundle-cli",
}
SCHEMAS_DIR = PACKAGES["core"] / "skillbundle_core" / "schemas"

_PY = sys.executable
_CACHES = (".pytest_cache", ".mypy_cache", ".ruff_cache", "__pycache__", "htmlcov")


def _run(*args: str | Path, check: bool = True) -> int:
    cmd = [str(a) for a in args]
    print(f"\n$ {' '.join(cmd)}", flush=True)
    code = subprocess.run(cmd, cwd=ROOT, check=False).returncode
    if check and code != 0:
        sys.exit(code)
    return code


def _sources() -> list[str]:
    return [str(p.relative_to(ROOT)) for p in PACKAGES.values()] + ["examples", "scripts"]


# ------------------------------------------------------------------
# Tasks
# ------------------------------------------------------------------


def check(_: list[str]) -> None:
    """Lint, format check, type check and schema check without changing files."""
    _run(_PY, "-m", "ruff", "check", *_sources())
    _run(_PY, "-m", "ruff", "format", "--check", *_sources())
    packages = [str(p / p.name.replace("-", "_")) for p in PACKAGES.values()]
    _run(_PY, "-m", "mypy", *packages, check=False)
    schemas([])


def fix(_: list[str]) -> None:
    """Format and auto-fix lint findings."""
    _run(_PY, "-m", "ruff", "format", *_sources())
    _run(_PY, "-m", "ruff", "check", "--fix", *_sources())


def test(args: list[str]) -> None:
    """Run the tests of every package, or only the named ones."""
    selected = [a for a in args if a in PACKAGES]
    extra = [a for a in args if a not in PACKAGES]
    paths = [PACKAGES[name] / "tests" for name in selected or PACKAGES]
    _run(_PY, "-m", "pytest", *paths, *extra)


def cov(args: list[str]) -> None:
    """Run the tests with a coverage report for the import packages."""
    flags = [f"--cov={p.name.replace('-', '_')}" for p in PACKAGES.values()]
    test([*args, *flags, "--cov-report=term-missing"])


def schemas(_: list[str]) -> None:
    """Check every packaged schema against the Draft 7 meta-schema."""
    from jsonschema import Draft7Validator

    for path in sorted(SCHEMAS_DIR.glob("*.schema.json")):
        Draft7Validator.check_schema(json.loads(path.read_text(encoding="utf-8")))
        print(f"  ok  {path.relative_to(ROOT)}")


def example(_: list[str]) -> None:
    """Compile every sample stack, validate the bundles, then publish the catalog."""
    cli = (_PY, "-m", "skillbundle_cli")
    _run(*cli, "compile", "--config", EXAMPLE_CONFIG)
    bundles = sorted(p for p in (EXAMPLE_OUTPUT / "plugins").iterdir() if p.is_dir())
    _run(*cli, "validate", *bundles)
    _run(*cli, "publish", "--config", EXAMPLE_CONFIG)


def clean(_: list[str]) -> None:
    """Remove tool caches, coverage data and the sample marketplace."""
    targets = [p for name in _CACHES for p in ROOT.rglob(name) if ".venv" not in p.parts]
    targets += [p for p in (ROOT / ".coverage", EXAMPLE_OUTPUT) if p.exists()]
    removed = 0
    for path in targets:
        if not path.exists():
            continue
        if path.is_dir():
            shutil.rmtree(path)
        else:
            path.unlink()
        print(f"  removed {path.relative_to(ROOT)}")
        removed += 1
    print(f"  {removed} item(s) removed.")


TASKS = {
    "check": check,
    "fix": fix,
    "test": test,
    "cov": cov,
    "schemas": schemas,
    "example": example,
    "clean": clean,
}


def main() -> None:
    if len(sys.argv) < 2 or sys.argv[1] in ("-h", "--help", "help"):
        print(__doc__)
        sys.exit(0)

    task = TASKS.get(sys.argv[1])
    if task is None:
        print(f"Unknown task: {sys.argv[1]}")
        print(f"Available: {', '.join(TASKS)}")
        sys.exit(1)
    task(sys.argv[2:])


if __name__ == "__main__":
    main()
