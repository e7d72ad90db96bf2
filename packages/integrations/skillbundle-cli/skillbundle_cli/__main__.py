"""Compile, validate, and publish skill bundles from a build config.

Usage::

    python -m skillbundle_cli compile --config build.yaml
    python -m skillbundle_cli compile --config build.yaml --stack react-stack --bump patch
    python -m skillbundle_cli validate plugins/react-stack plugins/vue-stack
    python -m skillbundle_cli publish --config build.yaml

The config file is a JSON or YAML document conforming to
:class:`~skillbundle_cli.config.BuildConfig`.

Example ``build.yaml``::

    source: ./catalog
    output: ./plugins
    templates:
      provider: http
      options:
        base_url: https://cdn.example.com/templates
        params:
          sig: ${SAS_TOKEN}
    catalog:
      name: acme-skills
      owner_name: Acme

String values may contain ``${VAR}`` placeholders that are resolved
from environment variables at load time.  This lets you keep secrets
out of the config file.

Any failure is printed to stderr as ``Error: ...`` and the process
exits with status 1.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from skillbundle_core import SkillBundleError

if TYPE_CHECKING:
    from skillbundle_cli.config import BuildConfig


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skillbundle",
        description="Compile agent skill bundles from a declarative catalog.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    compile_cmd = commands.add_parser("compile", help="Compile stacks into bundles.")
    compile_cmd.add_argument(
        "--config",
        required=True,
        type=Path,
        help="Path to a JSON or YAML build config.",
    )
    compile_cmd.add_argument(
        "--stack",
        action="append",
        dest="stacks",
        metavar="STACK",
        help="Stack to compile; may be repeated (default: the config's stacks, else all).",
    )
    compile_cmd.add_argument(
        "--bump",
        choices=["major", "minor", "patch"],
        help="Continue the version of an existing build, bumped when its content changed.",
    )

    validate_cmd = commands.add_parser("validate", help="Validate bundle directories.")
    validate_cmd.add_argument("paths", nargs="+", type=Path, help="Bundle directories.")

    publish_cmd = commands.add_parser("publish", help="Write the catalog index.")
    publish_cmd.add_argument(
        "--config",
        required=True,
        type=Path,
        help="Path to a JSON or YAML build config.",
    )
    return parser


def _load(config_path: Path) -> BuildConfig:
    if not config_path.exists():
        print(
            f"Error: config file not found: {config_path}",
            file=sys.stderr,
        )
        sys.exit(1)

    from skillbundle_cli.config import load_config

    return load_config(config_path)


def _compile(args: argparse.Namespace) -> int:
    from skillbundle_cli.build import build

    config = _load(args.config)
    results = asyncio.run(build(config, stacks=args.stacks, bump=args.bump))
    for result in results:
        print(f"{result.stack}: {result.path} (v{result.version}, {result.content_hash})")
    return 0


def _validate(args: argparse.Namespace) -> int:
    from skillbundle_cli.build import validate_paths

    status = 0
    for path, report in zip(args.paths, validate_paths(args.paths)):
        for issue in report.issues:
            print(f"{path}: {issue.severity.value}: {issue}")
        if not report.ok:
            status = 1
        print(f"{path}: {'ok' if report.ok else 'invalid'}")
    return status


def _publish(args: argparse.Namespace) -> int:
    from skillbundle_cli.build import publish

    path = publish(_load(args.config))
    print(f"Catalog written to {path}")
    return 0


_COMMANDS = {"compile": _compile, "validate": _validate, "publish": _publish}


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and run the selected command."""
    args = _parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        status = _COMMANDS[args.command](args)
    except (SkillBundleError, ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    sys.exit(status)


if __name__ == "__main__":
    main()
