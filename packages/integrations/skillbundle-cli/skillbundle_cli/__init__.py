"""Command-line builds for SkillBundle.

This package wires :mod:`skillbundle_core`, :mod:`skillbundle_fs` and
:mod:`skillbundle_http` into a config-driven build:

* :func:`build` -- compile every stack of a source tree into bundles.
* :func:`publish` -- validate the written bundles and write the
  catalog index.
* CLI entry-point (``python -m skillbundle_cli compile --config build.yaml``).

Quick start (programmatic)::

    from skillbundle_cli import build, load_config

    config = load_config(Path("build.yaml"))
    results = await build(config)

CLI::

    python -m skillbundle_cli compile --config build.yaml
    python -m skillbundle_cli validate plugins/react-stack
    python -m skillbundle_cli publish --config build.yaml

Install::

    pip install skillbundle
"""

from skillbundle_cli.build import BuildError, BuildResult, build, build_stack, publish
from skillbundle_cli.config import BuildConfig, CatalogConfig, TemplateSourceConfig, load_config

__all__ = [
    "BuildConfig",
    "BuildError",
    "BuildResult",
    "CatalogConfig",
    "TemplateSourceConfig",
    "build",
    "build_stack",
    "load_config",
    "publish",
]
