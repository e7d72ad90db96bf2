"""Local filesystem collaborators for SkillBundle.

This package provides the disk-facing side of the pipeline:

* :class:`LocalSourceLoader` -- parse a source tree (skills matrix,
  skills, agent profiles, stacks) into raw records.
* :class:`LocalTemplateSource` -- a :class:`~skillbundle_core.TemplateSource`
  reading templates from a local directory.
* :func:`write_bundle` / :func:`read_bundle` -- persist and reload
  bundles.
* :func:`write_catalog` -- persist a catalog index.

Install::

    pip install skillbundle-fs
"""

from skillbundle_fs.loader import LocalSourceLoader
from skillbundle_fs.local import LocalTemplateSource
from skillbundle_fs.writer import read_bundle, write_bundle, write_catalog

__all__ = [
    "LocalSourceLoader",
    "LocalTemplateSource",
    "read_bundle",
    "write_bundle",
    "write_catalog",
]
