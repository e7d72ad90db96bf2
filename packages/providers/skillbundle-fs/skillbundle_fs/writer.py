"""Persist bundles and catalog indexes to local disk.

The writer is the only place bundle files touch the filesystem.  Paths
in a :class:`~skillbundle_core.Bundle` file map are written verbatim
below the destination directory.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from skillbundle_core import Bundle, CatalogIndex, RemoteSource

_logger = logging.getLogger(__name__)

#: Directories owned by the compiler; stale content in them is removed
#: before a bundle is written.
MANAGED_DIRS: tuple[str, ...] = ("agents", "skills", "hooks")


def write_bundle(bundle: Bundle, dest: Path) -> Path:
    """Write every file of *bundle* below *dest*.

    ``agents/``, ``skills/`` and ``hooks/`` are cleaned first so that
    documents from a previous compilation do not linger.  Other files in
    *dest* are left alone.

    Args:
        bundle: The bundle to persist.
        dest: Destination directory; created if missing.

    Returns:
        *dest*.

    Raises:
        ValueError: If a bundle path points outside *dest*.
    """
    dest = Path(dest)
    dest.mkdir(parents=True, exist_ok=True)
    root = dest.resolve()

    targets = {}
    for relative in sorted(bundle.files):
        target = (root / relative).resolve()
        if not target.is_relative_to(root) or target == root:
            raise ValueError(f"Bundle path escapes destination: {relative!r}")
        targets[relative] = target

    for managed in MANAGED_DIRS:
        stale = root / managed
        if stale.is_dir():
            _logger.debug("Removing stale %s", stale)
            shutil.rmtree(stale)

    for relative, target in targets.items():
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(bundle.files[relative], encoding="utf-8")
    _logger.info("Wrote %d file(s) to %s", len(targets), dest)
    return dest


def read_bundle(path: Path, *, location: str | RemoteSource | None = None) -> Bundle:
    """Read a bundle directory back into a :class:`~skillbundle_core.Bundle`.

    Every regular file below *path* becomes an entry of the file map,
    keyed by its POSIX path relative to *path*.

    Raises:
        NotADirectoryError: If *path* is not a directory.
    """
    path = Path(path)
    if not path.is_dir():
        raise NotADirectoryError(f"Bundle directory does not exist: {path}")
    files = {
        p.relative_to(path).as_posix(): p.read_text(encoding="utf-8")
        for p in sorted(path.rglob("*"))
        if p.is_file()
    }
    return Bundle(files=files, location=location)


def write_catalog(index: CatalogIndex, path: Path) -> Path:
    """Write *index* as JSON (2-space indent, trailing newline)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(index.to_json(), encoding="utf-8")
    _logger.info("Wrote catalog '%s' (%d bundle(s)) to %s", index.name, len(index.entries), path)
    return path
