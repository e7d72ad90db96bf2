"""Local filesystem-based template source.

This module implements :class:`LocalTemplateSource`, which serves
agent templates and partials from a local directory tree.  Template
identifiers are paths relative to the root without the ``.md``
extension, so ``partials/workflow`` is read from
``<root>/partials/workflow.md``.

The source is a pure content accessor: it does not render anything.
All methods are ``async`` to satisfy the
:class:`~skillbundle_core.TemplateSource` interface.  File I/O is
synchronous internally because template files are small and local disk
reads do not meaningfully block the event loop.
"""

from __future__ import annotations

from pathlib import Path

from skillbundle_core import SourceError, TemplateNotFoundError, TemplateSource

#: Default maximum file size in bytes (10 MB).
DEFAULT_MAX_FILE_BYTES: int = 10 * 1024 * 1024

TEMPLATE_SUFFIX = ".md"


class LocalTemplateSource(TemplateSource):
    """Template source backed by a local directory tree.

    Expected layout::

        root/
        ├── agent.md                  # base template "agent"
        └── partials/
            ├── core-principles.md    # "partials/core-principles"
            └── workflow.md           # "partials/workflow"

    Args:
        root: Directory holding the template files.
        max_file_bytes: Maximum allowed file size in bytes.  Larger
            files raise :class:`~skillbundle_core.SourceError`.
            Defaults to 10 MB.

    Raises:
        NotADirectoryError: If *root* does not exist or is not a
            directory.

    Example::

        source = LocalTemplateSource(Path("./templates"))
        templates = await fetch_templates(source, profile.template_ids)
    """

    def __init__(self, root: Path, *, max_file_bytes: int = DEFAULT_MAX_FILE_BYTES) -> None:
        self._root = Path(root)
        if not self._root.is_dir():
            raise NotADirectoryError(f"Template root does not exist: {self._root}")
        self._max_file_bytes = max_file_bytes

    def __repr__(self) -> str:
        return f"LocalTemplateSource({str(self._root)!r})"

    async def get_template(self, template_id: str) -> str:
        """Read the body of a template or partial.

        Args:
            template_id: Path-like identifier without extension.

        Returns:
            UTF-8 file contents.

        Raises:
            TemplateNotFoundError: If the file does not exist or the
                identifier points outside the root.
            SourceError: If the file exceeds the size limit.
        """
        path = (self._root / f"{template_id}{TEMPLATE_SUFFIX}").resolve()
        if not path.is_relative_to(self._root.resolve()):
            raise TemplateNotFoundError(f"Invalid template_id: {template_id!r}")
        if not path.is_file():
            raise TemplateNotFoundError(template_id)
        size = path.stat().st_size
        if size > self._max_file_bytes:
            raise SourceError(
                f"Template {template_id!r} exceeds maximum size ({self._max_file_bytes} bytes)"
            )
        return path.read_text(encoding="utf-8")

    def list_templates(self) -> list[str]:
        """Return every template identifier under the root, sorted."""
        return sorted(
            p.relative_to(self._root).with_suffix("").as_posix()
            for p in self._root.rglob(f"*{TEMPLATE_SUFFIX}")
            if p.is_file()
        )
