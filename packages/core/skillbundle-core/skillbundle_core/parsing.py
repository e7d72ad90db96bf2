"""Shared parsing utilities for SkillBundle documents.

Skill documents (``SKILL.md``) and compiled agent documents start with a
small YAML header block delimited by ``---`` lines.  The loaders, the
compiler, and the validator all read or write that block, so the helpers
live here.
"""

from __future__ import annotations

import re
from typing import Any

import yaml

_FRONTMATTER_RE = re.compile(r"\A---\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)


def split_frontmatter(raw: str) -> tuple[dict[str, Any], str]:
    """Split document content into YAML frontmatter and markdown body.

    Frontmatter is the YAML block delimited by ``---`` on its own line
    at the very start of the file.  If no valid frontmatter is detected
    the entire content is returned as the body with an empty dict.

    Args:
        raw: Full text content of a document.

    Returns:
        A ``(frontmatter_dict, body_str)`` tuple.  *frontmatter_dict*
        is ``{}`` when no frontmatter is present.

    Example::

        meta, body = split_frontmatter(Path("SKILL.md").read_text())
        print(meta.get("name"))
    """
    metadata, end = _read_header(raw)
    if metadata is None:
        return {}, raw
    return metadata, raw[end:].strip()


def parse_frontmatter(raw: str) -> dict[str, Any] | None:
    """Return the parsed header block of *raw*, or ``None``.

    ``None`` means the document has no header, the header is not valid
    YAML, or it is not a mapping.  An empty header parses to ``{}``.
    """
    metadata, _ = _read_header(raw)
    return metadata


def _read_header(raw: str) -> tuple[dict[str, Any] | None, int]:
    """Parse the header block and return it with the offset of the body."""
    match = _FRONTMATTER_RE.match(raw)
    if not match:
        return None, 0
    try:
        metadata = yaml.safe_load(match.group(1))
    except yaml.YAMLError:
        return None, 0
    if metadata is None:
        return {}, match.end()
    if not isinstance(metadata, dict):
        return None, 0
    return metadata, match.end()


def render_frontmatter(metadata: dict[str, Any], body: str) -> str:
    """Render a header block followed by *body*.

    Keys keep their insertion order and ``None`` values are dropped, so
    the output is byte-for-byte stable for equal inputs.
    """
    header = {k: v for k, v in metadata.items() if v is not None}
    dumped = yaml.safe_dump(header, sort_keys=False, allow_unicode=True, width=1000)
    return f"---\n{dumped}---\n\n{body.strip()}\n"
