"""Abstract interface for template and partial retrieval.

This module defines :class:`TemplateSource`, the abstract base class
that every template backend must implement.  A source is a **content
accessor**: given a template identifier it serves the raw text body.
It does not render anything; the compiler treats bodies as opaque text
with ``{{ name }}`` substitution points.

Identifiers are path-like (``agent``, ``partials/workflow``) and never
carry a file extension.

All methods are ``async`` so that implementations backed by network I/O
can be non-blocking.  Filesystem implementations may use synchronous
I/O inside ``async def`` methods since template files are small.

Concrete implementations include
:class:`~skillbundle_fs.LocalTemplateSource` for a local directory and
:class:`~skillbundle_http.HTTPTemplateSource` for static HTTP hosting.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable

from skillbundle_core.exceptions import TemplateNotFoundError

_logger = logging.getLogger(__name__)


class TemplateSource(ABC):
    """Abstract base class that every template backend must implement.

    Example::

        class MyTemplateSource(TemplateSource):
            async def get_template(self, template_id: str) -> str: ...
    """

    @abstractmethod
    async def get_template(self, template_id: str) -> str:
        """Return the raw body of a template or partial.

        Args:
            template_id: Path-like identifier without extension.

        Returns:
            The template text.

        Raises:
            TemplateNotFoundError: If the template does not exist.
        """


async def fetch_templates(source: TemplateSource, template_ids: Iterable[str]) -> dict[str, str]:
    """Fetch several templates concurrently.

    Templates that do not exist are left out of the result and logged,
    so the compiler can name every missing identifier at once.  Any
    other error propagates.

    Args:
        source: The source to read from.
        template_ids: Identifiers to fetch; duplicates are fetched once.

    Returns:
        Identifier -> body for every template that exists, in request
        order.
    """
    ids = list(dict.fromkeys(template_ids))

    async def _fetch(template_id: str) -> str | None:
        try:
            return await source.get_template(template_id)
        except TemplateNotFoundError:
            _logger.warning("Template '%s' not found in %r", template_id, source)
            return None

    bodies = await asyncio.gather(*(_fetch(t) for t in ids))
    return {t: body for t, body in zip(ids, bodies) if body is not None}
