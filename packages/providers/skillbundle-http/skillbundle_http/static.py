"""HTTP static-file template source.

This module implements :class:`HTTPTemplateSource`, which fetches agent
templates and partials from any static HTTP file host.  It expects the
same layout used by :class:`~skillbundle_fs.LocalTemplateSource`, served
over HTTP.

Expected URL layout::

    {base_url}/
    ├── agent.md                      # template "agent"
    └── partials/
        ├── core-principles.md        # template "partials/core-principles"
        └── workflow.md               # template "partials/workflow"

The source is a pure content accessor: it does not render or cache
anything.  Every call is one GET request made with
`httpx <https://www.python-httpx.org/>`_.
"""

from __future__ import annotations

import logging
import re
import warnings
from urllib.parse import quote, urlparse

import httpx

from skillbundle_core import SourceError, TemplateNotFoundError, TemplateSource

_logger = logging.getLogger(__name__)

# Each ``/``-separated segment of a template identifier must be a safe
# URL path segment: alphanumeric first character, then alphanumerics,
# hyphens, dots, or underscores.  Rules out ``..`` and empty segments.
_SAFE_SEGMENT_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9._-]*$")

#: Default maximum HTTP response size in bytes (10 MB).
DEFAULT_MAX_RESPONSE_BYTES: int = 10 * 1024 * 1024

#: Default HTTP request timeout in seconds.
DEFAULT_TIMEOUT_SECONDS: float = 30.0

TEMPLATE_SUFFIX = ".md"


class HTTPTemplateSource(TemplateSource):
    """Template source backed by a static HTTP file host.

    The source expects an HTTP server (S3, Azure Blob, CDN, Nginx,
    GitHub Pages, etc.) that hosts template files at
    ``{base_url}/{template_id}.md``.

    The source owns an :class:`httpx.AsyncClient` for connection
    pooling.  If you supply your own client the source will use it
    without closing it.  Otherwise call :meth:`aclose` or use
    ``async with`` when you are finished.

    Args:
        base_url: Root URL where the templates are hosted.  A trailing
            slash is stripped automatically.
        client: Optional pre-configured :class:`httpx.AsyncClient`.
            When provided, the caller is responsible for closing it.
            The source will still enforce *max_response_bytes* but
            will **not** override the client's timeout or redirect
            settings.
        headers: Optional extra headers sent with every request (e.g.
            ``Authorization``).
        params: Optional query parameters appended to every request
            (e.g. SAS tokens for Azure Blob Storage).
        require_tls: If ``True``, reject ``http://`` base URLs with
            a :class:`ValueError`.  Defaults to ``False``, which
            allows HTTP but emits a :class:`UserWarning`.
        max_response_bytes: Maximum allowed response size in bytes.
            Responses exceeding this limit raise
            :class:`~skillbundle_core.SourceError`.  Defaults to 10 MB.

    Example::

        async with HTTPTemplateSource("https://cdn.example.com/templates") as source:
            templates = await fetch_templates(source, profile.template_ids)
    """

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        require_tls: bool = False,
        max_response_bytes: int = DEFAULT_MAX_RESPONSE_BYTES,
    ) -> None:
        if client is not None and (headers is not None or params is not None):
            raise ValueError(
                "Cannot specify both 'client' and 'headers'/'params'. "
                "Configure headers and params on the client directly."
            )

        # TLS enforcement
        parsed = urlparse(base_url)
        if parsed.scheme == "http":
            if require_tls:
                raise ValueError(
                    "require_tls is enabled but base_url uses plain HTTP. "
                    "Use an HTTPS URL or set require_tls=False."
                )
            warnings.warn(
                "base_url uses unencrypted HTTP. "
                "Templates fetched over HTTP are vulnerable to "
                "man-in-the-middle attacks. Use HTTPS in production.",
                UserWarning,
                stacklevel=2,
            )

        self._base_url = base_url.rstrip("/")
        self._max_response_bytes = max_response_bytes
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers=headers,
            params=params,
            timeout=httpx.Timeout(DEFAULT_TIMEOUT_SECONDS),
            follow_redirects=False,
        )

    def __repr__(self) -> str:
        return f"HTTPTemplateSource({self._base_url!r})"

    async def aclose(self) -> None:
        """Close the underlying HTTP client if it is owned by this source."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HTTPTemplateSource:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    async def get_template(self, template_id: str) -> str:
        """Fetch the body of a template or partial.

        Args:
            template_id: Path-like identifier without extension.

        Returns:
            The response text.

        Raises:
            ValueError: If *template_id* contains an unsafe segment.
            TemplateNotFoundError: On 404.
            SourceError: On other HTTP or connection errors, or if the
                response exceeds *max_response_bytes*.
        """
        url = self._template_url(template_id)
        try:
            resp = await self._client.get(url)
        except httpx.HTTPError as exc:
            raise SourceError("HTTP request failed") from exc
        if resp.status_code == 404:
            raise TemplateNotFoundError(template_id)
        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise SourceError(f"HTTP {resp.status_code} error") from exc
        if len(resp.content) > self._max_response_bytes:
            raise SourceError(f"Response exceeds maximum size ({self._max_response_bytes} bytes)")
        _logger.debug("Fetched template '%s' (%d bytes)", template_id, len(resp.content))
        return resp.text

    # ------------------------------------------------------------------
    # Input validation
    # ------------------------------------------------------------------

    def _template_url(self, template_id: str) -> str:
        """Build the URL of *template_id*, rejecting unsafe identifiers.

        Prevents path-traversal attacks (e.g. ``../``) and other
        injection via the identifier.
        """
        segments = template_id.split("/")
        for segment in segments:
            if not _SAFE_SEGMENT_RE.match(segment):
                raise ValueError(
                    f"Invalid template_id: {template_id!r}; each path segment must start "
                    f"with an alphanumeric character and contain only alphanumeric "
                    f"characters, hyphens, dots, and underscores"
                )
        path = "/".join(quote(segment, safe="") for segment in segments)
        return f"{self._base_url}/{path}{TEMPLATE_SUFFIX}"
