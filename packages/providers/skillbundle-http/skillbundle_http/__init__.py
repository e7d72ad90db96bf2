"""HTTP static-file template source for SkillBundle.

This package provides :class:`HTTPTemplateSource`, a concrete
implementation of :class:`~skillbundle_core.TemplateSource` that fetches
agent templates and partials from any static HTTP file host (S3, Azure
Blob Storage, CDNs, GitHub Pages, etc.).

Install::

    pip install skillbundle-http
"""

from skillbundle_http.static import HTTPTemplateSource

__all__ = ["HTTPTemplateSource"]
