"""
Resource handlers: what a request path points at, and how a directory is
shown.

    from tinyhttpd.handlers import ResourceResolver, render_listing

    resolver = ResourceResolver("/srv/www")
    resource = resolver.resolve("/docs")
"""

from .static import (
    ResourceResolver,
    ResolvedResource,
    FileResource,
    DirectoryResource,
    Missing,
    Unreadable,
)
from .listing import render_listing, link_target

__all__ = [
    "ResourceResolver",
    "ResolvedResource",
    "FileResource",
    "DirectoryResource",
    "Missing",
    "Unreadable",
    "render_listing",
    "link_target",
]
