"""
Request handlers: path resolution, directory listings, static files.

    from fileserver.handlers import StaticFileHandler

    handler = StaticFileHandler("/srv/www")
    response = handler.handle(request)
"""

from .resolver import PathResolver, ResolvedTarget, TargetKind, redirect_location
from .listing import ListingEntry, list_entries, render_listing
from .static import StaticFileHandler

__all__ = [
    "PathResolver",
    "ResolvedTarget",
    "TargetKind",
    "redirect_location",
    "ListingEntry",
    "list_entries",
    "render_listing",
    "StaticFileHandler",
]
