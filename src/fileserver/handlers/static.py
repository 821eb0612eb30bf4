"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Turns a validated request into the response that answers it.

=============================================================================
FLOW
=============================================================================

    Request: GET /docs/guide.txt

        1. PathResolver.resolve("/docs/guide.txt")
              │
              ├── NotFoundError ───────────────────► propagates (404)
              │
              ▼
        2. Branch on the target kind:

              FILE      → file_response(path, content_type)   streamed
              REDIRECT  → redirect(location)                  301
              LISTING   → html_response(render_listing(...))  generated

The handler never writes to the socket itself: it returns an HTTPResponse
and the coordinator hands that to a ResponseWriter. That keeps this class
testable without any networking.

=============================================================================
"""

import logging
from pathlib import Path

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, file_response, html_response, redirect
from .listing import render_listing
from .resolver import PathResolver, TargetKind, INDEX_FILE


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Serves files and directory listings from a root directory.

    Usage:
        handler = StaticFileHandler("/srv/www")
        response = handler.handle(request)
    """

    def __init__(self, root_dir: str | Path, index_file: str = INDEX_FILE):
        self.resolver = PathResolver(root_dir, index_file=index_file)

    @property
    def root_dir(self) -> Path:
        return self.resolver.root_dir

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Build the response for ``request``.

        Raises:
            NotFoundError: Nothing servable at the path.
            OSError: Filesystem failure while resolving or listing.
        """
        target = self.resolver.resolve(request.path)

        if target.kind is TargetKind.REDIRECT:
            logger.debug(f"Redirecting {request.path!r} to {target.location!r}")
            return redirect(target.location)

        if target.kind is TargetKind.LISTING:
            return html_response(render_listing(target.fs_path, target.url_path))

        return file_response(target.fs_path, target.content_type)
