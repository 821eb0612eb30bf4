"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps a file's extension to the Content-Type sent with it.

    ┌──────────────────────────────────────────────────────────────────────┐
    │   style.css  ──suffix──►  ".css"  ──lookup──►  "text/css"           │
    │   LOGO.PNG   ──suffix──►  ".png"  ──lookup──►  "image/png"          │
    │   Makefile   ──suffix──►  ""      ──lookup──►  (default)            │
    └──────────────────────────────────────────────────────────────────────┘

The table is deliberately small: the formats a static website is made of.
Anything else goes out as application/octet-stream, which browsers treat
as "download this" rather than guessing.

Content types are sent bare, without a charset parameter. The server never
transcodes files, so it cannot promise an encoding it did not check.

=============================================================================
"""

from pathlib import Path
from types import MappingProxyType


MIME_TYPES = MappingProxyType({
    # Text
    ".html": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".txt": "text/plain",
    ".xml": "application/xml",

    # Images
    ".gif": "image/gif",
    ".ico": "image/x-icon",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".svg": "image/svg+xml",

    # Fonts
    ".ttf": "font/ttf",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
})

DEFAULT_MIME_TYPE = "application/octet-stream"


def get_mime_type(path: str | Path) -> str:
    """
    Get the MIME type for a file based on its extension.

    Lookup is case-insensitive on the suffix.

    Examples:
        >>> get_mime_type("a/b.txt")
        'text/plain'
        >>> get_mime_type("photo.JPEG")
        'image/jpeg'
        >>> get_mime_type("archive.tar.gz")
        'application/octet-stream'
    """
    if isinstance(path, str):
        path = Path(path)

    return MIME_TYPES.get(path.suffix.lower(), DEFAULT_MIME_TYPE)
