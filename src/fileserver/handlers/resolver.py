"""
=============================================================================
PATH RESOLVER
=============================================================================

Maps a decoded URL path to something on disk, safely.

=============================================================================
PATH TRAVERSAL
=============================================================================

The single most important job of a static server is to NOT serve files
outside its root:

    GET /../../etc/passwd HTTP/1.1
    GET /%2e%2e/%2e%2e/etc/passwd HTTP/1.1      (decoded before we see it)
    GET /innocent-symlink/passwd HTTP/1.1       (symlink -> /etc)

String checks like `".." in path` miss the symlink case and reject
legitimate names such as "notes..txt". Instead we canonicalize:

    root      = /srv/www                        (resolved once, at startup)
    candidate = /srv/www/../../etc/passwd
    canonical = candidate.resolve(strict=True)  → /etc/passwd
    inside?   = canonical is root or under it   → NO → 404

Escapes answer 404, exactly like a missing file, so a client cannot map
out which files exist outside the root.

=============================================================================
ONE RESOLUTION STEP
=============================================================================

A naive resolver asks "does it exist?", then canonicalizes, then asks "is
it a directory?". Between each question the tree can change. Here:

    1. resolve(strict=True)   existence + canonical path, one call
    2. containment check      pure path arithmetic, no I/O
    3. stat()                 one metadata read decides file vs directory

Everything after step 1 works on the canonical path, never the original.

=============================================================================
OUTCOMES
=============================================================================

    ┌───────────────────────────────┬────────────────────────────────────┐
    │ missing / outside root        │ NotFoundError (404)                │
    │ directory, no trailing "/"    │ REDIRECT to path + "/"             │
    │ directory with index.html     │ FILE (the index.html)              │
    │ directory without index.html  │ LISTING                            │
    │ regular file                  │ FILE                               │
    │ FIFO, socket, device          │ NotFoundError (404)                │
    │ file with trailing "/"        │ NotFoundError (404)                │
    └───────────────────────────────┴────────────────────────────────────┘

=============================================================================
"""

import os
import stat
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from ..http.errors import NotFoundError
from ..http.mime_types import get_mime_type


logger = logging.getLogger(__name__)


INDEX_FILE = "index.html"


class TargetKind(Enum):
    """What the resolver decided to do with a path."""
    FILE = "file"
    REDIRECT = "redirect"
    LISTING = "listing"


@dataclass(frozen=True)
class ResolvedTarget:
    """
    Result of resolving a URL path.

    Attributes:
        kind:         FILE, REDIRECT or LISTING.
        fs_path:      Canonical filesystem path (file, or listed directory).
        url_path:     The decoded URL path that was resolved.
        location:     Redirect target, percent-encoded (REDIRECT only).
        content_type: MIME type to serve with (FILE only).
    """

    kind: TargetKind
    fs_path: Path
    url_path: str
    location: Optional[str] = None
    content_type: Optional[str] = None

    @property
    def is_directory(self) -> bool:
        return self.kind in (TargetKind.REDIRECT, TargetKind.LISTING)


class PathResolver:
    """
    Resolves URL paths against a served root directory.

    The root is canonicalized once at construction. The resolver keeps no
    other state and is shared by all worker threads.

    Usage:
        resolver = PathResolver("/srv/www")
        target = resolver.resolve("/docs/")
    """

    def __init__(self, root_dir: str | Path, index_file: str = INDEX_FILE):
        self.root_dir = Path(root_dir).resolve()
        self.index_file = index_file

        if not self.root_dir.is_dir():
            raise ValueError(f"Served root is not a directory: {root_dir}")

    def resolve(self, url_path: str) -> ResolvedTarget:
        """
        Resolve a decoded URL path.

        Args:
            url_path: Percent-decoded request path, starting with "/".

        Returns:
            ResolvedTarget describing how to answer.

        Raises:
            NotFoundError: Missing, outside the root, or not a regular
                           file or directory.
            OSError: Any other filesystem failure (permissions, I/O).
        """
        canonical = self._canonicalize(self.root_dir / url_path.lstrip("/"), url_path)
        try:
            st = canonical.stat()
        except FileNotFoundError:
            # Removed between resolve() and stat()
            raise NotFoundError(f"No such path: {url_path}")

        if stat.S_ISDIR(st.st_mode):
            return self._resolve_directory(canonical, url_path)

        # pathlib drops a trailing "/", but "file.txt/" names nothing (ENOTDIR)
        if url_path.endswith("/"):
            raise NotFoundError(f"Not a directory: {url_path}")

        if not stat.S_ISREG(st.st_mode):
            raise NotFoundError(f"Not a regular file: {url_path}")

        return ResolvedTarget(
            kind=TargetKind.FILE,
            fs_path=canonical,
            url_path=url_path,
            content_type=get_mime_type(canonical),
        )

    def _resolve_directory(self, directory: Path, url_path: str) -> ResolvedTarget:
        # ─────────────────────────────────────────────────────────────────
        # MISSING TRAILING SLASH → REDIRECT
        # ─────────────────────────────────────────────────────────────────
        # Relative links inside a listing or index.html only work when the
        # browser's URL ends in "/".
        if not url_path.endswith("/"):
            return ResolvedTarget(
                kind=TargetKind.REDIRECT,
                fs_path=directory,
                url_path=url_path,
                location=redirect_location(url_path),
            )

        index = self._find_index(directory, url_path)
        if index is not None:
            return ResolvedTarget(
                kind=TargetKind.FILE,
                fs_path=index,
                url_path=url_path,
                content_type=get_mime_type(index),
            )

        return ResolvedTarget(kind=TargetKind.LISTING, fs_path=directory, url_path=url_path)

    def _find_index(self, directory: Path, url_path: str) -> Optional[Path]:
        """Canonical index.html inside ``directory`` if it is a regular file."""
        try:
            index = self._canonicalize(directory / self.index_file, url_path + self.index_file)
            if stat.S_ISREG(index.stat().st_mode):
                return index
        except (NotFoundError, FileNotFoundError):
            pass
        return None

    def _canonicalize(self, candidate: Path, url_path: str) -> Path:
        """
        Canonicalize ``candidate`` and enforce the root boundary.

        Raises:
            NotFoundError: Does not exist, cannot be resolved, or escapes.
        """
        try:
            canonical = candidate.resolve(strict=True)
        except (FileNotFoundError, NotADirectoryError):
            raise NotFoundError(f"No such path: {url_path}")
        except ValueError:
            # Embedded NUL byte in the decoded path
            raise NotFoundError(f"Invalid path: {url_path!r}")
        except RuntimeError:
            # Symlink loop (older interpreters raise RuntimeError)
            raise NotFoundError(f"Symlink loop: {url_path}")
        except OSError as e:
            if e.errno == getattr(os, "ELOOP", None):
                raise NotFoundError(f"Symlink loop: {url_path}")
            raise

        if not self.contains(canonical):
            logger.warning(f"Path traversal attempt: {url_path!r} -> {canonical}")
            raise NotFoundError(f"Outside served root: {url_path}")

        return canonical

    def contains(self, path: Path) -> bool:
        """True if the canonical ``path`` is the root or beneath it."""
        return path == self.root_dir or self.root_dir in path.parents


def redirect_location(url_path: str) -> str:
    """
    Location for a directory requested without its trailing slash.

    The decoded path is percent-encoded again and a single "/" appended.
    Leading slash runs collapse to one so "//host" can never become a
    protocol-relative redirect to another site.

        >>> redirect_location("/my docs")
        '/my%20docs/'
    """
    return quote("/" + url_path.lstrip("/")) + "/"
