"""
=============================================================================
DIRECTORY LISTINGS
=============================================================================

Generates the HTML index for a directory that has no index.html.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  Index of /docs/                                                    │
    │  ─────────────────────────────────────────                          │
    │  ../                       → /                                      │
    │  api/                      → /docs/api/        directories first,   │
    │  guides/                   → /docs/guides/     then files, each     │
    │  README.txt                → /docs/README.txt  group by name        │
    │  a b.txt                   → /docs/a%20b.txt                        │
    └─────────────────────────────────────────────────────────────────────┘

Links are absolute: "<url_path><name>", percent-encoded. Decoding a link
gives back exactly the URL path that names the entry, so following it
resolves to the same file the listing showed. Display text is HTML-escaped
separately; a file called "<b>.txt" must not become markup.

The parent link is omitted at "/": there is nothing above the root.

A run of leading slashes in the request ("//", "///docs/") is rendered as
one "/", so no link can come out protocol-relative ("//evil.example").

File names are bytes on disk. A name that is not valid UTF-8 is linked
by its raw bytes (percent-encoded) and shown with U+FFFD in place of the
undecodable bytes.

=============================================================================
"""

import os
from dataclasses import dataclass
from html import escape
from pathlib import Path
from urllib.parse import quote


@dataclass(frozen=True)
class ListingEntry:
    """One child of a listed directory."""
    name: str
    is_dir: bool

    @property
    def display_name(self) -> str:
        """Printable name; directories end in "/"."""
        name = os.fsencode(self.name).decode("utf-8", errors="replace")
        return name + "/" if self.is_dir else name

    def href(self, url_path: str) -> str:
        """Percent-encoded absolute link for this entry under ``url_path``."""
        suffix = "/" if self.is_dir else ""
        return quote(os.fsencode(url_path + self.name + suffix))


def list_entries(directory: str | Path) -> list[ListingEntry]:
    """
    Children of ``directory``, directories first, then by name.

    Symlinks are classified by what they point to, so a link to a
    directory sorts (and links) as a directory.

    Raises:
        OSError: The directory cannot be read.
    """
    with os.scandir(directory) as it:
        entries = [ListingEntry(name=e.name, is_dir=_is_dir(e)) for e in it]

    entries.sort(key=lambda entry: (not entry.is_dir, entry.name))
    return entries


def _is_dir(entry: os.DirEntry) -> bool:
    try:
        return entry.is_dir()
    except OSError:
        return False


def canonical_url_path(url_path: str) -> str:
    """
    Collapse a leading run of slashes to one.

        >>> canonical_url_path("//evil.example/")
        '/evil.example/'
    """
    return "/" + url_path.lstrip("/")


def parent_url(url_path: str) -> str:
    """
    URL of the parent directory.

        >>> parent_url("/a/b/")
        '/a/'
        >>> parent_url("/a/")
        '/'
    """
    head = url_path.rstrip("/").rsplit("/", 1)[0]
    return head + "/"


def render_listing(directory: str | Path, url_path: str) -> str:
    """
    Render the HTML index page for ``directory``.

    Args:
        directory: Canonical filesystem path of the directory.
        url_path:  Decoded URL path of the directory, ending in "/".

    Returns:
        A complete HTML document.

    Raises:
        OSError: The directory cannot be read.
    """
    url_path = canonical_url_path(url_path)
    title = escape(f"Index of {url_path}")
    items = []

    if url_path != "/":
        items.append(f'<li><a href="{escape(quote(parent_url(url_path)))}">../</a></li>')

    for entry in list_entries(directory):
        items.append(
            f'<li><a href="{escape(entry.href(url_path))}">{escape(entry.display_name)}</a></li>'
        )

    body = "\n".join(items)
    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "<head>\n"
        '<meta charset="utf-8">\n'
        f"<title>{title}</title>\n"
        "</head>\n"
        "<body>\n"
        f"<h1>{title}</h1>\n"
        "<ul>\n"
        f"{body}\n"
        "</ul>\n"
        "</body>\n"
        "</html>\n"
    )
