"""
Unit tests for URL path resolution.
"""

import os
from pathlib import Path

import pytest

from fileserver.handlers.resolver import (
    PathResolver,
    TargetKind,
    redirect_location,
)
from fileserver.http.errors import NotFoundError


class TestResolveFiles:
    """Regular files inside the root."""

    def test_file(self, site: Path):
        target = PathResolver(site).resolve("/hello.txt")

        assert target.kind is TargetKind.FILE
        assert target.fs_path == (site / "hello.txt").resolve()
        assert target.content_type == "text/plain"

    def test_nested_file(self, site: Path):
        target = PathResolver(site).resolve("/docs/a.txt")
        assert target.fs_path.read_text() == "a"

    def test_content_type_from_extension(self, site: Path):
        assert PathResolver(site).resolve("/style.css").content_type == "text/css"

    def test_missing_file(self, site: Path):
        with pytest.raises(NotFoundError):
            PathResolver(site).resolve("/nope.txt")

    def test_missing_parent(self, site: Path):
        with pytest.raises(NotFoundError):
            PathResolver(site).resolve("/nope/deeper.txt")

    def test_file_used_as_directory(self, site: Path):
        with pytest.raises(NotFoundError):
            PathResolver(site).resolve("/hello.txt/x")

    @pytest.mark.parametrize("url_path", ["/hello.txt/", "/docs/a.txt/", "/hello.txt//"])
    def test_file_with_trailing_slash(self, site: Path, url_path: str):
        with pytest.raises(NotFoundError):
            PathResolver(site).resolve(url_path)

    def test_nul_byte(self, site: Path):
        with pytest.raises(NotFoundError):
            PathResolver(site).resolve("/hello\x00.txt")


class TestResolveDirectories:
    """Directories: redirect, index file, or listing."""

    def test_missing_slash_redirects(self, site: Path):
        target = PathResolver(site).resolve("/docs")

        assert target.kind is TargetKind.REDIRECT
        assert target.location == "/docs/"
        assert target.is_directory

    def test_redirect_location_is_encoded(self, site: Path):
        target = PathResolver(site).resolve("/with index")
        assert target.location == "/with%20index/"

    def test_index_file_served(self, site: Path):
        target = PathResolver(site).resolve("/with index/")

        assert target.kind is TargetKind.FILE
        assert target.fs_path.name == "index.html"
        assert target.content_type == "text/html"

    def test_listing_without_index(self, site: Path):
        target = PathResolver(site).resolve("/docs/")

        assert target.kind is TargetKind.LISTING
        assert target.fs_path == (site / "docs").resolve()

    def test_root(self, site: Path):
        target = PathResolver(site).resolve("/")

        assert target.kind is TargetKind.LISTING
        assert target.fs_path == site.resolve()

    def test_index_that_is_a_directory_is_ignored(self, site: Path):
        (site / "empty" / "index.html").mkdir()
        assert PathResolver(site).resolve("/empty/").kind is TargetKind.LISTING


class TestRootBoundary:
    """Nothing outside the root is ever returned."""

    @pytest.mark.parametrize("url_path", [
        "/../secret.txt",
        "/../../etc/passwd",
        "/docs/../../secret.txt",
        "/..",
    ])
    def test_traversal_is_not_found(self, site: Path, outside_file: Path, url_path: str):
        with pytest.raises(NotFoundError):
            PathResolver(site).resolve(url_path)

    def test_dotdot_that_stays_inside(self, site: Path):
        target = PathResolver(site).resolve("/docs/../hello.txt")
        assert target.fs_path == (site / "hello.txt").resolve()

    def test_symlink_escaping_root(self, site: Path, outside_file: Path):
        os.symlink(outside_file, site / "leak.txt")

        with pytest.raises(NotFoundError):
            PathResolver(site).resolve("/leak.txt")

    def test_symlinked_directory_escaping_root(self, site: Path, outside_file: Path):
        os.symlink(outside_file.parent, site / "up")

        with pytest.raises(NotFoundError):
            PathResolver(site).resolve("/up/secret.txt")

    def test_symlink_inside_root(self, site: Path):
        os.symlink(site / "hello.txt", site / "alias.txt")

        target = PathResolver(site).resolve("/alias.txt")
        assert target.fs_path == (site / "hello.txt").resolve()

    def test_symlink_loop(self, site: Path):
        os.symlink(site / "loop", site / "loop")

        with pytest.raises(NotFoundError):
            PathResolver(site).resolve("/loop")

    def test_index_symlink_escaping_root(self, site: Path, outside_file: Path):
        os.symlink(outside_file, site / "empty" / "index.html")
        assert PathResolver(site).resolve("/empty/").kind is TargetKind.LISTING

    def test_contains(self, site: Path, outside_file: Path):
        resolver = PathResolver(site)

        assert resolver.contains(site.resolve())
        assert resolver.contains((site / "docs" / "a.txt").resolve())
        assert not resolver.contains(outside_file.resolve())

    def test_sibling_with_common_prefix(self, tmp_path: Path, site: Path):
        """/srv/site-other is not inside /srv/site."""
        sibling = tmp_path / "site-other"
        sibling.mkdir()

        assert not PathResolver(site).contains(sibling.resolve())


class TestResolverSetup:

    def test_root_must_be_directory(self, site: Path):
        with pytest.raises(ValueError):
            PathResolver(site / "hello.txt")

    def test_root_is_canonical(self, site: Path):
        resolver = PathResolver(str(site / "docs" / ".."))
        assert resolver.root_dir == site.resolve()


class TestRedirectLocation:

    def test_appends_slash(self):
        assert redirect_location("/docs") == "/docs/"

    def test_encodes(self):
        assert redirect_location("/my docs/é") == "/my%20docs/%C3%A9/"

    def test_collapses_leading_slashes(self):
        """Never produce a protocol-relative "//host/" location."""
        assert redirect_location("//evil.example") == "/evil.example/"
