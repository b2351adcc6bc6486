"""Tests for harvester.services.normalizer."""

import pytest

from harvester.services.normalizer import (
    asset_file_name,
    derive_slug,
    file_name_from_url,
    guess_content_type,
    make_absolute,
    origin_of,
    parse_dimension,
)

_BASE = "https://example.com/shop/page"


class TestMakeAbsolute:
    def test_empty_ref(self):
        assert make_absolute("", _BASE) == ""

    def test_protocol_relative(self):
        assert make_absolute("//cdn.example.net/a.png", _BASE) == "https://cdn.example.net/a.png"

    def test_root_relative_uses_origin(self):
        assert make_absolute("/img/a.png", _BASE) == "https://example.com/img/a.png"

    def test_bare_relative_is_attached_to_origin_root(self):
        assert make_absolute("img/a.png", _BASE) == "https://example.com/img/a.png"

    def test_parent_segments_are_not_resolved(self):
        assert make_absolute("../a.png", _BASE) == "https://example.com/../a.png"

    def test_absolute_unchanged(self):
        assert make_absolute("https://other.org/a.png", _BASE) == "https://other.org/a.png"

    def test_malformed_base_returns_ref(self):
        assert make_absolute("/img/a.png", "not a url") == "/img/a.png"

    def test_origin_keeps_port(self):
        assert make_absolute("/x", "http://localhost:8080/a/b") == "http://localhost:8080/x"


class TestOriginOf:
    def test_rejects_relative(self):
        with pytest.raises(ValueError):
            origin_of("/just/a/path")


class TestDeriveSlug:
    def test_root_is_home(self):
        assert derive_slug("https://example.com/") == "home"
        assert derive_slug("https://example.com") == "home"

    def test_segments_joined(self):
        assert derive_slug("https://example.com/products/shoes/") == "products/shoes"

    def test_fragment_and_query_ignored(self):
        assert derive_slug("https://example.com/about#team") == "about"
        assert derive_slug("https://example.com/search?q=x") == "search"


class TestFileHelpers:
    def test_file_name_strips_query(self):
        assert file_name_from_url("https://cdn.example.com/a/b.png?w=200") == "b.png"

    def test_file_name_default(self):
        assert file_name_from_url("https://cdn.example.com/") == "image.jpg"
        assert file_name_from_url("https://cdn.example.com/", default="hero.jpg") == "hero.jpg"

    def test_asset_names_unique_per_url(self):
        first = asset_file_name("https://cdn.example.com/a/logo.png")
        second = asset_file_name("https://cdn.example.com/b/logo.png")
        assert first != second
        assert first.endswith("-logo.png") and second.endswith("-logo.png")
        assert asset_file_name("https://cdn.example.com/a/logo.png") == first

    def test_content_type_by_extension(self):
        assert guess_content_type("photo.JPG") == "image/jpeg"
        assert guess_content_type("logo.svg") == "image/svg+xml"
        assert guess_content_type("https://x.com/clip.webm?x=1") == "video/webm"

    def test_content_type_unknown(self):
        assert guess_content_type("archive.bin") == "application/octet-stream"
        assert guess_content_type("noext", default="image/jpeg") == "image/jpeg"

    @pytest.mark.parametrize(
        "value, expected",
        [("300", 300), ("300px", 300), (" 42 ", 42), ("auto", 0), (None, 0), ("", 0)],
    )
    def test_parse_dimension(self, value, expected):
        assert parse_dimension(value) == expected
