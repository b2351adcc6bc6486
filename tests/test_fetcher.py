"""Tests for harvester.services.fetcher (SSRF validation and plain-HTTP fetch).

DNS lookups are patched and every HTTP exchange goes through
``httpx.MockTransport``, so no network access is needed.
"""

import asyncio
import socket
from unittest.mock import patch

import httpx
import pytest

from harvester.services import fetcher
from harvester.services.fetcher import MAX_REDIRECTS, download_file, fetch_url, validate_url

_RealAsyncClient = httpx.AsyncClient


def _addrinfo(ip: str):
    return [(socket.AF_INET, socket.SOCK_STREAM, 6, "", (ip, 0))]


def _fetch_with(handler, url="https://example.com/", private_hosts=()):
    """Run fetch_url against *handler*; hosts in *private_hosts* fail validation."""

    def client_factory(**kwargs):
        return _RealAsyncClient(transport=httpx.MockTransport(handler), **kwargs)

    with patch.object(fetcher.httpx, "AsyncClient", side_effect=client_factory), patch.object(
        fetcher, "_is_private_address", side_effect=lambda host: host in private_hosts
    ):
        return asyncio.run(fetch_url(url))


# ---------------------------------------------------------------------------
# validate_url
# ---------------------------------------------------------------------------

class TestValidateUrl:
    def test_scheme_rejected(self):
        with pytest.raises(ValueError, match="Unsupported scheme"):
            validate_url("ftp://example.com/file")

    def test_missing_host(self):
        with pytest.raises(ValueError, match="No hostname"):
            validate_url("https:///path")

    @pytest.mark.parametrize("ip", ["127.0.0.1", "10.1.2.3", "169.254.169.254", "192.168.0.10"])
    def test_private_addresses_rejected(self, ip):
        with patch("harvester.services.fetcher.socket.getaddrinfo", return_value=_addrinfo(ip)):
            with pytest.raises(ValueError, match="private"):
                validate_url("https://internal.example.com/")

    def test_public_address_allowed(self):
        with patch("harvester.services.fetcher.socket.getaddrinfo", return_value=_addrinfo("93.184.216.34")):
            validate_url("https://example.com/")

    def test_unresolvable_host_left_to_fetch(self):
        with patch("harvester.services.fetcher.socket.getaddrinfo", side_effect=socket.gaierror):
            validate_url("https://does-not-resolve.example/")


# ---------------------------------------------------------------------------
# fetch_url
# ---------------------------------------------------------------------------

class TestFetchUrl:
    def test_returns_body_with_browser_user_agent(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, text="<html>ok</html>")

        assert _fetch_with(handler) == "<html>ok</html>"
        assert "Chrome" in seen[0].headers["User-Agent"]

    def test_follows_redirects(self):
        def handler(request):
            if request.url.path == "/old":
                return httpx.Response(301, headers={"location": "/new"})
            return httpx.Response(200, text="moved here")

        assert _fetch_with(handler, url="https://example.com/old") == "moved here"

    def test_redirect_to_private_host_rejected(self):
        def handler(request):
            return httpx.Response(302, headers={"location": "http://internal.test/admin"})

        with pytest.raises(ValueError):
            _fetch_with(handler, private_hosts=("internal.test",))

    def test_too_many_redirects(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(302, headers={"location": f"/hop{len(calls)}"})

        with pytest.raises(RuntimeError, match="redirects"):
            _fetch_with(handler)
        assert len(calls) == MAX_REDIRECTS + 1

    def test_error_status_raises(self):
        def handler(request):
            return httpx.Response(404, text="missing")

        with pytest.raises(httpx.HTTPStatusError):
            _fetch_with(handler)

    def test_oversized_content_length(self):
        def handler(request):
            return httpx.Response(200, headers={"content-length": str(fetcher.MAX_CONTENT_SIZE + 1)}, content=b"x")

        with pytest.raises(fetcher.ContentTooLargeError, match="exceeds"):
            _fetch_with(handler)


# ---------------------------------------------------------------------------
# download_file
# ---------------------------------------------------------------------------

def _download_with(handler, dest, url="https://cdn.example.com/a/logo.png"):
    def client_factory(**kwargs):
        return _RealAsyncClient(transport=httpx.MockTransport(handler), **kwargs)

    with patch.object(fetcher.httpx, "AsyncClient", side_effect=client_factory), patch.object(
        fetcher, "_is_private_address", return_value=False
    ):
        return asyncio.run(download_file(url, dest))


class TestDownloadFile:
    def test_writes_bytes_after_redirect(self, tmp_path):
        def handler(request):
            if request.url.path == "/a/logo.png":
                return httpx.Response(302, headers={"location": "/b/logo.png"})
            return httpx.Response(200, content=b"\x89PNG data")

        dest = tmp_path / "assets" / "logo.png"
        assert _download_with(handler, dest) == 9
        assert dest.read_bytes() == b"\x89PNG data"

    def test_error_status_leaves_no_file(self, tmp_path):
        dest = tmp_path / "assets" / "logo.png"
        with pytest.raises(httpx.HTTPStatusError):
            _download_with(lambda request: httpx.Response(404), dest)
        assert not dest.exists()

    def test_oversized_download_removed(self, tmp_path):
        def handler(request):
            return httpx.Response(200, headers={"content-length": str(fetcher.MAX_CONTENT_SIZE + 1)}, content=b"x")

        dest = tmp_path / "big.png"
        with pytest.raises(fetcher.ContentTooLargeError):
            _download_with(handler, dest)
        assert not dest.exists()
