"""Plain-HTTP page fetcher.

Every hop of a redirect chain is run through :func:`validate_url` before it is
requested, so a public URL cannot bounce the harvester onto an internal host.
The browser fetcher shares the same validation and size cap.
"""

import ipaddress
import logging
import socket
from contextlib import asynccontextmanager
from pathlib import Path
from urllib.parse import urljoin, urlparse

import httpx

logger = logging.getLogger(__name__)

MAX_CONTENT_SIZE = 10 * 1024 * 1024  # 10 MB
TIMEOUT = 10  # seconds
MAX_REDIRECTS = 10
ALLOWED_SCHEMES = ("http", "https")

# Many marketing sites serve a challenge page to non-browser user agents.
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)
REQUEST_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


class ContentTooLargeError(RuntimeError):
    """A page body is larger than :data:`MAX_CONTENT_SIZE`."""


def _resolve(hostname: str) -> list:
    """Addresses *hostname* resolves to; empty when the lookup fails."""
    try:
        infos = socket.getaddrinfo(hostname, None)
    except socket.gaierror:
        return []

    addresses = []
    for *_, sockaddr in infos:
        # IPv6 results may carry a zone suffix ("fe80::1%eth0").
        try:
            addresses.append(ipaddress.ip_address(str(sockaddr[0]).split("%")[0]))
        except ValueError:
            continue
    return addresses


def _is_private_address(hostname: str) -> bool:
    """True when any address of *hostname* is private, loopback, link-local or reserved.

    Unresolvable hosts pass here; the request itself then fails to connect.
    """
    return any(
        addr.is_private or addr.is_loopback or addr.is_link_local or addr.is_reserved
        for addr in _resolve(hostname)
    )


def validate_url(url: str) -> None:
    """Raise ValueError unless *url* is an http(s) URL on a public host."""
    parsed = urlparse(url)
    if parsed.scheme not in ALLOWED_SCHEMES:
        raise ValueError(f"Unsupported scheme {parsed.scheme!r}; only http and https pages can be harvested.")
    if not parsed.hostname:
        raise ValueError(f"No hostname in {url!r}.")
    if _is_private_address(parsed.hostname):
        raise ValueError(f"{parsed.hostname} resolves to a private or internal address.")


def check_size(size: int) -> None:
    """Raise :class:`ContentTooLargeError` when *size* bytes is over the cap."""
    if size > MAX_CONTENT_SIZE:
        raise ContentTooLargeError(f"Page body exceeds {MAX_CONTENT_SIZE // (1024 * 1024)} MB.")


def _check_declared_size(response: httpx.Response) -> None:
    declared = response.headers.get("content-length", "")
    if declared.isdigit():
        check_size(int(declared))


async def _read_body(response: httpx.Response) -> str:
    _check_declared_size(response)

    body = bytearray()
    async for chunk in response.aiter_bytes():
        body.extend(chunk)
        check_size(len(body))
    return body.decode(response.encoding or "utf-8", errors="replace")


@asynccontextmanager
async def _open(client: httpx.AsyncClient, url: str):
    """Follow redirects from *url* and yield the final successful response.

    Each redirect target is validated before it is requested.
    """
    current_url = url
    for hop in range(MAX_REDIRECTS + 1):
        async with client.stream("GET", current_url) as response:
            if not response.is_redirect:
                response.raise_for_status()
                yield response
                return
            location = response.headers.get("location", "")

        current_url = urljoin(current_url, location)
        validate_url(current_url)
        logger.debug("Redirect %d for %s → %s", hop + 1, url, current_url)

    raise RuntimeError(f"Gave up on {url} after {MAX_REDIRECTS} redirects.")


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(follow_redirects=False, timeout=TIMEOUT, headers=REQUEST_HEADERS)


async def fetch_url(url: str) -> str:
    """Fetch *url* over plain HTTP and return the decoded body.

    Raises:
        ValueError: if the URL or any redirect target fails validation.
        httpx.HTTPError: on network errors and non-2xx responses.
        ContentTooLargeError: if the body exceeds MAX_CONTENT_SIZE.
        RuntimeError: if the redirect chain is longer than MAX_REDIRECTS.
    """
    validate_url(url)
    async with _client() as client:
        async with _open(client, url) as response:
            html = await _read_body(response)
    logger.info("Fetched %s (%d bytes)", url, len(html))
    return html


async def download_file(url: str, dest: Path) -> int:
    """Stream *url* into *dest* and return the number of bytes written.

    Same validation, redirect handling and size cap as :func:`fetch_url`.
    A partial file is removed when the download fails.
    """
    validate_url(url)
    dest.parent.mkdir(parents=True, exist_ok=True)
    size = 0
    try:
        async with _client() as client:
            async with _open(client, url) as response:
                _check_declared_size(response)
                with dest.open("wb") as handle:
                    async for chunk in response.aiter_bytes():
                        size += len(chunk)
                        check_size(size)
                        handle.write(chunk)
    except Exception:
        dest.unlink(missing_ok=True)
        raise
    logger.debug("Downloaded %s → %s (%d bytes)", url, dest, size)
    return size
