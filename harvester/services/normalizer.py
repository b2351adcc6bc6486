"""Data normalisation utilities: URL resolution, slugs, text and file names."""

import hashlib
import re
from urllib.parse import urlparse

_WHITESPACE_RE = re.compile(r"\s+")

_CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "webp": "image/webp",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "ico": "image/x-icon",
}


def origin_of(base_url: str) -> str:
    """Return ``scheme://host[:port]`` for *base_url*.

    Raises:
        ValueError: if *base_url* has no scheme or host.
    """
    parsed = urlparse(base_url)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Not an absolute URL: {base_url!r}")
    return f"{parsed.scheme}://{parsed.netloc}"


def make_absolute(ref: str, base_url: str) -> str:
    """Turn *ref* into an absolute URL using the origin of *base_url*.

    Rules, in order:

    * empty *ref* → ``""``
    * protocol-relative (``//host/path``) → ``https:`` prefix
    * root-relative (``/path``) → origin + *ref*
    * anything not starting with ``http`` → origin + ``/`` + *ref*
    * otherwise *ref* is returned unchanged

    This is a deliberate approximation of RFC 3986 resolution: relative refs
    are attached to the origin root and ``../`` segments are not resolved.
    When *base_url* is malformed, *ref* is returned unchanged.
    """
    if not ref:
        return ""
    try:
        origin = origin_of(base_url)
    except ValueError:
        return ref

    if ref.startswith("//"):
        return f"https:{ref}"
    if ref.startswith("/"):
        return f"{origin}{ref}"
    if not ref.startswith("http"):
        return f"{origin}/{ref}"
    return ref


def derive_slug(url: str) -> str:
    """Return the page slug for *url*: path segments joined by ``/``.

    The fragment and query are ignored; the site root maps to ``"home"``.
    """
    path = urlparse(url).path.split("#", 1)[0]
    parts = [segment for segment in path.split("/") if segment]
    return "/".join(parts) if parts else "home"


def url_path_segments(url: str) -> list[str]:
    return [segment for segment in urlparse(url).path.split("/") if segment]


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace to single spaces and trim the ends."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def text_of(node) -> str:
    """Return the visible text of a BeautifulSoup node, whitespace-collapsed."""
    if node is None:
        return ""
    return collapse_whitespace(node.get_text(" "))


def file_name_from_url(url: str, default: str = "image.jpg") -> str:
    """Return the last path segment of *url* without query string."""
    name = urlparse(url).path.rstrip("/").split("/")[-1]
    return name or default


def asset_file_name(url: str) -> str:
    """``https://cdn.x/a/logo.png`` → ``<8 hex chars>-logo.png``.

    The URL hash keeps same-named files from different paths apart.
    """
    digest = hashlib.sha1(url.encode("utf-8")).hexdigest()[:8]
    return f"{digest}-{file_name_from_url(url)}"


def guess_content_type(file_name: str, default: str = "application/octet-stream") -> str:
    """Guess a MIME type from the extension of *file_name* (or a URL)."""
    name = file_name.split("?", 1)[0]
    ext = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    return _CONTENT_TYPES.get(ext, default)


def parse_dimension(value) -> int:
    """Parse an HTML ``width``/``height`` attribute (``"300"``, ``"300px"``).

    Returns 0 when the attribute is absent or has no leading digits.
    """
    if not value:
        return 0
    match = re.match(r"\s*(\d+)", str(value))
    return int(match.group(1)) if match else 0
