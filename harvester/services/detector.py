"""Site strategy detection from page HTML.

Given the raw HTML of a fetched page, :func:`detect_strategy` decides which
extraction path applies.  The checks run in a fixed order and the first one
that matches wins:

``"nextjs"``
    A ``<script id="__NEXT_DATA__">`` payload is embedded in the page.  The
    whole page data tree is available as JSON (high confidence).

``"nuxtjs"``
    Nuxt runtime markers are present.  The payload exists but is not parsed
    (medium confidence).

``"gatsby"``
    Gatsby build markers.  The markup is fully pre-rendered, so generic CSS
    extraction applies (medium confidence).

``"blocked"``
    The page is tiny or has none of ``<h1>``, ``<main>``, ``<article>``: a
    bot-challenge page or an empty client shell (high confidence).  This runs
    before the React check so a bare React shell is reported as blocked.

``"react-static"``
    React runtime markers without embedded data (low confidence).

``"static"``
    Anything else.  Medium confidence when the page shows some structure,
    low otherwise.
"""

import json
import re
from typing import Any, Optional

from bs4 import BeautifulSoup

from harvester.models.detection import DetectionResult

# Pages smaller than this are treated as challenge pages / empty shells.
BLOCKED_PAGE_SIZE = 5000

_NUXT_PATTERN = re.compile(r"__NUXT__|__NUXT_DATA__|_nuxt")
_GATSBY_PATTERN = re.compile(r"___gatsby|gatsby-")
_REACT_PATTERN = re.compile(r"data-reactroot|_reactRoot|__REACT_DEVTOOLS")


def unwrap_page_props(raw: Any) -> Optional[dict]:
    """Return the ``pageProps`` object of a ``__NEXT_DATA__`` tree.

    Some Next.js sites nest ``pageProps`` inside another ``pageProps``; the
    inner one is preferred when present.
    """
    if not isinstance(raw, dict):
        return None
    props = raw.get("props")
    outer = props.get("pageProps") if isinstance(props, dict) else None
    if not isinstance(outer, dict):
        return None
    inner = outer.get("pageProps")
    if isinstance(inner, dict) and inner:
        return inner
    return outer


def next_data_text(soup: BeautifulSoup) -> str:
    """Return the raw text of the ``__NEXT_DATA__`` script, or ``""``."""
    script = soup.find("script", id="__NEXT_DATA__")
    if script is None:
        return ""
    return (script.string or script.get_text() or "").strip()


def _detect_next(payload_text: str, size: int) -> DetectionResult:
    has_products = False
    has_navigation = False
    version: Optional[str] = None
    try:
        raw = json.loads(payload_text)
    except ValueError:
        raw = None

    if isinstance(raw, dict):
        version = "detected" if raw.get("buildId") else None
        page_props = unwrap_page_props(raw) or {}
        catalog = page_props.get("catalogData") or {}
        home_products = catalog.get("homeProducts") if isinstance(catalog, dict) else None
        has_products = isinstance(home_products, dict) and isinstance(
            home_products.get("items"), list
        )
        page_data = page_props.get("pageData") or {}
        atlas_nav = page_data.get("atlasNav") if isinstance(page_data, dict) else None
        has_navigation = isinstance(atlas_nav, dict) and bool(atlas_nav.get("content"))

    return DetectionResult(
        strategy="nextjs",
        framework="Next.js",
        framework_version=version,
        has_structured_data=True,
        has_products=has_products,
        has_navigation=has_navigation,
        page_size=size,
        confidence="high",
        recommendation="Use __NEXT_DATA__ structured JSON extraction",
    )


def detect_strategy(html: str, url: str) -> DetectionResult:
    """Classify the rendering / data-embedding strategy of a fetched page.

    Args:
        html: Raw HTML of the page.
        url: The page URL (kept for report context; detection is purely
            HTML-based and never fetches).

    Returns:
        A :class:`DetectionResult`.
    """
    soup = BeautifulSoup(html, "lxml")
    size = len(html.encode("utf-8"))

    payload_text = next_data_text(soup)
    if payload_text:
        return _detect_next(payload_text, size)

    if _NUXT_PATTERN.search(html):
        return DetectionResult(
            strategy="nuxtjs",
            framework="Nuxt.js",
            has_structured_data=True,
            page_size=size,
            confidence="medium",
            recommendation="Parse __NUXT__ or __NUXT_DATA__ payload",
        )

    if _GATSBY_PATTERN.search(html):
        return DetectionResult(
            strategy="gatsby",
            framework="Gatsby",
            page_size=size,
            confidence="medium",
            recommendation="Use static HTML extraction with CSS selectors",
        )

    has_h1 = soup.find("h1") is not None
    if size < BLOCKED_PAGE_SIZE or not (
        has_h1 or soup.find("main") is not None or soup.find("article") is not None
    ):
        return DetectionResult(
            strategy="blocked",
            page_size=size,
            confidence="high",
            recommendation=(
                "Site blocked scraping. Try: 1) Save HTML from browser, "
                "2) Wayback Machine, 3) Firecrawl"
            ),
        )

    if _REACT_PATTERN.search(html):
        return DetectionResult(
            strategy="react-static",
            framework="React",
            page_size=size,
            confidence="low",
            recommendation="JS-rendered React app. Use browser rendering with DOM extraction",
        )

    has_nav = soup.find("nav") is not None
    well_structured = has_h1 or len(soup.find_all("h2")) > 2 or has_nav
    return DetectionResult(
        strategy="static",
        has_products=bool(soup.select('[class*="product"], [data-product]')),
        has_navigation=has_nav,
        page_size=size,
        confidence="medium" if well_structured else "low",
        recommendation="Use CSS selector extraction",
    )


def format_detection_report(url: str, result: DetectionResult) -> str:
    """Render *result* as an indented, human-readable console block."""
    lines = [
        f"  {url}",
        f"    Framework: {result.framework or 'Unknown'}",
        f"    Strategy: {result.recommendation}",
        f"    Confidence: {result.confidence}",
        f"    Page size: {result.page_size / 1024:.0f} KB",
    ]
    if result.has_products:
        lines.append("    Products: detected")
    if result.has_navigation:
        lines.append("    Navigation: detected")
    if result.has_structured_data:
        lines.append("    Structured data: available")
    return "\n".join(lines)
