"""Branding extraction: logo, favicon, hero image, colours, fonts, product shots."""

import re
from collections import Counter
from typing import List, Optional, Tuple
from urllib.parse import unquote_plus

from bs4 import BeautifulSoup, Tag

from harvester.models.branding import Branding
from harvester.services.normalizer import make_absolute, parse_dimension
from harvester.services.selectors import attr_of, first_result

LOGO_SELECTORS = (
    'header img[alt*="logo" i]',
    'header img[class*="logo" i]',
    'nav img[alt*="logo" i]',
    ".logo img",
    "#logo img",
    'a[href="/"] img',
    "header a img:first-child",
    'img[alt*="logo" i]',
    'img[class*="logo" i]',
    'img[src*="logo" i]',
)

HERO_SELECTORS = (
    ".hero img",
    ".banner img",
    '[class*="hero"] img',
    '[class*="banner"] img',
    "section:first-of-type img",
    ".jumbotron img",
    '[style*="background-image"]',
)

FAVICON_RELS = ("icon", "shortcut icon", "apple-touch-icon")

GENERIC_FONT_NAMES = frozenset(
    {"inherit", "sans-serif", "serif", "monospace", "system-ui", "-apple-system"}
)

IGNORED_COLORS = frozenset({"#fff", "#ffffff", "#000", "#000000", "#333", "#333333"})

MAX_PRODUCT_IMAGES = 10

_TRACKING_KEYWORDS = ("tracking", "pixel", "1x1", "spacer")

_COLOR_RE = re.compile(r"#[0-9A-Fa-f]{6}\b|#[0-9A-Fa-f]{3}\b|rgb\([^)]+\)")
_BG_IMAGE_RE = re.compile(
    r"background-image:\s*url\(\s*['\"]?([^'\")\s]+)['\"]?\s*\)", re.IGNORECASE
)
_FONT_FAMILY_RE = re.compile(r"font-family\s*:\s*([^;}]+)", re.IGNORECASE)
_FONT_FACE_RE = re.compile(r"@font-face\s*{([^}]*)}", re.IGNORECASE)
_GOOGLE_FAMILY_RE = re.compile(r"family=([^&:]+)")


def _image_src(img: Tag) -> str:
    return attr_of(img, "src", "data-src", "data-lazy-src")


def is_tracking_pixel(url: str, width: int = 0, height: int = 0) -> bool:
    """Return True for beacon / spacer images that carry no content.

    A ``.gif`` counts as a pixel only when an explicit width or height below
    10px was given (0 means the attribute was absent).
    """
    lowered = url.lower()
    if lowered.startswith("data:") or "data:image" in lowered:
        return True
    if any(keyword in lowered for keyword in _TRACKING_KEYWORDS):
        return True
    if ".gif" in lowered and (0 < width < 10 or 0 < height < 10):
        return True
    return False


def _style_text(soup: BeautifulSoup) -> str:
    return "\n".join(style.get_text() for style in soup.find_all("style"))


def _extract_logo(soup: BeautifulSoup, base_url: str) -> Optional[str]:
    def pick(img: Tag) -> Optional[str]:
        src = _image_src(img)
        if not src or is_tracking_pixel(src):
            return None
        return make_absolute(src, base_url)

    return first_result(soup, LOGO_SELECTORS, pick)


def _extract_favicon(soup: BeautifulSoup, base_url: str) -> Optional[str]:
    for rel in FAVICON_RELS:
        for link in soup.find_all("link", href=True):
            rel_value = " ".join(link.get("rel") or []).lower()
            if rel_value == rel:
                return make_absolute(str(link["href"]).strip(), base_url) or None
    return None


def _extract_hero_image(soup: BeautifulSoup, base_url: str) -> Optional[str]:
    def pick(node: Tag) -> Optional[str]:
        src = _image_src(node)
        if src:
            return make_absolute(src, base_url)
        match = _BG_IMAGE_RE.search(node.get("style", "") or "")
        if match:
            return make_absolute(match.group(1), base_url)
        return None

    return first_result(soup, HERO_SELECTORS, pick)


def rank_colors(css: str) -> List[str]:
    """Return colour tokens in *css* ranked by occurrence count.

    Ties keep first-seen order.  Near-white / black / grey tokens from
    :data:`IGNORED_COLORS` are dropped before ranking.
    """
    counts = Counter(
        token for token in _COLOR_RE.findall(css) if token.lower() not in IGNORED_COLORS
    )
    # Counter preserves insertion order and sorted() is stable.
    return [color for color, _ in sorted(counts.items(), key=lambda item: -item[1])]


def _extract_colors(
    soup: BeautifulSoup,
) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    theme = soup.find("meta", attrs={"name": "theme-color"})
    primary = attr_of(theme, "content") or None
    if primary and primary.lower() in IGNORED_COLORS:
        primary = None

    ranked = [c for c in rank_colors(_style_text(soup)) if c != primary]
    if primary is None and ranked:
        primary = ranked.pop(0)
    secondary = ranked[0] if len(ranked) > 0 else None
    accent = ranked[1] if len(ranked) > 1 else None
    return primary, secondary, accent


def _first_family(declaration: str) -> str:
    return declaration.split(",")[0].strip().strip("'\"").strip()


def collect_font_families(soup: BeautifulSoup) -> List[str]:
    """Return font family names in discovery order, deduplicated.

    Sources are inline ``font-family`` declarations, ``@font-face`` blocks and
    Google Fonts ``<link>`` tags, in that order.  Generic CSS keywords are
    excluded.
    """
    css = _style_text(soup)
    candidates: List[str] = []

    for match in _FONT_FAMILY_RE.finditer(css):
        candidates.append(_first_family(match.group(1)))

    for block in _FONT_FACE_RE.finditer(css):
        inner = _FONT_FAMILY_RE.search(block.group(1))
        if inner:
            candidates.append(_first_family(inner.group(1)))

    for link in soup.find_all("link", href=True):
        href = str(link["href"])
        if "fonts.googleapis.com" not in href:
            continue
        for match in _GOOGLE_FAMILY_RE.finditer(href):
            candidates.append(unquote_plus(match.group(1)).strip())

    families: List[str] = []
    for name in candidates:
        if name and name.lower() not in GENERIC_FONT_NAMES and name not in families:
            families.append(name)
    return families


def _extract_product_images(soup: BeautifulSoup, base_url: str) -> List[str]:
    images: List[str] = []
    for img in soup.find_all("img"):
        src = _image_src(img)
        if not src:
            continue
        absolute = make_absolute(src, base_url)
        width = parse_dimension(img.get("width"))
        height = parse_dimension(img.get("height"))
        if is_tracking_pixel(absolute, width, height):
            continue

        alt = attr_of(img, "alt").lower()
        class_name = attr_of(img, "class").lower()
        parent_class = attr_of(img.parent, "class").lower() if isinstance(img.parent, Tag) else ""
        is_product = (
            "product" in alt
            or "product" in class_name
            or "product" in parent_class
            or "product" in absolute.lower()
            or "/wp-content/uploads/" in absolute
            or (width > 200 and height > 200)
        )
        if is_product and absolute not in images:
            images.append(absolute)
            if len(images) >= MAX_PRODUCT_IMAGES:
                break
    return images


def extract_branding(html: str, soup: BeautifulSoup, base_url: str) -> Branding:
    """Infer the visual identity of a site from one page.

    Args:
        html: Raw HTML (kept for callers that only hold the string).
        soup: Parsed document for *html*.
        base_url: Origin used to absolutise relative references.
    """
    primary, secondary, accent = _extract_colors(soup)
    fonts = collect_font_families(soup)

    hero = _extract_hero_image(soup, base_url)
    if hero is None:
        og_image = attr_of(soup.find("meta", attrs={"property": "og:image"}), "content")
        hero = make_absolute(og_image, base_url) or None

    return Branding(
        logo_url=_extract_logo(soup, base_url),
        favicon_url=_extract_favicon(soup, base_url),
        primary_color=primary,
        secondary_color=secondary,
        accent_color=accent,
        heading_font=fonts[0] if fonts else None,
        body_font=fonts[1] if len(fonts) > 1 else (fonts[0] if fonts else None),
        hero_image_url=hero,
        product_images=_extract_product_images(soup, base_url),
    )
