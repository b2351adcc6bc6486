"""Structured extraction from a Next.js ``__NEXT_DATA__`` page payload.

Each sub-extraction reads a fixed path inside ``pageProps`` and returns an
empty list when the path is missing or holds something unexpected, so one
malformed block never hides the others.
"""

import json
import logging
from typing import Any, List, Optional

from bs4 import BeautifulSoup, Tag

from harvester.models.structured import (
    BrandLogo,
    HeroBanner,
    NavItem,
    Product,
    StructuredPayload,
)
from harvester.services.detector import next_data_text, unwrap_page_props
from harvester.services.normalizer import text_of
from harvester.services.selectors import attr_of

logger = logging.getLogger(__name__)

MAX_NAV_DEPTH = 2
MAX_SHORT_DESCRIPTION = 300
DEFAULT_CURRENCY = "AUD"
DEFAULT_URL_SUFFIX = ".html"
BRAND_NAME_PREFIX = "View information for "


def dig(data: Any, *path: Any) -> Any:
    """Follow *path* (dict keys / list indexes) through *data*; ``None`` if it breaks."""
    current = data
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or not -len(current) <= key < len(current):
                return None
            current = current[key]
        elif isinstance(current, dict):
            current = current.get(key)
        else:
            return None
    return current


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _price(value: Any) -> float:
    try:
        price = float(value)
    except (TypeError, ValueError):
        return 0.0
    return price if price > 0 else 0.0


def _optional_number(value: Any, cast=float):
    try:
        return cast(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _optional_str(value: Any) -> Optional[str]:
    return str(value) if value not in (None, "") else None


def _strip_html(html: Any) -> str:
    if not isinstance(html, str) or not html:
        return ""
    return text_of(BeautifulSoup(html, "lxml"))[:MAX_SHORT_DESCRIPTION]


def _fragments(page_props: dict, *path: str) -> List[BeautifulSoup]:
    """Parse the ``content`` HTML of every CMS block under *path*."""
    soups = []
    for block in _as_list(dig(page_props, *path)):
        content = block.get("content") if isinstance(block, dict) else None
        if isinstance(content, str) and content.strip():
            soups.append(BeautifulSoup(content, "lxml"))
    return soups


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def _product(item: dict, base_url: str) -> Product:
    minimum = dig(item, "price_range", "minimum_price") or {}
    final_price = dig(minimum, "final_price") or {}
    price = _price(dig(final_price, "value"))

    amount_off = _price(dig(minimum, "discount", "amount_off"))
    original_price = price + amount_off if amount_off else None

    name = str(item.get("name") or "")
    url_key = str(item.get("url_key") or "")
    url_suffix = item.get("url_suffix") or DEFAULT_URL_SUFFIX

    return Product(
        name=name,
        sku=str(item.get("sku") or "").split(",")[0].strip(),
        slug=url_key,
        price=price,
        original_price=original_price,
        currency=str(dig(final_price, "currency") or DEFAULT_CURRENCY),
        image_url=str(dig(item, "small_image", "url") or ""),
        image_alt=str(dig(item, "small_image", "label") or name),
        rating=_optional_number(dig(item, "ratings", "average")),
        review_count=_optional_number(dig(item, "ratings", "count"), int),
        offer_flag=_optional_str(
            dig(item, "offers", "bonus", "type") or dig(item, "promotion_data", "name")
        ),
        offer_text=_optional_str(dig(item, "offers", "bonus", "title")),
        short_description=_strip_html(dig(item, "short_description", "html")),
        url=f"{base_url}/{url_key}{url_suffix}",
    )


def extract_products(page_props: dict, base_url: str) -> List[Product]:
    products: List[Product] = []
    for item in _as_list(dig(page_props, "catalogData", "homeProducts", "items")):
        if not isinstance(item, dict):
            continue
        try:
            products.append(_product(item, base_url))
        except (TypeError, ValueError) as exc:
            logger.debug("Skipping malformed product item: %s", exc)
    return products


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------

def _is_root_group(item: Any) -> bool:
    """True when the item's ``group_type`` is 0 (numeric or string)."""
    if not isinstance(item, dict):
        return False
    value = item.get("group_type")
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == 0
    try:
        return float(str(value).strip()) == 0
    except ValueError:
        return False


def parse_nav_item(item: dict, depth: int, max_depth: int = MAX_NAV_DEPTH) -> NavItem:
    """Build a :class:`NavItem`, recursing into children while ``depth < max_depth``."""
    node = NavItem(
        id=str(item.get("id") or ""),
        label=str(item.get("title") or ""),
        url=str(item.get("url") or ""),
        level=depth,
    )
    children = _as_list(item.get("children"))
    if depth < max_depth and children:
        node.children = [
            parse_nav_item(child, depth + 1, max_depth)
            for child in children
            if _is_root_group(child) and child.get("title") and child.get("url")
        ]
    return node


def extract_navigation(page_props: dict) -> List[NavItem]:
    content = dig(page_props, "pageData", "atlasNav", "content")
    if not content:
        return []
    try:
        tree = json.loads(content) if isinstance(content, str) else content
    except ValueError as exc:
        logger.debug("Navigation payload is not valid JSON: %s", exc)
        return []

    main_nav = dig(tree, 0, "children", 0, "children")
    items = [parse_nav_item(item, 1) for item in _as_list(main_nav) if _is_root_group(item)]
    return [item for item in items if item.label and item.url]


# ---------------------------------------------------------------------------
# CMS HTML blocks
# ---------------------------------------------------------------------------

def extract_hero_banners(page_props: dict) -> List[HeroBanner]:
    banners: List[HeroBanner] = []
    for soup in _fragments(page_props, "categoryData", "homeCmsSlider", "items"):
        for slide in soup.select(".hn-slide"):
            desktop = slide.select_one("img.hn-is-desktop") or slide.find("img")
            src = attr_of(desktop, "src")
            if not src:
                continue
            alt = attr_of(desktop, "alt")
            banners.append(
                HeroBanner(
                    headline=alt,
                    image_desktop=src,
                    image_mobile=attr_of(slide.select_one("img.hn-is-mobile"), "src") or None,
                    link_url=attr_of(slide.find("a"), "href"),
                    alt_text=alt,
                )
            )
    return banners


def extract_footer_links(page_props: dict) -> List[NavItem]:
    links: List[NavItem] = []
    seen: set = set()
    for soup in _fragments(page_props, "categoryData", "pageFooterNavigation", "items"):
        for anchor in soup.select("footer a, .mega-footer a"):
            label = text_of(anchor)
            href = attr_of(anchor, "href")
            if not href or not 1 < len(label) < 60 or label in seen:
                continue
            seen.add(label)
            links.append(NavItem(id=f"footer-{len(links) + 1}", label=label, url=href, level=1))
    return links


def extract_brand_logos(page_props: dict) -> List[BrandLogo]:
    logos: List[BrandLogo] = []
    seen: set = set()
    for soup in _fragments(page_props, "categoryData", "homeBrands", "items"):
        for node in soup.select('a[data-gtm-tracking="brand logo"], .brand-logo'):
            if node.name == "img":
                img: Optional[Tag] = node
                anchor = node.parent if isinstance(node.parent, Tag) and node.parent.name == "a" else None
            else:
                img = node.find("img")
                anchor = node

            name = (attr_of(anchor, "title") or attr_of(img, "alt")).replace(BRAND_NAME_PREFIX, "").strip()
            logo_url = attr_of(img, "src")
            if not name or not logo_url or name in seen:
                continue
            seen.add(name)
            logos.append(BrandLogo(name=name, logo_url=logo_url, link_url=attr_of(anchor, "href")))
    return logos


def extract_structured_payload(html: str, base_url: str) -> Optional[StructuredPayload]:
    """Return the structured payload embedded in *html*, or ``None``.

    ``None`` means there is no ``__NEXT_DATA__`` script, it is not valid
    JSON, or it carries no ``pageProps``.
    """
    payload_text = next_data_text(BeautifulSoup(html, "lxml"))
    if not payload_text:
        return None
    try:
        raw = json.loads(payload_text)
    except ValueError as exc:
        logger.warning("Invalid __NEXT_DATA__ payload: %s", exc)
        return None

    page_props = unwrap_page_props(raw)
    if page_props is None:
        return None

    base_url = base_url.rstrip("/")
    return StructuredPayload(
        source="next",
        products=extract_products(page_props, base_url),
        navigation=extract_navigation(page_props),
        hero_banners=extract_hero_banners(page_props),
        footer_links=extract_footer_links(page_props),
        brand_logos=extract_brand_logos(page_props),
        raw=raw,
    )
