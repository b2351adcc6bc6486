"""Taxonomy hints: breadcrumbs, meta categories, schema.org signals, concepts."""

import json
import logging
from types import MappingProxyType
from typing import Any, Iterable, List, Tuple

from bs4 import BeautifulSoup, Tag

from harvester.models.taxonomy import TaxonomyHints
from harvester.services.normalizer import text_of, url_path_segments
from harvester.services.selectors import attr_of, first_nonempty

logger = logging.getLogger(__name__)

BREADCRUMB_SELECTORS = (
    'nav[aria-label="breadcrumb"] a',
    'nav[aria-label="breadcrumb"] span',
    ".breadcrumb a",
    ".breadcrumb span",
    ".breadcrumbs a",
    ".breadcrumbs span",
    '[itemtype*="BreadcrumbList"] [itemprop="name"]',
    "ol.breadcrumb li",
    "ul.breadcrumb li",
)

CATEGORY_META_SELECTORS = (
    'meta[property="article:section"]',
    'meta[property="product:category"]',
    'meta[name="category"]',
    'meta[name="keywords"]',
)

# keyword (matched as a substring of any lower-cased hint) -> concept tags
CONCEPT_MAPPINGS = MappingProxyType(
    {
        "airlink": ("airlink-routers",),
        "router": ("airlink-routers",),
        "xr": ("xr-series", "airlink-routers"),
        "rv": ("rv-series", "airlink-routers"),
        "module": ("iot-modules",),
        "hl": ("hl-series", "iot-modules"),
        "wp": ("wp-series", "iot-modules"),
        "gateway": ("iot-gateways",),
        "connectivity": ("smart-connectivity",),
        "esim": ("smart-connectivity",),
        "fleet": ("transportation",),
        "vehicle": ("transportation",),
        "transit": ("transportation",),
        "industrial": ("industrial-iot",),
        "manufacturing": ("industrial-iot",),
        "enterprise": ("enterprise",),
        "business": ("enterprise",),
        "safety": ("public-safety",),
        "first responder": ("public-safety",),
        "emergency": ("public-safety",),
        "energy": ("energy-utilities",),
        "utility": ("energy-utilities",),
        "grid": ("energy-utilities",),
    }
)

MAX_BREADCRUMB_LENGTH = 100
MAX_CATEGORY_LENGTH = 50
MAX_META_CATEGORIES = 10


def _breadcrumb_texts(nodes: List[Tag]) -> List[str]:
    texts: List[str] = []
    for node in nodes:
        text = text_of(node)
        if text and len(text) < MAX_BREADCRUMB_LENGTH and text not in texts:
            texts.append(text)
    return texts


def extract_breadcrumbs(soup: BeautifulSoup) -> List[str]:
    """Return breadcrumb labels from the first selector family that has any."""
    return first_nonempty(soup, BREADCRUMB_SELECTORS, _breadcrumb_texts)


def extract_meta_categories(soup: BeautifulSoup) -> List[str]:
    """Return comma-split category values from category-like meta tags (uncapped)."""
    categories: List[str] = []
    for selector in CATEGORY_META_SELECTORS:
        content = attr_of(soup.select_one(selector), "content")
        if not content:
            continue
        for part in content.split(","):
            part = part.strip()
            if 0 < len(part) < MAX_CATEGORY_LENGTH:
                categories.append(part)
    return categories


def _json_ld_nodes(data: Any) -> Iterable[dict]:
    if isinstance(data, list):
        for item in data:
            yield from _json_ld_nodes(item)
    elif isinstance(data, dict):
        yield data
        graph = data.get("@graph")
        if isinstance(graph, list):
            yield from _json_ld_nodes(graph)


def _has_type(node: dict, type_name: str) -> bool:
    declared = node.get("@type")
    if isinstance(declared, list):
        return type_name in declared
    return declared == type_name


def extract_schema_org(soup: BeautifulSoup) -> Tuple[List[str], List[str]]:
    """Return ``(categories, breadcrumbs)`` found in JSON-LD script blocks.

    Invalid JSON-LD blocks are skipped.
    """
    categories: List[str] = []
    breadcrumbs: List[str] = []

    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(script.string or script.get_text() or "{}")
        except ValueError as exc:
            logger.debug("Skipping invalid JSON-LD block: %s", exc)
            continue

        for node in _json_ld_nodes(data):
            if _has_type(node, "Product") and node.get("category"):
                category = node["category"]
                values = category if isinstance(category, list) else [category]
                categories.extend(v for v in values if isinstance(v, str))
            if _has_type(node, "BreadcrumbList"):
                elements = node.get("itemListElement")
                for item in elements if isinstance(elements, list) else []:
                    name = item.get("name") if isinstance(item, dict) else None
                    if isinstance(name, str) and name:
                        breadcrumbs.append(name)

    return categories, breadcrumbs


def suggest_concepts(hints: Iterable[str]) -> List[str]:
    """Map free-text hints to concept tags via :data:`CONCEPT_MAPPINGS`."""
    concepts: List[str] = []
    for hint in (h.lower() for h in hints if h):
        for keyword, mapped in CONCEPT_MAPPINGS.items():
            if keyword in hint:
                concepts.extend(c for c in mapped if c not in concepts)
    return concepts


def extract_taxonomy(
    html: str, soup: BeautifulSoup, url: str, extra_hints: Iterable[str] = ()
) -> TaxonomyHints:
    """Collect classification signals for one page.

    *extra_hints* are caller-supplied strings (a harvest config's per-URL
    ``hints`` values) that take part in concept matching only.
    """
    url_path = url_path_segments(url)
    breadcrumbs = extract_breadcrumbs(soup)
    meta_categories = extract_meta_categories(soup)

    schema_categories, schema_breadcrumbs = extract_schema_org(soup)
    meta_categories.extend(schema_categories)
    for crumb in schema_breadcrumbs:
        if crumb not in breadcrumbs:
            breadcrumbs.append(crumb)

    unique_categories = list(dict.fromkeys(meta_categories))[:MAX_META_CATEGORIES]

    title = text_of(soup.find("title"))
    h1 = text_of(soup.find("h1"))
    hints = [*breadcrumbs, *url_path, *meta_categories, h1, title, *extra_hints]

    return TaxonomyHints(
        breadcrumbs=breadcrumbs,
        url_path=url_path,
        meta_categories=unique_categories,
        suggested_concepts=suggest_concepts(hints),
    )
