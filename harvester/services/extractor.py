"""Page assembly: run every field extractor against one fetched document."""

from typing import Iterable, Optional, Tuple

from bs4 import BeautifulSoup

from harvester.models.page import PageModel
from harvester.services.assets import extract_images
from harvester.services.branding import extract_branding
from harvester.services.normalizer import (
    collapse_whitespace,
    derive_slug,
    make_absolute,
    origin_of,
    text_of,
)
from harvester.services.sections import extract_sections
from harvester.services.selectors import attr_of, first_result
from harvester.services.taxonomy import extract_taxonomy

DEFAULT_BODY_TEXT_LIMIT = 1000
DESCRIPTION_FALLBACK_LENGTH = 300

_CONTENT_SELECTORS = ("main", "article", ".content", ".main-content", "#content", '[role="main"]')
_FALLBACK_PARAGRAPHS = 5
_MIN_PARAGRAPH_LENGTH = 20

_HERO_TEXT_SELECTORS = (".hero p", '[class*="hero"] p', ".banner p", '[class*="banner"] p')
_HERO_LINK_SELECTORS = (".hero a", '[class*="hero"] a', ".banner a", '[class*="banner"] a')


def _meta(soup: BeautifulSoup, **attrs: str) -> str:
    return attr_of(soup.find("meta", attrs=attrs), "content")


def _extract_body_text(soup: BeautifulSoup, limit: int) -> str:
    """Return the main-content excerpt, capped at *limit* characters.

    The first content container with any text wins; failing that, the longer
    paragraphs among the first few ``<p>`` are joined.
    """
    body = first_result(soup, _CONTENT_SELECTORS, text_of)
    if body:
        return body[:limit]

    paragraphs = [text_of(p) for p in soup.find_all("p", limit=_FALLBACK_PARAGRAPHS)]
    return " ".join(p for p in paragraphs if len(p) > _MIN_PARAGRAPH_LENGTH)[:limit]


def _extract_hero_copy(
    soup: BeautifulSoup, base_url: str
) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    subtitle = first_result(soup, _HERO_TEXT_SELECTORS, text_of)

    cta = first_result(soup, _HERO_LINK_SELECTORS, lambda node: node)
    cta_text = text_of(cta) or None
    href = attr_of(cta, "href")
    cta_link = make_absolute(href, base_url) if href else None
    return subtitle, cta_text, cta_link


def assemble_page(
    html: str,
    url: str,
    body_text_limit: int = DEFAULT_BODY_TEXT_LIMIT,
    include_branding: bool = True,
    extra_hints: Iterable[str] = (),
) -> PageModel:
    """Extract a normalised :class:`PageModel` from *html* fetched at *url*.

    Every facet has its own fallback chain, so a page with little markup
    still yields a record; nothing here raises on missing elements.
    """
    soup = BeautifulSoup(html, "lxml")
    base_url = origin_of(url)

    document_title = text_of(soup.find("title"))
    h1 = text_of(soup.find("h1"))
    title_text = document_title or h1 or "Untitled"

    meta_description = _meta(soup, name="description")
    meta_title = _meta(soup, name="title") or title_text
    og_title = _meta(soup, property="og:title") or title_text
    og_description = _meta(soup, property="og:description") or meta_description
    og_image = _meta(soup, property="og:image")

    body_text = _extract_body_text(soup, body_text_limit)
    hero_subtitle, hero_cta_text, hero_cta_link = _extract_hero_copy(soup, base_url)

    return PageModel(
        url=url,
        slug=derive_slug(url),
        title=h1 or collapse_whitespace(title_text.split("|")[0]),
        h1=h1,
        description=meta_description
        or og_description
        or body_text[:DESCRIPTION_FALLBACK_LENGTH],
        body_text=body_text,
        meta_title=meta_title,
        meta_description=meta_description,
        og_title=og_title,
        og_description=og_description,
        og_image=make_absolute(og_image, base_url),
        images=extract_images(soup, base_url),
        hero_subtitle=hero_subtitle,
        hero_cta_text=hero_cta_text,
        hero_cta_link=hero_cta_link,
        sections=extract_sections(soup),
        branding=extract_branding(html, soup, base_url) if include_branding else None,
        taxonomy_hints=extract_taxonomy(html, soup, url, extra_hints),
    )
