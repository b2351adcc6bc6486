"""Heading-delimited section extraction (``h2``/``h3`` + following lists)."""

from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from harvester.models.page import Section, SectionItem
from harvester.services.normalizer import text_of
from harvester.services.selectors import attr_of

_HEADING_TAGS = ("h2", "h3")
_DESCRIPTION_SELECTOR = "p, span.description, .desc"


def _list_items(node: Tag) -> List[SectionItem]:
    items: List[SectionItem] = []
    for li in node.find_all("li"):
        anchor = li.find("a")
        name = text_of(anchor) if anchor is not None else text_of(li)
        if not name:
            continue
        description_node = li.select_one(_DESCRIPTION_SELECTOR)
        items.append(
            SectionItem(
                name=name,
                link=attr_of(anchor, "href"),
                description=text_of(description_node) if description_node is not None else None,
            )
        )
    return items


def _next_element(node: Tag) -> Optional[Tag]:
    sibling = node.next_sibling
    while sibling is not None and not isinstance(sibling, Tag):
        sibling = sibling.next_sibling
    return sibling


def _definition_items(node: Tag) -> List[SectionItem]:
    items: List[SectionItem] = []
    for dt in node.find_all("dt"):
        name = text_of(dt)
        if not name:
            continue
        dd = _next_element(dt)
        if dd is not None and dd.name != "dd":
            dd = None
        anchor = dt.find("a")
        if anchor is None and dd is not None:
            anchor = dd.find("a")
        items.append(
            SectionItem(
                name=name,
                link=attr_of(anchor, "href"),
                description=text_of(dd) if dd is not None else None,
            )
        )
    return items


def extract_sections(soup: BeautifulSoup) -> List[Section]:
    """Return every ``h2``/``h3`` heading that is followed by list content.

    Siblings are scanned until the next ``h2``/``h3``.  ``ul``/``ol`` items use
    their first anchor as name and link; ``dl`` terms are paired with the
    ``dd`` right after them.  Headings without items are dropped.
    """
    sections: List[Section] = []

    for heading in soup.find_all(_HEADING_TAGS):
        title = text_of(heading)
        if not title:
            continue

        items: List[SectionItem] = []
        sibling = _next_element(heading)
        while sibling is not None and sibling.name not in _HEADING_TAGS:
            if sibling.name in ("ul", "ol"):
                items.extend(_list_items(sibling))
            elif sibling.name == "dl":
                items.extend(_definition_items(sibling))
            sibling = _next_element(sibling)

        if items:
            sections.append(Section(title=title, items=items))

    return sections
