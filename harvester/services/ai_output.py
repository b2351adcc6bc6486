"""Parsers for the line-oriented text returned by the SEO and GEO AI actions.

Expected SEO output::

    META_TITLE: …
    META_DESCRIPTION: …
    KEYWORDS: kw1, kw2, …
    OG_TITLE: …
    OG_DESCRIPTION: …

Expected GEO output::

    AI_SUMMARY: …

    BEST_FOR:
    - item

    SEARCH_INTENTS:
    - item

    KEY_POINTS / DIFFERENTIATORS / COMPETITORS: same list shape

    FAQ:
    Q: …
    A: …

Missing labels parse to empty values; nothing here raises.
"""

import re
from typing import List

from harvester.models.enrichment import FaqItem, GeoFields, SeoFields

_FAQ_BLOCK_RE = re.compile(r"^FAQ:\s*\n([\s\S]*?)(?:\n\n[A-Z_]+:|\Z)", re.MULTILINE)
_QUESTION_RE = re.compile(r"^Q:\s*(.+)")
_ANSWER_RE = re.compile(r"^A:\s*(.+)")


def extract_value(output: str, label: str) -> str:
    """Return the text after ``LABEL:`` on the first line that starts with it."""
    match = re.search(rf"^{re.escape(label)}:[ \t]*(.+)", output, re.MULTILINE)
    return match.group(1).strip() if match else ""


def extract_list_items(output: str, label: str) -> List[str]:
    """Return the ``- item`` lines directly following a ``LABEL:`` line."""
    match = re.search(rf"^{re.escape(label)}:\s*\n((?:- .+\n?)*)", output, re.MULTILINE)
    if not match:
        return []
    items = (line[2:] if line.startswith("- ") else line for line in match.group(1).split("\n"))
    return [item.strip() for item in items if item.strip()]


def parse_faq_block(output: str) -> List[FaqItem]:
    """Pair ``Q:``/``A:`` lines of the ``FAQ:`` block; an answer without a
    pending question is ignored."""
    match = _FAQ_BLOCK_RE.search(output)
    if not match:
        return []

    pairs: List[FaqItem] = []
    question = ""
    for line in match.group(1).split("\n"):
        q_match = _QUESTION_RE.match(line)
        a_match = _ANSWER_RE.match(line)
        if q_match:
            question = q_match.group(1).strip()
        elif a_match and question:
            pairs.append(FaqItem(question=question, answer=a_match.group(1).strip()))
            question = ""
    return pairs


def parse_seo_output(output: str) -> SeoFields:
    keywords = extract_value(output, "KEYWORDS")
    return SeoFields(
        meta_title=extract_value(output, "META_TITLE"),
        meta_description=extract_value(output, "META_DESCRIPTION"),
        keywords=[kw.strip() for kw in keywords.split(",") if kw.strip()],
        og_title=extract_value(output, "OG_TITLE"),
        og_description=extract_value(output, "OG_DESCRIPTION"),
    )


def parse_geo_output(output: str) -> GeoFields:
    return GeoFields(
        ai_summary=extract_value(output, "AI_SUMMARY"),
        ai_best_for=extract_list_items(output, "BEST_FOR"),
        ai_intents=extract_list_items(output, "SEARCH_INTENTS"),
        ai_key_points=extract_list_items(output, "KEY_POINTS"),
        ai_differentiators=extract_list_items(output, "DIFFERENTIATORS"),
        ai_competitors=extract_list_items(output, "COMPETITORS"),
        ai_faq=parse_faq_block(output),
    )
