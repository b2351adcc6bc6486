"""AI-generated SEO / GEO metadata via CMS AI actions."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

import httpx

from harvester.models.cms import AiActionIds
from harvester.models.enrichment import GeoFields, SeoFields
from harvester.services.ai_output import parse_geo_output, parse_seo_output
from harvester.services.contentful import ContentfulClient, localize, make_link
from harvester.services.entries import create_and_publish

logger = logging.getLogger(__name__)

DEFAULT_GEO_CATEGORY = "General"


async def find_ai_actions(client: ContentfulClient) -> AiActionIds:
    """Match AI actions by name: ``seo``, ``discovery``/``geo``, ``translate``.

    A listing failure is logged and yields no ids.
    """
    ids = AiActionIds()
    try:
        actions = await client.list_ai_actions()
    except httpx.HTTPError as exc:
        logger.warning("Could not list AI Actions – they may need to be created first: %s", exc)
        return ids

    for action in actions:
        name = str(action.get("name") or "").lower()
        action_id = action.get("sys", {}).get("id")
        if "seo" in name:
            ids.seo_action_id = action_id
        if "discovery" in name or "geo" in name:
            ids.geo_action_id = action_id
        if "translate" in name:
            ids.translate_action_id = action_id
    return ids


async def generate_seo(
    client: ContentfulClient, action_id: str, title: str, description: str
) -> SeoFields:
    output = await client.invoke_action(action_id, {"title": title, "description": description})
    return parse_seo_output(output)


async def generate_geo(
    client: ContentfulClient,
    action_id: str,
    product_name: str,
    product_description: str,
    product_category: str = DEFAULT_GEO_CATEGORY,
) -> GeoFields:
    output = await client.invoke_action(
        action_id,
        {
            "productName": product_name,
            "productDescription": product_description,
            "productCategory": product_category,
        },
    )
    return parse_geo_output(output)


def seo_entry_fields(seo: SeoFields) -> Dict[str, Any]:
    return {
        "metaTitle": localize(seo.meta_title),
        "metaDescription": localize(seo.meta_description),
        "keywords": localize(seo.keywords),
        "ogTitle": localize(seo.og_title),
        "ogDescription": localize(seo.og_description),
    }


def geo_entry_fields(geo: GeoFields) -> Dict[str, Any]:
    return {
        "aiSummary": localize(geo.ai_summary),
        "aiBestFor": localize(geo.ai_best_for),
        "aiIntents": localize(geo.ai_intents),
        "aiKeyPoints": localize(geo.ai_key_points),
        "aiDifferentiators": localize(geo.ai_differentiators),
        "aiCompetitors": localize(geo.ai_competitors),
        "aiFaq": localize({"items": [item.model_dump() for item in geo.ai_faq]}),
        "aiLastVerified": localize(datetime.now(timezone.utc).isoformat()),
    }


async def create_seo_entry(client: ContentfulClient, seo: SeoFields) -> str:
    return await create_and_publish(client, "seo", seo_entry_fields(seo))


async def create_geo_entry(client: ContentfulClient, geo: GeoFields) -> str:
    return await create_and_publish(client, "geo", geo_entry_fields(geo))


async def _attach(client: ContentfulClient, page_id: str, field: str, entry_id: str) -> None:
    entry = await client.get_entry(page_id)
    entry.setdefault("fields", {})[field] = localize(make_link(entry_id))
    await client.update_entry(entry)
    await client.publish_entry(page_id)


async def enrich_pages(
    client: ContentfulClient,
    *,
    seo: bool = False,
    geo: bool = False,
) -> Dict[str, int]:
    """Attach SEO and/or GEO entries to existing ``page`` entries lacking them.

    The page's ``sourceUrl`` (or its title) is the description fed to the
    AI action.  Returns counts of ``seo``/``geo`` entries attached and of
    ``failed`` attempts; each failure is logged and the run continues.
    """
    counts = {"seo": 0, "geo": 0, "failed": 0}
    actions = await find_ai_actions(client)
    pages = await client.list_entries("page")
    logger.info("Enriching %d pages", len(pages))

    for page in pages:
        fields = page.get("fields", {})
        page_id = page["sys"]["id"]
        title = fields.get("title", {}).get("en-US") or "Untitled"
        description = fields.get("sourceUrl", {}).get("en-US") or title

        if seo and actions.seo_action_id and not fields.get("seo", {}).get("en-US"):
            try:
                seo_fields = await generate_seo(client, actions.seo_action_id, title, description)
                seo_id = await create_seo_entry(client, seo_fields)
                await _attach(client, page_id, "seo", seo_id)
                counts["seo"] += 1
                logger.info("SEO: %s (%s)", title, seo_id)
            except (RuntimeError, httpx.HTTPError) as exc:
                counts["failed"] += 1
                logger.warning("SEO: %s – %s", title, exc)

        if geo and actions.geo_action_id and not fields.get("geo", {}).get("en-US"):
            try:
                geo_fields = await generate_geo(client, actions.geo_action_id, title, description)
                geo_id = await create_geo_entry(client, geo_fields)
                await _attach(client, page_id, "geo", geo_id)
                counts["geo"] += 1
                logger.info("GEO: %s (%s)", title, geo_id)
            except (RuntimeError, httpx.HTTPError) as exc:
                counts["failed"] += 1
                logger.warning("GEO: %s – %s", title, exc)

    return counts
