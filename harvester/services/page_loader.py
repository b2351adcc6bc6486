"""Load a harvest manifest into the CMS, one entry graph per page."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from harvester.models.cms import AiActionIds, EntryPayload, PageLoadResult
from harvester.models.harvest import HarvestOutput
from harvester.models.page import PageModel
from harvester.services.asset_uploader import upload_asset
from harvester.services.contentful import ContentfulClient, localize, make_link
from harvester.services.enrichment import (
    find_ai_actions,
    generate_geo,
    generate_seo,
    geo_entry_fields,
    seo_entry_fields,
)
from harvester.services.entries import create_and_publish, create_entries, local_ref
from harvester.services.normalizer import file_name_from_url, guess_content_type

logger = logging.getLogger(__name__)

MAX_SECTIONS = 10
MAX_SECTION_ITEMS = 10
HERO_BODY_LENGTH = 200

_BRAND_DEFAULTS = {
    "primary_color": "#0066CC",
    "secondary_color": "#1A1A2E",
    "heading_font": "Inter",
    "body_font": "Inter",
}


async def _create_brand_settings(client: ContentfulClient, output: HarvestOutput) -> None:
    branding = output.branding
    try:
        await create_and_publish(
            client,
            "brandSettings",
            {
                "internalName": localize(f"{output.config.name} Brand"),
                "primaryColor": localize(branding.primary_color or _BRAND_DEFAULTS["primary_color"]),
                "secondaryColor": localize(
                    branding.secondary_color or _BRAND_DEFAULTS["secondary_color"]
                ),
                "headingFont": localize(branding.heading_font or _BRAND_DEFAULTS["heading_font"]),
                "bodyFont": localize(branding.body_font or _BRAND_DEFAULTS["body_font"]),
                "borderRadius": localize("small"),
            },
        )
        logger.info("Brand Settings created")
    except httpx.HTTPError as exc:
        logger.warning("Brand Settings: %s", exc)


async def _upload_hero_image(client: ContentfulClient, page: PageModel) -> Optional[str]:
    image_url = (page.branding.hero_image_url if page.branding else None) or page.og_image
    image_url = image_url or (page.images[0] if page.images else "")
    if not image_url:
        return None
    try:
        return await upload_asset(
            client,
            title=f"{page.title} – Hero Image",
            file_name=file_name_from_url(image_url, default="hero.jpg"),
            content_type=guess_content_type(image_url, default="image/jpeg"),
            upload_url=image_url,
        )
    except httpx.HTTPError as exc:
        logger.warning("Hero image upload failed for %s: %s", page.url, exc)
        return None


def _hero_payload(page: PageModel, image_asset_id: Optional[str]) -> EntryPayload:
    fields: Dict[str, Any] = {
        "internalName": localize(f"Hero – {page.title}"),
        "headline": localize(page.h1 or page.title),
        "bodyText": localize(page.hero_subtitle or page.description[:HERO_BODY_LENGTH]),
        "textAlign": localize("left"),
        "heroSize": localize("standard"),
        "colorPalette": localize("brand-primary"),
    }
    if page.hero_cta_text:
        fields["ctaText"] = localize(page.hero_cta_text)
        fields["ctaLink"] = localize(page.hero_cta_link or "#")
    if image_asset_id:
        fields["image"] = localize(make_link(image_asset_id, "Asset"))
    return EntryPayload(local_id="hero", content_type_id="heroSection", fields=fields)


def build_section_payloads(page: PageModel) -> List[EntryPayload]:
    """Section items and their sections, capped at 10 × 10."""
    payloads: List[EntryPayload] = []
    for s_index, section in enumerate(page.sections[:MAX_SECTIONS]):
        item_ids = []
        for i_index, item in enumerate(section.items[:MAX_SECTION_ITEMS]):
            item_id = f"section-{s_index}-item-{i_index}"
            item_ids.append(item_id)
            payloads.append(
                EntryPayload(
                    local_id=item_id,
                    content_type_id="sectionItem",
                    fields={
                        "title": localize(item.name),
                        "description": localize(item.description or ""),
                        "link": localize(item.link or ""),
                    },
                )
            )
        payloads.append(
            EntryPayload(
                local_id=f"section-{s_index}",
                content_type_id="section",
                fields={
                    "internalName": localize(f"Section – {section.title}"),
                    "title": localize(section.title),
                    "items": localize([local_ref(item_id) for item_id in item_ids]),
                },
                links_to=item_ids,
            )
        )
    return payloads


async def _enrichment_payloads(
    client: ContentfulClient,
    page: PageModel,
    actions: AiActionIds,
    seo: bool,
    geo: bool,
) -> List[EntryPayload]:
    payloads: List[EntryPayload] = []
    if seo and actions.seo_action_id:
        try:
            fields = await generate_seo(client, actions.seo_action_id, page.title, page.description)
            payloads.append(
                EntryPayload(local_id="seo", content_type_id="seo", fields=seo_entry_fields(fields))
            )
        except (RuntimeError, httpx.HTTPError) as exc:
            logger.warning("SEO generation failed for %s: %s", page.title, exc)
    if geo and actions.geo_action_id:
        try:
            fields = await generate_geo(client, actions.geo_action_id, page.title, page.description)
            payloads.append(
                EntryPayload(local_id="geo", content_type_id="geo", fields=geo_entry_fields(fields))
            )
        except (RuntimeError, httpx.HTTPError) as exc:
            logger.warning("GEO generation failed for %s: %s", page.title, exc)
    return payloads


def _page_payload(page: PageModel, dependencies: List[EntryPayload]) -> EntryPayload:
    section_ids = [p.local_id for p in dependencies if p.content_type_id == "section"]
    enrichment_ids = [p.local_id for p in dependencies if p.content_type_id in ("seo", "geo")]

    fields: Dict[str, Any] = {
        "title": localize(page.title),
        "slug": localize(page.slug),
        "sourceUrl": localize(page.url),
        "heroSection": localize(local_ref("hero")),
    }
    if section_ids:
        fields["sections"] = localize([local_ref(section_id) for section_id in section_ids])
    for local_id in enrichment_ids:
        fields[local_id] = localize(local_ref(local_id))
    return EntryPayload(
        local_id="page",
        content_type_id="page",
        fields=fields,
        depends_on=["hero"],
        links_to=[*section_ids, *enrichment_ids],
    )


async def load_page(
    client: ContentfulClient,
    page: PageModel,
    actions: AiActionIds,
    *,
    seo: bool = False,
    geo: bool = False,
) -> PageLoadResult:
    """Create hero, sections, optional SEO/GEO and the page entry for *page*."""
    result = PageLoadResult(url=page.url)

    hero_asset_id = await _upload_hero_image(client, page)
    if hero_asset_id:
        result.asset_ids.append(hero_asset_id)

    payloads = [_hero_payload(page, hero_asset_id), *build_section_payloads(page)]
    payloads.extend(await _enrichment_payloads(client, page, actions, seo, geo))
    payloads.append(_page_payload(page, payloads))

    report = await create_entries(client, payloads)
    id_map = report.id_map

    result.hero_id = id_map.get("hero")
    result.seo_id = id_map.get("seo")
    result.geo_id = id_map.get("geo")
    result.section_ids = [
        id_map[p.local_id]
        for p in payloads
        if p.content_type_id == "section" and p.local_id in id_map
    ]
    result.page_id = id_map.get("page", "")
    if not result.page_id:
        result.error = "; ".join(report.errors) or "page entry was not created"
        logger.warning("Failed: %s – %s", page.title, result.error)
    else:
        logger.info(
            "%s – page:%s hero:%s sections:%d",
            page.title,
            result.page_id,
            result.hero_id,
            len(result.section_ids),
        )
    return result


async def load_harvest_output(
    client: ContentfulClient,
    output: HarvestOutput,
    *,
    seo: bool = False,
    geo: bool = False,
) -> List[PageLoadResult]:
    """Load every page in *output*; brand settings first when branding exists."""
    logger.info(
        "Loading %d pages into space %s (%s)",
        len(output.pages),
        client.space_id,
        client.environment_id,
    )

    actions = AiActionIds()
    if seo or geo:
        actions = await find_ai_actions(client)
        if not (actions.seo_action_id or actions.geo_action_id):
            logger.warning("No AI Actions found – create them in the space first")

    if output.branding is not None:
        await _create_brand_settings(client, output)

    results = [await load_page(client, page, actions, seo=seo, geo=geo) for page in output.pages]

    failed = sum(1 for result in results if result.error)
    logger.info("Load complete: %d succeeded, %d failed", len(results) - failed, failed)
    return results
