"""Load a framework-embedded :class:`StructuredPayload` as CMS entries."""

import logging
import math
from typing import Any, Dict, List, Optional

import httpx

from harvester.models.cms import EntryPayload, StructuredLoadResult
from harvester.models.structured import HeroBanner, NavItem, Product, StructuredPayload
from harvester.services.asset_uploader import upload_asset
from harvester.services.contentful import ContentfulClient, localize, make_link
from harvester.services.entries import create_entries, local_ref
from harvester.services.normalizer import file_name_from_url

logger = logging.getLogger(__name__)

PRODUCTS_PER_SECTION = 4
MAX_NAV_CHILDREN = 8
MAX_ENTRIES_WARNING = 300


def estimate_entries(data: StructuredPayload) -> int:
    return (
        len(data.products)
        + math.ceil(len(data.products) / PRODUCTS_PER_SECTION)
        + len(data.navigation)
        + sum(len(item.children or []) for item in data.navigation)
        + len(data.hero_banners)
        + len(data.footer_links)
        + len(data.brand_logos)
        + 3
    )


async def _upload(client: ContentfulClient, title: str, file_name: str, url: str) -> Optional[str]:
    try:
        return await upload_asset(client, title, file_name, "image/jpeg", url)
    except httpx.HTTPError as exc:
        logger.warning("Asset %r failed: %s", title, exc)
        return None


def _product_description(product: Product) -> str:
    parts = [
        f"${product.price:.2f}" if product.price else "",
        product.offer_flag or "",
        (product.short_description or "")[:150],
    ]
    return " – ".join(part for part in parts if part)


def _nav_payload(local_id: str, item: NavItem, external: bool = False) -> EntryPayload:
    return EntryPayload(
        local_id=local_id,
        content_type_id="navigationItem",
        fields={
            "label": localize(item.label),
            "slug": localize(item.url),
            "isExternal": localize(external),
        },
    )


def _section_payload(local_id: str, title: str, internal_name: str, item_ids: List[str]) -> EntryPayload:
    return EntryPayload(
        local_id=local_id,
        content_type_id="section",
        fields={
            "internalName": localize(internal_name),
            "title": localize(title),
            "items": localize([local_ref(item_id) for item_id in item_ids]),
        },
        links_to=item_ids,
    )


async def _hero_payloads(
    client: ContentfulClient, banners: List[HeroBanner], page_name: str, result: StructuredLoadResult
) -> List[EntryPayload]:
    payloads = []
    for index, banner in enumerate(banners):
        fields: Dict[str, Any] = {
            "internalName": localize(f"Hero – {banner.headline[:80]}"),
            "headline": localize(banner.headline[:100] or page_name),
            "textAlign": localize("center"),
            "heroSize": localize("tall"),
            "colorPalette": localize("brand-primary"),
        }
        if banner.link_url:
            fields["ctaText"] = localize("Learn More")
            fields["ctaLink"] = localize(banner.link_url)
        if banner.image_desktop:
            asset_id = await _upload(
                client,
                f"Hero – {banner.alt_text[:60]}",
                file_name_from_url(banner.image_desktop, default="hero.jpg"),
                banner.image_desktop,
            )
            if asset_id:
                result.asset_count += 1
                fields["image"] = localize(make_link(asset_id, "Asset"))
        payloads.append(EntryPayload(local_id=f"hero-{index}", content_type_id="heroSection", fields=fields))
    return payloads


async def _product_payloads(
    client: ContentfulClient, products: List[Product], result: StructuredLoadResult
) -> List[EntryPayload]:
    """Product section items grouped into sections of four."""
    payloads = []
    for start in range(0, len(products), PRODUCTS_PER_SECTION):
        row = start // PRODUCTS_PER_SECTION
        item_ids = []
        for offset, product in enumerate(products[start:start + PRODUCTS_PER_SECTION]):
            if product.image_url:
                asset_id = await _upload(
                    client,
                    product.name[:80],
                    f"{product.slug or product.sku}.jpg",
                    product.image_url,
                )
                if asset_id:
                    result.asset_count += 1

            item_id = f"product-{start + offset}"
            item_ids.append(item_id)
            payloads.append(
                EntryPayload(
                    local_id=item_id,
                    content_type_id="sectionItem",
                    fields={
                        "title": localize(product.name),
                        "description": localize(_product_description(product)),
                        "link": localize(product.url),
                    },
                )
            )
        title = "Featured Products" if row == 0 else f"Products – Row {row + 1}"
        payloads.append(_section_payload(f"product-section-{row}", title, title, item_ids))
    return payloads


def _navigation_payloads(navigation: List[NavItem]) -> List[EntryPayload]:
    payloads = []
    for index, item in enumerate(navigation):
        payloads.append(_nav_payload(f"nav-{index}", item))
        for c_index, child in enumerate((item.children or [])[:MAX_NAV_CHILDREN]):
            payloads.append(_nav_payload(f"nav-{index}-{c_index}", child))
    return payloads


def _brand_payloads(data: StructuredPayload) -> List[EntryPayload]:
    payloads = []
    item_ids = []
    for index, brand in enumerate(data.brand_logos):
        item_id = f"brand-{index}"
        item_ids.append(item_id)
        payloads.append(
            EntryPayload(
                local_id=item_id,
                content_type_id="sectionItem",
                fields={
                    "title": localize(brand.name),
                    "link": localize(brand.link_url),
                    "description": localize(f"Brand partner: {brand.name}"),
                },
            )
        )
    if item_ids:
        payloads.append(_section_payload("brand-section", "Our Trusted Brands", "Trusted Brands", item_ids))
    return payloads


async def load_structured_data(
    client: ContentfulClient,
    data: StructuredPayload,
    page_name: str,
    source_url: str = "",
) -> StructuredLoadResult:
    """Create hero banners, product sections, navigation, footer links, a
    brand section and a ``home`` page entry linking heroes and sections."""
    result = StructuredLoadResult()

    estimated = estimate_entries(data)
    logger.info("Structured load for %s: ~%d entries", page_name, estimated)
    if estimated > MAX_ENTRIES_WARNING:
        logger.warning("Entry count (%d) exceeds %d", estimated, MAX_ENTRIES_WARNING)

    payloads: List[EntryPayload] = []
    payloads.extend(await _hero_payloads(client, data.hero_banners, page_name, result))
    payloads.extend(await _product_payloads(client, data.products, result))
    payloads.extend(_navigation_payloads(data.navigation))
    payloads.extend(
        _nav_payload(f"footer-{index}", link, external=link.url.startswith("http"))
        for index, link in enumerate(data.footer_links)
    )
    payloads.extend(_brand_payloads(data))

    hero_ids = [p.local_id for p in payloads if p.content_type_id == "heroSection"]
    section_ids = [p.local_id for p in payloads if p.content_type_id == "section"]
    page_fields: Dict[str, Any] = {
        "title": localize(page_name),
        "slug": localize("home"),
        "sourceUrl": localize(source_url),
    }
    if hero_ids:
        page_fields["heroSection"] = localize(local_ref(hero_ids[0]))
    if section_ids:
        page_fields["sections"] = localize([local_ref(section_id) for section_id in section_ids])
    payloads.append(
        EntryPayload(
            local_id="page",
            content_type_id="page",
            fields=page_fields,
            links_to=hero_ids[:1] + section_ids,
        )
    )

    report = await create_entries(client, payloads)
    created = report.id_map

    def count(prefix: str) -> int:
        return sum(1 for local_id in created if local_id.startswith(prefix))

    result.hero_entries = count("hero-")
    result.product_section_entries = count("product-section-")
    result.product_entries = count("product-") - result.product_section_entries
    result.nav_entries = count("nav-")
    result.footer_entries = count("footer-")
    result.brand_entries = count("brand-") - count("brand-section")
    result.page_id = created.get("page")
    result.total_entries = report.entries_created

    for error in report.errors:
        logger.warning("Structured load: %s", error)
    logger.info(
        "Load summary: heroes=%d products=%d product_sections=%d nav=%d footer=%d "
        "brands=%d assets=%d total=%d",
        result.hero_entries,
        result.product_entries,
        result.product_section_entries,
        result.nav_entries,
        result.footer_entries,
        result.brand_entries,
        result.asset_count,
        result.total_entries,
    )
    return result
