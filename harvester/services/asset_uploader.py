"""Asset upload with reuse-by-title and bounded processing poll."""

import asyncio
import logging

import httpx

from harvester.services.contentful import DEFAULT_LOCALE, ContentfulClient

logger = logging.getLogger(__name__)

PROCESS_POLL_ATTEMPTS = 15


def _file_url(asset: dict) -> str:
    return ((asset.get("fields") or {}).get("file") or {}).get(DEFAULT_LOCALE, {}).get("url", "")


async def upload_asset(
    client: ContentfulClient,
    title: str,
    file_name: str,
    content_type: str,
    upload_url: str,
    description: str = "",
    *,
    poll_attempts: int = PROCESS_POLL_ATTEMPTS,
    poll_interval: float | None = None,
) -> str:
    """Return the id of an asset titled *title*, creating it if needed.

    An existing asset is reused only when it already has a processed file.
    A new asset is created from *upload_url*, processed, polled until the
    file URL appears, then published.  An asset still processing after the
    poll budget is returned unpublished with a warning.

    *poll_interval* defaults to the client's AI poll interval.
    """
    existing = await client.find_asset_by_title(title)
    if existing is not None and _file_url(existing):
        asset_id = existing["sys"]["id"]
        logger.info("Asset exists: %r (%s)", title, asset_id)
        return asset_id

    asset_id = await client.create_asset(title, file_name, content_type, upload_url, description)
    await client.process_asset(asset_id)

    interval = client.poll_interval if poll_interval is None else poll_interval
    for _ in range(poll_attempts):
        await asyncio.sleep(interval)
        asset = await client.get_asset(asset_id)
        if _file_url(asset):
            try:
                await client.publish_asset(asset)
            except httpx.HTTPStatusError as exc:
                # Usually already published
                logger.debug("Publish of asset %s skipped: %s", asset_id, exc)
            return asset_id

    logger.warning("Asset %r uploaded but may still be processing", title)
    return asset_id
