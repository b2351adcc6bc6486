import logging

import httpx
from fastapi import APIRouter, HTTPException, Request
from playwright.async_api import Error as PlaywrightError
from slowapi import Limiter
from slowapi.util import get_remote_address

from harvester.models.harvest import HarvestOptions
from harvester.models.request import ScrapeRequest
from harvester.models.response import ScrapeResponse
from harvester.services.fetcher import ContentTooLargeError
from harvester.services.strategy import fetch_html, harvest_page

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()


@router.post("/scrape", response_model=ScrapeResponse, summary="Detect and extract a single page")
@limiter.limit("10/minute")
async def scrape(request: Request, body: ScrapeRequest) -> ScrapeResponse:
    """Fetch *url*, detect its rendering strategy and return the assembled page.

    The ``render_mode`` field controls how the page is fetched:

    * ``"http"`` – Plain HTTP (fastest; framework JSON payloads are usually
      present in the server response).
    * ``"browser"`` – Headless Chromium with the settle/scroll knobs in
      ``fetch``.
    """
    url = str(body.url)
    logger.info("Scrape request received", extra={"url": url, "render_mode": body.render_mode})

    options = HarvestOptions(
        render_mode=body.render_mode,
        body_text_limit=body.body_text_limit,
        fetch=body.fetch,
    )
    html = await _fetch(url, options)
    detection, page = harvest_page(html, url, options)
    return ScrapeResponse(url=url, detection=detection, page=page)


async def _fetch(url: str, options: HarvestOptions) -> str:
    """Fetch *url* and propagate errors as HTTP exceptions."""
    try:
        return await fetch_html(url, options)
    except ValueError as exc:
        logger.warning("Invalid or blocked URL: %s – %s", url, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except httpx.TimeoutException:
        logger.error("Timeout fetching URL: %s", url)
        raise HTTPException(status_code=504, detail="The target URL timed out.")
    except ContentTooLargeError as exc:
        logger.warning("Oversized page at %s: %s", url, exc)
        raise HTTPException(status_code=413, detail=str(exc))
    except httpx.HTTPStatusError as exc:
        logger.error("HTTP error fetching URL %s: %s", url, exc)
        raise HTTPException(
            status_code=502, detail=f"Target URL returned HTTP {exc.response.status_code}."
        )
    except (httpx.RequestError, PlaywrightError, RuntimeError) as exc:
        logger.error("Error fetching URL %s: %s", url, exc)
        raise HTTPException(status_code=502, detail=str(exc))
