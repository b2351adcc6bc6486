"""Harvest orchestration: fetch → detect → assemble → persist, one URL at a time."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Optional, Set, Tuple
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from harvester.models.branding import Branding
from harvester.models.detection import DetectionReport, DetectionResult
from harvester.models.harvest import (
    AssetManifestEntry,
    HarvestConfig,
    HarvestOptions,
    HarvestOutput,
    HarvestUrl,
)
from harvester.models.page import PageModel
from harvester.services import storage
from harvester.services.assets import categorize_image
from harvester.services.branding import extract_branding
from harvester.services.browser_fetcher import fetch_with_options
from harvester.services.detector import detect_strategy, format_detection_report
from harvester.services.extractor import assemble_page
from harvester.services.fetcher import download_file, fetch_url
from harvester.services.next_data import extract_structured_payload
from harvester.services.normalizer import asset_file_name, guess_content_type, origin_of

logger = logging.getLogger(__name__)

Fetcher = Callable[[str, HarvestOptions], Awaitable[str]]
Downloader = Callable[[str, Path], Awaitable[int]]

# Strategies whose markup is worth a branding pass during analysis
_BRANDING_STRATEGIES = ("static", "gatsby", "react-static")


async def fetch_html(url: str, options: HarvestOptions) -> str:
    """Fetch *url* with the collaborator selected by ``options.render_mode``."""
    if options.render_mode == "browser":
        return await fetch_with_options(url, options.fetch)
    return await fetch_url(url)


async def _load_html(entry: HarvestUrl, options: HarvestOptions, fetch: Fetcher) -> str:
    if entry.html_file:
        html = Path(entry.html_file).read_text(encoding="utf-8")
        logger.info("Loaded saved HTML %s (%d KB)", entry.html_file, len(html) // 1024)
        return html
    return await fetch(str(entry.url), options)


async def _download_assets(
    page: PageModel, output_dir: str | Path, download: Downloader, seen: Set[str]
) -> List[AssetManifestEntry]:
    """Download each page image not already in *seen*; failures are skipped."""
    entries = []
    for image_url in page.images:
        if image_url in seen:
            continue
        seen.add(image_url)

        file_name = asset_file_name(image_url)
        local_path = storage.asset_local_path(file_name)
        try:
            await download(image_url, Path(output_dir) / local_path)
        except (ValueError, RuntimeError, httpx.HTTPError, OSError) as exc:
            logger.warning("Asset download failed for %s – %s", image_url, exc)
            continue

        entries.append(
            AssetManifestEntry(
                original_url=image_url,
                local_path=local_path,
                file_name=file_name,
                content_type=guess_content_type(file_name),
                category=categorize_image(image_url),
            )
        )
    return entries


def harvest_page(
    html: str, url: str, options: HarvestOptions, hints: Iterable[str] = ()
) -> Tuple[DetectionResult, PageModel]:
    """Detect the strategy, assemble the page and attach the embedded payload
    for ``nextjs`` sites."""
    detection = detect_strategy(html, url)
    logger.info("Detected %s (%s confidence) for %s", detection.strategy, detection.confidence, url)

    page = assemble_page(
        html,
        url,
        body_text_limit=options.body_text_limit,
        include_branding=options.extract_branding,
        extra_hints=hints,
    )
    if detection.strategy == "nextjs":
        payload = extract_structured_payload(html, origin_of(url))
        if payload is not None:
            page = page.model_copy(update={"structured_data": payload})
    return detection, page


async def harvest(
    config: HarvestConfig,
    output_dir: str | Path,
    *,
    fetch: Optional[Fetcher] = None,
    download: Optional[Downloader] = None,
) -> HarvestOutput:
    """Harvest every URL in *config* and write the run to *output_dir*.

    URLs are processed strictly in order.  A URL that fails to fetch or parse
    is logged and skipped; the run always produces a manifest.  The first
    ``homepage`` entry that yields branding becomes the site branding.  With
    ``download_assets`` on, page images are saved under ``harvest/assets/``
    once per URL and listed in the manifest.
    """
    fetch = fetch or fetch_html
    download = download or download_file
    options = config.options

    logger.info("Harvesting %s: %d URL(s) to process", config.name, len(config.urls))

    pages: List[PageModel] = []
    assets: List[AssetManifestEntry] = []
    branding: Optional[Branding] = None
    seen_assets: Set[str] = set()
    failures = 0

    for entry in config.urls:
        url = str(entry.url)
        try:
            html = await _load_html(entry, options, fetch)
            _, page = harvest_page(html, url, options, hints=entry.hints.values())
            storage.write_page(output_dir, page)
        except Exception as exc:
            failures += 1
            logger.warning("Harvest: skipping %s – %s", url, exc)
            continue

        pages.append(page)
        if entry.type == "homepage" and branding is None and page.branding is not None:
            branding = page.branding
        if options.download_assets:
            assets.extend(await _download_assets(page, output_dir, download, seen_assets))

        logger.info("Scraped %s: %s (%d images)", url, page.title, len(page.images))

    if branding is not None:
        storage.write_branding(output_dir, branding)

    output = HarvestOutput(
        config=config,
        pages=pages,
        branding=branding,
        assets=assets,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
    storage.write_manifest(output_dir, output)
    logger.info(
        "Harvest complete: %d pages, %d assets, %d failed",
        len(pages),
        len(assets),
        failures,
    )
    return output


# ---------------------------------------------------------------------------
# Detection-only analysis
# ---------------------------------------------------------------------------

def analysis_filename(url: str) -> str:
    """``https://shop.example.com/x`` → ``shop-example-com-analysis.json``."""
    host = urlparse(url).hostname or "unknown"
    return f"{host.replace('.', '-')}-analysis.json"


def analyze_html(html: str, url: str) -> DetectionReport:
    detection = detect_strategy(html, url)
    report = DetectionReport(url=url, detection=detection)

    if detection.strategy == "nextjs":
        payload = extract_structured_payload(html, origin_of(url))
        if payload is not None:
            report.structured_summary = {
                "products": len(payload.products),
                "navigation": len(payload.navigation),
                "hero_banners": len(payload.hero_banners),
                "footer_links": len(payload.footer_links),
                "brand_logos": len(payload.brand_logos),
            }
    elif detection.strategy in _BRANDING_STRATEGIES:
        report.branding = extract_branding(html, BeautifulSoup(html, "lxml"), origin_of(url))
    return report


def _error_report(url: str, exc: Exception) -> DetectionReport:
    return DetectionReport(
        url=url,
        detection=DetectionResult(
            strategy="blocked",
            confidence="low",
            recommendation=f"Error: {exc}",
        ),
        error=str(exc),
    )


async def analyze(
    config: HarvestConfig,
    output_dir: str | Path,
    *,
    fetch: Optional[Fetcher] = None,
) -> List[DetectionReport]:
    """Run strategy detection for every URL without assembling pages.

    Writes one ``<host>-analysis.json`` per URL under ``harvest/``.
    """
    fetch = fetch or fetch_html
    reports: List[DetectionReport] = []

    for entry in config.urls:
        url = str(entry.url)
        try:
            html = await _load_html(entry, config.options, fetch)
            report = analyze_html(html, url)
            logger.info("Analysis for %s\n%s", url, format_detection_report(url, report.detection))
        except Exception as exc:
            logger.warning("Analysis failed for %s – %s", url, exc)
            report = _error_report(url, exc)

        path = storage.harvest_dir(output_dir) / analysis_filename(url)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(report.model_dump(mode="json", exclude_none=True), indent=2),
            encoding="utf-8",
        )
        reports.append(report)

    return reports
