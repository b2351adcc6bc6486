from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, HttpUrl

from harvester.models.branding import Branding
from harvester.models.page import PageModel

PageType = Literal["homepage", "product", "page", "category", "blog"]
AssetCategory = Literal["logo", "favicon", "hero", "product", "section", "icon", "other"]


class Viewport(BaseModel):
    width: int = 1440
    height: int = 900


class FetchOptions(BaseModel):
    """Settle-and-scroll knobs for the headless browser fetcher."""

    wait_for_selector: str | None = Field(
        default=None,
        description="CSS selector to wait for before capturing the rendered HTML.",
        examples=["#app", ".content-loaded"],
    )
    wait_ms: int = Field(
        default=5000,
        ge=0,
        le=30_000,
        description="Milliseconds to let dynamic content settle after load.",
    )
    scroll_to_bottom: bool = True
    viewport: Viewport = Viewport()


class HarvestUrl(BaseModel):
    url: HttpUrl
    type: Optional[PageType] = None
    hints: Dict[str, str] = {}
    html_file: Optional[str] = None
    """Path to HTML saved from a real browser; used instead of fetching."""


class HarvestOptions(BaseModel):
    render_mode: Literal["http", "browser"] = "http"
    download_assets: bool = True
    extract_branding: bool = True
    body_text_limit: int = Field(
        default=1000,
        ge=50,
        le=20_000,
        description="Maximum characters kept for a page's body excerpt.",
    )
    fetch: FetchOptions = FetchOptions()


class HarvestConfig(BaseModel):
    name: str
    urls: List[HarvestUrl]
    options: HarvestOptions = HarvestOptions()


class AssetManifestEntry(BaseModel):
    original_url: str
    local_path: str
    file_name: str
    content_type: str
    category: AssetCategory


class HarvestOutput(BaseModel):
    """Aggregate record of one harvest run (``manifest.json``)."""

    config: HarvestConfig
    pages: List[PageModel]
    branding: Optional[Branding] = None
    assets: List[AssetManifestEntry] = []
    timestamp: str
