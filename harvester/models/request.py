from typing import Literal

from pydantic import BaseModel, Field, HttpUrl

from harvester.models.harvest import FetchOptions


class ScrapeRequest(BaseModel):
    url: HttpUrl
    render_mode: Literal["http", "browser"] = "http"
    """Rendering strategy for the target URL.

    ``"http"`` (default)
        Plain HTTP fetch.  Fastest option; framework-embedded JSON payloads
        are usually present in the server response already.

    ``"browser"``
        Render with a headless Chromium browser, waiting for dynamic content
        to settle and scrolling to trigger lazy loading.  Required for sites
        that answer plain HTTP clients with an empty shell.
    """
    fetch: FetchOptions = FetchOptions()
    body_text_limit: int = Field(default=1000, ge=50, le=20_000)
