"""Playwright-based fetcher for JavaScript-rendered (dynamic) web pages."""

import logging

from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from harvester.models.harvest import FetchOptions, Viewport
from harvester.services.fetcher import USER_AGENT, check_size, validate_url

logger = logging.getLogger(__name__)

NAVIGATION_TIMEOUT_MS = 30_000
SELECTOR_TIMEOUT_MS = 10_000
SCROLL_STEP_PX = 500
MAX_SCROLL_STEPS = 20
SCROLL_INTERVAL_MS = 200
POST_SCROLL_SETTLE_MS = 2000

# Scrolls in fixed steps until the page height or the step cap is reached,
# then returns to the top so sticky headers render in their initial state.
_AUTO_SCROLL_JS = """
async ([distance, maxSteps, interval]) => {
  await new Promise((resolve) => {
    let total = 0;
    let steps = 0;
    const timer = setInterval(() => {
      window.scrollBy(0, distance);
      total += distance;
      steps += 1;
      if (total >= document.body.scrollHeight || steps >= maxSteps) {
        clearInterval(timer);
        window.scrollTo(0, 0);
        resolve();
      }
    }, interval);
  });
}
"""

_HIDE_WEBDRIVER_JS = "Object.defineProperty(navigator, 'webdriver', { get: () => false });"


async def fetch_url_with_browser(
    url: str,
    *,
    wait_for_selector: str | None = None,
    wait_ms: int = 0,
    scroll_to_bottom: bool = False,
    viewport: Viewport | None = None,
) -> str:
    """Render *url* with a headless Chromium browser and return the full HTML.

    Args:
        url: The target URL (must be http/https and public).
        wait_for_selector: Optional CSS selector to wait for (up to 10 s; a
            miss is logged and rendering continues).
        wait_ms: Milliseconds to let dynamic content settle after load.
        scroll_to_bottom: Scroll the page in bounded steps to trigger lazy
            loading before capturing.
        viewport: Browser viewport; defaults to 1440×900.

    Raises:
        ValueError: if the URL fails SSRF / scheme validation.
        ContentTooLargeError: if the rendered HTML is over the size cap.
        playwright.async_api.Error: on browser/network errors.
    """
    validate_url(url)
    viewport = viewport or Viewport()

    async with async_playwright() as pw:
        browser = await pw.chromium.launch(
            headless=True,
            args=[
                # --no-sandbox is required when running as root inside a container.
                "--no-sandbox",
                "--disable-dev-shm-usage",
                "--disable-blink-features=AutomationControlled",
            ],
        )
        context = await browser.new_context(
            viewport={"width": viewport.width, "height": viewport.height},
            user_agent=USER_AGENT,
            locale="en-US",
        )
        page = await context.new_page()
        await page.add_init_script(_HIDE_WEBDRIVER_JS)
        try:
            await page.goto(url, wait_until="load", timeout=NAVIGATION_TIMEOUT_MS)

            if wait_for_selector:
                try:
                    await page.wait_for_selector(wait_for_selector, timeout=SELECTOR_TIMEOUT_MS)
                except PlaywrightTimeoutError:
                    logger.info("Selector %r not found on %s – continuing", wait_for_selector, url)

            if wait_ms > 0:
                await page.wait_for_timeout(wait_ms)

            if scroll_to_bottom:
                await page.evaluate(
                    _AUTO_SCROLL_JS, [SCROLL_STEP_PX, MAX_SCROLL_STEPS, SCROLL_INTERVAL_MS]
                )
                await page.wait_for_timeout(POST_SCROLL_SETTLE_MS)

            html = await page.content()
        finally:
            await context.close()
            await browser.close()

    check_size(len(html.encode()))
    logger.info("Rendered %s in browser (%d bytes)", url, len(html))
    return html


async def fetch_with_options(url: str, options: FetchOptions) -> str:
    """Render *url* using the settle/scroll settings in *options*."""
    return await fetch_url_with_browser(
        url,
        wait_for_selector=options.wait_for_selector,
        wait_ms=options.wait_ms,
        scroll_to_bottom=options.scroll_to_bottom,
        viewport=options.viewport,
    )
