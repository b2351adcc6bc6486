"""Image inventory and image categorisation."""

from typing import List, Literal

from bs4 import BeautifulSoup

from harvester.services.branding import is_tracking_pixel
from harvester.services.normalizer import make_absolute, parse_dimension
from harvester.services.selectors import attr_of

ImageCategory = Literal["logo", "hero", "product", "section", "icon", "other"]

ICON_MAX_SIZE = 64


def extract_images(soup: BeautifulSoup, base_url: str) -> List[str]:
    """Return absolute URLs of content images in order of first appearance.

    Lazy-load attributes are honoured; data URIs, tracking pixels and
    spacers are dropped and duplicates collapsed.
    """
    seen: set = set()
    images: List[str] = []
    for img in soup.find_all("img"):
        src = attr_of(img, "src", "data-src", "data-lazy-src")
        if not src:
            continue
        absolute = make_absolute(src, base_url)
        if not absolute or absolute.startswith("data:"):
            continue
        width = parse_dimension(img.get("width"))
        height = parse_dimension(img.get("height"))
        if is_tracking_pixel(absolute, width, height):
            continue
        if absolute not in seen:
            seen.add(absolute)
            images.append(absolute)
    return images


def categorize_image(
    url: str,
    alt: str = "",
    class_name: str = "",
    parent_class: str = "",
    width: int = 0,
    height: int = 0,
) -> ImageCategory:
    """Classify one image; earlier rules win (logo > hero > product > section > icon)."""
    url_l = url.lower()
    alt_l = alt.lower()
    class_l = class_name.lower()
    parent_l = parent_class.lower()

    if "logo" in alt_l or "logo" in class_l or "logo" in url_l:
        return "logo"

    if any("hero" in c or "banner" in c for c in (class_l, parent_l)):
        return "hero"

    if (
        "product" in alt_l
        or "product" in class_l
        or "product" in parent_l
        or "product" in url_l
        or "/wp-content/uploads/" in url_l
        or (width > 200 and height > 200)
    ):
        return "product"

    if "section" in class_l or "section" in parent_l or "feature" in parent_l:
        return "section"

    if (
        "icon" in url_l
        or "icon" in alt_l
        or "icon" in class_l
        or (0 < width <= ICON_MAX_SIZE and 0 < height <= ICON_MAX_SIZE)
    ):
        return "icon"

    return "other"
