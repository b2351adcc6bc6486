from typing import List, Optional

from pydantic import BaseModel


class Branding(BaseModel):
    """Design-identity tokens inferred from a site's homepage markup."""

    logo_url: Optional[str] = None
    favicon_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    accent_color: Optional[str] = None
    heading_font: Optional[str] = None
    body_font: Optional[str] = None
    hero_image_url: Optional[str] = None
    product_images: List[str] = []
