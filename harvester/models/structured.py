from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel


class Product(BaseModel):
    name: str
    sku: str
    slug: str
    price: float = 0
    original_price: Optional[float] = None
    currency: str
    image_url: str = ""
    image_alt: str = ""
    rating: Optional[float] = None
    review_count: Optional[int] = None
    offer_flag: Optional[str] = None
    offer_text: Optional[str] = None
    short_description: Optional[str] = None
    url: str


class NavItem(BaseModel):
    id: str
    label: str
    url: str
    level: int
    children: Optional[List["NavItem"]] = None


class HeroBanner(BaseModel):
    headline: str
    image_desktop: str
    image_mobile: Optional[str] = None
    link_url: str = ""
    alt_text: str = ""


class BrandLogo(BaseModel):
    name: str
    logo_url: str
    link_url: str = ""


class StructuredPayload(BaseModel):
    """Content lifted from a framework-embedded JSON page payload."""

    source: Literal["next", "nuxt", "gatsby", "unknown"] = "next"
    products: List[Product] = []
    navigation: List[NavItem] = []
    hero_banners: List[HeroBanner] = []
    footer_links: List[NavItem] = []
    brand_logos: List[BrandLogo] = []
    raw: Optional[Dict[str, Any]] = None
