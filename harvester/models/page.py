from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from harvester.models.branding import Branding
from harvester.models.structured import StructuredPayload
from harvester.models.taxonomy import TaxonomyHints


class SectionItem(BaseModel):
    name: str
    link: str = ""
    description: Optional[str] = None


class Section(BaseModel):
    """A heading plus the list / definition-list items that follow it."""

    title: str
    items: List[SectionItem]


class PageModel(BaseModel):
    """Unified internal model representing one harvested page."""

    model_config = ConfigDict(frozen=True)

    url: str
    slug: str
    title: str
    h1: str = ""
    description: str = ""
    body_text: str = ""
    meta_title: str = ""
    meta_description: str = ""
    og_title: str = ""
    og_description: str = ""
    og_image: str = ""
    images: List[str] = []
    hero_subtitle: Optional[str] = None
    hero_cta_text: Optional[str] = None
    hero_cta_link: Optional[str] = None
    sections: List[Section] = []
    branding: Optional[Branding] = None
    taxonomy_hints: Optional[TaxonomyHints] = None
    structured_data: Optional[StructuredPayload] = None
