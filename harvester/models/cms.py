from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class EntryPayload(BaseModel):
    """An entry to create, with fields that may hold ``_localRef`` placeholders.

    ``fields`` is keyed by field id, then by locale.  ``depends_on`` lists the
    ``local_id`` of every entry that must exist before this one.  Entries in
    ``links_to`` are created first as well, but when one of them fails its
    link is dropped from ``fields`` and this entry is created anyway.
    """

    local_id: str
    content_type_id: str
    fields: Dict[str, Dict[str, Any]]
    metadata: Optional[Dict[str, Any]] = None
    depends_on: List[str] = []
    links_to: List[str] = []


class LoadReport(BaseModel):
    entries_created: int = 0
    errors: List[str] = []
    id_map: Dict[str, str] = {}


class PageLoadResult(BaseModel):
    url: str
    page_id: str = ""
    hero_id: Optional[str] = None
    seo_id: Optional[str] = None
    geo_id: Optional[str] = None
    section_ids: List[str] = []
    asset_ids: List[str] = []
    error: Optional[str] = None


class StructuredLoadResult(BaseModel):
    product_entries: int = 0
    product_section_entries: int = 0
    nav_entries: int = 0
    hero_entries: int = 0
    footer_entries: int = 0
    brand_entries: int = 0
    asset_count: int = 0
    total_entries: int = 0
    page_id: Optional[str] = None


class AiActionIds(BaseModel):
    seo_action_id: Optional[str] = None
    geo_action_id: Optional[str] = None
    translate_action_id: Optional[str] = None
