from typing import List

from pydantic import BaseModel


class TaxonomyHints(BaseModel):
    breadcrumbs: List[str] = []
    url_path: List[str] = []
    meta_categories: List[str] = []
    suggested_concepts: List[str] = []
