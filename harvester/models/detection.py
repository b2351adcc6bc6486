from typing import Dict, Literal, Optional

from pydantic import BaseModel

from harvester.models.branding import Branding

SiteStrategy = Literal["nextjs", "nuxtjs", "gatsby", "react-static", "static", "blocked"]
Confidence = Literal["high", "medium", "low"]


class DetectionResult(BaseModel):
    strategy: SiteStrategy
    framework: Optional[str] = None
    framework_version: Optional[str] = None
    has_structured_data: bool = False
    has_products: bool = False
    has_navigation: bool = False
    page_size: int = 0
    confidence: Confidence
    recommendation: str
    """Human-readable next step for the detected strategy."""


class DetectionReport(BaseModel):
    """Per-URL outcome of a detection-only analysis run."""

    url: str
    detection: DetectionResult
    structured_summary: Optional[Dict[str, int]] = None
    branding: Optional[Branding] = None
    error: Optional[str] = None
