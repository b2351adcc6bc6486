from pydantic import BaseModel

from harvester.models.detection import DetectionResult
from harvester.models.page import PageModel


class ScrapeResponse(BaseModel):
    url: str
    detection: DetectionResult
    page: PageModel
