import logging

from fastapi import APIRouter, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from harvester.config import load_settings
from harvester.models.harvest import HarvestConfig, HarvestOutput
from harvester.services.strategy import harvest

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()


@router.post(
    "/harvest",
    response_model=HarvestOutput,
    summary="Harvest a list of URLs",
    description=(
        "Processes every URL in the config sequentially, writes per-page JSON, "
        "branding and the manifest under the configured output directory, and "
        "returns the manifest.  URLs that fail are skipped."
    ),
)
@limiter.limit("3/minute")
async def harvest_endpoint(request: Request, body: HarvestConfig) -> HarvestOutput:
    if any(entry.html_file for entry in body.urls):
        raise HTTPException(status_code=400, detail="html_file is only supported from the CLI.")

    output_dir = load_settings().harvest_output_dir
    logger.info(
        "Harvest request received",
        extra={"name": body.name, "urls": len(body.urls), "output_dir": output_dir},
    )
    return await harvest(body, output_dir)
