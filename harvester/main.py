import logging
import logging.config

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from harvester.config import LOGGING_CONFIG
from harvester.routers.harvest import router as harvest_router
from harvester.routers.scrape import limiter, router as scrape_router

logging.config.dictConfig(LOGGING_CONFIG)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Site Harvester API",
    description="Detects a site's rendering strategy and extracts pages, branding and structured data.",
    version="1.0.0",
)

# Rate-limiting state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception for %s", request.url)
    return JSONResponse(status_code=500, content={"detail": "An unexpected error occurred."})


app.include_router(scrape_router)
app.include_router(harvest_router)


@app.get("/", summary="Health check")
async def root() -> dict:
    return {"message": "Hello from Site Harvester"}
