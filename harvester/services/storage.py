"""On-disk layout of a harvest run under ``<output_dir>/harvest/``."""

import logging
from pathlib import Path

from pydantic import BaseModel

from harvester.models.branding import Branding
from harvester.models.harvest import HarvestOutput
from harvester.models.page import PageModel

logger = logging.getLogger(__name__)

HARVEST_DIR = "harvest"
PAGES_DIR = "pages"
ASSETS_DIR = "assets"
MANIFEST_FILE = "manifest.json"
BRANDING_FILE = "branding.json"


def harvest_dir(output_dir: str | Path) -> Path:
    return Path(output_dir) / HARVEST_DIR


def manifest_path(output_dir: str | Path) -> Path:
    return harvest_dir(output_dir) / MANIFEST_FILE


def page_filename(slug: str) -> str:
    """``products/shoes`` → ``products_shoes.json``."""
    return f"{slug.replace('/', '_')}.json"


def asset_local_path(file_name: str) -> str:
    """Manifest-relative path of a downloaded asset (always ``/``-separated)."""
    return f"{HARVEST_DIR}/{ASSETS_DIR}/{file_name}"


def _write_model(path: Path, model: BaseModel) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(model.model_dump_json(indent=2), encoding="utf-8")
    return path


def write_page(output_dir: str | Path, page: PageModel) -> Path:
    return _write_model(harvest_dir(output_dir) / PAGES_DIR / page_filename(page.slug), page)


def write_branding(output_dir: str | Path, branding: Branding) -> Path:
    path = _write_model(harvest_dir(output_dir) / BRANDING_FILE, branding)
    logger.info("Saved %s", path)
    return path


def write_manifest(output_dir: str | Path, output: HarvestOutput) -> Path:
    return _write_model(manifest_path(output_dir), output)


def read_manifest(path: str | Path) -> HarvestOutput:
    """Load a ``manifest.json`` back into a :class:`HarvestOutput`.

    Raises:
        FileNotFoundError: if *path* does not exist.
        pydantic.ValidationError: if the file is not a valid manifest.
    """
    return HarvestOutput.model_validate_json(Path(path).read_text(encoding="utf-8"))
