"""
Site Harvester CLI.

Examples:
    harvester harvest -c harvest.config.json
    harvester analyze -c harvest.config.json
    harvester load -s <space-id> --seo --geo
    harvester enrich -s <space-id> --seo
    harvester run -c harvest.config.json -s <space-id>
"""

import asyncio
import logging.config
import click
from pydantic import ValidationError

from harvester.config import LOGGING_CONFIG, Settings, load_harvest_config, load_settings
from harvester.models.harvest import HarvestConfig, HarvestOutput
from harvester.services import storage
from harvester.services.contentful import ContentfulClient
from harvester.services.detector import format_detection_report
from harvester.services.enrichment import enrich_pages
from harvester.services.page_loader import load_harvest_output
from harvester.services.strategy import analyze, harvest
from harvester.services.structured_loader import load_structured_data


def _fail(message: str) -> None:
    click.secho(f"  ✗ {message}", fg="red", err=True)
    raise click.Abort()


def _read_config(path: str) -> HarvestConfig:
    try:
        return load_harvest_config(path)
    except FileNotFoundError as exc:
        _fail(str(exc))
    except ValidationError as exc:
        _fail(f"Invalid harvest config {path}: {exc}")


def _require_credentials(settings: Settings) -> None:
    if not settings.contentful_management_token:
        _fail("CONTENTFUL_MANAGEMENT_TOKEN is required. Set it in .env.local or the environment.")
    if not settings.contentful_space_id:
        _fail("A space ID is required. Pass --space or set CONTENTFUL_SPACE_ID.")


def _client(settings: Settings) -> ContentfulClient:
    _require_credentials(settings)
    return ContentfulClient(
        settings.contentful_management_token,
        settings.contentful_space_id,
        settings.contentful_environment,
    )


async def _load(settings: Settings, output: HarvestOutput, seo: bool, geo: bool, structured: bool) -> None:
    async with _client(settings) as client:
        results = await load_harvest_output(client, output, seo=seo, geo=geo)
        for result in results:
            if result.error:
                click.secho(f"  ✗ {result.url}: {result.error}", fg="red")
            else:
                click.secho(f"  ✓ {result.url} → page {result.page_id}", fg="green")

        if structured:
            for page in output.pages:
                if page.structured_data is None:
                    continue
                summary = await load_structured_data(client, page.structured_data, page.title, page.url)
                click.echo(f"  {page.url}: {summary.total_entries} structured entries")


def _print_harvest_summary(output: HarvestOutput) -> None:
    click.echo(
        f"\n  Harvest complete: {len(output.pages)}/{len(output.config.urls)} pages, "
        f"{len(output.assets)} assets"
    )


@click.group()
@click.version_option(version="0.1.0", prog_name="harvester")
def cli():
    """Harvest website content and load it into Contentful."""


@cli.command("harvest")
@click.option("-c", "--config", "config_path", required=True, help="Path to harvest.config.json")
@click.option("-o", "--output", "output_dir", default=None, help="Output directory")
def harvest_command(config_path: str, output_dir: str | None):
    """Scrape pages and extract content, branding and assets."""
    config = _read_config(config_path)
    settings = load_settings(output_dir=output_dir)
    output = asyncio.run(harvest(config, settings.harvest_output_dir))
    _print_harvest_summary(output)


@cli.command("analyze")
@click.option("-c", "--config", "config_path", required=True, help="Path to harvest.config.json")
@click.option("-o", "--output", "output_dir", default=None, help="Output directory")
def analyze_command(config_path: str, output_dir: str | None):
    """Detect each site's rendering strategy without extracting pages."""
    config = _read_config(config_path)
    settings = load_settings(output_dir=output_dir)
    reports = asyncio.run(analyze(config, settings.harvest_output_dir))

    for report in reports:
        click.echo(format_detection_report(report.url, report.detection))
        if report.structured_summary:
            counts = ", ".join(f"{count} {name}" for name, count in report.structured_summary.items())
            click.echo(f"    Extracted: {counts}")
        if report.error:
            click.secho(f"    ERROR: {report.error}", fg="red")
        click.echo("")


@cli.command("load")
@click.option("-s", "--space", "space_id", default=None, help="Contentful space ID")
@click.option("-e", "--env", "environment", default=None, help="Contentful environment")
@click.option("-i", "--input", "input_dir", default=None, help="Harvest output directory")
@click.option("--seo", is_flag=True, help="Generate SEO metadata via AI Actions")
@click.option("--geo", is_flag=True, help="Generate GEO content via AI Actions")
@click.option("--structured", is_flag=True, help="Also load embedded product/navigation data")
def load_command(space_id, environment, input_dir, seo, geo, structured):
    """Load harvested content into a Contentful space."""
    settings = load_settings(space_id, environment, input_dir)
    manifest = storage.manifest_path(settings.harvest_output_dir)
    if not manifest.is_file():
        _fail(f"No harvest manifest found at {manifest.resolve()}. Run 'harvester harvest' first.")

    _require_credentials(settings)

    output = storage.read_manifest(manifest)
    asyncio.run(_load(settings, output, seo, geo, structured))


@cli.command("enrich")
@click.option("-s", "--space", "space_id", default=None, help="Contentful space ID")
@click.option("-e", "--env", "environment", default=None, help="Contentful environment")
@click.option("--seo", is_flag=True, help="Generate SEO metadata")
@click.option("--geo", is_flag=True, help="Generate GEO content")
def enrich_command(space_id, environment, seo, geo):
    """Attach AI-generated SEO/GEO entries to existing pages."""
    settings = load_settings(space_id, environment)
    _require_credentials(settings)

    async def _enrich():
        async with _client(settings) as client:
            return await enrich_pages(client, seo=seo, geo=geo)

    counts = asyncio.run(_enrich())
    click.echo(f"  SEO: {counts['seo']}  GEO: {counts['geo']}  failed: {counts['failed']}")


@cli.command("run")
@click.option("-c", "--config", "config_path", required=True, help="Path to harvest.config.json")
@click.option("-s", "--space", "space_id", default=None, help="Contentful space ID")
@click.option("-e", "--env", "environment", default=None, help="Contentful environment")
@click.option("-o", "--output", "output_dir", default=None, help="Output directory")
@click.option("--seo", is_flag=True, help="Generate SEO metadata via AI Actions")
@click.option("--geo", is_flag=True, help="Generate GEO content via AI Actions")
def run_command(config_path, space_id, environment, output_dir, seo, geo):
    """Full pipeline: harvest, then load into Contentful."""
    config = _read_config(config_path)
    settings = load_settings(space_id, environment, output_dir)
    _require_credentials(settings)

    click.echo("  Step 1/2: Harvest")
    output = asyncio.run(harvest(config, settings.harvest_output_dir))
    _print_harvest_summary(output)

    click.echo("  Step 2/2: Load into Contentful")
    asyncio.run(_load(settings, output, seo, geo, structured=False))
    click.echo("  Pipeline complete")


def main():
    """Entry point for CLI."""
    logging.config.dictConfig(LOGGING_CONFIG)
    cli()


if __name__ == "__main__":
    main()
