#!/usr/bin/env python3
"""
CLI for Asset Finder operations

Commands:
    migrate-filter-columns  - Convert legacy filter columns to TEXT (PostgreSQL)
    sync-regions            - Fetch the storefront region page into SYNC rows
    extract                 - Extract assets from one JSON document file

Usage:
    python cli.py migrate-filter-columns
    python cli.py sync-regions --force
    python cli.py extract page.json --raw-data-id 42 --source-uri /content/dam/x/page.json --version 3

Examples:
    # Extract with explicit metadata (wins over path inference)
    python cli.py extract page.json --raw-data-id 42 --source-uri s1 --locale ja-JP --site mac

    # Machine-readable output
    python cli.py extract page.json --raw-data-id 42 --source-uri s1 --json
"""

import dataclasses
import json
import sys

import click


def get_app():
    """Flask app for database access (no background region sync)."""
    from app import create_app
    return create_app({"ASSET_FINDER_REGION_SYNC_BACKGROUND": False})


@click.group()
@click.version_option(version="1.0.0", prog_name="asset-finder-cli")
def cli():
    """Asset Finder CLI - schema maintenance, region sync and extraction."""
    pass


@cli.command("migrate-filter-columns")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def migrate_filter_columns(output_json):
    """
    Convert non-text occurrence filter columns to TEXT.

    Idempotent. A no-op on databases other than PostgreSQL.
    """
    app = get_app()
    with app.app_context():
        from services.asset_finder import get_state

        result = get_state().schema_guard.migrate_filter_columns(force=True)

    if output_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif result.success:
        click.secho("Filter columns are text-compatible", fg="green")
        click.echo(f"  Converted: {', '.join(result.converted) or '-'}")
        click.echo(f"  Unchanged: {len(result.skipped)}")
    else:
        click.secho(f"Migration failed: {result.error}", fg="red")
        click.echo("Search filters fall back to case-sensitive equality.")

    sys.exit(0 if result.success else 1)


@cli.command("sync-regions")
@click.option("--force", is_flag=True, help="Run even when ASSET_FINDER_REGION_SYNC_ENABLED is off")
@click.option("--url", default=None, help="Override ASSET_FINDER_REGION_SOURCE_URL")
def sync_regions(force, url):
    """
    Sync region/locale options from the storefront region page.

    Failures keep the previously known options in place.
    """
    app = get_app()
    with app.app_context():
        from services.asset_finder import get_state
        from services.asset_finder.region_sync import sync_from_remote

        state = get_state()
        settings = state.settings
        if force:
            settings = dataclasses.replace(settings, region_sync_enabled=True)
        if url:
            settings = dataclasses.replace(settings, region_source_url=url)

        result = sync_from_remote(state.tracker, settings, trigger="cli")

    if result.skipped:
        click.secho("Region sync skipped (disabled). Use --force to run anyway.", fg="yellow")
    elif result.success:
        click.secho(f"Region sync complete: {result.recorded} locales recorded", fg="green")
    else:
        click.secho(f"Region sync failed: {result.error_message}", fg="red")

    sys.exit(0 if result.success else 1)


@cli.command("extract")
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--raw-data-id", required=True, help="Identifier of the uploaded document")
@click.option("--source-uri", required=True, help="Source URI of the document")
@click.option("--version", "source_version", type=int, default=None, help="Source version")
@click.option("--tenant", default=None)
@click.option("--environment", default=None)
@click.option("--project", default=None)
@click.option("--site", default=None)
@click.option("--geo", default=None)
@click.option("--locale", default=None)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def extract(file_path, raw_data_id, source_uri, source_version,
            tenant, environment, project, site, geo, locale, output_json):
    """
    Extract assets from one JSON document file.

    FILE_PATH: Path to the JSON document
    """
    with open(file_path, "r", encoding="utf-8") as f:
        document = f.read()

    request_metadata = {
        "tenant": tenant,
        "environment": environment,
        "project": project,
        "site": site,
        "geo": geo,
        "locale": locale,
    }

    app = get_app()
    with app.app_context():
        from services.asset_finder.extraction import extract_and_store

        result = extract_and_store(
            document,
            raw_data_id,
            source_uri,
            source_version=source_version,
            request_metadata={k: v for k, v in request_metadata.items() if v},
        )

    if output_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif result.success:
        if result.skipped_reason:
            click.secho(f"Extraction skipped: {result.skipped_reason}", fg="yellow")
        else:
            click.secho("Extraction complete", fg="green")
            click.echo(f"  Discovered: {result.discovered}")
            click.echo(f"  Skipped:    {result.skipped}")
            click.echo(f"  Persisted:  {result.persisted}")
            click.echo(f"  New catalog entries: {len(result.catalog_created)}")
    else:
        click.secho(f"Extraction failed: {result.error_message}", fg="red")

    sys.exit(0 if result.success else 1)


if __name__ == "__main__":
    cli()
