"""
Asset Finder - asset metadata extraction & reconciliation

Per-app state lives in app.extensions['asset_finder'] and is created by
init_asset_finder(app) inside create_app(). Services reach it through
get_state() from within an app context.

Modules:
    discovery       recursive visitor producing raw asset nodes
    resolver        display fields, metadata inference, hashes
    catalog_store   catalog get-or-create, occurrence replace
    schema_guard    table probe, filter-column migration
    region_locale   observed region/locale pairs and options cache
    region_sync     optional storefront page sync
    extraction      per-document entry point (fail-open)
    query_service   options, search, detail, count
"""

import logging
from dataclasses import dataclass
from typing import Optional

from flask import current_app
from sqlalchemy.orm import sessionmaker

from models.database import db
from services.asset_finder.region_locale import RegionLocaleTracker
from services.asset_finder.region_sync import RegionSyncScheduler, start_region_sync
from services.asset_finder.schema_guard import SchemaGuard
from services.asset_finder.settings import AssetFinderSettings

logger = logging.getLogger(__name__)


EXTENSION_KEY = 'asset_finder'


@dataclass
class AssetFinderState:
    settings: AssetFinderSettings
    session_factory: sessionmaker
    schema_guard: SchemaGuard
    tracker: RegionLocaleTracker
    region_sync: Optional[RegionSyncScheduler] = None


def build_state(app) -> AssetFinderState:
    settings = AssetFinderSettings.from_config(app.config)
    with app.app_context():
        engine = db.engine
    guard = SchemaGuard(engine)
    session_factory = sessionmaker(bind=engine)
    tracker = RegionLocaleTracker(
        session_factory,
        ttl_seconds=settings.region_cache_ttl_seconds,
        upload_only=settings.region_options_upload_only,
        tables_present=guard.tables_present,
    )
    return AssetFinderState(
        settings=settings,
        session_factory=session_factory,
        schema_guard=guard,
        tracker=tracker,
    )


def init_asset_finder(app) -> AssetFinderState:
    """
    Create the per-app state.

    Optionally runs the filter-column migration and starts the background
    region sync (startup sync, then every ASSET_FINDER_REGION_SYNC_INTERVAL_HOURS).
    """
    state = build_state(app)
    app.extensions[EXTENSION_KEY] = state

    if state.settings.migrate_on_startup:
        result = state.schema_guard.migrate_filter_columns()
        logger.info("asset_finder_startup_migration success=%s", result.success)

    state.region_sync = start_region_sync(state.tracker, state.settings)

    logger.info(
        "asset_finder_initialized enabled=%s region_sync=%s",
        state.settings.enabled, state.settings.region_sync_enabled,
    )
    return state


def get_state() -> AssetFinderState:
    state = current_app.extensions.get(EXTENSION_KEY)
    if state is None:
        state = init_asset_finder(current_app._get_current_object())
    return state
