"""
Asset Finder Query Service - read side of the catalog

Operations:
- get_options(): filter option lists (tenants, environments, projects,
  sites, geos, geoToLocales)
- search(filters, page, size): paged occurrence tiles
- get_detail(occurrence_id): one occurrence joined with its catalog entry
- get_extraction_count(raw_data_id): how many assets a document produced

"No data" never raises. A missing schema yields empty search results,
fallback options and zero counts.

Geo semantics in search:
- locale, when given, wins and geo is ignored
- a country code (JP, FR, GB) filters the stored geo directly
- a grouped region name (WW, UK, GC, APAC, ...) is translated to that
  region's default locale, or dropped when the region has none
"""

import logging
import math
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func, select

from constants import BUSINESS_REGION_COUNTRIES, DEFAULT_BUSINESS_REGION, is_single_country_region
from models.asset_metadata_occurrence import AssetMetadataOccurrence
from models.database import db
from services.asset_finder import get_state
from services.asset_finder.catalog_store import count_occurrences
from utils.normalize import (
    normalize_geo,
    normalize_locale,
    normalize_site,
    normalize_text,
    to_int,
)

logger = logging.getLogger(__name__)


DEFAULT_PAGE_SIZE = 20

TEXT_FILTERS = ('tenant', 'environment', 'project')


def _normalized_filters(filters: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    filters = filters or {}
    cleaned = {name: normalize_text(filters.get(name)) for name in TEXT_FILTERS}
    cleaned['site'] = normalize_site(filters.get('site'))
    cleaned['geo'] = normalize_geo(filters.get('geo'))
    cleaned['locale'] = normalize_locale(filters.get('locale'))
    return {name: value for name, value in cleaned.items() if value}


def is_grouped_region(geo: str) -> bool:
    """True for region names that are not themselves a stored geo value."""
    if geo == DEFAULT_BUSINESS_REGION:
        return True
    return geo in BUSINESS_REGION_COUNTRIES and not is_single_country_region(geo)


def resolve_geo_filter(filters: Dict[str, str], tracker) -> Dict[str, str]:
    """Apply locale-over-geo precedence and grouped-region translation."""
    resolved = dict(filters)
    geo = resolved.get('geo')
    if not geo:
        return resolved
    if resolved.get('locale'):
        resolved.pop('geo')
        return resolved
    if is_grouped_region(geo):
        resolved.pop('geo')
        locale = tracker.get_default_locale_for_geo(geo)
        if locale:
            resolved['locale'] = locale
        else:
            logger.debug("asset_search_geo_dropped geo=%s reason=no_default_locale", geo)
    return resolved


def page_params(page, size, max_size: int):
    """
    Clamp paging input: page >= 0, 1 <= size <= max_size.

    Raises:
        ValidationError: for non-integer input
    """
    page = to_int(page, default=0, field='page')
    size = to_int(size, default=DEFAULT_PAGE_SIZE, field='size')
    return max(0, page), min(max(1, size), max(1, max_size))


def empty_page(page: int, size: int) -> Dict[str, Any]:
    return {'count': 0, 'page': page, 'size': size, 'totalPages': 0, 'items': []}


def get_options() -> Dict[str, Any]:
    state = get_state()
    settings = state.settings

    sites = [site for site in (normalize_site(s) for s in settings.sites) if site]
    if settings.enabled and state.schema_guard.tables_present():
        observed = db.session.execute(
            select(AssetMetadataOccurrence.site)
            .where(AssetMetadataOccurrence.site.isnot(None))
            .distinct()
        ).scalars().all()
        extras = sorted({normalize_site(site) for site in observed if normalize_site(site)} - set(sites))
        sites.extend(extras)

    options = {
        'tenants': list(settings.tenants),
        'environments': list(settings.environments),
        'projects': list(settings.projects),
        'sites': sites,
    }
    options.update(state.tracker.get_options_snapshot().to_dict())
    return options


def search(filters: Optional[Mapping[str, Any]] = None, page=0, size=DEFAULT_PAGE_SIZE) -> Dict[str, Any]:
    """
    Filtered, paged occurrence search ordered by recency.

    Raises:
        ValidationError: for non-integer page/size
    """
    state = get_state()
    page, size = page_params(page, size, state.settings.search_max_size)

    if not state.settings.enabled or not state.schema_guard.tables_present():
        return empty_page(page, size)

    resolved = resolve_geo_filter(_normalized_filters(filters), state.tracker)
    case_insensitive = state.schema_guard.case_insensitive_filters

    conditions = []
    for name, value in resolved.items():
        column = getattr(AssetMetadataOccurrence, name)
        if case_insensitive:
            conditions.append(func.lower(column) == value.lower())
        else:
            conditions.append(column == value)

    count = db.session.execute(
        select(func.count(AssetMetadataOccurrence.id)).where(*conditions)
    ).scalar() or 0

    rows: List[AssetMetadataOccurrence] = []
    if count:
        rows = db.session.execute(
            select(AssetMetadataOccurrence)
            .where(*conditions)
            .order_by(AssetMetadataOccurrence.created_at.desc(), AssetMetadataOccurrence.id.desc())
            .offset(page * size)
            .limit(size)
        ).unique().scalars().all()

    logger.debug("asset_search filters=%s count=%d page=%d size=%d", resolved, count, page, size)
    return {
        'count': count,
        'page': page,
        'size': size,
        'totalPages': math.ceil(count / size) if count else 0,
        'items': [row.to_tile() for row in rows],
    }


def get_detail(occurrence_id) -> Optional[Dict[str, Any]]:
    state = get_state()
    occurrence_id = normalize_text(occurrence_id)
    if not occurrence_id or not state.schema_guard.tables_present():
        return None
    row = db.session.get(AssetMetadataOccurrence, occurrence_id)
    return row.to_detail() if row else None


def get_extraction_count(raw_data_id) -> Dict[str, Any]:
    state = get_state()
    raw_data_id = normalize_text(raw_data_id)
    schema_present = state.schema_guard.tables_present()
    payload = {
        'rawDataId': raw_data_id,
        'sourceUri': None,
        'sourceVersion': None,
        'assetCount': 0,
        'featureEnabled': state.settings.enabled,
        'schemaPresent': schema_present,
    }
    if not raw_data_id or not schema_present:
        return payload

    count = count_occurrences(db.session, raw_data_id)
    payload['assetCount'] = count
    if count:
        latest = db.session.execute(
            select(AssetMetadataOccurrence.source_uri, AssetMetadataOccurrence.source_version)
            .where(AssetMetadataOccurrence.raw_data_id == raw_data_id)
            .order_by(AssetMetadataOccurrence.created_at.desc())
            .limit(1)
        ).first()
        payload['sourceUri'], payload['sourceVersion'] = latest
    return payload
