"""
Region/Locale Reference Tracker

Records which (geo, locale) pairs have been observed and serves the grouped
geo -> locales options used by the filter UI.

Sources:
- UPLOAD rows (primary): pairs seen during extraction
- SYNC rows (secondary): pairs parsed from the storefront region page,
  merged only when ASSET_FINDER_REGION_OPTIONS_UPLOAD_ONLY is off or no
  upload rows exist yet

Options are cached as a CachedValue(payload, loaded_at) against an injected
clock. Writes invalidate and synchronously reload the cache. When nothing
has been observed, or the table cannot be read, a static fallback is served:
    {"WW": ["en_US"], "JP": ["ja_JP"], "KR": ["ko_KR"]}
"""

import copy
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from constants import FALLBACK_GEO_TO_LOCALES, SOURCE_SYNC, SOURCE_UPLOAD
from models.asset_region_locale_ref import AssetRegionLocaleRef
from utils.normalize import (
    business_region_for_locale,
    locale_country,
    locale_country_for_geo,
    normalize_display_name,
    normalize_geo,
    normalize_locale,
    normalize_storefront_path,
    order_business_regions,
    storefront_path_for_locale,
)

logger = logging.getLogger(__name__)


# =============================================================================
# VALUE TYPES
# =============================================================================

@dataclass(frozen=True)
class CachedValue:
    payload: Any
    loaded_at: float

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        return (now - self.loaded_at) < ttl_seconds


@dataclass(frozen=True)
class RegionObservation:
    """One observed pair, before normalization."""
    geo: Optional[str] = None
    locale: Optional[str] = None
    display_name: Optional[str] = None
    storefront_path: Optional[str] = None


@dataclass
class OptionsSnapshot:
    geos: List[str] = field(default_factory=list)
    geo_to_locales: Dict[str, List[str]] = field(default_factory=dict)
    fallback: bool = False

    def default_locale_for(self, geo) -> Optional[str]:
        locales = self.geo_to_locales.get(normalize_geo(geo) or '')
        return locales[0] if locales else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'geos': list(self.geos),
            'geoToLocales': {geo: list(locales) for geo, locales in self.geo_to_locales.items()},
        }


def fallback_snapshot() -> OptionsSnapshot:
    geo_to_locales = copy.deepcopy(FALLBACK_GEO_TO_LOCALES)
    return OptionsSnapshot(
        geos=order_business_regions(geo_to_locales.keys()),
        geo_to_locales=geo_to_locales,
        fallback=True,
    )


def build_snapshot(locales: Iterable[str]) -> OptionsSnapshot:
    """Group locales by business region of their country."""
    groups: Dict[str, set] = {}
    for locale in locales:
        normalized = normalize_locale(locale)
        if not normalized:
            continue
        groups.setdefault(business_region_for_locale(normalized), set()).add(normalized)
    if not groups:
        return fallback_snapshot()
    geos = order_business_regions(groups.keys())
    return OptionsSnapshot(
        geos=geos,
        geo_to_locales={geo: sorted(groups[geo]) for geo in geos},
    )


def normalize_observations(observations: Iterable[RegionObservation]) -> Dict[str, RegionObservation]:
    """
    Normalize and collapse observations to one per locale (last wins).

    Geo is always the locale's country. A disagreeing explicit geo is
    logged and ignored (UK is read as GB before comparing).
    Observations without a parseable locale are dropped.
    """
    collapsed: Dict[str, RegionObservation] = {}
    for observation in observations:
        locale = normalize_locale(observation.locale)
        if not locale:
            continue
        geo = locale_country(locale)
        explicit = locale_country_for_geo(observation.geo)
        if explicit and explicit != geo:
            logger.debug("region_locale_geo_mismatch geo=%s locale=%s", observation.geo, locale)
        previous = collapsed.get(locale)
        collapsed[locale] = RegionObservation(
            geo=geo,
            locale=locale,
            display_name=(
                normalize_display_name(observation.display_name)
                or (previous.display_name if previous else None)
                or locale
            ),
            storefront_path=(
                normalize_storefront_path(observation.storefront_path)
                or (previous.storefront_path if previous else None)
                or storefront_path_for_locale(locale)
            ),
        )
    return collapsed


# =============================================================================
# TRACKER
# =============================================================================

class RegionLocaleTracker:
    """
    Args:
        session_factory: zero-arg callable returning a new SQLAlchemy Session
        ttl_seconds: cache lifetime of the options snapshot
        upload_only: serve SYNC rows only when no UPLOAD rows exist
        clock: monotonic seconds source (injected in tests)
        tables_present: zero-arg callable; False serves the fallback
    """

    def __init__(
        self,
        session_factory: Callable,
        ttl_seconds: float = 180 * 60,
        upload_only: bool = True,
        clock: Callable[[], float] = time.monotonic,
        tables_present: Callable[[], bool] = lambda: True,
    ):
        self.session_factory = session_factory
        self.ttl_seconds = ttl_seconds
        self.upload_only = upload_only
        self.clock = clock
        self.tables_present = tables_present
        self._cache: Optional[CachedValue] = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_observations(
        self,
        observations: Iterable[RegionObservation],
        source_type: str = SOURCE_UPLOAD,
    ) -> int:
        """
        Upsert observed pairs; returns the number of locales written.

        Existing active row: seen_count + 1, last_seen_at and labels
        refreshed. Otherwise a new row with seen_count = 1.
        """
        collapsed = normalize_observations(observations)
        if not collapsed:
            return 0

        now = datetime.utcnow()
        session = self.session_factory()
        try:
            active = self._active_rows(session, source_type, list(collapsed))
            for locale, observation in collapsed.items():
                row = active.get(locale)
                if row is None:
                    row = self._insert_row(session, source_type, observation, now)
                    if row is not None:
                        continue
                    row = self._active_rows(session, source_type, [locale]).get(locale)
                row.seen_count = (row.seen_count or 0) + 1
                row.last_seen_at = now
                row.geo_code = observation.geo
                row.display_name = observation.display_name
                row.storefront_path = observation.storefront_path
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

        logger.info(
            "region_locale_recorded source=%s locales=%s",
            source_type, ','.join(sorted(collapsed)),
        )
        self.refresh()
        return len(collapsed)

    def _active_rows(self, session, source_type: str, locales: List[str]) -> Dict[str, AssetRegionLocaleRef]:
        """
        Active rows by locale. Duplicate active rows for one locale are
        deactivated first, keeping the highest seen_count, then the oldest.
        """
        rows = session.execute(
            select(AssetRegionLocaleRef).where(
                AssetRegionLocaleRef.source_type == source_type,
                AssetRegionLocaleRef.active.is_(True),
                AssetRegionLocaleRef.locale_code.in_(locales),
            )
        ).scalars().all()

        by_locale: Dict[str, List[AssetRegionLocaleRef]] = {}
        for row in rows:
            by_locale.setdefault(row.locale_code, []).append(row)

        keep = {}
        for locale, candidates in by_locale.items():
            candidates.sort(key=lambda r: (-(r.seen_count or 0), r.created_at or datetime.min))
            keep[locale] = candidates[0]
            for duplicate in candidates[1:]:
                duplicate.active = False
                logger.warning(
                    "region_locale_duplicate_deactivated source=%s locale=%s id=%s",
                    source_type, locale, duplicate.id,
                )
        if any(len(candidates) > 1 for candidates in by_locale.values()):
            session.flush()
        return keep

    def _insert_row(self, session, source_type, observation: RegionObservation, now):
        """Insert a new active row; None when a concurrent writer won the race."""
        row = AssetRegionLocaleRef(
            geo_code=observation.geo,
            locale_code=observation.locale,
            display_name=observation.display_name,
            storefront_path=observation.storefront_path,
            source_type=source_type,
            active=True,
            last_seen_at=now,
            seen_count=1,
            created_at=now,
            updated_at=now,
        )
        try:
            with session.begin_nested():
                session.add(row)
        except IntegrityError:
            logger.info("region_locale_insert_conflict source=%s locale=%s", source_type, observation.locale)
            return None
        return row

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def invalidate(self):
        with self._lock:
            self._cache = None

    def refresh(self) -> OptionsSnapshot:
        """Reload the snapshot now, replacing whatever is cached."""
        with self._lock:
            return self._load_locked()

    def get_options_snapshot(self) -> OptionsSnapshot:
        with self._lock:
            cached = self._cache
            if cached is not None and cached.is_fresh(self.clock(), self.ttl_seconds):
                return cached.payload
            return self._load_locked()

    def get_default_locale_for_geo(self, geo) -> Optional[str]:
        return self.get_options_snapshot().default_locale_for(geo)

    def _load_locked(self) -> OptionsSnapshot:
        try:
            snapshot = self._read_snapshot()
        except Exception as exc:
            logger.warning("region_locale_options_unavailable error=%s", exc)
            if self._cache is not None:
                return self._cache.payload
            return fallback_snapshot()
        self._cache = CachedValue(payload=snapshot, loaded_at=self.clock())
        return snapshot

    def _read_snapshot(self) -> OptionsSnapshot:
        if not self.tables_present():
            return fallback_snapshot()
        session = self.session_factory()
        try:
            rows = session.execute(
                select(AssetRegionLocaleRef.locale_code, AssetRegionLocaleRef.source_type).where(
                    AssetRegionLocaleRef.active.is_(True)
                )
            ).all()
        finally:
            session.close()

        upload = [locale for locale, source in rows if source == SOURCE_UPLOAD]
        sync = [locale for locale, source in rows if source == SOURCE_SYNC]
        locales = upload
        if not self.upload_only or not upload:
            locales = upload + sync
        return build_snapshot(locales)
