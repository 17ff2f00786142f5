"""
Region Sync - optional secondary source for region/locale options

Fetches the storefront "choose your country or region" page and turns its
storefront links into SYNC reference rows.

Link shapes understood:
    /jp/       country only, language from hints or the per-geo default
    /ca/fr/    country + language
    /ae-ar/    country-language
An anchor's hreflang/lang attribute, when it names a locale for the same
country, is used as an explicit language hint.

Disabled by default (ASSET_FINDER_REGION_SYNC_ENABLED). When enabled, create_app()
starts a RegionSyncScheduler that syncs at startup and then every
ASSET_FINDER_REGION_SYNC_INTERVAL_HOURS. Every failure is logged as a warning
and leaves the last known options in place.
"""

import logging
import threading
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

from constants import SOURCE_SYNC
from services.asset_finder.region_locale import RegionLocaleTracker, RegionObservation
from services.asset_finder.settings import AssetFinderSettings
from utils.normalize import (
    STOREFRONT_COUNTRY_LANGUAGE,
    STOREFRONT_COUNTRY_LANGUAGE_HYPHEN,
    STOREFRONT_COUNTRY_ONLY,
    default_language_for_geo,
    locale_country_for_geo,
    normalize_display_name,
    normalize_language,
    normalize_locale,
    normalize_storefront_path,
)

logger = logging.getLogger(__name__)


@dataclass
class RegionSyncResult:
    success: bool
    trigger: str = 'manual'
    skipped: bool = False
    fetched: int = 0
    recorded: int = 0
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class _StorefrontLink:
    geo: str
    path: str
    language: Optional[str]
    display_name: Optional[str]


@dataclass
class _GeoLinks:
    links: List[_StorefrontLink] = field(default_factory=list)

    @property
    def explicit_languages(self):
        return {link.language for link in self.links if link.language}


def _href_path(href: str) -> Optional[str]:
    if not href:
        return None
    if '://' in href or href.startswith('//'):
        return urlparse(href).path or None
    return href


def _hint_language(anchor, geo: str) -> Optional[str]:
    """Language from hreflang/lang when it names a locale of this geo."""
    for attribute in ('hreflang', 'lang'):
        locale = normalize_locale(anchor.get(attribute))
        if locale and locale[3:] == geo:
            return locale[:2]
    return None


def _parse_link(anchor) -> Optional[_StorefrontLink]:
    path = normalize_storefront_path(_href_path(anchor.get('href')))
    if path is None:
        return None

    language = None
    match = STOREFRONT_COUNTRY_LANGUAGE.match(path) or STOREFRONT_COUNTRY_LANGUAGE_HYPHEN.match(path)
    if match:
        country, language = match.group(1), normalize_language(match.group(2))
    else:
        match = STOREFRONT_COUNTRY_ONLY.match(path)
        country = match.group(1)

    geo = locale_country_for_geo(country)
    if geo is None:
        return None
    return _StorefrontLink(
        geo=geo,
        path=path,
        language=language or _hint_language(anchor, geo),
        display_name=normalize_display_name(anchor.decode_contents()),
    )


def parse_region_page(html: str) -> List[RegionObservation]:
    """
    Parse storefront anchors into observations, one per (geo, locale).

    Country-only links without a hint take the per-geo default language,
    informed by the explicit languages the page links for that geo.
    """
    soup = BeautifulSoup(html or '', 'html.parser')
    by_geo: Dict[str, _GeoLinks] = {}
    for anchor in soup.find_all('a', href=True):
        link = _parse_link(anchor)
        if link is not None:
            by_geo.setdefault(link.geo, _GeoLinks()).links.append(link)

    observations = []
    seen = set()
    for geo, group in by_geo.items():
        explicit = group.explicit_languages
        for link in group.links:
            language = link.language or default_language_for_geo(geo, explicit)
            locale = f'{language}_{geo}'
            if locale in seen:
                continue
            seen.add(locale)
            observations.append(RegionObservation(
                geo=geo,
                locale=locale,
                display_name=link.display_name,
                storefront_path=link.path,
            ))
    return observations


def fetch_region_page(settings: AssetFinderSettings) -> str:
    response = requests.get(
        settings.region_source_url,
        headers={'User-Agent': settings.region_sync_user_agent},
        timeout=settings.region_sync_timeout,
    )
    response.raise_for_status()
    return response.text


def sync_from_remote(
    tracker: RegionLocaleTracker,
    settings: AssetFinderSettings,
    trigger: str = 'manual',
) -> RegionSyncResult:
    """
    Fetch, parse and record SYNC rows. Never raises.
    """
    if not settings.region_sync_enabled:
        logger.info("region_sync_skipped trigger=%s reason=disabled", trigger)
        return RegionSyncResult(success=True, trigger=trigger, skipped=True)
    if not settings.region_source_url:
        logger.warning("region_sync_skipped trigger=%s reason=no_source_url", trigger)
        return RegionSyncResult(success=False, trigger=trigger, skipped=True,
                                error_message='ASSET_FINDER_REGION_SOURCE_URL is not set')

    try:
        html = fetch_region_page(settings)
        observations = parse_region_page(html)
        recorded = tracker.record_observations(observations, source_type=SOURCE_SYNC)
    except Exception as exc:
        logger.warning("region_sync_failed trigger=%s url=%s error=%s", trigger, settings.region_source_url, exc)
        return RegionSyncResult(success=False, trigger=trigger, error_message=str(exc))

    logger.info(
        "region_sync_completed trigger=%s fetched=%d recorded=%d",
        trigger, len(observations), recorded,
    )
    return RegionSyncResult(success=True, trigger=trigger, fetched=len(observations), recorded=recorded)


class RegionSyncScheduler:
    """
    Background region sync: once at startup, then every
    region_sync_interval_hours on a daemon thread.

    A run requested while another is still in flight is skipped.
    """

    def __init__(self, tracker: RegionLocaleTracker, settings: AssetFinderSettings):
        self.tracker = tracker
        self.settings = settings
        self.last_result: Optional[RegionSyncResult] = None
        self._lock = threading.Lock()
        self._in_progress = False
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def interval_seconds(self) -> float:
        return max(0.0, float(self.settings.region_sync_interval_hours or 0)) * 3600.0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self, trigger: str = 'scheduled') -> Optional[RegionSyncResult]:
        with self._lock:
            if self._in_progress:
                logger.info("region_sync_skipped trigger=%s reason=in_progress", trigger)
                return None
            self._in_progress = True

        try:
            self.last_result = sync_from_remote(self.tracker, self.settings, trigger=trigger)
            return self.last_result
        finally:
            with self._lock:
                self._in_progress = False

    def start(self) -> bool:
        """Start the daemon thread. False if it is already running."""
        if self.running:
            return False
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name='asset-finder-region-sync', daemon=True
        )
        self._thread.start()
        return True

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self) -> None:
        self.run_once('startup')
        interval = self.interval_seconds
        if interval <= 0:
            return
        while not self._stop.wait(interval):
            self.run_once('scheduled')


def start_region_sync(
    tracker: RegionLocaleTracker,
    settings: AssetFinderSettings,
) -> Optional[RegionSyncScheduler]:
    """Start the background sync when enabled; None otherwise."""
    if not settings.region_sync_enabled or not settings.region_sync_background:
        return None
    scheduler = RegionSyncScheduler(tracker, settings)
    scheduler.start()
    logger.info(
        "region_sync_scheduled url=%s interval_hours=%s",
        settings.region_source_url, settings.region_sync_interval_hours,
    )
    return scheduler
