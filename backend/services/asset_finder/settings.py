"""
Asset Finder Settings - typed view over the ASSET_FINDER_* config keys

Services never read os.environ directly. They take an AssetFinderSettings,
built from the Flask app config (or from config.Config outside a request).

Usage:
    from services.asset_finder.settings import current_settings
    settings = current_settings()
    if not settings.enabled:
        return
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from flask import current_app, has_app_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetFinderSettings:
    enabled: bool = True

    default_tenant: Optional[str] = 'applecom-cms'
    default_environment: Optional[str] = 'prod'
    default_project: Optional[str] = 'rome'
    default_site: Optional[str] = None
    default_locale: Optional[str] = None
    default_geo: Optional[str] = None

    tenants: List[str] = field(default_factory=lambda: ['applecom-cms'])
    environments: List[str] = field(default_factory=lambda: ['stage', 'prod', 'qa'])
    projects: List[str] = field(default_factory=lambda: ['rome'])
    sites: List[str] = field(default_factory=lambda: ['ipad', 'mac'])

    search_max_size: int = 200

    region_cache_ttl_minutes: int = 180
    region_options_upload_only: bool = True

    region_sync_enabled: bool = False
    region_source_url: Optional[str] = None
    region_sync_connect_timeout_s: float = 10.0
    region_sync_read_timeout_s: float = 20.0
    region_sync_user_agent: str = 'AssetFinderRegionSync/1.0'
    region_sync_interval_hours: float = 24.0
    region_sync_background: bool = True

    migrate_on_startup: bool = False

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'AssetFinderSettings':
        """Build settings from a Flask config mapping; missing keys keep defaults."""
        defaults = cls()
        values = {}
        for name in cls.__dataclass_fields__:
            key = f'ASSET_FINDER_{name.upper()}'
            values[name] = config.get(key, getattr(defaults, name))
        return cls(**values)

    @property
    def region_cache_ttl_seconds(self) -> float:
        return max(0, self.region_cache_ttl_minutes) * 60.0

    @property
    def region_sync_timeout(self):
        """(connect, read) tuple for requests."""
        return (self.region_sync_connect_timeout_s, self.region_sync_read_timeout_s)


def current_settings() -> AssetFinderSettings:
    """Settings for the active Flask app, or the process-wide Config."""
    if has_app_context():
        return AssetFinderSettings.from_config(current_app.config)
    from config import Config
    return AssetFinderSettings.from_config(
        {key: getattr(Config, key) for key in dir(Config) if key.startswith('ASSET_FINDER_')}
    )
