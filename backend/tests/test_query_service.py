"""
Tests for the asset finder query service

Covers:
- paging input clamping
- geo precedence: locale wins, grouped regions translate or drop
- case-insensitive filters (and the fallback to plain equality)
- recency ordering
- options, detail and count payloads
"""

from datetime import datetime

import pytest
from sqlalchemy import update

from models.asset_metadata_occurrence import AssetMetadataOccurrence
from models.database import db
from services.asset_finder import get_state, query_service
from services.asset_finder.extraction import extract_and_store
from services.asset_finder.query_service import (
    is_grouped_region,
    page_params,
    resolve_geo_filter,
)
from services.asset_finder.schema_guard import MigrationResult
from utils.normalize import ValidationError


def page_document(locale, site="mac", uri="/img/hero.png"):
    return {"hero": {"heroImage": {
        "_path": f"/content/dam/acme/prod/{locale}/{site}/hero",
        "uri": uri,
        "alt": f"Hero {locale}",
    }}}


def seed(*locales):
    """One document per locale, each from its own source."""
    for index, locale in enumerate(locales):
        result = extract_and_store(
            page_document(locale, uri=f"/img/{locale}.png"),
            f"raw-{index}", f"/content/dam/acme/prod/{locale}/mac/page.json", source_version=1,
        )
        assert result.success, result.error_message


class StubTracker:
    def __init__(self, defaults):
        self.defaults = defaults

    def get_default_locale_for_geo(self, geo):
        return self.defaults.get(geo)


# =============================================================================
# Pure helpers
# =============================================================================

class TestPageParams:

    def test_defaults(self):
        assert page_params(None, None, 200) == (0, 20)

    def test_clamped(self):
        assert page_params(-3, 0, 200) == (0, 1)
        assert page_params("2", "500", 200) == (2, 200)

    def test_non_integer_rejected(self):
        with pytest.raises(ValidationError) as exc:
            page_params("first", 10, 200)
        assert exc.value.field == "page"


class TestGeoFilter:

    def test_grouped_regions(self):
        assert is_grouped_region("WW")
        assert is_grouped_region("EU")
        assert is_grouped_region("UK")
        assert not is_grouped_region("JP")
        assert not is_grouped_region("FR")

    def test_locale_wins_over_geo(self):
        resolved = resolve_geo_filter({"geo": "JP", "locale": "ko_KR"}, StubTracker({}))

        assert resolved == {"locale": "ko_KR"}

    def test_country_code_kept(self):
        assert resolve_geo_filter({"geo": "FR"}, StubTracker({})) == {"geo": "FR"}

    def test_region_translated_to_default_locale(self):
        resolved = resolve_geo_filter({"geo": "WW", "site": "mac"}, StubTracker({"WW": "en_US"}))

        assert resolved == {"locale": "en_US", "site": "mac"}

    def test_region_without_default_dropped(self):
        assert resolve_geo_filter({"geo": "APAC"}, StubTracker({})) == {}


# =============================================================================
# Search
# =============================================================================

class TestSearch:

    def test_empty_database(self, app_ctx):
        assert query_service.search({}) == {
            "count": 0, "page": 0, "size": 20, "totalPages": 0, "items": [],
        }

    def test_filters(self, app_ctx):
        seed("ja_JP", "fr_FR", "en_US")

        assert query_service.search({"geo": "JP"})["count"] == 1
        assert query_service.search({"geo": "fr"})["count"] == 1
        assert query_service.search({"locale": "en-us"})["count"] == 1
        assert query_service.search({"site": "MAC"})["count"] == 3
        assert query_service.search({"tenant": "acme", "environment": "prod"})["count"] == 3
        assert query_service.search({"site": "ipad"})["count"] == 0

    def test_grouped_region_uses_observed_locale(self, app_ctx):
        seed("ja_JP", "en_US")

        ww = query_service.search({"geo": "WW"})
        assert ww["count"] == 1
        assert ww["items"][0]["locale"] == "en_US"

        # Nothing observed in EU: the geo filter is dropped
        assert query_service.search({"geo": "EU"})["count"] == 2

    def test_case_insensitive_match(self, app_ctx):
        seed("ja_JP")
        db.session.execute(update(AssetMetadataOccurrence).values(tenant="ACME"))
        db.session.commit()

        assert query_service.search({"tenant": "acme"})["count"] == 1

    def test_plain_equality_after_failed_migration(self, app_ctx, monkeypatch):
        seed("ja_JP")
        db.session.execute(update(AssetMetadataOccurrence).values(tenant="ACME"))
        db.session.commit()
        guard = get_state().schema_guard
        monkeypatch.setattr(guard, "_migration", MigrationResult(success=False, error="denied"))

        assert query_service.search({"tenant": "acme"})["count"] == 0
        assert query_service.search({"tenant": "ACME"})["count"] == 1

    def test_newest_first(self, app_ctx):
        seed("ja_JP", "fr_FR", "de_DE")
        for locale, day in (("ja_JP", 2), ("fr_FR", 3), ("de_DE", 1)):
            db.session.execute(
                update(AssetMetadataOccurrence)
                .where(AssetMetadataOccurrence.locale == locale)
                .values(created_at=datetime(2024, 1, day))
            )
        db.session.commit()

        items = query_service.search({})["items"]

        assert [item["locale"] for item in items] == ["fr_FR", "ja_JP", "de_DE"]

    def test_paging(self, app_ctx):
        seed("ja_JP", "fr_FR", "de_DE")

        second = query_service.search({}, page=1, size=2)

        assert second["count"] == 3
        assert second["totalPages"] == 2
        assert len(second["items"]) == 1

    def test_size_clamped_to_max(self, app_ctx, monkeypatch):
        import dataclasses

        state = get_state()
        monkeypatch.setattr(state, "settings", dataclasses.replace(state.settings, search_max_size=5))

        assert query_service.search({}, size=50)["size"] == 5


# =============================================================================
# Options / detail / count
# =============================================================================

class TestOptions:

    def test_defaults_and_fallback_regions(self, app_ctx):
        options = query_service.get_options()

        assert options["tenants"] == ["applecom-cms"]
        assert options["environments"] == ["stage", "prod", "qa"]
        assert options["projects"] == ["rome"]
        assert options["sites"] == ["ipad", "mac"]
        assert options["geoToLocales"] == {"WW": ["en_US"], "JP": ["ja_JP"], "KR": ["ko_KR"]}

    def test_observed_sites_and_regions(self, app_ctx):
        extract_and_store(page_document("fr_FR", site="watch"), "raw-1", "s1", source_version=1)

        options = query_service.get_options()

        assert options["sites"] == ["ipad", "mac", "watch"]
        assert options["geos"] == ["EU"]
        assert options["geoToLocales"] == {"EU": ["fr_FR"]}


class TestDetailAndCount:

    def test_detail(self, app_ctx):
        seed("ja_JP")
        tile = query_service.search({})["items"][0]

        detail = query_service.get_detail(tile["id"])

        assert detail["id"] == tile["id"]
        assert detail["assetKey"] == "heroImage"
        assert detail["tenant"] == "acme"
        assert detail["sourceVersion"] == 1
        assert detail["viewports"] == {"default": {"uri": "/img/ja_JP.png"}}
        assert detail["assetMetadata"]["alt"] == "Hero ja_JP"
        assert len(detail["metadataHash"]) == 64

    def test_detail_missing(self, app_ctx):
        assert query_service.get_detail("does-not-exist") is None
        assert query_service.get_detail("  ") is None

    def test_count(self, app_ctx):
        seed("ja_JP")

        payload = query_service.get_extraction_count("raw-0")

        assert payload == {
            "rawDataId": "raw-0",
            "sourceUri": "/content/dam/acme/prod/ja_JP/mac/page.json",
            "sourceVersion": 1,
            "assetCount": 1,
            "featureEnabled": True,
            "schemaPresent": True,
        }

    def test_count_unknown_document(self, app_ctx):
        payload = query_service.get_extraction_count("raw-404")

        assert payload["assetCount"] == 0
        assert payload["sourceUri"] is None
