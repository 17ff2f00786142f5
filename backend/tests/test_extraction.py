"""
Tests for extract_and_store (end to end over SQLite)

Covers:
- the single hero image scenario: occurrence, catalog row, observed locale
- content dedupe across slots, slot idempotence on re-run
- replace-on-change within one version, retention across versions
- fail-open behavior (rollback, logged, failed result)
- kill switch and missing schema
"""

import dataclasses
import json

import pytest
from sqlalchemy import func, select

from models.asset_metadata_catalog import AssetMetadataCatalog
from models.asset_region_locale_ref import AssetRegionLocaleRef
from models.database import db
from services.asset_finder import extraction, get_state, query_service
from services.asset_finder.extraction import extract_and_store, parse_document


def catalog_count():
    return db.session.execute(select(func.count(AssetMetadataCatalog.id))).scalar()


def asset_count(raw_data_id):
    return query_service.get_extraction_count(raw_data_id)["assetCount"]


class TestParseDocument:

    def test_text_and_bytes(self):
        assert parse_document('{"a": 1}') == {"a": 1}
        assert parse_document(b'[1, 2]') == [1, 2]

    def test_parsed_tree_passes_through(self):
        tree = {"a": 1}
        assert parse_document(tree) is tree

    def test_invalid_json_raises(self):
        with pytest.raises(ValueError):
            parse_document("{not json")


class TestHeroImageScenario:

    def test_single_hero_image(self, app_ctx, hero_document):
        result = extract_and_store(hero_document(), "raw-1", "s1", source_version=1)

        assert result.success is True
        assert result.discovered == 1
        assert result.persisted == 1
        assert len(result.catalog_created) == 1
        assert result.locales_recorded == 1

        assert query_service.search({"geo": "JP"})["count"] == 1
        assert query_service.search({"locale": "ko_KR"})["count"] == 0

        tile = query_service.search({"locale": "ja-jp"})["items"][0]
        assert tile["assetKey"] == "heroImage"
        assert tile["previewUri"] == "/img/hero.png"
        assert tile["site"] == "mac"
        assert tile["altText"] == "Hero"

    def test_observation_counted_per_run(self, app_ctx, hero_document):
        extract_and_store(hero_document(), "raw-1", "s1", source_version=1)
        extract_and_store(hero_document(), "raw-1", "s1", source_version=1)

        row = db.session.execute(
            select(AssetRegionLocaleRef).where(AssetRegionLocaleRef.locale_code == "ja_JP")
        ).scalar_one()
        assert row.seen_count == 2
        assert row.geo_code == "JP"
        assert get_state().tracker.get_options_snapshot().geo_to_locales["JP"] == ["ja_JP"]

    def test_json_text_document(self, app_ctx, hero_document):
        result = extract_and_store(json.dumps(hero_document()), "raw-1", "s1", source_version=1)

        assert result.success is True
        assert asset_count("raw-1") == 1


class TestReconciliation:

    def test_same_content_two_slots_one_catalog_row(self, app_ctx):
        asset = {"uri": "/img/shared.png", "alt": "Shared"}
        doc = {"hero": {"heroImage": dict(asset)}, "footer": {"heroImage": dict(asset)}}

        result = extract_and_store(doc, "raw-1", "s1", source_version=1)

        assert result.persisted == 2
        assert len(result.catalog_created) == 1
        assert catalog_count() == 1

    def test_whitespace_distinct_alt_text_is_a_new_catalog_row(self, app_ctx):
        first = extract_and_store(
            {"heroImage": {"uri": "/img/hero.png", "alt": "Hero  Banner"}}, "raw-1", "s1", source_version=1
        )
        second = extract_and_store(
            {"heroImage": {"uri": "/img/hero.png", "alt": "Hero Banner"}}, "raw-2", "s2", source_version=1
        )

        assert len(first.catalog_created) == 1
        assert len(second.catalog_created) == 1
        assert catalog_count() == 2
        row = db.session.get(AssetMetadataCatalog, second.catalog_created[0])
        assert row.alt_text == "Hero Banner"

    def test_rerun_is_idempotent(self, app_ctx, hero_document):
        extract_and_store(hero_document(), "raw-1", "s1", source_version=1)
        second = extract_and_store(hero_document(), "raw-1", "s1", source_version=1)

        assert second.catalog_created == []
        assert asset_count("raw-1") == 1
        assert catalog_count() == 1

    def test_changed_content_replaces_occurrence(self, app_ctx, hero_document):
        extract_and_store(hero_document(alt="Old"), "raw-1", "s1", source_version=1)
        extract_and_store(hero_document(alt="New"), "raw-1", "s1", source_version=1)

        items = query_service.search({})["items"]
        assert [item["altText"] for item in items] == ["New"]
        # Orphaned catalog rows are kept
        assert catalog_count() == 2

    def test_new_version_keeps_previous(self, app_ctx, hero_document):
        extract_and_store(hero_document(), "raw-1", "s1", source_version=1)
        extract_and_store(hero_document(), "raw-2", "s1", source_version=2)

        assert asset_count("raw-1") == 1
        assert asset_count("raw-2") == 1
        assert query_service.search({})["count"] == 2

    def test_structural_skips_counted(self, app_ctx):
        doc = {"heroImage": {"uri": "/a.png"}, "badIcon": {"viewportSmall": "x"}}

        result = extract_and_store(doc, "raw-1", "s1", source_version=1)

        assert result.discovered == 2
        assert result.skipped == 1
        assert result.persisted == 1

    def test_request_metadata_wins(self, app_ctx, hero_document):
        extract_and_store(
            hero_document(), "raw-1", "s1", source_version=1,
            request_metadata={"locale": "ko-KR", "site": "ipad"},
        )

        assert query_service.search({"locale": "ko_KR", "site": "IPAD"})["count"] == 1
        assert query_service.search({"geo": "JP"})["count"] == 0


class TestFailOpen:

    def test_write_failure_rolls_back(self, app_ctx, hero_document, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(extraction, "replace_occurrences", broken)

        result = extract_and_store(hero_document(), "raw-1", "s1", source_version=1)

        assert result.success is False
        assert result.error_message == "disk full"
        assert result.catalog_created == []
        assert catalog_count() == 0
        assert asset_count("raw-1") == 0

    def test_failure_is_logged(self, app_ctx, hero_document, monkeypatch, caplog):
        monkeypatch.setattr(extraction, "replace_occurrences", lambda *a, **kw: 1 / 0)

        with caplog.at_level("ERROR", logger="services.asset_finder.extraction"):
            extract_and_store(hero_document(), "raw-7", "s1", source_version=1)

        assert "raw_data_id=raw-7" in caplog.text

    def test_invalid_json(self, app_ctx):
        result = extract_and_store("{not json", "raw-1", "s1")

        assert result.success is False
        assert result.error_message

    def test_observation_failure_does_not_fail_extraction(self, app_ctx, hero_document, monkeypatch):
        tracker = get_state().tracker

        def broken(*args, **kwargs):
            raise RuntimeError("locale table locked")

        monkeypatch.setattr(tracker, "record_observations", broken)

        result = extract_and_store(hero_document(), "raw-1", "s1", source_version=1)

        assert result.success is True
        assert result.locales_recorded == 0
        assert asset_count("raw-1") == 1


class TestSkips:

    def test_disabled(self, app_ctx, hero_document, monkeypatch):
        state = get_state()
        monkeypatch.setattr(state, "settings", dataclasses.replace(state.settings, enabled=False))

        result = extract_and_store(hero_document(), "raw-1", "s1", source_version=1)

        assert result.success is True
        assert result.skipped_reason == "disabled"
        assert catalog_count() == 0

    def test_schema_missing(self, app_ctx, hero_document, monkeypatch):
        state = get_state()
        monkeypatch.setattr(state.schema_guard, "tables_present", lambda: False)

        result = extract_and_store(hero_document(), "raw-1", "s1", source_version=1)

        assert result.success is True
        assert result.skipped_reason == "schema_missing"
