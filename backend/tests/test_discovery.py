"""
Tests for the asset discovery visitor

Covers:
- key matching (image/icon/thumbnail, any case)
- the is_asset_like predicate
- JSON paths for objects and arrays
- section context inheritance
"""

from services.asset_finder.discovery import (
    EMPTY_SECTION,
    discover_assets,
    is_asset_key,
    is_asset_like,
)


# =============================================================================
# Predicates
# =============================================================================

class TestIsAssetKey:

    def test_keywords_any_case(self):
        assert is_asset_key("heroImage")
        assert is_asset_key("ICON")
        assert is_asset_key("productThumbnailLarge")

    def test_other_keys(self):
        assert not is_asset_key("headline")
        assert not is_asset_key(3)


class TestIsAssetLike:

    def test_uri_keys(self):
        assert is_asset_like({"uri": "/a.png"})
        assert is_asset_like({"_uri_path": "/a"})
        assert is_asset_like({"imageUrl": "https://x/a.png"})

    def test_alt_plain_and_copy(self):
        assert is_asset_like({"alt": "Hero"})
        assert is_asset_like({"accessibilityText": {"copy": "Read me"}})

    def test_viewport_prefix(self):
        assert is_asset_like({"viewportSmall": {}})

    def test_blank_values_do_not_count(self):
        assert not is_asset_like({"uri": "  ", "alt": ""})
        assert not is_asset_like({"accessibilityText": {"copy": " "}})

    def test_non_objects(self):
        assert not is_asset_like("uri")
        assert not is_asset_like(["uri"])
        assert not is_asset_like({"headline": "x"})


# =============================================================================
# Traversal
# =============================================================================

class TestDiscoverAssets:

    def test_single_asset_path(self):
        found = discover_assets({"hero": {"heroImage": {"uri": "/img/hero.png"}}})

        assert len(found) == 1
        assert found[0].key == "heroImage"
        assert found[0].json_path == "$.hero.heroImage"
        assert found[0].section == EMPTY_SECTION

    def test_arrays_use_indexes(self):
        doc = {"items": [{"title": "a"}, {"icon": {"src": "/i.svg"}}]}

        found = discover_assets(doc)

        assert [n.json_path for n in found] == ["$.items[1].icon"]

    def test_matching_key_without_asset_shape_is_ignored(self):
        doc = {"imageCaption": {"text": "caption"}, "icon": "plain-string"}

        assert discover_assets(doc) == []

    def test_nested_assets_are_reported(self):
        doc = {
            "tileImage": {
                "uri": "/outer.png",
                "badgeIcon": {"uri": "/badge.svg"},
            }
        }

        found = discover_assets(doc)

        assert [n.json_path for n in found] == ["$.tileImage", "$.tileImage.badgeIcon"]

    def test_section_context_from_path_and_uri(self):
        doc = {
            "sections": [
                {
                    "_model": "hero-section",
                    "_path": "/content/dam/t/prod/en_US/mac/hero",
                    "_uri_path": "/mac/hero",
                    "heroImage": {"uri": "/h.png"},
                    "inner": {"icon": {"uri": "/i.png"}},
                }
            ],
            "footerIcon": {"uri": "/f.png"},
        }

        found = {n.key: n for n in discover_assets(doc)}

        assert found["heroImage"].section.path == "/content/dam/t/prod/en_US/mac/hero"
        assert found["heroImage"].section.uri == "/mac/hero"
        assert found["icon"].section == found["heroImage"].section
        assert found["footerIcon"].section == EMPTY_SECTION

    def test_section_without_path_uses_json_path(self):
        doc = {"body": [{"_type": "Gallery-Section", "thumbnail": {"alt": "x"}}]}

        found = discover_assets(doc)

        assert found[0].section.path == "$.body[0]"
        assert found[0].section.uri is None

    def test_nested_section_overrides_parent(self):
        doc = {
            "_model": "page-section",
            "_path": "/outer",
            "child": {"_model": "card-section", "_path": "/inner", "cardImage": {"uri": "/c.png"}},
            "pageImage": {"uri": "/p.png"},
        }

        found = {n.key: n for n in discover_assets(doc)}

        assert found["cardImage"].section.path == "/inner"
        assert found["pageImage"].section.path == "/outer"

    def test_scalars_and_empty_documents(self):
        assert discover_assets(None) == []
        assert discover_assets("text") == []
        assert discover_assets([]) == []
