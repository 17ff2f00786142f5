"""
HTTP tests for /api/asset-finder

Checks response shapes, the error envelope and X-Request-ID propagation.
"""

import json


def post_json(client, url, body, **kwargs):
    return client.post(url, data=json.dumps(body), content_type="application/json", **kwargs)


def extract_hero(client, hero_document, raw_data_id="raw-1", **metadata):
    body = {
        "rawDataId": raw_data_id,
        "sourceUri": "/content/dam/acme/stage/ja_JP/mac/page.json",
        "sourceVersion": 1,
        "document": hero_document(),
    }
    if metadata:
        body["requestMetadata"] = metadata
    return post_json(client, "/api/asset-finder/extract", body)


class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.get_json() == {
            "status": "ok", "assetFinderEnabled": True, "schemaPresent": True,
        }


class TestOptions:

    def test_keys(self, client):
        response = client.get("/api/asset-finder/options")

        assert response.status_code == 200
        data = response.get_json()
        assert set(data) == {"tenants", "environments", "projects", "sites", "geos", "geoToLocales"}
        assert data["geos"] == ["WW", "JP", "KR"]


class TestExtractAndCount:

    def test_extract_then_count(self, client, hero_document):
        response = extract_hero(client, hero_document)

        assert response.status_code == 200
        result = response.get_json()
        assert result["success"] is True
        assert result["persisted"] == 1

        count = client.get("/api/asset-finder/count/raw-1").get_json()
        assert count["assetCount"] == 1
        assert count["sourceVersion"] == 1

    def test_extract_json_text_document(self, client, hero_document):
        response = post_json(client, "/api/asset-finder/extract", {
            "rawDataId": "raw-1",
            "sourceUri": "s1",
            "document": json.dumps(hero_document()),
        })

        assert response.get_json()["persisted"] == 1

    def test_bad_document_reported_not_raised(self, client):
        response = post_json(client, "/api/asset-finder/extract", {
            "rawDataId": "raw-1", "sourceUri": "s1", "document": "{oops",
        })

        assert response.status_code == 200
        assert response.get_json()["success"] is False

    def test_missing_fields(self, client):
        response = post_json(client, "/api/asset-finder/extract", {"document": {}})

        assert response.status_code == 400
        error = response.get_json()["error"]
        assert error["code"] == "INVALID_PARAMS"
        assert {d["field"] for d in error["details"]} >= {"rawDataId", "sourceUri"}

    def test_request_metadata_applied(self, client, hero_document):
        extract_hero(client, hero_document, locale="ko-kr")

        search = post_json(client, "/api/asset-finder/search", {"locale": "ko_KR"}).get_json()
        assert search["count"] == 1


class TestSearch:

    def test_scenario(self, client, hero_document):
        extract_hero(client, hero_document)

        jp = post_json(client, "/api/asset-finder/search", {"geo": "jp"}).get_json()
        kr = post_json(client, "/api/asset-finder/search", {"locale": "ko_KR"}).get_json()

        assert jp["count"] == 1
        assert jp["items"][0]["assetKey"] == "heroImage"
        assert kr["count"] == 0

    def test_empty_body_is_unfiltered(self, client):
        response = client.post("/api/asset-finder/search")

        assert response.status_code == 200
        assert response.get_json()["size"] == 20

    def test_invalid_locale(self, client):
        response = post_json(client, "/api/asset-finder/search", {"locale": "english"})

        assert response.status_code == 400
        error = response.get_json()["error"]
        assert error["code"] == "INVALID_PARAMS"
        assert error["requestId"]

    def test_invalid_page(self, client):
        response = post_json(client, "/api/asset-finder/search", {"page": "first"})

        assert response.status_code == 400
        assert response.get_json()["error"]["code"] == "INVALID_PARAMS"

    def test_non_object_body(self, client):
        response = post_json(client, "/api/asset-finder/search", ["geo", "JP"])

        assert response.status_code == 400
        assert response.get_json()["error"]["code"] == "BAD_REQUEST"

    def test_malformed_json(self, client):
        response = client.post(
            "/api/asset-finder/search", data="{geo:", content_type="application/json"
        )

        assert response.status_code == 400


class TestDetail:

    def test_detail_roundtrip(self, client, hero_document):
        extract_hero(client, hero_document)
        tile = post_json(client, "/api/asset-finder/search", {}).get_json()["items"][0]

        response = client.get(f"/api/asset-finder/assets/{tile['id']}")

        assert response.status_code == 200
        assert response.get_json()["previewUri"] == "/img/hero.png"

    def test_not_found_envelope(self, client):
        response = client.get(
            "/api/asset-finder/assets/missing", headers={"X-Request-ID": "req-123"}
        )

        assert response.status_code == 404
        assert response.headers["X-Request-ID"] == "req-123"
        error = response.get_json()["error"]
        assert error["code"] == "NOT_FOUND"
        assert error["requestId"] == "req-123"


class TestRequestId:

    def test_generated_when_absent(self, client):
        response = client.get("/api/asset-finder/options")

        assert response.headers.get("X-Request-ID")

    def test_echoed_and_truncated(self, client):
        long_id = "x" * 200

        response = client.get("/api/asset-finder/options", headers={"X-Request-ID": long_id})

        assert response.headers["X-Request-ID"] == "x" * 128
