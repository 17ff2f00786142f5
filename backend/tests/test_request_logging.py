import logging

from flask import Flask, jsonify

from api.middleware.request_logging import setup_request_logging_middleware


def _build_test_app(**config):
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config.update(config)

    @app.route("/api/asset-finder/options", methods=["GET"])
    def options():
        return jsonify({"geos": []})

    @app.route("/api/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"})

    setup_request_logging_middleware(app)
    return app


def _logged_paths(caplog):
    return [
        record.getMessage()
        for record in caplog.records
        if record.getMessage().startswith("api_request")
    ]


def test_request_logging_sample_rate(caplog):
    app = _build_test_app(REQUEST_LOG_ENABLED=True, REQUEST_LOG_SAMPLE_RATE=1.0)
    client = app.test_client()

    with caplog.at_level(logging.INFO, logger="api.request"):
        response = client.get("/api/health")

    assert response.status_code == 200
    assert any("api_request path=/api/health" in msg for msg in _logged_paths(caplog))


def test_request_logging_watchlist(caplog):
    app = _build_test_app(
        REQUEST_LOG_ENABLED=True,
        REQUEST_LOG_SAMPLE_RATE=0.0,
        REQUEST_LOG_ENDPOINTS="/api/asset-finder",
    )
    client = app.test_client()

    with caplog.at_level(logging.INFO, logger="api.request"):
        client.get("/api/asset-finder/options")
        client.get("/api/health")

    messages = _logged_paths(caplog)
    assert len(messages) == 1
    assert "path=/api/asset-finder/options" in messages[0]


def test_request_logging_disabled(caplog):
    app = _build_test_app(REQUEST_LOG_ENABLED=False, REQUEST_LOG_SAMPLE_RATE=1.0)
    client = app.test_client()

    with caplog.at_level(logging.INFO, logger="api.request"):
        client.get("/api/health")

    assert _logged_paths(caplog) == []


def test_server_errors_always_logged(caplog):
    app = _build_test_app(REQUEST_LOG_ENABLED=True, REQUEST_LOG_SAMPLE_RATE=0.0)

    @app.route("/api/broken", methods=["GET"])
    def broken():
        return jsonify({"error": "boom"}), 503

    client = app.test_client()

    with caplog.at_level(logging.INFO, logger="api.request"):
        client.get("/api/broken")
        client.get("/api/health")

    records = [r for r in caplog.records if r.getMessage().startswith("api_request")]
    assert len(records) == 1
    assert records[0].levelno == logging.WARNING
    assert "endpoint=broken" in records[0].getMessage()
