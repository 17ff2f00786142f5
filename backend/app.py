"""
Flask Application Factory - Asset Finder API

Asset metadata extraction & reconciliation:
- Extraction of image/icon references from uploaded JSON documents
- Deduplicated catalog + per-version occurrences
- Region/locale options for the filter UI

Schema:
- Development: db.create_all() on startup
- Production: run backend/migrations/*.sql, then optionally
  `python cli.py migrate-filter-columns`
"""

import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS
from flask_migrate import Migrate

from config import Config
from models.database import db

logger = logging.getLogger(__name__)

# Initialize Flask-Migrate (will be initialized in create_app)
migrate = Migrate()


def _is_production() -> bool:
    env = (os.environ.get("ENV") or os.environ.get("FLASK_ENV") or os.environ.get("APP_ENV") or "").lower()
    return env in {"prod", "production"}


def create_app(config_overrides=None):
    """
    Build the Flask app.

    Args:
        config_overrides: optional mapping applied after Config (tests pass
            their own SQLALCHEMY_DATABASE_URI here)
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    CORS(app,
         resources={r"/api/*": {"origins": app.config.get('CORS_ORIGINS') or "*"}},
         methods=["GET", "POST", "OPTIONS"],
         allow_headers=["Content-Type", "X-Request-ID"],
         expose_headers=["X-Request-ID"],
         supports_credentials=False)

    # === API MIDDLEWARE ===
    from api.middleware import (
        setup_error_handlers,
        setup_request_id_middleware,
        setup_request_logging_middleware,
    )
    setup_request_id_middleware(app)
    setup_request_logging_middleware(app)
    setup_error_handlers(app)

    # Initialize database
    db.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        import models  # noqa: F401  (registers tables on db.metadata)

        allow_create = app.config.get("TESTING") or not _is_production()
        if allow_create:
            db.create_all()
            logger.info("database_ready schema=create_all")
        else:
            logger.info("database_ready schema=migrations")

    from services.asset_finder import init_asset_finder
    init_asset_finder(app)

    from routes.asset_finder import asset_finder_bp
    app.register_blueprint(asset_finder_bp, url_prefix='/api/asset-finder')

    @app.route("/api/health", methods=["GET"])
    def health():
        from services.asset_finder import get_state
        state = get_state()
        return jsonify({
            "status": "ok",
            "assetFinderEnabled": state.settings.enabled,
            "schemaPresent": state.schema_guard.tables_present(),
        })

    return app


def run_app():
    """Main entry point for local development - starts server with Flask's dev server."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s",
    )
    print("=" * 60)
    print("Starting Flask API - Asset Finder")
    print("=" * 60)

    app = create_app()
    app.run(debug=app.config.get('DEBUG', False), host="0.0.0.0", port=int(os.getenv('PORT', '5000')))


if __name__ == "__main__":
    run_app()
