"""
Asset Finder API Routes

Provides endpoints for:
- Filter options (tenants, environments, projects, sites, geos)
- Asset search (filtered, paged tiles)
- Asset detail (occurrence + catalog entry)
- Extraction count per uploaded document
- Extraction trigger for one document

All read endpoints degrade to empty/default payloads when the schema is
missing. Errors use the standard error envelope.
"""
import logging
import time

from flask import Blueprint, abort, jsonify, request

from api.contracts.pydantic_models import ExtractRequest, SearchParams
from services.asset_finder import query_service
from services.asset_finder.extraction import extract_and_store

logger = logging.getLogger(__name__)

asset_finder_bp = Blueprint('asset_finder', __name__)


def _json_body():
    body = request.get_json(silent=True)
    if body is None:
        if request.data:
            abort(400, description="Request body must be valid JSON")
        return {}
    if not isinstance(body, dict):
        abort(400, description="Request body must be a JSON object")
    return body


@asset_finder_bp.route("/options", methods=["GET"])
def get_options():
    """
    Filter options for the asset finder UI.

    Returns:
        {tenants, environments, projects, sites, geos, geoToLocales}
    """
    return jsonify(query_service.get_options())


@asset_finder_bp.route("/search", methods=["POST"])
def search():
    """
    Search asset occurrences.

    Body (all optional):
        tenant, environment, project, site, geo, locale, page (0-based), size

    Returns:
        {count, page, size, totalPages, items: [...]}
    """
    start = time.perf_counter()
    params = SearchParams(**_json_body())
    result = query_service.search(params.filters(), page=params.page, size=params.size)

    logger.debug(
        "asset_search_request count=%d page=%d elapsed_ms=%.1f",
        result['count'], result['page'], (time.perf_counter() - start) * 1000,
    )
    return jsonify(result)


@asset_finder_bp.route("/assets/<asset_id>", methods=["GET"])
def get_asset(asset_id):
    """Full detail for one occurrence, or 404."""
    detail = query_service.get_detail(asset_id)
    if detail is None:
        abort(404, description=f"Asset {asset_id} not found")
    return jsonify(detail)


@asset_finder_bp.route("/count/<raw_data_id>", methods=["GET"])
def get_count(raw_data_id):
    """
    Extraction count for an uploaded document.

    Returns:
        {rawDataId, sourceUri, sourceVersion, assetCount, featureEnabled, schemaPresent}
    """
    return jsonify(query_service.get_extraction_count(raw_data_id))


@asset_finder_bp.route("/extract", methods=["POST"])
def extract():
    """
    Extract assets from one document.

    Body:
        rawDataId, sourceUri, sourceVersion?, document, requestMetadata?

    Always 200 with the extraction result (which may report failure);
    400 only for a malformed body.
    """
    payload = ExtractRequest(**_json_body())
    result = extract_and_store(
        payload.document,
        payload.raw_data_id,
        payload.source_uri,
        source_version=payload.source_version,
        request_metadata=payload.metadata_dict(),
    )
    return jsonify(result.to_dict())
