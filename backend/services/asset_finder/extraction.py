"""
Asset Extraction - one call per ingested document

Workflow:
1. Check kill switch (ASSET_FINDER_ENABLED) and table presence
2. Parse the document if it arrives as JSON text
3. Discover asset-like nodes
4. Resolve candidates (structural skips counted, not errors)
5. Get-or-create catalog rows, replace the occurrence set
6. Commit once
7. Record observed region/locale pairs (best-effort)

Runs in its own session bound to the engine, so a failure here never
touches the caller's db.session transaction. Fail-open: any exception is
rolled back, logged with the raw_data_id, and returned as a failed
ExtractionResult.

Usage:
    from services.asset_finder.extraction import extract_and_store
    result = extract_and_store(document, raw_data_id, source_uri, source_version=3)
    if not result.success:
        ...
"""

import json
import logging
import time
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from services.asset_finder import get_state
from services.asset_finder.catalog_store import get_or_create_catalog, replace_occurrences
from services.asset_finder.discovery import discover_assets
from services.asset_finder.region_locale import RegionObservation
from services.asset_finder.resolver import resolve_candidates

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    success: bool
    raw_data_id: Optional[str] = None
    source_uri: Optional[str] = None
    source_version: Optional[int] = None
    skipped_reason: Optional[str] = None
    discovered: int = 0
    skipped: int = 0
    persisted: int = 0
    catalog_created: List[str] = field(default_factory=list)
    locales_recorded: int = 0
    error_message: Optional[str] = None
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def parse_document(document):
    """Parsed tree as-is; JSON text is decoded (raises ValueError on bad JSON)."""
    if isinstance(document, (bytes, bytearray)):
        document = document.decode('utf-8')
    if isinstance(document, str):
        return json.loads(document)
    return document


def extract_and_store(
    document,
    raw_data_id: str,
    source_uri: str,
    source_version: Optional[int] = None,
    request_metadata: Optional[Dict[str, Any]] = None,
) -> ExtractionResult:
    """
    Extract assets from one document and persist them. Never raises.
    """
    started = time.monotonic()
    result = ExtractionResult(
        success=False,
        raw_data_id=raw_data_id,
        source_uri=source_uri,
        source_version=source_version,
    )

    try:
        state = get_state()
    except Exception as exc:
        logger.exception("asset_extraction_failed raw_data_id=%s stage=init", raw_data_id)
        result.error_message = str(exc)
        return result

    if not state.settings.enabled:
        logger.debug("asset_extraction_skipped raw_data_id=%s reason=disabled", raw_data_id)
        result.success = True
        result.skipped_reason = 'disabled'
        return result

    if not state.schema_guard.tables_present():
        result.success = True
        result.skipped_reason = 'schema_missing'
        return result

    session = state.session_factory()
    candidates = []
    try:
        tree = parse_document(document)
        raw_nodes = discover_assets(tree)
        candidates, skipped = resolve_candidates(
            state.settings, tree, raw_nodes,
            source_uri=source_uri, request_metadata=request_metadata,
        )
        result.discovered = len(raw_nodes)
        result.skipped = skipped

        catalog_ids = {}
        for candidate in candidates:
            content_hash = candidate.content_hash
            if content_hash in catalog_ids:
                continue
            catalog_id, created = get_or_create_catalog(session, candidate)
            catalog_ids[content_hash] = catalog_id
            if created:
                result.catalog_created.append(catalog_id)

        result.persisted = replace_occurrences(
            session, raw_data_id, source_uri, source_version, candidates, catalog_ids
        )
        session.commit()
        result.success = True
    except Exception as exc:
        session.rollback()
        logger.exception(
            "asset_extraction_failed raw_data_id=%s source_uri=%s error=%s",
            raw_data_id, source_uri, exc,
        )
        result.error_message = str(exc)
        result.catalog_created = []
        result.persisted = 0
        result.duration_seconds = round(time.monotonic() - started, 3)
        return result
    finally:
        session.close()

    result.locales_recorded = _record_observations(state, candidates, raw_data_id)
    result.duration_seconds = round(time.monotonic() - started, 3)

    logger.info(
        "asset_extraction_completed raw_data_id=%s source_uri=%s version=%s "
        "discovered=%d skipped=%d persisted=%d catalog_created=%d duration=%.3fs",
        raw_data_id, source_uri, source_version, result.discovered, result.skipped,
        result.persisted, len(result.catalog_created), result.duration_seconds,
    )
    return result


def _record_observations(state, candidates, raw_data_id) -> int:
    observations = [
        RegionObservation(geo=candidate.geo, locale=candidate.locale)
        for candidate in candidates
        if candidate.locale
    ]
    if not observations:
        return 0
    try:
        return state.tracker.record_observations(observations)
    except Exception as exc:
        logger.warning("region_locale_record_failed raw_data_id=%s error=%s", raw_data_id, exc)
        return 0
