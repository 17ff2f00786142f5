"""
Catalog & Occurrence Store

Two primitives, both executed inside the caller's session/transaction:

- upsert_catalog(): lock-free get-or-create keyed by the content hash.
  PostgreSQL and SQLite use a single INSERT ... ON CONFLICT DO NOTHING
  followed by a re-read. Other dialects insert inside a SAVEPOINT and
  re-read on IntegrityError. Concurrent writers converge on one row because
  metadata_hash is uniquely indexed.

- replace_occurrences(): delete-then-insert of the full occurrence set for
  one (source_uri, source_version). All-or-nothing under the caller's
  transaction.

Catalog rows are never deleted here, even when no occurrence references
them any more.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.asset_metadata_catalog import AssetMetadataCatalog
from models.asset_metadata_occurrence import AssetMetadataOccurrence
from services.asset_finder.resolver import ExtractionCandidate

logger = logging.getLogger(__name__)


NATIVE_UPSERT_DIALECTS = {
    'postgresql': postgresql.insert,
    'sqlite': sqlite.insert,
}


def find_catalog_id(session: Session, metadata_hash: str) -> Optional[str]:
    return session.execute(
        select(AssetMetadataCatalog.id).where(AssetMetadataCatalog.metadata_hash == metadata_hash)
    ).scalar_one_or_none()


def upsert_catalog(session: Session, candidate: ExtractionCandidate) -> str:
    """Catalog id for a candidate's content hash (existing or newly created)."""
    catalog_id, _ = get_or_create_catalog(session, candidate)
    return catalog_id


def get_or_create_catalog(session: Session, candidate: ExtractionCandidate) -> Tuple[str, bool]:
    """
    Get-or-create the catalog row for a candidate's content hash.

    Returns:
        (catalog id, created) where created is True only when this call
        inserted the row
    """
    metadata_hash = candidate.content_hash
    existing = find_catalog_id(session, metadata_hash)
    if existing:
        return existing, False

    values = AssetMetadataCatalog.row_values(candidate)
    dialect = session.get_bind().dialect.name
    dialect_insert = NATIVE_UPSERT_DIALECTS.get(dialect)

    if dialect_insert is not None:
        stmt = dialect_insert(AssetMetadataCatalog.__table__).values(**values)
        stmt = stmt.on_conflict_do_nothing(index_elements=['metadata_hash'])
        session.execute(stmt)
    else:
        try:
            with session.begin_nested():
                session.execute(insert(AssetMetadataCatalog.__table__).values(**values))
        except IntegrityError:
            logger.info("asset_catalog_insert_conflict metadata_hash=%s", metadata_hash)

    catalog_id = find_catalog_id(session, metadata_hash)
    if catalog_id is None:
        # Unique index guarantees a row after insert-or-conflict
        raise RuntimeError(f"catalog row missing after upsert metadata_hash={metadata_hash}")
    created = catalog_id == values['id']
    if created:
        logger.debug("asset_catalog_created id=%s asset_key=%s", catalog_id, candidate.asset_key)
    return catalog_id, created


def dedupe_by_slot(candidates: Iterable[ExtractionCandidate]) -> List[ExtractionCandidate]:
    """Keep the first candidate per slot hash, preserving document order."""
    seen = set()
    unique = []
    for candidate in candidates:
        slot = candidate.slot_hash
        if slot in seen:
            continue
        seen.add(slot)
        unique.append(candidate)
    return unique


def delete_occurrences(session: Session, raw_data_id, source_uri, source_version) -> int:
    """
    Delete the existing occurrence set.

    Scoped to (source_uri, source_version), or to raw_data_id when the
    version is unknown.
    """
    table = AssetMetadataOccurrence.__table__
    if source_version is None:
        stmt = delete(table).where(table.c.raw_data_id == raw_data_id)
    else:
        stmt = delete(table).where(
            table.c.source_uri == source_uri,
            table.c.source_version == source_version,
        )
    return session.execute(stmt).rowcount or 0


def replace_occurrences(
    session: Session,
    raw_data_id: str,
    source_uri: str,
    source_version: Optional[int],
    candidates: Iterable[ExtractionCandidate],
    catalog_ids: Optional[Dict[str, str]] = None,
) -> int:
    """
    Replace the occurrence set for one source version.

    Args:
        catalog_ids: content hash -> catalog id, for candidates already
            upserted; missing entries are upserted here.

    Returns:
        number of occurrence rows inserted
    """
    catalog_ids = dict(catalog_ids or {})
    unique = dedupe_by_slot(candidates)

    deleted = delete_occurrences(session, raw_data_id, source_uri, source_version)

    now = datetime.utcnow()
    rows = []
    for candidate in unique:
        content_hash = candidate.content_hash
        catalog_id = catalog_ids.get(content_hash)
        if catalog_id is None:
            catalog_id = upsert_catalog(session, candidate)
            catalog_ids[content_hash] = catalog_id
        rows.append(AssetMetadataOccurrence.row_values(
            candidate, catalog_id, raw_data_id, source_uri, source_version, now=now
        ))

    if rows:
        session.execute(insert(AssetMetadataOccurrence.__table__), rows)

    logger.info(
        "asset_occurrences_replaced raw_data_id=%s source_uri=%s version=%s deleted=%d inserted=%d",
        raw_data_id, source_uri, source_version, deleted, len(rows),
    )
    return len(rows)


def count_occurrences(session: Session, raw_data_id: str) -> int:
    return session.execute(
        select(func.count(AssetMetadataOccurrence.id)).where(
            AssetMetadataOccurrence.raw_data_id == raw_data_id
        )
    ).scalar() or 0
