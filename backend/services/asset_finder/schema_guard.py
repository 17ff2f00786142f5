"""
Schema Guard - table presence probe and filter-column migration

Used to keep the asset finder from raising 500s when its tables have not
been created yet, and to make search filters case-insensitive on databases
that still carry legacy non-text filter columns.

Two explicit steps, never triggered implicitly by a read path:
- tables_present(): cached once True, re-probed while False
- migrate_filter_columns(): idempotent ALTER ... TYPE TEXT on PostgreSQL,
  run at startup (ASSET_FINDER_MIGRATE_ON_STARTUP) or via
  `python cli.py migrate-filter-columns`

Without a migration, case_insensitive_filters reads the column types once
from information_schema and only allows lower(col) when all are text.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from models.asset_metadata_occurrence import FILTER_COLUMNS

logger = logging.getLogger(__name__)


REQUIRED_TABLES = (
    'asset_metadata_catalog',
    'asset_metadata_occurrence',
    'asset_region_locale_ref',
)

OCCURRENCE_TABLE = 'asset_metadata_occurrence'

# PostgreSQL types lower() accepts without a cast
TEXT_COMPATIBLE_TYPES = ('text', 'character varying', 'character')


@dataclass
class MigrationResult:
    success: bool
    converted: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            'success': self.success,
            'converted': self.converted,
            'skipped': self.skipped,
            'error': self.error,
        }


class SchemaGuard:
    """
    Per-engine schema state.

    Filters are case-insensitive when a migration succeeded, or when no
    migration ran and the filter columns are already text. Otherwise
    queries fall back to plain equality.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._tables_present = False
        self._missing_logged = False
        self._migration: Optional[MigrationResult] = None
        self._columns_text: Optional[bool] = None
        self._lock = threading.Lock()

    def tables_present(self) -> bool:
        if self._tables_present:
            return True
        try:
            inspector = inspect(self.engine)
            missing = [name for name in REQUIRED_TABLES if not inspector.has_table(name)]
        except Exception as exc:
            logger.warning("asset_schema_probe_failed error=%s", exc)
            return False
        if missing:
            if not self._missing_logged:
                logger.warning("asset_schema_missing tables=%s", ','.join(missing))
                self._missing_logged = True
            return False
        self._tables_present = True
        return True

    @property
    def case_insensitive_filters(self) -> bool:
        migration = self._migration
        if migration is not None:
            return migration.success
        if not self._is_postgresql():
            return True
        if self._columns_text is None:
            try:
                column_types = self._read_filter_column_types()
            except Exception as exc:
                logger.warning("asset_filter_type_check_failed error=%s filters=plain_equality", exc)
                return False
            legacy = [
                column for column, data_type in column_types.items()
                if data_type and data_type not in TEXT_COMPATIBLE_TYPES
            ]
            if legacy:
                logger.warning(
                    "asset_filter_columns_not_text columns=%s filters=plain_equality "
                    "hint=run_migrate_filter_columns", ','.join(legacy),
                )
            self._columns_text = not legacy
        return self._columns_text

    def _is_postgresql(self) -> bool:
        return self.engine.dialect.name == 'postgresql'

    def _read_filter_column_types(self) -> Dict[str, str]:
        with self.engine.connect() as conn:
            return _filter_column_types(conn)

    def migrate_filter_columns(self, force: bool = False) -> MigrationResult:
        """
        Convert non-text filter columns to TEXT (PostgreSQL only).

        The result is cached; pass force=True to run again.
        """
        with self._lock:
            if self._migration is not None and not force:
                return self._migration
            self._migration = self._run_migration()
            return self._migration

    def _run_migration(self) -> MigrationResult:
        if not self._is_postgresql():
            return MigrationResult(success=True, skipped=list(FILTER_COLUMNS))
        if not self.tables_present():
            return MigrationResult(success=False, error='tables missing')

        try:
            with self.engine.begin() as conn:
                column_types = _filter_column_types(conn)

                converted, skipped = [], []
                for column in FILTER_COLUMNS:
                    data_type = column_types.get(column, '')
                    if not data_type or data_type in TEXT_COMPATIBLE_TYPES:
                        skipped.append(column)
                        continue
                    using = (
                        f"convert_from({column}, 'UTF8')" if data_type == 'bytea'
                        else f"{column}::text"
                    )
                    conn.execute(text(
                        f"ALTER TABLE {OCCURRENCE_TABLE} ALTER COLUMN {column} TYPE TEXT USING {using}"
                    ))
                    converted.append(column)
        except Exception as exc:
            logger.warning(
                "asset_filter_migration_failed error=%s filters=not_guaranteed_case_insensitive", exc
            )
            return MigrationResult(success=False, error=str(exc))

        logger.info(
            "asset_filter_migration_complete converted=%s skipped=%d",
            ','.join(converted) or '-', len(skipped),
        )
        return MigrationResult(success=True, converted=converted, skipped=skipped)


def _filter_column_types(conn) -> Dict[str, str]:
    """Lowercased information_schema data_type per existing filter column."""
    rows = conn.execute(
        text(
            """
            SELECT column_name, data_type
            FROM information_schema.columns
            WHERE table_schema = current_schema()
              AND table_name = :table
              AND column_name = ANY(:columns)
            """
        ),
        {'table': OCCURRENCE_TABLE, 'columns': list(FILTER_COLUMNS)},
    ).fetchall()
    return {row[0]: (row[1] or '').lower() for row in rows}
