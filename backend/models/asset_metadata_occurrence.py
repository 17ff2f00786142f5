"""
Asset Metadata Occurrence Model - one asset slot in one source document version

The occurrence set for a (source_uri, source_version) pair is replaced as a
whole on every extraction run; rows are never merged incrementally.

Filter columns (tenant..locale) hold normalized values:
- locale: ll_CC
- geo: uppercase country code
- site: lowercase
"""
from models.database import db
from datetime import datetime
import uuid


# Columns the search API filters on (case-insensitive exact match)
FILTER_COLUMNS = ('tenant', 'environment', 'project', 'site', 'geo', 'locale')


class AssetMetadataOccurrence(db.Model):
    __tablename__ = 'asset_metadata_occurrence'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Reference, not ownership: many occurrences may share one catalog row
    catalog_id = db.Column(db.String(36), db.ForeignKey('asset_metadata_catalog.id'), nullable=False, index=True)

    raw_data_id = db.Column(db.String(36), nullable=False, index=True)
    source_uri = db.Column(db.Text, nullable=False)
    source_version = db.Column(db.Integer)

    # Slot hash: (asset_key, asset_node_path, section_path, section_uri)
    asset_slot_key = db.Column(db.Text, nullable=False)
    asset_node_path = db.Column(db.Text, nullable=False)
    section_path = db.Column(db.Text, index=True)
    section_uri = db.Column(db.Text)

    tenant = db.Column(db.Text)
    environment = db.Column(db.Text)
    project = db.Column(db.Text)
    site = db.Column(db.Text)
    geo = db.Column(db.Text)
    locale = db.Column(db.Text)

    request_metadata_json = db.Column(db.JSON)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    catalog = db.relationship('AssetMetadataCatalog', lazy='joined')

    __table_args__ = (
        db.UniqueConstraint(
            'source_uri', 'source_version', 'asset_slot_key',
            name='uk_asset_metadata_occurrence_source_version_slot',
        ),
        db.Index('idx_asset_metadata_occurrence_source_uri_version', 'source_uri', 'source_version'),
        db.Index('idx_asset_metadata_occurrence_filters', *FILTER_COLUMNS),
    )

    @classmethod
    def row_values(cls, candidate, catalog_id, raw_data_id, source_uri, source_version, now=None):
        """Column values for a bulk insert built from an ExtractionCandidate."""
        now = now or datetime.utcnow()
        return {
            'id': str(uuid.uuid4()),
            'catalog_id': catalog_id,
            'raw_data_id': raw_data_id,
            'source_uri': source_uri,
            'source_version': source_version,
            'asset_slot_key': candidate.slot_hash,
            'asset_node_path': candidate.asset_node_path,
            'section_path': candidate.section_path,
            'section_uri': candidate.section_uri,
            'tenant': candidate.tenant,
            'environment': candidate.environment,
            'project': candidate.project,
            'site': candidate.site,
            'geo': candidate.geo,
            'locale': candidate.locale,
            'request_metadata_json': candidate.request_metadata or None,
            'created_at': now,
            'updated_at': now,
        }

    def to_tile(self):
        """Search result shape (camelCase for the filter UI)."""
        catalog = self.catalog
        return {
            'id': self.id,
            'assetKey': catalog.asset_key if catalog else None,
            'assetModel': catalog.asset_model if catalog else None,
            'sectionPath': self.section_path,
            'sectionUri': self.section_uri,
            'interactivePath': catalog.interactive_path if catalog else None,
            'previewUri': catalog.preview_uri if catalog else None,
            'locale': self.locale,
            'site': self.site,
            'geo': self.geo,
            'altText': catalog.alt_text if catalog else None,
        }

    def to_detail(self):
        """Occurrence joined with its catalog row, including parsed JSON maps."""
        catalog = self.catalog
        detail = self.to_tile()
        detail.update({
            'catalogId': self.catalog_id,
            'rawDataId': self.raw_data_id,
            'sourceUri': self.source_uri,
            'sourceVersion': self.source_version,
            'assetSlotKey': self.asset_slot_key,
            'assetNodePath': self.asset_node_path,
            'tenant': self.tenant,
            'environment': self.environment,
            'project': self.project,
            'metadataHash': catalog.metadata_hash if catalog else None,
            'accessibilityText': catalog.accessibility_text if catalog else None,
            'viewports': (catalog.viewports_json if catalog else None) or {},
            'assetMetadata': (catalog.asset_metadata_json if catalog else None) or {},
            'requestMetadata': self.request_metadata_json or {},
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        })
        return detail
