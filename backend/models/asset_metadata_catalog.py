"""
Asset Metadata Catalog Model - canonical, deduplicated asset records

One row per distinct asset content (metadata_hash). Rows are created lazily
the first time a content hash is observed and are read-mostly afterwards.
Occurrences reference catalog rows; a catalog row is never deleted when its
occurrences are replaced away.
"""
from models.database import db
from datetime import datetime
import uuid


class AssetMetadataCatalog(db.Model):
    __tablename__ = 'asset_metadata_catalog'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # SHA256 over display-relevant fields (see utils.hashing)
    metadata_hash = db.Column(db.Text, nullable=False)

    asset_key = db.Column(db.Text, nullable=False)
    asset_model = db.Column(db.Text)
    interactive_path = db.Column(db.Text, index=True)
    preview_uri = db.Column(db.Text)
    alt_text = db.Column(db.Text)
    accessibility_text = db.Column(db.Text)

    viewports_json = db.Column(db.JSON)        # {"viewportSmall": {...}, ...}
    asset_metadata_json = db.Column(db.JSON)   # full raw asset node

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('metadata_hash', name='uk_asset_metadata_catalog_metadata_hash'),
    )

    @classmethod
    def row_values(cls, candidate):
        """Column values for a new row built from an ExtractionCandidate."""
        now = datetime.utcnow()
        return {
            'id': str(uuid.uuid4()),
            'metadata_hash': candidate.content_hash,
            'asset_key': candidate.asset_key,
            'asset_model': candidate.asset_model,
            'interactive_path': candidate.interactive_path,
            'preview_uri': candidate.preview_uri,
            'alt_text': candidate.alt_text,
            'accessibility_text': candidate.accessibility_text,
            'viewports_json': candidate.viewports,
            'asset_metadata_json': candidate.metadata,
            'created_at': now,
            'updated_at': now,
        }

    def to_dict(self):
        return {
            'id': self.id,
            'metadata_hash': self.metadata_hash,
            'asset_key': self.asset_key,
            'asset_model': self.asset_model,
            'interactive_path': self.interactive_path,
            'preview_uri': self.preview_uri,
            'alt_text': self.alt_text,
            'accessibility_text': self.accessibility_text,
            'viewports': self.viewports_json or {},
            'asset_metadata': self.asset_metadata_json or {},
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
