"""
Asset Region/Locale Reference Model - observed (geo, locale) pairs

Durable memory of which locales have actually been seen, independent of
catalog/occurrence churn. Two sources:
- UPLOAD: observed during extraction (primary)
- SYNC: parsed from the external storefront region page (secondary)

At most one active row exists per (source_type, locale_code). Repeated
observation increments seen_count and refreshes last_seen_at.
"""
from models.database import db
from datetime import datetime
import uuid

from constants import SOURCE_UPLOAD


class AssetRegionLocaleRef(db.Model):
    __tablename__ = 'asset_region_locale_ref'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    geo_code = db.Column(db.Text, nullable=False, index=True)      # uppercase country code
    locale_code = db.Column(db.Text, index=True)                   # ll_CC
    display_name = db.Column(db.Text, nullable=False)
    storefront_path = db.Column(db.Text, nullable=False)           # /cc/ or /cc/ll/

    source_type = db.Column(db.Text, nullable=False, default=SOURCE_UPLOAD, index=True)
    active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    last_seen_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    seen_count = db.Column(db.BigInteger, nullable=False, default=1)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index(
            'uq_asset_region_locale_ref_active_locale',
            'source_type', 'locale_code',
            unique=True,
            postgresql_where=db.text('active'),
            sqlite_where=db.text('active = 1'),
        ),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'geo_code': self.geo_code,
            'locale_code': self.locale_code,
            'display_name': self.display_name,
            'storefront_path': self.storefront_path,
            'source_type': self.source_type,
            'active': self.active,
            'last_seen_at': self.last_seen_at.isoformat() if self.last_seen_at else None,
            'seen_count': self.seen_count,
        }
