"""
Models package - SQLAlchemy models
"""
from models.database import db
from models.asset_metadata_catalog import AssetMetadataCatalog
from models.asset_metadata_occurrence import AssetMetadataOccurrence
from models.asset_region_locale_ref import AssetRegionLocaleRef

__all__ = [
    'db',
    'AssetMetadataCatalog',
    'AssetMetadataOccurrence',
    'AssetRegionLocaleRef',
]
