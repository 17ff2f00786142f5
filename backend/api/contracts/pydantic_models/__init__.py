"""
Pydantic models for API param validation.

Key features:
- Frozen models (immutable after normalization)
- Auto type coercion with clear error messages
- Metadata normalization at the boundary (locale ll_CC, geo uppercase)

Usage:
    from api.contracts.pydantic_models import SearchParams

    params = SearchParams(**raw_params)
    filters = params.filters()
"""

from .base import BaseParamsModel
from .asset_finder import ExtractRequest, RequestMetadata, SearchParams

__all__ = [
    'BaseParamsModel',
    'RequestMetadata',
    'SearchParams',
    'ExtractRequest',
]
