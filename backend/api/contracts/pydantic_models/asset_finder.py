"""
Pydantic models for /api/asset-finder endpoint bodies.

Endpoints:
    POST /api/asset-finder/search   -> SearchParams
    POST /api/asset-finder/extract  -> ExtractRequest
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import Field, field_validator

from .base import BaseParamsModel


class RequestMetadata(BaseParamsModel):
    """Caller-supplied business metadata; wins over path inference."""
    tenant: Optional[str] = None
    environment: Optional[str] = None
    project: Optional[str] = None
    site: Optional[str] = None
    geo: Optional[str] = None
    locale: Optional[str] = None

    @field_validator('environment', mode='after')
    @classmethod
    def lowercase_environment(cls, v):
        return v.lower() if v else v


class SearchParams(RequestMetadata):
    """
    Search filters plus paging.

    Size above the configured maximum is clamped by the service, not
    rejected here.

    Usage:
        params = SearchParams(**(request.get_json(silent=True) or {}))
        filters = params.filters()
    """
    page: int = Field(default=0)
    size: int = Field(default=20)

    @field_validator('page', 'size', mode='before')
    @classmethod
    def blank_to_default(cls, v, info):
        if v is None or v == '':
            return 0 if info.field_name == 'page' else 20
        if isinstance(v, bool):
            raise ValueError('must be an integer')
        return v

    def filters(self) -> Dict[str, str]:
        return self.model_dump(exclude={'page', 'size'}, exclude_none=True)


class ExtractRequest(BaseParamsModel):
    """Body of POST /extract. The document may be parsed JSON or JSON text."""
    raw_data_id: str = Field(alias='rawDataId', min_length=1)
    source_uri: str = Field(alias='sourceUri', min_length=1)
    source_version: Optional[int] = Field(default=None, alias='sourceVersion')
    document: Union[Dict[str, Any], List[Any], str]
    request_metadata: Optional[RequestMetadata] = Field(default=None, alias='requestMetadata')

    def metadata_dict(self) -> Dict[str, str]:
        if self.request_metadata is None:
            return {}
        return self.request_metadata.model_dump(exclude_none=True)
