"""
Base Pydantic model for all API param schemas.

Key features:
- frozen=True: Immutable after normalization (prevents downstream mutation)
- populate_by_name=True: Accept both alias and field name
- extra='ignore': Ignore undeclared fields (safe)
- locale normalized to ll_CC and geo uppercased at the boundary
"""

from pydantic import BaseModel, ConfigDict, field_validator

from utils.normalize import normalize_geo, normalize_locale, normalize_site, normalize_text


class BaseParamsModel(BaseModel):
    """
    Base model for all API param schemas.

    All param models inherit from this to ensure consistent behavior:
    - Frozen after creation (immutable)
    - Whitespace stripped from strings
    - Both alias and field name accepted
    - Unknown fields ignored
    - Metadata fields normalized (blank -> None, locale ll_CC, geo upper,
      site lower)

    Invariant: inside the backend (after validation), locale is always
    ll_CC or None. Unparseable locales are rejected, not passed through.
    """
    model_config = ConfigDict(
        frozen=True,  # Immutable after normalization
        str_strip_whitespace=True,  # Strip whitespace from strings
        populate_by_name=True,  # Accept both alias and field name
        extra='ignore',  # Ignore undeclared fields
    )

    @field_validator('tenant', 'environment', 'project', mode='before', check_fields=False)
    @classmethod
    def blank_to_none(cls, v):
        if v is None or isinstance(v, str):
            return normalize_text(v)
        return v

    @field_validator('site', mode='before', check_fields=False)
    @classmethod
    def lowercase_site(cls, v):
        if v is None or isinstance(v, str):
            return normalize_site(v)
        return v

    @field_validator('geo', mode='before', check_fields=False)
    @classmethod
    def uppercase_geo(cls, v):
        if v is None or isinstance(v, str):
            return normalize_geo(v)
        return v

    @field_validator('locale', mode='before', check_fields=False)
    @classmethod
    def normalize_locale_code(cls, v):
        """Accepts en-US / en_US / EN_us; returns en_US. Blank -> None."""
        if v is None:
            return None
        if isinstance(v, str):
            if not v.strip():
                return None
            locale = normalize_locale(v)
            if locale is None:
                raise ValueError(f"locale must look like ll_CC, got {v!r}")
            return locale
        return v
