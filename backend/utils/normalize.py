"""
Input Normalization Utilities
=============================

Single source of truth for input normalization.
All parsing of free-form text, locale strings, geo codes and storefront
paths happens here, nowhere else. Every function is pure.

Usage:
    from utils.normalize import normalize_locale, normalize_geo, business_region_for_country

    normalize_locale("en-US")            # "en_US"
    normalize_geo(" jp ")                # "JP"
    business_region_for_country("TW")    # "GC"

Invariants:
    - Locales are always ll_CC (lowercase language, uppercase country)
    - Geos are always uppercase
    - Blank input normalizes to None, never to ""
"""

import html
import re
from typing import Iterable, List, Optional

from constants import (
    BUSINESS_REGION_ORDER,
    DEFAULT_LANGUAGE_BY_GEO,
    STOREFRONT_COUNTRY_ALIASES,
    get_business_region,
)


class ValidationError(ValueError):
    """Raised when input cannot be normalized to expected type."""

    def __init__(self, message: str, field: str = None, received_value=None):
        super().__init__(message)
        self.field = field
        self.received_value = received_value


def to_int(
    value,
    *,
    default: Optional[int] = None,
    field: str = None
) -> Optional[int]:
    """
    Convert a string or number to int, with explicit None handling.

    Raises:
        ValidationError: If value cannot be converted to int
    """
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValidationError(
            f"Expected int, got bool: {value!r}",
            field=field,
            received_value=value
        )
    try:
        return int(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"Expected int, got {type(value).__name__}: {value!r}",
            field=field,
            received_value=value
        )


# =============================================================================
# TEXT
# =============================================================================

_WHITESPACE = re.compile(r"\s+")
_HTML_TAG = re.compile(r"<[^>]+>")


def normalize_text(value) -> Optional[str]:
    """Trimmed string, or None for None/blank. Non-strings are stringified."""
    if value is None:
        return None
    if not isinstance(value, str):
        if isinstance(value, (dict, list)):
            return None
        value = str(value)
    trimmed = value.strip()
    return trimmed or None


def normalize_display_name(raw_html) -> Optional[str]:
    """Strip tags, unescape entities and collapse whitespace of an anchor label."""
    text = normalize_text(raw_html)
    if text is None:
        return None
    without_tags = _HTML_TAG.sub(" ", text)
    decoded = html.unescape(without_tags)
    collapsed = _WHITESPACE.sub(" ", decoded).strip()
    return collapsed or None


# =============================================================================
# LOCALE / LANGUAGE / GEO
# =============================================================================

_TWO_LETTERS = re.compile(r"^[A-Za-z]{2}$")
_LOCALE_TOKEN = re.compile(r"^([A-Za-z]{2})[-_]([A-Za-z]{2})$")


def normalize_language(value) -> Optional[str]:
    """Two-letter lowercase language code, or None."""
    text = normalize_text(value)
    if text is None or not _TWO_LETTERS.match(text):
        return None
    return text.lower()


def normalize_country_code(value) -> Optional[str]:
    """Two-letter uppercase country code, or None."""
    text = normalize_text(value)
    if text is None or not _TWO_LETTERS.match(text):
        return None
    return text.upper()


def normalize_geo(value) -> Optional[str]:
    """Uppercase geo label (country code or business region name), or None."""
    text = normalize_text(value)
    return text.upper() if text else None


def normalize_locale(value) -> Optional[str]:
    """
    Normalize a locale into ll_CC.

    Accepts ll-CC, ll_CC and any letter case. Returns None for anything that
    is not exactly a two-letter language plus a two-letter country.

    >>> normalize_locale("en-us")
    'en_US'
    """
    text = normalize_text(value)
    if text is None:
        return None
    match = _LOCALE_TOKEN.match(text)
    if not match:
        return None
    return f"{match.group(1).lower()}_{match.group(2).upper()}"


def locale_country(locale) -> Optional[str]:
    """Country segment of a locale ("ja_JP" -> "JP")."""
    normalized = normalize_locale(locale)
    return normalized[3:] if normalized else None


def locale_language(locale) -> Optional[str]:
    normalized = normalize_locale(locale)
    return normalized[:2] if normalized else None


def normalize_site(value) -> Optional[str]:
    text = normalize_text(value)
    return text.lower() if text else None


# =============================================================================
# STOREFRONT PATHS
# =============================================================================

STOREFRONT_COUNTRY_ONLY = re.compile(r"^/([a-z]{2})/$")
STOREFRONT_COUNTRY_LANGUAGE = re.compile(r"^/([a-z]{2})/([a-z]{2})/$")
STOREFRONT_COUNTRY_LANGUAGE_HYPHEN = re.compile(r"^/([a-z]{2})-([a-z]{2})/$")


def normalize_storefront_path(raw_path) -> Optional[str]:
    """
    Normalize a storefront link into /cc/, /cc/ll/ or /cc-ll/.

    Query strings and fragments are dropped. Absolute URLs and any other
    path shape return None.
    """
    text = normalize_text(raw_path)
    if text is None:
        return None
    text = text.split('?', 1)[0].split('#', 1)[0]
    if not text.startswith('/'):
        return None
    normalized = text.lower()
    if not normalized.endswith('/'):
        normalized += '/'
    for pattern in (STOREFRONT_COUNTRY_ONLY, STOREFRONT_COUNTRY_LANGUAGE, STOREFRONT_COUNTRY_LANGUAGE_HYPHEN):
        if pattern.match(normalized):
            return normalized
    return None


def storefront_path_for_locale(locale) -> str:
    """
    Storefront path serving a locale: /cc/ for English, /cc/ll/ otherwise.

    Unparseable locales map to the US storefront.
    """
    normalized = normalize_locale(locale)
    if normalized is None:
        return "/us/"
    language = normalized[:2]
    country = normalized[3:].lower()
    if language == "en":
        return f"/{country}/"
    return f"/{country}/{language}/"


def locale_country_for_geo(geo) -> Optional[str]:
    """ISO country used in a locale for a storefront geo (UK -> GB)."""
    code = normalize_country_code(geo)
    if code is None:
        return None
    return STOREFRONT_COUNTRY_ALIASES.get(code, code)


def default_language_for_geo(geo, explicit_languages: Iterable[str] = ()) -> str:
    """
    Language served at a bare /cc/ storefront.

    Order: configured per-geo default, then English when the page links an
    English variant, then English for a lone Arabic variant (the root page
    is English there), then the single explicit variant, then English.
    """
    code = normalize_country_code(geo)
    explicit = set(explicit_languages or ())
    if code and code in DEFAULT_LANGUAGE_BY_GEO:
        return DEFAULT_LANGUAGE_BY_GEO[code]
    if 'en' in explicit:
        return 'en'
    if explicit == {'ar'}:
        return 'en'
    if len(explicit) == 1:
        return next(iter(explicit))
    return 'en'


# =============================================================================
# BUSINESS REGIONS
# =============================================================================

def business_region_for_country(country_code) -> str:
    """Exactly one business region for any country code; unknown -> WW."""
    return get_business_region(normalize_country_code(country_code) or '')


def business_region_for_locale(locale) -> str:
    return business_region_for_country(locale_country(locale))


def order_business_regions(names: Iterable[str]) -> List[str]:
    """Preferred regions in their fixed order, then any extras alphabetically."""
    unique = {normalize_geo(name) for name in names if normalize_geo(name)}
    preferred = [name for name in BUSINESS_REGION_ORDER if name in unique]
    extras = sorted(unique - set(BUSINESS_REGION_ORDER))
    return preferred + extras
