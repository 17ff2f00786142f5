"""
Centralized Constants - SINGLE SOURCE OF TRUTH

Business region groupings, storefront mappings, and the key vocabularies
used to recognize assets inside uploaded JSON documents.

DO NOT duplicate these definitions in other files.

Reference: Business regions
- Single-country buckets: JP, KR, CA, UK (GB)
- Multi-country buckets: GC, APAC, EU, LA, MEA
- WW: worldwide default (US and every unmapped country)
"""

# =============================================================================
# BUSINESS REGIONS (geo buckets shown in the filter UI)
# =============================================================================

DEFAULT_BUSINESS_REGION = 'WW'

# Region -> member ISO 3166 country codes
BUSINESS_REGION_COUNTRIES = {
    'UK': ['GB'],
    'CA': ['CA'],
    'JP': ['JP'],
    'KR': ['KR'],
    # Greater China
    'GC': ['CN', 'HK', 'MO', 'TW'],
    'APAC': [
        'AU', 'NZ', 'SG', 'IN', 'TH', 'VN', 'ID', 'MY', 'PH',
    ],
    'EU': [
        'FR', 'DE', 'IT', 'ES', 'NL', 'BE', 'CH', 'AT', 'SE', 'NO', 'DK',
        'FI', 'IE', 'PT', 'PL', 'CZ', 'HU', 'GR', 'RO', 'BG', 'HR', 'SK',
        'SI', 'LU', 'EE', 'LV', 'LT', 'RU', 'UA',
    ],
    # Latin America
    'LA': [
        'MX', 'BR', 'AR', 'CL', 'CO', 'PE', 'EC', 'UY', 'PY', 'BO', 'VE',
        'CR', 'GT', 'PA', 'SV', 'HN', 'NI', 'DO', 'PR',
    ],
    # Middle East & Africa
    'MEA': [
        'AE', 'SA', 'BH', 'KW', 'QA', 'OM', 'JO', 'EG', 'IL', 'TR', 'ZA',
        'MA', 'NG', 'KE', 'TN',
    ],
}

# Display order for geo options; regions not listed sort alphabetically after
BUSINESS_REGION_ORDER = ['WW', 'UK', 'CA', 'JP', 'KR', 'GC', 'APAC', 'EU', 'LA', 'MEA']

# Reverse lookup, built once
COUNTRY_TO_BUSINESS_REGION = {
    country: region
    for region, countries in BUSINESS_REGION_COUNTRIES.items()
    for country in countries
}

# Served when no region/locale has been observed yet
FALLBACK_GEO_TO_LOCALES = {
    'WW': ['en_US'],
    'JP': ['ja_JP'],
    'KR': ['ko_KR'],
}


def get_business_region(country_code: str) -> str:
    """
    Get the business region for a country code.

    Args:
        country_code: ISO country code (e.g., 'JP', 'fr', ' GB ')

    Returns:
        Region name; unknown or blank codes return DEFAULT_BUSINESS_REGION
    """
    if not country_code:
        return DEFAULT_BUSINESS_REGION
    return COUNTRY_TO_BUSINESS_REGION.get(country_code.strip().upper(), DEFAULT_BUSINESS_REGION)


def get_countries_for_region(region: str) -> list:
    """Member countries of a business region (empty for WW and unknown names)."""
    return list(BUSINESS_REGION_COUNTRIES.get((region or '').strip().upper(), []))


def is_single_country_region(region: str) -> bool:
    """
    True when the region label is itself a storable country code (JP, KR, CA).

    UK is a single-country bucket but its stored geo is GB, so it is not.
    """
    countries = get_countries_for_region(region)
    return len(countries) == 1 and countries[0] == (region or '').strip().upper()


# =============================================================================
# STOREFRONT PATHS
# =============================================================================

# CMS locale-slot segment -> (geo, locale)
STOREFRONT_REGIONS = {
    # North America
    'us': ('US', 'en_US'),
    'ca': ('CA', 'en_CA'),
    'ca/fr': ('CA', 'fr_CA'),
    'mx': ('MX', 'es_MX'),

    # Asia Pacific
    'jp': ('JP', 'ja_JP'),
    'kr': ('KR', 'ko_KR'),
    'au': ('AU', 'en_AU'),
    'cn': ('CN', 'zh_CN'),
    'hk': ('HK', 'zh_HK'),
    'hk/en': ('HK', 'en_HK'),
    'tw': ('TW', 'zh_TW'),
    'sg': ('SG', 'en_SG'),
    'in': ('IN', 'en_IN'),
    'th': ('TH', 'th_TH'),
    'id': ('ID', 'id_ID'),
    'my': ('MY', 'ms_MY'),
    'nz': ('NZ', 'en_NZ'),
    'ph': ('PH', 'en_PH'),
    'vn': ('VN', 'vi_VN'),

    # Europe
    'uk': ('GB', 'en_GB'),
    'fr': ('FR', 'fr_FR'),
    'de': ('DE', 'de_DE'),
    'it': ('IT', 'it_IT'),
    'es': ('ES', 'es_ES'),
    'nl': ('NL', 'nl_NL'),
    'be': ('BE', 'nl_BE'),
    'befr': ('BE', 'fr_BE'),
    'chde': ('CH', 'de_CH'),
    'chfr': ('CH', 'fr_CH'),
    'at': ('AT', 'de_AT'),
    'se': ('SE', 'sv_SE'),
    'no': ('NO', 'no_NO'),
    'dk': ('DK', 'da_DK'),
    'fi': ('FI', 'fi_FI'),
    'ie': ('IE', 'en_IE'),
    'pt': ('PT', 'pt_PT'),
    'pl': ('PL', 'pl_PL'),
    'tr': ('TR', 'tr_TR'),

    # Middle East / Africa
    'ae': ('AE', 'en_AE'),
    'ae-ar': ('AE', 'ar_AE'),
    'sa': ('SA', 'en_SA'),
    'sa-ar': ('SA', 'ar_SA'),
    'za': ('ZA', 'en_ZA'),
    'il': ('IL', 'he_IL'),

    # Latin America
    'br': ('BR', 'pt_BR'),
    'cl': ('CL', 'es_CL'),
    'co': ('CO', 'es_CO'),

    # Worldwide
    'ww': ('US', 'en_US'),
    'en_ww': ('US', 'en_US'),
}

# Language served at a bare /cc/ storefront path when the page gives no hint
DEFAULT_LANGUAGE_BY_GEO = {
    'CA': 'en',
    'JP': 'ja',
    'KR': 'ko',
    'CN': 'zh',
    'TW': 'zh',
    'HK': 'zh',
    'MO': 'zh',
    'TH': 'th',
    'VN': 'vi',
    'UA': 'uk',
    'FR': 'fr',
    'DE': 'de',
    'IT': 'it',
    'ES': 'es',
    'NL': 'nl',
    'PT': 'pt',
    'BR': 'pt',
    'MX': 'es',
    'PL': 'pl',
    'TR': 'tr',
    'SE': 'sv',
    'DK': 'da',
    'FI': 'fi',
    'NO': 'no',
    'IL': 'he',
    'RU': 'ru',
}

# Storefront path country -> ISO country used in the locale
STOREFRONT_COUNTRY_ALIASES = {
    'UK': 'GB',
}


# =============================================================================
# ASSET DISCOVERY VOCABULARY
# =============================================================================

# Case-insensitive substrings that mark a key as an asset slot
ASSET_KEY_KEYWORDS = ('image', 'icon', 'thumbnail')

# Keys carrying a URI on an asset node, in lookup order
ASSET_URI_KEYS = ('uri', '_uri_path', 'src', 'url', 'href', 'imageUrl')

ALT_TEXT_KEYS = ('alt', 'altText', 'alt_text')
ACCESSIBILITY_TEXT_KEYS = ('accessibilityText', 'accessibility_text', 'ariaLabel')

VIEWPORT_PREFIX = 'viewport'

# Preview URI lookup priority (compared after lowercasing and dropping _/-)
VIEWPORT_PRIORITY = ('viewportsmall', 'viewportmedium', 'viewportlarge')

# Type tag keys; a value ending in SECTION_SUFFIX opens a new section
TYPE_TAG_KEYS = ('_model', '_type')
SECTION_SUFFIX = '-section'
SECTION_URI_KEYS = ('_uri_path', 'uri')

# Keys describing where a node lives rather than what it shows;
# excluded from the content hash
STRUCTURAL_PATH_KEYS = ('_path',)

# Document-level locale hints
DOCUMENT_LOCALE_KEYS = ('locale', 'localeCode', 'locale_code', 'languageLocale', 'language_locale')
DOCUMENT_SCAN_MAX_NODES = 1500

# Region/locale reference source types
SOURCE_UPLOAD = 'UPLOAD'
SOURCE_SYNC = 'SYNC'
