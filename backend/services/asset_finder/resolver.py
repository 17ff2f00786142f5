"""
Candidate Resolver - turns a discovered node into an ExtractionCandidate

Resolves, per node:
- display fields: preview URI, interactive path, alt and accessibility text
- viewport map
- business metadata (tenant, environment, project, site, geo, locale)
- content hash and slot hash

Metadata chain, per field:
    request metadata -> path inference -> configured defaults

Inference sources, first hit wins:
    1. the asset's own _path
    2. the asset's interactive path
    3. the document path (root _path, else the source URI)
    4. document-level locale keys (bounded breadth-first scan)

Resolution never raises. Anything that cannot be resolved falls through to
its default, which may be None.
"""

import logging
import re
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from constants import (
    ACCESSIBILITY_TEXT_KEYS,
    ALT_TEXT_KEYS,
    ASSET_URI_KEYS,
    DOCUMENT_LOCALE_KEYS,
    DOCUMENT_SCAN_MAX_NODES,
    STOREFRONT_REGIONS,
    STRUCTURAL_PATH_KEYS,
    VIEWPORT_PREFIX,
    VIEWPORT_PRIORITY,
)
from services.asset_finder.discovery import RawAssetNode, type_tag
from services.asset_finder.settings import AssetFinderSettings
from utils.hashing import compute_json_hash, strip_keys
from utils.normalize import (
    locale_country,
    normalize_geo,
    normalize_locale,
    normalize_site,
    normalize_text,
)

logger = logging.getLogger(__name__)


METADATA_FIELDS = ('tenant', 'environment', 'project', 'site', 'geo', 'locale')

CMS_PREFIX = ('content', 'dam')
STOREFRONT_SITE_MARKER = 'v'
DEFAULT_VIEWPORT_KEY = 'default'

_LOCALE_SEGMENT = re.compile(r'^[A-Za-z]{2}[-_][A-Za-z]{2}$')
_DESCENDANT_SCAN_MAX_NODES = 200


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass
class PathMetadata:
    """Metadata inferred from one path. Unknown fields stay None."""
    tenant: Optional[str] = None
    environment: Optional[str] = None
    site: Optional[str] = None
    locale: Optional[str] = None
    geo: Optional[str] = None


@dataclass
class ExtractionCandidate:
    asset_key: str
    asset_node_path: str
    asset_model: Optional[str] = None
    section_path: Optional[str] = None
    section_uri: Optional[str] = None
    preview_uri: Optional[str] = None
    interactive_path: Optional[str] = None
    alt_text: Optional[str] = None
    accessibility_text: Optional[str] = None
    viewports: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    tenant: Optional[str] = None
    environment: Optional[str] = None
    project: Optional[str] = None
    site: Optional[str] = None
    geo: Optional[str] = None
    locale: Optional[str] = None
    request_metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def content_hash(self) -> str:
        """Digest over what the asset shows, not where it sits."""
        return compute_json_hash({
            'assetKey': self.asset_key,
            'interactivePath': self.interactive_path,
            'previewUri': self.preview_uri,
            'altText': self.alt_text,
            'accessibilityText': self.accessibility_text,
            'viewports': strip_keys(self.viewports, STRUCTURAL_PATH_KEYS),
            'metadata': strip_keys(self.metadata, STRUCTURAL_PATH_KEYS),
        })

    @property
    def slot_hash(self) -> str:
        """Digest over the asset's position inside one document version."""
        return compute_json_hash({
            'assetKey': self.asset_key,
            'assetNodePath': self.asset_node_path,
            'sectionPath': self.section_path,
            'sectionUri': self.section_uri,
        })


# =============================================================================
# FIELD HELPERS
# =============================================================================

def own_uri(node: Dict[str, Any]) -> Optional[str]:
    for key in ASSET_URI_KEYS:
        value = normalize_text(node.get(key))
        if value:
            return value
    return None


def text_field(node: Dict[str, Any], keys) -> Optional[str]:
    """First non-blank text among keys; accepts "text" or {"copy": "text"}."""
    for key in keys:
        value = node.get(key)
        if isinstance(value, dict):
            value = value.get('copy')
        text = normalize_text(value)
        if text:
            return text
    return None


def _viewport_rank_key(key: str) -> str:
    return key.lower().replace('_', '').replace('-', '')


def extract_viewports(node: Dict[str, Any]) -> Dict[str, Any]:
    """
    Object values whose key starts with 'viewport'.

    A node with no viewports but a direct URI gets a single 'default' entry.
    """
    viewports = {
        key: value
        for key, value in node.items()
        if isinstance(key, str) and key.lower().startswith(VIEWPORT_PREFIX) and isinstance(value, dict)
    }
    if not viewports:
        uri = own_uri(node)
        if uri:
            viewports[DEFAULT_VIEWPORT_KEY] = {'uri': uri}
    return viewports


def descendant_uri(node: Dict[str, Any]) -> Optional[str]:
    """First URI found breadth-first under the node's children."""
    queue = deque(value for value in node.values() if isinstance(value, (dict, list)))
    visited = 0
    while queue and visited < _DESCENDANT_SCAN_MAX_NODES:
        current = queue.popleft()
        visited += 1
        if isinstance(current, dict):
            uri = own_uri(current)
            if uri:
                return uri
            queue.extend(v for v in current.values() if isinstance(v, (dict, list)))
        else:
            queue.extend(v for v in current if isinstance(v, (dict, list)))
    return None


def preview_uri_for(node: Dict[str, Any]) -> Optional[str]:
    """
    Preview URI: viewports (small, medium, large, then any other), then the
    node's own URI keys, then a descendant scan.
    """
    viewport_entries = [
        (key, value) for key, value in node.items()
        if isinstance(key, str) and key.lower().startswith(VIEWPORT_PREFIX) and isinstance(value, dict)
    ]

    def rank(entry):
        normalized = _viewport_rank_key(entry[0])
        if normalized in VIEWPORT_PRIORITY:
            return VIEWPORT_PRIORITY.index(normalized)
        return len(VIEWPORT_PRIORITY)

    for _, viewport in sorted(viewport_entries, key=rank):
        uri = own_uri(viewport)
        if uri:
            return uri

    return own_uri(node) or descendant_uri(node)


# =============================================================================
# PATH INFERENCE
# =============================================================================

def path_segments(path) -> List[str]:
    """Non-empty segments of a path or URL path."""
    text = normalize_text(path)
    if not text:
        return []
    if '://' in text:
        text = urlparse(text).path
    text = text.split('?', 1)[0].split('#', 1)[0]
    return [segment for segment in text.split('/') if segment]


def _is_file_segment(segment: str) -> bool:
    return '.' in segment


def _storefront_locale(segments: List[str], index: int) -> Tuple[Optional[str], Optional[str], int]:
    """
    Resolve the CMS locale slot at index.

    Returns (locale, geo, consumed). The slot holds either an ll-CC token or
    a storefront segment, which may span two segments ('ca/fr').
    """
    if index >= len(segments):
        return None, None, 0
    first = segments[index]
    locale = normalize_locale(first) if _LOCALE_SEGMENT.match(first) else None
    if locale:
        return locale, locale_country(locale), 1

    if index + 1 < len(segments):
        pair = f'{first}/{segments[index + 1]}'.lower()
        if pair in STOREFRONT_REGIONS:
            geo, locale = STOREFRONT_REGIONS[pair]
            return locale, geo, 2

    mapped = STOREFRONT_REGIONS.get(first.lower())
    if mapped:
        geo, locale = mapped
        return locale, geo, 1
    return None, None, 0


def infer_from_path(path, known_environments=()) -> PathMetadata:
    """
    Infer metadata from a CMS or storefront path.

    Known shapes:
        /content/dam/<tenant>/<env>/<locale>/<site>/...
        https://host/v/<site>/...
    Any ll-CC / ll_CC segment also yields a locale.
    """
    segments = path_segments(path)
    result = PathMetadata()
    if not segments:
        return result

    environments = {env.lower() for env in known_environments}

    if len(segments) > 2 and tuple(s.lower() for s in segments[:2]) == CMS_PREFIX:
        result.tenant = segments[2]
        index = 3
        if index < len(segments) and segments[index].lower() in environments:
            result.environment = segments[index].lower()
            index += 1
        locale, geo, consumed = _storefront_locale(segments, index)
        if consumed:
            result.locale, result.geo = locale, geo
            index += consumed
            if index < len(segments) and not _is_file_segment(segments[index]):
                result.site = normalize_site(segments[index])

    if result.site is None:
        for position, segment in enumerate(segments[:-1]):
            if segment == STOREFRONT_SITE_MARKER:
                result.site = normalize_site(segments[position + 1])
                break

    if result.locale is None:
        for segment in segments:
            if _LOCALE_SEGMENT.match(segment):
                result.locale = normalize_locale(segment)
                result.geo = locale_country(result.locale)
                break

    return result


def find_document_locale(document, max_nodes: int = DOCUMENT_SCAN_MAX_NODES) -> Optional[str]:
    """Breadth-first scan for a document-level locale key, bounded by max_nodes."""
    queue = deque([document])
    visited = 0
    while queue and visited < max_nodes:
        current = queue.popleft()
        visited += 1
        if isinstance(current, dict):
            for key in DOCUMENT_LOCALE_KEYS:
                locale = normalize_locale(current.get(key))
                if locale:
                    return locale
            queue.extend(v for v in current.values() if isinstance(v, (dict, list)))
        elif isinstance(current, list):
            queue.extend(v for v in current if isinstance(v, (dict, list)))
    return None


def document_path(document, source_uri) -> Optional[str]:
    if isinstance(document, dict):
        for key in STRUCTURAL_PATH_KEYS:
            path = normalize_text(document.get(key))
            if path:
                return path
    return normalize_text(source_uri)


def normalize_request_metadata(request_metadata) -> Dict[str, str]:
    """Keep known metadata keys with normalized, non-blank values."""
    if not isinstance(request_metadata, dict):
        return {}
    normalizers = {
        'tenant': normalize_text,
        'environment': lambda v: (normalize_text(v) or '').lower() or None,
        'project': normalize_text,
        'site': normalize_site,
        'geo': normalize_geo,
        'locale': normalize_locale,
    }
    cleaned = {}
    for name in METADATA_FIELDS:
        value = normalizers[name](request_metadata.get(name))
        if value:
            cleaned[name] = value
    return cleaned


# =============================================================================
# RESOLVER
# =============================================================================

class CandidateResolver:
    """
    Resolves RawAssetNode entries for one document.

    Document-level facts (document path inference, document locale) are
    computed once per instance.
    """

    def __init__(self, settings: AssetFinderSettings, document, source_uri=None, request_metadata=None):
        self.settings = settings
        self.request_metadata = normalize_request_metadata(request_metadata)
        self.document_metadata = infer_from_path(
            document_path(document, source_uri), settings.environments
        )
        self.document_locale = find_document_locale(document)

    def resolve(self, raw: RawAssetNode) -> Optional[ExtractionCandidate]:
        """Candidate for a discovered node, or None for a structural skip."""
        node = raw.node
        preview = preview_uri_for(node)
        alt = text_field(node, ALT_TEXT_KEYS)
        accessibility = text_field(node, ACCESSIBILITY_TEXT_KEYS)
        viewports = extract_viewports(node)

        if not (preview or alt or accessibility or viewports):
            return None

        interactive = preview or own_uri(node)
        node_path = None
        for key in STRUCTURAL_PATH_KEYS:
            node_path = normalize_text(node.get(key))
            if node_path:
                break

        candidate = ExtractionCandidate(
            asset_key=raw.key,
            asset_node_path=node_path or raw.json_path,
            asset_model=type_tag(node),
            section_path=raw.section.path,
            section_uri=raw.section.uri,
            preview_uri=preview,
            interactive_path=interactive,
            alt_text=alt,
            accessibility_text=accessibility,
            viewports=viewports,
            metadata=node,
            request_metadata=dict(self.request_metadata),
        )
        self._apply_metadata(candidate, node_path, interactive)
        return candidate

    def _apply_metadata(self, candidate: ExtractionCandidate, node_path, interactive_path):
        sources = [
            infer_from_path(node_path, self.settings.environments),
            infer_from_path(interactive_path, self.settings.environments),
            self.document_metadata,
        ]
        inferred = PathMetadata()
        for source in sources:
            for name in ('tenant', 'environment', 'site', 'locale'):
                if getattr(inferred, name) is None and getattr(source, name) is not None:
                    setattr(inferred, name, getattr(source, name))
                    if name == 'locale':
                        inferred.geo = source.geo
        if inferred.locale is None and self.document_locale:
            inferred.locale = self.document_locale
            inferred.geo = locale_country(self.document_locale)

        request = self.request_metadata
        settings = self.settings

        candidate.tenant = request.get('tenant') or inferred.tenant or settings.default_tenant
        candidate.environment = (
            request.get('environment') or inferred.environment or settings.default_environment
        )
        candidate.project = request.get('project') or settings.default_project
        candidate.site = request.get('site') or inferred.site or normalize_site(settings.default_site)
        candidate.locale = (
            request.get('locale') or inferred.locale or normalize_locale(settings.default_locale)
        )
        candidate.geo = (
            request.get('geo')
            or locale_country(candidate.locale)
            or inferred.geo
            or normalize_geo(settings.default_geo)
        )


def resolve_candidates(settings, document, raw_nodes, source_uri=None, request_metadata=None):
    """Resolve all raw nodes; returns (candidates, skipped_count)."""
    resolver = CandidateResolver(settings, document, source_uri, request_metadata)
    candidates = []
    skipped = 0
    for raw in raw_nodes:
        candidate = resolver.resolve(raw)
        if candidate is None:
            skipped += 1
            logger.debug("asset_candidate_skipped path=%s reason=no_display_fields", raw.json_path)
            continue
        candidates.append(candidate)
    return candidates, skipped
