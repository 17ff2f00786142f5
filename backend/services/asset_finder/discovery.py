"""
Asset Discovery - recursive visitor over an uploaded JSON tree

Walks every object and array of a parsed document and reports nodes that look
like image/icon/thumbnail assets, together with their JSON path and the
nearest enclosing "-section" context.

JSON paths use $-rooted dotted notation: $.hero.heroImage, $.items[2].icon

The visitor dispatches on the node kind (object, array, scalar/null) with
explicit recursion. Scalars and nulls end the walk.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from constants import (
    ACCESSIBILITY_TEXT_KEYS,
    ALT_TEXT_KEYS,
    ASSET_KEY_KEYWORDS,
    ASSET_URI_KEYS,
    SECTION_SUFFIX,
    SECTION_URI_KEYS,
    STRUCTURAL_PATH_KEYS,
    TYPE_TAG_KEYS,
    VIEWPORT_PREFIX,
)
from utils.normalize import normalize_text


ROOT_PATH = '$'


@dataclass(frozen=True)
class SectionContext:
    """Nearest enclosing section of a node. Empty at the document root."""
    path: Optional[str] = None
    uri: Optional[str] = None


EMPTY_SECTION = SectionContext()


@dataclass(frozen=True)
class RawAssetNode:
    key: str
    node: Dict[str, Any]
    json_path: str
    section: SectionContext


def child_path(parent: str, key: str) -> str:
    return f'{parent}.{key}'


def index_path(parent: str, index: int) -> str:
    return f'{parent}[{index}]'


def is_asset_key(key) -> bool:
    """True when the key contains image, icon or thumbnail (any case)."""
    if not isinstance(key, str):
        return False
    lowered = key.lower()
    return any(keyword in lowered for keyword in ASSET_KEY_KEYWORDS)


def has_text_value(value) -> bool:
    """Plain non-blank string, or an object carrying a non-blank 'copy'."""
    if isinstance(value, dict):
        return normalize_text(value.get('copy')) is not None
    return normalize_text(value) is not None


def is_asset_like(node) -> bool:
    """
    Pure predicate: does this object look like an asset?

    An object qualifies when it has any recognized URI key, any alt or
    accessibility text field, or any key prefixed 'viewport'.
    """
    if not isinstance(node, dict):
        return False
    for key in ASSET_URI_KEYS:
        if normalize_text(node.get(key)) is not None:
            return True
    for key in ALT_TEXT_KEYS + ACCESSIBILITY_TEXT_KEYS:
        if key in node and has_text_value(node[key]):
            return True
    return any(
        isinstance(key, str) and key.lower().startswith(VIEWPORT_PREFIX)
        for key in node
    )


def type_tag(node: Dict[str, Any]) -> Optional[str]:
    for key in TYPE_TAG_KEYS:
        value = normalize_text(node.get(key))
        if value:
            return value
    return None


def section_for(node: Dict[str, Any], json_path: str, parent: SectionContext) -> SectionContext:
    """New context if the node is a section, else the parent's."""
    tag = type_tag(node)
    if not tag or not tag.lower().endswith(SECTION_SUFFIX):
        return parent

    section_path = None
    for key in STRUCTURAL_PATH_KEYS:
        section_path = normalize_text(node.get(key))
        if section_path:
            break

    section_uri = None
    for key in SECTION_URI_KEYS:
        section_uri = normalize_text(node.get(key))
        if section_uri:
            break

    return SectionContext(path=section_path or json_path, uri=section_uri)


class AssetDiscoverer:
    """
    Collects RawAssetNode entries in document order.

    Every object/array value is recursed into whether or not it matched, so
    nested assets inside an asset node are also reported.
    """

    def __init__(self):
        self.found: List[RawAssetNode] = []

    def visit(self, value, json_path: str = ROOT_PATH, section: SectionContext = EMPTY_SECTION):
        if isinstance(value, dict):
            self.visit_object(value, json_path, section)
        elif isinstance(value, list):
            self.visit_array(value, json_path, section)
        # scalars and null: nothing to do

    def visit_object(self, node: Dict[str, Any], json_path: str, parent: SectionContext):
        section = section_for(node, json_path, parent)
        for key, value in node.items():
            path = child_path(json_path, key)
            if isinstance(value, dict) and is_asset_key(key) and is_asset_like(value):
                self.found.append(RawAssetNode(key=key, node=value, json_path=path, section=section))
            if isinstance(value, (dict, list)):
                self.visit(value, path, section)

    def visit_array(self, items: List[Any], json_path: str, section: SectionContext):
        for index, item in enumerate(items):
            self.visit(item, index_path(json_path, index), section)


def discover_assets(document) -> List[RawAssetNode]:
    """Discover asset-like nodes in a parsed JSON document."""
    discoverer = AssetDiscoverer()
    discoverer.visit(document)
    return discoverer.found
