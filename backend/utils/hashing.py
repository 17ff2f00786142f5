"""
Consistent JSON Hashing for Asset Deduplication

Provides deterministic hashing of JSON data for:
- Content hashes (one catalog row per distinct asset)
- Slot hashes (one occurrence row per position in a document version)

Values are hashed exactly as given. Two assets whose alt text differs only
in whitespace are two catalog rows.
"""
import hashlib
import json
from typing import Any, Iterable


def canonical_json(data: Any) -> str:
    """Sorted-key, compact JSON text; key order never affects the digest."""
    return json.dumps(data, sort_keys=True, ensure_ascii=False, separators=(",", ":"), default=str)


def compute_json_hash(data: Any) -> str:
    """
    Compute SHA256 hash of JSON data.

    Stable regardless of key order. String values, None values and array
    order all count.

    Returns:
        64-character hex SHA256 hash
    """
    return hashlib.sha256(canonical_json(data).encode("utf-8")).hexdigest()


def strip_keys(data: Any, keys: Iterable[str]) -> Any:
    """
    Copy of a JSON structure without the given keys, at every depth.

    Used to drop location-only keys (e.g. _path) before content hashing so
    the same asset placed at two paths hashes identically.
    """
    excluded = set(keys)
    return _strip(data, excluded)


def _strip(data: Any, excluded: set) -> Any:
    if isinstance(data, dict):
        return {k: _strip(v, excluded) for k, v in data.items() if k not in excluded}
    if isinstance(data, list):
        return [_strip(item, excluded) for item in data]
    return data
