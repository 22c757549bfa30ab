# chatproof/core/canon.py
"""
Canonical JSON for the request side of a verified exchange.

The upstream signer hashes the request exactly as a JavaScript client sends it:
keys sorted at every level, no whitespace, ECMAScript number formatting and raw
UTF-8 strings. RFC 8785 (JCS) fixes all of these, so we delegate to `jcs`:

  - numbers:  1.0 -> 1, 1e21 -> 1e+21, integers below 1e21 never use exponents
  - strings:  only ", \\ and control characters are escaped (\\b \\f \\n \\r \\t,
              others as lowercase \\u00xx); non-ASCII stays as UTF-8
  - keys:     ordered by UTF-16 code units (same as JS Array.prototype.sort)
"""

import json
import math
from typing import Any

try:
    import jcs
except ImportError:
    raise ImportError("Please install jcs: pip install jcs")

from chatproof.errors import CanonicalizationError


def _check(value: Any, path: str = "$") -> None:
    if value is None or isinstance(value, (bool, str)):
        return
    if isinstance(value, int):
        return
    if isinstance(value, float):
        if not math.isfinite(value):
            raise CanonicalizationError(f"{path}: non-finite number {value!r}")
        return
    if isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            _check(item, f"{path}[{i}]")
        return
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise CanonicalizationError(f"{path}: object key {key!r} is not a string")
            _check(item, f"{path}.{key}")
        return
    raise CanonicalizationError(f"{path}: unsupported type {type(value).__name__}")


def canonical_json(value: Any) -> bytes:
    """
    Produce deterministic UTF-8 bytes according to RFC 8785.
    Returns bytes ready for hashing.
    """
    _check(value)
    return jcs.canonicalize(value)


def canonicalize(value: Any) -> str:
    """Canonical JSON text of `value`."""
    return canonical_json(value).decode("utf-8")


def _reject_duplicates(pairs):
    obj = {}
    for key, item in pairs:
        if key in obj:
            raise CanonicalizationError(f"duplicate object key {key!r}")
        obj[key] = item
    return obj


def loads_strict(text: str) -> Any:
    """json.loads that refuses duplicate keys and NaN/Infinity literals."""

    def _no_constants(name: str):
        raise CanonicalizationError(f"non-finite number literal {name}")

    try:
        return json.loads(text, object_pairs_hook=_reject_duplicates, parse_constant=_no_constants)
    except json.JSONDecodeError as e:
        raise CanonicalizationError(f"invalid JSON: {e}") from e


def canonicalize_text(text: str) -> str:
    """Re-encode an arbitrary JSON document in canonical form."""
    return canonicalize(loads_strict(text))
