"""
Defensive field access for loosely-typed host documents.

Nothing about a document's shape is guaranteed: any level may be missing,
null, or of the wrong type. These helpers walk dotted paths, try several
locations in priority order, and coerce what they find.
"""

import math
from typing import Any, Iterable, Optional


_MISSING = object()

FRACTIONS = {
    "1/8": 0.125,
    "1/4": 0.25,
    "1/2": 0.5,
}


def dig(obj: Any, path: str, default: Any = None) -> Any:
    """
    Follow a dotted path through nested dicts.

    Example:
        >>> dig({"details": {"cr": 3}}, "details.cr")
        3
        >>> dig({"details": None}, "details.cr", 0)
        0
    """
    current = obj
    for part in path.split("."):
        if not isinstance(current, dict):
            return default
        current = current.get(part, _MISSING)
        if current is _MISSING or current is None:
            return default
    return current


def first_present(obj: Any, paths: Iterable[str], default: Any = None) -> Any:
    """Value at the first path that is present and not None (nullish fallback)."""
    for path in paths:
        value = dig(obj, path, _MISSING)
        if value is not _MISSING:
            return value
    return default


def first_truthy(obj: Any, paths: Iterable[str], default: Any = None) -> Any:
    """Value at the first path that is truthy (falsy values fall through)."""
    for path in paths:
        value = dig(obj, path)
        if value:
            return value
    return default


def scalar_of(value: Any) -> Any:
    """Unwrap ``{"value": x}`` containers one level."""
    if isinstance(value, dict) and "value" in value:
        return value["value"]
    return value


def parse_power(value: Any) -> float:
    """
    Normalize a power level (challenge rating or level) to a float.

    Textual fractions such as ``"1/4"`` become 0.25; anything unparseable
    or non-finite (``"nan"``, ``"inf"``) becomes 0.
    """
    result = _power_value(scalar_of(value))
    return result if math.isfinite(result) else 0.0


def _power_value(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return 0.0
    if isinstance(value, str):
        text = value.strip()
        if text in FRACTIONS:
            return FRACTIONS[text]
        if "/" in text:
            num, _, den = text.partition("/")
            try:
                return float(num) / float(den)
            except (ValueError, ZeroDivisionError, OverflowError):
                return 0.0
        try:
            return float(text)
        except ValueError:
            return 0.0
    return 0.0


def as_int(value: Any, default: int) -> int:
    """Coerce to int, falling back on ``default`` for junk."""
    value = scalar_of(value)
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def as_text(value: Any, default: str) -> str:
    """Coerce to a non-empty string, falling back on ``default``."""
    value = scalar_of(value)
    if value is None or value == "":
        return default
    if isinstance(value, (dict, list)):
        return default
    return str(value)


def as_str_list(value: Any) -> list[str]:
    """Coerce to a list of strings, accepting lists, sets and ``{"value": [...]}``."""
    value = scalar_of(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(v) for v in value if isinstance(v, (str, int, float)) and str(v).strip()]
    return []


def doc_identity(doc: Any) -> tuple[str, str, str]:
    """(id, name, type) of a document, tolerant of missing keys."""
    if not isinstance(doc, dict):
        return "", "", ""
    doc_id = doc.get("_id") or doc.get("id") or ""
    name = doc.get("name") or ""
    kind = doc.get("type") or ""
    return str(doc_id), str(name), str(kind)


def doc_system(doc: Any) -> dict:
    """The document's ``system`` block, or an empty dict."""
    if isinstance(doc, dict) and isinstance(doc.get("system"), dict):
        return doc["system"]
    return {}


def doc_image(doc: Any) -> Optional[str]:
    if isinstance(doc, dict) and isinstance(doc.get("img"), str):
        return doc["img"]
    return None
