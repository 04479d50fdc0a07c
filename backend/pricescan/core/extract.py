"""
Defensive accessors for provider JSON.

Provider payloads change shape between API versions and between providers,
so nothing here assumes a key exists or holds the expected type. Fallback
chains are expressed as data: a list of (source, path) pairs tried in order.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

Path = Tuple[Any, ...]

DEFAULT_CURRENCY = "USD"

# Formats seen in review dates across providers, tried after ISO-8601
_DATE_FORMATS = (
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%Y/%m/%d",
)

# Amazon: "Reviewed in the United States on January 15, 2024"
_REVIEWED_ON = re.compile(r"\bon\s+(.+)$", re.IGNORECASE)


def first_defined(*candidates: Any) -> Any:
    """
    Returns the first candidate that is not None.
    Zero-arg callables are evaluated lazily, left to right, so
    first_defined(a, lambda: expensive()) never calls expensive() when a is set.
    """
    for c in candidates:
        value = c() if callable(c) else c
        if value is not None:
            return value
    return None


def dig(obj: Any, *path: Any) -> Any:
    """
    Walks dict keys (str) and list indices (int).
    Any missing key, bad index or type mismatch gives None.
    """
    cur = obj
    for step in path:
        if isinstance(step, int):
            if not isinstance(cur, list) or not -len(cur) <= step < len(cur):
                return None
            cur = cur[step]
        else:
            if not isinstance(cur, Mapping):
                return None
            cur = cur.get(step)
        if cur is None:
            return None
    return cur


def pick_text(sources: Mapping[str, Any], paths: Iterable[Tuple[str, Path]]) -> Optional[str]:
    """
    Ordered fallback chain over (source_name, path) pairs, e.g.
        [("product", ("title",)), ("search", ("title",))]
    The first string or number found wins, returned stripped as str.
    Blank strings and other types are skipped.
    """
    for source_name, path in paths:
        value = as_text(dig(sources.get(source_name), *path))
        if value is not None:
            return value
    return None


def pick_list(sources: Mapping[str, Any], paths: Iterable[Tuple[str, Path]]) -> list:
    """First non-empty list along the chain, else []."""
    for source_name, path in paths:
        value = dig(sources.get(source_name), *path)
        if isinstance(value, list) and value:
            return value
    return []


def first_item(obj: Any, keys: Sequence[str]) -> Optional[dict]:
    """
    First element of the first list found under one of `keys`.
    Returns None for empty lists, non-dict elements or when no key matches.
    """
    if not isinstance(obj, Mapping):
        return None
    for key in keys:
        items = obj.get(key)
        if isinstance(items, list):
            if items and isinstance(items[0], Mapping):
                return items[0]
            return None
    return None


def as_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def find_spec_by_name(specs: Any, name: str) -> Any:
    """
    Looks up a specification value by case-insensitive name.

    Accepts a list of {"name": ..., "value": ...} dicts (the usual shape) or a
    plain mapping of name -> value. Anything else gives None.
    """
    wanted = name.strip().lower()

    if isinstance(specs, Mapping):
        for k, v in specs.items():
            if isinstance(k, str) and k.strip().lower() == wanted:
                return v
        return None

    if not isinstance(specs, list):
        return None

    for spec in specs:
        if not isinstance(spec, Mapping):
            continue
        spec_name = spec.get("name")
        if isinstance(spec_name, str) and spec_name.strip().lower() == wanted:
            return spec.get("value")
    return None


def as_number(value: Any) -> Optional[float]:
    """
    Converts 599.99, "599.99", "$1,402.58", "From $499.99" to float.
    Returns None if not parseable.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return None
    # a leading minus counts only when not glued to a word ("X-300")
    m = re.search(r"((?<![\w.])-)?(\d[\d,]*\.?\d*)", value)
    if not m:
        return None
    try:
        return float((m.group(1) or "") + m.group(2).replace(",", ""))
    except ValueError:
        return None


def normalize_currency(value: Any, currency: Any = None) -> Tuple[Optional[float], str]:
    """
    Returns (amount, currency). Amount is None for non-numeric input;
    currency defaults to USD.
    """
    code = currency.strip().upper() if isinstance(currency, str) and currency.strip() else DEFAULT_CURRENCY
    return as_number(value), code


def _parse_date(s: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    return None


def normalize_date(value: Any) -> Optional[str]:
    """
    ISO-8601 string when the input parses, the original string when it does
    not, None when the input is not a non-empty string.
    Naive values are taken as UTC.
    """
    if not isinstance(value, str) or not value.strip():
        return None

    s = value.strip()
    parsed = _parse_date(s)
    if parsed is None:
        m = _REVIEWED_ON.search(s)
        if m:
            parsed = _parse_date(m.group(1).strip())

    if parsed is None:
        return value

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.isoformat()
