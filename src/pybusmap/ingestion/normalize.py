"""Normalization helpers.

Centralizes tolerant coercion of loosely-typed feed values.
"""

from __future__ import annotations

import math
from typing import Any


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    """Return a stripped, non-empty string or ``None``.

    Numbers are accepted (feeds sometimes send numeric ids); containers are not.
    """
    if value is None or isinstance(value, (bool, dict, list)):
        return None
    text = str(value).strip()
    return text if text else None


def safe_mapping(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None
