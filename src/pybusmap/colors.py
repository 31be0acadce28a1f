"""Deterministic per-route marker colors.

The hash reproduces the JavaScript string hash used by existing map
front-ends that share the same feed, so a route keeps the same color
whichever client draws it:

    hash = code + ((hash << 5) - hash)

``code`` iterates UTF-16 code units (identical to code points for
characters in the Basic Multilingual Plane) and ``<<`` applies 32-bit
signed wraparound to its operand and result.  The accumulator itself is
not wrapped, matching the reference behaviour exactly.
"""

from __future__ import annotations

import functools

HUE_RANGE = 360
SATURATION_PCT = 100
LIGHTNESS_PCT = 50


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _utf16_code_units(text: str) -> list[int]:
    encoded = text.encode("utf-16-le", errors="surrogatepass")
    return [int.from_bytes(encoded[i : i + 2], "little") for i in range(0, len(encoded), 2)]


def route_hash(route_id: str) -> int:
    """Return the (possibly negative) integer hash of *route_id*."""
    value = 0
    for code in _utf16_code_units(route_id):
        value = code + (_to_int32(_to_int32(value) << 5) - value)
    return value


def route_hue(route_id: str) -> int:
    """Return the hue for *route_id*, normalized into ``[0, 360)``.

    Python's ``%`` already takes the sign of the divisor, which is the same
    as ``((hash % 360) + 360) % 360`` in a truncating-modulo language.
    """
    return route_hash(route_id) % HUE_RANGE


@functools.lru_cache(maxsize=1024)
def color_for_route(route_id: str) -> str:
    """Return the CSS color token for *route_id*, e.g. ``hsl(355, 100%, 50%)``."""
    return f"hsl({route_hue(route_id)}, {SATURATION_PCT}%, {LIGHTNESS_PCT}%)"
