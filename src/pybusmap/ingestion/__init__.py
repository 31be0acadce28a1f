"""Ingestion layer.

This package turns raw feed payloads into typed, validated vehicle
observations.  Malformed entities are dropped here so nothing downstream
has to re-check them.
"""

__all__: list[str] = []
