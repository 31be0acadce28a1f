"""State/store layer.

This package owns the live map's shared state: the current feed snapshot,
the last poll error and the viewer position.  Readers go through accessors
or subscriptions; only designated writers may change it.
"""
