"""Placeholder discovery package.

Scans the slide parts of a deck for ``{{key}}`` tokens in run text and shape
metadata and returns a deduplicated catalogue.

Public API:
- `load_document(data, *, filename, config)`
- `discover_placeholders(archive)`

Keep this module as a thin re-export layer so callers can import a stable path:

    from deckfill.core.discover import load_document
"""

from __future__ import annotations

from .catalogue import (
    Catalogue,
    Document,
    Placeholder,
    demo_catalogue,
    discover_placeholders,
    discover_slide,
    fill_status,
    filter_placeholders,
    group_by_slide,
    load_document,
)

__all__ = [
    "Catalogue",
    "Document",
    "Placeholder",
    "demo_catalogue",
    "discover_placeholders",
    "discover_slide",
    "fill_status",
    "filter_placeholders",
    "group_by_slide",
    "load_document",
]
