"""Template fill: text splicing, image swaps and the export orchestrator.

Public API:
- `apply_placeholders(original, values, *, placeholders, config)`
- `PatchOrchestrator(config).export(original, values, *, placeholders)`
"""

from __future__ import annotations

from .media import ImagePayload, decode_data_uri, encode_data_uri
from .patch import ExportResult, ExportState, PatchOrchestrator, PatchReport, Skip, apply_placeholders
from .values import ReplacementValue, load_values

__all__ = [
    "ExportResult",
    "ExportState",
    "ImagePayload",
    "PatchOrchestrator",
    "PatchReport",
    "ReplacementValue",
    "Skip",
    "apply_placeholders",
    "decode_data_uri",
    "encode_data_uri",
    "load_values",
]
