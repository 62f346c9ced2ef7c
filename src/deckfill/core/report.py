"""
report.py: summaries of a catalogue and of one export.

catalogue.json:
  schema_version, document {filename, slide_count, demo, degraded_slides},
  placeholders [{id, key, kind, slide_index, slide_label}]

report.json:
  summary: total / filled / pending / completion_pct plus per-slide counts.
  applied: placeholder ids written into the deck.
  skipped: {placeholder_id, key, slide_index, reason, detail} for every value
           that could not be applied.
  warnings, media_parts.
"""
from __future__ import annotations

import dataclasses
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

import orjson

from deckfill.core.discover.catalogue import Document, Placeholder, fill_status, group_by_slide
from deckfill.core.fill.patch import ExportResult


def completion_summary(placeholders: Sequence[Placeholder], values: Mapping[str, object]) -> dict[str, Any]:
    total = len(placeholders)
    filled = sum(1 for ph in placeholders if fill_status(ph, values) == "filled")
    slides: list[dict[str, Any]] = []
    for index, group in group_by_slide(placeholders).items():
        slides.append(
            {
                "slide_index": index,
                "slide_label": group[0].slide_label,
                "filled": sum(1 for ph in group if fill_status(ph, values) == "filled"),
                "total": len(group),
            }
        )
    return {
        "total": total,
        "filled": filled,
        "pending": total - filled,
        "completion_pct": round(filled / total * 100) if total else 0,
        "slides": slides,
    }


def catalogue_to_dict(document: Document) -> dict[str, Any]:
    return {
        "schema_version": "0.1",
        "document": {
            "filename": document.filename,
            "slide_count": document.slide_count,
            "demo": document.demo,
            "degraded_slides": list(document.degraded_slides),
        },
        "placeholders": [dataclasses.asdict(ph) for ph in document.placeholders],
    }


def build_report(
    result: ExportResult,
    placeholders: Sequence[Placeholder],
    values: Mapping[str, object],
    *,
    filename: str,
    output: Optional[str] = None,
) -> dict[str, Any]:
    doc: dict[str, Any] = {"filename": filename}
    if output:
        doc["output"] = output
    rep = result.report
    return {
        "schema_version": "0.1",
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "document": doc,
        "summary": completion_summary(placeholders, values),
        "applied": list(rep.applied),
        "skipped": [dataclasses.asdict(s) for s in rep.skipped],
        "warnings": list(rep.warnings),
        "media_parts": list(rep.media_parts),
    }


def write_json(data: dict[str, Any], out_path: Path) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(orjson.dumps(data, option=orjson.OPT_INDENT_2))


def write_report(
    result: ExportResult,
    placeholders: Sequence[Placeholder],
    values: Mapping[str, object],
    out_path: Path,
    *,
    filename: str,
    output: Optional[str] = None,
) -> dict[str, Any]:
    report = build_report(result, placeholders, values, filename=filename, output=output)
    write_json(report, out_path)
    return report
