from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence, Union

from deckfill.core import tokens
from deckfill.core.archive.package import Archive, SlidePart, open_archive
from deckfill.core.config import DEFAULT_CONFIG, EngineConfig
from deckfill.core.discover.catalogue import Placeholder, discover_placeholders
from deckfill.core.errors import (
    ArchiveOpenError,
    MediaDecodeError,
    PartParseError,
    RelationshipUnresolved,
    SerializationError,
)
from deckfill.core.fill import rels
from deckfill.core.fill.media import ImagePayload, check_payload, decode_data_uri
from deckfill.core.fill.splice import apply_text_replacements
from deckfill.core.fill.values import ReplacementValue, ValueLike
from deckfill.core.xml.part import XmlPart

logger = logging.getLogger(__name__)

# Characters XML 1.0 cannot carry (C0 controls other than tab, LF, CR; lone
# surrogates; U+FFFE and U+FFFF).
_XML_INVALID = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


class ExportState(enum.Enum):
    IDLE = "idle"
    LOADED = "loaded"
    PATCHING = "patching"
    REPACKAGED = "repackaged"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class Skip:
    placeholder_id: str
    key: str
    slide_index: Optional[int]
    reason: str
    detail: str = ""


@dataclass
class PatchReport:
    applied: list[str] = field(default_factory=list)
    skipped: list[Skip] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    media_parts: list[str] = field(default_factory=list)

    def skip(self, ph: Placeholder, reason: str, detail: str = "") -> None:
        logger.warning("%s %s skipped: %s %s", ph.slide_label, ph.token, reason, detail)
        self.skipped.append(Skip(ph.id, ph.key, ph.slide_index, reason, detail))

    @property
    def ok(self) -> bool:
        return not self.skipped


@dataclass
class ExportResult:
    data: bytes
    report: PatchReport


Resolved = Union[str, ImagePayload]


class PatchOrchestrator:
    """Drive one export: fresh archive -> per-slide patch -> repackage.

    Every call starts from the original bytes it is given, so exporting the
    same deck twice with the same values yields identical output. Only
    archive-open and serialization failures propagate; anything that goes
    wrong for a single slide or placeholder ends up in the report.
    """

    def __init__(self, config: EngineConfig = DEFAULT_CONFIG) -> None:
        self.config = config
        self.state = ExportState.IDLE

    def export(
        self,
        original: bytes,
        values: Mapping[str, ValueLike],
        *,
        placeholders: Optional[Sequence[Placeholder]] = None,
    ) -> ExportResult:
        self.state = ExportState.IDLE
        report = PatchReport()
        try:
            archive = open_archive(original, config=self.config)
        except ArchiveOpenError:
            self.state = ExportState.FAILED
            raise
        self.state = ExportState.LOADED

        if placeholders is None:
            placeholders, _ = discover_placeholders(archive)
        by_id = {ph.id: ph for ph in placeholders}

        # Resolve the value map against the catalogue, in caller order.
        per_slide: dict[int, list[tuple[Placeholder, Resolved]]] = {}
        for pid, value in values.items():
            ph = by_id.get(pid)
            if ph is None:
                logger.warning("no placeholder with id %s", pid)
                report.skipped.append(Skip(pid, "", None, "unknown_placeholder", "id not in catalogue"))
                continue
            resolved = self._resolve_value(ph, value, report)
            if resolved is not None:
                per_slide.setdefault(ph.slide_index, []).append((ph, resolved))

        self.state = ExportState.PATCHING
        media_owners: dict[str, Placeholder] = {}
        for slide in archive.slide_parts():
            self._patch_slide(archive, slide, per_slide.get(slide.index, []), media_owners, report)

        # Entries whose slide index matches no slide part in this archive.
        known = {s.index for s in archive.slide_parts()}
        for index, items in per_slide.items():
            if index not in known:
                for ph, _ in items:
                    report.skip(ph, "token_not_found", f"deck has no slide {index + 1}")

        try:
            data = archive.to_bytes()
        except SerializationError:
            self.state = ExportState.FAILED
            raise
        self.state = ExportState.REPACKAGED

        report.media_parts = sorted(set(report.media_parts))
        logger.info(
            "export finished: %d applied, %d skipped, %d part(s) changed",
            len(report.applied),
            len(report.skipped),
            len(archive.replaced),
        )
        self.state = ExportState.DONE
        return ExportResult(data=data, report=report)

    # -- values -------------------------------------------------------------

    def _resolve_value(self, ph: Placeholder, value: object, report: PatchReport) -> Optional[Resolved]:
        if isinstance(value, ReplacementValue):
            if value.kind != ph.kind:
                report.skip(ph, "kind_mismatch", f"value is {value.kind}, placeholder is {ph.kind}")
                return None
            value = value.payload

        if ph.kind == tokens.TEXT:
            if not isinstance(value, str):
                report.skip(ph, "unsupported_value", f"text placeholder got {type(value).__name__}")
                return None
            if tokens.contains_token(value):
                report.skip(ph, "value_contains_token", "replacement text contains a {{...}} token")
                return None
            bad = _XML_INVALID.search(value)
            if bad:
                report.skip(ph, "invalid_text", f"character U+{ord(bad.group()):04X} cannot be stored in XML")
                return None
            return value

        try:
            if isinstance(value, ImagePayload):
                check_payload(value, config=self.config)
                return value
            if isinstance(value, str):
                return decode_data_uri(value, config=self.config)
        except MediaDecodeError as e:
            report.skip(ph, "media_decode_error", str(e))
            return None
        report.skip(ph, "unsupported_value", f"image placeholder got {type(value).__name__}")
        return None

    # -- per slide ----------------------------------------------------------

    def _patch_slide(
        self,
        archive: Archive,
        slide: SlidePart,
        items: list[tuple[Placeholder, Resolved]],
        media_owners: dict[str, Placeholder],
        report: PatchReport,
    ) -> None:
        try:
            part = XmlPart.parse(slide.name, archive.read(slide.name))
        except PartParseError as e:
            # Keep the original bytes for a slide we cannot parse.
            for ph, _ in items:
                report.skip(ph, "part_parse_error", str(e))
            if not items:
                logger.warning("%s: %s; left unchanged", slide.label, e)
            return

        text_items = [(ph, v) for ph, v in items if ph.kind == tokens.TEXT]
        image_items = [(ph, v) for ph, v in items if ph.kind == tokens.IMAGE]

        counts = apply_text_replacements(part, {ph.key: text for ph, text in text_items})
        for ph, _ in text_items:
            if counts.get(ph.key):
                report.applied.append(ph.id)
            else:
                report.skip(ph, "token_not_found", "token not present in slide run text")

        media_writes: dict[str, tuple[Placeholder, ImagePayload]] = {}
        for ph, payload in image_items:
            self._apply_image(archive, slide, part, ph, payload, media_writes, media_owners, report)  # type: ignore[arg-type]

        archive.write(slide.name, part.to_bytes())
        for media, (ph, payload) in media_writes.items():
            archive.write(media, payload.data)
        logger.debug("%s: patched (%d text, %d image)", slide.label, len(text_items), len(image_items))

    def _apply_image(
        self,
        archive: Archive,
        slide: SlidePart,
        part: XmlPart,
        ph: Placeholder,
        payload: ImagePayload,
        media_writes: dict[str, tuple[Placeholder, ImagePayload]],
        media_owners: dict[str, Placeholder],
        report: PatchReport,
    ) -> None:
        shapes = rels.find_image_shapes(part, ph.key)
        if not shapes:
            report.skip(ph, "relationship_unresolved", "no shape metadata carries the token")
            return

        hit = False
        for node in shapes:
            try:
                media = rels.resolve_media_part(
                    part, node, archive, slide.name, max_depth=self.config.max_ascent_depth
                )
            except RelationshipUnresolved as e:
                report.skip(ph, "relationship_unresolved", f"{rels.shape_label(part, node)}: {e.reason}")
                continue

            # Owners are tracked across every slide of the export.
            prior = media_owners.get(media)
            if prior is not None and prior.id != ph.id:
                msg = (
                    f"{media} is shared by {prior.token} ({prior.slide_label}) and "
                    f"{ph.token} ({ph.slide_label}); last value wins"
                )
                logger.warning(msg)
                report.warnings.append(msg)
            media_owners[media] = ph
            media_writes[media] = (ph, payload)
            report.media_parts.append(media)
            self._warn_format(media, payload, report)
            hit = True

        if hit:
            report.applied.append(ph.id)

    def _warn_format(self, media: str, payload: ImagePayload, report: PatchReport) -> None:
        ext = media.rsplit(".", 1)[-1].lower() if "." in media else ""
        sub = payload.media_type.split("/", 1)[-1].lower()
        same = {ext, sub} <= {"jpg", "jpeg"} or ext == sub
        if ext and not same:
            msg = f"{media}: payload is {payload.media_type} but the part is .{ext}"
            logger.warning(msg)
            report.warnings.append(msg)


def apply_placeholders(
    original: bytes,
    values: Mapping[str, ValueLike],
    *,
    placeholders: Optional[Sequence[Placeholder]] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> ExportResult:
    return PatchOrchestrator(config).export(original, values, placeholders=placeholders)
