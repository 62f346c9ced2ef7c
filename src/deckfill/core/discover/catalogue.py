from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from deckfill.core import tokens
from deckfill.core.archive.package import Archive, SlidePart, open_archive
from deckfill.core.config import DEFAULT_CONFIG, EngineConfig
from deckfill.core.errors import PartParseError
from deckfill.core.tokens import Kind
from deckfill.core.xml.part import XmlPart

logger = logging.getLogger(__name__)

# a:t (DrawingML run text) and p:cNvPr (shape identity) by local name
TEXT_LEAF = "t"
SHAPE_IDENTITY = "cNvPr"


@dataclass(frozen=True)
class Placeholder:
    id: str
    key: str
    kind: Kind
    slide_index: int
    slide_label: str

    @property
    def token(self) -> str:
        return tokens.token_for(self.key)


@dataclass
class Document:
    filename: str
    slide_count: int
    placeholders: list[Placeholder]
    degraded_slides: list[int] = field(default_factory=list)
    demo: bool = False


class Catalogue:
    """Ordered, deduplicated placeholder registry for one document."""

    def __init__(self) -> None:
        self._items: list[Placeholder] = []
        self._seen: set[tuple[int, str, str]] = set()

    def register(self, slide: SlidePart, key: str) -> Optional[Placeholder]:
        kind = tokens.classify(key)
        signature = (slide.index, kind, key)
        if signature in self._seen:
            return None
        self._seen.add(signature)
        ph = Placeholder(
            id=f"{kind}-{slide.index}-{len(self._items)}",
            key=key,
            kind=kind,
            slide_index=slide.index,
            slide_label=slide.label,
        )
        self._items.append(ph)
        return ph

    def items(self) -> list[Placeholder]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)


def slide_text(part: XmlPart) -> str:
    # No separator: "{{ti" + "tle}}" must stay one token.
    return "".join(part.text(i) for i in part.find_all(TEXT_LEAF))


def shape_metadata(part: XmlPart, node: int) -> str:
    name = part.get_attr(node, "name") or ""
    descr = part.get_attr(node, "descr") or ""
    return f"{name} {descr}"


def discover_slide(slide: SlidePart, data: bytes, catalogue: Catalogue) -> bool:
    """Register every token on one slide. Returns False when the slide degraded."""
    try:
        part = XmlPart.parse(slide.name, data)
    except PartParseError as e:
        logger.warning("%s: %s; falling back to raw text scan", slide.label, e)
        raw = data.decode("utf-8", errors="replace")
        for key in tokens.find_tokens(raw):
            catalogue.register(slide, key)
        return False

    found = 0
    for key in tokens.find_tokens(slide_text(part)):
        catalogue.register(slide, key)
        found += 1

    for node in part.find_all(SHAPE_IDENTITY):
        for key in tokens.find_tokens(shape_metadata(part, node)):
            catalogue.register(slide, key)
            found += 1

    logger.debug("%s (%s): %d token occurrence(s)", slide.label, slide.name, found)
    return True


def discover_placeholders(archive: Archive) -> tuple[list[Placeholder], list[int]]:
    """Scan every slide part in numeric order.

    Returns (placeholders, degraded slide indices).
    """
    catalogue = Catalogue()
    degraded: list[int] = []
    for slide in archive.slide_parts():
        if not discover_slide(slide, archive.read(slide.name), catalogue):
            degraded.append(slide.index)
    return catalogue.items(), degraded


def demo_catalogue() -> list[Placeholder]:
    """Illustrative catalogue for sessions with no document loaded."""
    return [
        Placeholder(id="demo-text-1", key="title", kind=tokens.TEXT, slide_index=0, slide_label="Slide 1"),
        Placeholder(id="demo-text-2", key="subtitle", kind=tokens.TEXT, slide_index=1, slide_label="Slide 2"),
        Placeholder(id="demo-image-1", key="image:hero", kind=tokens.IMAGE, slide_index=1, slide_label="Slide 2"),
    ]


def load_document(
    data: Optional[bytes],
    *,
    filename: str = "presentation.pptx",
    config: EngineConfig = DEFAULT_CONFIG,
) -> Document:
    """Open a deck and build its placeholder catalogue.

    `data=None` means no document was supplied; only then (and only when
    ``config.seed_demo``) is the demo catalogue returned.
    """
    if data is None:
        placeholders = demo_catalogue() if config.seed_demo else []
        slides = len({p.slide_index for p in placeholders})
        return Document(filename=filename, slide_count=slides, placeholders=placeholders, demo=bool(placeholders))

    archive = open_archive(data, config=config)
    placeholders, degraded = discover_placeholders(archive)
    slide_count = len(archive.slide_parts())
    logger.info("%s: %d slide(s), %d placeholder(s)", filename, slide_count, len(placeholders))
    return Document(
        filename=filename,
        slide_count=slide_count,
        placeholders=placeholders,
        degraded_slides=degraded,
    )


# ---------------------------------------------------------------------------
# Catalogue views
# ---------------------------------------------------------------------------


def fill_status(placeholder: Placeholder, values: Mapping[str, object]) -> str:
    value = values.get(placeholder.id)
    payload = getattr(value, "payload", value)
    if payload is None:
        return "empty"
    if isinstance(payload, (str, bytes)) and not payload:
        return "empty"
    return "filled"


def group_by_slide(placeholders: Iterable[Placeholder]) -> dict[int, list[Placeholder]]:
    grouped: dict[int, list[Placeholder]] = {}
    for ph in placeholders:
        grouped.setdefault(ph.slide_index, []).append(ph)
    return dict(sorted(grouped.items()))


def filter_placeholders(
    placeholders: Iterable[Placeholder],
    *,
    kind: Optional[str] = None,
    status: Optional[str] = None,
    search: str = "",
    values: Optional[Mapping[str, object]] = None,
) -> list[Placeholder]:
    """Select placeholders by kind, fill status and case-insensitive key substring."""
    needle = search.lower()
    vals = values or {}
    out: list[Placeholder] = []
    for ph in placeholders:
        if kind not in (None, "all") and ph.kind != kind:
            continue
        if status not in (None, "all") and fill_status(ph, vals) != status:
            continue
        if needle and needle not in ph.key.lower():
            continue
        out.append(ph)
    return out
