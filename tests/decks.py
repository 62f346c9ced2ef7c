"""
Deck builders for the deckfill test suite.

Decks are built in memory as zip archives from hand-written slide XML so a
test controls exactly how text is split into runs and how pictures are
linked. `tests/test_pptx_roundtrip.py` additionally uses python-pptx to
produce a deck the way a real authoring tool would.
"""
# ruff: noqa: S101

from __future__ import annotations

import io
import struct
import zipfile
import zlib
from typing import Iterable, Mapping, Optional
from xml.sax.saxutils import escape, quoteattr

from PIL import Image

A_NS = "http://schemas.openxmlformats.org/drawingml/2006/main"
P_NS = "http://schemas.openxmlformats.org/presentationml/2006/main"
R_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PKG_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
IMAGE_REL = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/image"
LAYOUT_REL = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/slideLayout"

CONTENT_TYPES = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="xml" ContentType="application/xml"/>'
    '<Default Extension="png" ContentType="image/png"/>'
    '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    "</Types>"
)


def _run(text: str) -> str:
    return f'<a:r><a:rPr lang="en-US" dirty="0"/><a:t>{escape(text)}</a:t></a:r>'


def text_shape(runs: Iterable[str], *, shape_id: int = 2, name: str = "TextBox 1", descr: str = "") -> str:
    descr_attr = f" descr={quoteattr(descr)}" if descr else ""
    body = "".join(_run(t) for t in runs)
    return (
        "<p:sp>"
        f"<p:nvSpPr><p:cNvPr id=\"{shape_id}\" name={quoteattr(name)}{descr_attr}/><p:cNvSpPr txBox=\"1\"/><p:nvPr/></p:nvSpPr>"
        "<p:spPr/>"
        f"<p:txBody><a:bodyPr/><a:lstStyle/><a:p>{body}</a:p></p:txBody>"
        "</p:sp>"
    )


def pic_shape(*, rid: Optional[str], shape_id: int = 3, name: str = "Picture 1", descr: str = "") -> str:
    descr_attr = f" descr={quoteattr(descr)}" if descr else ""
    embed = f' r:embed="{rid}"' if rid else ""
    return (
        "<p:pic>"
        f"<p:nvPicPr><p:cNvPr id=\"{shape_id}\" name={quoteattr(name)}{descr_attr}/><p:cNvPicPr/><p:nvPr/></p:nvPicPr>"
        f"<p:blipFill><a:blip{embed}/><a:stretch><a:fillRect/></a:stretch></p:blipFill>"
        '<p:spPr><a:prstGeom prst="rect"><a:avLst/></a:prstGeom></p:spPr>'
        "</p:pic>"
    )


def slide_xml(*shapes: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        f'<p:sld xmlns:a="{A_NS}" xmlns:r="{R_NS}" xmlns:p="{P_NS}">'
        "<p:cSld><p:spTree>"
        '<p:nvGrpSpPr><p:cNvPr id="1" name=""/><p:cNvGrpSpPr/><p:nvPr/></p:nvGrpSpPr>'
        "<p:grpSpPr/>"
        + "".join(shapes)
        + "</p:spTree></p:cSld></p:sld>"
    )


def rels_xml(entries: Mapping[str, str], *, rel_type: str = IMAGE_REL) -> str:
    rows = "".join(
        f'<Relationship Id="{rid}" Type="{rel_type}" Target={quoteattr(target)}/>'
        for rid, target in entries.items()
    )
    rows += f'<Relationship Id="rIdLayout" Type="{LAYOUT_REL}" Target="../slideLayouts/slideLayout1.xml"/>'
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        f'<Relationships xmlns="{PKG_REL_NS}">{rows}</Relationships>'
    )


def make_deck(
    slides: Mapping[int, str],
    *,
    rels: Optional[Mapping[int, str]] = None,
    media: Optional[Mapping[str, bytes]] = None,
    order: Optional[Iterable[int]] = None,
) -> bytes:
    """Zip up slide XML keyed by slide number (ppt/slides/slide<N>.xml)."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as z:
        z.writestr("[Content_Types].xml", CONTENT_TYPES)
        for n in order if order is not None else slides:
            z.writestr(f"ppt/slides/slide{n}.xml", slides[n])
        for n, xml in (rels or {}).items():
            z.writestr(f"ppt/slides/_rels/slide{n}.xml.rels", xml)
        for name, data in (media or {}).items():
            z.writestr(name, data)
    return buf.getvalue()


def read_part(deck: bytes, name: str) -> bytes:
    with zipfile.ZipFile(io.BytesIO(deck)) as z:
        return z.read(name)


def all_parts(deck: bytes) -> dict[str, bytes]:
    with zipfile.ZipFile(io.BytesIO(deck)) as z:
        return {n: z.read(n) for n in z.namelist()}


def image_bytes(fmt: str = "PNG", color: tuple[int, int, int] = (200, 30, 30), size: tuple[int, int] = (4, 3)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()




def png_header(width: int, height: int) -> bytes:
    """A tiny PNG whose IHDR declares `width` x `height` pixels."""

    def chunk(tag: bytes, body: bytes) -> bytes:
        return struct.pack(">I", len(body)) + tag + body + struct.pack(">I", zlib.crc32(tag + body))

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IDAT", zlib.compress(b"\x00")) + chunk(b"IEND", b"")
