"""Decks authored with python-pptx survive a fill and reopen cleanly."""
# ruff: noqa: S101

from __future__ import annotations

import io

from pptx import Presentation
from pptx.shapes.picture import Picture
from pptx.util import Inches

from deckfill.core.discover import load_document
from deckfill.core.fill import ImagePayload, apply_placeholders

from decks import image_bytes


def _authored_deck(logo: bytes) -> bytes:
    prs = Presentation()
    for _ in range(2):
        prs.slides.add_slide(prs.slide_layouts[6])
    first, second = prs.slides

    tb = first.shapes.add_textbox(Inches(1), Inches(1), Inches(6), Inches(1))
    para = tb.text_frame.paragraphs[0]
    head = para.add_run()
    head.text = "Hello {{ti"
    head.font.bold = True
    tail = para.add_run()
    tail.text = "tle}}"
    tail.font.italic = True

    pic = first.shapes.add_picture(io.BytesIO(logo), Inches(1), Inches(3))
    pic._element.nvPicPr.cNvPr.set("descr", "{{image:logo}}")

    second.shapes.add_textbox(Inches(1), Inches(1), Inches(4), Inches(1)).text_frame.text = "{{footer}}"

    buf = io.BytesIO()
    prs.save(buf)
    return buf.getvalue()


def test_python_pptx_deck_is_filled_and_reopens():
    logo = image_bytes("PNG", color=(0, 0, 255), size=(8, 8))
    replacement = image_bytes("PNG", color=(0, 255, 0), size=(6, 6))
    deck = _authored_deck(logo)

    doc = load_document(deck)
    assert [(p.key, p.kind, p.slide_index) for p in doc.placeholders] == [
        ("title", "text", 0),
        ("image:logo", "image", 0),
        ("footer", "text", 1),
    ]
    ids = {p.key: p.id for p in doc.placeholders}

    result = apply_placeholders(
        deck,
        {ids["title"]: "World", ids["image:logo"]: ImagePayload("image/png", replacement), ids["footer"]: "p. 2"},
    )
    assert result.report.skipped == []

    prs = Presentation(io.BytesIO(result.data))
    first, second = prs.slides
    tb = next(s for s in first.shapes if s.has_text_frame)
    runs = tb.text_frame.paragraphs[0].runs
    assert [r.text for r in runs] == ["Hello World", ""]
    assert runs[0].font.bold is True
    assert runs[1].font.italic is True

    pic = next(s for s in first.shapes if isinstance(s, Picture))
    assert pic.image.blob == replacement
    assert second.shapes[0].text_frame.text == "p. 2"
