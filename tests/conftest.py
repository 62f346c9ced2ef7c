"""Shared fixtures for the deckfill test suite (deck builders live in decks.py)."""
# ruff: noqa: S101

from __future__ import annotations

import pytest

from decks import image_bytes, make_deck, pic_shape, rels_xml, slide_xml, text_shape


@pytest.fixture
def png_bytes() -> bytes:
    return image_bytes("PNG")


@pytest.fixture
def old_png() -> bytes:
    return image_bytes("PNG", color=(0, 0, 0), size=(2, 2))


@pytest.fixture
def hero_deck(old_png: bytes) -> bytes:
    """Slide 1: split title token + hero picture; slide 2: subtitle."""
    s1 = slide_xml(
        text_shape(["Intro: ", "{{ti", "tle}}", "!"]),
        pic_shape(rid="rId2", descr="{{image:hero}}"),
    )
    s2 = slide_xml(text_shape(["{{subtitle}}"], name="Subtitle 2"))
    return make_deck(
        {1: s1, 2: s2},
        rels={1: rels_xml({"rId2": "../media/image1.png"})},
        media={"ppt/media/image1.png": old_png},
    )
