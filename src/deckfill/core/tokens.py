"""Placeholder token grammar.

A token is ``{{<key>}}``. The key runs up to the next ``}}`` (across line
breaks), must be non-empty and may not itself contain ``{{``; for input like
``{{ {{x}}`` the innermost ``{{x}}`` is the token. Keys starting with ``image:`` name image
placeholders, every other key is a text placeholder.
"""

from __future__ import annotations

import re
from typing import Literal

Kind = Literal["text", "image"]

TEXT: Kind = "text"
IMAGE: Kind = "image"
IMAGE_PREFIX = "image:"

OPEN = "{{"
CLOSE = "}}"

TOKEN_RE = re.compile(r"\{\{((?:(?!\{\{|\}\}).)+)\}\}", re.DOTALL)


def find_tokens(text: str) -> list[str]:
    """Return every key found in `text`, in order of appearance (duplicates kept)."""
    if not text:
        return []
    return [m.group(1) for m in TOKEN_RE.finditer(text)]


def classify(key: str) -> Kind:
    return IMAGE if key.startswith(IMAGE_PREFIX) else TEXT


def token_for(key: str) -> str:
    return f"{OPEN}{key}{CLOSE}"


def contains_token(text: str) -> bool:
    return bool(text) and TOKEN_RE.search(text) is not None
