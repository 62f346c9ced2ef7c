"""deckfill: find {{placeholder}} tokens in PPTX decks and fill them in place."""

from __future__ import annotations

__version__ = "0.1.0"
