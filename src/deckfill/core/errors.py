from __future__ import annotations


class DeckfillError(Exception):
    """Base class for all errors raised by deckfill."""


class ArchiveOpenError(DeckfillError):
    """The input is not a readable zip archive (fatal for the whole load)."""


class SerializationError(DeckfillError):
    """The patched archive could not be written back to bytes (fatal)."""


class PartParseError(DeckfillError):
    """One XML part is malformed. Recovered locally by callers."""

    def __init__(self, part_name: str, detail: str = "") -> None:
        self.part_name = part_name
        self.detail = detail
        msg = f"cannot parse XML part {part_name}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class RelationshipUnresolved(DeckfillError):
    """An image shape could not be followed to a media part."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class MediaDecodeError(DeckfillError):
    """An image payload is malformed or not an acceptable image."""
