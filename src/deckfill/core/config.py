from __future__ import annotations

import os
from dataclasses import dataclass, replace

_MIB = 1024 * 1024


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class EngineConfig:
    """Runtime limits shared by discovery and export.

    Defaults follow the upload limits of the editor this engine backs:
    decks up to 50 MiB, images up to 5 MiB.
    """

    max_archive_bytes: int = 50 * _MIB
    max_image_bytes: int = 5 * _MIB
    # p:cNvPr -> p:nvPicPr -> p:pic is two steps; leave headroom for wrappers.
    max_ascent_depth: int = 4
    seed_demo: bool = True

    @classmethod
    def from_env(cls) -> "EngineConfig":
        base = cls()
        return cls(
            max_archive_bytes=_env_int("DECKFILL_MAX_ARCHIVE_MB", base.max_archive_bytes // _MIB) * _MIB,
            max_image_bytes=_env_int("DECKFILL_MAX_IMAGE_MB", base.max_image_bytes // _MIB) * _MIB,
            max_ascent_depth=_env_int("DECKFILL_MAX_ASCENT_DEPTH", base.max_ascent_depth),
            seed_demo=_env_bool("DECKFILL_SEED_DEMO", base.seed_demo),
        )

    def with_overrides(self, **changes: object) -> "EngineConfig":
        """Return a copy with the non-None values of `changes` applied."""
        kept = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **kept)


DEFAULT_CONFIG = EngineConfig()
