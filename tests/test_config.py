# ruff: noqa: S101
from __future__ import annotations

import pytest

from deckfill.core.config import DEFAULT_CONFIG, EngineConfig


def test_defaults():
    assert DEFAULT_CONFIG.max_archive_bytes == 50 * 1024 * 1024
    assert DEFAULT_CONFIG.max_image_bytes == 5 * 1024 * 1024
    assert DEFAULT_CONFIG.seed_demo is True


def test_from_env(monkeypatch):
    monkeypatch.setenv("DECKFILL_MAX_ARCHIVE_MB", "2")
    monkeypatch.setenv("DECKFILL_MAX_IMAGE_MB", "1")
    monkeypatch.setenv("DECKFILL_SEED_DEMO", "off")
    monkeypatch.delenv("DECKFILL_MAX_ASCENT_DEPTH", raising=False)
    cfg = EngineConfig.from_env()
    assert cfg.max_archive_bytes == 2 * 1024 * 1024
    assert cfg.max_image_bytes == 1024 * 1024
    assert cfg.max_ascent_depth == 4
    assert cfg.seed_demo is False


def test_bad_env_value(monkeypatch):
    monkeypatch.setenv("DECKFILL_MAX_IMAGE_MB", "five")
    with pytest.raises(ValueError, match="DECKFILL_MAX_IMAGE_MB"):
        EngineConfig.from_env()


def test_with_overrides_ignores_none():
    cfg = DEFAULT_CONFIG.with_overrides(max_image_bytes=None, seed_demo=False)
    assert cfg.max_image_bytes == DEFAULT_CONFIG.max_image_bytes
    assert cfg.seed_demo is False
