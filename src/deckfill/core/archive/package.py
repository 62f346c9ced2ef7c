from __future__ import annotations

import io
import logging
import re
import zipfile
from dataclasses import dataclass

from deckfill.core.config import DEFAULT_CONFIG, EngineConfig
from deckfill.core.errors import ArchiveOpenError, SerializationError

logger = logging.getLogger(__name__)

# ppt/slides/slide12.xml (the directory prefix varies between producers)
_SLIDE_RE = re.compile(r"(?:^|/)slides/slide(\d+)\.xml$")


@dataclass(frozen=True)
class SlidePart:
    index: int  # 0-based position in numeric order
    number: int  # N from slide<N>.xml
    name: str

    @property
    def label(self) -> str:
        return f"Slide {self.index + 1}"


def slide_number(name: str) -> int | None:
    m = _SLIDE_RE.search(name)
    if not m:
        return None
    return int(m.group(1))


class Archive:
    """In-memory copy of a zip package with named-part read/replace.

    Entries keep their original ``ZipInfo`` (order, compression, timestamps);
    only the bytes of replaced parts change on serialization.
    """

    def __init__(self, infos: list[zipfile.ZipInfo], parts: dict[str, bytes]) -> None:
        self._infos = infos
        self._parts = parts
        self._replaced: set[str] = set()

    def names(self) -> list[str]:
        return [i.filename for i in self._infos]

    def has(self, name: str) -> bool:
        return name in self._parts

    def read(self, name: str) -> bytes:
        try:
            return self._parts[name]
        except KeyError:
            raise KeyError(f"part not found in archive: {name}") from None

    def write(self, name: str, data: bytes) -> None:
        if name not in self._parts:
            raise KeyError(f"cannot replace missing part: {name}")
        if self._parts[name] != data:
            self._replaced.add(name)
        self._parts[name] = data

    @property
    def replaced(self) -> list[str]:
        """Names of parts whose bytes differ from the input."""
        return sorted(self._replaced)

    def slide_parts(self) -> list[SlidePart]:
        numbered: list[tuple[int, str]] = []
        for name in self._parts:
            n = slide_number(name)
            if n is not None:
                numbered.append((n, name))
        # Numeric order: slide2 before slide10.
        numbered.sort()
        return [SlidePart(index=i, number=n, name=name) for i, (n, name) in enumerate(numbered)]

    def to_bytes(self) -> bytes:
        buf = io.BytesIO()
        try:
            with zipfile.ZipFile(buf, "w") as zout:
                for info in self._infos:
                    zout.writestr(info, self._parts[info.filename])
        except (OSError, ValueError, zipfile.LargeZipFile) as e:
            raise SerializationError(f"cannot serialize archive: {e}") from e
        return buf.getvalue()


def open_archive(data: bytes, *, config: EngineConfig = DEFAULT_CONFIG) -> Archive:
    """Open a zip byte buffer. Raises ArchiveOpenError for anything unreadable."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise ArchiveOpenError(f"expected bytes, got {type(data).__name__}")
    data = bytes(data)
    if len(data) > config.max_archive_bytes:
        raise ArchiveOpenError(
            f"archive is {len(data)} bytes, limit is {config.max_archive_bytes}"
        )

    try:
        with zipfile.ZipFile(io.BytesIO(data), "r") as zin:
            infos: list[zipfile.ZipInfo] = []
            parts: dict[str, bytes] = {}
            for info in zin.infolist():
                if info.filename in parts:
                    logger.warning("duplicate archive entry ignored: %s", info.filename)
                    continue
                infos.append(info)
                parts[info.filename] = zin.read(info)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, EOFError, NotImplementedError) as e:
        raise ArchiveOpenError(f"not a readable zip archive: {e}") from e

    logger.debug("opened archive with %d parts", len(parts))
    return Archive(infos, parts)
