from __future__ import annotations

from typing import Optional

from lxml import etree

from deckfill.core.errors import PartParseError

_PARSER_OPTS = dict(resolve_entities=False, no_network=True, remove_blank_text=False)


def _local(tag: str) -> str:
    # "{ns}name" -> "name"
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


class XmlPart:
    """One parsed XML part of the package.

    Elements are held in an arena in document order and addressed by their
    integer index; parent links are indices into the same arena. All lookups
    match on local names only, since producers disagree on prefixes.

    ``to_bytes()`` hands back the original bytes until something is written,
    so untouched parts survive a round trip byte-for-byte.
    """

    def __init__(self, name: str, data: bytes, root: etree._Element) -> None:
        self.name = name
        self._data = data
        self._root = root
        self._nodes: list[etree._Element] = []
        self._parents: list[int] = []
        self._dirty = False

        slot: dict[etree._Element, int] = {}
        for el in root.iter(tag=etree.Element):
            slot[el] = len(self._nodes)
            self._nodes.append(el)
            parent = el.getparent()
            self._parents.append(slot[parent] if parent is not None else -1)

    @classmethod
    def parse(cls, name: str, data: bytes) -> "XmlPart":
        parser = etree.XMLParser(**_PARSER_OPTS)
        try:
            root = etree.fromstring(data, parser=parser)
        except (etree.XMLSyntaxError, ValueError) as e:
            raise PartParseError(name, str(e)) from e
        if root is None:
            raise PartParseError(name, "empty document")
        return cls(name, data, root)

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def dirty(self) -> bool:
        return self._dirty

    # -- navigation ---------------------------------------------------------

    def local_name(self, i: int) -> str:
        return _local(self._nodes[i].tag)

    def find_all(self, local_name: str) -> list[int]:
        return [i for i, el in enumerate(self._nodes) if _local(el.tag) == local_name]

    def parent(self, i: int) -> Optional[int]:
        p = self._parents[i]
        return p if p >= 0 else None

    def ancestor(self, i: int, local_name: str, max_depth: int) -> Optional[int]:
        """Nearest ancestor named `local_name` at most `max_depth` levels up."""
        cur = self.parent(i)
        depth = 1
        while cur is not None and depth <= max_depth:
            if self.local_name(cur) == local_name:
                return cur
            cur = self.parent(cur)
            depth += 1
        return None

    def descendants(self, i: int, local_name: str) -> list[int]:
        out: list[int] = []
        # Subtree of i is the contiguous run after i whose ancestry reaches i.
        for j in range(i + 1, len(self._nodes)):
            if not self._is_under(j, i):
                break
            if self.local_name(j) == local_name:
                out.append(j)
        return out

    def _is_under(self, j: int, i: int) -> bool:
        cur = self._parents[j]
        while cur >= 0:
            if cur == i:
                return True
            if cur < i:
                return False
            cur = self._parents[cur]
        return False

    # -- attributes and text ------------------------------------------------

    def _attr_key(self, i: int, local_name: str) -> Optional[str]:
        for key in self._nodes[i].attrib:
            if _local(key) == local_name:
                return key
        return None

    def get_attr(self, i: int, local_name: str) -> Optional[str]:
        key = self._attr_key(i, local_name)
        if key is None:
            return None
        return self._nodes[i].get(key)

    def set_attr(self, i: int, local_name: str, value: str) -> None:
        key = self._attr_key(i, local_name) or local_name
        if self._nodes[i].get(key) == value:
            return
        self._nodes[i].set(key, value)
        self._dirty = True

    def text(self, i: int) -> str:
        return self._nodes[i].text or ""

    def set_text(self, i: int, value: str) -> None:
        if self.text(i) == value:
            return
        self._nodes[i].text = value
        self._dirty = True

    # -- serialization ------------------------------------------------------

    def to_bytes(self) -> bytes:
        if not self._dirty:
            return self._data
        tree = self._root.getroottree()
        info = tree.docinfo
        return etree.tostring(
            tree,
            xml_declaration=True,
            encoding=info.encoding or "UTF-8",
            standalone=info.standalone,
        )
