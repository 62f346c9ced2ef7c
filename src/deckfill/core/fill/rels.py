from __future__ import annotations

import posixpath
from dataclasses import dataclass
from typing import Optional

from pptx.opc.constants import RELATIONSHIP_TARGET_MODE as RTM
from pptx.opc.constants import RELATIONSHIP_TYPE as RT

from deckfill.core import tokens
from deckfill.core.archive.package import Archive
from deckfill.core.errors import PartParseError, RelationshipUnresolved
from deckfill.core.xml.part import XmlPart

SHAPE_IDENTITY = "cNvPr"
PICTURE = "pic"
BLIP = "blip"


@dataclass(frozen=True)
class RelationshipEntry:
    id: str
    target: str
    slide_part_path: str
    type: str = ""
    target_mode: str = RTM.INTERNAL

    @property
    def is_external(self) -> bool:
        return self.target_mode == RTM.EXTERNAL


def rels_part_name(slide_name: str) -> str:
    """ppt/slides/slide1.xml -> ppt/slides/_rels/slide1.xml.rels"""
    folder, base = posixpath.split(slide_name)
    return posixpath.join(folder, "_rels", f"{base}.rels")


def load_relationships(archive: Archive, slide_name: str) -> dict[str, RelationshipEntry]:
    """Read the slide's relationship part fresh from `archive` (never cached)."""
    name = rels_part_name(slide_name)
    if not archive.has(name):
        raise RelationshipUnresolved(f"no relationship part {name}")
    try:
        rels = XmlPart.parse(name, archive.read(name))
    except PartParseError as e:
        raise RelationshipUnresolved(f"relationship part unreadable: {e}") from e

    out: dict[str, RelationshipEntry] = {}
    for node in rels.find_all("Relationship"):
        rid = rels.get_attr(node, "Id")
        if not rid:
            continue
        out[rid] = RelationshipEntry(
            id=rid,
            target=rels.get_attr(node, "Target") or "",
            slide_part_path=slide_name,
            type=rels.get_attr(node, "Type") or "",
            target_mode=rels.get_attr(node, "TargetMode") or RTM.INTERNAL,
        )
    return out


def normalize_target(target: str, slide_name: str) -> str:
    """Resolve a relationship Target to an archive part name.

    - ``../x``    -> relative to the parent of the slides directory
    - ``media/x`` -> under the parts root (the slides directory's parent)
    - ``/x``      -> archive-root relative, leading separator stripped
    - otherwise   -> relative to the slides directory itself
    """
    slides_dir = posixpath.dirname(slide_name)
    parts_root = posixpath.dirname(slides_dir)

    if target.startswith("../"):
        joined = posixpath.join(parts_root, target[3:])
    elif target.startswith("media/"):
        joined = posixpath.join(parts_root, target)
    elif target.startswith("/"):
        joined = target.lstrip("/")
    else:
        joined = posixpath.join(slides_dir, target)
    return posixpath.normpath(joined).lstrip("/")


def find_image_shapes(part: XmlPart, key: str) -> list[int]:
    """Shape-identity nodes whose name/descr carries ``{{key}}``."""
    out: list[int] = []
    for node in part.find_all(SHAPE_IDENTITY):
        meta = f"{part.get_attr(node, 'name') or ''} {part.get_attr(node, 'descr') or ''}"
        if key in tokens.find_tokens(meta):
            out.append(node)
    return out


def shape_label(part: XmlPart, node: int) -> str:
    return part.get_attr(node, "name") or f"shape@{node}"


def resolve_media_part(
    part: XmlPart,
    shape_node: int,
    archive: Archive,
    slide_name: str,
    *,
    max_depth: int = 4,
) -> str:
    """Follow cNvPr -> p:pic -> a:blip r:embed -> slide rels -> media part name."""
    pic = part.ancestor(shape_node, PICTURE, max_depth)
    if pic is None:
        raise RelationshipUnresolved(f"no picture shape within {max_depth} levels")

    blips = part.descendants(pic, BLIP)
    if not blips:
        raise RelationshipUnresolved("picture has no blip reference")
    rid: Optional[str] = part.get_attr(blips[0], "embed")
    if not rid:
        raise RelationshipUnresolved("blip has no embed id")

    entry = load_relationships(archive, slide_name).get(rid)
    if entry is None:
        raise RelationshipUnresolved(f"relationship {rid} not found")
    if entry.is_external:
        raise RelationshipUnresolved(f"relationship {rid} targets an external resource")
    # Strict OOXML uses a different namespace for the same "/image" type.
    if entry.type and entry.type != RT.IMAGE and not entry.type.endswith("/image"):
        raise RelationshipUnresolved(f"relationship {rid} is not an image ({entry.type})")
    if not entry.target:
        raise RelationshipUnresolved(f"relationship {rid} has no target")

    media = normalize_target(entry.target, slide_name)
    if not archive.has(media):
        raise RelationshipUnresolved(f"media part {media} missing from archive")
    return media
