from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Union

import orjson

from deckfill.core.fill.media import ImagePayload, encode_data_uri
from deckfill.core.tokens import Kind
from deckfill.core.utils.schema_validate import validate_instance


@dataclass(frozen=True)
class ReplacementValue:
    """A finalized fill value for one placeholder.

    `payload` is text for text placeholders; for image placeholders it is an
    ImagePayload or a ``data:image/...;base64,`` string.
    """

    placeholder_id: str
    kind: Kind
    payload: Union[str, ImagePayload]


ValueLike = Union[str, ImagePayload, ReplacementValue]


class ValuesFileError(ValueError):
    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("values file does not conform to schema:\n" + "\n".join(errors))


def values_from_dict(obj: Any) -> dict[str, ReplacementValue]:
    errors = validate_instance("values", obj)
    if errors:
        raise ValuesFileError(errors)
    out: dict[str, ReplacementValue] = {}
    for pid, entry in obj["values"].items():
        out[pid] = ReplacementValue(placeholder_id=pid, kind=entry["kind"], payload=entry["value"])
    return out


def load_values(path: Path) -> dict[str, ReplacementValue]:
    return values_from_dict(orjson.loads(Path(path).read_bytes()))


def values_to_dict(values: Mapping[str, ValueLike]) -> dict[str, Any]:
    """Inverse of `values_from_dict` (images always written as data URIs)."""
    out: dict[str, Any] = {}
    for pid, v in values.items():
        if isinstance(v, ReplacementValue):
            kind, payload = v.kind, v.payload
        elif isinstance(v, ImagePayload):
            kind, payload = "image", v
        else:
            kind, payload = "text", v
        if isinstance(payload, ImagePayload):
            payload = encode_data_uri(payload)
        out[pid] = {"kind": kind, "value": payload}
    return {"schema_version": "0.1", "values": out}
