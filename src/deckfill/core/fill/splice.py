"""Token replacement across fragmented text runs.

Authoring tools freely split one logical token over several ``a:t``
elements (``{{ti`` + ``tle}}``), so matching happens on the concatenation of
all fragments of a slide and the result is written back into the original
fragment boundaries:

- the fragment holding the first character of the match (head) becomes
  ``prefix + replacement + suffix-of-tail``;
- every later fragment up to and including the one holding the last
  character (tail) is emptied, not removed, so run properties survive;
- fragments outside the match are left untouched.

Overlapping tokens are not supported.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from deckfill.core import tokens
from deckfill.core.xml.part import XmlPart

TEXT_LEAF = "t"


@dataclass
class TextFragment:
    node: int  # arena index in the owning XmlPart
    text: str
    start: int
    end: int


def collect_fragments(part: XmlPart) -> list[TextFragment]:
    frags: list[TextFragment] = []
    offset = 0
    for node in part.find_all(TEXT_LEAF):
        text = part.text(node)
        frags.append(TextFragment(node=node, text=text, start=offset, end=offset + len(text)))
        offset += len(text)
    return frags


def _locate(frags: list[TextFragment], offset: int) -> int:
    for i, f in enumerate(frags):
        if f.start <= offset < f.end:
            return i
    raise IndexError(f"offset {offset} outside fragment list")


def _reflow(frags: list[TextFragment], first: int) -> None:
    offset = frags[first - 1].end if first > 0 else 0
    for f in frags[first:]:
        f.start = offset
        f.end = offset + len(f.text)
        offset = f.end


def _write(part: XmlPart, frag: TextFragment, text: str) -> None:
    frag.text = text
    part.set_text(frag.node, text)


def replace_token(part: XmlPart, key: str, replacement: str) -> int:
    """Replace every occurrence of ``{{key}}``; returns the number of matches."""
    needle = tokens.token_for(key)
    frags = collect_fragments(part)
    joined = "".join(f.text for f in frags)

    count = 0
    pos = joined.find(needle)
    while pos != -1:
        end = pos + len(needle)
        head = _locate(frags, pos)
        tail = _locate(frags, end - 1)
        hf, tf = frags[head], frags[tail]

        prefix = hf.text[: pos - hf.start]
        suffix = tf.text[end - tf.start :]
        _write(part, hf, prefix + replacement + suffix)
        for f in frags[head + 1 : tail + 1]:
            _write(part, f, "")
        _reflow(frags, head)

        joined = joined[:pos] + replacement + joined[end:]
        count += 1
        # Resume after the inserted text so a replacement is never rescanned.
        pos = joined.find(needle, pos + len(replacement))
    return count


def apply_text_replacements(part: XmlPart, mapping: Mapping[str, str]) -> dict[str, int]:
    """Apply key -> text in mapping order; fragments are re-read for every key."""
    return {key: replace_token(part, key, value) for key, value in mapping.items()}
