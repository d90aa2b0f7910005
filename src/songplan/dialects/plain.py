"""Plain-text song sheets, the most common hand-written format.

Example::

    Title: Amazing Grace
    Author: John Newton

    Verse 1:
    C       G
    Amazing grace how sweet the sound

    [Chorus]
    ...

    Repeat chorus x2
    (Chorus)
    Go to verse 1

Section markers are a known keyword (``Verse``, ``Chorus``, ``Refrain``,
``Bridge``, ``Strophe``, ...) with an optional number, optionally wrapped in
``[...]`` and optionally followed by ``:``.  Chords sit on their own line above
the lyric they belong to, bracketed (``[D]  [G]``) or not (``D  G``).
"""

import re

from ..chords import chord_token_name
from ..models import PART_KEYWORDS, PartKind
from .base import Dialect, display_label


def _keyword_alternation() -> str:
    words = sorted(PART_KEYWORDS, key=len, reverse=True)
    return "|".join(re.escape(w).replace("\\-", "-").replace("-", r"[-\s]?") for w in words)


_KEYWORDS = _keyword_alternation()
_LABEL = rf"(?:{_KEYWORDS})(?:\s*\d+[a-z]?)?"

_MARKER_RE = re.compile(rf"^(?:\[\s*)?(?P<label>{_LABEL})(?:\s*\])?\s*[:.]?$", re.IGNORECASE)

_HEADER_RE = re.compile(
    r"^(?P<key>title|subtitle|author|artist|composer|lyricist|words|music|key|tempo|bpm|"
    r"time|language|lang|capo|copyright|ccli|order|sequence)\s*:\s*(?P<value>.*\S)$",
    re.IGNORECASE,
)

# "Repeat chorus", "(Repeat chorus x2)", "Rpt. Verse 1: changed last line"
_REPEAT_RE = re.compile(
    r"^\(?\s*(?:repeat|rpt\.?|rep\.|wdh\.?|wiederholung|wiederhole)\s*:?\s+(?P<value>.+?)\s*\)?$",
    re.IGNORECASE,
)

# "Chorus x2", "(Chorus 2x)", "(Chorus)"
_COUNTED_RE = re.compile(
    rf"^\(?\s*(?P<label>{_LABEL})\s*(?P<count>x\s*\d+|\d+\s*x)\s*\)?$", re.IGNORECASE
)
_PAREN_RE = re.compile(rf"^\(\s*(?P<label>{_LABEL})\s*\)$", re.IGNORECASE)

_GOTO_RE = re.compile(
    r"^\(?\s*(?:go\s*to|back\s+to|zurück\s+zu[rm]?)\s+(?P<value>.+?)\s*\)?$", re.IGNORECASE
)

_COMMENT_RE = re.compile(r"^(?:#|//)\s*(?P<value>.*)$")

_BRACKET_LABEL_RE = re.compile(r"^\[([^\]]+)\]$")
_BRACE_RE = re.compile(r"^\{.*\}$")


class PlainDialect(Dialect):
    """Chords-over-lyrics text with keyword section markers."""

    name = "plain"
    extensions = (".txt", ".text", ".lyrics")

    @classmethod
    def can_handle(cls, text: str) -> bool:
        return True  # fallback for anything no other dialect claims

    def match_marker(self, line: str) -> tuple[PartKind, str] | None:
        m = _MARKER_RE.match(line)
        if not m:
            return None
        label = display_label(m.group("label"))
        return PartKind.from_label(label), label

    def match_directive(self, line: str) -> tuple[str, str] | None:
        m = _HEADER_RE.match(line)
        if m:
            return m.group("key").lower(), m.group("value").strip()

        m = _COUNTED_RE.match(line)
        if m:
            count = re.sub(r"\D", "", m.group("count"))
            return "repeat", f"{display_label(m.group('label'))} x{count}"

        m = _PAREN_RE.match(line)
        if m:
            return "repeat", display_label(m.group("label"))

        m = _REPEAT_RE.match(line)
        if m:
            return "repeat", m.group("value")

        m = _GOTO_RE.match(line)
        if m:
            return "goto", m.group("value")

        m = _COMMENT_RE.match(line)
        if m:
            return "comment", m.group("value")

        return None

    def match_unrecognised(self, line: str) -> str | None:
        m = _BRACKET_LABEL_RE.match(line)
        if m and not chord_token_name(line):
            return f"Unrecognised section marker {m.group(0)!r}"
        if _BRACE_RE.match(line):
            return f"Unrecognised directive {line!r}"
        return None
