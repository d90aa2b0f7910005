"""Classic Cantara ``.song`` files.

A header of ``#tag: value`` lines is followed by lyric blocks separated by
blank lines.  There are no section markers: a block whose text appears more
than once is the chorus (every later occurrence is a repeat of it), every other
block is the next verse.  Example::

    #title: Amazing Grace
    #author: John Newton

    Amazing grace, how sweet the sound
    that saved a wretch like me

    Twas grace that taught my heart to fear
    ...
"""

import re

from ..chords import is_chord_line
from ..models import PartKind
from .base import Dialect
from .plain import PlainDialect

_TAG_RE = re.compile(r"^#\s*(?P<key>\w+)\s*:\s*(?P<value>.*)$")

_PLAIN = PlainDialect()


class CantaraDialect(Dialect):
    """Lyrics-only blocks with ``#tag: value`` headers."""

    name = "cantara"
    extensions = (".song",)
    chord_lines = False
    blank_line_splits_parts = True

    @classmethod
    def can_handle(cls, text: str) -> bool:
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        if not lines or not _TAG_RE.match(lines[0]):
            return False
        # A plain sheet may open with a "# Capo: 2" comment; its markers and
        # chord lines give it away.
        return not any(
            _PLAIN.match_marker(line) or is_chord_line(line)
            for line in lines
            if not line.startswith("#")
        )

    def match_marker(self, line: str) -> tuple[PartKind, str] | None:
        return None

    def match_directive(self, line: str) -> tuple[str, str] | None:
        m = _TAG_RE.match(line)
        if not m:
            return None
        return m.group("key").lower(), m.group("value").strip()

    def match_unrecognised(self, line: str) -> str | None:
        if line.startswith("#"):
            return f"Malformed tag line {line!r} (expected '#tag: value')"
        return None
