import re
from abc import ABC, abstractmethod

from ..chords import is_chord_line
from ..models import PartKind


class Dialect(ABC):
    """Abstract base class for song markup dialects.

    A dialect is a small set of marker-recognition rules plus capability flags.
    The shared tokenizer and parser do all structural work; a dialect only
    answers "what is this line?" questions.
    """

    #: Registry name, e.g. ``"chordpro"``.
    name: str = ""
    #: File suffixes (lowercase, with dot) this dialect is chosen for.
    extensions: tuple[str, ...] = ()

    #: Lines with ``[G]`` inside the lyrics carry inline chords.
    inline_chords: bool = False
    #: Lines made only of chords are chord lines (chords over lyrics).
    chord_lines: bool = True
    #: ``[G]   [D]`` style lines count as chord lines.
    bracketed_chord_lines: bool = True
    #: Blank lines separate parts and part names are inferred from content.
    blank_line_splits_parts: bool = False

    @classmethod
    @abstractmethod
    def can_handle(cls, text: str) -> bool:
        """Return True if *text* looks like it was written in this dialect."""

    @abstractmethod
    def match_marker(self, line: str) -> tuple[PartKind, str] | None:
        """Return ``(kind, name)`` if the trimmed *line* opens a part."""

    @abstractmethod
    def match_directive(self, line: str) -> tuple[str, str] | None:
        """Return ``(key, value)`` if the trimmed *line* is a directive.

        Keys understood by the parser: metadata names (``title``, ``author``,
        ``key``, ...), ``repeat``, ``goto``, ``order``, ``end`` and ``comment``.
        """

    def match_unrecognised(self, line: str) -> str | None:
        """Return a message if *line* looks like markup this dialect cannot read."""
        return None

    def is_chord_line(self, line: str) -> bool:
        return self.chord_lines and is_chord_line(line, bracketed=self.bracketed_chord_lines)


def display_label(label: str) -> str:
    """Normalise a section label for display: ``"VERSE1"`` -> ``"Verse 1"``."""
    label = re.sub(r"(?<=[^\W\d_])(?=\d)", " ", label.strip())
    words = label.split()
    return " ".join(w[:1].upper() + w[1:].lower() for w in words)
