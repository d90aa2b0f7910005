"""Line tokenizer: raw song text -> flat list of typed tokens.

  1. normalize_text()  - decode, strip BOM / zero-width noise, unify newlines
  2. classify_line()   - BLANK / MARKER / DIRECTIVE / CHORD_LINE / LYRIC_LINE
  3. tokenize()        - both of the above for a whole song

The tokenizer never raises.  Whatever it cannot recognise becomes a
LYRIC_LINE; marker-like syntax the dialect cannot interpret becomes a
DIRECTIVE with key ``"unknown"`` and an ``anomaly`` message, so the parser can
report it.
"""

import logging
import re
import unicodedata
from dataclasses import dataclass
from enum import Enum, auto

from .dialects.base import Dialect
from .dialects.plain import PlainDialect
from .models import PartKind

logger = logging.getLogger(__name__)

#: Tabs are expanded to this column width before chord alignment is measured.
TAB_WIDTH = 8

_SPACE_LIKE = {"\u00a0": " ", "\u2007": " ", "\u202f": " "}
_INVISIBLE_RE = re.compile("[\u200b\u200c\u200d\u2060\ufeff]")
# C0 controls other than tab and newline (form feeds, stray NULs, ...).
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")


class TokenType(Enum):
    BLANK = auto()  # empty or whitespace only
    MARKER = auto()  # part header: Verse 1:, [Chorus], {start_of_verse}
    DIRECTIVE = auto()  # metadata, repeat / goto instructions, comments
    CHORD_LINE = auto()  # chord-only line: C   G   Am  or  [C]  [G]
    LYRIC_LINE = auto()  # everything else


@dataclass(frozen=True)
class Token:
    type: TokenType
    line_number: int  # 1-indexed
    raw: str = ""  # tab-expanded, right-stripped source line
    kind: PartKind | None = None  # MARKER
    name: str | None = None  # MARKER
    key: str | None = None  # DIRECTIVE
    value: str | None = None  # DIRECTIVE
    anomaly: str | None = None  # DIRECTIVE downgraded from unreadable markup

    @property
    def text(self) -> str:
        return self.raw.strip()

    @property
    def indent(self) -> int:
        """Column of the first non-blank character."""
        return len(self.raw) - len(self.raw.lstrip())


def normalize_text(raw_text: str | bytes) -> str:
    """Return *raw_text* as clean ``\\n``-separated text.

    Bytes are decoded as UTF-8 with replacement characters for invalid
    sequences.  Non-breaking spaces become spaces; zero-width characters and
    stray control characters are dropped.
    """
    if isinstance(raw_text, bytes):
        raw_text = raw_text.decode("utf-8", errors="replace")
    text = raw_text.replace("\r\n", "\n").replace("\r", "\n")
    text = unicodedata.normalize("NFC", text)
    for char, replacement in _SPACE_LIKE.items():
        text = text.replace(char, replacement)
    text = _INVISIBLE_RE.sub("", text)
    return _CONTROL_RE.sub("", text)


def classify_line(line: str, line_number: int, dialect: Dialect) -> Token:
    """Classify a single source line.

    Args:
        line:        One line of normalised text, without the newline.
        line_number: 1-indexed position of the line in the source.
        dialect:     Marker-recognition rules to apply.

    Returns:
        The :class:`Token` for this line.
    """
    raw = line.expandtabs(TAB_WIDTH).rstrip()
    stripped = raw.strip()
    if not stripped:
        return Token(TokenType.BLANK, line_number)

    marker = dialect.match_marker(stripped)
    if marker is not None:
        kind, name = marker
        return Token(TokenType.MARKER, line_number, raw, kind=kind, name=name)

    directive = dialect.match_directive(stripped)
    if directive is not None:
        key, value = directive
        return Token(TokenType.DIRECTIVE, line_number, raw, key=key, value=value)

    anomaly = dialect.match_unrecognised(stripped)
    if anomaly is not None:
        return Token(
            TokenType.DIRECTIVE, line_number, raw, key="unknown", value=stripped, anomaly=anomaly
        )

    if dialect.is_chord_line(stripped):
        return Token(TokenType.CHORD_LINE, line_number, raw)

    return Token(TokenType.LYRIC_LINE, line_number, raw)


def tokenize(raw_text: str | bytes, dialect: Dialect | None = None) -> list[Token]:
    """Split raw song text into one token per source line.

    Args:
        raw_text: Song source, ``str`` or UTF-8 ``bytes``.
        dialect:  Marker rules; defaults to :class:`PlainDialect`.

    Returns:
        Tokens in source order.  Trailing blank lines are dropped.
    """
    dialect = dialect or PlainDialect()
    lines = normalize_text(raw_text).split("\n")
    while lines and not lines[-1].strip():
        lines.pop()
    tokens = [classify_line(line, number, dialect) for number, line in enumerate(lines, start=1)]
    logger.debug("Tokenized %d lines with %s dialect", len(tokens), dialect.name)
    return tokens
