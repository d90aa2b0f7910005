"""Chord vocabulary shared by every dialect.

Two notations are recognised:

  "unbracketed" - chords written above the lyrics:   C       G
  "bracketed"   - chords in square brackets:         [C]     [G]

The column of a chord is the position of its first character (unbracketed)
or of its opening ``[`` (bracketed).  The tokenizer expands tabs before these
functions run, so columns are plain character positions.
"""

import re

# Valid chord name without brackets.
# Handles:
#   Standard:          A, Am, Am7, Amaj7, Asus4, G/B, C#m7, Bbm, E7(#9), C7sus4
#   German notation:   H, Hm7
#   Lowercase bass:    D/a, C/b, D/f#
#   Standalone bass:   /b, /a, /f#
#   No chord:          N.C., NC
CHORD_NAME_RE = re.compile(
    r"^(?:"
    r"[A-H][#b]?"
    r"(?:maj|min|m|dim|aug|sus|add|\+|°|ø)?"
    r"\d*"
    r"(?:(?:maj|sus|add|b|#)\d+)*"
    r"(?:\([^)\s]*\))?"
    r"(?:\/[A-Ha-h][#b]?)?"
    r"|"
    r"\/[A-Ha-h][#b]?"
    r"|"
    r"N\.?C\.?"
    r")$"
)

# A bracketed token: [D], [Am7], [*Rit.]
BRACKET_TOKEN_RE = re.compile(r"\[([^\]]*)\]")

# Non-chord tokens tolerated on a chord line: bar lines, slashes, dashes,
# simile marks and repeat counts ("x2", "2x", "(x3)").
_CHORD_LINE_FILLER_RE = re.compile(r"^(?:\|{1,2}:?|:?\|{1,2}|/|-+|%|\.+|\(?[xX]\d+\)?|\(?\d+[xX]\)?)$")


def is_chord_name(token: str) -> bool:
    """Return True if *token* (without brackets) is a chord name."""
    return bool(CHORD_NAME_RE.match(token))


def chord_token_name(token: str) -> str | None:
    """Return the chord name carried by a whitespace-free *token*, if any.

    Accepts both ``G`` and ``[G]``.
    """
    m = re.match(r"^\[([^\]]+)\]$", token)
    if m:
        return m.group(1) if is_chord_name(m.group(1)) else None
    return token if is_chord_name(token) else None


def chord_columns(line: str, bracketed: bool = True) -> list[tuple[int, str]]:
    """Return ``(column, chord_name)`` pairs from a chord line, left to right.

    Args:
        line:      A chord line, with tabs already expanded.  Leading
                   whitespace is significant.
        bracketed: Whether ``[G]`` tokens count as chords.
    """
    result = []
    for m in re.finditer(r"\S+", line):
        token = m.group()
        if token.startswith("[") and not bracketed:
            continue
        name = chord_token_name(token)
        if name:
            result.append((m.start(), name))
    return result


def is_chord_line(line: str, bracketed: bool = True) -> bool:
    """Return True if every token on *line* is a chord or chord-line filler.

    At least one real chord is required, so a line of bar lines alone is not
    a chord line.
    """
    tokens = line.split()
    found = False
    for token in tokens:
        if token.startswith("[") and not bracketed:
            return False
        if chord_token_name(token):
            found = True
        elif not _CHORD_LINE_FILLER_RE.match(token):
            return False
    return found


def split_inline_chords(text: str) -> tuple[str, list[tuple[int, str]], list[tuple[int, str]]]:
    """Split ChordPro-style inline chords out of a lyric line.

    ``"[C]Amazing [G]grace"`` becomes ``("Amazing grace", [(0, "C"), (8, "G")], [])``.
    Brackets whose content starts with ``*`` are annotations (``[*Rit.]``).
    Empty brackets are dropped.  Anchors past the end of the right-trimmed text
    are clamped to its end.

    Returns:
        ``(plain_text, chords, annotations)`` with offsets into *plain_text*.
    """
    plain: list[str] = []
    chords: list[tuple[int, str]] = []
    annotations: list[tuple[int, str]] = []
    length = 0
    last = 0
    for m in BRACKET_TOKEN_RE.finditer(text):
        piece = text[last:m.start()]
        plain.append(piece)
        length += len(piece)
        last = m.end()
        content = m.group(1).strip()
        if not content:
            continue
        if content.startswith("*"):
            annotations.append((length, content[1:].strip()))
        else:
            chords.append((length, content))
    plain.append(text[last:])
    result = "".join(plain).rstrip()
    end = len(result)
    chords = [(min(offset, end), name) for offset, name in chords]
    annotations = [(min(offset, end), note) for offset, note in annotations]
    return result, chords, annotations
