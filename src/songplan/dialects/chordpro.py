"""ChordPro (``.cho``) files.

Directives are ``{name}`` or ``{name: value}``.  Sections are opened with
``{start_of_verse: Verse 1}`` (or the short forms ``{sov}``, ``{soc}``,
``{sob}``) and closed with the matching ``{end_of_*}``.  ``{chorus}`` recalls
the chorus.  Chords are written inline: ``[C]Amazing [G]grace``; ``[*Rit.]``
is an annotation.

Comment directives whose text is a repeat instruction (``{c: Repeat chorus
x2}``) are treated as repeats, matching how hand-converted files are written.
"""

import re

from ..chords import is_chord_name
from ..models import PartKind
from .base import Dialect, display_label
from .plain import PlainDialect

_DIRECTIVE_RE = re.compile(r"^\{\s*(?P<name>[A-Za-z_][\w-]*)\s*(?:[:\s]\s*(?P<value>.*?))?\s*\}$")

_GLUED_BRACKET_RE = re.compile(r"\[([^\]\s]+)\][^\s\[]")

_SHORT_SECTIONS = {"sov": "verse", "soc": "chorus", "sob": "bridge", "sot": "tab", "sog": "grid"}
_SHORT_ENDS = {"eov", "eoc", "eob", "eot", "eog"}

_META = {
    "title": "title",
    "t": "title",
    "subtitle": "subtitle",
    "st": "subtitle",
    "artist": "artist",
    "composer": "composer",
    "lyricist": "lyricist",
    "key": "key",
    "tempo": "tempo",
    "time": "time",
    "capo": "capo",
    "copyright": "copyright",
    "year": "year",
    "album": "album",
    "duration": "duration",
    "language": "language",
    "lang": "language",
    "ccli": "ccli",
    "order": "order",
}

_COMMENTS = {"comment", "c", "comment_italic", "ci", "comment_box", "cb", "highlight"}

# Layout directives with no structural meaning.
_LAYOUT = {
    "new_page", "np", "new_physical_page", "npp", "column_break", "colb", "columns", "col",
    "pagetype", "grid", "g", "no_grid", "ng", "titles", "define", "chord",
    "textfont", "textsize", "textcolour", "chordfont", "chordsize", "chordcolour",
}

_PLAIN = PlainDialect()


class ChordProDialect(Dialect):
    """ChordPro markup with inline chords."""

    name = "chordpro"
    extensions = (".cho", ".chopro", ".chordpro", ".crd", ".pro")
    inline_chords = True
    bracketed_chord_lines = False  # "[G]  [D]" is a chords-only lyric line here

    @classmethod
    def can_handle(cls, text: str) -> bool:
        if re.search(
            r"^\s*\{\s*(?:title|t|subtitle|st|artist|start_of_\w+|so[cvbt]|chorus|comment|c|key)\b",
            text,
            re.MULTILINE | re.IGNORECASE,
        ):
            return True
        # Inline chords glued to lyrics: "[G]Amazing", but not a "[Chorus]:" marker
        return any(is_chord_name(m.group(1)) for m in _GLUED_BRACKET_RE.finditer(text))

    def match_marker(self, line: str) -> tuple[PartKind, str] | None:
        m = _DIRECTIVE_RE.match(line)
        if not m:
            return None
        name = m.group("name").lower()
        value = (m.group("value") or "").strip()
        if name in _SHORT_SECTIONS:
            section = _SHORT_SECTIONS[name]
        elif name.startswith("start_of_") and len(name) > len("start_of_"):
            section = name[len("start_of_"):]
        else:
            return None
        kind = PartKind.from_label(section)
        if kind is PartKind.OTHER and value:
            kind = PartKind.from_label(value)
        if value:
            return kind, display_label(value)
        return kind, kind.label if kind is not PartKind.OTHER else display_label(section)

    def match_directive(self, line: str) -> tuple[str, str] | None:
        if line.startswith("#"):
            return "comment", line.lstrip("#").strip()
        m = _DIRECTIVE_RE.match(line)
        if not m:
            return None
        name = m.group("name").lower()
        value = (m.group("value") or "").strip()

        if name in _SHORT_ENDS or name.startswith("end_of_"):
            return "end", ""
        if name == "chorus":
            if value and PartKind.from_label(value) is PartKind.CHORUS:
                return "repeat", display_label(value)
            return "repeat", "Chorus"
        if name == "meta" and value:
            key, _, rest = value.partition(" ")
            return _META.get(key.lower(), key.lower()), rest.strip()
        if name in _META:
            return _META[name], value
        if name in _COMMENTS:
            instruction = _PLAIN.match_directive(value) if value else None
            if instruction and instruction[0] in ("repeat", "goto"):
                return instruction
            return "comment", value
        if name in _LAYOUT or name.startswith("x_"):
            return "comment", ""
        return None

    def match_unrecognised(self, line: str) -> str | None:
        if _DIRECTIVE_RE.match(line):
            return f"Unrecognised directive {line!r}"
        if line.startswith("{") and not line.endswith("}"):
            return f"Unterminated directive {line!r}"
        return None
