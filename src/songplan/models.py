import re
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from types import MappingProxyType
from typing import Mapping, NamedTuple

from .exceptions import SongModelError, SongParseError


class PartKind(Enum):
    VERSE = "verse"
    CHORUS = "chorus"
    BRIDGE = "bridge"
    INTRO = "intro"
    OUTRO = "outro"
    OTHER = "other"

    @property
    def label(self) -> str:
        """Default display name for a part of this kind, e.g. ``"Chorus"``."""
        return self.value.capitalize()

    @classmethod
    def from_label(cls, label: str) -> "PartKind":
        """Map a section label such as ``"Verse 2"`` or ``"Refrain"`` to a kind.

        The whole label is tried first (``"pre-chorus"``), then each word
        (``"Final Chorus"``).  Unknown labels map to :attr:`OTHER`.
        """
        cleaned = re.sub(r"[\d.:()\[\]]+", " ", label.lower()).strip()
        if not cleaned:
            return cls.OTHER
        whole = re.sub(r"\s+", "-", cleaned)
        if whole in PART_KEYWORDS:
            return PART_KEYWORDS[whole]
        for word in cleaned.split():
            if word in PART_KEYWORDS:
                return PART_KEYWORDS[word]
        return cls.OTHER


# Section keywords recognised in song markup (English and German).
PART_KEYWORDS: dict[str, PartKind] = {
    "verse": PartKind.VERSE,
    "stanza": PartKind.VERSE,
    "strophe": PartKind.VERSE,
    "vers": PartKind.VERSE,
    "chorus": PartKind.CHORUS,
    "refrain": PartKind.CHORUS,
    "hook": PartKind.CHORUS,
    "kehrvers": PartKind.CHORUS,
    "bridge": PartKind.BRIDGE,
    "brücke": PartKind.BRIDGE,
    "bruecke": PartKind.BRIDGE,
    "intro": PartKind.INTRO,
    "vorspiel": PartKind.INTRO,
    "outro": PartKind.OUTRO,
    "ending": PartKind.OUTRO,
    "coda": PartKind.OUTRO,
    "nachspiel": PartKind.OUTRO,
    "pre-chorus": PartKind.OTHER,
    "prechorus": PartKind.OTHER,
    "post-chorus": PartKind.OTHER,
    "postchorus": PartKind.OTHER,
    "interlude": PartKind.OTHER,
    "zwischenspiel": PartKind.OTHER,
    "instrumental": PartKind.OTHER,
    "solo": PartKind.OTHER,
    "tag": PartKind.OTHER,
}


# ---------------------------------------------------------------------------
# Lines and segments
# ---------------------------------------------------------------------------


class SegmentType(Enum):
    TEXT = "text"
    CHORD = "chord"
    ANNOTATION = "annotation"  # e.g. "Rit." from ChordPro [*Rit.]


@dataclass(frozen=True)
class Segment:
    """One unit of a lyric line.

    ``offset`` is the position in the line's rendered text where the segment
    starts (text) or is anchored (chord / annotation).
    """

    type: SegmentType
    value: str
    offset: int

    def to_dict(self) -> dict:
        return {"type": self.type.value, "value": self.value, "offset": self.offset}


@dataclass(frozen=True)
class LyricLine:
    """A line of lyrics with optional chord and annotation anchors.

    Segments are stored in rendering order: every segment's offset equals the
    length of the text rendered before it, so anchors are non-decreasing and
    never point past the end of the line.

    Example: ``"Amazing grace"`` with ``C`` over ``A`` and ``G`` over ``g``::

        CHORD "C" @0, TEXT "Amazing " @0, CHORD "G" @8, TEXT "grace" @8
    """

    segments: tuple[Segment, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "segments", tuple(self.segments))
        position = 0
        for segment in self.segments:
            if segment.offset != position:
                raise SongModelError(
                    f"Segment {segment.value!r} anchored at {segment.offset}, "
                    f"expected {position}"
                )
            if segment.type is SegmentType.TEXT:
                position += len(segment.value)

    @classmethod
    def from_text(
        cls,
        text: str,
        chords: tuple | list = (),
        annotations: tuple | list = (),
    ) -> "LyricLine":
        """Build a line from plain *text* and ``(offset, name)`` anchor pairs.

        Anchors are sorted by offset (chords before annotations at the same
        offset).  Raises :class:`SongModelError` if an anchor lies outside
        ``[0, len(text)]``.
        """
        anchors = sorted(
            [(offset, 0, SegmentType.CHORD, name) for offset, name in chords]
            + [(offset, 1, SegmentType.ANNOTATION, note) for offset, note in annotations],
            key=lambda a: (a[0], a[1]),
        )
        segments: list[Segment] = []
        position = 0
        for offset, _, seg_type, value in anchors:
            if offset < 0 or offset > len(text):
                raise SongModelError(
                    f"Anchor {value!r} at {offset} outside line of length {len(text)}"
                )
            if offset > position:
                segments.append(Segment(SegmentType.TEXT, text[position:offset], position))
                position = offset
            segments.append(Segment(seg_type, value, offset))
        if position < len(text):
            segments.append(Segment(SegmentType.TEXT, text[position:], position))
        return cls(segments=tuple(segments))

    @property
    def text(self) -> str:
        """The rendered lyric text, chords and annotations ignored."""
        return "".join(s.value for s in self.segments if s.type is SegmentType.TEXT)

    @property
    def chords(self) -> tuple[tuple[int, str], ...]:
        return tuple((s.offset, s.value) for s in self.segments if s.type is SegmentType.CHORD)

    @property
    def anchors(self) -> tuple[tuple[int, str], ...]:
        """Chord and annotation anchors in rendering order."""
        return tuple((s.offset, s.value) for s in self.segments if s.type is not SegmentType.TEXT)

    @property
    def has_chords(self) -> bool:
        return any(s.type is SegmentType.CHORD for s in self.segments)

    @property
    def is_chord_only(self) -> bool:
        """True for instrumental lines that carry chords but no lyric text."""
        return not self.text.strip() and bool(self.anchors)

    def to_dict(self) -> dict:
        return {"text": self.text, "segments": [s.to_dict() for s in self.segments]}


# ---------------------------------------------------------------------------
# Parts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PartDefinition:
    """The unique content of a named part (verse, chorus, bridge, ...)."""

    name: str  # e.g. "Verse 1", "Chorus"; "" for an unlabelled leading part
    kind: PartKind = PartKind.OTHER
    lines: tuple[LyricLine, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "lines", tuple(self.lines))

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "lines": [line.to_dict() for line in self.lines],
        }


@dataclass(frozen=True)
class PartInstance:
    """One occurrence of a part in performance order."""

    name: str
    repeat_count: int = 1
    override_text: str | None = None  # variant lyrics, lines separated by "\n"
    line_number: int | None = None  # source line that produced this occurrence

    def __post_init__(self):
        if isinstance(self.repeat_count, bool) or not isinstance(self.repeat_count, int):
            raise SongModelError(f"repeat_count must be an integer, got {self.repeat_count!r}")
        if self.repeat_count < 1:
            raise SongModelError(f"repeat_count must be > 0, got {self.repeat_count}")

    @property
    def override_lines(self) -> tuple[str, ...]:
        if not self.override_text:
            return ()
        return tuple(line.strip() for line in self.override_text.split("\n") if line.strip())

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "repeat_count": self.repeat_count,
            "override_text": self.override_text,
            "line_number": self.line_number,
        }


# ---------------------------------------------------------------------------
# Song
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SongMetadata:
    author: str | None = None
    language: str | None = None  # language tag, e.g. "de", "en-US"
    key: str | None = None
    tempo: str | None = None  # free-form hint, e.g. "92" or "Andante"
    tags: tuple[tuple[str, str], ...] = ()  # any other header fields, in source order

    def __post_init__(self):
        object.__setattr__(self, "tags", tuple((k, v) for k, v in self.tags))

    def tag(self, name: str) -> str | None:
        """Return the first tag called *name* (case-insensitive), if any."""
        name = name.lower()
        for key, value in self.tags:
            if key.lower() == name:
                return value
        return None

    def to_dict(self) -> dict:
        return {
            "author": self.author,
            "language": self.language,
            "key": self.key,
            "tempo": self.tempo,
            "tags": [[k, v] for k, v in self.tags],
        }


@dataclass(frozen=True)
class Song:
    """Immutable, validated representation of one song.

    ``definitions`` holds each part's content once, in definition order.
    ``instances`` is the performance order and refers to definitions by name.
    """

    title: str = ""
    metadata: SongMetadata = field(default_factory=SongMetadata)
    instances: tuple[PartInstance, ...] = ()
    definitions: tuple[PartDefinition, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "instances", tuple(self.instances))
        object.__setattr__(self, "definitions", tuple(self.definitions))
        names: set[str] = set()
        for definition in self.definitions:
            if definition.name in names:
                raise SongModelError(f"Duplicate part definition: {definition.name!r}")
            names.add(definition.name)
        for instance in self.instances:
            if instance.name not in names:
                raise SongModelError(f"Part instance references unknown part {instance.name!r}")

    @cached_property
    def definitions_by_name(self) -> Mapping[str, PartDefinition]:
        """Read-only name -> definition mapping (definition order preserved)."""
        return MappingProxyType({d.name: d for d in self.definitions})

    def definition(self, name: str) -> PartDefinition:
        """Return the definition called *name*; raises ``KeyError`` if absent."""
        return self.definitions_by_name[name]

    def part_count(self, kind: PartKind) -> int:
        """Number of part definitions of the given kind."""
        return sum(1 for d in self.definitions if d.kind is kind)

    def template_values(self) -> dict[str, str]:
        """Flat metadata values used to fill slide meta templates."""
        values = {tag.lower(): value for tag, value in self.metadata.tags}
        values["title"] = self.title
        for name in ("author", "language", "key", "tempo"):
            value = getattr(self.metadata, name)
            if value is not None:
                values[name] = value
        return values

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "metadata": self.metadata.to_dict(),
            "instances": [i.to_dict() for i in self.instances],
            "definitions": [d.to_dict() for d in self.definitions],
        }


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


class Severity(Enum):
    WARNING = "warning"
    ERROR = "error"


class DiagnosticCategory(Enum):
    TOKENIZE_ANOMALY = "TokenizeAnomaly"  # never fatal
    STRUCTURAL_WARNING = "StructuralWarning"  # unused part, ambiguous alignment
    STRUCTURAL_ERROR = "StructuralError"  # unresolved reference, duplicate definition


@dataclass(frozen=True)
class ParseDiagnostic:
    severity: Severity
    category: DiagnosticCategory
    message: str
    line_number: int | None = None

    def __str__(self) -> str:
        where = f"line {self.line_number}: " if self.line_number is not None else ""
        return f"{where}{self.severity.value}: {self.message}"

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "category": self.category.value,
            "message": self.message,
            "line_number": self.line_number,
        }


class ParseResult(NamedTuple):
    """Best-effort song plus everything the parser noticed along the way.

    Unpacks as ``song, diagnostics = parse(tokens)``.
    """

    song: Song
    diagnostics: tuple[ParseDiagnostic, ...]

    @property
    def errors(self) -> tuple[ParseDiagnostic, ...]:
        return tuple(d for d in self.diagnostics if d.severity is Severity.ERROR)

    @property
    def warnings(self) -> tuple[ParseDiagnostic, ...]:
        return tuple(d for d in self.diagnostics if d.severity is Severity.WARNING)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def raise_for_errors(self) -> "ParseResult":
        """Raise :class:`SongParseError` if any error diagnostic was produced."""
        if self.has_errors:
            raise SongParseError(self.errors)
        return self
