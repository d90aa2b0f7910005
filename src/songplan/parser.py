"""Structural parser: tokens -> best-effort Song plus diagnostics.

Algorithm
---------
1. Group tokens into part drafts at every MARKER.  Content before the first
   marker forms an unnamed leading part.  Repeat / goto directives become
   references in the performance sequence.  For dialects whose parts are
   separated by blank lines, block names are inferred from their content.
2. Within each part, pair a CHORD_LINE with the LYRIC_LINE right below it;
   chord columns become anchors in the lyric text.
3. Collect definitions (first wins; later duplicates are reported and played
   as the first), then resolve every reference against the complete set, so a
   reference may precede the part it names.
4. Report parts that are never performed.

Parsing never raises on song text: problems become :class:`ParseDiagnostic`
entries and the offending piece is dropped or replaced by a fallback.
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from .chords import chord_columns, split_inline_chords
from .dialects.base import Dialect
from .dialects.plain import PlainDialect
from .models import (
    DiagnosticCategory,
    LyricLine,
    ParseDiagnostic,
    ParseResult,
    PartDefinition,
    PartInstance,
    PartKind,
    Severity,
    Song,
    SongMetadata,
)
from .tokenizer import Token, TokenType

logger = logging.getLogger(__name__)

#: How many columns a chord may overhang the end of its lyric line before the
#: alignment is reported as ambiguous.
ALIGNMENT_TOLERANCE = 4

_METADATA_FIELDS = {
    "title": "title",
    "author": "author",
    "artist": "author",
    "language": "language",
    "lang": "language",
    "key": "key",
    "tempo": "tempo",
    "bpm": "tempo",
}

# "chorus", "Verse 1 x2", "chorus 2x: and now I see / was blind"
_REFERENCE_RE = re.compile(
    r"^(?P<target>.+?)"
    r"(?:\s*(?:x\s*(?P<times>\d+)|(?P<times_after>\d+)\s*x))?"
    r"\s*(?::\s*(?P<override>.*\S))?\s*$",
    re.IGNORECASE,
)
_ARTICLE_RE = re.compile(r"^(?:the|den|die|das|zum|zur)\s+", re.IGNORECASE)
_ORDER_SPLIT_RE = re.compile(r"\s*(?:,|;|->|→|\|)\s*")


@dataclass
class _Draft:
    """A part while its tokens are still being collected."""

    name: str
    kind: PartKind
    line_number: int | None
    explicit: bool  # opened by a marker rather than by stray content
    tokens: list[Token] = field(default_factory=list)

    @property
    def has_content(self) -> bool:
        return any(t.type in (TokenType.CHORD_LINE, TokenType.LYRIC_LINE) for t in self.tokens)


@dataclass
class _Reference:
    """One slot in the performance sequence, by part name."""

    target: str
    repeat_count: int = 1
    override_text: str | None = None
    line_number: int | None = None
    from_directive: bool = False  # written as repeat/goto in the song body


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def parse(
    tokens: Iterable[Token],
    dialect: Dialect | None = None,
    *,
    alignment_tolerance: int = ALIGNMENT_TOLERANCE,
) -> ParseResult:
    """Build a :class:`~songplan.models.Song` from a token stream.

    Args:
        tokens:              Output of :func:`songplan.tokenizer.tokenize`.
        dialect:             The dialect the tokens were produced with; its
                             capability flags steer chord pairing and part
                             inference.  Defaults to the plain dialect.
        alignment_tolerance: Columns a chord may overhang its lyric line
                             before an ambiguous-alignment warning is raised.

    Returns:
        ``ParseResult(song, diagnostics)``; diagnostics are ordered by line.
    """
    tokens = list(tokens)
    dialect = dialect or PlainDialect()
    diagnostics: list[ParseDiagnostic] = []

    events, metadata_tokens, order_tokens = _group_parts(tokens, dialect, diagnostics)
    if dialect.blank_line_splits_parts:
        events = _infer_block_names(events)

    definitions, sequence, definition_lines = _collect_definitions(
        events, dialect, alignment_tolerance, diagnostics
    )

    if order_tokens:
        sequence = _explicit_order(order_tokens, events, diagnostics)

    instances = _resolve_instances(sequence, definitions, diagnostics)
    _check_unused(definitions, instances, definition_lines, diagnostics)

    title, metadata = _build_metadata(metadata_tokens)
    song = Song(
        title=title,
        metadata=metadata,
        instances=tuple(instances),
        definitions=tuple(definitions.values()),
    )
    diagnostics.sort(key=lambda d: d.line_number if d.line_number is not None else 0)
    logger.debug(
        "Parsed %r: %d parts, %d instances, %d diagnostics",
        song.title,
        len(song.definitions),
        len(song.instances),
        len(diagnostics),
    )
    return ParseResult(song, tuple(diagnostics))


# ---------------------------------------------------------------------------
# Step 1: grouping
# ---------------------------------------------------------------------------


def _group_parts(
    tokens: list[Token], dialect: Dialect, diagnostics: list[ParseDiagnostic]
) -> tuple[list, list[Token], list[Token]]:
    """Split *tokens* into drafts and references, in source order.

    Returns ``(events, metadata_tokens, order_tokens)``.
    """
    events: list[_Draft | _Reference] = []
    metadata: list[Token] = []
    orders: list[Token] = []
    current: _Draft | None = None
    verse_count = 0
    implicit_count = 0

    for token in tokens:
        if token.type is TokenType.MARKER:
            name = token.name or token.kind.label
            if token.kind is PartKind.VERSE:
                number = re.search(r"\d+", name)
                if number:
                    verse_count = int(number.group())
                else:
                    verse_count += 1
                    name = f"{name} {verse_count}"
            current = _Draft(name, token.kind, token.line_number, explicit=True)
            events.append(current)

        elif token.type is TokenType.DIRECTIVE:
            key = token.key
            if key == "end":
                current = None
            elif key in ("repeat", "goto"):
                current = None
                reference = _parse_reference(token.value or "", token.line_number, diagnostics)
                if reference is not None:
                    reference.from_directive = True
                    events.append(reference)
            elif key in ("order", "sequence"):
                orders.append(token)
            elif key == "unknown":
                diagnostics.append(
                    _diagnostic(
                        Severity.WARNING,
                        DiagnosticCategory.TOKENIZE_ANOMALY,
                        f"{token.anomaly}; line ignored",
                        token.line_number,
                    )
                )
            elif key != "comment":
                metadata.append(token)

        elif token.type is TokenType.BLANK:
            if dialect.blank_line_splits_parts:
                if current is not None and not current.explicit:
                    current = None
            elif current is not None:
                current.tokens.append(token)

        else:
            if current is None:
                implicit_count += 1
                name = "" if implicit_count == 1 else f"Untitled {implicit_count}"
                current = _Draft(name, PartKind.OTHER, token.line_number, explicit=False)
                events.append(current)
            current.tokens.append(token)

    return events, metadata, orders


def _content_key(draft: _Draft) -> str:
    return "\n".join(
        " ".join(t.text.casefold().split())
        for t in draft.tokens
        if t.type in (TokenType.CHORD_LINE, TokenType.LYRIC_LINE)
    )


def _infer_block_names(events: list) -> list:
    """Name unlabelled blocks: recurring text is a chorus, the rest are verses.

    Every occurrence of a recurring block after the first becomes a reference
    to it instead of a second definition.
    """
    blocks = [e for e in events if isinstance(e, _Draft) and not e.explicit]
    counts = Counter(_content_key(b) for b in blocks)
    chorus_names: dict[str, str] = {}
    verse_number = 0
    result = []

    for event in events:
        if not isinstance(event, _Draft) or event.explicit:
            result.append(event)
            continue
        key = _content_key(event)
        if counts[key] > 1:
            if key in chorus_names:
                result.append(_Reference(chorus_names[key], line_number=event.line_number))
                continue
            event.name = "Chorus" if not chorus_names else f"Chorus {len(chorus_names) + 1}"
            event.kind = PartKind.CHORUS
            chorus_names[key] = event.name
        else:
            verse_number += 1
            event.name = f"Verse {verse_number}"
            event.kind = PartKind.VERSE
        result.append(event)
    return result


def _parse_reference(
    value: str, line_number: int | None, diagnostics: list[ParseDiagnostic]
) -> _Reference | None:
    """Parse ``"chorus x2: variant line / another"`` into a reference."""
    m = _REFERENCE_RE.match(value.strip())
    if not m:
        diagnostics.append(
            _diagnostic(
                Severity.ERROR,
                DiagnosticCategory.STRUCTURAL_ERROR,
                "Repeat instruction names no part",
                line_number,
            )
        )
        return None
    target = _ARTICLE_RE.sub("", m.group("target")).strip()
    times = m.group("times") or m.group("times_after")
    count = int(times) if times else 1
    if count < 1:
        diagnostics.append(
            _diagnostic(
                Severity.WARNING,
                DiagnosticCategory.STRUCTURAL_WARNING,
                f"Repeat count {count} for {target!r} is not positive; using 1",
                line_number,
            )
        )
        count = 1
    override = m.group("override")
    if override:
        override = "\n".join(part.strip() for part in override.split(" / "))
    return _Reference(target, count, override or None, line_number)


# ---------------------------------------------------------------------------
# Step 2: chord / lyric pairing
# ---------------------------------------------------------------------------


def _build_lines(
    tokens: list[Token],
    dialect: Dialect,
    tolerance: int,
    diagnostics: list[ParseDiagnostic],
) -> tuple[LyricLine, ...]:
    lines: list[LyricLine] = []
    i = 0
    while i < len(tokens):
        token = tokens[i]

        if token.type is TokenType.CHORD_LINE:
            following = tokens[i + 1] if i + 1 < len(tokens) else None
            if following is not None and following.type is TokenType.LYRIC_LINE:
                lines.append(_merge_chord_lyric(token, following, dialect, tolerance, diagnostics))
                i += 2
            else:
                # Instrumental passage: chords with no lyric below
                names = [n for _, n in chord_columns(token.raw, dialect.bracketed_chord_lines)]
                lines.append(LyricLine.from_text("", chords=[(0, n) for n in names]))
                i += 1
            continue

        if token.type is TokenType.LYRIC_LINE:
            lines.append(_lyric_line(token, dialect))
        i += 1

    return tuple(lines)


def _lyric_line(token: Token, dialect: Dialect) -> LyricLine:
    if dialect.inline_chords:
        text, chords, notes = split_inline_chords(token.text)
        return LyricLine.from_text(text, chords, notes)
    return LyricLine.from_text(token.text)


def _merge_chord_lyric(
    chord_token: Token,
    lyric_token: Token,
    dialect: Dialect,
    tolerance: int,
    diagnostics: list[ParseDiagnostic],
) -> LyricLine:
    """Anchor the chords of *chord_token* in the lyric text below it.

    Columns are measured against the lyric line's own indentation.  A chord
    up to *tolerance* columns past the end of the lyric keeps its column, the
    text being padded with spaces; one further out is anchored at the end
    rather than dropped.
    """
    if dialect.inline_chords:
        text, chords, notes = split_inline_chords(lyric_token.text)
    else:
        text, chords, notes = lyric_token.text, [], []

    indent = lyric_token.indent
    columns = [
        (max(column - indent, 0), name)
        for column, name in chord_columns(chord_token.raw, dialect.bracketed_chord_lines)
    ]
    reach = max((offset for offset, _ in columns if offset - len(text) <= tolerance), default=0)
    text = text.ljust(reach)

    overhanging = None
    for offset, name in columns:
        if offset > len(text):
            if overhanging is None:
                overhanging = name
            offset = len(text)
        chords.append((offset, name))

    if overhanging is not None:
        diagnostics.append(
            _diagnostic(
                Severity.WARNING,
                DiagnosticCategory.STRUCTURAL_WARNING,
                f"Ambiguous alignment: chord {overhanging!r} lies beyond the end of the lyric "
                f"on line {lyric_token.line_number}; anchored at the line end",
                chord_token.line_number,
            )
        )
    return LyricLine.from_text(text, chords, notes)


# ---------------------------------------------------------------------------
# Step 3: definitions and references
# ---------------------------------------------------------------------------


def _name_key(name: str) -> str:
    return re.sub(r"\s+", "", name.casefold())


def _collect_definitions(
    events: list,
    dialect: Dialect,
    tolerance: int,
    diagnostics: list[ParseDiagnostic],
) -> tuple[dict[str, PartDefinition], list[_Reference], dict[str, int | None]]:
    """First pass: build every definition and the implicit performance sequence.

    A marker with no content that names a part defined elsewhere is a repeat
    of that part.  A second definition with content under the same name is a
    duplicate: it is reported, its content discarded and its slot plays the
    first definition.

    Returns ``(definitions by name key, sequence, definition line numbers)``.
    """
    with_content = {_name_key(e.name) for e in events if isinstance(e, _Draft) and e.has_content}
    definitions: dict[str, PartDefinition] = {}
    definition_lines: dict[str, int | None] = {}
    sequence: list[_Reference] = []

    for event in events:
        if isinstance(event, _Reference):
            sequence.append(event)
            continue

        key = _name_key(event.name)
        if not event.has_content and event.explicit and (key in with_content or key in definitions):
            sequence.append(_Reference(event.name, line_number=event.line_number))
            continue

        if key in definitions:
            first = definitions[key]
            diagnostics.append(
                _diagnostic(
                    Severity.ERROR,
                    DiagnosticCategory.STRUCTURAL_ERROR,
                    f"Duplicate definition of part {event.name!r} (first defined on line "
                    f"{definition_lines[key]}); later content discarded",
                    event.line_number,
                )
            )
            sequence.append(_Reference(first.name, line_number=event.line_number))
            continue

        lines = _build_lines(event.tokens, dialect, tolerance, diagnostics)
        definitions[key] = PartDefinition(name=event.name, kind=event.kind, lines=lines)
        definition_lines[key] = event.line_number
        sequence.append(_Reference(event.name, line_number=event.line_number))

    return definitions, sequence, definition_lines


def _explicit_order(
    order_tokens: list[Token], events: list, diagnostics: list[ParseDiagnostic]
) -> list[_Reference]:
    """Performance sequence from the last ``order`` directive."""
    order = order_tokens[-1]
    for earlier in order_tokens[:-1]:
        diagnostics.append(
            _diagnostic(
                Severity.WARNING,
                DiagnosticCategory.STRUCTURAL_WARNING,
                f"Order directive superseded by the one on line {order.line_number}",
                earlier.line_number,
            )
        )
    for event in events:
        if isinstance(event, _Reference) and event.from_directive:
            diagnostics.append(
                _diagnostic(
                    Severity.WARNING,
                    DiagnosticCategory.STRUCTURAL_WARNING,
                    f"Repeat of {event.target!r} ignored: the order on line "
                    f"{order.line_number} defines the performance sequence",
                    event.line_number,
                )
            )

    sequence = []
    for item in _ORDER_SPLIT_RE.split(order.value or ""):
        if not item.strip():
            continue
        reference = _parse_reference(item, order.line_number, diagnostics)
        if reference is not None:
            sequence.append(reference)
    return sequence


def _find_definition(
    target: str, definitions: dict[str, PartDefinition]
) -> PartDefinition | None:
    """Second pass lookup: exact name, then a bare kind word (``chorus``)."""
    key = _name_key(target)
    if key in definitions:
        return definitions[key]
    if re.search(r"\d", target):
        return None
    kind = PartKind.from_label(target)
    if kind is PartKind.OTHER:
        return None
    for definition in definitions.values():
        if definition.kind is kind:
            return definition
    return None


def _resolve_instances(
    sequence: list[_Reference],
    definitions: dict[str, PartDefinition],
    diagnostics: list[ParseDiagnostic],
) -> list[PartInstance]:
    instances = []
    for reference in sequence:
        definition = _find_definition(reference.target, definitions)
        if definition is None:
            diagnostics.append(
                _diagnostic(
                    Severity.ERROR,
                    DiagnosticCategory.STRUCTURAL_ERROR,
                    f"Unresolved reference to part {reference.target!r}; dropped",
                    reference.line_number,
                )
            )
            continue
        instances.append(
            PartInstance(
                name=definition.name,
                repeat_count=reference.repeat_count,
                override_text=reference.override_text,
                line_number=reference.line_number,
            )
        )
    return instances


# ---------------------------------------------------------------------------
# Step 4: validation and metadata
# ---------------------------------------------------------------------------


def _check_unused(
    definitions: dict[str, PartDefinition],
    instances: list[PartInstance],
    definition_lines: dict[str, int | None],
    diagnostics: list[ParseDiagnostic],
) -> None:
    performed = {instance.name for instance in instances}
    for key, definition in definitions.items():
        if definition.name not in performed:
            diagnostics.append(
                _diagnostic(
                    Severity.WARNING,
                    DiagnosticCategory.STRUCTURAL_WARNING,
                    f"Part {definition.name!r} is defined but never performed",
                    definition_lines.get(key),
                )
            )


def _build_metadata(tokens: list[Token]) -> tuple[str, SongMetadata]:
    title = None
    fields: dict[str, str] = {}
    tags: list[tuple[str, str]] = []
    for token in tokens:
        value = (token.value or "").strip()
        if not value:
            continue
        target = _METADATA_FIELDS.get(token.key)
        if target == "title" and title is None:
            title = value
        elif target and target != "title" and target not in fields:
            fields[target] = value
        else:
            tags.append((token.key, value))
    return title or "", SongMetadata(tags=tuple(tags), **fields)


def _diagnostic(
    severity: Severity, category: DiagnosticCategory, message: str, line_number: int | None
) -> ParseDiagnostic:
    return ParseDiagnostic(severity, category, message, line_number)
