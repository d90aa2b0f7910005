"""Sheet planner: Song -> print layout with chords aligned over lyrics.

A sheet is a reference document.  Every part appears once, in definition
order, and later performances of it are listed as cross references on the
block ("-> also at 4, 6 (x2)") instead of being printed again.  A first
performance played more than once is marked on the label ("Verse 1 (x2)").

Chord anchors are turned back into columns using the same tab width the
tokenizer expands tabs with, so chords land where they were written.  Two
chords that would touch are pushed apart by ``chord_spacing`` columns.
"""

import logging
from dataclasses import dataclass, replace

from .exceptions import PlannerConfigError
from .models import LyricLine, PartKind, SegmentType, Song, SongMetadata
from .tokenizer import TAB_WIDTH

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SheetConfig:
    show_chords: bool = True
    chord_spacing: int = 1  # minimum blank columns between adjacent chords
    max_rows_per_page: int | None = None  # None: everything on one page
    tab_width: int = TAB_WIDTH

    def validate(self) -> None:
        if not isinstance(self.show_chords, bool):
            raise PlannerConfigError("show_chords", self.show_chords, "must be a boolean")
        for name, minimum in (("chord_spacing", 1), ("tab_width", 1)):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
                raise PlannerConfigError(name, value, f"must be an integer >= {minimum}")
        rows = self.max_rows_per_page
        if rows is not None and (isinstance(rows, bool) or not isinstance(rows, int) or rows < 2):
            # a page must hold a block header and at least one row
            raise PlannerConfigError("max_rows_per_page", rows, "must be None or an integer >= 2")


@dataclass(frozen=True)
class SheetRow:
    lyrics: str
    chords: str = ""  # chord names at their columns, "" when the line has none

    def to_dict(self) -> dict:
        return {"chords": self.chords, "lyrics": self.lyrics}


@dataclass(frozen=True)
class CrossReference:
    position: int  # 1-based index into the performance order
    repeat_count: int = 1
    override_text: str | None = None

    def describe(self) -> str:
        text = str(self.position)
        if self.repeat_count > 1:
            text += f" (x{self.repeat_count})"
        if self.override_text:
            text += " (variant)"
        return text

    def to_dict(self) -> dict:
        return {
            "position": self.position,
            "repeat_count": self.repeat_count,
            "override_text": self.override_text,
        }


@dataclass(frozen=True)
class SheetBlock:
    label: str
    kind: PartKind
    rows: tuple[SheetRow, ...] = ()
    references: tuple[CrossReference, ...] = ()
    continued: bool = False  # second or later piece of a block split across pages
    repeat_count: int = 1  # times the first performance is played

    @property
    def header(self) -> str:
        """The label line, "" when there is nothing to print above the rows."""
        text = self.label
        if self.repeat_count > 1:
            text = f"{text} (x{self.repeat_count})".strip()
        if self.continued:
            text = f"{text} (cont.)".strip()
        if self.references:
            also = ", ".join(r.describe() for r in self.references)
            text = f"{text}  -> also at {also}".strip()
        return text

    @property
    def height(self) -> int:
        """Rows this block occupies on a page, header included."""
        return len(self.rows) + (1 if self.header else 0)

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "kind": self.kind.value,
            "rows": [r.to_dict() for r in self.rows],
            "references": [r.to_dict() for r in self.references],
            "continued": self.continued,
            "repeat_count": self.repeat_count,
        }


@dataclass(frozen=True)
class SheetPage:
    number: int
    blocks: tuple[SheetBlock, ...] = ()

    def to_dict(self) -> dict:
        return {"number": self.number, "blocks": [b.to_dict() for b in self.blocks]}


@dataclass(frozen=True)
class SheetPlan:
    title: str
    metadata: SongMetadata
    blocks: tuple[SheetBlock, ...] = ()  # one per part definition, unsplit
    pages: tuple[SheetPage, ...] = ()

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "metadata": self.metadata.to_dict(),
            "blocks": [b.to_dict() for b in self.blocks],
            "pages": [p.to_dict() for p in self.pages],
        }


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


def chord_row(line: LyricLine, spacing: int = 1, tab_width: int = TAB_WIDTH) -> str:
    """Render the chords and annotations of *line* at their display columns.

    Annotations are shown with a leading ``*`` as in ChordPro.
    """
    text = line.text
    row = ""
    for segment in line.segments:
        if segment.type is SegmentType.TEXT:
            continue
        name = segment.value if segment.type is SegmentType.CHORD else f"*{segment.value}"
        column = len(text[: segment.offset].expandtabs(tab_width))
        if row:
            column = max(column, len(row) + spacing)
        row = row.ljust(column) + name
    return row


def _rows(lines: tuple[LyricLine, ...], config: SheetConfig) -> tuple[SheetRow, ...]:
    rows = []
    for line in lines:
        lyrics = line.text.expandtabs(config.tab_width).rstrip()
        if not config.show_chords:
            if line.is_chord_only:
                continue
            rows.append(SheetRow(lyrics))
            continue
        rows.append(SheetRow(lyrics, chord_row(line, config.chord_spacing, config.tab_width)))
    return tuple(rows)


def _cross_references(song: Song) -> tuple[dict[str, int], dict[str, list[CrossReference]]]:
    """Return the repeat count of each part's first performance and the later ones."""
    first_counts: dict[str, int] = {}
    references: dict[str, list[CrossReference]] = {}
    for position, instance in enumerate(song.instances, start=1):
        if instance.name not in first_counts:
            first_counts[instance.name] = instance.repeat_count
            continue
        references.setdefault(instance.name, []).append(
            CrossReference(position, instance.repeat_count, instance.override_text)
        )
    return first_counts, references


def _split_block(block: SheetBlock, limit: int) -> list[SheetBlock]:
    """Cut a block taller than *limit* into page-sized pieces at row boundaries."""
    if block.height <= limit:
        return [block]
    pieces = []
    rows = block.rows
    first = True
    while rows:
        piece = replace(
            block,
            rows=(),
            references=block.references if first else (),
            repeat_count=block.repeat_count if first else 1,
            continued=not first,
        )
        take = max(limit - piece.height, 1)
        pieces.append(replace(piece, rows=rows[:take]))
        rows = rows[take:]
        first = False
    return pieces


def paginate(blocks: tuple[SheetBlock, ...], max_rows: int | None) -> tuple[SheetPage, ...]:
    """Pack *blocks* onto pages of at most *max_rows* rows.

    Blocks on the same page are separated by one blank row.  A block that
    does not fit on a page of its own starts a fresh page and continues on
    the following ones.
    """
    if not blocks:
        return ()
    if max_rows is None:
        return (SheetPage(1, blocks),)

    pages: list[SheetPage] = []
    current: list[SheetBlock] = []
    used = 0

    def flush():
        nonlocal current, used
        if current:
            pages.append(SheetPage(len(pages) + 1, tuple(current)))
        current, used = [], 0

    for block in blocks:
        if block.height > max_rows:
            flush()
        for piece in _split_block(block, max_rows):
            need = piece.height + (1 if current else 0)
            if current and used + need > max_rows:
                flush()
                need = piece.height
            current.append(piece)
            used += need
    flush()
    return tuple(pages)


def plan_sheet(song: Song, config: SheetConfig | None = None) -> SheetPlan:
    """Lay *song* out as a print sheet.

    Raises:
        PlannerConfigError: If *config* is invalid.
    """
    config = config or SheetConfig()
    config.validate()

    first_counts, references = _cross_references(song)
    blocks = tuple(
        SheetBlock(
            label=definition.name,
            kind=definition.kind,
            rows=_rows(definition.lines, config),
            references=tuple(references.get(definition.name, ())),
            repeat_count=first_counts.get(definition.name, 1),
        )
        for definition in song.definitions
    )
    pages = paginate(blocks, config.max_rows_per_page)
    logger.debug("Planned %d sheet blocks on %d pages for %r", len(blocks), len(pages), song.title)
    return SheetPlan(song.title, song.metadata, blocks, pages)


# ---------------------------------------------------------------------------
# Text output
# ---------------------------------------------------------------------------


def render_sheet_text(plan: SheetPlan) -> str:
    """Render *plan* as monospaced text, one page after another."""
    out: list[str] = []
    if plan.title:
        out.append(plan.title)
        details = [
            value
            for value in (plan.metadata.author, plan.metadata.key and f"Key: {plan.metadata.key}")
            if value
        ]
        if details:
            out.append(" | ".join(details))
        out.append("")

    for page in plan.pages:
        if page.number > 1:
            out.append(f"-- page {page.number} --")
            out.append("")
        for index, block in enumerate(page.blocks):
            if index:
                out.append("")
            if block.header:
                out.append(block.header)
            for row in block.rows:
                if row.chords:
                    out.append(row.chords)
                if row.lyrics or not row.chords:
                    out.append(row.lyrics)
        out.append("")

    return "\n".join(out).rstrip("\n") + "\n"
