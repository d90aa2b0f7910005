import pytest

from songplan.exceptions import PlannerConfigError
from songplan.importer import load_song
from songplan.models import LyricLine, PartDefinition, PartInstance, PartKind, Song, SongMetadata
from songplan.sheet import (
    CrossReference,
    SheetBlock,
    SheetConfig,
    SheetRow,
    chord_row,
    paginate,
    plan_sheet,
    render_sheet_text,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _song():
    verse = PartDefinition(
        "Verse 1",
        PartKind.VERSE,
        (
            LyricLine.from_text("Amazing grace", chords=[(0, "C"), (8, "G")]),
            LyricLine.from_text("how sweet the sound"),
        ),
    )
    chorus = PartDefinition(
        "Chorus", PartKind.CHORUS, (LyricLine.from_text("My chains are gone", chords=[(3, "D")]),)
    )
    return Song(
        title="Amazing Grace",
        metadata=SongMetadata(author="John Newton", key="G"),
        definitions=(verse, chorus),
        instances=(
            PartInstance("Verse 1"),
            PartInstance("Chorus"),
            PartInstance("Verse 1"),
            PartInstance("Chorus", repeat_count=2),
        ),
    )


def _block(label, rows):
    return SheetBlock(label, PartKind.VERSE, tuple(SheetRow(str(i)) for i in range(rows)))


# ---------------------------------------------------------------------------
# chord_row
# ---------------------------------------------------------------------------


def test_chord_row_at_anchor_columns():
    line = LyricLine.from_text("Amazing grace", chords=[(0, "C"), (8, "G")])
    assert chord_row(line) == "C       G"


def test_colliding_chords_pushed_apart():
    line = LyricLine.from_text("abc", chords=[(0, "Cmaj7"), (2, "G")])
    assert chord_row(line) == "Cmaj7 G"
    assert chord_row(line, spacing=2) == "Cmaj7  G"


def test_chord_only_line_row():
    line = LyricLine.from_text("", chords=[(0, "D"), (0, "G"), (0, "A")])
    assert chord_row(line) == "D G A"


def test_annotation_marked_with_star():
    line = LyricLine.from_text("Slowly", annotations=[(0, "Rit.")])
    assert chord_row(line) == "*Rit."


def test_tab_expanded_with_tab_width():
    line = LyricLine.from_text("a\tb", chords=[(2, "G")])
    assert chord_row(line, tab_width=4) == "    G"


# ---------------------------------------------------------------------------
# plan_sheet
# ---------------------------------------------------------------------------


def test_one_block_per_definition_in_definition_order():
    plan = plan_sheet(_song())
    assert [b.label for b in plan.blocks] == ["Verse 1", "Chorus"]
    assert plan.blocks[0].rows[0] == SheetRow("Amazing grace", "C       G")
    assert plan.blocks[0].rows[1] == SheetRow("how sweet the sound", "")


def test_cross_references_for_later_instances():
    plan = plan_sheet(_song())
    verse, chorus = plan.blocks
    assert verse.references == (CrossReference(3),)
    assert chorus.references == (CrossReference(4, repeat_count=2),)
    assert chorus.header == "Chorus  -> also at 4 (x2)"


def test_first_performance_repeat_count_in_header():
    definitions = (
        PartDefinition("Verse 1", PartKind.VERSE, (LyricLine.from_text("a"),)),
        PartDefinition("Chorus", PartKind.CHORUS, (LyricLine.from_text("b"),)),
    )
    song = Song(
        definitions=definitions,
        instances=(PartInstance("Verse 1", repeat_count=2), PartInstance("Chorus")),
    )
    plan = plan_sheet(song)
    assert plan.blocks[0].repeat_count == 2
    assert plan.blocks[0].references == ()
    assert render_sheet_text(plan) == "Verse 1 (x2)\na\n\nChorus\nb\n"


def test_order_directive_repeat_shown_on_sheet():
    song, _ = load_song("Order: Verse 1 x2, Chorus\nVerse 1:\na\nChorus:\nb\n")
    assert "Verse 1 (x2)\na\n" in render_sheet_text(plan_sheet(song))


def test_chord_past_lyric_end_keeps_its_column():
    song, diagnostics = load_song("Verse 1\nC        G       D\nAmazing grace\n")
    plan = plan_sheet(song)
    assert plan.blocks[0].rows[0] == SheetRow("Amazing grace", "C        G       D")
    assert diagnostics == ()


def test_show_chords_false():
    definition = PartDefinition(
        "Intro", PartKind.INTRO, (LyricLine.from_text("", chords=[(0, "D")]), LyricLine.from_text("la"))
    )
    song = Song(definitions=(definition,), instances=(PartInstance("Intro"),))
    plan = plan_sheet(song, SheetConfig(show_chords=False))
    assert plan.blocks[0].rows == (SheetRow("la"),)


def test_single_page_by_default():
    plan = plan_sheet(_song())
    assert len(plan.pages) == 1
    assert plan.pages[0].blocks == plan.blocks


def test_empty_song():
    plan = plan_sheet(Song())
    assert plan.blocks == ()
    assert plan.pages == ()


def test_sheet_does_not_depend_on_call_count():
    song = _song()
    assert plan_sheet(song) == plan_sheet(song)


def test_sheet_to_dict():
    data = plan_sheet(_song()).to_dict()
    assert data["blocks"][1]["references"] == [
        {"position": 4, "repeat_count": 2, "override_text": None}
    ]
    assert data["pages"][0]["number"] == 1
    assert data["metadata"]["key"] == "G"


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


def test_blocks_packed_with_separator_row():
    # header + 2 rows = 3; two blocks need 3 + 1 + 3 = 7 rows
    blocks = (_block("A", 2), _block("B", 2))
    assert len(paginate(blocks, 7)) == 1
    pages = paginate(blocks, 6)
    assert [[b.label for b in p.blocks] for p in pages] == [["A"], ["B"]]
    assert [p.number for p in pages] == [1, 2]


def test_tall_block_split_at_row_boundaries():
    blocks = (_block("A", 1), _block("Long", 5), _block("C", 1))
    pages = paginate(blocks, 5)
    layout = [[(b.label, len(b.rows), b.continued) for b in p.blocks] for p in pages]
    assert layout == [
        [("A", 1, False)],
        [("Long", 4, False)],
        [("Long", 1, True), ("C", 1, False)],
    ]
    for page in pages:
        assert sum(b.height for b in page.blocks) + len(page.blocks) - 1 <= 5


def test_references_stay_on_first_piece():
    block = SheetBlock("Long", PartKind.VERSE, tuple(SheetRow("x") for _ in range(5)), (CrossReference(3),))
    pages = paginate((block,), 3)
    pieces = [b for p in pages for b in p.blocks]
    assert pieces[0].references == (CrossReference(3),)
    assert all(p.references == () for p in pieces[1:])
    assert pieces[1].header == "Long (cont.)"


def test_repeat_count_stays_on_first_piece():
    block = SheetBlock("Long", PartKind.VERSE, tuple(SheetRow("x") for _ in range(5)), repeat_count=2)
    pieces = [b for p in paginate((block,), 3) for b in p.blocks]
    assert pieces[0].header == "Long (x2)"
    assert all(p.header == "Long (cont.)" for p in pieces[1:])


@pytest.mark.parametrize(
    "config",
    [
        SheetConfig(chord_spacing=0),
        SheetConfig(max_rows_per_page=1),
        SheetConfig(max_rows_per_page=0),
        SheetConfig(tab_width=0),
        SheetConfig(show_chords="no"),
    ],
)
def test_invalid_sheet_config(config):
    with pytest.raises(PlannerConfigError):
        plan_sheet(_song(), config)


# ---------------------------------------------------------------------------
# render_sheet_text
# ---------------------------------------------------------------------------


def test_render_sheet_text():
    text = render_sheet_text(plan_sheet(_song()))
    assert text == (
        "Amazing Grace\n"
        "John Newton | Key: G\n"
        "\n"
        "Verse 1  -> also at 3\n"
        "C       G\n"
        "Amazing grace\n"
        "how sweet the sound\n"
        "\n"
        "Chorus  -> also at 4 (x2)\n"
        "   D\n"
        "My chains are gone\n"
    )


def test_render_pages_separated():
    text = render_sheet_text(plan_sheet(_song(), SheetConfig(max_rows_per_page=3)))
    assert "-- page 2 --" in text
