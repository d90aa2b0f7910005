import pytest

from songplan.exceptions import PlannerConfigError
from songplan.models import LyricLine, PartDefinition, PartInstance, PartKind, Song, SongMetadata
from songplan.presentation import (
    PresentationConfig,
    SlideType,
    chunk_lines,
    plan_presentation,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _part(name, kind, *texts):
    return PartDefinition(name, kind, tuple(LyricLine.from_text(t) for t in texts))


def _song(instances, *definitions, title="Amazing Grace", author="John Newton"):
    return Song(
        title=title,
        metadata=SongMetadata(author=author),
        definitions=definitions,
        instances=tuple(PartInstance(*i) if isinstance(i, tuple) else PartInstance(i) for i in instances),
    )


def _scenario_a():
    return _song(
        ["Verse 1", "Chorus", "Verse 1", "Chorus"],
        _part("Verse 1", PartKind.VERSE, "line1", "line2"),
        _part("Chorus", PartKind.CHORUS, "line1"),
    )


# ---------------------------------------------------------------------------
# chunk_lines
# ---------------------------------------------------------------------------


def test_chunk_balanced():
    assert [len(c) for c in chunk_lines(tuple("abcde"), 4)] == [3, 2]
    assert [len(c) for c in chunk_lines(tuple("abcdefg"), 3)] == [3, 2, 2]


def test_chunk_exact_fit():
    assert chunk_lines(("a", "b"), 2) == [("a", "b")]


def test_chunk_empty():
    assert chunk_lines((), 3) == [()]


def test_chunk_preserves_order():
    chunks = chunk_lines(tuple("abcdefghij"), 4)
    assert sum(chunks, ()) == tuple("abcdefghij")
    assert all(len(c) <= 4 for c in chunks)


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


def test_scenario_repeats_tagged():
    plan = plan_presentation(_scenario_a(), PresentationConfig(max_lines_per_slide=2))
    assert len(plan) == 4
    assert [s.part_name for s in plan] == ["Verse 1", "Chorus", "Verse 1", "Chorus"]
    assert [s.is_repeat for s in plan] == [False, False, True, True]
    assert plan.slides[0].lines == ("line1", "line2")


def test_default_config():
    plan = plan_presentation(_scenario_a())
    assert len(plan) == 4
    assert all(s.slide_type is SlideType.CONTENT for s in plan)


def test_part_split_across_slides():
    song = _song(["Verse 1"], _part("Verse 1", PartKind.VERSE, *"abcde"))
    plan = plan_presentation(song, PresentationConfig(max_lines_per_slide=2))
    assert [s.lines for s in plan] == [("a", "b"), ("c", "d"), ("e",)]
    assert [(s.part_slide_index, s.part_slide_count) for s in plan] == [(0, 3), (1, 3), (2, 3)]


def test_keep_part_together_exceeds_limit():
    song = _song(["Verse 1"], _part("Verse 1", PartKind.VERSE, *"abcde"))
    plan = plan_presentation(song, PresentationConfig(max_lines_per_slide=2, keep_part_together=True))
    assert len(plan) == 1
    assert plan.slides[0].lines == tuple("abcde")


def test_expand_repeats():
    song = _song([("Chorus", 3)], _part("Chorus", PartKind.CHORUS, "a"))
    plan = plan_presentation(song)
    assert len(plan) == 3
    assert [s.is_repeat for s in plan] == [False, True, True]
    assert all(s.repeat_count == 1 for s in plan)


def test_no_expand_repeats_carries_count():
    song = _song([("Chorus", 3)], _part("Chorus", PartKind.CHORUS, "a"))
    plan = plan_presentation(song, PresentationConfig(expand_repeats=False))
    assert len(plan) == 1
    assert plan.slides[0].repeat_count == 3
    assert not plan.slides[0].is_repeat


def test_override_text_replaces_lines_and_is_not_repeat():
    song = _song(
        ["Verse 1", ("Verse 1", 1, "changed ending")],
        _part("Verse 1", PartKind.VERSE, "a", "b"),
    )
    plan = plan_presentation(song)
    assert plan.slides[1].lines == ("changed ending",)
    assert not plan.slides[1].is_repeat


def test_chord_only_lines_omitted():
    definition = PartDefinition(
        "Verse 1",
        PartKind.VERSE,
        (LyricLine.from_text("", chords=[(0, "D")]), LyricLine.from_text("Amazing grace")),
    )
    plan = plan_presentation(_song(["Verse 1"], definition))
    assert plan.slides[0].lines == ("Amazing grace",)


def test_empty_part_yields_one_empty_slide():
    song = _song(["Solo"], PartDefinition("Solo"))
    plan = plan_presentation(song, PresentationConfig(max_lines_per_slide=1))
    assert len(plan) == 1
    assert plan.slides[0].lines == ()
    assert plan.slides[0].part_name == "Solo"


def test_empty_song_has_no_slides():
    assert len(plan_presentation(Song())) == 0


def test_planning_is_deterministic():
    song = _scenario_a()
    config = PresentationConfig(max_lines_per_slide=1, spoiler=True, meta_template="{title}")
    assert plan_presentation(song, config) == plan_presentation(song, config)
    assert plan_presentation(song, config).to_dict() == plan_presentation(song, config).to_dict()


# ---------------------------------------------------------------------------
# Decoration
# ---------------------------------------------------------------------------


def test_title_slide():
    plan = plan_presentation(_scenario_a(), PresentationConfig(show_title_slide=True))
    assert plan.slides[0].slide_type is SlideType.TITLE
    assert plan.slides[0].lines == ("Amazing Grace",)
    assert len(plan.content_slides) == 4


def test_empty_last_slide():
    plan = plan_presentation(_scenario_a(), PresentationConfig(empty_last_slide=True))
    assert plan.slides[-1].slide_type is SlideType.EMPTY
    assert plan.slides[-1].lines == ()


def test_spoiler_previews_next_slide():
    plan = plan_presentation(_scenario_a(), PresentationConfig(max_lines_per_slide=1, spoiler=True))
    assert plan.slides[0].lines == ("line1",)
    assert plan.slides[0].spoiler == "line2"
    assert plan.slides[1].spoiler == "line1"
    assert plan.slides[-1].spoiler is None


def test_meta_on_first_and_last_slide():
    config = PresentationConfig(meta_template="{title} ({author})")
    plan = plan_presentation(_scenario_a(), config)
    metas = [s.meta for s in plan]
    assert metas == ["Amazing Grace (John Newton)", None, None, "Amazing Grace (John Newton)"]


def test_meta_first_slide_only():
    config = PresentationConfig(meta_template="{title}", meta_on_last_slide=False)
    metas = [s.meta for s in plan_presentation(_scenario_a(), config)]
    assert metas == ["Amazing Grace", None, None, None]


def test_meta_missing_field_blank():
    song = _song(["Chorus"], _part("Chorus", PartKind.CHORUS, "a"), author=None)
    plan = plan_presentation(song, PresentationConfig(meta_template="{title} ({author})"))
    assert plan.slides[0].meta == "Amazing Grace ()"


def test_slide_plan_to_dict():
    data = plan_presentation(_scenario_a()).to_dict()
    assert data["title"] == "Amazing Grace"
    assert data["slides"][2]["is_repeat"] is True
    assert data["slides"][1]["kind"] == "chorus"
    assert data["slides"][0]["slide_type"] == "content"


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------


def test_zero_max_lines_rejected_and_song_reusable():
    song = _scenario_a()
    before = song.to_dict()
    with pytest.raises(PlannerConfigError) as exc_info:
        plan_presentation(song, PresentationConfig(max_lines_per_slide=0))
    assert exc_info.value.option == "max_lines_per_slide"
    assert song.to_dict() == before
    assert len(plan_presentation(song, PresentationConfig(max_lines_per_slide=2))) == 4


@pytest.mark.parametrize("value", [-1, True, 2.5, "4", None])
def test_invalid_max_lines_rejected(value):
    with pytest.raises(PlannerConfigError):
        PresentationConfig(max_lines_per_slide=value).validate()


def test_non_bool_flag_rejected():
    with pytest.raises(PlannerConfigError) as exc_info:
        PresentationConfig(spoiler="yes").validate()
    assert exc_info.value.option == "spoiler"


def test_invalid_meta_template_rejected():
    with pytest.raises(PlannerConfigError):
        plan_presentation(_scenario_a(), PresentationConfig(meta_template="{title"))
