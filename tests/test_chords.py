import pytest

from songplan.chords import (
    chord_columns,
    chord_token_name,
    is_chord_line,
    is_chord_name,
    split_inline_chords,
)

# ---------------------------------------------------------------------------
# is_chord_name
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "name",
    ["A", "Am", "Am7", "Amaj7", "Asus4", "G/B", "C#m7", "Bbm", "E7(#9)", "C7sus4", "Hm7",
     "D/f#", "/b", "N.C.", "Cadd9", "Gdim"],
)
def test_chord_names(name):
    assert is_chord_name(name)


@pytest.mark.parametrize("word", ["Amazing", "grace", "I", "Be", "x2", "Hello", ""])
def test_words_are_not_chords(word):
    assert not is_chord_name(word)


def test_chord_token_name_strips_brackets():
    assert chord_token_name("[Am7]") == "Am7"
    assert chord_token_name("G") == "G"
    assert chord_token_name("[Chorus]") is None
    assert chord_token_name("word") is None


# ---------------------------------------------------------------------------
# Chord lines
# ---------------------------------------------------------------------------


def test_chord_columns_unbracketed():
    assert chord_columns("C       G") == [(0, "C"), (8, "G")]


def test_chord_columns_keep_leading_indent():
    assert chord_columns("    D   A/C#") == [(4, "D"), (8, "A/C#")]


def test_chord_columns_bracketed():
    assert chord_columns("[D]     [G]") == [(0, "D"), (8, "G")]


def test_chord_columns_skip_fillers():
    assert chord_columns("| C  | G  |") == [(2, "C"), (7, "G")]


def test_chord_columns_ignore_brackets_when_disabled():
    assert chord_columns("[D] G", bracketed=False) == [(4, "G")]


def test_is_chord_line():
    assert is_chord_line("C       G")
    assert is_chord_line("[D]  [G]  [A]")
    assert is_chord_line("| Am | F | x2")
    assert not is_chord_line("Amazing grace")
    assert not is_chord_line("A new day")
    assert not is_chord_line("| | |")
    assert not is_chord_line("")


def test_bracketed_chord_line_rejected_when_disabled():
    assert not is_chord_line("[D]  [G]", bracketed=False)


# ---------------------------------------------------------------------------
# split_inline_chords
# ---------------------------------------------------------------------------


def test_split_inline_chords():
    text, chords, notes = split_inline_chords("[C]Amazing [G]grace")
    assert text == "Amazing grace"
    assert chords == [(0, "C"), (8, "G")]
    assert notes == []


def test_split_inline_annotation():
    text, chords, notes = split_inline_chords("[*Rit.]Slowly [D]now")
    assert text == "Slowly now"
    assert notes == [(0, "Rit.")]
    assert chords == [(7, "D")]


def test_split_inline_trailing_chord_clamped():
    text, chords, _ = split_inline_chords("the sound [D]  ")
    assert text == "the sound"
    assert chords == [(9, "D")]


def test_split_inline_chords_only():
    text, chords, _ = split_inline_chords("[G] [D]")
    assert text == ""
    assert chords == [(0, "G"), (0, "D")]


def test_split_inline_empty_brackets_dropped():
    text, chords, _ = split_inline_chords("a[]b")
    assert text == "ab"
    assert chords == []
