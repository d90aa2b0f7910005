import logging
import re
from dataclasses import replace
from pathlib import PurePath

from .dialects.base import Dialect
from .models import ParseResult
from .parser import ALIGNMENT_TOLERANCE, parse
from .registry import resolve_dialect
from .tokenizer import normalize_text, tokenize

logger = logging.getLogger(__name__)


def title_from_filename(filename: str) -> str:
    """``"songs/amazing_grace.cho"`` -> ``"Amazing Grace"``.

    Names that already contain capitals or spaces are kept as written apart
    from separator characters.
    """
    stem = PurePath(filename).stem
    words = re.sub(r"[_\-]+", " ", stem).split()
    if stem.islower():
        words = [w.capitalize() for w in words]
    return " ".join(words)


def load_song(
    text: str | bytes,
    dialect: str | Dialect | None = None,
    filename: str | None = None,
    *,
    alignment_tolerance: int = ALIGNMENT_TOLERANCE,
) -> ParseResult:
    """Detect the dialect of *text*, tokenize and parse it.

    Args:
        text:      Song source.
        dialect:   Dialect name or instance; detected when None.
        filename:  Source file name, used for dialect detection by suffix and
                   as the title when the song declares none.

    Raises:
        UnsupportedDialectError: If *dialect* names no known dialect.
    """
    text = normalize_text(text)
    chosen = resolve_dialect(dialect, text, filename)
    logger.debug("Loading %s as %s", filename or "<text>", chosen.name)

    result = parse(tokenize(text, chosen), chosen, alignment_tolerance=alignment_tolerance)
    if not result.song.title and filename:
        song = replace(result.song, title=title_from_filename(filename))
        result = ParseResult(song, result.diagnostics)
    return result
