import json
import logging
import re
import sys
from pathlib import Path

import click

from .chordpro import ChordProFormatter
from .exceptions import FetchError, PlannerConfigError, SourceError, UnsupportedDialectError
from .importer import load_song
from .models import ParseResult
from .presentation import PresentationConfig, SlidePlan, SlideType, plan_presentation
from .registry import available_dialects
from .sheet import SheetConfig, plan_sheet, render_sheet_text
from .sources import read_source


def _slugify(text: str) -> str:
    """Convert a string to a lowercase hyphenated slug suitable for filenames."""
    text = text.lower()
    text = re.sub(r"[^\w\s-]", "", text)   # drop punctuation
    text = re.sub(r"[\s_]+", "-", text)     # spaces/underscores → hyphens
    text = re.sub(r"-{2,}", "-", text)      # collapse multiple hyphens
    return text.strip("-")


def _default_filename(title: str) -> str:
    return f"{_slugify(title) or 'song'}.cho"


def _load(source: str, dialect: str | None) -> ParseResult:
    """Read and parse *source*, exiting with status 1 on failure."""
    try:
        text, name = read_source(source)
    except FetchError as exc:
        msg = f"Error: Could not fetch {exc.url}"
        if exc.status_code:
            msg += f" (HTTP {exc.status_code})"
        click.echo(msg, err=True)
        sys.exit(1)
    except SourceError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    try:
        return load_song(text, dialect=dialect, filename=name)
    except UnsupportedDialectError as exc:
        click.echo(f"Error: {exc}", err=True)
        click.echo(f"Available dialects: {', '.join(available_dialects())}", err=True)
        sys.exit(1)


def _report(source: str, result: ParseResult) -> None:
    for diagnostic in result.diagnostics:
        click.echo(f"{source}: {diagnostic}", err=True)


def _echo_json(data: dict) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


_dialect_option = click.option(
    "--dialect",
    type=click.Choice(available_dialects(), case_sensitive=False),
    default=None,
    help="Song markup dialect (default: detect from file suffix and content).",
)


@click.group()
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging.")
def main(verbose: bool) -> None:
    """Parse song lyrics into slides for projection or a printable sheet.

    \b
    SOURCE is a file path or an http(s) URL.  Supported markups:
      - plain     chords over lyrics, "Verse 1:" / "[Chorus]" markers
      - chordpro  {start_of_verse}, inline [G]chords
      - cantara   #title: headers, blank-line separated blocks
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


@main.command()
@click.argument("source")
@_dialect_option
@click.option("--strict", is_flag=True, default=False,
              help="Exit with status 1 if the song has structural errors.")
def check(source: str, dialect: str | None, strict: bool) -> None:
    """Parse SOURCE and list its parts and any problems found."""
    result = _load(source, dialect)
    song = result.song
    _report(source, result)

    click.echo(f"Title: {song.title or '(untitled)'}")
    if song.metadata.author:
        click.echo(f"Author: {song.metadata.author}")
    click.echo("Parts:")
    for definition in song.definitions:
        label = definition.name or "(unnamed)"
        click.echo(f"  {label} [{definition.kind.value}] {len(definition.lines)} line(s)")
    order = ", ".join(
        f"{i.name or '(unnamed)'}" + (f" x{i.repeat_count}" if i.repeat_count > 1 else "")
        for i in song.instances
    )
    click.echo(f"Order: {order}")
    click.echo(f"{len(result.errors)} error(s), {len(result.warnings)} warning(s)")

    if strict and result.has_errors:
        sys.exit(1)


# ---------------------------------------------------------------------------
# slides
# ---------------------------------------------------------------------------


def _render_slides(plan: SlidePlan) -> str:
    out = []
    for number, slide in enumerate(plan, start=1):
        if slide.slide_type is SlideType.CONTENT:
            header = slide.part_name or "(unnamed)"
            if slide.part_slide_count > 1:
                header += f" {slide.part_slide_index + 1}/{slide.part_slide_count}"
            if slide.repeat_count > 1:
                header += f" x{slide.repeat_count}"
            if slide.is_repeat:
                header += " (repeat)"
        else:
            header = slide.slide_type.value
        out.append(f"--- {number}: {header} ---")
        out.extend(slide.lines)
        if slide.spoiler:
            out.append(f"  > {slide.spoiler}")
        if slide.meta:
            out.append(f"  ~ {slide.meta}")
        out.append("")
    return "\n".join(out)


@main.command()
@click.argument("source")
@_dialect_option
@click.option("--max-lines", default=4, show_default=True,
              help="Maximum lyric lines per slide.")
@click.option("--keep-together/--split", default=False, show_default=True,
              help="Keep every part on one slide even above --max-lines.")
@click.option("--expand-repeats/--no-expand-repeats", default=True, show_default=True,
              help="Give every repetition its own slides.")
@click.option("--title-slide", is_flag=True, default=False, help="Start with a title slide.")
@click.option("--spoiler", is_flag=True, default=False,
              help="Preview the first line of the next slide.")
@click.option("--meta", "meta_template", default=None, metavar="TEMPLATE",
              help='Meta line on first and last slide, e.g. "{title} ({author})".')
@click.option("--empty-last-slide", is_flag=True, default=False, help="End with a blank slide.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the plan as JSON.")
def slides(
    source: str,
    dialect: str | None,
    max_lines: int,
    keep_together: bool,
    expand_repeats: bool,
    title_slide: bool,
    spoiler: bool,
    meta_template: str | None,
    empty_last_slide: bool,
    as_json: bool,
) -> None:
    """Plan projection slides for SOURCE."""
    result = _load(source, dialect)
    _report(source, result)

    config = PresentationConfig(
        max_lines_per_slide=max_lines,
        keep_part_together=keep_together,
        expand_repeats=expand_repeats,
        show_title_slide=title_slide,
        meta_template=meta_template,
        spoiler=spoiler,
        empty_last_slide=empty_last_slide,
    )
    try:
        plan = plan_presentation(result.song, config)
    except PlannerConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if as_json:
        _echo_json(plan.to_dict())
    else:
        click.echo(_render_slides(plan), nl=False)


# ---------------------------------------------------------------------------
# sheet
# ---------------------------------------------------------------------------


@main.command()
@click.argument("source")
@_dialect_option
@click.option("--no-chords", is_flag=True, default=False, help="Print lyrics only.")
@click.option("--chord-spacing", default=1, show_default=True,
              help="Minimum spaces between adjacent chords.")
@click.option("--rows-per-page", type=int, default=None,
              help="Split the sheet into pages of at most N rows.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the plan as JSON.")
def sheet(
    source: str,
    dialect: str | None,
    no_chords: bool,
    chord_spacing: int,
    rows_per_page: int | None,
    as_json: bool,
) -> None:
    """Lay SOURCE out as a print sheet with chords over lyrics."""
    result = _load(source, dialect)
    _report(source, result)

    config = SheetConfig(
        show_chords=not no_chords,
        chord_spacing=chord_spacing,
        max_rows_per_page=rows_per_page,
    )
    try:
        plan = plan_sheet(result.song, config)
    except PlannerConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if as_json:
        _echo_json(plan.to_dict())
    else:
        click.echo(render_sheet_text(plan), nl=False)


# ---------------------------------------------------------------------------
# convert
# ---------------------------------------------------------------------------


@main.command()
@click.argument("source")
@_dialect_option
@click.option("-o", "--output", "output_path", default=None, metavar="PATH",
              help="Output file path (default: <title>.cho)")
@click.option("--stdout", is_flag=True, default=False,
              help="Print to stdout instead of writing a file.")
def convert(source: str, dialect: str | None, output_path: str | None, stdout: bool) -> None:
    """Convert SOURCE to ChordPro."""
    result = _load(source, dialect)
    _report(source, result)

    chordpro_text = ChordProFormatter().render(result.song)

    if stdout:
        click.echo(chordpro_text, nl=False)
        return

    dest = Path(output_path) if output_path else Path(_default_filename(result.song.title))
    dest.write_text(chordpro_text, encoding="utf-8")
    click.echo(f"Written to {dest}")
