"""Presentation planner: Song -> ordered slides for projection.

Each part instance in performance order becomes one slide group (or one group
per repetition when repeats are expanded).  A group's display lines are split
into chunks of at most ``max_lines_per_slide`` lines, never inside a line.

With ``keep_part_together`` a part that would need splitting stays on one
slide even above the limit: readability wins over the size bound, so callers
using it must be prepared for oversized slides.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum

from .exceptions import PlannerConfigError
from .models import PartKind, Song
from .templating import render_meta, validate_template

logger = logging.getLogger(__name__)


class SlideType(Enum):
    CONTENT = "content"
    TITLE = "title"
    EMPTY = "empty"  # blank closing slide


@dataclass(frozen=True)
class Slide:
    slide_type: SlideType
    part_name: str = ""
    kind: PartKind | None = None
    lines: tuple[str, ...] = ()
    is_repeat: bool = False  # same part (and override) was shown earlier
    repeat_count: int = 1  # > 1 only when repeats are not expanded
    part_slide_index: int = 0  # position of this chunk within its group
    part_slide_count: int = 1
    spoiler: str | None = None  # first line of the next content slide
    meta: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "lines", tuple(self.lines))

    def to_dict(self) -> dict:
        return {
            "slide_type": self.slide_type.value,
            "part_name": self.part_name,
            "kind": self.kind.value if self.kind else None,
            "lines": list(self.lines),
            "is_repeat": self.is_repeat,
            "repeat_count": self.repeat_count,
            "part_slide_index": self.part_slide_index,
            "part_slide_count": self.part_slide_count,
            "spoiler": self.spoiler,
            "meta": self.meta,
        }


@dataclass(frozen=True)
class SlidePlan:
    title: str
    slides: tuple[Slide, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "slides", tuple(self.slides))

    def __len__(self) -> int:
        return len(self.slides)

    def __iter__(self):
        return iter(self.slides)

    @property
    def content_slides(self) -> tuple[Slide, ...]:
        return tuple(s for s in self.slides if s.slide_type is SlideType.CONTENT)

    def to_dict(self) -> dict:
        return {"title": self.title, "slides": [s.to_dict() for s in self.slides]}


@dataclass(frozen=True)
class PresentationConfig:
    """Options for :func:`plan_presentation`.

    Construction never fails; :meth:`validate` runs when a plan is made.
    """

    max_lines_per_slide: int = 4
    keep_part_together: bool = False
    expand_repeats: bool = True
    show_title_slide: bool = False
    meta_template: str | None = None  # e.g. "{title} ({author})"
    meta_on_first_slide: bool = True
    meta_on_last_slide: bool = True
    spoiler: bool = False
    empty_last_slide: bool = False

    def validate(self) -> None:
        """Raise :class:`PlannerConfigError` for the first invalid option."""
        limit = self.max_lines_per_slide
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise PlannerConfigError("max_lines_per_slide", limit, "must be an integer")
        if limit <= 0:
            raise PlannerConfigError("max_lines_per_slide", limit, "must be greater than 0")
        for name in (
            "keep_part_together",
            "expand_repeats",
            "show_title_slide",
            "meta_on_first_slide",
            "meta_on_last_slide",
            "spoiler",
            "empty_last_slide",
        ):
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise PlannerConfigError(name, value, "must be a boolean")
        if self.meta_template is not None:
            if not isinstance(self.meta_template, str):
                raise PlannerConfigError("meta_template", self.meta_template, "must be a string")
            validate_template(self.meta_template)


def chunk_lines(lines: tuple[str, ...], max_lines: int) -> list[tuple[str, ...]]:
    """Split *lines* into ``ceil(n / max_lines)`` chunks of near-equal size.

    Earlier chunks take the remainder: 5 lines at 4 per slide gives 3 + 2,
    not 4 + 1.  An empty input gives one empty chunk.
    """
    if not lines:
        return [()]
    count = math.ceil(len(lines) / max_lines)
    size, extra = divmod(len(lines), count)
    chunks = []
    start = 0
    for index in range(count):
        end = start + size + (1 if index < extra else 0)
        chunks.append(tuple(lines[start:end]))
        start = end
    return chunks


def _display_lines(song: Song, instance) -> tuple[str, ...]:
    if instance.override_text:
        return instance.override_lines
    definition = song.definition(instance.name)
    # chord-only (instrumental) lines have no text to show
    return tuple(line.text.strip() for line in definition.lines if line.text.strip())


def plan_presentation(song: Song, config: PresentationConfig | None = None) -> SlidePlan:
    """Lay *song* out as slides.

    Args:
        song:   A parsed song; never modified.
        config: Pagination and decoration options; defaults apply when None.

    Returns:
        The :class:`SlidePlan`.  Identical inputs give identical plans.

    Raises:
        PlannerConfigError: If *config* is invalid.
    """
    config = config or PresentationConfig()
    config.validate()

    content: list[Slide] = []
    seen: set[tuple[str, str | None]] = set()
    for instance in song.instances:
        definition = song.definition(instance.name)
        lines = _display_lines(song, instance)
        if config.expand_repeats:
            groups = [1] * instance.repeat_count
        else:
            groups = [instance.repeat_count]

        identity = (instance.name, instance.override_text)
        for repeat_count in groups:
            is_repeat = identity in seen
            seen.add(identity)
            if config.keep_part_together:
                chunks = [lines]
            else:
                chunks = chunk_lines(lines, config.max_lines_per_slide)
            for index, chunk in enumerate(chunks):
                content.append(
                    Slide(
                        SlideType.CONTENT,
                        part_name=definition.name,
                        kind=definition.kind,
                        lines=chunk,
                        is_repeat=is_repeat,
                        repeat_count=repeat_count,
                        part_slide_index=index,
                        part_slide_count=len(chunks),
                    )
                )

    meta = _meta_text(song, config)
    content = _decorate(content, meta, config)

    slides: list[Slide] = []
    if config.show_title_slide:
        slides.append(Slide(SlideType.TITLE, lines=(song.title,) if song.title else (), meta=meta))
    slides.extend(content)
    if config.empty_last_slide:
        slides.append(Slide(SlideType.EMPTY))

    logger.debug("Planned %d slides for %r", len(slides), song.title)
    return SlidePlan(song.title, tuple(slides))


def _meta_text(song: Song, config: PresentationConfig) -> str | None:
    if not config.meta_template:
        return None
    return render_meta(config.meta_template, song.template_values()) or None


def _decorate(content: list[Slide], meta: str | None, config: PresentationConfig) -> list[Slide]:
    """Attach spoiler previews and meta lines to content slides."""
    last = len(content) - 1
    result = []
    for index, slide in enumerate(content):
        changes = {}
        if config.spoiler and index < last:
            following = content[index + 1].lines
            if following:
                changes["spoiler"] = following[0]
        if meta and (
            (config.meta_on_first_slide and index == 0)
            or (config.meta_on_last_slide and index == last)
        ):
            changes["meta"] = meta
        result.append(replace(slide, **changes) if changes else slide)
    return result
