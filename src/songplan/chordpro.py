"""ChordPro exporter.

Renders a :class:`~songplan.models.Song` to ChordPro (``.cho``) text that the
``chordpro`` dialect reads back into an equivalent song.

Part kind -> ChordPro directive mapping
---------------------------------------

+--------------+-----------------------------------------------------+
| Kind         | Directive pair                                      |
+==============+=====================================================+
| ``VERSE``    | ``{start_of_verse: Verse 1}`` / ``{end_of_verse}``  |
+--------------+-----------------------------------------------------+
| ``CHORUS``   | ``{start_of_chorus: Chorus}`` / ``{end_of_chorus}`` |
+--------------+-----------------------------------------------------+
| ``BRIDGE``   | ``{start_of_bridge: Bridge}`` / ``{end_of_bridge}`` |
+--------------+-----------------------------------------------------+
| ``INTRO``    | ``{start_of_intro: Intro}`` / ``{end_of_intro}``    |
+--------------+-----------------------------------------------------+
| ``OUTRO``    | ``{start_of_outro: Outro}`` / ``{end_of_outro}``    |
+--------------+-----------------------------------------------------+
| ``OTHER``    | ``{start_of_part: Solo}`` / ``{end_of_part}``       |
+--------------+-----------------------------------------------------+
| unnamed part | no wrapper directive                                |
+--------------+-----------------------------------------------------+

Parts are written in performance order.  The first performance of a part
carries its content; later ones are ``{chorus: Name}`` for choruses and
``{comment: Repeat Name}`` otherwise.  Parts that are never performed follow
at the end.

Usage::

    from songplan.chordpro import ChordProFormatter
    text = ChordProFormatter().render(song)
    Path("output.cho").write_text(text)
"""

from .models import LyricLine, PartDefinition, PartInstance, PartKind, SegmentType, Song

_SECTIONS = {
    PartKind.VERSE: "verse",
    PartKind.CHORUS: "chorus",
    PartKind.BRIDGE: "bridge",
    PartKind.INTRO: "intro",
    PartKind.OUTRO: "outro",
    PartKind.OTHER: "part",
}


class ChordProFormatter:
    """Render a :class:`~songplan.models.Song` to ChordPro text."""

    def render(self, song: Song) -> str:
        """Return ChordPro text for *song*.

        The returned string ends with a single newline and uses Unix line
        endings (``\\n``) throughout.
        """
        parts: list[str] = []

        # --- Metadata block ---
        if song.title:
            parts.append(f"{{title: {song.title}}}")
        meta = song.metadata
        if meta.author:
            parts.append(f"{{artist: {meta.author}}}")
        if meta.key:
            parts.append(f"{{key: {meta.key}}}")
        if meta.tempo:
            parts.append(f"{{tempo: {meta.tempo}}}")
        if meta.language:
            parts.append(f"{{meta: language {meta.language}}}")
        for name, value in meta.tags:
            parts.append(f"{{meta: {name} {value}}}")

        # --- Parts in performance order ---
        performed: set[str] = set()
        for instance in song.instances:
            definition = song.definition(instance.name)
            parts.append("")  # blank line before every part
            if instance.name in performed:
                parts.append(_render_recall(definition, instance, instance.repeat_count))
                continue
            performed.add(instance.name)
            parts.extend(_render_part(definition))
            if instance.repeat_count > 1:
                parts.append(_render_recall(definition, instance, instance.repeat_count - 1))

        # --- Parts never performed ---
        for definition in song.definitions:
            if definition.name not in performed:
                parts.append("")
                parts.extend(_render_part(definition))

        return "\n".join(parts).lstrip("\n") + "\n"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def render_line(line: LyricLine) -> str:
    """``C@0 "Amazing " G@8 "grace"`` -> ``"[C]Amazing [G]grace"``."""
    pieces = []
    for segment in line.segments:
        if segment.type is SegmentType.CHORD:
            pieces.append(f"[{segment.value}]")
        elif segment.type is SegmentType.ANNOTATION:
            pieces.append(f"[*{segment.value}]")
        else:
            pieces.append(segment.value)
    return "".join(pieces)


def _render_part(definition: PartDefinition) -> list[str]:
    """Return the lines for one part (no trailing blank line)."""
    lines = [render_line(line) for line in definition.lines]
    if not definition.name:
        # Unlabeled: just emit content lines with no wrapper
        return lines
    section = _SECTIONS[definition.kind]
    return [f"{{start_of_{section}: {definition.name}}}", *lines, f"{{end_of_{section}}}"]


def _render_recall(definition: PartDefinition, instance: PartInstance, count: int) -> str:
    if not definition.name:
        return "{comment: Again from the top}"
    name = definition.name
    if definition.kind is PartKind.CHORUS and count == 1 and not instance.override_text:
        return f"{{chorus: {name}}}"
    text = f"Repeat {name}"
    if count > 1:
        text += f" x{count}"
    if instance.override_text:
        text += ": " + " / ".join(instance.override_lines)
    return f"{{comment: {text}}}"
