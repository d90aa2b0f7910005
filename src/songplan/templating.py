"""Meta-line templates such as ``"{title} ({author})"``.

Fields are song metadata names (``title``, ``author``, ``key``, ``tempo``,
``language`` and any header tag).  A field the song does not carry renders as
an empty string, so ``"{title} ({ccli})"`` gives ``"Amazing Grace ()"``.
"""

from string import Formatter

from .exceptions import PlannerConfigError


class _BlankDefault(dict):
    def __missing__(self, key: str) -> str:
        return ""


def template_fields(template: str) -> list[str]:
    """Return the field names used by *template*, in order of appearance.

    Raises PlannerConfigError for malformed templates, positional fields
    (``{}``, ``{0}``) and attribute or index access (``{title.upper}``).
    """
    try:
        parsed = list(Formatter().parse(template))
    except ValueError as e:
        raise PlannerConfigError("meta_template", template, str(e)) from e

    fields = []
    for _, field_name, _, _ in parsed:
        if field_name is None:
            continue
        if not field_name.isidentifier():
            raise PlannerConfigError(
                "meta_template", template, f"field {{{field_name}}} is not a plain metadata name"
            )
        fields.append(field_name)
    return fields


def validate_template(template: str) -> None:
    template_fields(template)


def render_meta(template: str, values: dict[str, str]) -> str:
    """Fill *template* from *values*; unknown fields render empty."""
    validate_template(template)
    try:
        return template.format_map(_BlankDefault(values)).strip()
    except ValueError as e:
        # bad format spec, e.g. "{title:>x}"
        raise PlannerConfigError("meta_template", template, str(e)) from e
