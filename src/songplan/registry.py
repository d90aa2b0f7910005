import logging
from pathlib import PurePath

from .dialects.base import Dialect
from .dialects.cantara import CantaraDialect
from .dialects.chordpro import ChordProDialect
from .dialects.plain import PlainDialect
from .exceptions import UnsupportedDialectError

logger = logging.getLogger(__name__)

# Detection order matters: PlainDialect accepts everything and must stay last.
_DIALECTS: list[type[Dialect]] = [
    ChordProDialect,
    CantaraDialect,
    PlainDialect,
]


def available_dialects() -> list[str]:
    return [cls.name for cls in _DIALECTS]


def get_dialect(name: str) -> Dialect:
    """Return an instantiated dialect by registry name.

    Raises UnsupportedDialectError if no dialect has that name.
    """
    for cls in _DIALECTS:
        if cls.name == name.strip().lower():
            return cls()
    raise UnsupportedDialectError(name)


def dialect_for_filename(filename: str) -> Dialect | None:
    """Return the dialect registered for *filename*'s suffix, if any."""
    suffix = PurePath(filename).suffix.lower()
    for cls in _DIALECTS:
        if suffix and suffix in cls.extensions:
            return cls()
    return None


def detect_dialect(text: str) -> Dialect:
    """Return the first dialect whose ``can_handle`` accepts *text*."""
    for cls in _DIALECTS:
        if cls.can_handle(text):
            logger.debug("Detected %s dialect", cls.name)
            return cls()
    return PlainDialect()


def resolve_dialect(dialect: str | Dialect | None, text: str, filename: str | None = None) -> Dialect:
    """Pick a dialect: explicit choice, then file suffix, then content sniffing."""
    if isinstance(dialect, Dialect):
        return dialect
    if dialect:
        return get_dialect(dialect)
    if filename:
        by_suffix = dialect_for_filename(filename)
        if by_suffix is not None:
            return by_suffix
    return detect_dialect(text)
