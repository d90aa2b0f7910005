class SongplanError(Exception):
    """Base exception for songplan."""


class SongModelError(SongplanError, ValueError):
    """Raised when a model object would violate a structural invariant."""


class SongParseError(SongplanError):
    """Raised by strict callers when a parse produced error diagnostics."""

    def __init__(self, diagnostics):
        self.diagnostics = tuple(diagnostics)
        count = len(self.diagnostics)
        first = f"; first: {self.diagnostics[0]}" if self.diagnostics else ""
        super().__init__(f"{count} error(s) while parsing song{first}")


class PlannerConfigError(SongplanError, ValueError):
    """Raised when a planner is called with an invalid configuration."""

    def __init__(self, option: str, value, reason: str):
        self.option = option
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {option}={value!r}: {reason}")


class UnsupportedDialectError(SongplanError):
    """Raised when no dialect matches the given name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No song dialect named: {name}")


class FetchError(SongplanError):
    """Raised when an HTTP request for a song source fails."""

    def __init__(self, url: str, status_code: int):
        self.url = url
        self.status_code = status_code
        super().__init__(f"HTTP {status_code} fetching {url}")


class SourceError(SongplanError):
    """Raised when a local song source cannot be read."""

    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f"Cannot read {location}: {reason}")
