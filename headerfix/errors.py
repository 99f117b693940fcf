from __future__ import annotations

from typing import Optional


class HeaderRepairError(Exception):
    pass


class ParseError(HeaderRepairError, ValueError):
    """A repaired file could not be turned into a table."""

    def __init__(self, message: str, source: Optional[str] = None, line: Optional[int] = None):
        self.message = message
        self.source = source
        self.line = line
        super().__init__(str(self))

    def __str__(self) -> str:
        where = self.source or "<text>"
        if self.line is not None:
            where = f"{where}:{self.line}"
        return f"{where}: {self.message}"


class DelimiterCollisionError(ParseError):
    pass


class DelimiterCollisionWarning(UserWarning):
    """The wrong delimiter occurs inside body values; a global replace corrupts them."""
