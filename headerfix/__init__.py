from .errors import (
    DelimiterCollisionError,
    DelimiterCollisionWarning,
    HeaderRepairError,
    ParseError,
)
from .models import ReadOptions
from .repair import fix_header, read, read_file, read_many

__all__ = [
    "DelimiterCollisionError",
    "DelimiterCollisionWarning",
    "HeaderRepairError",
    "ParseError",
    "ReadOptions",
    "fix_header",
    "read",
    "read_file",
    "read_many",
]
