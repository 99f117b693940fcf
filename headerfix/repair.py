"""
Header repair for delimited files whose header uses another delimiter than the body.

Strategies (all yield the same table for well-formed input):
- lines:   fix the first line, re-join the remaining lines
- replace: replace the wrong delimiter in the whole file (unsafe when the
           wrong delimiter occurs in body values)
- splice:  skip past the header by character offset, prepend the fixed header
- seek:    seek past the header by byte offset, read the rest, prepend the fixed header
"""

from __future__ import annotations

import codecs
import csv
import io
import logging
import os
import re
import warnings
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

import pandas as pd
from charset_normalizer import from_bytes

from .errors import DelimiterCollisionError, DelimiterCollisionWarning, ParseError
from .models import ReadOptions
from .rules import (
    DEFAULT_RIGHT_DELIMITER,
    DEFAULT_STRATEGY,
    DEFAULT_WRONG_DELIMITER,
    ENCODING_SAMPLE_BYTES,
    FALLBACK_ENCODING,
    FORBIDDEN_DELIMITERS,
    STRATEGIES,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

_NEWLINE = re.compile(r"\r\n|\r|\n")


def _check_delimiters(wrong: str, right: str) -> None:
    for name, value in (("wrong", wrong), ("right", right)):
        if len(value) != 1:
            raise ValueError(f"{name} delimiter must be a single character, got {value!r}")
        if value in FORBIDDEN_DELIMITERS:
            raise ValueError(f"{name} delimiter {value!r} is not allowed")


def fix_header(header: str, wrong: str, right: str) -> str:
    return header.replace(wrong, right)


def split_header(text: str) -> Tuple[str, str]:
    """Return the first line of ``text`` and its terminator ("" when there is none)."""
    match = _NEWLINE.search(text)
    if match is None:
        return text, ""
    return text[: match.start()], match.group()


def header_offset(header: str, terminator: str, encoding: Optional[str] = None) -> int:
    """
    Position of the first body character.

    With ``encoding`` the offset is in bytes (a UTF-8 BOM included), otherwise
    in characters. Single-character delimiters keep the fixed header as long
    as the original one.
    """
    if encoding is None:
        return len(header) + len(terminator)

    codec = codecs.lookup(encoding).name
    bom = 0
    if codec == "utf-8-sig":
        codec = "utf-8"
        bom = len(codecs.BOM_UTF8)
    return bom + len(header.encode(codec)) + len(terminator.encode(codec))


def detect_encoding(path: PathLike) -> str:
    with open(path, "rb") as fh:
        sample = fh.read(ENCODING_SAMPLE_BYTES)

    if sample.startswith(codecs.BOM_UTF8):
        return "utf-8-sig"

    match = from_bytes(sample).best()
    if match is None or match.encoding in ("ascii", "utf_8"):
        # ascii is widened: non-ascii bytes may sit past the sample
        return FALLBACK_ENCODING
    return match.encoding


def _resolve_encoding(path: PathLike, options: ReadOptions) -> str:
    encoding = options.encoding or detect_encoding(path)
    logger.debug("%s: encoding %s", path, encoding)
    return encoding


def _assemble(fixed_header: str, body: str) -> str:
    if not body:
        return fixed_header
    return fixed_header + "\n" + body


def read_header(path: PathLike, encoding: Optional[str] = None) -> str:
    encoding = encoding or detect_encoding(path)
    try:
        with open(path, "r", encoding=encoding, newline="") as fh:
            first = fh.readline()
    except UnicodeDecodeError as exc:
        raise ParseError(f"cannot decode as {encoding}: {exc}", source=os.fspath(path)) from exc
    if not first:
        raise ParseError("file is empty, no header line", source=os.fspath(path))
    return first.rstrip("\r\n")


# --- strategies ---


def repair_lines(
    path: PathLike,
    wrong: str,
    right: str,
    encoding: str,
    fixed_header: Optional[str] = None,
    strict: bool = False,
) -> str:
    """Body lines are kept verbatim, terminators included."""
    with open(path, "r", encoding=encoding, newline="") as fh:
        first = fh.readline()
        body = [line for line in fh]

    if not first:
        raise ParseError("file is empty, no header line", source=os.fspath(path))

    if fixed_header is None:
        fixed_header = fix_header(first.rstrip("\r\n"), wrong, right)
    return _assemble(fixed_header, "".join(body))


def _scan_collisions(path: PathLike, body: str, wrong: str, strict: bool) -> None:
    hits = body.count(wrong)
    if not hits:
        return

    message = (
        f"wrong delimiter {wrong!r} occurs {hits} time(s) in the body; "
        "a whole-file replace corrupts those values"
    )
    if strict:
        raise DelimiterCollisionError(message, source=os.fspath(path))
    logger.warning("%s: %s", path, message)
    warnings.warn(f"{os.fspath(path)}: {message}", DelimiterCollisionWarning, stacklevel=3)


def repair_replace(
    path: PathLike,
    wrong: str,
    right: str,
    encoding: str,
    fixed_header: Optional[str] = None,
    strict: bool = False,
) -> str:
    with open(path, "r", encoding=encoding, newline="") as fh:
        text = fh.read()

    if not text:
        raise ParseError("file is empty, no header line", source=os.fspath(path))

    header, terminator = split_header(text)
    _scan_collisions(path, text[header_offset(header, terminator):], wrong, strict)

    repaired = text.replace(wrong, right)
    if fixed_header is not None:
        header, terminator = split_header(repaired)
        repaired = _assemble(fixed_header, repaired[header_offset(header, terminator):])
    return repaired


def repair_splice(
    path: PathLike,
    wrong: str,
    right: str,
    encoding: str,
    fixed_header: Optional[str] = None,
    strict: bool = False,
) -> str:
    with open(path, "r", encoding=encoding, newline="") as fh:
        text = fh.read()

    if not text:
        raise ParseError("file is empty, no header line", source=os.fspath(path))

    header, terminator = split_header(text)
    own_fixed = fix_header(header, wrong, right)
    offset = header_offset(own_fixed, terminator)
    logger.debug("%s: body starts at character %d", path, offset)

    return _assemble(own_fixed if fixed_header is None else fixed_header, text[offset:])


def repair_seek(
    path: PathLike,
    wrong: str,
    right: str,
    encoding: str,
    fixed_header: Optional[str] = None,
    strict: bool = False,
) -> str:
    """The skip happens on the file handle; the body is never split into lines."""
    with open(path, "rb") as fh:
        first = fh.readline()
        if not first:
            raise ParseError("file is empty, no header line", source=os.fspath(path))

        header, terminator = split_header(first.decode(encoding))
        own_fixed = fix_header(header, wrong, right)
        offset = header_offset(own_fixed, terminator, encoding=encoding)
        logger.debug("%s: body starts at byte %d", path, offset)

        fh.seek(offset)
        rest = fh.read()

    # the BOM was consumed with the header
    codec = "utf-8" if codecs.lookup(encoding).name == "utf-8-sig" else encoding
    return _assemble(own_fixed if fixed_header is None else fixed_header, rest.decode(codec))


_REPAIRERS: Dict[str, Callable[..., str]] = {
    "lines": repair_lines,
    "replace": repair_replace,
    "splice": repair_splice,
    "seek": repair_seek,
}


# --- parsing ---


def check_field_counts(text: str, delimiter: str, source: Optional[str] = None) -> int:
    """
    Every non-blank body row must have as many fields as the header.
    Returns the header width.
    """
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
    header = next(reader, None)
    if not header:
        raise ParseError("no header line", source=source)

    width = len(header)
    for row in reader:
        if not row:
            continue
        if len(row) != width:
            raise ParseError(
                f"expected {width} fields, saw {len(row)}",
                source=source,
                line=reader.line_num,
            )
    return width


def parse_table(
    text: str,
    right: str,
    options: Optional[ReadOptions] = None,
    source: Optional[str] = None,
) -> pd.DataFrame:
    options = options or ReadOptions()
    check_field_counts(text, right, source=source)

    try:
        df = pd.read_csv(
            io.StringIO(text),
            sep=right,
            decimal=options.decimal,
            thousands=options.thousands,
            dtype=options.dtypes or None,
            index_col=False,
        )
    except ValueError as exc:
        raise ParseError(str(exc), source=source) from exc

    for column in options.date_columns:
        if column not in df.columns:
            raise ParseError(f"unknown date column {column!r}", source=source)
        try:
            df[column] = pd.to_datetime(df[column], format=options.date_format)
        except ValueError as exc:
            raise ParseError(f"column {column!r}: {exc}", source=source) from exc

    return df


# --- public entry points ---


def repair_file(
    path: PathLike,
    wrong: str = DEFAULT_WRONG_DELIMITER,
    right: str = DEFAULT_RIGHT_DELIMITER,
    strategy: str = DEFAULT_STRATEGY,
    options: Optional[ReadOptions] = None,
    fixed_header: Optional[str] = None,
) -> str:
    """Repaired text of one file, ready for a ``right``-delimited parser."""
    _check_delimiters(wrong, right)
    if strategy not in _REPAIRERS:
        raise ValueError(f"unknown strategy {strategy!r}, expected one of {STRATEGIES}")

    options = options or ReadOptions()
    encoding = _resolve_encoding(path, options)
    try:
        return _REPAIRERS[strategy](
            path,
            wrong,
            right,
            encoding,
            fixed_header=fixed_header,
            strict=options.strict_delimiters,
        )
    except UnicodeDecodeError as exc:
        raise ParseError(f"cannot decode as {encoding}: {exc}", source=os.fspath(path)) from exc


def read_file(
    path: PathLike,
    wrong: str = DEFAULT_WRONG_DELIMITER,
    right: str = DEFAULT_RIGHT_DELIMITER,
    strategy: str = DEFAULT_STRATEGY,
    options: Optional[ReadOptions] = None,
    fixed_header: Optional[str] = None,
) -> pd.DataFrame:
    options = options or ReadOptions()
    text = repair_file(path, wrong, right, strategy, options, fixed_header)
    df = parse_table(text, right, options, source=os.fspath(path))
    logger.info("Loaded %s with %d rows (strategy=%s)", os.fspath(path), len(df), strategy)
    return df


def read_many(
    paths: Iterable[PathLike],
    wrong: str = DEFAULT_WRONG_DELIMITER,
    right: str = DEFAULT_RIGHT_DELIMITER,
    strategy: str = DEFAULT_STRATEGY,
    options: Optional[ReadOptions] = None,
    skip_bad_files: bool = False,
) -> pd.DataFrame:
    """
    Read files sharing one defective header into a single table.

    The fixed header is computed once from the first file with a readable
    header line and reused for every file. Rows keep file
    order, then in-file order. The first ParseError aborts the whole read
    unless ``skip_bad_files`` is set.
    """
    paths = list(paths)
    if not paths:
        raise ValueError("no files to read")

    _check_delimiters(wrong, right)
    options = options or ReadOptions()

    fixed_header: Optional[str] = None
    frames: List[pd.DataFrame] = []
    for path in paths:
        try:
            if fixed_header is None:
                fixed_header = fix_header(read_header(path, options.encoding), wrong, right)
                logger.debug("shared fixed header from %s: %r", path, fixed_header)
            frames.append(read_file(path, wrong, right, strategy, options, fixed_header))
        except ParseError as exc:
            if not skip_bad_files:
                raise
            logger.warning("Skipping %s: %s", path, exc)

    if not frames:
        raise ParseError("every file failed to parse")
    return pd.concat(frames, ignore_index=True)


def read(
    source: Union[PathLike, List[PathLike]],
    wrong: str = DEFAULT_WRONG_DELIMITER,
    right: str = DEFAULT_RIGHT_DELIMITER,
    strategy: str = DEFAULT_STRATEGY,
    options: Optional[ReadOptions] = None,
) -> pd.DataFrame:
    if isinstance(source, (list, tuple)):
        return read_many(source, wrong, right, strategy, options)
    return read_file(source, wrong, right, strategy, options)
