"""
Field codec for the ``;``-delimited flat files.

Quoting rule
------------
A value containing the delimiter, a double quote, ``\\n`` or ``\\r`` is
wrapped in double quotes with every internal quote doubled.  Any other
value is written verbatim.  Because a value containing a quote is always
wrapped, an unwrapped field never starts with a quote, which makes
``unescape_field(escape_field(x)) == x`` hold for every string.

Rows are read back with ``csv.reader`` configured with the same dialect,
so a quoted field may span several physical lines.
"""

from __future__ import annotations

import csv
from typing import Iterable, Iterator, TextIO

DELIMITER = ";"
QUOTE = '"'
ID_SEPARATOR = ","

_NEEDS_QUOTING = (DELIMITER, QUOTE, "\n", "\r")


class FlatFileDialect(csv.Dialect):
    delimiter = DELIMITER
    quotechar = QUOTE
    doublequote = True
    skipinitialspace = False
    lineterminator = "\n"
    quoting = csv.QUOTE_MINIMAL
    strict = False


def escape_field(value: object) -> str:
    if value is None:
        return ""
    text = str(value)
    if any(token in text for token in _NEEDS_QUOTING):
        return QUOTE + text.replace(QUOTE, QUOTE * 2) + QUOTE
    return text


def unescape_field(raw: str) -> str:
    if len(raw) >= 2 and raw.startswith(QUOTE) and raw.endswith(QUOTE):
        return raw[1:-1].replace(QUOTE * 2, QUOTE)
    return raw


def encode_row(values: Iterable[object]) -> str:
    return DELIMITER.join(escape_field(v) for v in values)


def read_rows(handle: TextIO) -> Iterator[tuple[int, list[str]]]:
    """Yield ``(line_number, fields)`` for each record, header included.

    ``line_number`` is the physical line on which the record starts.
    """
    reader = csv.reader(handle, dialect=FlatFileDialect)
    start = 1
    for row in reader:
        yield start, row
        start = reader.line_num + 1


def encode_ids(ids: Iterable[str]) -> str:
    return ID_SEPARATOR.join(ids)


def decode_ids(raw: str) -> list[str]:
    """Split a comma-joined ID list, dropping blanks and repeated IDs."""
    seen: list[str] = []
    for part in raw.split(ID_SEPARATOR):
        national_id = part.strip()
        if national_id and national_id not in seen:
            seen.append(national_id)
    return seen


def parse_bool(raw: str) -> bool:
    text = raw.strip().lower()
    if text in ("true", "1", "yes"):
        return True
    if text in ("false", "0", "no", ""):
        return False
    raise ValueError(f"not a boolean: {raw!r}")
