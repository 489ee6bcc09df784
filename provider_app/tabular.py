"""Header-plus-rows delimited text parsing.

The provider export is a simple comma separated file: one record per line,
fields optionally wrapped in double quotes, and ``""`` inside a quoted field
standing for a literal quote. Quoted fields may contain the delimiter but
not line breaks.
"""
from __future__ import annotations

import re

_LINE_BREAK = re.compile(r"\r?\n")


class ParseError(ValueError):
    """Raised when the input has no header row."""


def parse_line(line: str, delimiter: str = ",") -> list[str]:
    """Split one line into fields on unquoted delimiters.

    A quote toggles quoted state wherever it appears; two consecutive quotes
    inside a quoted field decode to one literal quote.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == delimiter and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    fields.append("".join(current))
    return fields


def split_lines(text: str) -> list[str]:
    trimmed = text.strip()
    if not trimmed:
        return []
    return _LINE_BREAK.split(trimmed)


def parse_table(text: str, delimiter: str = ",") -> list[dict[str, str]]:
    """Parse delimited text into field-keyed rows.

    - The first line is the header; field names map positionally.
    - Rows shorter than the header get "" for the missing trailing fields.
    - Fields beyond the header are ignored.
    - Blank lines never produce a row.

    Raises:
        ParseError: if the (trimmed) input has no lines at all.
    """
    lines = split_lines(text)
    if not lines:
        raise ParseError("Input has no header row")

    headers = parse_line(lines[0], delimiter)
    rows: list[dict[str, str]] = []
    for line in lines[1:]:
        if not line.strip():
            continue
        values = parse_line(line, delimiter)
        rows.append({
            header: values[idx] if idx < len(values) else ""
            for idx, header in enumerate(headers)
        })
    return rows
