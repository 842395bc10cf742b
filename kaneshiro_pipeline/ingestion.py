"""CSV decoding for spreadsheet exports.

Lines are split on ``\\n`` before field scanning, so a quoted field cannot
span physical lines. Exports with embedded newlines inside quotes decode
into broken rows; this is a known limitation of the line-oriented decoder.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

QUOTE = '"'
DEFAULT_DELIMITER = ","


def _normalize_headers(raw_headers: Sequence[Any]) -> list[str]:
    headers: list[str] = []
    seen: dict[str, int] = {}
    for idx, value in enumerate(raw_headers):
        base = str(value).strip() if value not in (None, "") else ""
        if not base:
            base = f"column_{idx + 1}"
        count = seen.get(base, 0)
        name = base if count == 0 else f"{base}_{count + 1}"
        seen[base] = count + 1
        headers.append(name)
    return headers


def parse_csv_line(line: str, delimiter: str = DEFAULT_DELIMITER) -> list[str]:
    """Split one line into fields, honouring quotes and doubled-quote escapes."""
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    idx = 0
    length = len(line)
    while idx < length:
        char = line[idx]
        if char == QUOTE:
            if in_quotes and idx + 1 < length and line[idx + 1] == QUOTE:
                current.append(QUOTE)
                idx += 1
            else:
                in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
        idx += 1

    fields.append("".join(current))
    return fields


def split_lines(text: str) -> list[str]:
    lines: list[str] = []
    for raw_line in text.split("\n"):
        line = raw_line[:-1] if raw_line.endswith("\r") else raw_line
        if line.strip():
            lines.append(line)
    return lines


def decode_csv(text: str, delimiter: str = DEFAULT_DELIMITER) -> List[Dict[str, str]]:
    """Decode delimited text into one mapping per data row, keyed by header."""
    if not text:
        return []
    lines = split_lines(text)
    if not lines:
        return []

    headers = _normalize_headers(parse_csv_line(lines[0], delimiter))
    rows: list[dict[str, str]] = []
    for line in lines[1:]:
        values = parse_csv_line(line, delimiter)
        row: dict[str, str] = {}
        for idx, name in enumerate(headers):
            row[name] = values[idx] if idx < len(values) else ""
        rows.append(row)
    return rows
