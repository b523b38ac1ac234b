"""
ingest.py - Validate, read and parse uploaded expense CSVs.

The parser is line-based: each line is split by ``split_csv_line`` which
honors double-quote escaping, then rows are keyed by canonical header names.
Malformed rows are dropped rather than rejected so a partially broken file
still yields a best-effort batch.
"""

import re
from pathlib import Path
from typing import Optional


MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024

_LINE_BREAK_RE = re.compile(r"\r?\n")
_HEADER_NOISE_RE = re.compile(r"[^a-z0-9]+")


class CSVFormatError(ValueError):
    """Raised when CSV text cannot form a header plus at least one data row."""


class CSVReadError(OSError):
    """Raised when the uploaded file cannot be read from disk."""


class CSVValidationError(ValueError):
    """Raised when an upload is rejected by name or size before parsing."""


def validate_csv_file(
    file: Optional[str | Path],
    size: Optional[int] = None,
    max_size: int = MAX_FILE_SIZE_BYTES,
) -> dict:
    """
    Check an upload before any parsing is attempted.

    Only the name and size are inspected, never the content.

    Args:
        file: Path or filename of the upload, or None.
        size: Size in bytes. Read from disk when omitted.
        max_size: Largest accepted size in bytes.

    Returns:
        ``{"is_valid": True}`` or ``{"is_valid": False, "error": message}``.
    """
    if not file:
        return {"is_valid": False, "error": "No file provided"}

    file = Path(file)
    if not file.name.lower().endswith(".csv"):
        return {"is_valid": False, "error": "File must be a CSV file"}

    if size is None:
        size = file.stat().st_size if file.exists() else 0
    if size > max_size:
        limit_mb = max_size // (1024 * 1024)
        return {"is_valid": False, "error": f"File size must be less than {limit_mb}MB"}

    return {"is_valid": True}


def read_csv_text(filepath: str | Path) -> str:
    """Read the whole upload into a string, falling back to latin-1."""
    filepath = Path(filepath)
    try:
        try:
            text = filepath.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            text = filepath.read_text(encoding="latin-1")
    except OSError as e:
        raise CSVReadError(f"Could not read {filepath.name}: {e}") from e
    return text


def split_csv_line(line: str) -> list[str]:
    """
    Split one CSV line into fields.

    A double quote toggles quoted mode, ``""`` inside quotes is a literal
    quote, and commas only separate fields outside quotes. An unterminated
    quote swallows the rest of the line. The trailing field is always
    emitted, so ``"a,"`` gives ``["a", ""]``.

    Args:
        line: A single line of CSV text without its line break.

    Returns:
        List of raw (untrimmed) field strings.
    """
    fields = []
    current = []
    in_quotes = False
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < len(line) and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    fields.append("".join(current))
    return fields


def canonical_header(name: str) -> str:
    """Lower-case a header and collapse non-alphanumeric runs to ``_``."""
    return _HEADER_NOISE_RE.sub("_", name.strip().lower())


def parse_csv(text: str) -> dict:
    """
    Parse CSV text into canonical headers and keyed rows.

    Blank lines are ignored. A data line is kept only when it has as many
    fields as the header and at least one non-blank field.

    Args:
        text: Full CSV document.

    Returns:
        Dict with keys:
            'headers' - canonical header keys, in file order
            'rows'    - list of dicts mapping header key to trimmed value
            'skipped' - number of data lines dropped as malformed or blank

    Raises:
        CSVFormatError: If ``text`` is not a string or lacks a data row.
    """
    if not isinstance(text, str):
        raise CSVFormatError("Invalid CSV content provided")

    text = text.lstrip("\ufeff")
    lines = [line for line in _LINE_BREAK_RE.split(text) if line.strip()]
    if len(lines) < 2:
        raise CSVFormatError("CSV file must contain at least a header row and one data row")

    headers = [canonical_header(h) for h in split_csv_line(lines[0])]

    rows = []
    skipped = 0
    for line in lines[1:]:
        values = split_csv_line(line)
        if len(values) != len(headers) or not any(v.strip() for v in values):
            skipped += 1
            continue
        rows.append({key: (value or "").strip() for key, value in zip(headers, values)})

    return {"headers": headers, "rows": rows, "skipped": skipped}


def load_upload(filepath: str | Path, max_size: int = MAX_FILE_SIZE_BYTES) -> dict:
    """
    Validate, read and parse a single uploaded CSV file.

    Args:
        filepath: Path to the CSV file.
        max_size: Largest accepted size in bytes.

    Returns:
        The ``parse_csv`` result for the file.

    Raises:
        CSVValidationError: If the file fails validation.
        CSVReadError: If the file cannot be read.
        CSVFormatError: If the content is not a usable CSV.
    """
    filepath = Path(filepath)
    check = validate_csv_file(filepath, max_size=max_size)
    if not check["is_valid"]:
        raise CSVValidationError(check["error"])

    parsed = parse_csv(read_csv_text(filepath))
    print(f"  Loaded {filepath.name}: {len(parsed['rows'])} rows")
    if parsed["skipped"]:
        print(f"  Skipped {parsed['skipped']} malformed or blank rows")
    return parsed
