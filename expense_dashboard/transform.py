"""
transform.py - Normalize parsed CSV rows into canonical expense transactions.

Responsibilities:
- Resolve each logical field from an ordered list of column-name synonyms
- Normalize dates, statuses, free-text fields and amounts
- Force the expense sign convention (every amount is negative)
- Drop zero-amount rows
"""

import math
import time
from datetime import date, datetime
from typing import Optional

import pandas as pd

from expense_dashboard.config import DEFAULTS


TRANSACTION_COLUMNS = [
    "id", "date", "description", "category", "amount",
    "merchant", "employee", "department", "status", "source",
]

STATUSES = ("approved", "pending", "rejected")

DATE_FORMATS = ["%Y-%m-%d", "%m/%d/%Y", "%d/%m/%Y", "%m-%d-%Y", "%Y/%m/%d"]

# Used when no synonym column holds a value
FIELD_FALLBACKS = {
    "description": "Transaction",
    "category": "Other",
    "merchant": "Unknown",
    "employee": "Unknown",
    "department": "General",
}

SOURCE_CSV_UPLOAD = "csv_upload"


def clean_string(value) -> str:
    """Trim a value to a string; None and blanks become ``""``."""
    if value is None:
        return ""
    return str(value).strip()


def parse_amount(value) -> float:
    """
    Coerce an amount string to float.

    Strips currency symbols, thousands separators and spaces, and treats
    parentheses as a negative. Anything unparseable becomes 0.0.
    """
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        s = clean_string(value).replace(",", "").replace("$", "").replace(" ", "")
        negative = s.startswith("(") and s.endswith(")")
        if negative:
            s = s[1:-1]
        try:
            number = float(s)
        except ValueError:
            return 0.0
        if negative:
            number = -number
    if not math.isfinite(number):
        return 0.0
    return number


def _iso(d) -> str:
    # strftime drops leading zeros on years below 1000
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def _today(today: Optional[date] = None) -> str:
    return _iso(today or date.today())


def normalize_date(value, today: Optional[date] = None) -> str:
    """
    Normalize a date string to ``YYYY-MM-DD``.

    Tries the common explicit formats first (month-first before day-first),
    then a generic pandas parse. Time of day and timezone are discarded.
    Blank or unparseable input falls back to today's date.

    Args:
        value: Raw date value from the CSV.
        today: Override for "today", mainly for tests.

    Returns:
        Canonical calendar date string.
    """
    s = clean_string(value)
    if not s:
        return _today(today)

    for fmt in DATE_FORMATS:
        try:
            return _iso(datetime.strptime(s, fmt))
        except ValueError:
            continue

    try:
        parsed = pd.to_datetime(s)
    except (ValueError, TypeError, OverflowError):
        return _today(today)
    if pd.isna(parsed):
        return _today(today)
    return _iso(parsed)


def normalize_status(value, aliases: Optional[dict[str, list[str]]] = None) -> str:
    """Map free-text approval status onto approved / rejected / pending."""
    s = clean_string(value).lower()
    aliases = aliases or DEFAULTS["status_aliases"]
    for status, words in aliases.items():
        if s in words:
            return status
    return "pending"


def _to_int32(n: int) -> int:
    n &= 0xFFFFFFFF
    return n - 0x100000000 if n & 0x80000000 else n


def category_color(name: str) -> str:
    """
    Derive a stable HSL display color from a category name.

    Uses a 31-multiplier string hash with 32-bit wraparound mapped onto the
    hue circle at fixed saturation and lightness. Collisions are acceptable.
    """
    h = 0
    for ch in str(name):
        h = ord(ch) + (_to_int32(_to_int32(h) << 5) - h)
    hue = abs(h) % 360
    return f"hsl({hue}, 70%, 50%)"


def _resolve(row: dict, candidates: list[str]) -> str:
    """Return the first non-blank value among the candidate columns."""
    for key in candidates:
        value = clean_string(row.get(key))
        if value:
            return value
    return ""


def to_transactions(
    rows,
    synonyms: Optional[dict[str, list[str]]] = None,
    status_aliases: Optional[dict[str, list[str]]] = None,
    today: Optional[date] = None,
) -> pd.DataFrame:
    """
    Convert parsed CSV rows into a canonical transactions DataFrame.

    Every amount is stored as ``-abs(amount)``: all uploaded rows are treated
    as expenses whatever their sign in the file. Rows whose amount comes out
    as zero are dropped and counted in ``df.attrs["dropped_zero_amount"]``.

    Args:
        rows: List of row dicts from ``parse_csv`` (or the whole parse result).
        synonyms: Candidate column keys per logical field. Defaults to the
                  ``columns`` table in config.
        status_aliases: Status vocabulary. Defaults to config.
        today: Fallback date for rows without a parseable date.

    Returns:
        DataFrame with TRANSACTION_COLUMNS, one row per kept transaction.

    Raises:
        ValueError: If ``rows`` is not a list.
    """
    if isinstance(rows, dict) and isinstance(rows.get("rows"), list):
        rows = rows["rows"]
    if not isinstance(rows, list):
        raise ValueError("Invalid CSV data provided")

    synonyms = {**DEFAULTS["columns"], **(synonyms or {})}
    base_id = int(time.time() * 1000)

    records = []
    dropped = 0
    for index, row in enumerate(rows):
        amount = -abs(parse_amount(_resolve(row, synonyms["amount"])))
        if amount == 0:
            dropped += 1
            continue

        record = {
            "id": base_id + index,
            "date": normalize_date(_resolve(row, synonyms["date"]), today=today),
            "amount": amount,
            "status": normalize_status(_resolve(row, synonyms["status"]), status_aliases),
            "source": SOURCE_CSV_UPLOAD,
        }
        for field, fallback in FIELD_FALLBACKS.items():
            record[field] = _resolve(row, synonyms[field]) or fallback
        records.append(record)

    df = pd.DataFrame(records, columns=TRANSACTION_COLUMNS)
    df["amount"] = df["amount"].astype(float)
    df.attrs["dropped_zero_amount"] = dropped
    return df


def transform(parsed: dict, settings: Optional[dict] = None) -> pd.DataFrame:
    """
    Run the mapping stage on a parse result and report what happened.

    Args:
        parsed: Result of ``ingest.parse_csv`` / ``ingest.load_upload``.
        settings: Loaded config; defaults are used when omitted.

    Returns:
        Canonical transactions DataFrame.
    """
    settings = settings or DEFAULTS
    print("Transforming transactions...")
    df = to_transactions(
        parsed,
        synonyms=settings.get("columns"),
        status_aliases=settings.get("status_aliases"),
    )

    dropped = df.attrs.get("dropped_zero_amount", 0)
    if dropped:
        print(f"  Dropped {dropped} rows with a zero or missing amount")

    cat_counts = df["category"].value_counts()
    print("  Category distribution:")
    for cat, count in cat_counts.items():
        print(f"    {cat}: {count}")

    return df
