"""
analyze.py - Derive dashboard analytics from a batch of transactions.

Produces:
- Total spend and a synthetic monthly budget
- Spend by category and by department, with percentages
- A contiguous monthly trend, truncated or padded to a display width
- Average and largest transaction, and the covered date range

The snapshot is always rebuilt from the full transaction list; nothing here
updates a previous result in place.
"""

from typing import Optional

import pandas as pd

from expense_dashboard.transform import category_color


def _as_frame(transactions) -> pd.DataFrame:
    """Accept a transactions DataFrame or a list of transaction dicts."""
    if transactions is None:
        return pd.DataFrame(columns=["date", "amount", "category", "department"])
    if isinstance(transactions, pd.DataFrame):
        return transactions
    return pd.DataFrame(list(transactions))


def _parse_dates(df: pd.DataFrame) -> pd.Series:
    """Parse the date column, leaving NaT where a date is unusable."""
    return pd.to_datetime(df["date"], errors="coerce", format="mixed")


def empty_analytics() -> dict:
    """The snapshot for an empty or missing batch."""
    return {
        "total_spend": 0,
        "monthly_budget": 0,
        "categories": [],
        "departments": [],
        "monthly_trend": [],
        "transaction_count": 0,
        "avg_transaction_amount": 0,
        "max_transaction": 0,
        "date_range": {"start": None, "end": None},
    }


def spend_by(df: pd.DataFrame, column: str, total_spend: float) -> list[dict]:
    """
    Roll up absolute spend per distinct value of ``column``.

    Groups keep first-seen order before a stable descending sort, so equal
    amounts stay in file order.

    Args:
        df: Transactions DataFrame.
        column: Grouping column, e.g. 'category' or 'department'.
        total_spend: Batch total used for percentages.

    Returns:
        List of ``{"name", "amount", "percentage"}`` dicts, largest first.
    """
    totals = (
        df.assign(abs_amount=df["amount"].abs())
        .groupby(column, sort=False)["abs_amount"]
        .sum()
        .sort_values(ascending=False, kind="stable")
    )
    return [
        {
            "name": name,
            "amount": float(amount),
            "percentage": float(amount / total_spend * 100) if total_spend > 0 else 0,
        }
        for name, amount in totals.items()
    ]


def monthly_trend(
    transactions,
    min_months: int = 6,
    max_months: int = 12,
    padding: str = "leading",
) -> list[dict]:
    """
    Build the monthly spend series shown on the trend chart.

    Every calendar month from the first to the last transaction month gets a
    bucket, including empty ones. Series longer than ``max_months`` keep the
    most recent months. Series shorter than ``min_months`` are padded:

    - ``leading``: the window is the ``min_months`` months ending at the
      first data month, so later data months fall outside it.
    - ``symmetric``: the window starts ``(min_months - span) // 2`` months
      before the first data month and keeps every data month.

    Args:
        transactions: Transactions DataFrame or list of dicts.
        min_months: Minimum series length after padding.
        max_months: Maximum series length after truncation.
        padding: 'leading' or 'symmetric'.

    Returns:
        List of ``{"month": "Jan 24", "amount": float}`` in calendar order.
    """
    df = _as_frame(transactions)
    if df.empty:
        return []

    months = _parse_dates(df).dt.to_period("M")
    valid = df.assign(period=months, abs_amount=df["amount"].abs()).dropna(subset=["period"])
    if valid.empty:
        return []

    totals = valid.groupby("period")["abs_amount"].sum()
    first, last = totals.index.min(), totals.index.max()
    series = totals.reindex(pd.period_range(first, last, freq="M"), fill_value=0.0)

    if len(series) > max_months:
        series = series.iloc[-max_months:]
    elif len(series) < min_months:
        if padding == "symmetric":
            start = first - (min_months - len(series)) // 2
        else:
            start = first - (min_months - 1)
        window = pd.period_range(start=start, periods=min_months, freq="M")
        series = series.reindex(window, fill_value=0.0)

    return [
        {"month": period.strftime("%b %y"), "amount": float(amount)}
        for period, amount in series.items()
    ]


def date_range(transactions) -> dict:
    """Earliest and latest parseable transaction dates as ``YYYY-MM-DD``."""
    df = _as_frame(transactions)
    if df.empty:
        return {"start": None, "end": None}
    dates = _parse_dates(df).dropna()
    if dates.empty:
        return {"start": None, "end": None}
    return {
        "start": dates.min().strftime("%Y-%m-%d"),
        "end": dates.max().strftime("%Y-%m-%d"),
    }


def calculate_analytics(
    transactions,
    budget_multiplier: float = 1.5,
    min_months: int = 6,
    max_months: int = 12,
    padding: str = "leading",
) -> dict:
    """
    Compute the analytics snapshot for one batch of transactions.

    Args:
        transactions: Transactions DataFrame from ``transform.to_transactions``
                      or a list of transaction dicts.
        budget_multiplier: Synthetic budget as a multiple of total spend.
        min_months: Trend padding width.
        max_months: Trend truncation width.
        padding: Trend padding mode, 'leading' or 'symmetric'.

    Returns:
        Dict with keys:
            'total_spend'            - sum of absolute amounts
            'monthly_budget'         - total_spend * budget_multiplier
            'categories'             - category buckets with display colors
            'departments'            - department buckets
            'monthly_trend'          - see monthly_trend()
            'transaction_count'      - number of transactions
            'avg_transaction_amount' - total_spend / transaction_count
            'max_transaction'        - signed amount with the largest magnitude
            'date_range'             - {'start', 'end'} or Nones
    """
    df = _as_frame(transactions)
    if df.empty:
        return empty_analytics()

    abs_amounts = df["amount"].abs()
    total_spend = float(abs_amounts.sum())
    count = len(df)

    categories = spend_by(df, "category", total_spend)
    for bucket in categories:
        bucket["color"] = category_color(bucket["name"])

    return {
        "total_spend": total_spend,
        "monthly_budget": total_spend * budget_multiplier,
        "categories": categories,
        "departments": spend_by(df, "department", total_spend),
        "monthly_trend": monthly_trend(df, min_months, max_months, padding),
        "transaction_count": count,
        "avg_transaction_amount": total_spend / count if count else 0,
        "max_transaction": float(df["amount"].iloc[int(abs_amounts.to_numpy().argmax())]),
        "date_range": date_range(df),
    }


def analyze(df: pd.DataFrame, settings: Optional[dict] = None) -> dict:
    """Run the aggregator with configured widths and print a summary."""
    settings = settings or {}
    trend = settings.get("trend", {})
    print("Analyzing transactions...")
    analytics = calculate_analytics(
        df,
        budget_multiplier=settings.get("budget_multiplier", 1.5),
        min_months=trend.get("min_months", 6),
        max_months=trend.get("max_months", 12),
        padding=trend.get("padding", "leading"),
    )

    rng = analytics["date_range"]
    print(f"  Transactions:   {analytics['transaction_count']}")
    print(f"  Date range:     {rng['start'] or 'N/A'} → {rng['end'] or 'N/A'}")
    print(f"  Total spend:    ${analytics['total_spend']:,.2f}")
    print(f"  Avg per txn:    ${analytics['avg_transaction_amount']:,.2f}")
    if analytics["categories"]:
        top = analytics["categories"][0]
        print(f"  Top category:   {top['name']} ({top['percentage']:.1f}%)")
    return analytics


def budget_usage(spent: float, budget: float) -> float:
    """Percent of ``budget`` used by ``spent``; 0 when there is no budget."""
    if not budget:
        return 0
    return spent / budget * 100


def filter_transactions(
    df: pd.DataFrame,
    search: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[str] = None,
) -> pd.DataFrame:
    """
    Filter transactions the way the history table does.

    ``search`` is a case-insensitive substring match against description,
    merchant and employee; ``category`` and ``status`` must match exactly.
    """
    mask = pd.Series(True, index=df.index)
    if search:
        q = search.lower()
        mask &= (
            df["description"].str.lower().str.contains(q, regex=False)
            | df["merchant"].str.lower().str.contains(q, regex=False)
            | df["employee"].str.lower().str.contains(q, regex=False)
        )
    if category:
        mask &= df["category"] == category
    if status:
        mask &= df["status"] == status
    return df[mask]
