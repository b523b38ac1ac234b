"""
export.py - Export the processed batch and provide the sample CSV template.
"""

import json
from pathlib import Path

import pandas as pd

from expense_dashboard.state import DashboardState


EXPORT_COLUMNS = [
    "date", "description", "category", "amount",
    "merchant", "employee", "department", "status",
]

SAMPLE_CSV = """date,description,category,amount,merchant,employee,department,status
2024-01-15,Office Supplies - Staples,Office Supplies,45.67,Staples Inc.,John Smith,Marketing,approved
2024-01-14,Client Lunch - Downtown Restaurant,Meals & Entertainment,125.50,Downtown Restaurant,Sarah Johnson,Sales,pending
2024-01-14,Uber Ride to Client Meeting,Transportation,23.80,Uber,Mike Chen,Sales,approved
2024-01-13,Software License - Adobe Creative Suite,Software,89.99,Adobe Inc.,Lisa Wang,Design,approved
2024-01-12,Hotel Stay - Business Trip,Travel,245.00,Marriott Hotel,David Rodriguez,Operations,approved
2024-01-12,Flight - Business Trip,Travel,450.75,American Airlines,David Rodriguez,Operations,approved
2024-01-11,Team Building Event,Meals & Entertainment,320.00,Escape Room Co.,Jennifer Lee,HR,pending
2024-01-10,Office Equipment - Monitor,Equipment,299.99,Best Buy,Tom Wilson,IT,approved"""


def get_sample_csv() -> str:
    """The fixed template offered to users as an example upload."""
    return SAMPLE_CSV


def write_sample_csv(path: str | Path) -> Path:
    """Write the sample template to ``path``, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(SAMPLE_CSV + "\n", encoding="utf-8")
    return path


def export_transactions_csv(transactions: pd.DataFrame) -> str:
    """
    Render transactions in the upload column order.

    Amounts are written as absolute values so the file can be uploaded again.
    """
    out = transactions.reindex(columns=EXPORT_COLUMNS).copy()
    out["amount"] = out["amount"].abs()
    return out.to_csv(index=False, lineterminator="\n")


def export(state: DashboardState, output_dir: str | Path) -> None:
    """Write transactions_clean.csv and analytics.json for the current batch."""
    output_dir = Path(output_dir)
    print("Exporting results...")
    output_dir.mkdir(parents=True, exist_ok=True)

    transactions = state.transactions
    (output_dir / "transactions_clean.csv").write_text(
        export_transactions_csv(transactions), encoding="utf-8"
    )
    print(f"  Saved transactions_clean.csv ({len(transactions)} rows)")

    payload = {
        "analytics": state.analytics,
        "recommendations": state.recommendations,
    }
    (output_dir / "analytics.json").write_text(
        json.dumps(payload, indent=2, default=str) + "\n", encoding="utf-8"
    )
    print("  Saved analytics.json")
    print(f"\nAll outputs written to: {output_dir.resolve()}")
