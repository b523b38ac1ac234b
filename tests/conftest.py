from datetime import date
from pathlib import Path

import pytest

from expense_dashboard.ingest import parse_csv
from expense_dashboard.transform import to_transactions

FIXTURES = Path(__file__).parent / "fixtures"

TODAY = date(2024, 6, 30)


@pytest.fixture
def sample_csv_text():
    return (FIXTURES / "expenses_sample.csv").read_text()


@pytest.fixture
def sample_transactions(sample_csv_text):
    """The three-row sample mapped to transactions."""
    return to_transactions(parse_csv(sample_csv_text)["rows"], today=TODAY)


def make_txn(date_str, amount, category="Other", department="General", **extra):
    """Build a transaction dict for aggregator tests."""
    txn = {
        "id": extra.pop("id", 1),
        "date": date_str,
        "description": "Transaction",
        "category": category,
        "amount": amount,
        "merchant": "Unknown",
        "employee": "Unknown",
        "department": department,
        "status": "pending",
        "source": "csv_upload",
    }
    txn.update(extra)
    return txn
