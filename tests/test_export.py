import json

from expense_dashboard.analyze import calculate_analytics
from expense_dashboard.export import (
    EXPORT_COLUMNS, export, export_transactions_csv, get_sample_csv, write_sample_csv,
)
from expense_dashboard.ingest import parse_csv
from expense_dashboard.state import DashboardState
from expense_dashboard.transform import to_transactions


def test_sample_csv_parses_to_eight_transactions():
    parsed = parse_csv(get_sample_csv())
    assert parsed["headers"] == EXPORT_COLUMNS
    df = to_transactions(parsed["rows"])
    assert len(df) == 8
    assert (df["amount"] < 0).all()


def test_sample_csv_is_fixed():
    assert get_sample_csv() == get_sample_csv()
    assert get_sample_csv().splitlines()[1].startswith("2024-01-15,Office Supplies - Staples")


def test_write_sample_csv(tmp_path):
    path = write_sample_csv(tmp_path / "nested" / "sample.csv")
    assert path.read_text().strip() == get_sample_csv()


def test_export_transactions_csv_uses_absolute_amounts(sample_transactions):
    text = export_transactions_csv(sample_transactions)
    lines = text.splitlines()
    assert lines[0] == ",".join(EXPORT_COLUMNS)
    assert lines[1] == (
        "2024-01-15,Office Supplies - Staples,Office Supplies,45.67,"
        "Staples Inc.,John Smith,Marketing,approved"
    )
    assert len(lines) == 4


def test_exported_csv_can_be_uploaded_again(sample_transactions):
    again = to_transactions(parse_csv(export_transactions_csv(sample_transactions))["rows"])
    assert again["amount"].tolist() == sample_transactions["amount"].tolist()
    assert again["description"].tolist() == sample_transactions["description"].tolist()


def test_export_writes_files(tmp_path, sample_transactions, capsys):
    state = DashboardState()
    state.replace_batch(sample_transactions, calculate_analytics(sample_transactions))
    state.set_recommendations([{"type": "savings", "title": "Cut costs"}])

    export(state, tmp_path / "out")

    csv_text = (tmp_path / "out" / "transactions_clean.csv").read_text()
    assert csv_text.splitlines()[0] == ",".join(EXPORT_COLUMNS)
    payload = json.loads((tmp_path / "out" / "analytics.json").read_text())
    assert payload["analytics"]["transaction_count"] == 3
    assert payload["recommendations"][0]["title"] == "Cut costs"
    assert "Saved transactions_clean.csv (3 rows)" in capsys.readouterr().out
