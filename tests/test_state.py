import pytest

from expense_dashboard.analyze import calculate_analytics
from expense_dashboard.state import DashboardState


@pytest.fixture
def state(sample_transactions):
    s = DashboardState()
    s.replace_batch(sample_transactions, calculate_analytics(sample_transactions))
    return s


def test_new_state_is_empty():
    s = DashboardState()
    assert not s.has_data
    assert s.transactions.empty
    assert s.analytics is None
    assert s.recommendations == []
    assert s.ai_context()["has_csv_data"] is False


def test_replace_batch(state):
    assert state.has_data
    assert len(state.transactions) == 3
    assert state.analytics["transaction_count"] == 3


def test_replace_batch_discards_previous(state, sample_transactions):
    state.set_recommendations([{"title": "old"}])
    smaller = sample_transactions.head(1)
    state.replace_batch(smaller, calculate_analytics(smaller))
    assert len(state.transactions) == 1
    assert state.analytics["transaction_count"] == 1
    assert state.recommendations == []


def test_update_status_targets_one_row(state):
    ids = state.transactions["id"].tolist()
    assert state.update_status(ids[1], "rejected") is True
    statuses = state.transactions["status"].tolist()
    assert statuses == ["approved", "rejected", "approved"]


def test_update_status_unknown_id(state):
    assert state.update_status(-1, "approved") is False
    assert DashboardState().update_status(1, "approved") is False


def test_update_status_rejects_bad_status(state):
    with pytest.raises(ValueError, match="Unknown status"):
        state.update_status(state.transactions["id"].iloc[0], "archived")


def test_transactions_are_copies(state):
    df = state.transactions
    df.loc[:, "status"] = "rejected"
    assert "rejected" not in state.transactions["status"].tolist()


def test_analytics_are_copies(state, sample_transactions):
    expected = calculate_analytics(sample_transactions)
    snapshot = state.analytics
    snapshot["total_spend"] = 0
    snapshot["categories"].clear()
    state.ai_context()["departments"].clear()
    assert state.analytics == expected


def test_replace_batch_copies_analytics(sample_transactions):
    analytics = calculate_analytics(sample_transactions)
    s = DashboardState()
    s.replace_batch(sample_transactions, analytics)
    analytics["total_spend"] = 0
    assert s.analytics["total_spend"] > 0


def test_clear(state):
    state.set_recommendations([{"title": "x"}])
    state.clear()
    assert not state.has_data
    assert state.analytics is None
    assert state.recommendations == []


def test_ai_context(state):
    ctx = state.ai_context()
    assert ctx["has_csv_data"] is True
    assert ctx["current_spend"] == state.analytics["total_spend"]
    assert ctx["budget"] == state.analytics["monthly_budget"]
    assert ctx["transaction_count"] == 3
    assert ctx["date_range"] == {"start": "2024-01-14", "end": "2024-01-15"}
