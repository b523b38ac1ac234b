import pytest
import requests

from expense_dashboard import insights
from expense_dashboard.analyze import calculate_analytics
from expense_dashboard.insights import (
    DEFAULT_RECOMMENDATIONS, build_insight_prompt, fallback_recommendations,
    generate_recommendations, parse_recommendations,
)

MODEL_TEXT = """Here are my suggestions:
- Type: savings
- Title: Consolidate travel bookings
- Description: Travel is 40% of spend.
- Impact: Save $200/month
- Priority: high

- Type: policy
- Title: Require receipts
- Priority: medium
"""


class _FakeResponse:
    def __init__(self, payload, status=200):
        self._payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


@pytest.fixture
def analytics(sample_transactions):
    return calculate_analytics(sample_transactions)


def test_parse_recommendations_splits_on_type():
    recs = parse_recommendations(MODEL_TEXT)
    assert len(recs) == 2
    assert recs[0] == {
        "type": "savings",
        "title": "Consolidate travel bookings",
        "description": "Travel is 40% of spend.",
        "impact": "Save $200/month",
        "priority": "high",
    }
    assert recs[1] == {"type": "policy", "title": "Require receipts", "priority": "medium"}


def test_parse_recommendations_falls_back_when_empty():
    assert parse_recommendations("No structured output here.") == DEFAULT_RECOMMENDATIONS
    assert parse_recommendations("") == DEFAULT_RECOMMENDATIONS


def test_build_insight_prompt(analytics, sample_transactions):
    prompt = build_insight_prompt(analytics, sample_transactions)
    assert "Total Spend: $194.97" in prompt
    assert "Transaction Count: 3" in prompt
    assert "Date Range: 2024-01-14 to 2024-01-15" in prompt
    assert "- Meals & Entertainment: $125.50" in prompt
    assert "- Sales: $149.30" in prompt
    assert "2024-01-14 | Transportation | Uber Ride to Client Meeting | $23.80 | Mike Chen (Sales)" in prompt


def test_fallback_recommendations_use_snapshot(analytics):
    recs = fallback_recommendations(analytics)
    assert recs[0]["title"] == "Optimize Meals & Entertainment Expenses"
    assert recs[1]["title"] == "Review Sales Department Spending"
    assert recs[-1]["type"] == "insight"
    assert "3 transactions totaling $194.97" in recs[-1]["description"]


def test_fallback_recommendations_high_average():
    recs = fallback_recommendations({"avg_transaction_amount": 250.0, "transaction_count": 2, "total_spend": 500.0})
    assert [r["type"] for r in recs] == ["efficiency", "insight"]


def test_generate_without_api_key_uses_fallback(monkeypatch, analytics, sample_transactions):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    def _fail(*args, **kwargs):
        raise AssertionError("no request expected")

    monkeypatch.setattr(insights.requests, "post", _fail)
    recs = generate_recommendations(analytics, sample_transactions)
    assert recs == fallback_recommendations(analytics)


def test_generate_parses_model_reply(monkeypatch, analytics, sample_transactions):
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    calls = []

    def _post(url, params=None, json=None, timeout=None):
        calls.append({"url": url, "params": params, "json": json, "timeout": timeout})
        return _FakeResponse({"candidates": [{"content": {"parts": [{"text": MODEL_TEXT}]}}]})

    monkeypatch.setattr(insights.requests, "post", _post)
    recs = generate_recommendations(analytics, sample_transactions, {"model": "test-model", "timeout": 5})

    assert len(recs) == 2
    assert calls[0]["url"].endswith("/models/test-model:generateContent")
    assert calls[0]["params"] == {"key": "test-key"}
    assert calls[0]["timeout"] == 5
    assert "Total Spend" in calls[0]["json"]["contents"][0]["parts"][0]["text"]


def test_generate_http_error_uses_fallback(monkeypatch, analytics, sample_transactions):
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.setattr(insights.requests, "post", lambda *a, **k: _FakeResponse({}, status=500))
    assert generate_recommendations(analytics, sample_transactions) == fallback_recommendations(analytics)


def test_generate_malformed_reply_uses_fallback(monkeypatch, analytics, sample_transactions):
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.setattr(insights.requests, "post", lambda *a, **k: _FakeResponse({"candidates": []}))
    assert generate_recommendations(analytics, sample_transactions) == fallback_recommendations(analytics)


def test_generate_connection_error_uses_fallback(monkeypatch, analytics, sample_transactions):
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")

    def _post(*args, **kwargs):
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(insights.requests, "post", _post)
    assert generate_recommendations(analytics, sample_transactions) == fallback_recommendations(analytics)
