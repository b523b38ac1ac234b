"""
insights.py - Ask a remote LLM for spending recommendations.

The model answers in free text; recommendations are recovered by scanning
for ``Type:``, ``Title:``, ``Description:``, ``Impact:`` and ``Priority:``
lines. When the call fails, or the answer holds no such lines, a fallback
list is returned instead so callers always get recommendations.
"""

import os
from typing import Optional

import pandas as pd
import requests

from expense_dashboard.config import DEFAULTS


RECOMMENDATION_FIELDS = ("type", "title", "description", "impact", "priority")

DEFAULT_RECOMMENDATIONS = [
    {
        "type": "savings",
        "title": "Review Subscription Services",
        "description": "Audit all recurring subscriptions and cancel unused services.",
        "impact": "Potential monthly savings: $200-500",
        "priority": "high",
    },
    {
        "type": "efficiency",
        "title": "Implement Spending Limits",
        "description": "Set category-specific spending limits to better control expenses.",
        "impact": "Improved budget adherence",
        "priority": "medium",
    },
    {
        "type": "policy",
        "title": "Standardize Approval Process",
        "description": "Create clear approval workflows for different expense categories.",
        "impact": "Faster processing and better compliance",
        "priority": "medium",
    },
]


def build_insight_prompt(analytics: dict, transactions: pd.DataFrame, sample_size: int = 10) -> str:
    """Describe the batch as structured text for the model."""
    rng = analytics.get("date_range") or {}

    cat_lines = "\n".join(
        f"- {c['name']}: ${c['amount']:.2f} ({c['percentage']:.1f}%)"
        for c in analytics.get("categories", [])
    ) or "No categories found"
    dept_lines = "\n".join(
        f"- {d['name']}: ${d['amount']:.2f} ({d['percentage']:.1f}%)"
        for d in analytics.get("departments", [])
    ) or "No departments found"

    txn_lines = "No transactions found"
    if transactions is not None and not transactions.empty:
        txn_lines = "\n".join(
            f"{r['date']} | {r['category']} | {r['description']} | "
            f"${abs(r['amount']):.2f} | {r['employee']} ({r['department']})"
            for _, r in transactions.head(sample_size).iterrows()
        )

    return (
        "Analyze the following expense data and provide 4-5 actionable insights and recommendations.\n\n"
        "Analytics Summary:\n"
        f"- Total Spend: ${analytics.get('total_spend', 0):.2f}\n"
        f"- Transaction Count: {analytics.get('transaction_count', 0)}\n"
        f"- Average Transaction: ${analytics.get('avg_transaction_amount', 0):.2f}\n"
        f"- Date Range: {rng.get('start') or 'N/A'} to {rng.get('end') or 'N/A'}\n\n"
        f"Category Breakdown:\n{cat_lines}\n\n"
        f"Department Breakdown:\n{dept_lines}\n\n"
        f"Sample Transactions:\n{txn_lines}\n\n"
        "Provide insights in this format:\n"
        "- Type: savings/policy/efficiency/alert/insight\n"
        "- Title: Brief insight title\n"
        "- Description: Detailed explanation with specific data points\n"
        "- Impact: Expected benefit or impact with potential savings\n"
        "- Priority: high/medium/low\n\n"
        "Focus on cost optimization, spending anomalies, department and category "
        "efficiency, policy compliance and budget management. "
        "Use specific numbers from the data. Don't use *** in responses.\n"
    )


def parse_recommendations(text: str) -> list[dict]:
    """
    Recover recommendation records from model output.

    A ``Type:`` line starts a new record and closes the previous one; the
    other prefixes fill in the current record. Returns DEFAULT_RECOMMENDATIONS
    when nothing is found.
    """
    recommendations = []
    current: dict = {}
    for line in (text or "").splitlines():
        if not line.strip():
            continue
        for field in RECOMMENDATION_FIELDS:
            marker = f"{field.capitalize()}:"
            if marker in line:
                value = line.split(marker, 1)[1].strip()
                if field == "type":
                    if current:
                        recommendations.append(current)
                    current = {}
                current[field] = value
                break
    if current:
        recommendations.append(current)

    return recommendations or [dict(r) for r in DEFAULT_RECOMMENDATIONS]


def fallback_recommendations(analytics: Optional[dict]) -> list[dict]:
    """Recommendations computed from the snapshot when the model is unavailable."""
    analytics = analytics or {}
    recommendations = []

    categories = analytics.get("categories") or []
    if categories:
        top = categories[0]
        recommendations.append({
            "type": "savings",
            "title": f"Optimize {top['name']} Expenses",
            "description": (
                f"{top['name']} represents {top['percentage']:.1f}% of total spend "
                f"(${top['amount']:.2f}). Consider negotiating bulk discounts or "
                "finding alternative suppliers."
            ),
            "impact": f"Potential savings: ${top['amount'] * 0.1:.2f}-{top['amount'] * 0.2:.2f}",
            "priority": "high",
        })

    departments = analytics.get("departments") or []
    if departments:
        top = departments[0]
        recommendations.append({
            "type": "policy",
            "title": f"Review {top['name']} Department Spending",
            "description": (
                f"{top['name']} department accounts for {top['percentage']:.1f}% of total "
                "expenses. Consider implementing department-specific spending limits."
            ),
            "impact": "Better budget control and accountability",
            "priority": "medium",
        })

    avg = analytics.get("avg_transaction_amount", 0) or 0
    if avg > 100:
        recommendations.append({
            "type": "efficiency",
            "title": "High-Value Transaction Review",
            "description": (
                f"Average transaction amount is ${avg:.2f}, indicating significant "
                "individual expenses. Implement higher approval thresholds."
            ),
            "impact": "Reduced processing overhead and better oversight",
            "priority": "medium",
        })

    recommendations.append({
        "type": "insight",
        "title": "Data-Driven Decision Making",
        "description": (
            f"Your data shows {analytics.get('transaction_count', 0)} transactions totaling "
            f"${analytics.get('total_spend', 0):.2f}. Regular analysis of this data will "
            "help identify cost-saving opportunities."
        ),
        "impact": "Improved financial visibility and control",
        "priority": "low",
    })
    return recommendations


def _request_completion(prompt: str, settings: dict, api_key: str) -> str:
    """POST the prompt to the generateContent endpoint and return its text."""
    url = f"{settings['base_url']}/models/{settings['model']}:generateContent"
    resp = requests.post(
        url,
        params={"key": api_key},
        json={"contents": [{"parts": [{"text": prompt}]}]},
        timeout=settings.get("timeout", 30),
    )
    resp.raise_for_status()
    data = resp.json()
    return data["candidates"][0]["content"]["parts"][0]["text"]


def generate_recommendations(
    analytics: dict,
    transactions: pd.DataFrame,
    settings: Optional[dict] = None,
) -> list[dict]:
    """
    Get recommendations for a batch, falling back when the model is unreachable.

    Args:
        analytics: Snapshot from ``analyze.calculate_analytics``.
        transactions: The batch's transactions DataFrame.
        settings: The ``insights`` section of the config.

    Returns:
        List of recommendation dicts.
    """
    settings = {**DEFAULTS["insights"], **(settings or {})}
    api_key = os.environ.get(settings["api_key_env"], "")
    if not api_key:
        print(f"  {settings['api_key_env']} not set; using built-in recommendations")
        return fallback_recommendations(analytics)

    prompt = build_insight_prompt(analytics, transactions)
    try:
        text = _request_completion(prompt, settings, api_key)
    except (requests.RequestException, KeyError, IndexError, TypeError, ValueError) as e:
        print(f"  Insight request failed ({e}); using built-in recommendations")
        return fallback_recommendations(analytics)

    return parse_recommendations(text)
