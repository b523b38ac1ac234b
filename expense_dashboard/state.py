"""
state.py - In-memory holder for the current upload batch.

One DashboardState is created per session and handed to whatever needs the
data. It only changes through replace_batch, update_status,
set_recommendations and clear; readers get copies.
"""

import copy
from typing import Optional

import pandas as pd

from expense_dashboard.transform import STATUSES, TRANSACTION_COLUMNS


class DashboardState:
    """Owns the transactions, analytics and recommendations of one batch."""

    def __init__(self):
        self._transactions: Optional[pd.DataFrame] = None
        self._analytics: Optional[dict] = None
        self._recommendations: list[dict] = []

    @property
    def has_data(self) -> bool:
        """True once a batch has been loaded."""
        return self._transactions is not None

    @property
    def transactions(self) -> pd.DataFrame:
        """Copy of the current batch, or an empty frame with the standard columns."""
        if self._transactions is None:
            return pd.DataFrame(columns=TRANSACTION_COLUMNS)
        return self._transactions.copy()

    @property
    def analytics(self) -> Optional[dict]:
        """Deep copy of the analytics snapshot, or None before the first batch."""
        return copy.deepcopy(self._analytics)

    @property
    def recommendations(self) -> list[dict]:
        """Recommendations generated for the current batch."""
        return list(self._recommendations)

    def replace_batch(self, transactions: pd.DataFrame, analytics: dict) -> None:
        """Swap in a freshly parsed batch; the previous one is discarded."""
        self._transactions = transactions.reset_index(drop=True)
        self._analytics = copy.deepcopy(analytics)
        self._recommendations = []

    def update_status(self, transaction_id: int, status: str) -> bool:
        """
        Set the status of one transaction by id.

        Analytics are not recomputed: none of them depend on status.

        Returns:
            True if a transaction with that id exists.

        Raises:
            ValueError: If ``status`` is not approved, pending or rejected.
        """
        if status not in STATUSES:
            raise ValueError(f"Unknown status '{status}'. Expected one of: {', '.join(STATUSES)}")
        if self._transactions is None:
            return False
        mask = self._transactions["id"] == transaction_id
        if not mask.any():
            return False
        self._transactions.loc[mask, "status"] = status
        return True

    def set_recommendations(self, recommendations: list[dict]) -> None:
        """Store recommendations for the current batch."""
        self._recommendations = list(recommendations)

    def clear(self) -> None:
        """Drop the batch and everything derived from it."""
        self._transactions = None
        self._analytics = None
        self._recommendations = []

    def ai_context(self) -> dict:
        """Summary handed to the insight generator."""
        if self._transactions is None or self._analytics is None:
            return {
                "current_spend": 0,
                "budget": 0,
                "categories": [],
                "departments": [],
                "transaction_count": 0,
                "avg_transaction_amount": 0,
                "has_csv_data": False,
                "date_range": {"start": None, "end": None},
            }
        a = self.analytics
        return {
            "current_spend": a["total_spend"],
            "budget": a["monthly_budget"],
            "categories": a["categories"],
            "departments": a["departments"],
            "transaction_count": a["transaction_count"],
            "avg_transaction_amount": a["avg_transaction_amount"],
            "has_csv_data": True,
            "date_range": a["date_range"],
        }
