"""
Ledger Reader
The only way the analytics code reaches stored data. Readers are read-only
and synchronous; callers that need concurrency run them in worker threads.
"""
from typing import Iterable, List, Optional, Protocol

from finance_insights.models.transaction import (
    Category,
    MonthlyGoal,
    Transaction,
    TransactionFilter,
)


class LedgerUnavailableError(RuntimeError):
    """The backing store could not be read. Never retried by the engine."""


class LedgerReader(Protocol):
    def fetch_transactions(self, account_id: str, query: TransactionFilter) -> List[Transaction]:
        ...

    def fetch_goal(self, account_id: str, month: int, year: int) -> Optional[MonthlyGoal]:
        ...

    def fetch_goals(self, account_id: str, year: int) -> List[MonthlyGoal]:
        ...

    def fetch_categories(self, account_id: str) -> List[Category]:
        ...


def apply_filter(transactions: Iterable[Transaction], query: TransactionFilter) -> List[Transaction]:
    """Filter, order and truncate transactions the way a store query would."""
    selected = [
        txn
        for txn in transactions
        if (query.start is None or txn.date >= query.start)
        and (query.end is None or txn.date <= query.end)
        and (query.kind is None or txn.kind == query.kind)
    ]
    selected.sort(key=lambda txn: txn.date, reverse=query.newest_first)
    if query.limit is not None:
        selected = selected[: query.limit]
    return selected


class InMemoryLedgerReader:
    """Ledger Reader over plain lists, used by tests and local demos."""

    def __init__(
        self,
        transactions: Optional[Iterable[Transaction]] = None,
        goals: Optional[Iterable[MonthlyGoal]] = None,
        categories: Optional[Iterable[Category]] = None,
    ) -> None:
        self._transactions = list(transactions or [])
        self._goals = list(goals or [])
        self._categories = list(categories or [])

    def fetch_transactions(self, account_id: str, query: TransactionFilter) -> List[Transaction]:
        owned = [txn for txn in self._transactions if txn.account_id == account_id]
        return apply_filter(owned, query)

    def fetch_goal(self, account_id: str, month: int, year: int) -> Optional[MonthlyGoal]:
        for goal in self._goals:
            if goal.account_id == account_id and goal.month == month and goal.year == year:
                return goal
        return None

    def fetch_goals(self, account_id: str, year: int) -> List[MonthlyGoal]:
        goals = [g for g in self._goals if g.account_id == account_id and g.year == year]
        return sorted(goals, key=lambda g: g.month)

    def fetch_categories(self, account_id: str) -> List[Category]:
        # categories carry no owner; every account sees the same list
        return list(self._categories)
