from __future__ import annotations

import statistics
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from finance_insights.core.config import settings
from finance_insights.models.report import (
    BudgetCheck,
    BudgetState,
    BudgetStatus,
    CategorySummary,
    FinancialSummary,
    MonthlyTrendPoint,
)
from finance_insights.models.transaction import (
    Category,
    MonthlyGoal,
    Transaction,
    TransactionKind,
)
from finance_insights.utils.periods import YearMonth, month_window

ZERO = Decimal("0")


@dataclass
class _CategoryTally:
    category: Category
    total: Decimal = ZERO
    count: int = 0


class FinanceAnalyzer:
    """
    Stateless analytics helper shared by the report builders and the
    notification generator. Every method is a pure function of its
    arguments; the constructor only fixes the classification thresholds.
    """

    def __init__(
        self,
        budget_lower_ratio: float = settings.BUDGET_LOWER_RATIO,
        budget_upper_ratio: float = settings.BUDGET_UPPER_RATIO,
        anomaly_threshold: float = settings.ANOMALY_THRESHOLD,
        anomaly_min_samples: int = settings.ANOMALY_MIN_SAMPLES,
    ) -> None:
        self._budget_lower = Decimal(str(budget_lower_ratio))
        self._budget_upper = Decimal(str(budget_upper_ratio))
        self._anomaly_threshold = anomaly_threshold
        self._anomaly_min_samples = anomaly_min_samples

    def aggregate(self, transactions: Iterable[Transaction]) -> FinancialSummary:
        total_income = ZERO
        total_expense = ZERO
        count = 0
        for txn in transactions:
            if txn.kind == TransactionKind.INCOME:
                total_income += txn.amount
            else:
                total_expense += txn.amount
            count += 1

        return FinancialSummary(
            total_income=total_income,
            total_expense=total_expense,
            balance=total_income - total_expense,
            count=count,
        )

    def category_summary(
        self,
        transactions: Iterable[Transaction],
        categories: Optional[Mapping[str, Category]] = None,
    ) -> List[CategorySummary]:
        """
        Per-category totals with each category's share of its kind's total.
        Ordered by descending total; ties keep first-seen order.
        """
        tallies: Dict[str, _CategoryTally] = {}
        kind_totals: Dict[TransactionKind, Decimal] = {
            TransactionKind.INCOME: ZERO,
            TransactionKind.EXPENSE: ZERO,
        }

        for txn in transactions:
            tally = tallies.get(txn.category_id)
            if tally is None:
                tally = _CategoryTally(category=self._resolve_category(txn, categories))
                tallies[txn.category_id] = tally
            tally.total += txn.amount
            tally.count += 1
            kind_totals[tally.category.kind] += txn.amount

        summaries = []
        for category_id, tally in tallies.items():
            kind_total = kind_totals[tally.category.kind]
            percentage = round(float(tally.total / kind_total * 100), 2) if kind_total > 0 else 0.0
            summaries.append(
                CategorySummary(
                    category_id=category_id,
                    name=tally.category.name,
                    color=tally.category.color,
                    kind=tally.category.kind,
                    total=tally.total,
                    count=tally.count,
                    percentage=percentage,
                )
            )

        return sorted(summaries, key=lambda s: s.total, reverse=True)

    @staticmethod
    def _resolve_category(
        txn: Transaction,
        categories: Optional[Mapping[str, Category]],
    ) -> Category:
        if txn.category is not None:
            return txn.category
        if categories and txn.category_id in categories:
            return categories[txn.category_id]
        raise ValueError(f"No category available for transaction {txn.id} ({txn.category_id})")

    def monthly_trend(
        self,
        transactions: Iterable[Transaction],
        months: int = 12,
        anchor: Optional[date] = None,
    ) -> List[MonthlyTrendPoint]:
        """
        Zero-filled income/expense/balance series for the `months` calendar
        months ending at the anchor month, oldest first.

        Without `anchor` the window ends at the system clock's current month,
        so callers that need reproducible output must pass their own `now`.
        """
        anchor = anchor or date.today()
        buckets: Dict[YearMonth, MonthlyTrendPoint] = {
            (year, month): MonthlyTrendPoint(month=month, year=year)
            for year, month in month_window(anchor, months)
        }

        for txn in transactions:
            bucket = buckets.get((txn.date.year, txn.date.month))
            if bucket is None:
                continue
            if txn.kind == TransactionKind.INCOME:
                bucket.income += txn.amount
            else:
                bucket.expense += txn.amount

        for bucket in buckets.values():
            bucket.balance = bucket.income - bucket.expense
        return list(buckets.values())

    def _classify(self, ratio: Decimal) -> BudgetState:
        if ratio < self._budget_lower:
            return "under"
        if ratio > self._budget_upper:
            return "over"
        return "on_track"

    def budget_status(
        self,
        goal: Optional[MonthlyGoal],
        month_summary: FinancialSummary,
    ) -> BudgetStatus:
        if goal is None:
            return BudgetStatus(has_goal=False)

        if goal.income_target > 0:
            income_ratio = month_summary.total_income / goal.income_target
        else:
            income_ratio = Decimal("1")
        if goal.expense_target > 0:
            expense_ratio = month_summary.total_expense / goal.expense_target
        else:
            expense_ratio = ZERO

        income_state = self._classify(income_ratio)
        expense_state = self._classify(expense_ratio)

        overall = "good"
        if expense_state == "over" or income_state == "under":
            overall = "danger" if month_summary.balance < 0 else "warning"

        return BudgetStatus(
            has_goal=True,
            income_state=income_state,
            expense_state=expense_state,
            overall=overall,
        )

    def check_budget(
        self,
        goal: Optional[MonthlyGoal],
        month_transactions: Iterable[Transaction],
    ) -> BudgetCheck:
        actual = self.aggregate(month_transactions)
        return BudgetCheck(goal=goal, actual=actual, status=self.budget_status(goal, actual))

    def detect_anomalies(
        self,
        recent_expenses: Sequence[Transaction],
        threshold: Optional[float] = None,
    ) -> List[Transaction]:
        """
        One-sided z-score filter: flags expenses above mean + threshold * stdev,
        using the population standard deviation. Returns [] below the sample floor.
        """
        if len(recent_expenses) < self._anomaly_min_samples:
            return []

        threshold = self._anomaly_threshold if threshold is None else threshold
        amounts = [float(txn.amount) for txn in recent_expenses]
        mean = statistics.fmean(amounts)
        stdev = statistics.pstdev(amounts)
        cutoff = mean + threshold * stdev

        return [txn for txn in recent_expenses if float(txn.amount) > cutoff]

    def average_expense_by_category(
        self,
        transactions: Iterable[Transaction],
        months: int,
        categories: Optional[Mapping[str, Category]] = None,
    ) -> List[CategorySummary]:
        """Monthly average spend per expense category over a `months`-long window."""
        expenses = [txn for txn in transactions if txn.kind == TransactionKind.EXPENSE]
        averages = [
            summary.model_copy(update={"total": summary.total / months, "percentage": 0.0})
            for summary in self.category_summary(expenses, categories)
        ]
        return sorted(averages, key=lambda s: s.total, reverse=True)

    def summarize(
        self,
        transactions: Sequence[Transaction],
        categories: Optional[Mapping[str, Category]] = None,
    ) -> Dict[str, object]:
        summary = self.aggregate(transactions)
        return {
            "total_income": summary.total_income,
            "total_expense": summary.total_expense,
            "balance": summary.balance,
            "transaction_count": summary.count,
            "categories": self.category_summary(transactions, categories),
        }


def transactions_since(transactions: Iterable[Transaction], since: date) -> List[Transaction]:
    return [txn for txn in transactions if txn.date >= since]
