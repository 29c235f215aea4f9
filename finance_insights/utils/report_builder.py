"""
Report Builder
Fetches the inputs each report needs from a Ledger Reader and hands them to
the analytics engine. Independent reads run concurrently; nothing is computed
until every read has returned, and any read failure fails the whole report.
"""
import asyncio
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from finance_insights.core.config import settings
from finance_insights.db.ledger import LedgerReader
from finance_insights.models.notification import Notification, NotificationInputs
from finance_insights.models.report import (
    BudgetCheck,
    CategorySummary,
    DashboardReport,
    GoalProgress,
    MonthlyReport,
    MonthlyTrendPoint,
    Period,
    PeriodReport,
)
from finance_insights.models.transaction import Transaction, TransactionFilter, TransactionKind
from finance_insights.utils.analyzer import FinanceAnalyzer
from finance_insights.utils.notifications import TRAILING_MONTHS, NotificationGenerator
from finance_insights.utils.periods import (
    month_bounds,
    months_ago,
    shift_month,
    validate_range,
)

logger = logging.getLogger(__name__)

RECENT_TRANSACTIONS_LIMIT = 5

finance_analyzer = FinanceAnalyzer()
notification_generator = NotificationGenerator(finance_analyzer)


def _fetch(reader: LedgerReader, account_id: str, **filters: Any):
    return asyncio.to_thread(reader.fetch_transactions, account_id, TransactionFilter(**filters))


def _round_percent(part, whole) -> float:
    return round(float(part / whole * 100), 2) if whole > 0 else 0.0


async def build_dashboard(reader: LedgerReader, account_id: str, now: datetime) -> DashboardReport:
    start, end = month_bounds(now.year, now.month)
    month_txns, lifetime_txns, goal, recent = await asyncio.gather(
        _fetch(reader, account_id, start=start, end=end),
        _fetch(reader, account_id, end=end),
        asyncio.to_thread(reader.fetch_goal, account_id, now.month, now.year),
        _fetch(reader, account_id, limit=RECENT_TRANSACTIONS_LIMIT, newest_first=True),
    )

    month = finance_analyzer.aggregate(month_txns)
    lifetime = finance_analyzer.aggregate(lifetime_txns)
    logger.info(f"Dashboard for account {account_id}: {month.count} transactions in {now:%Y-%m}")

    return DashboardReport(
        current_balance=lifetime.balance,
        monthly_income=month.total_income,
        monthly_expense=month.total_expense,
        monthly_balance=month.balance,
        monthly_goal=goal,
        recent_transactions=recent,
        period=Period(month=now.month, year=now.year),
    )


async def build_monthly_report(reader: LedgerReader, account_id: str, month: int, year: int) -> MonthlyReport:
    start, end = month_bounds(year, month)
    transactions, goal, categories = await asyncio.gather(
        _fetch(reader, account_id, start=start, end=end, newest_first=True),
        asyncio.to_thread(reader.fetch_goal, account_id, month, year),
        asyncio.to_thread(reader.fetch_categories, account_id),
    )

    summary = finance_analyzer.summarize(transactions, {c.id: c for c in categories})
    logger.info(f"Monthly report for account {account_id} {year}-{month:02d}: {len(transactions)} transactions")
    return MonthlyReport(month=month, year=year, **summary, monthly_goal=goal, transactions=transactions)


async def build_period_report(reader: LedgerReader, account_id: str, start: date, end: date) -> PeriodReport:
    validate_range(start, end)
    transactions, categories = await asyncio.gather(
        _fetch(reader, account_id, start=start, end=end, newest_first=True),
        asyncio.to_thread(reader.fetch_categories, account_id),
    )

    summary = finance_analyzer.summarize(transactions, {c.id: c for c in categories})
    return PeriodReport(start_date=start, end_date=end, **summary, transactions=transactions)


async def build_category_report(
    reader: LedgerReader,
    account_id: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[CategorySummary]:
    validate_range(start, end)
    transactions, categories = await asyncio.gather(
        _fetch(reader, account_id, start=start, end=end),
        asyncio.to_thread(reader.fetch_categories, account_id),
    )
    return finance_analyzer.category_summary(transactions, {c.id: c for c in categories})


async def build_trend(reader: LedgerReader, account_id: str, months: int, now: datetime) -> List[MonthlyTrendPoint]:
    first_year, first_month = shift_month(now.year, now.month, -(months - 1))
    start, _ = month_bounds(first_year, first_month)
    _, end = month_bounds(now.year, now.month)
    transactions = await _fetch(reader, account_id, start=start, end=end)
    return finance_analyzer.monthly_trend(transactions, months=months, anchor=now.date())


async def build_budget_check(reader: LedgerReader, account_id: str, month: int, year: int) -> BudgetCheck:
    start, end = month_bounds(year, month)
    transactions, goal = await asyncio.gather(
        _fetch(reader, account_id, start=start, end=end),
        asyncio.to_thread(reader.fetch_goal, account_id, month, year),
    )
    return finance_analyzer.check_budget(goal, transactions)


async def build_goal_progress(reader: LedgerReader, account_id: str, year: int) -> List[GoalProgress]:
    goals, transactions = await asyncio.gather(
        asyncio.to_thread(reader.fetch_goals, account_id, year),
        _fetch(reader, account_id, start=date(year, 1, 1), end=date(year, 12, 31)),
    )

    by_month: Dict[int, List[Transaction]] = {}
    for txn in transactions:
        by_month.setdefault(txn.date.month, []).append(txn)

    progress = []
    for goal in sorted(goals, key=lambda g: g.month):
        actual = finance_analyzer.aggregate(by_month.get(goal.month, []))
        progress.append(
            GoalProgress(
                goal=goal,
                actual_income=actual.total_income,
                actual_expense=actual.total_expense,
                income_progress=_round_percent(actual.total_income, goal.income_target),
                expense_progress=_round_percent(actual.total_expense, goal.expense_target),
                balance=actual.balance,
                goal_balance=goal.income_target - goal.expense_target,
            )
        )
    return progress


async def build_average_expense_by_category(
    reader: LedgerReader,
    account_id: str,
    months: int,
    now: datetime,
) -> List[CategorySummary]:
    transactions, categories = await asyncio.gather(
        _fetch(
            reader,
            account_id,
            start=months_ago(now.date(), months),
            end=now.date(),
            kind=TransactionKind.EXPENSE,
        ),
        asyncio.to_thread(reader.fetch_categories, account_id),
    )
    return finance_analyzer.average_expense_by_category(
        transactions, months, {c.id: c for c in categories}
    )


async def build_anomalies(
    reader: LedgerReader,
    account_id: str,
    threshold: Optional[float] = None,
) -> List[Transaction]:
    recent = await _fetch(
        reader,
        account_id,
        kind=TransactionKind.EXPENSE,
        limit=settings.ANOMALY_WINDOW,
        newest_first=True,
    )
    return finance_analyzer.detect_anomalies(recent, threshold)


async def load_notification_inputs(reader: LedgerReader, account_id: str, now: datetime) -> NotificationInputs:
    today = now.date()
    start, end = month_bounds(now.year, now.month)
    month_txns, goal, recent_expenses, all_txns, categories, trailing = await asyncio.gather(
        _fetch(reader, account_id, start=start, end=end),
        asyncio.to_thread(reader.fetch_goal, account_id, now.month, now.year),
        _fetch(
            reader,
            account_id,
            kind=TransactionKind.EXPENSE,
            limit=settings.ANOMALY_WINDOW,
            newest_first=True,
        ),
        _fetch(reader, account_id),
        asyncio.to_thread(reader.fetch_categories, account_id),
        _fetch(reader, account_id, start=months_ago(today, TRAILING_MONTHS)),
    )
    return NotificationInputs(
        account_id=account_id,
        now=now,
        month_transactions=month_txns,
        goal=goal,
        recent_expenses=recent_expenses,
        all_transactions=all_txns,
        categories=categories,
        trailing_transactions=trailing,
    )


async def build_notifications(reader: LedgerReader, account_id: str, now: datetime) -> List[Notification]:
    inputs = await load_notification_inputs(reader, account_id, now)
    notifications = notification_generator.generate(inputs)
    logger.info(f"Generated {len(notifications)} notifications for account {account_id}")
    return notifications
