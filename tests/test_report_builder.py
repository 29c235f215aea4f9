import asyncio
from datetime import date, datetime
from decimal import Decimal

import pytest

from finance_insights.db.ledger import InMemoryLedgerReader, LedgerUnavailableError, apply_filter
from finance_insights.models.transaction import Category, MonthlyGoal, Transaction, TransactionFilter, TransactionKind
from finance_insights.utils import report_builder
from finance_insights.utils.periods import InvalidPeriodError

NOW = datetime(2025, 11, 20, 9, 0)
ACCOUNT = "acc-1"

categories = [
    Category(id="salary", name="Salary", kind=TransactionKind.INCOME),
    Category(id="rent", name="Rent", kind=TransactionKind.EXPENSE),
    Category(id="food", name="Food", kind=TransactionKind.EXPENSE),
]
by_id = {c.id: c for c in categories}


def make_txn(txn_id, category_id, amount, day, account_id=ACCOUNT):
    return Transaction(
        id=txn_id,
        account_id=account_id,
        amount=Decimal(str(amount)),
        kind=by_id[category_id].kind,
        date=day,
        category_id=category_id,
    )


transactions = [
    make_txn("a", "salary", 5000, date(2025, 9, 5)),
    make_txn("b", "rent", 1500, date(2025, 9, 10)),
    make_txn("c", "salary", 5000, date(2025, 10, 5)),
    make_txn("d", "rent", 1500, date(2025, 10, 10)),
    make_txn("e", "food", 400, date(2025, 10, 21)),
    make_txn("f", "salary", 3000, date(2025, 11, 5)),
    make_txn("g", "rent", 1500, date(2025, 11, 10)),
    make_txn("h", "food", 600, date(2025, 11, 18)),
    make_txn("x", "salary", 99999, date(2025, 11, 1), account_id="someone-else"),
]
goals = [
    MonthlyGoal(account_id=ACCOUNT, month=10, year=2025, income_target=Decimal("5000"), expense_target=Decimal("2000")),
    MonthlyGoal(account_id=ACCOUNT, month=11, year=2025, income_target=Decimal("5000"), expense_target=Decimal("2000")),
]


def make_reader():
    return InMemoryLedgerReader(transactions, goals, categories)


class BrokenReader(InMemoryLedgerReader):
    def fetch_goal(self, account_id, month, year):
        raise LedgerUnavailableError("goals table unreachable")


def test_apply_filter_orders_and_limits():
    query = TransactionFilter(kind=TransactionKind.EXPENSE, limit=2, newest_first=True)
    assert [t.id for t in apply_filter(transactions, query)] == ["h", "g"]

    query = TransactionFilter(start=date(2025, 10, 1), end=date(2025, 10, 31))
    assert [t.id for t in apply_filter(transactions, query)] == ["c", "d", "e"]


def test_dashboard():
    dashboard = asyncio.run(report_builder.build_dashboard(make_reader(), ACCOUNT, NOW))

    assert dashboard.monthly_income == Decimal("3000")
    assert dashboard.monthly_expense == Decimal("2100")
    assert dashboard.monthly_balance == Decimal("900")
    # 13000 income - 5500 expense, other accounts excluded
    assert dashboard.current_balance == Decimal("7500")
    assert dashboard.monthly_goal.month == 11
    assert [t.id for t in dashboard.recent_transactions] == ["h", "g", "f", "e", "d"]
    assert (dashboard.period.month, dashboard.period.year) == (11, 2025)


def test_monthly_report():
    report = asyncio.run(report_builder.build_monthly_report(make_reader(), ACCOUNT, 10, 2025))

    assert report.total_income == Decimal("5000")
    assert report.total_expense == Decimal("1900")
    assert report.transaction_count == 3
    assert [c.name for c in report.categories] == ["Salary", "Rent", "Food"]
    assert report.monthly_goal.month == 10
    assert [t.id for t in report.transactions] == ["e", "d", "c"]


def test_period_report_rejects_inverted_range():
    with pytest.raises(InvalidPeriodError):
        asyncio.run(
            report_builder.build_period_report(make_reader(), ACCOUNT, date(2025, 11, 1), date(2025, 10, 1))
        )


def test_period_report():
    report = asyncio.run(
        report_builder.build_period_report(make_reader(), ACCOUNT, date(2025, 10, 15), date(2025, 11, 15))
    )
    assert report.transaction_count == 3
    assert report.balance == Decimal("1100")


def test_trend_is_zero_filled():
    trend = asyncio.run(report_builder.build_trend(make_reader(), ACCOUNT, 6, NOW))
    assert [(p.year, p.month) for p in trend] == [
        (2025, 6), (2025, 7), (2025, 8), (2025, 9), (2025, 10), (2025, 11)
    ]
    assert [p.balance for p in trend] == [0, 0, 0, Decimal("3500"), Decimal("3100"), Decimal("900")]


def test_budget_check():
    check = asyncio.run(report_builder.build_budget_check(make_reader(), ACCOUNT, 11, 2025))
    assert check.status.income_state == "under"
    assert check.status.expense_state == "on_track"
    assert check.status.overall == "warning"

    no_goal = asyncio.run(report_builder.build_budget_check(make_reader(), ACCOUNT, 9, 2025))
    assert no_goal.status.has_goal is False
    assert no_goal.actual.total_income == Decimal("5000")


def test_goal_progress():
    progress = asyncio.run(report_builder.build_goal_progress(make_reader(), ACCOUNT, 2025))

    assert [p.goal.month for p in progress] == [10, 11]
    october = progress[0]
    assert october.income_progress == 100.0
    assert october.expense_progress == 95.0
    assert october.balance == Decimal("3100")
    assert october.goal_balance == Decimal("3000")


def test_average_expense_by_category():
    averages = asyncio.run(report_builder.build_average_expense_by_category(make_reader(), ACCOUNT, 3, NOW))
    # window 2025-08-20..2025-11-20: rent 4500, food 1000
    assert [(a.name, a.total) for a in averages] == [("Rent", Decimal("1500")), ("Food", Decimal(1000) / 3)]


def test_anomalies_need_enough_history():
    assert asyncio.run(report_builder.build_anomalies(make_reader(), ACCOUNT)) == []


def test_notifications_for_account():
    notifications = asyncio.run(report_builder.build_notifications(make_reader(), ACCOUNT, NOW))
    types = [n.type for n in notifications]

    assert types[0] == "income-under"
    assert "tip-set-goal" not in types
    assert "no-recent-transactions" not in types
    assert all(n.id.endswith(f"-{ACCOUNT}-11-2025") for n in notifications)


def test_ledger_failure_fails_the_whole_report():
    reader = BrokenReader(transactions, goals, categories)
    with pytest.raises(LedgerUnavailableError):
        asyncio.run(report_builder.build_notifications(reader, ACCOUNT, NOW))
