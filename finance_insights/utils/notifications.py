"""
Notification Generator
Turns budget verdicts, spending anomalies and simple usage checks into
user-facing alerts and tips, then ranks them by severity and recency.
"""
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from finance_insights.models.notification import Notification, NotificationInputs, Severity
from finance_insights.models.transaction import TransactionKind
from finance_insights.utils.analyzer import FinanceAnalyzer, transactions_since
from finance_insights.utils.periods import days_ago, format_currency, months_ago

SEVERITY_ORDER: Dict[str, int] = {"danger": 0, "warning": 1, "info": 2, "success": 3}

APPROACHING_LIMIT_PERCENT = 80
INACTIVITY_DAYS = 7
UNUSED_CATEGORY_DAYS = 30
TRAILING_MONTHS = 3
DOMINANT_CATEGORY_PERCENT = 40
MIN_EXPENSE_CATEGORIES = 3
EXPENSE_INCREASE_RATIO = Decimal("1.2")
INCOME_DECREASE_RATIO = Decimal("0.8")


def rank_notifications(notifications: Iterable[Notification]) -> List[Notification]:
    """Most severe first; within a severity, newest first. Ties keep input order."""
    by_recency = sorted(notifications, key=lambda n: n.created_at, reverse=True)
    return sorted(by_recency, key=lambda n: SEVERITY_ORDER[n.severity])


def _percent(part: Decimal, whole: Decimal) -> float:
    return float(part / whole * 100)


class NotificationGenerator:
    def __init__(
        self,
        analyzer: Optional[FinanceAnalyzer] = None,
        currency_symbol: Optional[str] = None,
    ) -> None:
        self.analyzer = analyzer or FinanceAnalyzer()
        self.currency_symbol = currency_symbol

    def generate(self, inputs: NotificationInputs) -> List[Notification]:
        return rank_notifications(self.generate_alerts(inputs) + self.generate_tips(inputs))

    def _money(self, amount: Decimal) -> str:
        return format_currency(amount, self.currency_symbol)

    @staticmethod
    def _build(
        inputs: NotificationInputs,
        tag: str,
        severity: Severity,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        now = inputs.now
        return Notification(
            id=f"{tag}-{inputs.account_id}-{now.month}-{now.year}",
            type=tag,
            severity=severity,
            title=title,
            message=message,
            data=data,
            created_at=now,
        )

    def generate_alerts(self, inputs: NotificationInputs) -> List[Notification]:
        alerts: List[Notification] = []
        alerts.extend(self._budget_alerts(inputs))

        unusual = self._unusual_expenses_alert(inputs)
        if unusual:
            alerts.append(unusual)

        inactivity = self._inactivity_alert(inputs)
        if inactivity:
            alerts.append(inactivity)

        unused = self._unused_categories_alert(inputs)
        if unused:
            alerts.append(unused)
        return alerts

    def _budget_alerts(self, inputs: NotificationInputs) -> List[Notification]:
        goal = inputs.goal
        if goal is None:
            return []

        check = self.analyzer.check_budget(goal, inputs.month_transactions)
        actual, status = check.actual, check.status
        alerts: List[Notification] = []

        if status.expense_state == "over":
            alerts.append(
                self._build(
                    inputs,
                    "expense-over",
                    "danger",
                    "Spending above goal",
                    f"You have spent {self._money(actual.total_expense)} this month, "
                    f"exceeding your goal of {self._money(goal.expense_target)}.",
                    {
                        "actual": actual.total_expense,
                        "goal": goal.expense_target,
                        "percentage": _percent(actual.total_expense, goal.expense_target),
                    },
                )
            )

        if status.income_state == "under":
            alerts.append(
                self._build(
                    inputs,
                    "income-under",
                    "warning",
                    "Income below goal",
                    f"Your income so far of {self._money(actual.total_income)} is below "
                    f"your goal of {self._money(goal.income_target)}.",
                    {
                        "actual": actual.total_income,
                        "goal": goal.income_target,
                        "percentage": _percent(actual.total_income, goal.income_target),
                    },
                )
            )

        if actual.balance < 0:
            alerts.append(
                self._build(
                    inputs,
                    "negative-balance",
                    "danger",
                    "Negative balance",
                    f"Your balance for this month is negative by {self._money(abs(actual.balance))}.",
                    {"balance": actual.balance},
                )
            )

        if goal.expense_target > 0:
            spent_percent = _percent(actual.total_expense, goal.expense_target)
            if APPROACHING_LIMIT_PERCENT <= spent_percent < 100:
                alerts.append(
                    self._build(
                        inputs,
                        "expense-warning",
                        "warning",
                        "Approaching your spending limit",
                        f"You have used {spent_percent:.1f}% of your monthly spending goal. "
                        f"{self._money(goal.expense_target - actual.total_expense)} left.",
                        {
                            "percentage": spent_percent,
                            "remaining": goal.expense_target - actual.total_expense,
                        },
                    )
                )
        return alerts

    def _unusual_expenses_alert(self, inputs: NotificationInputs) -> Optional[Notification]:
        unusual = self.analyzer.detect_anomalies(inputs.recent_expenses)
        if not unusual:
            return None

        total = sum((txn.amount for txn in unusual), Decimal("0"))
        return self._build(
            inputs,
            "unusual-expenses",
            "info",
            "Unusual expenses detected",
            f"We found {len(unusual)} transaction(s) well above your usual spending, "
            f"totalling {self._money(total)}.",
            {
                "transactions": [txn.model_dump() for txn in unusual[:3]],
                "total": total,
                "count": len(unusual),
            },
        )

    def _inactivity_alert(self, inputs: NotificationInputs) -> Optional[Notification]:
        since = days_ago(inputs.now.date(), INACTIVITY_DAYS)
        if transactions_since(inputs.all_transactions, since):
            return None

        return self._build(
            inputs,
            "no-recent-transactions",
            "info",
            "No recent transactions",
            f"You have not recorded any transaction in the last {INACTIVITY_DAYS} days. "
            "Keep your records up to date.",
            {"days": INACTIVITY_DAYS},
        )

    def _unused_categories_alert(self, inputs: NotificationInputs) -> Optional[Notification]:
        since = days_ago(inputs.now.date(), UNUSED_CATEGORY_DAYS)
        used_ever = {txn.category_id for txn in inputs.all_transactions}
        used_recently = {txn.category_id for txn in transactions_since(inputs.all_transactions, since)}

        stale = [
            category
            for category in inputs.categories
            if category.is_active and category.id in used_ever and category.id not in used_recently
        ]
        if not stale:
            return None

        return self._build(
            inputs,
            "unused-categories",
            "info",
            "Categories without recent use",
            f"You have {len(stale)} category(ies) not used in more than {UNUSED_CATEGORY_DAYS} days.",
            {
                "categories": [category.name for category in stale[:5]],
                "count": len(stale),
            },
        )

    def generate_tips(self, inputs: NotificationInputs) -> List[Notification]:
        tips: List[Notification] = []
        tips.extend(self._category_tips(inputs))
        tips.extend(self._trend_tips(inputs))

        if inputs.goal is None:
            tips.append(
                self._build(
                    inputs,
                    "tip-set-goal",
                    "info",
                    "Set your goals",
                    "You have not set a financial goal for this month yet. "
                    "Goals help you keep spending under control.",
                )
            )
        return tips

    def _category_tips(self, inputs: NotificationInputs) -> List[Notification]:
        since = months_ago(inputs.now.date(), TRAILING_MONTHS)
        window = transactions_since(inputs.trailing_transactions, since)
        lookup = {category.id: category for category in inputs.categories}
        expense_categories = [
            summary
            for summary in self.analyzer.category_summary(window, lookup)
            if summary.kind == TransactionKind.EXPENSE
        ]
        if not expense_categories:
            return []

        tips: List[Notification] = []
        top = expense_categories[0]
        if top.percentage > DOMINANT_CATEGORY_PERCENT:
            tips.append(
                self._build(
                    inputs,
                    "tip-top-expense",
                    "info",
                    "Savings tip",
                    f'{top.percentage:.1f}% of your spending goes to "{top.name}" '
                    f"({self._money(top.total)}). Reviewing it may reveal savings.",
                    {"category": top.model_dump()},
                )
            )

        if len(expense_categories) < MIN_EXPENSE_CATEGORIES:
            tips.append(
                self._build(
                    inputs,
                    "tip-diversification",
                    "info",
                    "Organise your spending",
                    f"You only use {len(expense_categories)} expense category(ies). "
                    "More specific categories give you a more detailed picture.",
                    {"count": len(expense_categories)},
                )
            )
        return tips

    def _trend_tips(self, inputs: NotificationInputs) -> List[Notification]:
        trend = self.analyzer.monthly_trend(
            inputs.trailing_transactions, months=TRAILING_MONTHS, anchor=inputs.now.date()
        )
        current, previous = trend[-1], trend[-2]
        tips: List[Notification] = []

        if current.expense > previous.expense * EXPENSE_INCREASE_RATIO:
            increase = current.expense - previous.expense
            if previous.expense > 0:
                increase_percent: Optional[float] = _percent(increase, previous.expense)
                message = (
                    f"Your spending rose {increase_percent:.1f}% compared to last month. "
                    "Review your recent expenses."
                )
            else:
                increase_percent = None
                message = (
                    f"You spent {self._money(current.expense)} this month after no spending "
                    "last month. Review your recent expenses."
                )
            tips.append(
                self._build(
                    inputs,
                    "tip-expense-increase",
                    "warning",
                    "Spending is up",
                    message,
                    {
                        "current_month": current.expense,
                        "previous_month": previous.expense,
                        "increase": increase,
                        "percentage": increase_percent,
                    },
                )
            )

        if current.income < previous.income * INCOME_DECREASE_RATIO:
            tips.append(
                self._build(
                    inputs,
                    "tip-income-decrease",
                    "info",
                    "Income is down",
                    f"Your income fell from {self._money(previous.income)} to "
                    f"{self._money(current.income)}. Consider additional sources of income.",
                    {
                        "current_month": current.income,
                        "previous_month": previous.income,
                        "decrease": previous.income - current.income,
                    },
                )
            )
        return tips
