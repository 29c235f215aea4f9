import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel

from finance_insights.models.transaction import Money, MonthlyGoal, Transaction, TransactionKind

BudgetState = Literal["under", "on_track", "over"]
OverallState = Literal["good", "warning", "danger"]


class FinancialSummary(BaseModel):
    total_income: Money = Decimal("0")
    total_expense: Money = Decimal("0")
    balance: Money = Decimal("0")
    count: int = 0


class CategorySummary(BaseModel):
    category_id: str
    name: str
    color: str
    kind: TransactionKind
    total: Money
    count: int
    percentage: float


class MonthlyTrendPoint(BaseModel):
    month: int
    year: int
    income: Money = Decimal("0")
    expense: Money = Decimal("0")
    balance: Money = Decimal("0")


class BudgetStatus(BaseModel):
    has_goal: bool
    income_state: BudgetState = "on_track"
    expense_state: BudgetState = "on_track"
    overall: OverallState = "good"


class BudgetCheck(BaseModel):
    goal: Optional[MonthlyGoal] = None
    actual: FinancialSummary
    status: BudgetStatus


class GoalProgress(BaseModel):
    goal: MonthlyGoal
    actual_income: Money
    actual_expense: Money
    income_progress: float
    expense_progress: float
    balance: Money
    goal_balance: Money


class Period(BaseModel):
    month: int
    year: int


class DashboardReport(BaseModel):
    current_balance: Money
    monthly_income: Money
    monthly_expense: Money
    monthly_balance: Money
    monthly_goal: Optional[MonthlyGoal] = None
    recent_transactions: List[Transaction]
    period: Period


class TransactionReport(BaseModel):
    """Totals, category breakdown and the transactions behind them, newest first."""

    total_income: Money
    total_expense: Money
    balance: Money
    transaction_count: int
    categories: List[CategorySummary]
    transactions: List[Transaction]


class MonthlyReport(TransactionReport):
    month: int
    year: int
    monthly_goal: Optional[MonthlyGoal] = None


class PeriodReport(TransactionReport):
    start_date: datetime.date
    end_date: datetime.date
