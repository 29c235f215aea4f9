from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from finance_insights.db.ledger import LedgerReader
from finance_insights.models.report import (
    BudgetCheck,
    CategorySummary,
    DashboardReport,
    GoalProgress,
    MonthlyReport,
    MonthlyTrendPoint,
    PeriodReport,
)
from finance_insights.models.transaction import Transaction
from finance_insights.routers.deps import get_account_id, get_ledger_reader, get_now, run_report
from finance_insights.utils import report_builder

router = APIRouter()


@router.get("/summary", response_model=DashboardReport)
async def get_financial_summary(
    account_id: str = Depends(get_account_id),
    reader: LedgerReader = Depends(get_ledger_reader),
    now: datetime = Depends(get_now),
):
    """
    Current month income/expense/balance, lifetime balance, the month's goal
    and the latest transactions.
    """
    return await run_report("summary", report_builder.build_dashboard(reader, account_id, now))


@router.get("/monthly", response_model=MonthlyReport)
async def get_monthly_report(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1900, le=9999),
    account_id: str = Depends(get_account_id),
    reader: LedgerReader = Depends(get_ledger_reader),
    now: datetime = Depends(get_now),
):
    """Report for one calendar month; defaults to the current month."""
    return await run_report(
        "monthly report",
        report_builder.build_monthly_report(reader, account_id, month or now.month, year or now.year),
    )


@router.get("/period", response_model=PeriodReport)
async def get_period_report(
    start_date: date,
    end_date: date,
    account_id: str = Depends(get_account_id),
    reader: LedgerReader = Depends(get_ledger_reader),
):
    return await run_report(
        "period report",
        report_builder.build_period_report(reader, account_id, start_date, end_date),
    )


@router.get("/categories", response_model=List[CategorySummary])
async def get_category_summary(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    account_id: str = Depends(get_account_id),
    reader: LedgerReader = Depends(get_ledger_reader),
):
    return await run_report(
        "category summary",
        report_builder.build_category_report(reader, account_id, start_date, end_date),
    )


@router.get("/trend", response_model=List[MonthlyTrendPoint])
async def get_monthly_trend(
    months: int = Query(12, ge=1, le=60),
    account_id: str = Depends(get_account_id),
    reader: LedgerReader = Depends(get_ledger_reader),
    now: datetime = Depends(get_now),
):
    return await run_report("monthly trend", report_builder.build_trend(reader, account_id, months, now))


@router.get("/budget", response_model=BudgetCheck)
async def get_budget_status(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1900, le=9999),
    account_id: str = Depends(get_account_id),
    reader: LedgerReader = Depends(get_ledger_reader),
    now: datetime = Depends(get_now),
):
    return await run_report(
        "budget status",
        report_builder.build_budget_check(reader, account_id, month or now.month, year or now.year),
    )


@router.get("/goals", response_model=List[GoalProgress])
async def get_goal_progress(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    account_id: str = Depends(get_account_id),
    reader: LedgerReader = Depends(get_ledger_reader),
    now: datetime = Depends(get_now),
):
    """Every monthly goal of the year with the actual figures it was measured against."""
    return await run_report(
        "goal progress",
        report_builder.build_goal_progress(reader, account_id, year or now.year),
    )


@router.get("/average-expenses", response_model=List[CategorySummary])
async def get_average_expenses(
    months: int = Query(6, ge=1, le=60),
    account_id: str = Depends(get_account_id),
    reader: LedgerReader = Depends(get_ledger_reader),
    now: datetime = Depends(get_now),
):
    return await run_report(
        "average expenses",
        report_builder.build_average_expense_by_category(reader, account_id, months, now),
    )


@router.get("/anomalies", response_model=List[Transaction])
async def get_unusual_expenses(
    threshold: Optional[float] = Query(None, gt=0),
    account_id: str = Depends(get_account_id),
    reader: LedgerReader = Depends(get_ledger_reader),
):
    """Recent expenses that sit more than `threshold` standard deviations above the mean."""
    return await run_report("anomalies", report_builder.build_anomalies(reader, account_id, threshold))
