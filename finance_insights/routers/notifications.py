"""
Notifications Router
Budget alerts, unusual-spending alerts and personalised tips, ranked by
severity then recency.
"""
from datetime import datetime

from fastapi import APIRouter, Depends

from finance_insights.db.ledger import LedgerReader
from finance_insights.models.notification import NotificationFeed
from finance_insights.routers.deps import get_account_id, get_ledger_reader, get_now, run_report
from finance_insights.utils import report_builder
from finance_insights.utils.notifications import SEVERITY_ORDER

router = APIRouter()


@router.get("/", response_model=NotificationFeed)
async def get_notifications(
    account_id: str = Depends(get_account_id),
    reader: LedgerReader = Depends(get_ledger_reader),
    now: datetime = Depends(get_now),
):
    notifications = await run_report(
        "notifications", report_builder.build_notifications(reader, account_id, now)
    )

    # Count by severity
    severity_counts = {severity: 0 for severity in SEVERITY_ORDER}
    for notification in notifications:
        severity_counts[notification.severity] += 1

    return NotificationFeed(
        notifications=notifications,
        count=len(notifications),
        severity_counts=severity_counts,
    )
