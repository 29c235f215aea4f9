import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_serializer

from finance_insights.models.transaction import Category, MonthlyGoal, Transaction

Severity = Literal["danger", "warning", "info", "success"]


def _plain_numbers(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {k: _plain_numbers(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain_numbers(item) for item in value]
    return value


class Notification(BaseModel):
    id: str
    type: str
    severity: Severity
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None
    created_at: datetime.datetime

    @field_serializer("data", when_used="json")
    def serialize_data(self, data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        # amounts in the payload are Decimals; JSON gets numbers like every Money field
        return _plain_numbers(data)


class NotificationFeed(BaseModel):
    notifications: List[Notification]
    count: int
    severity_counts: Dict[str, int]


class NotificationInputs(BaseModel):
    """
    Everything the generator needs for one account, already fetched.
    `now` drives ids, timestamps and every relative window, so passing the
    same bundle twice yields the same notifications.
    """

    account_id: str
    now: datetime.datetime
    month_transactions: List[Transaction] = Field(default_factory=list)
    goal: Optional[MonthlyGoal] = None
    recent_expenses: List[Transaction] = Field(default_factory=list)  # newest first
    all_transactions: List[Transaction] = Field(default_factory=list)
    categories: List[Category] = Field(default_factory=list)
    trailing_transactions: List[Transaction] = Field(default_factory=list)
