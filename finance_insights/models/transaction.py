import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

# Exact in Python, plain numbers in JSON.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class TransactionKind(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class Category(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    color: str = "#6B7280"
    kind: TransactionKind
    is_active: bool = True


class Transaction(BaseModel):
    """A ledger entry as read by the engine. The amount is always a magnitude;
    whether it adds or subtracts is decided by `kind`."""

    model_config = ConfigDict(frozen=True)

    id: str
    account_id: str
    amount: Money = Field(ge=0)
    kind: TransactionKind
    date: datetime.date
    category_id: str
    description: Optional[str] = ""
    category: Optional[Category] = None  # joined category row, when the reader embeds it


class MonthlyGoal(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_id: str
    month: int = Field(ge=1, le=12)
    year: int
    income_target: Money = Field(default=Decimal("0"), ge=0)
    expense_target: Money = Field(default=Decimal("0"), ge=0)


class TransactionFilter(BaseModel):
    """Query understood by every ledger reader. Bounds are inclusive."""

    start: Optional[datetime.date] = None
    end: Optional[datetime.date] = None
    kind: Optional[TransactionKind] = None
    limit: Optional[int] = Field(default=None, ge=1)
    newest_first: bool = False
