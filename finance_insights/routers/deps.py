"""
Shared router dependencies
The account comes from the X-Account-Id header set by the upstream auth layer.
"""
import logging
from datetime import datetime
from functools import lru_cache
from typing import Awaitable, Optional, TypeVar

from fastapi import Header, HTTPException, status

from finance_insights.db.dynamo import DynamoLedgerReader
from finance_insights.db.ledger import LedgerReader, LedgerUnavailableError
from finance_insights.utils.periods import InvalidPeriodError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_account_id(x_account_id: Optional[str] = Header(None)) -> str:
    if not x_account_id or not x_account_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account header required")
    return x_account_id.strip()


@lru_cache
def get_ledger_reader() -> LedgerReader:
    return DynamoLedgerReader()


def get_now() -> datetime:
    return datetime.now()


async def run_report(operation: str, report: Awaitable[T]) -> T:
    """Await a report builder, translating engine errors into HTTP errors."""
    try:
        return await report
    except InvalidPeriodError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except LedgerUnavailableError as e:
        logger.error(f"{operation}: ledger unavailable: {str(e)}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Ledger unavailable")
    except Exception as e:
        logger.error(f"Unexpected error in {operation}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Internal server error: {str(e)}")
