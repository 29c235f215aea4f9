"""
Health Check Router
Service liveness and ledger connectivity
"""
import logging
from datetime import datetime

from fastapi import APIRouter, Depends

from finance_insights.core.config import settings
from finance_insights.db.ledger import LedgerReader, LedgerUnavailableError
from finance_insights.models.transaction import TransactionFilter
from finance_insights.routers.deps import get_ledger_reader

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check():
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "timestamp": datetime.now().isoformat(),
    }


@router.get("/status")
def ledger_status(reader: LedgerReader = Depends(get_ledger_reader)):
    """Probe the ledger with a one-row read."""
    ledger = {"connected": False, "error": None}
    try:
        reader.fetch_transactions("__health__", TransactionFilter(limit=1))
        ledger["connected"] = True
    except LedgerUnavailableError as e:
        logger.error(f"Ledger status check failed: {str(e)}")
        ledger["error"] = str(e)

    return {
        "timestamp": datetime.now().isoformat(),
        "overall_status": "healthy" if ledger["connected"] else "degraded",
        "services": {"ledger": ledger},
    }
