"""
Insights Router
Spending analysis, anomalies, recommendations and an expense forecast
"""
import logging
from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.config import settings
from app.core.security import get_current_user_id
from app.db import dynamo
from app.models.bill import to_utc_datetime
from app.utils.analyzer import ExpenseAnalyzer
from app.utils.insights import build_insights

router = APIRouter()
logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@router.get("/")
def get_insights(
    days_ahead: int = Query(default=30, ge=0, le=365),
    user_id: str = Depends(get_current_user_id),
) -> Dict:
    transactions = dynamo.get_recent_transactions(user_id, settings.INSIGHTS_TRANSACTION_LIMIT)
    try:
        # The income trend reads halves in order, so feed the analyzer oldest first
        transactions.sort(key=lambda t: to_utc_datetime(t.get("date") or EPOCH))
        result = ExpenseAnalyzer(transactions).summarize(days_ahead=days_ahead)
    except Exception as e:
        logger.error(f"Error analyzing transactions for user {user_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error analyzing transactions")

    return {
        "analysis": result.to_dict(),
        "insights": [insight.to_dict() for insight in build_insights(result)],
    }
