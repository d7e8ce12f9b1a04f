"""
Health Check Router
Service liveness plus DynamoDB and scheduler status
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from app.core.config import settings
from app.db import dynamo
from app.utils.scheduler import get_scheduler_status

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
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/status")
def services_status():
    """
    Check that every DynamoDB table is reachable and report the scheduler state.
    """
    tables = {
        "transactions": dynamo.transactions_table,
        "bills": dynamo.bills_table,
        "notifications": dynamo.notifications_table,
    }

    dynamodb_status = {"connected": False, "region": settings.DYNAMO_REGION, "tables": {}}
    for label, table in tables.items():
        try:
            table.scan(Limit=1)
            dynamodb_status["tables"][label] = {"name": table.name, "status": "accessible"}
        except Exception as e:
            logger.error(f"DynamoDB check failed for {label}: {str(e)}")
            dynamodb_status["tables"][label] = {"name": table.name, "status": "error", "error": str(e)}

    dynamodb_status["connected"] = all(
        t["status"] == "accessible" for t in dynamodb_status["tables"].values()
    )

    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "dynamodb": dynamodb_status,
            "scheduler": get_scheduler_status(),
        },
        "overall_status": "healthy" if dynamodb_status["connected"] else "degraded",
    }
