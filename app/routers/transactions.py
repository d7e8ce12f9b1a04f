from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.security import get_current_user_id
from app.db import dynamo
from app.models.transaction import TransactionCreate, TransactionInDB, TransactionPublic

router = APIRouter()


@router.post("/", response_model=TransactionPublic, status_code=status.HTTP_201_CREATED)
def create_transaction(transaction: TransactionCreate, user_id: str = Depends(get_current_user_id)):
    transaction_db = TransactionInDB(user_id=user_id, **transaction.model_dump())
    success = dynamo.put_transaction(transaction_db.model_dump(mode="json"))
    if not success:
        raise HTTPException(status_code=500, detail="Failed to save transaction")
    return TransactionPublic(**transaction_db.model_dump())


@router.get("/")
def list_transactions(
    limit: int = Query(default=50, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
):
    """Latest transactions, newest first."""
    transactions = dynamo.get_recent_transactions(user_id, limit)
    return {"transactions": transactions, "count": len(transactions)}
