"""
Transfer, history and balance endpoints
"""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query

from .auth import LedgerSystem, get_current_caller, get_ledger_system
from .schemas import TransferModel, TransferRequest
from ..auth import CallerIdentity


router = APIRouter()


@router.post("/transfer")
def transfer(
    request: TransferRequest,
    caller: CallerIdentity = Depends(get_current_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Transfer funds from the caller to a receiver"""
    record = system.transfer_engine.execute(
        sender_id=caller.account_id,
        receiver=request.receiver,
        amount=request.amount
    )
    return {
        "success": True,
        "transaction": TransferModel.from_record(record).model_dump()
    }


@router.get("/history")
def history(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    caller: CallerIdentity = Depends(get_current_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Transfers sent or received by the caller, newest first"""
    records = system.transfer_engine.get_history(caller.account_id, limit=limit)

    handles: Dict[str, Optional[str]] = {}

    def handle_of(account_id: str) -> Optional[str]:
        if account_id not in handles:
            account = system.account_manager.get_account(account_id)
            handles[account_id] = account.handle if account else None
        return handles[account_id]

    return [
        TransferModel.from_record(
            record,
            sender_handle=handle_of(record.sender_id),
            receiver_handle=handle_of(record.receiver_id)
        ).model_dump()
        for record in records
    ]


@router.get("/balance")
def balance(
    caller: CallerIdentity = Depends(get_current_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Committed balance of the caller"""
    return {
        "account_id": caller.account_id,
        "handle": caller.handle,
        "balance": str(system.account_manager.get_balance(caller.account_id))
    }
