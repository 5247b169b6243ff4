"""
Notification polling endpoint
"""

from fastapi import APIRouter, Depends

from .auth import LedgerSystem, get_current_caller, get_ledger_system
from ..auth import CallerIdentity


router = APIRouter()


@router.get("")
def poll_notifications(
    caller: CallerIdentity = Depends(get_current_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Drain the caller's pending balance notifications (subscribes on first poll)"""
    system.in_app_channel.subscribe(caller.account_id)
    return {"events": system.in_app_channel.poll(caller.account_id)}
