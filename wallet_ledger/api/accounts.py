"""
Registration and login endpoints
"""

from fastapi import APIRouter, Depends

from .auth import LedgerSystem, get_ledger_system
from .schemas import AccountModel, LoginRequest, RegisterRequest


router = APIRouter()


@router.post("/register", status_code=201)
def register(
    request: RegisterRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Register an account with the initial balance"""
    account = system.auth_service.register(request.handle, request.password)
    return {
        "message": "User registered successfully",
        "account_id": account.id
    }


@router.post("/login")
def login(
    request: LoginRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Exchange credentials for a bearer token"""
    token, account = system.auth_service.login(request.handle, request.password)
    return {
        "token": token,
        "account": AccountModel.from_account(account).model_dump()
    }
