"""
Pydantic schemas for API requests and responses
"""

from typing import Any, Optional
from pydantic import BaseModel, Field

from ..accounts import Account
from ..transfers import TransferRecord


class RegisterRequest(BaseModel):
    handle: str
    password: str


class LoginRequest(BaseModel):
    handle: str
    password: str


class TransferRequest(BaseModel):
    receiver: str = Field(..., description="Receiver handle or account id")
    # Validated by the transfer engine so that bad amounts map to invalid_amount
    amount: Any = Field(None, description="Positive amount, number or decimal string")


class AccountModel(BaseModel):
    id: str
    handle: str
    balance: str

    @classmethod
    def from_account(cls, account: Account) -> 'AccountModel':
        return cls(id=account.id, handle=account.handle, balance=str(account.balance))


class TransferModel(BaseModel):
    id: str
    sender_id: str
    receiver_id: str
    amount: str
    status: str
    created_at: str
    sender_handle: Optional[str] = None
    receiver_handle: Optional[str] = None

    @classmethod
    def from_record(cls, record: TransferRecord, sender_handle: Optional[str] = None,
                    receiver_handle: Optional[str] = None) -> 'TransferModel':
        return cls(
            id=record.id,
            sender_id=record.sender_id,
            receiver_id=record.receiver_id,
            amount=str(record.amount),
            status=record.status.value,
            created_at=record.created_at.isoformat(),
            sender_handle=sender_handle,
            receiver_handle=receiver_handle
        )
