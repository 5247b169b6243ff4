"""
Account Management Module

Registers ledger accounts with a fixed initial balance and resolves receiver
handles to account ids. Balances are only ever mutated by the transfer
engine; accounts are never deleted.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, Optional
import re
import uuid

from .config import LedgerConfig, get_config
from .errors import AccountNotFound, InvalidHandle
from .events import DomainEvent, EventDispatcher, EventPayload
from .logging_config import get_logger, log_action
from .money import parse_balance
from .storage import LedgerStore, StorageRecord

HANDLE_PATTERN = re.compile(r'^[A-Za-z0-9_.-]{3,32}$')


@dataclass
class Account(StorageRecord):
    """Ledger account holding a single-currency balance"""
    handle: str
    balance: Decimal
    updated_at: datetime

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Account':
        account = super().from_dict(data)
        account.balance = parse_balance(account.balance)
        return account


def validate_handle(handle: Any) -> str:
    """Return the handle unchanged or raise InvalidHandle"""
    if not isinstance(handle, str) or not HANDLE_PATTERN.match(handle):
        raise InvalidHandle(f"Invalid handle {handle!r}: use 3-32 letters, digits, '_', '.' or '-'")
    return handle


class AccountManager:
    """
    Account directory: registration, lookups and receiver resolution
    """

    def __init__(
        self,
        store: LedgerStore,
        config: Optional[LedgerConfig] = None,
        event_dispatcher: Optional[EventDispatcher] = None
    ):
        self.store = store
        self.config = config or get_config()
        self._event_dispatcher = event_dispatcher
        self.logger = get_logger("wallet_ledger.accounts")

    def register(
        self,
        handle: str,
        initial_balance: Optional[Decimal] = None,
        credential: Optional[Dict[str, Any]] = None
    ) -> Account:
        """
        Register a new account

        Args:
            handle: Unique public handle
            initial_balance: Opening balance (configured default when omitted)
            credential: Optional credential fields (password_salt, password_hash)
                written in the same store transaction

        Returns:
            Created Account

        Raises:
            InvalidHandle: If the handle is malformed
            HandleTaken: If the handle is already registered
        """
        validate_handle(handle)
        balance = parse_balance(
            self.config.initial_balance if initial_balance is None else initial_balance
        )
        if balance < 0:
            raise ValueError("Initial balance cannot be negative")

        now = datetime.now(timezone.utc)
        account = Account(
            id=str(uuid.uuid4()),
            created_at=now,
            handle=handle,
            balance=balance,
            updated_at=now
        )

        with self.store.transaction() as txn:
            txn.insert_account(account.to_dict())
            if credential is not None:
                txn.insert_credential({
                    'account_id': account.id,
                    'password_salt': credential['password_salt'],
                    'password_hash': credential['password_hash'],
                    'created_at': now.isoformat()
                })

        log_action(
            self.logger, "info", f"Registered account {handle}",
            user_id=account.id, action="register", resource="account",
            extra={"handle": handle, "initial_balance": str(balance)}
        )
        if self._event_dispatcher:
            self._event_dispatcher.publish(EventPayload(
                event_type=DomainEvent.ACCOUNT_REGISTERED,
                entity_type="account",
                entity_id=account.id,
                data={"handle": handle, "balance": str(balance)}
            ))
        return account

    def get_account(self, account_id: str) -> Optional[Account]:
        """Get account by ID"""
        data = self.store.get_account(account_id)
        return Account.from_dict(data) if data else None

    def get_account_by_handle(self, handle: str) -> Optional[Account]:
        data = self.store.get_account_by_handle(handle)
        return Account.from_dict(data) if data else None

    def get_balance(self, account_id: str) -> Decimal:
        """Committed balance of an account"""
        account = self.get_account(account_id)
        if account is None:
            raise AccountNotFound(f"Account {account_id} not found")
        return account.balance

    def resolve(self, handle_or_id: str) -> Optional[str]:
        """
        Resolve a receiver reference to an account id

        An existing account id resolves to itself; otherwise the value is
        looked up as a handle. Returns None when nothing matches.
        """
        if not isinstance(handle_or_id, str) or not handle_or_id:
            return None
        if self.store.get_account(handle_or_id) is not None:
            return handle_or_id
        account = self.store.get_account_by_handle(handle_or_id)
        return account['id'] if account else None
