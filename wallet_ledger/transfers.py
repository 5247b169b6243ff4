"""
Transfer Engine Module

Moves funds between two accounts inside a single ledger store transaction.
Money is never created or destroyed: either the sender is debited, the
receiver credited and a SUCCESS transfer record written together, or
nothing changes.

The engine holds no locks of its own. Correctness under concurrency comes
from the store transaction plus an explicit re-validation of the sender
balance after the store-atomic decrement, which catches a concurrent
transfer that drained the account between the read and the write on stores
with weaker isolation.

Audit appends, balance notifications and domain events happen only after
commit and never change the result returned to the caller.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Tuple
import uuid

from .audit import AuditSink
from .background import BackgroundDispatcher
from .errors import (
    InfrastructureError, InsufficientFunds, LedgerError, NoActiveChannel,
    ReceiverNotFound, SelfTransfer, SenderNotFound
)
from .events import DomainEvent, EventDispatcher, EventPayload
from .logging_config import get_logger, log_action
from .money import ZERO, parse_amount, parse_balance
from .notifications import BalanceChangedEvent, BalanceNotifier
from .storage import LedgerStore, StorageRecord, TransactionHandle


class TransferStatus(Enum):
    """Terminal status of a transfer record"""
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


@dataclass
class TransferRecord(StorageRecord):
    """Immutable record of a committed transfer"""
    sender_id: str
    receiver_id: str
    amount: Decimal
    status: TransferStatus

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TransferRecord':
        record = super().from_dict(data)
        record.amount = parse_balance(record.amount)
        record.status = TransferStatus(record.status)
        return record


class AccountDirectory(Protocol):
    """Resolves a receiver handle (or id) to an account id"""

    def resolve(self, handle_or_id: str) -> Optional[str]:
        ...


class TransferEngine:
    """
    Executes atomic transfers and triggers post-commit side effects
    """

    def __init__(
        self,
        store: LedgerStore,
        directory: AccountDirectory,
        audit_sink: Optional[AuditSink] = None,
        notifier: Optional[BalanceNotifier] = None,
        dispatcher: Optional[BackgroundDispatcher] = None,
        event_dispatcher: Optional[EventDispatcher] = None,
        timeout: Optional[float] = None,
        max_wait: Optional[float] = None
    ):
        self.store = store
        self.directory = directory
        self.audit_sink = audit_sink
        self.notifier = notifier
        self.dispatcher = dispatcher
        self._event_dispatcher = event_dispatcher
        self.timeout = timeout
        self.max_wait = max_wait
        self.logger = get_logger("wallet_ledger.transfers")

    def execute(self, sender_id: str, receiver: str, amount: Any,
                correlation_id: Optional[str] = None) -> TransferRecord:
        """
        Transfer ``amount`` from the sender to the receiver

        Args:
            sender_id: Authenticated caller's account id
            receiver: Receiver handle or account id
            amount: Positive amount (int, Decimal, finite float or numeric string)
            correlation_id: Optional request id for log correlation

        Returns:
            The committed TransferRecord (status SUCCESS)

        Raises:
            InvalidAmount, ReceiverNotFound, SelfTransfer: Rejected before the
                store is touched
            SenderNotFound, InsufficientFunds: Rejected inside the transaction
            TransactionTimeout, StoreUnavailable: Store failures; nothing was
                committed unless a timeout hit during commit (re-query first)
        """
        try:
            value = parse_amount(amount)
            receiver_id = self.directory.resolve(receiver)
            if receiver_id is None:
                raise ReceiverNotFound(f"Receiver {receiver!r} not found")
            if receiver_id == sender_id:
                raise SelfTransfer()

            record, sender_balance, receiver_balance = self.store.with_transaction(
                lambda txn: self._apply(txn, sender_id, receiver_id, value),
                timeout=self.timeout,
                max_wait=self.max_wait
            )
        except LedgerError as e:
            level = "error" if isinstance(e, InfrastructureError) else "warning"
            log_action(
                self.logger, level, f"Transfer rejected: {e.message}",
                user_id=sender_id, action="transfer", resource="transfer",
                correlation_id=correlation_id,
                extra={"error": e.code, "receiver": str(receiver), "amount": str(amount)}
            )
            raise

        log_action(
            self.logger, "info", f"Transfer {record.id} committed",
            user_id=sender_id, action="transfer", resource=f"transfer:{record.id}",
            correlation_id=correlation_id,
            extra={"receiver_id": receiver_id, "amount": str(value)}
        )
        self._after_commit(record, sender_balance, receiver_balance)
        return record

    def _apply(self, txn: TransactionHandle, sender_id: str, receiver_id: str,
               amount: Decimal) -> Tuple[TransferRecord, Decimal, Decimal]:
        # Receiver resolved outside the transaction; confirm it still exists
        if txn.get_account(receiver_id) is None:
            raise ReceiverNotFound(f"Receiver {receiver_id} not found")

        sender = txn.get_account(sender_id)
        if sender is None:
            raise SenderNotFound(f"Sender {sender_id} not found")
        if parse_balance(sender['balance']) < amount:
            raise InsufficientFunds()

        sender_balance = txn.update_balance(sender_id, -amount)
        # Re-validate after the atomic decrement
        if sender_balance < ZERO:
            raise InsufficientFunds()

        receiver_balance = txn.update_balance(receiver_id, amount)

        record = TransferRecord(
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
            sender_id=sender_id,
            receiver_id=receiver_id,
            amount=amount,
            status=TransferStatus.SUCCESS
        )
        txn.insert_transfer_record(record.to_dict())
        return record, sender_balance, receiver_balance

    def _after_commit(self, record: TransferRecord, sender_balance: Decimal,
                      receiver_balance: Decimal) -> None:
        self._submit(self._append_audit, record, description=f"audit:{record.id}")

        for account_id, delta, balance in (
            (record.sender_id, -record.amount, sender_balance),
            (record.receiver_id, record.amount, receiver_balance),
        ):
            event = BalanceChangedEvent(
                account_id=account_id,
                transfer_id=record.id,
                delta_amount=delta,
                new_balance=balance,
                timestamp=record.created_at
            )
            self._submit(self._notify, account_id, event,
                         description=f"notify:{account_id}:{record.id}")

        if self._event_dispatcher:
            self._event_dispatcher.publish(EventPayload(
                event_type=DomainEvent.TRANSFER_COMPLETED,
                entity_type="transfer",
                entity_id=record.id,
                data={
                    "sender_id": record.sender_id,
                    "receiver_id": record.receiver_id,
                    "amount": str(record.amount),
                    "sender_balance": str(sender_balance),
                    "receiver_balance": str(receiver_balance)
                }
            ))

    def _submit(self, fn, *args, description: str) -> None:
        if self.dispatcher is None:
            fn(*args)
        else:
            self.dispatcher.submit(fn, *args, description=description)

    def _append_audit(self, record: TransferRecord) -> None:
        if self.audit_sink is None:
            return
        try:
            self.audit_sink.append(
                transfer_id=record.id,
                sender_id=record.sender_id,
                receiver_id=record.receiver_id,
                amount=record.amount,
                status=record.status.value,
                timestamp=record.created_at
            )
        except Exception as e:
            self.logger.error(f"Audit append failed for transfer {record.id}: {e}", exc_info=True)

    def _notify(self, account_id: str, event: BalanceChangedEvent) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.publish(account_id, event)
        except NoActiveChannel as e:
            self.logger.debug(f"No notification delivered to {account_id}: {e}")
        except Exception as e:
            self.logger.warning(
                f"Notification for transfer {event.transfer_id} to {account_id} failed: {e}",
                exc_info=True
            )
        if self._event_dispatcher:
            self._event_dispatcher.publish(EventPayload(
                event_type=DomainEvent.BALANCE_CHANGED,
                entity_type="account",
                entity_id=account_id,
                data=event.to_dict()
            ))

    def get_transfer(self, transfer_id: str) -> Optional[TransferRecord]:
        """Get a transfer record by ID"""
        data = self.store.get_transfer(transfer_id)
        return TransferRecord.from_dict(data) if data else None

    def get_history(self, account_id: str, limit: Optional[int] = None) -> List[TransferRecord]:
        """Transfers sent or received by the account, newest first"""
        return [
            TransferRecord.from_dict(data)
            for data in self.store.list_transfers(account_id, limit=limit)
        ]
