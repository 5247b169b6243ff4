"""
Audit Trail Module

Hash-chained append-only audit log with SHA-256 for tamper detection.
One entry is appended for every committed transfer, after the commit and
off the caller's path.
"""

import hashlib
import json
import threading
import uuid
from datetime import datetime, timezone
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol

from .logging_config import get_logger
from .money import parse_balance
from .storage import LedgerStore


@dataclass
class AuditEntry:
    """
    Immutable audit entry with hash chaining for tamper detection
    """
    id: str
    transfer_id: str
    sender_id: str
    receiver_id: str
    amount: Decimal
    status: str
    timestamp: datetime
    previous_hash: str  # Hash of previous entry, "" for the first
    current_hash: str   # SHA-256 hash of this entry

    def calculate_hash(self) -> str:
        """
        Calculate SHA-256 hash of this entry
        Hash includes all fields except current_hash
        """
        hash_data = {
            'id': self.id,
            'transfer_id': self.transfer_id,
            'sender_id': self.sender_id,
            'receiver_id': self.receiver_id,
            'amount': str(self.amount),
            'status': self.status,
            'timestamp': self.timestamp.astimezone(timezone.utc).isoformat(),
            'previous_hash': self.previous_hash
        }

        # Create deterministic JSON string
        json_data = json.dumps(hash_data, sort_keys=True, separators=(',', ':'))
        return hashlib.sha256(json_data.encode('utf-8')).hexdigest()

    def verify_hash(self) -> bool:
        """Verify that the current hash is correct"""
        return self.current_hash == self.calculate_hash()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'transfer_id': self.transfer_id,
            'sender_id': self.sender_id,
            'receiver_id': self.receiver_id,
            'amount': str(self.amount),
            'status': self.status,
            'timestamp': self.timestamp.isoformat(),
            'previous_hash': self.previous_hash,
            'current_hash': self.current_hash
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditEntry':
        timestamp = data['timestamp']
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        return cls(
            id=data['id'],
            transfer_id=data['transfer_id'],
            sender_id=data['sender_id'],
            receiver_id=data['receiver_id'],
            amount=parse_balance(data['amount']),
            status=data['status'],
            timestamp=timestamp,
            previous_hash=data['previous_hash'],
            current_hash=data['current_hash']
        )


class AuditSink(Protocol):
    """Destination for transfer audit entries"""

    def append(self, transfer_id: str, sender_id: str, receiver_id: str,
               amount: Decimal, status: str, timestamp: datetime) -> Any:
        ...


class AuditTrail:
    """
    Hash-chained audit trail backed by the ledger store
    """

    def __init__(self, store: LedgerStore):
        self.store = store
        self._lock = threading.Lock()  # Serializes chaining
        self.logger = get_logger("wallet_ledger.audit")

    def append(
        self,
        transfer_id: str,
        sender_id: str,
        receiver_id: str,
        amount: Decimal,
        status: str,
        timestamp: Optional[datetime] = None
    ) -> AuditEntry:
        """
        Append an audit entry for a transfer

        Args:
            transfer_id: ID of the transfer record
            sender_id: Debited account
            receiver_id: Credited account
            amount: Transfer amount
            status: Transfer status value
            timestamp: Time of the transfer (now when omitted)

        Returns:
            Created AuditEntry
        """
        with self._lock:
            last = self.store.get_last_audit_entry()
            entry = AuditEntry(
                id=str(uuid.uuid4()),
                transfer_id=transfer_id,
                sender_id=sender_id,
                receiver_id=receiver_id,
                amount=parse_balance(amount),
                status=status,
                timestamp=timestamp or datetime.now(timezone.utc),
                previous_hash=last['current_hash'] if last else "",
                current_hash=""
            )
            entry.current_hash = entry.calculate_hash()
            self.store.append_audit_entry(entry.to_dict())

        self.logger.debug(f"Audit entry {entry.id} appended for transfer {transfer_id}")
        return entry

    def get_entries_for_transfer(self, transfer_id: str) -> List[AuditEntry]:
        return [AuditEntry.from_dict(d) for d in self.store.list_audit_entries(transfer_id)]

    def get_all_entries(self) -> List[AuditEntry]:
        """All audit entries, oldest first"""
        return [AuditEntry.from_dict(d) for d in self.store.list_audit_entries()]

    def count_entries(self) -> int:
        return self.store.count_audit_entries()

    def verify_integrity(self) -> Dict[str, Any]:
        """
        Verify the integrity of the entire audit chain

        Returns:
            Dictionary with integrity check results
        """
        result = {
            'valid': True,
            'total_entries': 0,
            'hash_errors': [],
            'chain_breaks': []
        }

        entries = self.get_all_entries()
        result['total_entries'] = len(entries)

        previous_hash = ""
        for entry in entries:
            if not entry.verify_hash():
                result['valid'] = False
                result['hash_errors'].append({
                    'entry_id': entry.id,
                    'expected_hash': entry.calculate_hash(),
                    'actual_hash': entry.current_hash
                })
            if entry.previous_hash != previous_hash:
                result['valid'] = False
                result['chain_breaks'].append({
                    'entry_id': entry.id,
                    'expected_previous_hash': previous_hash,
                    'actual_previous_hash': entry.previous_hash
                })
            previous_hash = entry.current_hash

        if not result['valid']:
            self.logger.error(
                f"Audit chain integrity check failed: {len(result['hash_errors'])} hash errors, "
                f"{len(result['chain_breaks'])} chain breaks"
            )
        return result
