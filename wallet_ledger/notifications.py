"""
Notification Module

Delivers balance-changed events to transfer participants. The in-app
channel keeps a bounded mailbox per subscribed account that clients drain
by polling; the webhook channel POSTs each event to an external endpoint.
Delivery is best-effort: the transfer engine logs and swallows every
failure raised here.
"""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Deque, Dict, List, Optional
import threading

import httpx

from .config import get_config
from .errors import NoActiveChannel, NotificationError
from .logging_config import get_logger


@dataclass
class BalanceChangedEvent:
    """Balance movement of one transfer participant"""
    account_id: str
    transfer_id: str
    delta_amount: Decimal  # Negative for the sender
    new_balance: Decimal
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': 'balance_changed',
            'account_id': self.account_id,
            'transfer_id': self.transfer_id,
            'delta_amount': str(self.delta_amount),
            'new_balance': str(self.new_balance),
            'timestamp': self.timestamp.isoformat()
        }


class NotificationChannel(ABC):
    """Abstract base class for notification channels"""

    name = "channel"

    @abstractmethod
    def publish(self, account_id: str, event: BalanceChangedEvent) -> None:
        """Deliver the event; raises NotificationError on failure"""
        pass


class InAppNotificationChannel(NotificationChannel):
    """
    In-app channel with one bounded mailbox per subscribed account.

    The oldest event is discarded when a mailbox is full.
    """

    name = "in_app"

    def __init__(self, mailbox_size: Optional[int] = None):
        self.mailbox_size = mailbox_size or get_config().notification_mailbox_size
        self._mailboxes: Dict[str, Deque[Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def subscribe(self, account_id: str) -> None:
        """Open the account's mailbox (idempotent)"""
        with self._lock:
            if account_id not in self._mailboxes:
                self._mailboxes[account_id] = deque(maxlen=self.mailbox_size)

    def unsubscribe(self, account_id: str) -> None:
        with self._lock:
            self._mailboxes.pop(account_id, None)

    def is_subscribed(self, account_id: str) -> bool:
        with self._lock:
            return account_id in self._mailboxes

    def publish(self, account_id: str, event: BalanceChangedEvent) -> None:
        with self._lock:
            mailbox = self._mailboxes.get(account_id)
            if mailbox is None:
                raise NoActiveChannel(f"Account {account_id} has no active in-app channel")
            mailbox.append(event.to_dict())

    def poll(self, account_id: str) -> List[Dict[str, Any]]:
        """
        Drain and return the account's pending events, oldest first

        Raises:
            NoActiveChannel: If the account never subscribed
        """
        with self._lock:
            mailbox = self._mailboxes.get(account_id)
            if mailbox is None:
                raise NoActiveChannel(f"Account {account_id} has no active in-app channel")
            events = list(mailbox)
            mailbox.clear()
            return events


class WebhookNotificationChannel(NotificationChannel):
    """Webhook channel for external integrations"""

    name = "webhook"

    def __init__(self, url: str, timeout: Optional[float] = None,
                 client: Optional[httpx.Client] = None):
        self.url = url
        self.timeout = timeout or get_config().notification_webhook_timeout
        self._client = client or httpx.Client(timeout=self.timeout)

    def publish(self, account_id: str, event: BalanceChangedEvent) -> None:
        payload = {'account_id': account_id, 'event': event.to_dict()}
        try:
            response = self._client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            raise NotificationError(f"Webhook delivery to {self.url} failed: {e}") from e

        if not response.is_success:
            raise NotificationError(
                f"Webhook {self.url} returned {response.status_code}"
            )

    def close(self) -> None:
        self._client.close()


class BalanceNotifier:
    """
    Fans balance-changed events out to every configured channel
    """

    def __init__(self, channels: Optional[List[NotificationChannel]] = None):
        self.channels = list(channels or [])
        self.logger = get_logger("wallet_ledger.notifications")

    def add_channel(self, channel: NotificationChannel) -> None:
        self.channels.append(channel)

    def publish(self, account_id: str, event: BalanceChangedEvent) -> None:
        """
        Deliver the event on every channel

        Every channel is attempted. When none delivered, the first delivery
        failure is raised, or NoActiveChannel if no channel had a
        subscriber (or none is configured).
        """
        if not self.channels:
            raise NoActiveChannel(f"No notification channel configured for {account_id}")

        delivered = 0
        failures: List[NotificationError] = []
        inactive: List[NoActiveChannel] = []
        for channel in self.channels:
            try:
                channel.publish(account_id, event)
                delivered += 1
            except NoActiveChannel as e:
                self.logger.debug(f"{channel.name} channel skipped {account_id}: {e}")
                inactive.append(e)
            except NotificationError as e:
                self.logger.warning(
                    f"{channel.name} channel failed for {account_id}: {e}", exc_info=True
                )
                failures.append(e)

        if delivered == 0:
            raise failures[0] if failures else inactive[0]
