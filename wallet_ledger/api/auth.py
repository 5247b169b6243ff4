"""
Ledger system wiring and authentication dependencies
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..accounts import AccountManager
from ..audit import AuditTrail
from ..auth import AuthService, CallerIdentity
from ..background import BackgroundDispatcher
from ..config import LedgerConfig, get_config
from ..errors import InvalidToken
from ..events import EventDispatcher, EventLogger
from ..logging_config import get_logger
from ..notifications import (
    BalanceNotifier, InAppNotificationChannel, WebhookNotificationChannel
)
from ..storage import LedgerStore, create_store
from ..transfers import TransferEngine

logger = get_logger("wallet_ledger.api")


class LedgerSystem:
    """Wallet ledger with all components initialized"""

    def __init__(self, store: Optional[LedgerStore] = None,
                 config: Optional[LedgerConfig] = None):
        self.config = config or get_config()
        self.store = store or create_store(self.config.database_url)

        self.event_dispatcher = EventDispatcher()
        self.event_logger = EventLogger(self.event_dispatcher)
        self.account_manager = AccountManager(self.store, self.config, self.event_dispatcher)
        self.audit_trail = AuditTrail(self.store)

        self.in_app_channel = InAppNotificationChannel(self.config.notification_mailbox_size)
        self.notifier = BalanceNotifier([self.in_app_channel])
        if self.config.notification_webhook_url:
            self.notifier.add_channel(WebhookNotificationChannel(
                self.config.notification_webhook_url,
                timeout=self.config.notification_webhook_timeout
            ))

        self.dispatcher = BackgroundDispatcher(
            max_queue_size=self.config.background_queue_size,
            workers=self.config.background_workers
        )
        self.transfer_engine = TransferEngine(
            self.store,
            self.account_manager,
            audit_sink=self.audit_trail,
            notifier=self.notifier,
            dispatcher=self.dispatcher,
            event_dispatcher=self.event_dispatcher,
            timeout=self.config.transaction_timeout_seconds,
            max_wait=self.config.transaction_max_wait_seconds
        )
        self.auth_service = AuthService(self.store, self.account_manager, self.config)

    def start(self) -> None:
        self.event_logger.start()
        self.dispatcher.start()

    def shutdown(self) -> None:
        self.dispatcher.stop()
        self.event_logger.stop()
        for channel in self.notifier.channels:
            if isinstance(channel, WebhookNotificationChannel):
                channel.close()
        self.store.close()


def get_ledger_system(request: Request) -> LedgerSystem:
    """Dependency returning the application's ledger system"""
    return request.app.state.ledger_system


# JWT Security
security = HTTPBearer(auto_error=False)


def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    system: LedgerSystem = Depends(get_ledger_system)
) -> CallerIdentity:
    """Dependency that validates the bearer token and returns the caller"""
    if not credentials:
        raise InvalidToken("Not authenticated")
    return system.auth_service.verify_token(credentials.credentials)
