"""
Tests for account registration and the account directory
"""

import pytest
from decimal import Decimal
from unittest.mock import Mock

from wallet_ledger.accounts import Account, AccountManager, validate_handle
from wallet_ledger.config import LedgerConfig
from wallet_ledger.errors import AccountNotFound, HandleTaken, InvalidHandle
from wallet_ledger.events import DomainEvent, EventDispatcher
from wallet_ledger.storage import InMemoryLedgerStore


class TestAccountManager:
    """Test account registration and lookups"""

    def setup_method(self):
        self.store = InMemoryLedgerStore()
        self.events = EventDispatcher()
        self.manager = AccountManager(self.store, LedgerConfig(), self.events)

    def test_register_with_default_balance(self):
        account = self.manager.register("alice")

        assert isinstance(account, Account)
        assert account.handle == "alice"
        assert account.balance == Decimal("1000.00")
        assert self.manager.get_balance(account.id) == Decimal("1000.00")

    def test_register_with_configured_balance(self):
        manager = AccountManager(self.store, LedgerConfig(initial_balance="25.50"))

        account = manager.register("bob")

        assert account.balance == Decimal("25.50")

    def test_register_with_explicit_balance(self):
        account = self.manager.register("carol", initial_balance=Decimal("50"))

        assert self.manager.get_account(account.id).balance == Decimal("50.00")

    def test_negative_initial_balance_rejected(self):
        with pytest.raises(ValueError):
            self.manager.register("dave", initial_balance=Decimal("-1"))

    def test_duplicate_handle(self):
        self.manager.register("erin")

        with pytest.raises(HandleTaken):
            self.manager.register("erin")

    @pytest.mark.parametrize("handle", ["ab", "a" * 33, "has space", "semi;colon", "", None, 42])
    def test_invalid_handles(self, handle):
        with pytest.raises(InvalidHandle):
            self.manager.register(handle)

    def test_valid_handle_characters(self):
        assert validate_handle("a.b_c-9") == "a.b_c-9"

    def test_register_with_credential(self):
        account = self.manager.register("frank", credential={
            'password_salt': 'salt', 'password_hash': 'hash'
        })

        credential = self.store.get_credential(account.id)
        assert credential['password_salt'] == 'salt'
        assert credential['account_id'] == account.id

    def test_register_publishes_event(self):
        handler = Mock()
        self.events.subscribe(DomainEvent.ACCOUNT_REGISTERED, handler)

        account = self.manager.register("grace")

        handler.assert_called_once()
        event = handler.call_args[0][0]
        assert event.entity_id == account.id
        assert event.data['handle'] == "grace"

    def test_lookups(self):
        account = self.manager.register("heidi")

        assert self.manager.get_account(account.id).handle == "heidi"
        assert self.manager.get_account_by_handle("heidi").id == account.id
        assert self.manager.get_account("missing") is None
        assert self.manager.get_account_by_handle("missing") is None

    def test_get_balance_missing_account(self):
        with pytest.raises(AccountNotFound):
            self.manager.get_balance("missing")

    def test_resolve(self):
        account = self.manager.register("ivan")

        assert self.manager.resolve("ivan") == account.id
        assert self.manager.resolve(account.id) == account.id
        assert self.manager.resolve("nobody") is None
        assert self.manager.resolve("") is None
        assert self.manager.resolve(None) is None

    def test_account_round_trip(self):
        account = self.manager.register("judy")

        restored = Account.from_dict(account.to_dict())

        assert restored == account
