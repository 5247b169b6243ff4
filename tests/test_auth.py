"""
Tests for password credentials and session tokens
"""

import pytest
import jwt
from datetime import datetime, timedelta, timezone

from wallet_ledger.accounts import AccountManager
from wallet_ledger.auth import AuthService, CallerIdentity
from wallet_ledger.config import LedgerConfig
from wallet_ledger.errors import (
    HandleTaken, InvalidCredentials, InvalidHandle, InvalidToken, WeakPassword
)
from wallet_ledger.storage import InMemoryLedgerStore


class TestAuthService:
    """Test registration, login and token verification"""

    def setup_method(self):
        self.config = LedgerConfig(jwt_secret="test-secret", jwt_expiry_hours=1)
        self.store = InMemoryLedgerStore()
        self.accounts = AccountManager(self.store, self.config)
        self.auth = AuthService(self.store, self.accounts, self.config)

    def test_register_stores_hashed_password(self):
        account = self.auth.register("alice", "correct horse")

        credential = self.store.get_credential(account.id)
        assert credential['password_hash'] != "correct horse"
        assert len(credential['password_salt']) == 32
        assert credential['password_hash'] == self.auth._hash_password(
            "correct horse", credential['password_salt']
        )

    def test_register_weak_password(self):
        with pytest.raises(WeakPassword):
            self.auth.register("alice", "short")

        assert self.accounts.get_account_by_handle("alice") is None

    def test_register_invalid_handle(self):
        with pytest.raises(InvalidHandle):
            self.auth.register("a", "long enough password")

    def test_register_duplicate_handle(self):
        self.auth.register("alice", "password-one")

        with pytest.raises(HandleTaken):
            self.auth.register("alice", "password-two")

    def test_login_issues_token(self):
        account = self.auth.register("alice", "correct horse")

        token, logged_in = self.auth.login("alice", "correct horse")

        assert logged_in.id == account.id
        payload = jwt.decode(token, "test-secret", algorithms=["HS256"])
        assert payload['sub'] == account.id
        assert payload['handle'] == "alice"
        assert payload['exp'] - payload['iat'] == 3600

    def test_login_wrong_password(self):
        self.auth.register("alice", "correct horse")

        with pytest.raises(InvalidCredentials):
            self.auth.login("alice", "battery staple")

    def test_login_unknown_handle(self):
        with pytest.raises(InvalidCredentials):
            self.auth.login("nobody", "whatever123")

    def test_login_account_without_credential(self):
        self.accounts.register("bob")

        with pytest.raises(InvalidCredentials):
            self.auth.login("bob", "whatever123")

    def test_verify_token(self):
        account = self.auth.register("alice", "correct horse")
        token, _ = self.auth.login("alice", "correct horse")

        caller = self.auth.verify_token(token)

        assert caller == CallerIdentity(account_id=account.id, handle="alice")

    def test_expired_token(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "acc1", "iat": now - timedelta(hours=2), "exp": now - timedelta(hours=1)},
            "test-secret", algorithm="HS256"
        )

        with pytest.raises(InvalidToken, match="expired"):
            self.auth.verify_token(token)

    def test_token_signed_with_other_secret(self):
        token = jwt.encode({"sub": "acc1"}, "other-secret", algorithm="HS256")

        with pytest.raises(InvalidToken):
            self.auth.verify_token(token)

    def test_token_without_subject(self):
        token = jwt.encode({"handle": "alice"}, "test-secret", algorithm="HS256")

        with pytest.raises(InvalidToken):
            self.auth.verify_token(token)

    def test_garbage_token(self):
        with pytest.raises(InvalidToken):
            self.auth.verify_token("not-a-jwt")
