"""
Authentication Module

Password credentials (scrypt with a random salt) and HS256 JWT session
tokens. Produces the authenticated caller identity the transfer engine
trusts as the sender.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import jwt

from .accounts import Account, AccountManager
from .config import LedgerConfig, get_config
from .errors import InvalidCredentials, InvalidToken, WeakPassword
from .logging_config import get_logger, log_action
from .storage import LedgerStore


@dataclass(frozen=True)
class CallerIdentity:
    """Authenticated caller"""
    account_id: str
    handle: str


class AuthService:
    """Registration, login and token verification"""

    def __init__(self, store: LedgerStore, accounts: AccountManager,
                 config: Optional[LedgerConfig] = None):
        self.store = store
        self.accounts = accounts
        self.config = config or get_config()
        self.logger = get_logger("wallet_ledger.auth")

    def _generate_salt(self) -> str:
        return secrets.token_hex(16)

    def _hash_password(self, password: str, salt: str) -> str:
        """Hash password with salt using scrypt"""
        return hashlib.scrypt(
            password.encode(),
            salt=salt.encode(),
            n=16384, r=8, p=1
        ).hex()

    def register(self, handle: str, password: str) -> Account:
        """
        Register an account with a password credential

        Raises:
            WeakPassword: If the password is shorter than the configured minimum
            InvalidHandle, HandleTaken: From the account directory
        """
        if not isinstance(password, str) or len(password) < self.config.password_min_length:
            raise WeakPassword(
                f"Password must be at least {self.config.password_min_length} characters"
            )
        salt = self._generate_salt()
        return self.accounts.register(handle, credential={
            'password_salt': salt,
            'password_hash': self._hash_password(password, salt)
        })

    def login(self, handle: str, password: str) -> Tuple[str, Account]:
        """
        Verify credentials and issue a session token

        Returns:
            (token, account)

        Raises:
            InvalidCredentials: Unknown handle or wrong password
        """
        account = self.accounts.get_account_by_handle(handle) if isinstance(handle, str) else None
        credential = self.store.get_credential(account.id) if account else None
        if credential is None or not isinstance(password, str):
            log_action(self.logger, "warning", "Login failed", action="login",
                       resource="auth", extra={"handle": str(handle)})
            raise InvalidCredentials()

        expected = self._hash_password(password, credential['password_salt'])
        if not secrets.compare_digest(expected, credential['password_hash']):
            log_action(self.logger, "warning", "Login failed", user_id=account.id,
                       action="login", resource="auth")
            raise InvalidCredentials()

        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": account.id,
                "handle": account.handle,
                "iat": now,
                "exp": now + timedelta(hours=self.config.jwt_expiry_hours)
            },
            self.config.jwt_secret,
            algorithm=self.config.jwt_algorithm
        )
        log_action(self.logger, "info", "User authenticated successfully",
                   user_id=account.id, action="login", resource="auth")
        return token, account

    def verify_token(self, token: str) -> CallerIdentity:
        """Decode a session token; raises InvalidToken when expired or malformed"""
        try:
            payload = jwt.decode(token, self.config.jwt_secret,
                                 algorithms=[self.config.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            raise InvalidToken("Token expired")
        except jwt.InvalidTokenError:
            raise InvalidToken("Invalid token")

        account_id = payload.get("sub")
        if not account_id:
            raise InvalidToken("Invalid token")
        return CallerIdentity(account_id=account_id, handle=payload.get("handle", ""))
