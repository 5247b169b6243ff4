"""
Error Taxonomy Module

Every failure the ledger can report to a caller. Each error carries a stable
``code`` used by the HTTP layer and in structured logs.

- Input errors are rejected before the store is touched.
- Lookup errors are checked both before and inside the store transaction.
- Business-rule errors abort the store transaction.
- Infrastructure errors are surfaced as-is and never retried by the core.
"""

from typing import Optional


class LedgerError(Exception):
    """Base class for all ledger errors"""

    code = "ledger_error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


# Input errors

class InputError(LedgerError, ValueError):
    """Invalid input"""
    code = "invalid_input"


class InvalidAmount(InputError):
    """Amount must be a finite positive number"""
    code = "invalid_amount"


class SelfTransfer(InputError):
    """Cannot transfer funds to the same account"""
    code = "self_transfer"


class InvalidHandle(InputError):
    """Handle must be 3-32 characters of letters, digits, '_', '.' or '-'"""
    code = "invalid_handle"


class WeakPassword(InputError):
    """Password does not meet the minimum length"""
    code = "weak_password"


# Lookup errors

class AccountNotFound(LedgerError, LookupError):
    """Account not found"""
    code = "account_not_found"


class ReceiverNotFound(AccountNotFound):
    """Receiver account not found"""
    code = "receiver_not_found"


class SenderNotFound(AccountNotFound):
    """Sender account not found"""
    code = "sender_not_found"


# Business-rule errors

class BusinessRuleError(LedgerError):
    """Business rule violated"""
    code = "business_rule"


class InsufficientFunds(BusinessRuleError):
    """Insufficient funds"""
    code = "insufficient_funds"


class HandleTaken(BusinessRuleError):
    """Handle already registered"""
    code = "handle_taken"


# Infrastructure errors

class InfrastructureError(LedgerError):
    """Ledger store failure"""
    code = "infrastructure_error"


class TransactionTimeout(InfrastructureError):
    """Transaction timed out; outcome unknown, re-query before retrying"""
    code = "transaction_timeout"


class StoreUnavailable(InfrastructureError):
    """Ledger store unavailable"""
    code = "store_unavailable"


# Authentication errors

class AuthError(LedgerError):
    """Authentication failed"""
    code = "auth_error"


class InvalidCredentials(AuthError):
    """Invalid credentials"""
    code = "invalid_credentials"


class InvalidToken(AuthError):
    """Invalid or expired token"""
    code = "invalid_token"


# Side-effect errors, never surfaced by the transfer engine

class NotificationError(Exception):
    """Notification could not be delivered"""


class NoActiveChannel(NotificationError):
    """Participant has no active notification channel"""
