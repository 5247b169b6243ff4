"""
Wallet Ledger

Peer-to-peer wallet transfers on an atomic ledger: registered accounts hold
a balance, transfers move funds between them inside a single store
transaction, and every committed transfer is audited and announced to both
participants.
"""

__version__ = "1.0.0"
