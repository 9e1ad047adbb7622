"""
Wallet Session Package
Network reconciliation, session lifecycle and transaction submission
"""

from .provider import ChainIdStore, WalletProvider
from .reconciler import ConnectionResult, ConnectionState, NetworkReconciler
from .wallet_session import PendingTransaction, WalletSession

__all__ = [
    'ChainIdStore',
    'WalletProvider',
    'ConnectionResult',
    'ConnectionState',
    'NetworkReconciler',
    'PendingTransaction',
    'WalletSession',
]
