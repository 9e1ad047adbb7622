"""
Utilities Package
Errors, configuration, persistence and the non-browser wallet provider
"""

from .errors import (
    AllowanceCheckFailed,
    ContractCallError,
    ContractError,
    EncodingError,
    InvalidAmount,
    MethodNotFound,
    NotAuthorized,
    ProviderRpcError,
    ReconciliationError,
    SessionInvalidated,
    WalletError,
    WalletNotInjected,
    WrongNetwork,
)
from .chain_id_store import InMemoryChainIdStore, SqliteChainIdStore
from .config import SessionConfig, load_session_config
from .logging_setup import setup_logging
from .rpc_provider import Web3WalletProvider

__all__ = [
    'AllowanceCheckFailed',
    'ContractCallError',
    'ContractError',
    'EncodingError',
    'InvalidAmount',
    'MethodNotFound',
    'NotAuthorized',
    'ProviderRpcError',
    'ReconciliationError',
    'SessionInvalidated',
    'WalletError',
    'WalletNotInjected',
    'WrongNetwork',
    'InMemoryChainIdStore',
    'SqliteChainIdStore',
    'SessionConfig',
    'load_session_config',
    'setup_logging',
    'Web3WalletProvider',
]
