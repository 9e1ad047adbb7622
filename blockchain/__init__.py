"""
Blockchain Interaction Package
Handles ABI method resolution, amount scaling and transaction building
"""

from .abi import AbiParam, AbiShapeError, ConstructorDescriptor, EventDescriptor, FunctionDescriptor, parse_abi
from .amount_converter import AmountConverter
from .contract_binding import ContractBinding, ContractHandle
from .networks import NETWORKS, NetworkPolicy, normalize_chain_id
from .transaction_builder import TokenDescriptor, TransactionBuilder, TransactionRequest

__all__ = [
    'AbiParam',
    'AbiShapeError',
    'ConstructorDescriptor',
    'EventDescriptor',
    'FunctionDescriptor',
    'parse_abi',
    'AmountConverter',
    'ContractBinding',
    'ContractHandle',
    'NETWORKS',
    'NetworkPolicy',
    'normalize_chain_id',
    'TokenDescriptor',
    'TransactionBuilder',
    'TransactionRequest',
]
