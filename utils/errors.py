"""
Errors
Structured failures surfaced by the wallet session and transaction pipeline
"""

from typing import Any, Dict, Optional


class WalletError(Exception):
    """
    Base class for every failure raised by this package

    Carries a human-readable ``error_msg`` so calling UI code can display
    the failure directly.
    """

    def __init__(self, error_msg: str):
        super().__init__(error_msg)
        self.error_msg = error_msg

    def to_dict(self) -> Dict[str, Any]:
        """Structured rejection payload"""
        return {'errorMsg': self.error_msg}


# ---------------------------------------------------------------------------
# Network / account reconciliation
# ---------------------------------------------------------------------------

class ReconciliationError(WalletError):
    """Wallet is not usable for the configured network"""


class WalletNotInjected(ReconciliationError):
    """No wallet provider is available"""

    def __init__(self, expected_network: str):
        super().__init__(f"{expected_network} wallet is not injected")
        self.expected_network = expected_network


class NotAuthorized(ReconciliationError):
    """User denied account access or the wallet rejected the request"""

    def __init__(self, error_msg: str = "Not authorized"):
        super().__init__(error_msg)


class WrongNetwork(ReconciliationError):
    """Wallet is connected to a chain other than the expected one"""

    def __init__(self, expected_network: str, actual_chain_id: Optional[str] = None):
        super().__init__(
            f"Please switch to {expected_network} network in your wallet"
        )
        self.expected_network = expected_network
        self.actual_chain_id = actual_chain_id


class SessionInvalidated(WalletError):
    """
    The wallet reported a chain or account change

    Delivered to every outstanding session operation and to registered
    invalidation listeners. The session must reconnect before further use.
    """

    def __init__(self, reason: str, value: Any = None):
        super().__init__(f"Wallet session invalidated ({reason})")
        self.reason = reason
        self.value = value


class ProviderRpcError(WalletError):
    """JSON-RPC error object returned by a wallet provider"""

    def __init__(self, code: Optional[int], message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload['code'] = self.code
        return payload


# ---------------------------------------------------------------------------
# Contract binding / transaction construction
# ---------------------------------------------------------------------------

class ContractError(WalletError):
    """Contract lookup, encoding or read-call failure"""


class MethodNotFound(ContractError):
    """No ABI function with the requested name"""

    def __init__(self, name: str):
        super().__init__(f"Method {name} not found in ABI")
        self.name = name


class EncodingError(ContractError):
    """Arguments could not be ABI-encoded for the resolved method"""


class ContractCallError(ContractError):
    """A read call returned no data or data that could not be decoded"""


class AllowanceCheckFailed(ContractError):
    """Allowance could not be read; reported to callers as ``False``"""


class InvalidAmount(ValueError):
    """Amount or decimals precondition violated by the caller"""
