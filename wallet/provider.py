"""
Wallet Provider Interfaces
Capabilities the session depends on instead of page-level globals
"""

from typing import Any, Callable, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class WalletProvider(Protocol):
    """
    EIP-1193 style wallet provider

    ``chain_id`` is the provider's cached chain id and may be ``None``
    until the provider has learned it.
    """

    chain_id: Optional[str]

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        ...

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        ...


@runtime_checkable
class ChainIdStore(Protocol):
    """Persistent slot holding the last chain id the application saw"""

    def get(self) -> Optional[str]:
        ...

    def set(self, chain_id: str) -> None:
        ...
