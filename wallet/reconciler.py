"""
Network Reconciler
Checks that the wallet is on the expected chain and owns the connect handshake
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from loguru import logger

from blockchain.networks import NetworkPolicy, normalize_chain_id
from utils.errors import NotAuthorized, WalletNotInjected, WrongNetwork
from .provider import ChainIdStore, WalletProvider


class ConnectionState(str, Enum):
    UNCONNECTED = 'unconnected'
    PROBING = 'probing'
    CONNECTED = 'connected'
    MISMATCHED = 'mismatched'
    UNAUTHORIZED = 'unauthorized'
    NOT_INJECTED = 'not_injected'


@dataclass(frozen=True)
class ConnectionResult:
    address: str
    network: str

    def to_dict(self) -> Dict[str, str]:
        return {'address': self.address, 'network': self.network}


class NetworkReconciler:
    """
    Connect/approve handshake against the wallet

    States: UNCONNECTED -> PROBING -> CONNECTED | MISMATCHED | UNAUTHORIZED
    | NOT_INJECTED. Every ``connect()`` re-runs the whole check; the only
    shortcut is the wallet's own cached chain id.
    """

    def __init__(
        self,
        provider: Optional[WalletProvider],
        policy: NetworkPolicy,
        chain_id_store: ChainIdStore,
        on_invalidated: Callable[[str, Any], None]
    ):
        """
        Initialize Network Reconciler

        Args:
            provider: Wallet provider, None when no wallet is available
            policy: Expected network
            chain_id_store: Last chain id seen by the application
            on_invalidated: Called with (reason, value) when the wallet
                reports a change that invalidates the session
        """
        self.provider = provider
        self.policy = policy
        self.chain_id_store = chain_id_store
        self.on_invalidated = on_invalidated

        self.state = ConnectionState.UNCONNECTED

    async def connect(self) -> ConnectionResult:
        """
        Verify the chain and request account access

        Returns:
            ConnectionResult with the first account and the matched chain id

        Raises:
            WalletNotInjected: No wallet provider
            WrongNetwork: Wallet is on another chain
            NotAuthorized: Chain probe or account request rejected
        """
        self.state = ConnectionState.UNCONNECTED
        network = self.policy.expected_network

        if self.provider is None:
            self.state = ConnectionState.NOT_INJECTED
            logger.warning(f"{network} wallet is not injected")
            raise WalletNotInjected(network)

        current_chain = normalize_chain_id(getattr(self.provider, 'chain_id', None))

        if current_chain is None:
            self.state = ConnectionState.PROBING
            try:
                current_chain = normalize_chain_id(await self.provider.request('eth_chainId'))
            except Exception as e:
                self.state = ConnectionState.UNAUTHORIZED
                logger.warning(f"eth_chainId rejected: {e}")
                raise NotAuthorized() from e

        if not self.policy.matches(current_chain):
            self.state = ConnectionState.MISMATCHED
            logger.warning(
                f"Wallet on chain {current_chain}, expected {network} "
                f"({self.policy.expected_chain_id})"
            )
            raise WrongNetwork(network, current_chain)

        self.state = ConnectionState.CONNECTED
        try:
            accounts = await self.provider.request('eth_requestAccounts')
        except Exception as e:
            self.state = ConnectionState.UNAUTHORIZED
            logger.warning(f"eth_requestAccounts rejected: {e}")
            raise NotAuthorized() from e

        if not accounts:
            self.state = ConnectionState.UNAUTHORIZED
            logger.warning("eth_requestAccounts returned no accounts")
            raise NotAuthorized()

        result = ConnectionResult(address=accounts[0], network=current_chain)
        logger.success(f"Connected {result.address} on {network} ({current_chain})")
        return result

    def handle_chain_changed(self, new_chain_id: Any):
        """
        Wallet switched chains

        Invalidates the session only when the chain differs from the one
        persisted by the application, so repeated events are absorbed.
        """
        new_chain = normalize_chain_id(new_chain_id)
        if new_chain is None:
            logger.debug("chainChanged without a chain id, ignored")
            return

        stored = normalize_chain_id(self.chain_id_store.get())

        if str(stored) == str(new_chain):
            logger.debug(f"chainChanged to {new_chain} already seen")
            return

        self.chain_id_store.set(new_chain)
        logger.warning(f"Wallet chain changed: {stored} -> {new_chain}")
        self.on_invalidated('chainChanged', new_chain)

    def handle_accounts_changed(self, new_accounts: Any):
        """Any account change invalidates the session"""
        logger.warning(f"Wallet accounts changed: {new_accounts}")
        self.on_invalidated('accountsChanged', new_accounts)

    def reset(self):
        self.state = ConnectionState.UNCONNECTED
