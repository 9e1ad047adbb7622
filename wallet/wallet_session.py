"""
Wallet Session
Top-level facade: connection state, transaction submission and invalidation
"""

import asyncio
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from loguru import logger

from blockchain.amount_converter import Amount, AmountConverter
from blockchain.contract_binding import ContractBinding
from blockchain.networks import NetworkPolicy
from blockchain.transaction_builder import TokenDescriptor, TransactionBuilder, TransactionRequest
from utils.chain_id_store import InMemoryChainIdStore
from utils.errors import SessionInvalidated, WalletNotInjected
from .provider import ChainIdStore, WalletProvider
from .reconciler import ConnectionResult, NetworkReconciler

InvalidationListener = Callable[[SessionInvalidated], Any]


@dataclass(frozen=True)
class PendingTransaction:
    """Handle for a transaction the wallet accepted"""

    tx_hash: str
    request: TransactionRequest
    provider: Any = field(default=None, compare=False, repr=False)

    async def wait_for_receipt(self, timeout: float = 120, poll_interval: float = 2.0) -> Dict:
        """
        Wait for the transaction receipt

        Args:
            timeout: Maximum wait time in seconds
            poll_interval: Polling interval in seconds

        Returns:
            Transaction receipt dict

        Raises:
            TimeoutError: If no receipt within timeout
        """
        start = time.monotonic()
        while time.monotonic() - start < timeout:
            receipt = await self.provider.request('eth_getTransactionReceipt', [self.tx_hash])
            if receipt is not None:
                return receipt
            await asyncio.sleep(poll_interval)

        raise TimeoutError(f"Transaction {self.tx_hash} not confirmed within {timeout}s")


class WalletSession:
    """
    One application session against one expected network

    Holds the resolved wallet address. A chain or account change reported
    by the wallet invalidates the session: the address is cleared, every
    outstanding operation fails with SessionInvalidated and registered
    listeners are notified. The caller decides whether to reconnect.
    """

    def __init__(
        self,
        provider: Optional[WalletProvider],
        testnet: str = 'ropsten',
        is_production: bool = False,
        chain_id_store: Optional[ChainIdStore] = None
    ):
        """
        Initialize Wallet Session

        Args:
            provider: Wallet provider (None if no wallet is available)
            testnet: Test network used when not in production
            is_production: Expect mainnet instead of the testnet
            chain_id_store: Persistent last-seen chain id
        """
        self.provider = provider
        self.policy = NetworkPolicy(testnet=testnet, is_production=is_production)
        self.chain_id_store = chain_id_store or InMemoryChainIdStore()

        self.resolved_address = ''

        self.reconciler = NetworkReconciler(
            provider,
            self.policy,
            self.chain_id_store,
            self._invalidate
        )
        self.binding = ContractBinding(provider)
        self.converter = AmountConverter()
        self.builder = TransactionBuilder(
            self.binding,
            self.converter,
            default_sender=lambda: self.resolved_address
        )

        self._listeners: List[InvalidationListener] = []
        self._outstanding = set()
        self._listener_tasks = set()
        self._generation = 0
        self._submitted = set()
        self._last_invalidation: Optional[SessionInvalidated] = None

        if provider is not None:
            provider.on('chainChanged', self.reconciler.handle_chain_changed)
            provider.on('accountsChanged', self.reconciler.handle_accounts_changed)

        logger.info(
            f"Wallet session initialized for {self.policy.expected_network} "
            f"({self.policy.expected_chain_id})"
        )

    @classmethod
    def from_config(cls, config, provider: Optional[WalletProvider], chain_id_store: Optional[ChainIdStore] = None):
        """Build a session from a SessionConfig"""
        return cls(
            provider,
            testnet=config.testnet,
            is_production=config.is_production,
            chain_id_store=chain_id_store
        )

    @property
    def is_connected(self) -> bool:
        return bool(self.resolved_address)

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def connect(self) -> ConnectionResult:
        """
        Run network reconciliation and resolve the wallet address

        Returns:
            ConnectionResult {address, network}
        """
        result = await self._guarded(self.reconciler.connect())
        self.resolved_address = result.address
        return result

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self, request: TransactionRequest) -> PendingTransaction:
        """
        Forward a built transaction to the wallet (eth_sendTransaction)

        Wallet rejections propagate unchanged; nothing is retried.

        Args:
            request: Transaction to submit, at most once

        Returns:
            PendingTransaction handle
        """
        if self.provider is None:
            raise WalletNotInjected(self.policy.expected_network)
        if request.request_id in self._submitted:
            raise ValueError("Transaction request was already submitted")
        self._submitted.add(request.request_id)

        tx_hash = await self._guarded(
            self.provider.request('eth_sendTransaction', [request.to_rpc_params()])
        )

        logger.success(f"Transaction submitted: {tx_hash}")
        return PendingTransaction(tx_hash=tx_hash, request=request, provider=self.provider)

    async def approve_token(self, token: TokenDescriptor, spender: str, from_address: Optional[str] = None) -> PendingTransaction:
        """Build and submit an approval of the token's total supply"""
        request = await self._guarded(self.builder.build_approval(token, spender, from_address))
        return await self.submit(request)

    async def call_method(
        self,
        token: TokenDescriptor,
        method_name: str,
        args: Sequence[Any],
        value: Union[int, str, None] = None,
        from_address: Optional[str] = None
    ) -> PendingTransaction:
        """Build and submit a call to any contract method"""
        request = await self._guarded(
            self.builder.build_call(token, method_name, args, from_address=from_address, value=value)
        )
        return await self.submit(request)

    async def check_allowance(
        self,
        token: TokenDescriptor,
        owner: str,
        spender: str,
        amount: Optional[Amount] = None
    ) -> bool:
        return await self._guarded(
            self.builder.build_allowance_check(token, owner, spender, amount)
        )

    async def total_supply(self, token: TokenDescriptor) -> Decimal:
        return await self._guarded(self.builder.read_total_supply(token))

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def on_invalidated(self, listener: InvalidationListener):
        """
        Register a listener for session invalidation

        Args:
            listener: Called with SessionInvalidated; coroutine functions
                are scheduled on the running loop
        """
        self._listeners.append(listener)

    async def _guarded(self, coro):
        """Run an operation so that invalidation fails it with SessionInvalidated"""
        generation = self._generation
        task = asyncio.ensure_future(coro)
        self._outstanding.add(task)

        try:
            return await task
        except asyncio.CancelledError:
            if self._generation != generation:
                raise self._last_invalidation from None
            raise
        finally:
            self._outstanding.discard(task)

    def _invalidate(self, reason: str, value: Any = None):
        """Drop the resolved address and terminate everything in flight"""
        invalidation = SessionInvalidated(reason, value)

        self._generation += 1
        self._last_invalidation = invalidation
        self.resolved_address = ''
        self.reconciler.reset()

        pending = [task for task in self._outstanding if not task.done()]
        for task in pending:
            task.cancel()

        logger.warning(
            f"Session invalidated by {reason}, {len(pending)} outstanding operation(s) terminated"
        )

        for listener in list(self._listeners):
            try:
                result = listener(invalidation)
                if asyncio.iscoroutine(result):
                    self._schedule_listener(result)
            except Exception:
                logger.exception("Invalidation listener failed")

    def _schedule_listener(self, coro):
        """Run a coroutine listener as a tracked task on the running loop"""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.error("Coroutine invalidation listener dropped: no running event loop")
            return

        task = loop.create_task(coro)
        self._listener_tasks.add(task)
        task.add_done_callback(self._listener_done)

    def _listener_done(self, task):
        self._listener_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.opt(exception=error).error("Invalidation listener failed")
