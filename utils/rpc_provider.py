"""
Web3 Wallet Provider
Wallet provider for non-browser environments, backed by a JSON-RPC node
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional

from eth_account import Account
from loguru import logger
from web3 import Web3

from blockchain.networks import normalize_chain_id
from .errors import NotAuthorized, ProviderRpcError

WALLET_EVENTS = ('chainChanged', 'accountsChanged')


class Web3WalletProvider:
    """
    EIP-1193 style provider on top of a web3 HTTP connection

    With a local eth-account the provider behaves like a wallet: it
    answers eth_requestAccounts with that account and signs
    eth_sendTransaction locally before broadcasting. Without one, requests
    go to the node as-is (eth_requestAccounts maps to eth_accounts, which
    suits development nodes with unlocked accounts).

    Chain and account changes are detected by polling and delivered as
    chainChanged / accountsChanged events.
    """

    def __init__(self, w3: Web3, account=None, poll_interval: float = 2.0):
        """
        Initialize Web3 Wallet Provider

        Args:
            w3: Web3 instance
            account: eth-account LocalAccount used for signing (optional)
            poll_interval: Seconds between change checks
        """
        self.w3 = w3
        self.account = account
        self.poll_interval = poll_interval

        self.chain_id: Optional[str] = None
        self._accounts: Optional[List[str]] = None
        self._handlers: Dict[str, List[Callable]] = {event: [] for event in WALLET_EVENTS}

        self.running = False
        self._poll_task = None

        logger.info(
            f"Web3 wallet provider initialized"
            f"{' with local account ' + account.address if account else ''}"
        )

    @classmethod
    def from_url(cls, rpc_url: str, private_key: Optional[str] = None, poll_interval: float = 2.0):
        """
        Create a provider for an HTTP RPC endpoint

        Args:
            rpc_url: Node URL
            private_key: 0x-prefixed hex key for local signing (optional)
            poll_interval: Seconds between change checks
        """
        w3 = Web3(Web3.HTTPProvider(rpc_url))
        account = Account.from_key(private_key) if private_key else None
        return cls(w3, account=account, poll_interval=poll_interval)

    # ------------------------------------------------------------------
    # EIP-1193 surface
    # ------------------------------------------------------------------

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Make a wallet request

        Args:
            method: RPC method
            params: Method parameters

        Returns:
            RPC result
        """
        params = list(params or [])

        if method == 'eth_requestAccounts':
            if self.account is not None:
                return [self.account.address]
            return self._make_request('eth_accounts', [])

        if method == 'eth_sendTransaction' and self.account is not None:
            if not params:
                raise ProviderRpcError(-32602, "eth_sendTransaction requires a transaction")
            return self._send_signed(params[0])

        return self._make_request(method, params)

    def on(self, event: str, handler: Callable):
        """Subscribe to chainChanged / accountsChanged"""
        if event not in self._handlers:
            raise ValueError(f"Unsupported event: {event}")
        self._handlers[event].append(handler)

    def emit(self, event: str, *args):
        """Deliver an event to its handlers"""
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(*args)
            except Exception:
                logger.exception(f"{event} handler failed")

    # ------------------------------------------------------------------
    # Change detection
    # ------------------------------------------------------------------

    async def start(self):
        """Start polling for chain/account changes"""
        if self.running:
            return
        self.running = True
        self._poll_task = asyncio.create_task(self._poll_loop())
        logger.info(f"Polling wallet state every {self.poll_interval}s")

    async def stop(self):
        """Stop polling"""
        self.running = False

        if self._poll_task:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None

        logger.info("Wallet polling stopped")

    async def _poll_loop(self):
        while self.running:
            try:
                await self.poll_once()
            except Exception as e:
                logger.error(f"Error polling wallet state: {e}")

            await asyncio.sleep(self.poll_interval)

    async def poll_once(self):
        """
        Check chain id and accounts once, emitting events on change

        The first observation only primes the cache.
        """
        previous_chain = self.chain_id
        chain_id = normalize_chain_id(self._make_request('eth_chainId', []))

        if previous_chain is not None and chain_id != previous_chain:
            self.emit('chainChanged', chain_id)

        if self.account is not None:
            return

        accounts = self._make_request('eth_accounts', []) or []
        if self._accounts is not None and accounts != self._accounts:
            self._accounts = accounts
            self.emit('accountsChanged', accounts)
        else:
            self._accounts = accounts

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _make_request(self, method: str, params: List[Any]) -> Any:
        """Forward a request to the node, raising ProviderRpcError on error responses"""
        logger.debug(f"RPC {method} {params}")

        response = self.w3.provider.make_request(method, params)

        if 'error' in response and response['error']:
            error = response['error']
            logger.error(f"RPC {method} failed: {error}")
            if isinstance(error, dict):
                raise ProviderRpcError(error.get('code'), error.get('message', str(error)), error.get('data'))
            raise ProviderRpcError(None, str(error))

        result = response.get('result')

        if method == 'eth_chainId':
            self.chain_id = normalize_chain_id(result)

        return result

    def _send_signed(self, tx: Dict[str, Any]) -> str:
        """
        Sign a wallet-style transaction with the local account and broadcast it

        Args:
            tx: {from, to, data, value} as built for eth_sendTransaction

        Returns:
            Transaction hash (0x-prefixed hex)
        """
        sender = self.account.address
        if tx.get('from') and tx['from'].lower() != sender.lower():
            raise NotAuthorized(f"Account {tx['from']} is not managed by this provider")

        value = tx.get('value') or '0x0'
        transaction = {
            'to': Web3.to_checksum_address(tx['to']),
            'data': tx.get('data') or '0x',
            'value': int(value, 16) if isinstance(value, str) else int(value),
            'nonce': self.w3.eth.get_transaction_count(sender, 'pending'),
            'gasPrice': self.w3.eth.gas_price,
            'chainId': self.w3.eth.chain_id,
        }
        transaction['gas'] = self.w3.eth.estimate_gas({**transaction, 'from': sender})

        signed = self.account.sign_transaction(transaction)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)

        logger.info(f"Signed and broadcast transaction from {sender}: {Web3.to_hex(tx_hash)}")
        return Web3.to_hex(tx_hash)
