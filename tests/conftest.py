"""
Shared fixtures: a scripted wallet provider and an ERC20 ABI
"""

import asyncio

import pytest
from eth_abi import encode

from utils.errors import ProviderRpcError


OWNER = '0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed'
SPENDER = '0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359'
TOKEN = '0xdbF03B407c01E7cD3CBea99509d93f8DDDC8C6FB'
OTHER = '0xD1220A0cf47c7B9Be7A2E6BA89F429762e7b9aDb'

TOTAL_SUPPLY_SELECTOR = '0x18160ddd'
ALLOWANCE_SELECTOR = '0xdd62ed3e'
APPROVE_SELECTOR = '0x095ea7b3'

ERC20_ABI = [
    {
        "inputs": [],
        "name": "totalSupply",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"}
        ],
        "name": "allowance",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"}
        ],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"}
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "deposit",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function"
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "owner", "type": "address"},
            {"indexed": True, "name": "spender", "type": "address"},
            {"indexed": False, "name": "value", "type": "uint256"}
        ],
        "name": "Approval",
        "type": "event"
    }
]


class FakeWalletProvider:
    """
    Wallet provider driven by a method -> response table

    A response may be a value, an exception instance (raised), or a
    callable taking the params (its result may be a coroutine).
    """

    def __init__(self, chain_id=None, responses=None):
        self.chain_id = chain_id
        self.responses = dict(responses or {})
        self.calls = []
        self.handlers = {}

    async def request(self, method, params=None):
        self.calls.append((method, params))

        if method not in self.responses:
            raise ProviderRpcError(-32601, f"Method {method} not supported")

        response = self.responses[method]
        if callable(response):
            response = response(params)
            if asyncio.iscoroutine(response):
                response = await response
        if isinstance(response, BaseException):
            raise response
        return response

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event, *args):
        for handler in self.handlers.get(event, []):
            handler(*args)

    def methods_called(self):
        return [method for method, _ in self.calls]


def erc20_eth_call(total_supply=None, allowance=None):
    """
    eth_call responder for the ERC20 reads

    Values may be ints or exceptions; None means the call reverts.
    """
    def respond(params):
        data = params[0]['data']
        if data.startswith(TOTAL_SUPPLY_SELECTOR):
            value = total_supply
        elif data.startswith(ALLOWANCE_SELECTOR):
            value = allowance
        else:
            return ProviderRpcError(-32000, "execution reverted")

        if value is None:
            return ProviderRpcError(-32000, "execution reverted")
        if isinstance(value, BaseException):
            return value
        return '0x' + encode(['uint256'], [value]).hex()

    return respond


@pytest.fixture
def erc20_abi():
    return [dict(entry) for entry in ERC20_ABI]


@pytest.fixture
def fake_provider():
    """Wallet on ropsten with one account"""
    return FakeWalletProvider(
        chain_id='0x3',
        responses={
            'eth_chainId': '0x3',
            'eth_requestAccounts': [OWNER],
        }
    )
