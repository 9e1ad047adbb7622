"""
Unit Tests for ABI descriptors and Contract Binding
"""

import pytest
from eth_abi import decode, encode
from web3 import Web3

from blockchain.abi import AbiShapeError, EventDescriptor, FunctionDescriptor, parse_abi
from blockchain.contract_binding import ContractBinding
from utils.errors import ContractCallError, EncodingError, MethodNotFound

from conftest import (
    APPROVE_SELECTOR,
    OWNER,
    SPENDER,
    TOKEN,
    FakeWalletProvider,
    erc20_eth_call,
)


@pytest.fixture
def binding():
    return ContractBinding()


def _function(name, inputs=(), outputs=()):
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": f"arg{i}", "type": t} for i, t in enumerate(inputs)],
        "outputs": [{"name": "", "type": t} for t in outputs],
        "stateMutability": "nonpayable",
    }


class TestParseAbi:
    """Boundary shape check"""

    def test_parses_functions_and_events(self, erc20_abi):
        entries = parse_abi(erc20_abi)

        assert isinstance(entries[0], FunctionDescriptor)
        assert entries[0].name == "totalSupply"
        assert isinstance(entries[-1], EventDescriptor)
        assert entries[-1].inputs[0].indexed

    def test_missing_type_defaults_to_function(self):
        entries = parse_abi([{"name": "foo", "inputs": [], "outputs": []}])
        assert isinstance(entries[0], FunctionDescriptor)

    def test_legacy_constant_flag_is_view(self):
        entries = parse_abi([{"name": "foo", "constant": True, "inputs": [], "outputs": []}])
        assert entries[0].is_read_only

    def test_fallback_receive_and_error_are_skipped(self):
        entries = parse_abi([
            {"type": "fallback"},
            {"type": "receive", "stateMutability": "payable"},
            {"type": "error", "name": "Unauthorized", "inputs": []},
            _function("foo"),
        ])
        assert [e.name for e in entries] == ["foo"]

    def test_parsing_is_idempotent(self, erc20_abi):
        once = parse_abi(erc20_abi)
        assert parse_abi(once) == once

    @pytest.mark.parametrize("abi", [
        [{"type": "mystery", "name": "x"}],
        [{"type": "function", "inputs": []}],
        [{"type": "function", "name": "x", "inputs": "address"}],
        [{"type": "function", "name": "x", "inputs": [{"name": "a"}]}],
        ["approve"],
        {"name": "approve"},
    ])
    def test_malformed_abi_rejected(self, abi):
        with pytest.raises(AbiShapeError):
            parse_abi(abi)

    def test_tuple_types_expand_in_signature(self):
        entries = parse_abi([{
            "type": "function",
            "name": "submit",
            "inputs": [{
                "name": "orders",
                "type": "tuple[]",
                "components": [
                    {"name": "maker", "type": "address"},
                    {"name": "amount", "type": "uint256"},
                ],
            }],
            "outputs": [],
        }])
        assert entries[0].signature == "submit((address,uint256)[])"


class TestResolveMethod:
    """Method lookup by exact name"""

    def test_empty_abi(self, binding):
        with pytest.raises(MethodNotFound) as exc:
            binding.resolve_method([], "approve")
        assert exc.value.name == "approve"

    def test_single_entry(self, binding):
        method = binding.resolve_method([_function("approve", ["address", "uint256"])], "approve")
        assert method.signature == "approve(address,uint256)"

    def test_duplicate_names_first_wins(self, binding):
        abi = [
            _function("transfer", ["address", "uint256"]),
            _function("transfer", ["address", "uint256", "bytes"]),
        ]
        method = binding.resolve_method(abi, "transfer")
        assert method.input_types == ["address", "uint256"]

    def test_name_match_is_exact(self, binding, erc20_abi):
        with pytest.raises(MethodNotFound):
            binding.resolve_method(erc20_abi, "Approve")

    def test_events_are_not_methods(self, binding, erc20_abi):
        with pytest.raises(MethodNotFound):
            binding.resolve_method(erc20_abi, "Approval")


class TestEncodeCall:
    """ABI encoding of calls"""

    def test_approve_encoding(self, binding, erc20_abi):
        method = binding.resolve_method(erc20_abi, "approve")

        data = binding.encode_call(method, [SPENDER, 10 ** 21])

        assert Web3.to_hex(data[:4]) == APPROVE_SELECTOR
        assert data[4:] == encode(["address", "uint256"], [SPENDER, 10 ** 21])

    def test_integer_strings_are_accepted(self, binding, erc20_abi):
        method = binding.resolve_method(erc20_abi, "approve")

        data = binding.encode_call(method, [SPENDER.lower(), "1000000000000000000000"])

        spender, amount = decode(["address", "uint256"], data[4:])
        assert spender == SPENDER
        assert amount == 10 ** 21

    def test_hex_integer_string(self, binding, erc20_abi):
        method = binding.resolve_method(erc20_abi, "approve")
        data = binding.encode_call(method, [SPENDER, "0xff"])
        assert decode(["address", "uint256"], data[4:])[1] == 255

    def test_no_arguments(self, binding, erc20_abi):
        method = binding.resolve_method(erc20_abi, "totalSupply")
        assert Web3.to_hex(binding.encode_call(method, [])) == "0x18160ddd"

    def test_array_arguments(self, binding):
        method = binding.resolve_method([_function("batch", ["uint256[]"])], "batch")
        data = binding.encode_call(method, [["1", 2, "0x3"]])
        assert decode(["uint256[]"], data[4:])[0] == (1, 2, 3)

    def test_argument_count_mismatch(self, binding, erc20_abi):
        method = binding.resolve_method(erc20_abi, "approve")
        with pytest.raises(EncodingError):
            binding.encode_call(method, [SPENDER])

    @pytest.mark.parametrize("args", [
        ["not-an-address", 1],
        [SPENDER, "one thousand"],
        [SPENDER, -1],
        [SPENDER, 2 ** 256],
        [SPENDER, 1.5],
    ])
    def test_type_mismatch(self, binding, erc20_abi, args):
        method = binding.resolve_method(erc20_abi, "approve")
        with pytest.raises(EncodingError):
            binding.encode_call(method, args)

    def test_unresolved_descriptor_is_rejected(self, binding):
        with pytest.raises(EncodingError):
            binding.encode_call(None, [SPENDER, 1])


class TestContractHandle:
    """Read calls through the provider"""

    @pytest.mark.asyncio
    async def test_total_supply_read(self, erc20_abi):
        provider = FakeWalletProvider(responses={'eth_call': erc20_eth_call(total_supply=10 ** 21)})
        contract = ContractBinding(provider).bind_contract(TOKEN, erc20_abi)

        result = await contract.call('totalSupply')

        assert result == 10 ** 21
        method, params = provider.calls[0]
        assert method == 'eth_call'
        assert params[0] == {'to': TOKEN, 'data': '0x18160ddd'}
        assert params[1] == 'latest'

    @pytest.mark.asyncio
    async def test_allowance_read_passes_arguments(self, erc20_abi):
        provider = FakeWalletProvider(responses={'eth_call': erc20_eth_call(allowance=7)})
        contract = ContractBinding(provider).bind_contract(TOKEN, erc20_abi)

        assert await contract.call('allowance', OWNER, SPENDER) == 7

        data = provider.calls[0][1][0]['data']
        assert decode(["address", "address"], bytes.fromhex(data[10:])) == (OWNER, SPENDER)

    @pytest.mark.asyncio
    async def test_empty_return_data(self, erc20_abi):
        provider = FakeWalletProvider(responses={'eth_call': '0x'})
        contract = ContractBinding(provider).bind_contract(TOKEN, erc20_abi)

        with pytest.raises(ContractCallError):
            await contract.call('totalSupply')

    @pytest.mark.asyncio
    async def test_unknown_method(self, erc20_abi):
        provider = FakeWalletProvider(responses={'eth_call': '0x'})
        contract = ContractBinding(provider).bind_contract(TOKEN, erc20_abi)

        with pytest.raises(MethodNotFound):
            await contract.call('balanceOf', OWNER)
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_no_provider(self, erc20_abi):
        contract = ContractBinding().bind_contract(TOKEN, erc20_abi)
        with pytest.raises(ContractCallError):
            await contract.call('totalSupply')
