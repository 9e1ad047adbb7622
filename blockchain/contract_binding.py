"""
Contract Binding
Resolves ABI methods, encodes calls and issues read calls through the wallet provider
"""

from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError as AbiDecodingError
from eth_abi.exceptions import EncodingError as AbiEncodingError
from eth_abi.exceptions import ParseError as AbiParseError
from loguru import logger
from web3 import Web3

from utils.errors import ContractCallError, EncodingError, MethodNotFound
from .abi import AbiEntry, FunctionDescriptor, functions, parse_abi


def _normalize_arg(abi_type: str, value: Any) -> Any:
    """
    Coerce a caller-supplied argument into what the ABI codec accepts

    Integer types take decimal or 0x strings and integral Decimals,
    addresses are checksummed. Arrays are handled element-wise.
    """
    if abi_type.endswith(']'):
        element_type = abi_type[:abi_type.rindex('[')]
        if not isinstance(value, (list, tuple)):
            raise EncodingError(f"Expected a list for {abi_type}, got {value!r}")
        return [_normalize_arg(element_type, item) for item in value]

    if abi_type.startswith(('uint', 'int')) and not isinstance(value, bool):
        if isinstance(value, str):
            text = value.strip()
            try:
                return int(text, 16) if text.lower().startswith('0x') else int(text)
            except ValueError:
                raise EncodingError(f"Invalid {abi_type} value: {value!r}") from None
        if isinstance(value, Decimal):
            if value != value.to_integral_value():
                raise EncodingError(f"Invalid {abi_type} value: {value!r}")
            return int(value)
        return value

    if abi_type == 'address' and isinstance(value, str):
        try:
            return Web3.to_checksum_address(value)
        except ValueError:
            raise EncodingError(f"Invalid address: {value!r}") from None

    return value


class ContractBinding:
    """
    Binds ABIs to addresses and encodes/decodes contract calls
    """

    def __init__(self, provider=None):
        """
        Initialize Contract Binding

        Args:
            provider: Wallet provider used for read calls
        """
        self.provider = provider

        logger.debug("Contract Binding initialized")

    def resolve_method(self, abi: Iterable[Any], name: str) -> FunctionDescriptor:
        """
        Find a function by exact name

        Args:
            abi: Contract ABI (raw or parsed)
            name: Function name

        Returns:
            First function descriptor with that name

        Raises:
            MethodNotFound: If no function has that name
        """
        for method in functions(parse_abi(abi)):
            if method.name == name:
                return method

        raise MethodNotFound(name)

    def encode_call(self, method: Optional[FunctionDescriptor], args: Sequence[Any]) -> bytes:
        """
        ABI-encode a function call

        Args:
            method: Resolved function descriptor
            args: Function arguments in ABI order

        Returns:
            4-byte selector followed by the encoded arguments
        """
        if not isinstance(method, FunctionDescriptor):
            raise EncodingError(
                f"Cannot encode call: method descriptor is unresolved ({method!r})"
            )

        args = list(args or [])
        input_types = method.input_types

        if len(args) != len(input_types):
            raise EncodingError(
                f"{method.signature} expects {len(input_types)} arguments, got {len(args)}"
            )

        selector = bytes(Web3.keccak(text=method.signature)[:4])

        try:
            normalized = [_normalize_arg(t, a) for t, a in zip(input_types, args)]
            encoded_args = encode(input_types, normalized) if input_types else b''
        except EncodingError:
            raise
        except (AbiEncodingError, AbiParseError, TypeError, ValueError, OverflowError) as e:
            raise EncodingError(f"Cannot encode {method.signature}: {e}") from e

        return selector + encoded_args

    def decode_result(self, method: FunctionDescriptor, data: str) -> Any:
        """
        ABI-decode the return data of a call

        Args:
            method: Function that was called
            data: 0x-prefixed hex return data

        Returns:
            Decoded value, a tuple for multiple outputs, None for no outputs
        """
        output_types = method.output_types
        if not output_types:
            return None

        if not data or data in ('0x', '0X'):
            raise ContractCallError(f"{method.signature} returned no data")

        try:
            raw = bytes.fromhex(data[2:] if data[:2] in ('0x', '0X') else data)
            decoded = decode(output_types, raw)
        except (AbiDecodingError, AbiParseError, ValueError) as e:
            raise ContractCallError(f"Cannot decode {method.signature} result: {e}") from e

        if len(decoded) == 1:
            return decoded[0]
        return decoded

    def bind_contract(self, address: str, abi: Iterable[Any]) -> 'ContractHandle':
        """
        Create a read-call handle for a deployed contract

        Args:
            address: Contract address
            abi: Contract ABI (raw or parsed)

        Returns:
            ContractHandle bound to the configured provider
        """
        return ContractHandle(self, address, parse_abi(abi))


class ContractHandle:
    """
    A contract address with its ABI, for read calls (eth_call)
    """

    def __init__(self, binding: ContractBinding, address: str, abi: Sequence[AbiEntry]):
        self.binding = binding
        self.address = address
        self.abi = abi

    async def call(self, method_name: str, *args, block: str = 'latest') -> Any:
        """
        Execute a read call

        Args:
            method_name: Function to call
            *args: Function arguments
            block: Block tag

        Returns:
            Decoded return value(s)
        """
        provider = self.binding.provider
        if provider is None:
            raise ContractCallError(f"No provider configured for {method_name} on {self.address}")

        method = self.binding.resolve_method(self.abi, method_name)
        if not method.is_read_only:
            logger.debug(f"{method.signature} is not view/pure, result is simulated")

        calldata = self.binding.encode_call(method, args)

        result = await provider.request(
            'eth_call',
            [{'to': self.address, 'data': Web3.to_hex(calldata)}, block],
        )
        logger.debug(f"eth_call {method.signature} on {self.address} -> {result}")

        return self.binding.decode_result(method, result)
