"""
Transaction Builder
Constructs token approval and contract call transactions for wallet submission
"""

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

from loguru import logger
from web3 import Web3

from utils.errors import AllowanceCheckFailed, InvalidAmount
from .abi import AbiEntry, parse_abi
from .amount_converter import Amount, AmountConverter
from .contract_binding import ContractBinding


@dataclass(frozen=True)
class TokenDescriptor:
    """ERC20-like token the caller wants to act on"""

    contract_address: str
    abi: Tuple[AbiEntry, ...]
    decimals: int

    def __post_init__(self):
        # Raw JSON ABIs are shape-checked once, here
        object.__setattr__(self, 'abi', parse_abi(self.abi))
        if isinstance(self.decimals, bool) or not isinstance(self.decimals, int) or self.decimals < 0:
            raise InvalidAmount(f"Token decimals must be a non-negative integer, got {self.decimals!r}")


@dataclass(frozen=True)
class TransactionRequest:
    """
    Transaction ready for eth_sendTransaction

    ``value`` is a 0x-hex amount in base units, or empty when the call
    carries no native currency.
    """

    from_address: str
    to: str
    data: str
    value: str = ''
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex, compare=False, repr=False)

    def to_rpc_params(self) -> Dict[str, str]:
        params = {
            'from': self.from_address,
            'to': self.to,
            'data': self.data,
        }
        if self.value:
            params['value'] = self.value
        return params


class TransactionBuilder:
    """
    Builds transactions for token approvals and arbitrary contract calls

    Builders issue read calls but never submit anything.
    """

    def __init__(
        self,
        binding: ContractBinding,
        converter: Optional[AmountConverter] = None,
        default_sender: Optional[Callable[[], str]] = None
    ):
        """
        Initialize Transaction Builder

        Args:
            binding: Contract binding used for reads and encoding
            converter: Amount converter (default: new instance)
            default_sender: Returns the sender used when none is passed
        """
        self.binding = binding
        self.converter = converter or AmountConverter()
        self.default_sender = default_sender

    async def read_total_supply(self, token: TokenDescriptor) -> Decimal:
        """
        Read a token's total supply

        Args:
            token: Token to read

        Returns:
            Total supply in human units
        """
        contract = self.binding.bind_contract(token.contract_address, token.abi)
        total_supply = await contract.call('totalSupply')

        return self.converter.unscale(total_supply, token.decimals)

    async def build_approval(
        self,
        token: TokenDescriptor,
        spender: str,
        from_address: Optional[str] = None
    ) -> TransactionRequest:
        """
        Build an approve transaction for the token's whole supply

        Args:
            token: Token to approve
            spender: Address allowed to spend
            from_address: Sender (default: session address)

        Returns:
            TransactionRequest with empty value
        """
        # unscale then rescale normalizes whatever numeric form the read returned
        total_supply = await self.read_total_supply(token)
        amount = self.converter.scale(total_supply, token.decimals)

        approve_method = self.binding.resolve_method(token.abi, 'approve')
        data = self.binding.encode_call(approve_method, [spender, amount])

        request = TransactionRequest(
            from_address=self._sender(from_address),
            to=token.contract_address,
            data=Web3.to_hex(data),
        )

        logger.info(
            f"Built approval of {total_supply} on {token.contract_address} for {spender}"
        )
        return request

    async def build_allowance_check(
        self,
        token: TokenDescriptor,
        owner: str,
        spender: str,
        amount: Optional[Amount] = None
    ) -> bool:
        """
        Check whether an allowance exceeds the reference amount

        The reference is the token's total supply in base units unless
        ``amount`` (human units) is given.

        Args:
            token: Token to check
            owner: Token owner
            spender: Approved spender
            amount: Optional human amount to compare against

        Returns:
            True only if the allowance is strictly greater than the reference;
            False when there is no allowance or it could not be read
        """
        try:
            allowance = await self._read_allowance(token, owner, spender)
            if not allowance:
                return False

            if amount is None:
                reference = await self._read_total_supply_base_units(token)
            else:
                reference = Decimal(self.converter.scale(amount, token.decimals))

            return Decimal(allowance) - reference > 0

        except AllowanceCheckFailed as e:
            logger.warning(f"Allowance check failed for {owner} -> {spender}: {e}")
            return False

    async def build_call(
        self,
        token: TokenDescriptor,
        method_name: str,
        args: Sequence[Any],
        from_address: Optional[str] = None,
        value: Union[int, str, None] = None
    ) -> TransactionRequest:
        """
        Build a transaction calling any method of a contract

        Args:
            token: Contract to call
            method_name: Function name
            args: Function arguments
            from_address: Sender (default: session address)
            value: Native currency to send, in base units

        Returns:
            TransactionRequest
        """
        method = self.binding.resolve_method(token.abi, method_name)
        data = self.binding.encode_call(method, args)

        request = TransactionRequest(
            from_address=self._sender(from_address),
            to=token.contract_address,
            data=Web3.to_hex(data),
            value=self._hex_value(value),
        )

        logger.debug(f"Built {method.signature} call on {token.contract_address}")
        return request

    async def _read_allowance(self, token: TokenDescriptor, owner: str, spender: str) -> Optional[str]:
        """Allowance in base units as a string, None when zero or empty"""
        try:
            contract = self.binding.bind_contract(token.contract_address, token.abi)
            result = await contract.call('allowance', owner, spender)
        except Exception as e:
            raise AllowanceCheckFailed(f"allowance() read failed: {e}") from e

        if not result or str(result) == '0':
            return None
        return str(result)

    async def _read_total_supply_base_units(self, token: TokenDescriptor) -> Decimal:
        try:
            total_supply = await self.read_total_supply(token)
        except Exception as e:
            raise AllowanceCheckFailed(f"totalSupply() read failed: {e}") from e

        return Decimal(self.converter.scale(total_supply, token.decimals))

    def _sender(self, from_address: Optional[str]) -> str:
        sender = from_address or (self.default_sender() if self.default_sender else '')
        if not sender:
            raise ValueError("No sender address: connect the wallet or pass from_address")
        return sender

    @staticmethod
    def _hex_value(value: Union[int, str, None]) -> str:
        if value is None or value == '':
            return ''
        if isinstance(value, bool):
            raise InvalidAmount(f"Invalid value: {value!r}")
        if isinstance(value, str):
            text = value.strip()
            try:
                value = int(text, 16) if text.lower().startswith('0x') else int(text)
            except ValueError:
                raise InvalidAmount(f"Invalid value: {value!r}") from None
        if value < 0:
            raise InvalidAmount(f"Value must not be negative: {value}")
        return hex(value)
