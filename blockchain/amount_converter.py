"""
Amount Converter
Scales token amounts between human units and base units without float rounding
"""

from decimal import Decimal, InvalidOperation, localcontext
from typing import Union

from utils.errors import InvalidAmount

Amount = Union[int, str, float, Decimal]

# Extra digits of headroom on top of the operand size
_PRECISION_PADDING = 10


class AmountConverter:
    """
    Arbitrary-precision conversion between human amounts and token base units

    Base-unit amounts routinely exceed what a float can represent exactly,
    so every multiplication and division runs on ``Decimal`` with a context
    precision sized to the operands.
    """

    def scale(self, amount: Amount, decimals: int) -> str:
        """
        Convert a human amount to base units

        Args:
            amount: Human amount (e.g. "1.5" tokens)
            decimals: Token decimals

        Returns:
            Base-unit amount as a base-10 integer string
        """
        decimals = self._check_decimals(decimals)
        value = self._to_decimal(amount)

        with localcontext() as ctx:
            ctx.prec = self._precision(value, decimals)
            scaled = value.scaleb(decimals)

        if scaled != scaled.to_integral_value():
            raise InvalidAmount(
                f"Amount {amount} has more than {decimals} fractional digits"
            )

        return str(int(scaled))

    def unscale(self, base_amount: Amount, decimals: int) -> Decimal:
        """
        Convert a base-unit amount to human units

        Args:
            base_amount: Integer amount in base units
            decimals: Token decimals

        Returns:
            Human amount, exact
        """
        decimals = self._check_decimals(decimals)
        value = self._to_decimal(base_amount)

        if value != value.to_integral_value():
            raise InvalidAmount(f"Base amount {base_amount} is not an integer")

        with localcontext() as ctx:
            ctx.prec = self._precision(value, decimals)
            human = value.scaleb(-decimals)

            if human == human.to_integral_value():
                return human.quantize(Decimal(1))
            return human.normalize()

    def _to_decimal(self, amount: Amount) -> Decimal:
        """Parse an amount, rejecting anything that is not a finite non-negative number"""
        if isinstance(amount, bool):
            raise InvalidAmount(f"Invalid amount: {amount!r}")

        if isinstance(amount, float):
            amount = str(amount)

        if isinstance(amount, str):
            amount = amount.strip()

        try:
            value = Decimal(amount)
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidAmount(f"Invalid amount: {amount!r}") from None

        if not value.is_finite():
            raise InvalidAmount(f"Invalid amount: {amount!r}")
        if value < 0:
            raise InvalidAmount(f"Amount must not be negative: {amount!r}")

        return value

    @staticmethod
    def _check_decimals(decimals: int) -> int:
        if isinstance(decimals, bool) or not isinstance(decimals, int):
            raise InvalidAmount(f"Decimals must be an integer, got {decimals!r}")
        if decimals < 0:
            raise InvalidAmount(f"Decimals must not be negative, got {decimals}")
        return decimals

    @staticmethod
    def _precision(value: Decimal, decimals: int) -> int:
        # Exponent-form integers ("1e30") have few coefficient digits but many integral ones
        digits = max(len(value.as_tuple().digits), value.adjusted() + 1)
        return digits + decimals + _PRECISION_PADDING
