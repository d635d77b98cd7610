from decimal import Decimal
from typing import Union

from client_ledger.domain.enums import Currency

Number = Union[Decimal, int, float]


def format_currency(amount: Number, currency: Currency) -> str:
    """
    Render an amount with its currency code.

    Example:
        >>> format_currency(Decimal("1234.5"), Currency.KES)
        'KES 1,234.50'
        >>> format_currency(Decimal("-20"), Currency.USD)
        '-USD 20.00'
    """
    value = Decimal(str(amount))
    sign = "-" if value < 0 else ""
    return f"{sign}{currency.value} {abs(value):,.2f}"


def plain_number(value: Number) -> str:
    """
    Plain decimal text for CSV cells: no grouping, no trailing zeros.

    Example:
        >>> plain_number(Decimal("10000.00"))
        '10000'
        >>> plain_number(Decimal("12.50"))
        '12.5'
    """
    number = Decimal(str(value))
    if number == 0:
        return "0"
    return format(number.normalize(), "f")
