import re
from decimal import Decimal
from typing import Union

from admission_policy.errors import QuantityError

# Checked in this order against the literal string, so "Gi" wins over "m"
QUANTITY_SUFFIXES = {
    'Gi': Decimal(1024 ** 3),
    'Mi': Decimal(1024 ** 2),
    'Ki': Decimal(1024),
    'm': Decimal(1) / Decimal(1000),
}

_DECIMAL_RE = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)$')


def parse_quantity(quantity: Union[str, int, float]) -> Decimal:
    """Parse a Kubernetes resource quantity into its canonical base-unit value.

    Supports the binary suffixes Gi, Mi and Ki, the milli suffix m and plain
    decimals. "1Gi" -> 1073741824, "500m" -> 0.5, "4" -> 4.
    Zero and negative magnitudes are accepted; whether they make sense is up
    to the caller.
    """
    if isinstance(quantity, bool) or quantity is None:
        raise QuantityError(quantity, "expected a string")
    if isinstance(quantity, (int, float)):
        quantity = str(quantity)
    if not isinstance(quantity, str):
        raise QuantityError(quantity, "expected a string")

    number = quantity
    multiplier = Decimal(1)
    for suffix, factor in QUANTITY_SUFFIXES.items():
        if quantity.endswith(suffix):
            number = quantity[:-len(suffix)]
            multiplier = factor
            break

    if not _DECIMAL_RE.match(number):
        raise QuantityError(quantity, "numeric part is not a decimal number")

    return Decimal(number) * multiplier


def compare_quantities(a: Union[str, int, float], b: Union[str, int, float]) -> int:
    """Compare two quantities: -1 if a < b, 0 if equal, 1 if a > b"""
    left = parse_quantity(a)
    right = parse_quantity(b)
    if left > right:
        return 1
    if left < right:
        return -1
    return 0


def exceeds(quantity: Union[str, int, float], ceiling: str) -> bool:
    """True when quantity is strictly greater than ceiling"""
    return compare_quantities(quantity, ceiling) > 0
