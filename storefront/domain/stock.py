from collections.abc import Iterable
from typing import Literal

StockStatus = Literal["in_stock", "low_stock", "out_of_stock"]


def stock_status(stock_quantity: int, min_stock_level: int) -> StockStatus:
    if stock_quantity <= 0:
        return "out_of_stock"
    if min_stock_level > 0 and stock_quantity <= min_stock_level:
        return "low_stock"
    return "in_stock"


def pack_multiplier(option_pairs: Iterable[tuple[str, str]], pack_type: str = "pack") -> int:
    """
    Units of stock consumed by one unit of a variant.

    Read from the value of an option whose type is `pack_type`; anything absent
    or non-numeric counts as a single unit.
    """
    for option_type, option_value in option_pairs:
        if option_type.strip().lower() != pack_type:
            continue
        try:
            value = int(option_value.strip())
        except ValueError:
            return 1
        return value if value > 0 else 1
    return 1
