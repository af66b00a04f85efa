from __future__ import annotations

from ..config import BPS_DENOMINATOR, MarketConfig
from ..grades import Grade


def apply_bps(amount: int, bps: int) -> int:
    """`amount * bps / 10000`, floored."""
    return (int(amount) * int(bps)) // BPS_DENOMINATOR


def sale_price(config: MarketConfig, base_price: int, grade: Grade | int | str) -> int:
    return apply_bps(base_price, config.multiplier_for(grade))


def split_sale(config: MarketConfig, price: int) -> tuple[int, int, int]:
    """Return `(seller_proceeds, fee, royalty)` for a sale at `price`.

    Fee and royalty are floored; the seller receives the remainder, which the
    config guarantees is non-negative.
    """

    fee = apply_bps(price, config.fee_bps)
    royalty = apply_bps(price, config.royalty_bps)
    return int(price) - fee - royalty, fee, royalty


def suggested_price(config: MarketConfig, grade: Grade | int | str) -> int:
    return apply_bps(config.reference_price, config.multiplier_for(grade))
