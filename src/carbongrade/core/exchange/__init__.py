from __future__ import annotations

from .pricing import apply_bps, sale_price, split_sale, suggested_price
from .service import FIRST_LISTING_ID, CarbonExchange

__all__ = [
    "CarbonExchange",
    "FIRST_LISTING_ID",
    "apply_bps",
    "sale_price",
    "split_sale",
    "suggested_price",
]
