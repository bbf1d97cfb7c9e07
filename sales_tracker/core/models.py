# sales_tracker/core/models.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass
class Transaction:
    id: Optional[int]
    title: str
    description: str
    price: Optional[float]
    date_of_sale: Optional[str]
    sold: Optional[bool]
    category: Optional[str] = None
    image: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        """Return the record with the camelCase keys used on the wire."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "price": self.price,
            "dateOfSale": self.date_of_sale,
            "sold": self.sold,
            "category": self.category,
            "image": self.image,
        }


@dataclass(frozen=True)
class PriceRange:
    label: str
    min: float
    max: float | None = None
    lower_inclusive: bool = False

    def contains(self, price: float | None) -> bool:
        if price is None:
            return False
        if self.lower_inclusive:
            above = price >= self.min
        else:
            above = price > self.min - 1
        return above and (self.max is None or price <= self.max)


def _build_price_ranges() -> tuple[PriceRange, ...]:
    ranges = [PriceRange("0-100", 0, 100, lower_inclusive=True)]
    for low in range(101, 900, 100):
        ranges.append(PriceRange(f"{low}-{low + 99}", low, low + 99))
    ranges.append(PriceRange("901-above", 901, None))
    return tuple(ranges)


PRICE_RANGES = _build_price_ranges()
