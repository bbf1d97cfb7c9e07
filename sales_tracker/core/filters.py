# sales_tracker/core/filters.py
"""
Predicates over the ``transactions`` table.

Each builder returns a :class:`Predicate`, a SQL fragment plus its bound
parameters. Predicates carry no state and can be shared freely between
concurrent queries; :func:`combine` joins them with ``AND``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from sales_tracker.core.models import PriceRange
from sales_tracker.utils import parse_month, parse_number

# Only timestamps that start with a well-formed YYYY-MM-DD are considered;
# anything else never matches a month filter.
_ISO_DATE_GLOB = "[0-9][0-9][0-9][0-9]-[0-9][0-9]-[0-9][0-9]*"


@dataclass(frozen=True)
class Predicate:
    sql: str
    params: Tuple[object, ...] = ()

    def where(self) -> str:
        return f" WHERE {self.sql}" if self.sql else ""


EMPTY = Predicate("")


def combine(*predicates: Optional[Predicate]) -> Predicate:
    parts = [p for p in predicates if p is not None and p.sql]
    if not parts:
        return EMPTY
    if len(parts) == 1:
        return parts[0]
    sql = " AND ".join(f"({p.sql})" for p in parts)
    params: Tuple[object, ...] = ()
    for p in parts:
        params += p.params
    return Predicate(sql, params)


def month_filter(month) -> Predicate:
    """Match records sold in ``month`` (1..12) of any year.

    The stored timestamp is read structurally as ``YYYY-MM-DD...`` and its
    month field compared as a number, so a day-of-month equal to the target
    month never matches. The text is used as stored; no timezone conversion.
    """
    value = parse_month(month)
    return Predicate(
        "date_of_sale GLOB ? AND CAST(substr(date_of_sale, 6, 2) AS INTEGER) = ?",
        (_ISO_DATE_GLOB, value),
    )


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def search_filter(term: Optional[str]) -> Optional[Predicate]:
    """Free-text match on title or description, and on price when numeric."""
    if term is None or not term.strip():
        return None
    pattern = f"%{_escape_like(term)}%"
    clauses = [
        "title LIKE ? ESCAPE '\\'",
        "description LIKE ? ESCAPE '\\'",
    ]
    params: list[object] = [pattern, pattern]
    number = parse_number(term)
    if number is not None:
        clauses.append("price = ?")
        params.append(number)
    return Predicate(" OR ".join(clauses), tuple(params))


def sold_filter(sold: bool) -> Predicate:
    return Predicate("sold = ?", (1 if sold else 0,))


def price_range_filter(price_range: PriceRange) -> Predicate:
    if price_range.lower_inclusive:
        lower = ("price >= ?", price_range.min)
    else:
        lower = ("price > ?", price_range.min - 1)
    if price_range.max is None:
        return Predicate(lower[0], (lower[1],))
    return Predicate(f"{lower[0]} AND price <= ?", (lower[1], price_range.max))
