"""
Aggregations served by the reporting API.

Every public coroutine validates its inputs before touching the store, builds
its predicates once, and runs the independent store reads concurrently in
worker threads. Any failing read fails the whole aggregation with a single
:class:`StoreError`; partial results are never returned.
"""
from __future__ import annotations

import functools
import logging
import sqlite3
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

import anyio

from sales_tracker.core.filters import (
    Predicate,
    combine,
    month_filter,
    price_range_filter,
    search_filter,
    sold_filter,
)
from sales_tracker.core.models import PRICE_RANGES, PriceRange
from sales_tracker.database import TransactionStore
from sales_tracker.errors import SalesReportError, StoreError
from sales_tracker.utils import parse_positive_int

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 10


async def _in_thread(func: Callable, *args, **kwargs):
    # Abandoned reads finish in the background; their results are discarded.
    return await anyio.to_thread.run_sync(
        functools.partial(func, *args, **kwargs), abandon_on_cancel=True
    )


async def gather(calls: Sequence[Callable[[], Awaitable]], what: str) -> list:
    """Run ``calls`` concurrently and return their results in call order.

    If any call fails with a store or reporting error the remaining ones are
    cancelled and a single :class:`StoreError` naming ``what`` is raised.
    Any other exception is a programming error and propagates from the task
    group as is.
    """
    results: list = [None] * len(calls)
    failures: list = []

    async def _collect(index: int, call: Callable[[], Awaitable]) -> None:
        try:
            results[index] = await call()
        except (SalesReportError, sqlite3.Error) as exc:
            failures.append(exc)
            tg.cancel_scope.cancel()

    async with anyio.create_task_group() as tg:
        for index, call in enumerate(calls):
            tg.start_soon(_collect, index, call)
    if failures:
        raise StoreError(f"Error computing {what}") from failures[0]
    return results


async def _page(
    store: TransactionStore,
    predicate: Predicate,
    limit: Optional[int] = None,
    offset: int = 0,
) -> List[Dict[str, object]]:
    rows = await _in_thread(store.fetch, predicate, limit=limit, offset=offset)
    return [tx.to_dict() for tx in rows]


async def list_transactions(
    store: TransactionStore,
    month=None,
    search: Optional[str] = None,
    page=DEFAULT_PAGE,
    per_page=DEFAULT_PER_PAGE,
) -> Dict[str, object]:
    """Return one page of matching transactions plus the unpaginated total.

    ``month`` is optional here; when omitted no date restriction applies.
    """
    page = parse_positive_int(page, "page", DEFAULT_PAGE)
    per_page = parse_positive_int(per_page, "perPage", DEFAULT_PER_PAGE)
    has_month = month is not None and str(month).strip() != ""
    predicate = combine(
        month_filter(month) if has_month else None,
        search_filter(search),
    )
    offset = (page - 1) * per_page

    rows, total = await gather(
        [
            lambda: _page(store, predicate, limit=per_page, offset=offset),
            lambda: _in_thread(store.count, predicate),
        ],
        "transactions",
    )
    return {
        "transactions": rows,
        "total": total,
        "page": page,
        "perPage": per_page,
    }


async def _statistics(store: TransactionStore, predicate: Predicate) -> Dict[str, object]:
    sold = combine(predicate, sold_filter(True))
    not_sold = combine(predicate, sold_filter(False))
    total_amount, sold_count, not_sold_count = await gather(
        [
            lambda: _in_thread(store.sum, "price", sold),
            lambda: _in_thread(store.count, sold),
            lambda: _in_thread(store.count, not_sold),
        ],
        "statistics",
    )
    return {
        "totalSaleAmount": total_amount,
        "totalSoldItems": sold_count,
        "totalNotSoldItems": not_sold_count,
    }


async def _bar_chart(
    store: TransactionStore,
    predicate: Predicate,
    ranges: Sequence[PriceRange] = PRICE_RANGES,
) -> List[Dict[str, object]]:
    counts = await gather(
        [
            functools.partial(_in_thread, store.count, combine(predicate, price_range_filter(r)))
            for r in ranges
        ],
        "bar chart",
    )
    return [{"range": r.label, "count": c} for r, c in zip(ranges, counts)]


async def _pie_chart(store: TransactionStore, predicate: Predicate) -> List[Dict[str, object]]:
    groups = await _in_thread(store.group_count, "category", predicate)
    return [{"category": category, "count": count} for category, count in groups]


async def statistics(store: TransactionStore, month) -> Dict[str, object]:
    """Total revenue of sold items and sold/unsold counts for ``month``."""
    return await _statistics(store, month_filter(month))


async def bar_chart(store: TransactionStore, month) -> List[Dict[str, object]]:
    """Count ``month``'s transactions per fixed price range, in range order."""
    return await _bar_chart(store, month_filter(month))


async def pie_chart(store: TransactionStore, month) -> List[Dict[str, object]]:
    """Count ``month``'s transactions per observed category."""
    predicate = month_filter(month)
    try:
        return await _pie_chart(store, predicate)
    except StoreError as exc:
        raise StoreError("Error computing pie chart") from exc


async def combined(
    store: TransactionStore,
    month,
    timeout: Optional[float] = None,
) -> Dict[str, object]:
    """Listing, statistics, bar chart and pie chart for ``month`` in one call.

    The four views are computed concurrently from the same predicate. With a
    ``timeout`` (seconds), expiry cancels the in-flight reads and fails the
    call.
    """
    predicate = month_filter(month)
    try:
        with anyio.fail_after(timeout):
            transactions, stats, bars, pie = await gather(
                [
                    lambda: _page(store, predicate),
                    lambda: _statistics(store, predicate),
                    lambda: _bar_chart(store, predicate),
                    lambda: _pie_chart(store, predicate),
                ],
                "combined view",
            )
    except TimeoutError as exc:
        logger.warning("Combined view for month %s timed out after %ss", month, timeout)
        raise StoreError("Timed out computing combined view") from exc
    return {
        "transactions": transactions,
        "statistics": stats,
        "barChart": bars,
        "pieChart": pie,
    }
