# sales_tracker/seed.py
import json
import logging
import urllib.error
import urllib.request
from typing import List

import pandas as pd

from sales_tracker.core.models import Transaction
from sales_tracker.database import TransactionStore
from sales_tracker.errors import UpstreamFetchError

logger = logging.getLogger(__name__)

DEFAULT_SEED_URL = "https://s3.amazonaws.com/roxiler.com/product_transaction.json"
_FEED_COLUMNS = ("id", "title", "description", "price", "dateOfSale", "sold", "category", "image")


def fetch_feed(url: str = DEFAULT_SEED_URL, timeout: float = 30) -> List[dict]:
    """Download the seed feed and return its list of raw records."""
    logger.info("Fetching seed feed from %s", url)
    req = urllib.request.Request(url, method="GET")
    req.add_header("Accept", "application/json")
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            data = json.load(resp)
    except (urllib.error.URLError, OSError) as exc:
        raise UpstreamFetchError(f"Could not fetch seed feed from {url}: {exc}") from exc
    except ValueError as exc:
        raise UpstreamFetchError(f"Seed feed at {url} is not valid JSON") from exc

    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise UpstreamFetchError(f"Seed feed at {url} is not a list of records")
    logger.debug("Seed feed returned %d record(s)", len(data))
    return data


def _clean(value):
    if value is None:
        return None
    try:
        return None if pd.isna(value) else value
    except (TypeError, ValueError):
        return value


def _as_bool(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return None


def normalize_feed(records: List[dict]) -> List[Transaction]:
    """
    Turn raw feed records into Transactions.

    Prices are coerced to numbers (negative or non-numeric become null),
    timestamps that do not parse as ISO 8601 become null so month filters skip
    them, and later records reusing an earlier id are dropped. Parseable
    timestamps are kept verbatim.
    """
    if not records:
        return []

    frame = pd.DataFrame.from_records(records)
    for col in _FEED_COLUMNS:
        if col not in frame.columns:
            frame[col] = None

    frame["price"] = pd.to_numeric(frame["price"], errors="coerce")
    frame.loc[frame["price"] < 0, "price"] = float("nan")

    raw_dates = frame["dateOfSale"].where(frame["dateOfSale"].map(lambda v: isinstance(v, str)))
    parsed = pd.to_datetime(raw_dates, errors="coerce", utc=True, format="ISO8601")
    frame["dateOfSale"] = raw_dates.where(parsed.notna())

    ids = pd.to_numeric(frame["id"], errors="coerce")
    frame["id"] = ids
    frame = frame[~(ids.notna() & ids.duplicated())]

    txs = []
    for row in frame.to_dict(orient="records"):
        tx_id = _clean(row["id"])
        title = _clean(row["title"])
        desc = _clean(row["description"])
        category = _clean(row["category"])
        txs.append(
            Transaction(
                id=int(tx_id) if tx_id is not None else None,
                title=str(title) if title is not None else "",
                description=str(desc) if desc is not None else "",
                price=float(row["price"]) if _clean(row["price"]) is not None else None,
                date_of_sale=_clean(row["dateOfSale"]),
                sold=_as_bool(row["sold"]),
                category=str(category) if category is not None else None,
                image=_clean(row["image"]),
            )
        )
    skipped = sum(1 for tx in txs if tx.date_of_sale is None)
    if skipped:
        logger.warning("%d seed record(s) have no parseable dateOfSale", skipped)
    return txs


def initialize_store(
    store: TransactionStore,
    url: str = DEFAULT_SEED_URL,
    timeout: float = 30,
) -> int:
    """Fetch the seed feed and replace the store contents with it."""
    records = fetch_feed(url, timeout=timeout)
    txs = normalize_feed(records)
    return store.replace_all(txs)
