import pytest

from sales_tracker.core.filters import month_filter
from sales_tracker.core.models import Transaction
from sales_tracker.database import TransactionStore
from sales_tracker.errors import StoreError


def _txs():
    return [
        Transaction(1, "Backpack", "Fits 15 laptops", 109.95, "2021-11-27T20:29:54+05:30", False, "men's clothing"),
        Transaction(2, "T-Shirt", "Slim fit", 22.3, "2021-10-27T20:29:54+05:30", True, "men's clothing"),
        Transaction(3, "Bracelet", "Silver", 695.0, "2022-11-02T09:00:00+05:30", True, "jewelery", "https://img/3.jpg"),
    ]


def test_roundtrip_and_filters(tmp_path):
    with TransactionStore(str(tmp_path / "sales.db")) as store:
        assert store.replace_all(_txs()) == 3

        everything = store.fetch()
        assert [tx.id for tx in everything] == [1, 2, 3]
        assert everything[0].sold is False
        assert everything[2].image == "https://img/3.jpg"
        assert everything[2].to_dict()["dateOfSale"] == "2022-11-02T09:00:00+05:30"

        november = month_filter(11)
        assert store.count(november) == 2
        assert store.sum("price", november) == pytest.approx(804.95)
        assert store.group_count("category", november) == [("jewelery", 1), ("men's clothing", 1)]
        assert [tx.id for tx in store.fetch(november, limit=1, offset=1)] == [3]


def test_replace_all_discards_previous_contents(tmp_path):
    with TransactionStore(str(tmp_path / "sales.db")) as store:
        store.replace_all(_txs())
        store.replace_all(_txs()[:1])
        assert store.count() == 1


def test_failed_replace_keeps_previous_contents(tmp_path):
    with TransactionStore(str(tmp_path / "sales.db")) as store:
        store.replace_all(_txs())
        duplicate_ids = _txs() + _txs()[:1]
        with pytest.raises(StoreError):
            store.replace_all(duplicate_ids)
        assert store.count() == 3


def test_empty_store(tmp_path):
    with TransactionStore(str(tmp_path / "nested" / "empty.db")) as store:
        assert store.fetch() == []
        assert store.count() == 0
        assert store.sum("price") == 0.0
        assert store.group_count("category") == []


def test_closed_store_rejects_queries(tmp_path):
    store = TransactionStore(str(tmp_path / "sales.db"))
    with pytest.raises(StoreError, match="not open"):
        store.count()

    store.open()
    store.close()
    assert not store.is_open
    with pytest.raises(StoreError, match="not open"):
        store.fetch()


def test_rejects_unknown_columns(tmp_path):
    with TransactionStore(str(tmp_path / "sales.db")) as store:
        with pytest.raises(StoreError):
            store.sum("title")
        with pytest.raises(StoreError):
            store.group_count("price; DROP TABLE transactions")


def test_fetch_clamps_oversized_limit_and_offset(tmp_path):
    with TransactionStore(str(tmp_path / "sales.db")) as store:
        store.replace_all(_txs())
        assert store.fetch(limit=10, offset=10**20) == []
        assert [tx.id for tx in store.fetch(limit=10**20, offset=1)] == [2, 3]
