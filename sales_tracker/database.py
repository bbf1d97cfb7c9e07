import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List, Tuple

from sales_tracker.core.filters import EMPTY, Predicate
from sales_tracker.core.models import Transaction
from sales_tracker.errors import StoreError

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id",
    "title",
    "description",
    "price",
    "date_of_sale",
    "sold",
    "category",
    "image",
)
_NUMERIC_COLUMNS = {"price"}
_GROUP_COLUMNS = {"category", "sold"}
# Largest value SQLite binds as an INTEGER.
_SQLITE_MAX_INT = 2**63 - 1


def _init_db(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS transactions (
            id INTEGER PRIMARY KEY,
            title TEXT,
            description TEXT,
            price REAL,
            date_of_sale TEXT,
            sold INTEGER,
            category TEXT,
            image TEXT
        )
        """
    )
    conn.commit()


def _row_to_transaction(row: sqlite3.Row) -> Transaction:
    sold = row["sold"]
    return Transaction(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        price=float(row["price"]) if row["price"] is not None else None,
        date_of_sale=row["date_of_sale"],
        sold=bool(sold) if sold is not None else None,
        category=row["category"],
        image=row["image"],
    )


class TransactionStore:
    """SQLite-backed collection of product-sale transactions.

    The store is opened once at process start and closed at shutdown. Every
    query opens its own short-lived connection, so one store may be shared by
    concurrent worker threads.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = str(db_path)
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> "TransactionStore":
        path = Path(self.db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(path)
            try:
                _init_db(conn)
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise StoreError(f"Could not open database {self.db_path}") from exc
        self._open = True
        logger.debug("Opened transaction store at %s", self.db_path)
        return self

    def close(self) -> None:
        self._open = False
        logger.debug("Closed transaction store at %s", self.db_path)

    def __enter__(self) -> "TransactionStore":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        if not self._open:
            raise StoreError("Transaction store is not open")
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as exc:
            raise StoreError(f"Could not connect to {self.db_path}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        finally:
            conn.close()

    def replace_all(self, transactions: Iterable[Transaction]) -> int:
        """Replace the table contents with ``transactions`` in one commit.

        On failure the previous contents are left untouched.
        """
        rows = [
            (
                tx.id,
                tx.title,
                tx.description,
                tx.price,
                tx.date_of_sale,
                None if tx.sold is None else int(tx.sold),
                tx.category,
                tx.image,
            )
            for tx in transactions
        ]
        with self._connect() as conn:
            try:
                conn.execute("DELETE FROM transactions")
                conn.executemany(
                    f"""
                    INSERT INTO transactions ({", ".join(_COLUMNS)})
                    VALUES ({", ".join("?" for _ in _COLUMNS)})
                    """,
                    rows,
                )
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise
        logger.info("Stored %d transaction(s) in %s", len(rows), self.db_path)
        return len(rows)

    def fetch(
        self,
        predicate: Predicate = EMPTY,
        limit: int | None = None,
        offset: int = 0,
    ) -> List[Transaction]:
        query = f"SELECT {', '.join(_COLUMNS)} FROM transactions{predicate.where()} ORDER BY id"
        params = list(predicate.params)
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params += [min(limit, _SQLITE_MAX_INT), min(offset, _SQLITE_MAX_INT)]
        logger.debug("fetch: %s %s", query, params)
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_transaction(r) for r in rows]

    def count(self, predicate: Predicate = EMPTY) -> int:
        query = f"SELECT COUNT(*) FROM transactions{predicate.where()}"
        logger.debug("count: %s %s", query, predicate.params)
        with self._connect() as conn:
            row = conn.execute(query, predicate.params).fetchone()
        return int(row[0] or 0)

    def sum(self, column: str, predicate: Predicate = EMPTY) -> float:
        if column not in _NUMERIC_COLUMNS:
            raise StoreError(f"Cannot sum column {column!r}")
        query = f"SELECT COALESCE(SUM({column}), 0.0) FROM transactions{predicate.where()}"
        logger.debug("sum: %s %s", query, predicate.params)
        with self._connect() as conn:
            row = conn.execute(query, predicate.params).fetchone()
        return float(row[0] or 0.0)

    def group_count(self, column: str, predicate: Predicate = EMPTY) -> List[Tuple[object, int]]:
        """Return ``(value, count)`` pairs for non-null values of ``column``."""
        if column not in _GROUP_COLUMNS:
            raise StoreError(f"Cannot group by column {column!r}")
        where = f" WHERE ({predicate.sql}) AND" if predicate.sql else " WHERE"
        query = (
            f"SELECT {column}, COUNT(*) AS count FROM transactions"
            f"{where} {column} IS NOT NULL"
            f" GROUP BY {column} ORDER BY {column}"
        )
        logger.debug("group_count: %s %s", query, predicate.params)
        with self._connect() as conn:
            rows = conn.execute(query, predicate.params).fetchall()
        return [(row[0], int(row[1])) for row in rows]
