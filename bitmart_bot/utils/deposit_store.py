"""SQLite storage for issued deposit addresses."""

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional
from bitmart_bot.models.deposit import DepositRecord
from bitmart_bot.utils.logger import get_logger

logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS deposit_addresses (
    user_id INTEGER PRIMARY KEY,
    chat_id INTEGER NOT NULL,
    username TEXT,
    currency TEXT NOT NULL,
    network TEXT,
    address TEXT NOT NULL UNIQUE,
    created_at TEXT NOT NULL
)
"""

COLUMNS = "user_id, chat_id, username, currency, network, address, created_at"


class DepositStore:
    """Single-table store: one deposit address per Telegram user."""

    def __init__(self, db_path: str = "data/deposits.db"):
        """
        Initialize the store and create the table if needed.

        Args:
            db_path: Path to the SQLite file, or ":memory:"
        """
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._connection = sqlite3.connect(db_path, check_same_thread=False, timeout=30.0)
        self._connection.row_factory = sqlite3.Row

        with self._transaction() as conn:
            conn.execute(SCHEMA)

        logger.info(f"Deposit store initialized: {db_path}")

    @contextmanager
    def _transaction(self):
        conn = self._connection
        try:
            yield conn
            conn.commit()
        except Exception as e:
            conn.rollback()
            logger.error(f"Database transaction failed: {e}")
            raise

    def close(self) -> None:
        self._connection.close()

    def save(self, record: DepositRecord) -> None:
        """
        Store a user's deposit address, replacing any previous one.

        Args:
            record: Deposit record to save
        """
        with self._transaction() as conn:
            # The address may already belong to another user if the processor reuses it
            conn.execute(
                "DELETE FROM deposit_addresses WHERE address = ? AND user_id != ?",
                (record.address, record.user_id)
            )
            conn.execute(
                f"INSERT OR REPLACE INTO deposit_addresses ({COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    record.user_id,
                    record.chat_id,
                    record.username,
                    record.currency,
                    record.network,
                    record.address,
                    record.created_at.isoformat()
                )
            )
        logger.info(f"Saved deposit address for user {record.user_id}")

    def get_by_user(self, user_id: int) -> Optional[DepositRecord]:
        """Look up the stored record of a user."""
        return self._fetch_one("user_id = ?", (user_id,))

    def get_by_address(self, address: str) -> Optional[DepositRecord]:
        """Look up the record owning a deposit address."""
        return self._fetch_one("address = ?", (address,))

    def delete(self, user_id: int) -> bool:
        """
        Delete a user's record.

        Returns:
            True if a row was removed
        """
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM deposit_addresses WHERE user_id = ?", (user_id,))
        return cursor.rowcount > 0

    def count(self) -> int:
        row = self._connection.execute("SELECT COUNT(*) FROM deposit_addresses").fetchone()
        return row[0]

    def _fetch_one(self, where: str, params: tuple) -> Optional[DepositRecord]:
        row = self._connection.execute(
            f"SELECT {COLUMNS} FROM deposit_addresses WHERE {where}",
            params
        ).fetchone()
        if row is None:
            return None

        data = dict(row)
        data["created_at"] = datetime.fromisoformat(data["created_at"])
        return DepositRecord(**data)
