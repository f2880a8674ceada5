"""
SQLite row sink for extracted expenses.
"""

import sqlite3
from pathlib import Path
from typing import List, Sequence

from .reporting import check_columns


class SqliteExpenseSink:
    """Stores expense rows in an `expenses` table."""

    def __init__(self, sqlite_path: Path):
        self.sqlite_path = Path(sqlite_path)
        self._init_db()

    def _init_db(self):
        with sqlite3.connect(self.sqlite_path.as_posix()) as conn:
            cur = conn.cursor()
            cur.execute("""
            CREATE TABLE IF NOT EXISTS expenses (
                id INTEGER PRIMARY KEY,
                date TEXT,
                description TEXT,
                amount TEXT,
                currency TEXT,
                category TEXT,
                method TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """)
            conn.commit()

    def append(self, columns: Sequence[str]):
        row = check_columns(columns)
        with sqlite3.connect(self.sqlite_path.as_posix()) as conn:
            cur = conn.cursor()
            cur.execute("""
            INSERT INTO expenses (date, description, amount, currency, category, method)
            VALUES (?,?,?,?,?,?)
            """, row)
            conn.commit()

    def rows(self) -> List[List[str]]:
        """All stored rows in insertion order."""
        with sqlite3.connect(self.sqlite_path.as_posix()) as conn:
            cur = conn.cursor()
            cur.execute("""
                SELECT date, description, amount, currency, category, method
                FROM expenses ORDER BY id
            """)
            return [list(r) for r in cur.fetchall()]

    def count(self) -> int:
        with sqlite3.connect(self.sqlite_path.as_posix()) as conn:
            return conn.execute("SELECT COUNT(*) FROM expenses").fetchone()[0]
