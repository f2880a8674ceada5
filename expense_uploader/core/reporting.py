"""
CSV row sink for extracted expenses.
"""

import csv
from pathlib import Path
from typing import List, Sequence

from .utils import EXPENSE_COLUMNS


def check_columns(columns: Sequence[str]) -> List[str]:
    """Validate a row against the expense schema."""
    if len(columns) != len(EXPENSE_COLUMNS):
        raise ValueError(
            f"Expected {len(EXPENSE_COLUMNS)} columns ({', '.join(EXPENSE_COLUMNS)}), got {len(columns)}")
    return ["" if c is None else str(c) for c in columns]


class CsvExpenseSink:
    """Appends expense rows to a CSV file, writing the header once."""

    def __init__(self, out_csv: Path):
        self.out_csv = Path(out_csv)

    def append(self, columns: Sequence[str]):
        row = check_columns(columns)
        write_header = not self.out_csv.exists() or self.out_csv.stat().st_size == 0
        self.out_csv.parent.mkdir(parents=True, exist_ok=True)
        with self.out_csv.open("a", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            if write_header:
                w.writerow(EXPENSE_COLUMNS)
            w.writerow(row)

    def rows(self) -> List[List[str]]:
        """Read back all data rows (header excluded)."""
        if not self.out_csv.exists():
            return []
        with self.out_csv.open("r", newline="", encoding="utf-8") as f:
            return list(csv.reader(f))[1:]
