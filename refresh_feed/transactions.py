"""Transaction rows shown in the feed, loaded from JSON or generated as samples."""

from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

SAMPLE_CATEGORIES = ("Groceries", "Rent", "Salary", "Transport", "Dining", "Utilities", "Health")


@dataclass
class Transaction:
    """A single ledger row; positive amounts are income, negative are expenses."""

    id: str
    description: str
    amount: float
    category: str
    date: str

    @property
    def is_income(self) -> bool:
        return self.amount > 0


def sample_transactions(count: int = 40, *, seed: Optional[int] = None, today: Optional[date] = None) -> List[Transaction]:
    """Generate plausible rows, newest first."""

    rng = random.Random(seed)
    today = today or date.today()
    rows: List[Transaction] = []
    for idx in range(count):
        category = rng.choice(SAMPLE_CATEGORIES)
        if category == "Salary":
            amount = round(rng.uniform(2500, 4200), 2)
        else:
            amount = -round(rng.uniform(4, 380), 2)
        day = today - timedelta(days=idx // 2)
        rows.append(Transaction(str(idx + 1), f"{category} #{idx + 1}", amount, category, day.isoformat()))
    return rows


def _decode_transaction(data: Dict[str, Any]) -> Optional[Transaction]:
    try:
        return Transaction(
            id=str(data["id"]),
            description=str(data.get("description", "")),
            amount=float(data["amount"]),
            category=str(data.get("category", "Uncategorized")),
            date=str(data.get("date", "")),
        )
    except (KeyError, TypeError, ValueError):
        return None


def load_transactions(path: Optional[Path]) -> List[Transaction]:
    """Read rows from ``path``; missing or unreadable files fall back to samples."""

    if path is None or not path.exists():
        return sample_transactions()
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError):
        logger.warning("Unreadable transactions file %s; showing samples", path)
        return sample_transactions()
    if not isinstance(data, list):
        return sample_transactions()

    rows = [_decode_transaction(item) for item in data if isinstance(item, dict)]
    decoded = [row for row in rows if row is not None]
    skipped = len(data) - len(decoded)
    if skipped:
        logger.info("Skipped %d malformed transaction rows in %s", skipped, path)
    return sorted(decoded, key=lambda row: row.date, reverse=True)


def balance(rows: List[Transaction]) -> float:
    return round(sum(row.amount for row in rows), 2)
