"""Seeding helpers for currency definitions.

``seed_currencies`` upserts records so the function can be safely re-run
after editing a seed file. The seed file is a JSON array of objects using
the ``CurrencyRecord`` field names.
"""

from __future__ import annotations
import json
from pathlib import Path
from typing import Iterable, List

from forexapi.models import CurrencyRecord

from .dal import Database
from .schema import init_db


def load_seed_file(path: Path) -> List[CurrencyRecord]:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError("seed file must contain a JSON array of currencies")
    # Rates are parsed as strings so 0.1 stays 0.1.
    return [
        CurrencyRecord(**{**item, "exchange_rate": str(item.get("exchange_rate", "0"))})
        for item in raw
    ]


def seed_currencies(db_path: Path, records: Iterable[CurrencyRecord]) -> int:
    init_db(db_path)  # ensure tables exist
    db = Database(db_path)
    count = 0
    for record in records:
        db.upsert_currency(record)
        count += 1
    return count
