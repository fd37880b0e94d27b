from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from forexapi.db.dal import Database, row_to_record
from forexapi.models import CurrencyRecord


def _sort_key(record: CurrencyRecord):
    return (record.name, record.code)


class InMemoryCurrencyRegistry:
    """Registry over a fixed set of records (tests, offline demos)."""

    def __init__(self, records: Iterable[CurrencyRecord] = ()):
        self._records: Dict[str, CurrencyRecord] = {}
        for record in records:
            self.add(record)

    def add(self, record: CurrencyRecord) -> None:
        self._records[record.code] = record

    def lookup(self, code: str) -> Optional[CurrencyRecord]:
        return self._records.get(code.strip().upper())

    def list_all(self) -> List[CurrencyRecord]:
        return sorted(self._records.values(), key=_sort_key)

    def list_all_except(self, code: str) -> List[CurrencyRecord]:
        code = code.strip().upper()
        return [r for r in self.list_all() if r.code != code]


class SqliteCurrencyRegistry:
    """Registry backed by the ``currencies`` table."""

    def __init__(self, db: Database):
        self._db = db

    def lookup(self, code: str) -> Optional[CurrencyRecord]:
        row = self._db.get_currency(code)
        return row_to_record(row) if row else None

    def list_all(self) -> List[CurrencyRecord]:
        return [row_to_record(r) for r in self._db.list_currencies()]

    def list_all_except(self, code: str) -> List[CurrencyRecord]:
        return [row_to_record(r) for r in self._db.list_currencies_except(code)]
