"""
Storage Module

Process-wide directory of customers, accounts and loans plus the explicit
lock manager that serializes mutations of individual entities.

The directory keeps live objects in memory. Reads are plain dict lookups
and never block; inserts are serialized. It offers no transaction spanning
several entities: multi-account operations coordinate through LockManager.
"""

import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional


CUSTOMERS_TABLE = "customers"
ACCOUNTS_TABLE = "accounts"
LOANS_TABLE = "loans"


class InMemoryStorage:
    """In-memory entity directory"""

    def __init__(self, tables=(CUSTOMERS_TABLE, ACCOUNTS_TABLE, LOANS_TABLE)):
        self._data: Dict[str, Dict[str, Any]] = {table: {} for table in tables}
        self._lock = threading.RLock()

    def _table(self, table: str) -> Dict[str, Any]:
        try:
            return self._data[table]
        except KeyError:
            raise KeyError(f"Unknown table: {table}")

    def insert(self, table: str, record_id: str, record: Any) -> None:
        """Insert a new record; ids are never overwritten"""
        with self._lock:
            records = self._table(table)
            if record_id in records:
                raise KeyError(f"Duplicate id in {table}: {record_id}")
            records[record_id] = record

    def load(self, table: str, record_id: str) -> Optional[Any]:
        """Load a record by id"""
        return self._table(table).get(record_id)

    def load_all(self, table: str) -> List[Any]:
        """Snapshot of every record in a table"""
        with self._lock:
            return list(self._table(table).values())

    def find(self, table: str, **filters: Any) -> List[Any]:
        """Find records whose attributes equal the given values"""
        return [
            record for record in self.load_all(table)
            if all(getattr(record, key, None) == value for key, value in filters.items())
        ]

    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        return record_id in self._table(table)

    def count(self, table: str) -> int:
        """Count records in table"""
        return len(self._table(table))


class LockManager:
    """
    Exclusive locks keyed by entity id.

    Multi-entity callers must go through acquire(), which always takes the
    locks in sorted id order so two opposite transfers cannot deadlock.
    """

    def __init__(self):
        self._locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def lock_for(self, key: str) -> threading.RLock:
        """Get (creating on first use) the lock for an id"""
        lock = self._locks.get(key)
        if lock is None:
            with self._guard:
                lock = self._locks.setdefault(key, threading.RLock())
        return lock

    @staticmethod
    def canonical_order(*keys: str) -> List[str]:
        """Distinct keys in the order their locks must be taken"""
        return sorted(set(keys))

    @contextmanager
    def acquire(self, *keys: str) -> Iterator[List[str]]:
        """Hold the locks of every key for the duration of the block"""
        ordered = self.canonical_order(*keys)
        held: List[threading.RLock] = []
        try:
            for key in ordered:
                lock = self.lock_for(key)
                lock.acquire()
                held.append(lock)
            yield ordered
        finally:
            for lock in reversed(held):
                lock.release()
