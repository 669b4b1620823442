"""
Tests for the in-memory directory and the lock manager
"""

import pytest
import threading
from types import SimpleNamespace

from retail_banking.storage import (
    ACCOUNTS_TABLE, CUSTOMERS_TABLE, InMemoryStorage, LockManager
)


class TestInMemoryStorage:
    """Test directory operations"""

    def test_basic_operations(self):
        """Test insert, load, exists, find and count"""
        storage = InMemoryStorage()
        first = SimpleNamespace(customer_id="CUST0001", name="first")
        second = SimpleNamespace(customer_id="CUST0002", name="second")

        storage.insert(ACCOUNTS_TABLE, "ACCT00010000", first)
        storage.insert(ACCOUNTS_TABLE, "ACCT00010001", second)

        assert storage.load(ACCOUNTS_TABLE, "ACCT00010000") is first
        assert storage.load(ACCOUNTS_TABLE, "missing") is None
        assert storage.exists(ACCOUNTS_TABLE, "ACCT00010001")
        assert not storage.exists(CUSTOMERS_TABLE, "ACCT00010001")
        assert storage.find(ACCOUNTS_TABLE, customer_id="CUST0002") == [second]
        assert storage.count(ACCOUNTS_TABLE) == 2

    def test_duplicate_insert_rejected(self):
        storage = InMemoryStorage()
        storage.insert(ACCOUNTS_TABLE, "ACCT00010000", object())
        with pytest.raises(KeyError, match="Duplicate"):
            storage.insert(ACCOUNTS_TABLE, "ACCT00010000", object())

    def test_unknown_table(self):
        with pytest.raises(KeyError, match="Unknown table"):
            InMemoryStorage().load("ledgers", "x")

    def test_load_all_is_snapshot(self):
        storage = InMemoryStorage()
        storage.insert(ACCOUNTS_TABLE, "a", 1)
        snapshot = storage.load_all(ACCOUNTS_TABLE)
        storage.insert(ACCOUNTS_TABLE, "b", 2)
        assert snapshot == [1]

    def test_concurrent_inserts(self):
        storage = InMemoryStorage()

        def worker(prefix):
            for i in range(250):
                storage.insert(ACCOUNTS_TABLE, f"{prefix}-{i}", i)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert storage.count(ACCOUNTS_TABLE) == 1000


class TestLockManager:
    """Test keyed locks and canonical ordering"""

    def test_same_key_same_lock(self):
        locks = LockManager()
        assert locks.lock_for("ACCT00010000") is locks.lock_for("ACCT00010000")
        assert locks.lock_for("ACCT00010000") is not locks.lock_for("ACCT00010001")

    def test_canonical_order_ignores_call_order(self):
        assert LockManager.canonical_order("ACCT00010005", "ACCT00010002") == \
            ["ACCT00010002", "ACCT00010005"]
        assert LockManager.canonical_order("ACCT00010002", "ACCT00010005") == \
            ["ACCT00010002", "ACCT00010005"]

    def test_duplicate_keys_collapsed(self):
        locks = LockManager()
        with locks.acquire("A", "A") as held:
            assert held == ["A"]

    def test_acquire_releases_on_error(self):
        locks = LockManager()
        with pytest.raises(RuntimeError):
            with locks.acquire("A", "B"):
                raise RuntimeError("boom")

        # Another thread can take both locks afterwards
        acquired = []

        def worker():
            with locks.acquire("B", "A"):
                acquired.append(True)

        thread = threading.Thread(target=worker)
        thread.start()
        thread.join(timeout=5)
        assert acquired == [True]

    def test_reentrant(self):
        locks = LockManager()
        with locks.acquire("A"):
            with locks.acquire("A", "B") as held:
                assert held == ["A", "B"]

    def test_excludes_other_threads(self):
        locks = LockManager()
        entered = threading.Event()
        release = threading.Event()
        order = []

        def holder():
            with locks.acquire("A"):
                entered.set()
                release.wait(timeout=5)
                order.append("holder")

        def waiter():
            entered.wait(timeout=5)
            with locks.acquire("A"):
                order.append("waiter")

        threads = [threading.Thread(target=holder), threading.Thread(target=waiter)]
        for thread in threads:
            thread.start()
        entered.wait(timeout=5)
        release.set()
        for thread in threads:
            thread.join(timeout=5)

        assert order == ["holder", "waiter"]
