"""
Unit tests for the storage backends (each test runs on memory and SQL)
"""

import logging
from datetime import date, time

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import SQLModel, Session

from wasteapp.crud import SqlStore
from wasteapp.database import make_engine, init_db
from wasteapp.errors import Conflict, StoreFailure
from wasteapp.models import Bin


class TestUsers:

    def test_ids_are_increasing(self, store):
        a = store.create_user("a", "public")
        b = store.create_user("b", "worker")
        assert b.id > a.id

    def test_duplicate_username_conflicts(self, store):
        store.create_user("alice", "public")
        with pytest.raises(Conflict):
            store.create_user("alice", "public")

    def test_list_users_filters_by_role(self, store, users):
        names = [u.username for u in store.list_users(roles=("worker", "admin"))]
        assert names == ["admin", "bob", "carol"]

    def test_missing_user_is_none(self, store):
        assert store.get_user(999) is None
        assert store.get_user_by_username("ghost") is None


class TestBins:

    def test_create_defaults_and_update(self, store, users):
        b = store.create_bin(type="paper", latitude=1.0, longitude=2.0, created_by=users["bob"].id)
        assert b.status == "active"
        assert b.created_at is not None
        updated = store.update_bin(b.id, status="inactive")
        assert updated.status == "inactive"
        assert store.get_bin(b.id).status == "inactive"

    def test_list_by_status(self, store):
        first = store.create_bin(type="paper", latitude=1.0, longitude=2.0)
        second = store.create_bin(type="metal", latitude=1.0, longitude=2.0)
        store.update_bin(first.id, status="inactive")
        assert [b.id for b in store.list_bins(status="active")] == [second.id]
        assert [b.id for b in store.list_bins()] == [first.id, second.id]

    def test_update_missing_returns_none(self, store):
        assert store.update_bin(42, status="inactive") is None

    def test_returned_rows_are_detached(self, store):
        b = store.create_bin(type="paper", latitude=1.0, longitude=2.0)
        b.status = "full"
        assert store.get_bin(b.id).status == "active"


class TestComplaints:

    def test_newest_first_and_owner_filter(self, store, users):
        alice, dave = users["alice"], users["dave"]
        c1 = store.create_complaint(user_id=alice.id, title="t1", description="d")
        c2 = store.create_complaint(user_id=dave.id, title="t2", description="d")
        c3 = store.create_complaint(user_id=alice.id, title="t3", description="d")
        assert [c.id for c in store.list_complaints()] == [c3.id, c2.id, c1.id]
        assert [c.id for c in store.list_complaints(user_id=alice.id)] == [c3.id, c1.id]

    def test_defaults(self, store, users):
        c = store.create_complaint(user_id=users["alice"].id, title="t", description="d")
        assert c.status == "pending"
        assert c.priority == "medium"
        assert c.resolved_by is None


class TestSchedules:

    def _make(self, store, user, day, at, worker=None):
        return store.create_schedule(
            user_id=user.id,
            collection_date=day,
            collection_time=at,
            assigned_worker_id=worker.id if worker else None,
        )

    def test_ordered_by_date_then_time_descending(self, store, users):
        alice = users["alice"]
        early = self._make(store, alice, date(2025, 1, 1), time(9, 0))
        late_same_day = self._make(store, alice, date(2025, 1, 1), time(15, 30))
        next_day = self._make(store, alice, date(2025, 1, 2), time(8, 0))
        assert [s.id for s in store.list_schedules()] == [next_day.id, late_same_day.id, early.id]

    def test_round_trips_date_and_time(self, store, users):
        s = self._make(store, users["alice"], date(2025, 3, 4), time(7, 45))
        fetched = store.get_schedule(s.id)
        assert fetched.collection_date == date(2025, 3, 4)
        assert fetched.collection_time == time(7, 45)
        assert fetched.status == "scheduled"

    def test_owner_or_worker_union_without_duplicates(self, store, users):
        bob, alice = users["bob"], users["alice"]
        own = self._make(store, bob, date(2025, 1, 1), time(9, 0))
        assigned = self._make(store, alice, date(2025, 1, 2), time(9, 0), worker=bob)
        both = self._make(store, bob, date(2025, 1, 3), time(9, 0), worker=bob)
        self._make(store, alice, date(2025, 1, 4), time(9, 0))
        ids = [s.id for s in store.list_schedules(user_id=bob.id, worker_id=bob.id)]
        assert ids == [both.id, assigned.id, own.id]


class TestSqlStoreFailures:
    """Backend errors surface as StoreFailure, never as raw SQLAlchemy errors"""

    @pytest.fixture
    def sql_store(self):
        engine = make_engine("sqlite://")
        init_db(engine)
        return SqlStore(engine)

    def test_missing_table_raises_store_failure(self, sql_store, caplog):
        SQLModel.metadata.drop_all(sql_store.engine, tables=[Bin.__table__])
        with caplog.at_level(logging.ERROR, logger="wasteapp.crud"):
            with pytest.raises(StoreFailure) as excinfo:
                sql_store.list_bins()
        assert excinfo.value.message == "Database error"
        assert "Store operation failed" in caplog.text

    def test_failed_commit_raises_store_failure(self, sql_store, monkeypatch):
        def broken_commit(self):
            raise OperationalError("INSERT INTO bin", {}, Exception("disk I/O error"))

        monkeypatch.setattr(Session, "commit", broken_commit)
        with pytest.raises(StoreFailure):
            sql_store.create_bin(type="paper", latitude=1.0, longitude=2.0)
        monkeypatch.undo()
        assert sql_store.list_bins() == []

    def test_duplicate_username_maps_to_conflict(self, sql_store):
        sql_store.create_user("alice", "public")
        with pytest.raises(Conflict):
            sql_store.create_user("alice", "worker")
        assert [u.role for u in sql_store.list_users()] == ["public"]
