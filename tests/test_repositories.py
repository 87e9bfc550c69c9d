import sqlite3
from datetime import datetime, timezone

import pytest

from todo_api.errors import StoreError
from todo_api.repositories import SQLiteRepository
from todo_api.schemas import TodoCreate, TodoPatch


@pytest.fixture
def repo(db_conn):
    return SQLiteRepository(db_conn)


@pytest.fixture
def owners(directory):
    a = directory.create_user(name="Owner A", email="a@example.com")
    b = directory.create_user(name="Owner B", email="b@example.com")
    return a["id"], b["id"]


def insert_raw(db_conn, owner_id, title, completed, created_at, updated_at):
    with db_conn:
        cur = db_conn.execute(
            "INSERT INTO todo (title, completed, owner_id, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
            (title, completed, owner_id, created_at, updated_at),
        )
    return cur.lastrowid


class InterleavedWriteRepository(SQLiteRepository):
    """Lets a second connection try to rename the todo right after update reads it."""

    def __init__(self, conn, other):
        super().__init__(conn)
        self.other = other
        self.interleaved = None

    def _select_owned(self, owner_id, todo_id):
        row = super()._select_owned(owner_id, todo_id)
        if row is not None and self.interleaved is None:
            try:
                with self.other:
                    self.other.execute("UPDATE todo SET title = ? WHERE id = ?", ("concurrent", todo_id))
                self.interleaved = "committed"
            except sqlite3.OperationalError:
                self.interleaved = "blocked"
        return row

class TestSQLiteRepository:
    def test_create_defaults(self, repo, owners):
        a, _ = owners
        todo = repo.create(a, TodoCreate(title="Buy milk"))
        assert todo["title"] == "Buy milk"
        assert todo["completed"] is False
        assert todo["owner_id"] == a
        assert todo["created_at"] == todo["updated_at"]
        assert todo["created_at"].tzinfo is not None

    def test_single_item_access_is_owner_scoped(self, repo, owners):
        a, b = owners
        todo = repo.create(a, TodoCreate(title="Private"))

        assert repo.get(b, todo["id"]) is None
        assert repo.update(b, todo["id"], TodoPatch(title="Hijacked")) is None
        assert repo.delete(b, todo["id"]) is False
        assert repo.get(a, todo["id"])["title"] == "Private"

    def test_list_for_owner(self, repo, owners):
        a, b = owners
        mine = [repo.create(a, TodoCreate(title=f"A{i}")) for i in range(3)]
        repo.create(b, TodoCreate(title="B"))
        listed = repo.list_for_owner(a)
        assert {t["id"] for t in listed} == {t["id"] for t in mine}
        assert all(t["owner_id"] == a for t in listed)

    def test_list_orders_by_created_at_desc(self, db_conn, repo, owners):
        a, _ = owners
        old = insert_raw(db_conn, a, "old", 0, "2024-01-01T00:00:00.000000Z", "2024-01-01T00:00:00.000000Z")
        new = insert_raw(db_conn, a, "new", 0, "2024-03-01T00:00:00.000000Z", "2024-03-01T00:00:00.000000Z")
        mid = insert_raw(db_conn, a, "mid", 0, "2024-02-01T00:00:00.000000Z", "2024-02-01T00:00:00.000000Z")
        assert [t["id"] for t in repo.list_for_owner(a)] == [new, mid, old]

    def test_update_applies_only_supplied_fields(self, repo, owners):
        a, _ = owners
        todo = repo.create(a, TodoCreate(title="Original"))

        updated = repo.update(a, todo["id"], TodoPatch(completed=True))
        assert updated["title"] == "Original"
        assert updated["completed"] is True
        assert updated["updated_at"] > todo["updated_at"]
        assert updated["created_at"] == todo["created_at"]
        assert repo.get(a, todo["id"]) == updated

    def test_delete(self, repo, owners):
        a, _ = owners
        todo = repo.create(a, TodoCreate(title="Gone"))
        assert repo.delete(a, todo["id"]) is True
        assert repo.get(a, todo["id"]) is None
        assert repo.delete(a, todo["id"]) is False

    def test_rows_are_normalized(self, db_conn, repo, owners):
        a, _ = owners
        todo_id = insert_raw(db_conn, a, "Legacy", "1", "2024-01-01 10:00:00", "2024-01-02T09:30:00+02:00")
        todo = repo.get(a, todo_id)
        assert todo["completed"] is True
        assert todo["created_at"] == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
        assert todo["updated_at"] == datetime(2024, 1, 2, 7, 30, tzinfo=timezone.utc)

    def test_update_writes_only_supplied_fields(self, db_conn, repo, owners, app):
        a, _ = owners
        todo = repo.create(a, TodoCreate(title="orig"))
        other = sqlite3.connect(app.state.database.path, timeout=0)
        try:
            with other:
                other.execute("UPDATE todo SET title = ? WHERE id = ?", ("renamed elsewhere", todo["id"]))
            updated = repo.update(a, todo["id"], TodoPatch(completed=True))
        finally:
            other.close()
        assert updated["title"] == "renamed elsewhere"
        assert updated["completed"] is True

    def test_update_holds_write_lock_while_reading(self, db_conn, repo, owners, app):
        a, _ = owners
        todo = repo.create(a, TodoCreate(title="orig"))
        other = sqlite3.connect(app.state.database.path, timeout=0)
        interleaved = InterleavedWriteRepository(db_conn, other)
        try:
            updated = interleaved.update(a, todo["id"], TodoPatch(completed=True))
        finally:
            other.close()
        # The other writer could not slip in between the read and the write
        assert interleaved.interleaved == "blocked"
        assert updated["title"] == "orig"
        assert updated["completed"] is True
        assert repo.get(a, todo["id"])["title"] == "orig"

    def test_out_of_range_ids_are_missing(self, repo, owners):
        a, _ = owners
        for todo_id in (2**63, -(2**63) - 1):
            assert repo.get(a, todo_id) is None
            assert repo.update(a, todo_id, TodoPatch(completed=True)) is None
            assert repo.delete(a, todo_id) is False

    def test_store_failures_raise_store_error(self, db_conn, repo, owners):
        a, _ = owners
        db_conn.close()
        with pytest.raises(StoreError):
            repo.list_for_owner(a)
        with pytest.raises(StoreError):
            repo.create(a, TodoCreate(title="x"))
        with pytest.raises(StoreError):
            repo.delete(a, 1)

    def test_unknown_owner_violates_foreign_key(self, repo):
        with pytest.raises(StoreError):
            repo.create("no-such-user", TodoCreate(title="Orphan"))


class TestTodoPatch:
    def test_changes_only_include_supplied_fields(self):
        assert TodoPatch(completed=False).changes() == {"completed": False}
        assert TodoPatch(title="New").changes() == {"title": "New"}
        assert TodoPatch().changes() == {}

    def test_explicit_null_is_ignored(self):
        assert TodoPatch.model_validate({"title": None, "completed": True}).changes() == {"completed": True}

    def test_unknown_fields_are_dropped(self):
        patch = TodoPatch.model_validate({"completed": True, "owner_id": "someone-else"})
        assert patch.changes() == {"completed": True}
