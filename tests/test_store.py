"""
Test: document stores and the grading session registry.
"""
from types import SimpleNamespace

import pytest

from app.core import session_cache
from app.core.exceptions import NotFoundError, StoreError
from app.db.store import MemoryDocumentStore, SupabaseDocumentStore


class FakeTable:
    """Records the builder calls a Supabase table query makes."""

    def __init__(self, rows, fail=False):
        self.rows = rows
        self.fail = fail
        self.filters = []
        self.upserts = []

    def select(self, columns):
        self.filters = []
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def upsert(self, row):
        self.upserts.append(row)
        return self

    def delete(self):
        return self

    def execute(self):
        if self.fail:
            raise ConnectionError("connection reset")
        data = self.rows
        for column, value in self.filters:
            if column == "id":
                data = [r for r in data if r["id"] == value]
            else:
                field = column.split("->>")[1]
                data = [r for r in data if str(r["data"].get(field)) == value]
        return SimpleNamespace(data=data)


class FakeClient:
    def __init__(self, table):
        self._table = table
        self.names = []

    def table(self, name):
        self.names.append(name)
        return self._table


class TestMemoryDocumentStore:
    def test_set_get_returns_copies_with_id(self):
        store = MemoryDocumentStore()
        store.set("activities", "a1", {"title": "Prova", "items": []})
        doc = store.get("activities", "a1")
        assert doc == {"id": "a1", "title": "Prova", "items": []}

        doc["items"].append("x")
        assert store.get("activities", "a1")["items"] == []

    def test_merge_keeps_unlisted_fields(self):
        store = MemoryDocumentStore()
        store.set("submissions", "s1", {"status": "Aguardando correção", "content": "{}"})
        store.set("submissions", "s1", {"status": "Corrigido", "grade": 8}, merge=True)
        assert store.get("submissions", "s1") == {
            "id": "s1", "status": "Corrigido", "grade": 8, "content": "{}",
        }

    def test_plain_set_replaces(self):
        store = MemoryDocumentStore()
        store.set("submissions", "s1", {"status": "Corrigido", "grade": 8})
        store.set("submissions", "s1", {"status": "Aguardando correção"})
        assert "grade" not in store.get("submissions", "s1")

    def test_update_requires_existing_document(self):
        with pytest.raises(NotFoundError):
            MemoryDocumentStore().update("activities", "missing", {"points": 1})

    def test_query_and_delete(self):
        store = MemoryDocumentStore()
        store.set("submissions", "s1", {"activity_id": "a1", "student_id": "x"})
        store.set("submissions", "s2", {"activity_id": "a2", "student_id": "x"})
        assert [d["id"] for d in store.query("submissions", activity_id="a1")] == ["s1"]

        store.delete("submissions", "s1")
        assert store.get("submissions", "s1") is None


class TestSupabaseDocumentStore:
    def test_get_and_query_read_jsonb_rows(self):
        table = FakeTable([
            {"id": "s1", "data": {"activity_id": "a1", "grade": 7}},
            {"id": "s2", "data": {"activity_id": "a2"}},
        ])
        store = SupabaseDocumentStore(FakeClient(table))

        assert store.get("submissions", "s1") == {"id": "s1", "activity_id": "a1", "grade": 7}
        assert store.get("submissions", "nope") is None
        assert [d["id"] for d in store.query("submissions", activity_id="a2")] == ["s2"]
        assert table.filters == [("data->>activity_id", "a2")]

    def test_merge_set_upserts_combined_document(self):
        table = FakeTable([{"id": "s1", "data": {"content": "{}", "status": "Aguardando correção"}}])
        store = SupabaseDocumentStore(FakeClient(table))

        stored = store.set("submissions", "s1", {"status": "Corrigido", "grade": 9}, merge=True)
        assert table.upserts == [{
            "id": "s1",
            "data": {"content": "{}", "status": "Corrigido", "grade": 9},
        }]
        assert stored["id"] == "s1"

    def test_failures_become_store_errors(self):
        store = SupabaseDocumentStore(FakeClient(FakeTable([], fail=True)))
        with pytest.raises(StoreError):
            store.get("activities", "a1")
        with pytest.raises(StoreError):
            store.set("activities", "a1", {"title": "x"})

    def test_update_missing_document(self):
        store = SupabaseDocumentStore(FakeClient(FakeTable([])))
        with pytest.raises(NotFoundError):
            store.update("activities", "a1", {"points": 2})


class TestSessionRegistry:
    def test_owner_only(self):
        token = session_cache.create_session("session", "teacher-1")
        assert session_cache.get_session(token, "teacher-1") == "session"
        assert session_cache.get_session(token, "teacher-2") is None

    def test_expired_sessions_are_dropped(self):
        token = session_cache.create_session("session", "teacher-1", ttl=-1)
        session_cache.clear_expired()
        assert session_cache.get_session(token, "teacher-1") is None
        assert session_cache.active_count() == 0

    def test_invalidate(self):
        token = session_cache.create_session("session", "teacher-1")
        session_cache.invalidate_session(token)
        assert session_cache.get_session(token, "teacher-1") is None
