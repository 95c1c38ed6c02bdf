"""
Document store used by the grading core.

Every collection is addressed by name and every document by a string id.
Documents are plain JSON dicts; the stored id is returned under ``"id"``.
No transactions: each write is independent and the last write wins.
"""
import copy
from functools import lru_cache
import logging
from threading import Lock
from typing import Dict, List, Optional

from app.core.exceptions import NotFoundError, StoreError

logger = logging.getLogger(__name__)


def _with_id(doc_id: str, data: dict) -> dict:
    doc = dict(data)
    doc["id"] = doc_id
    return doc


class DocumentStore:
    """Interface shared by the Supabase-backed and in-memory stores."""

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        raise NotImplementedError

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> dict:
        raise NotImplementedError

    def update(self, collection: str, doc_id: str, data: dict) -> dict:
        raise NotImplementedError

    def query(self, collection: str, **filters) -> List[dict]:
        raise NotImplementedError

    def delete(self, collection: str, doc_id: str) -> None:
        raise NotImplementedError


class SupabaseDocumentStore(DocumentStore):
    """
    Stores each collection as a Supabase table with two columns:
    ``id text primary key`` and ``data jsonb``.
    """

    def __init__(self, client):
        self.client = client

    def _row_to_doc(self, row: dict) -> dict:
        return _with_id(row["id"], row.get("data") or {})

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        try:
            result = self.client.table(collection).select("id, data").eq("id", doc_id).execute()
        except Exception as e:
            logger.error("Supabase get %s/%s failed: %s", collection, doc_id, e)
            raise StoreError(f"Failed to read {collection}/{doc_id}") from e
        if not result.data:
            return None
        return self._row_to_doc(result.data[0])

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> dict:
        payload = {k: v for k, v in data.items() if k != "id"}
        if merge:
            existing = self.get(collection, doc_id) or {}
            existing.pop("id", None)
            existing.update(payload)
            payload = existing
        try:
            self.client.table(collection).upsert({"id": doc_id, "data": payload}).execute()
        except Exception as e:
            logger.error("Supabase set %s/%s failed: %s", collection, doc_id, e)
            raise StoreError(f"Failed to write {collection}/{doc_id}") from e
        return _with_id(doc_id, payload)

    def update(self, collection: str, doc_id: str, data: dict) -> dict:
        if self.get(collection, doc_id) is None:
            raise NotFoundError(collection, doc_id)
        return self.set(collection, doc_id, data, merge=True)

    def query(self, collection: str, **filters) -> List[dict]:
        try:
            q = self.client.table(collection).select("id, data")
            for field, value in filters.items():
                # ->> extracts the JSON field as text
                q = q.eq(f"data->>{field}", str(value))
            result = q.execute()
        except Exception as e:
            logger.error("Supabase query %s %s failed: %s", collection, filters, e)
            raise StoreError(f"Failed to query {collection}") from e
        return [self._row_to_doc(row) for row in result.data]

    def delete(self, collection: str, doc_id: str) -> None:
        try:
            self.client.table(collection).delete().eq("id", doc_id).execute()
        except Exception as e:
            logger.error("Supabase delete %s/%s failed: %s", collection, doc_id, e)
            raise StoreError(f"Failed to delete {collection}/{doc_id}") from e


class MemoryDocumentStore(DocumentStore):
    """In-process store with the same contract. Not persistent; for dev/testing."""

    def __init__(self):
        self._lock = Lock()
        self._collections: Dict[str, Dict[str, dict]] = {}

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            data = self._collections.get(collection, {}).get(doc_id)
            if data is None:
                return None
            return _with_id(doc_id, copy.deepcopy(data))

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = False) -> dict:
        payload = copy.deepcopy({k: v for k, v in data.items() if k != "id"})
        with self._lock:
            docs = self._collections.setdefault(collection, {})
            if merge and doc_id in docs:
                merged = docs[doc_id]
                merged.update(payload)
                payload = merged
            docs[doc_id] = payload
            return _with_id(doc_id, copy.deepcopy(payload))

    def update(self, collection: str, doc_id: str, data: dict) -> dict:
        with self._lock:
            exists = doc_id in self._collections.get(collection, {})
        if not exists:
            raise NotFoundError(collection, doc_id)
        return self.set(collection, doc_id, data, merge=True)

    def query(self, collection: str, **filters) -> List[dict]:
        with self._lock:
            docs = self._collections.get(collection, {})
            return [
                _with_id(doc_id, copy.deepcopy(data))
                for doc_id, data in docs.items()
                if all(data.get(k) == v for k, v in filters.items())
            ]

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            self._collections.get(collection, {}).pop(doc_id, None)


@lru_cache(maxsize=1)
def get_store() -> DocumentStore:
    """Application-wide store; overridden in tests."""
    from app.db.supabase import get_supabase
    return SupabaseDocumentStore(get_supabase())
