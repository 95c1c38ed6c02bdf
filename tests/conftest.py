"""
Shared test fixtures.

Every test runs against a fresh ``MemoryDocumentStore`` and a scripted AI
grader. Zero network calls.
"""
import os

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")

import pytest
from fastapi.testclient import TestClient

from app.core import session_cache
from app.core.dependencies import get_ai_grader
from app.db.store import MemoryDocumentStore, get_store
from app.main import app
from tests.factories import ADMIN, CLASS_ID, OTHER_TEACHER, STUDENTS, TEACHER, ScriptedGrader


@pytest.fixture
def store():
    s = MemoryDocumentStore()
    for profile in [TEACHER, OTHER_TEACHER, ADMIN] + STUDENTS:
        s.set("profiles", profile["id"], profile)
    s.set("classes", CLASS_ID, {
        "name": "9º Ano A",
        "teacher_id": TEACHER["id"],
        "student_ids": [st["id"] for st in STUDENTS],
    })
    return s


@pytest.fixture
def grader():
    return ScriptedGrader()


@pytest.fixture(autouse=True)
def _clean_sessions():
    yield
    with session_cache._lock:
        session_cache._sessions.clear()


@pytest.fixture
def client(store, grader):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_ai_grader] = lambda: grader
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
