"""Tests for the document repository base class."""
from dataclasses import dataclass
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import psycopg2
import pytest

from safeguard.shared.database import (
    DocumentRepository,
    DuplicateError,
    RepositoryError,
)

NOW = datetime(2026, 3, 10, 12, 0, 0)


@dataclass(frozen=True)
class Note:
    note_id: str
    user_id: str
    text: str
    created_at: datetime = NOW


class NoteRepository(DocumentRepository[Note]):
    table_name = "notes"

    def _key(self, entity):
        return entity.note_id

    def _user_id(self, entity):
        return entity.user_id

    def _created_at(self, entity):
        return entity.created_at

    def _to_document(self, entity):
        return {
            "noteId": entity.note_id,
            "userId": entity.user_id,
            "text": entity.text,
            "createdAt": entity.created_at.isoformat(),
        }

    def _from_document(self, document):
        return Note(
            note_id=document["noteId"],
            user_id=document["userId"],
            text=document["text"],
            created_at=datetime.fromisoformat(document["createdAt"]),
        )


def note(note_id, user_id="user_1", hours_ago=0, text="hello"):
    return Note(note_id, user_id, text, NOW - timedelta(hours=hours_ago))


class TestMemoryStore:
    @pytest.fixture
    def repo(self):
        return NoteRepository()

    def test_put_and_get(self, repo):
        repo.put(note("n1"))

        assert repo.get("n1") == note("n1")
        assert repo.get("missing") is None

    def test_put_replaces(self, repo):
        repo.put(note("n1", text="first"))
        repo.put(note("n1", text="second"))

        assert repo.get("n1").text == "second"

    def test_insert_duplicate_raises(self, repo):
        repo.insert(note("n1"))

        with pytest.raises(DuplicateError):
            repo.insert(note("n1"))

    def test_remove(self, repo):
        repo.put(note("n1"))

        assert repo.remove("n1") is True
        assert repo.remove("n1") is False
        assert repo.get("n1") is None

    def test_find_newest_first_with_filters(self, repo):
        repo.put(note("old", hours_ago=48))
        repo.put(note("new", hours_ago=1))
        repo.put(note("mid", hours_ago=10))
        repo.put(note("other", user_id="user_2"))

        assert [n.note_id for n in repo.find(user_id="user_1")] == ["new", "mid", "old"]
        assert [n.note_id for n in repo.find(
            user_id="user_1", since=NOW - timedelta(hours=12)
        )] == ["new", "mid"]
        assert [n.note_id for n in repo.find(until=NOW - timedelta(hours=5))] == ["mid", "old"]

    def test_find_with_predicate(self, repo):
        repo.put(note("n1", text="keep"))
        repo.put(note("n2", text="drop"))

        assert [n.note_id for n in repo.find(predicate=lambda n: n.text == "keep")] == ["n1"]

    def test_malformed_document_raises_repository_error(self, repo):
        repo._memory_store["bad"] = ("user_1", NOW, {"noteId": "bad"})

        with pytest.raises(RepositoryError):
            repo.get("bad")


class TestPostgresStore:
    @pytest.fixture
    def cursor(self):
        return MagicMock()

    @pytest.fixture
    def repo(self, cursor):
        conn = MagicMock()
        conn.cursor.return_value.__enter__.return_value = cursor
        manager = MagicMock()
        manager.get_connection.return_value.__enter__.return_value = conn
        return NoteRepository(manager)

    def test_get_decodes_row(self, repo, cursor):
        cursor.fetchall.return_value = [(NoteRepository()._to_document(note("n1")),)]

        assert repo.get("n1") == note("n1")
        query, params = cursor.execute.call_args.args
        assert "FROM notes WHERE key = %s" in query
        assert params == ("n1",)

    def test_insert_conflict_raises_duplicate(self, repo, cursor):
        cursor.rowcount = 0

        with pytest.raises(DuplicateError):
            repo.insert(note("n1"))

    def test_find_builds_filters(self, repo, cursor):
        cursor.fetchall.return_value = []
        since = NOW - timedelta(days=1)

        repo.find(user_id="user_1", since=since)

        query, params = cursor.execute.call_args.args
        assert "user_id = %s" in query
        assert "created_at >= %s" in query
        assert query.strip().endswith("ORDER BY created_at DESC")
        assert params == ("user_1", since)

    def test_driver_error_wrapped(self, repo, cursor):
        cursor.execute.side_effect = psycopg2.OperationalError("server closed the connection")

        with pytest.raises(RepositoryError, match="server closed"):
            repo.get("n1")
