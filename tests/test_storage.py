"""Tests for the document store and object storage backends."""

from pathlib import Path

import pytest

from src.storage.document_store import (
    Condition,
    DocumentStoreError,
    InMemoryDocumentStore,
)
from src.storage.object_store import (
    InMemoryObjectStorage,
    LocalObjectStorage,
    ObjectStorageError,
    create_object_storage,
)
from src.utils.config import StorageConfig


class TestCondition:
    """Tests for query conditions."""

    def test_equality(self) -> None:
        cond = Condition("ownerId", "==", "u1")
        assert cond.matches({"ownerId": "u1"})
        assert not cond.matches({"ownerId": "u2"})
        assert not cond.matches({})

    def test_array_contains(self) -> None:
        cond = Condition("tags", "array-contains", "id")
        assert cond.matches({"tags": ["id", "travel"]})
        assert not cond.matches({"tags": ["travel"]})
        assert not cond.matches({"tags": "id"})

    def test_unsupported_operator(self) -> None:
        with pytest.raises(ValueError):
            Condition("name", ">", "a")


class TestInMemoryDocumentStore:
    """Tests for the in-memory record store."""

    def setup_method(self) -> None:
        self.store = InMemoryDocumentStore()

    def test_create_and_get(self) -> None:
        self.store.create("documents", "d1", {"id": "d1", "name": "Passport"})
        assert self.store.get("documents", "d1") == {"id": "d1", "name": "Passport"}
        assert self.store.get("documents", "missing") is None

    def test_duplicate_id_rejected(self) -> None:
        self.store.create("documents", "d1", {"id": "d1"})
        with pytest.raises(DocumentStoreError):
            self.store.create("documents", "d1", {"id": "d1"})

    def test_records_are_copied(self) -> None:
        data = {"id": "d1", "tags": ["a"]}
        self.store.create("documents", "d1", data)
        data["tags"].append("b")
        fetched = self.store.get("documents", "d1")
        fetched["tags"].append("c")
        assert self.store.get("documents", "d1")["tags"] == ["a"]

    def test_query_with_conditions(self) -> None:
        self.store.create("documents", "d1", {"ownerId": "u1", "tags": ["id"]})
        self.store.create("documents", "d2", {"ownerId": "u1", "tags": []})
        self.store.create("documents", "d3", {"ownerId": "u2", "tags": ["id"]})

        owned = self.store.query("documents", [Condition("ownerId", "==", "u1")])
        assert len(owned) == 2
        tagged = self.store.query(
            "documents",
            [Condition("ownerId", "==", "u1"), Condition("tags", "array-contains", "id")],
        )
        assert len(tagged) == 1
        assert len(self.store.query("documents")) == 3

    def test_collections_are_separate(self) -> None:
        self.store.create("documents", "x", {"kind": "doc"})
        self.store.create("notifications", "x", {"kind": "note"})
        assert self.store.count("documents") == 1
        assert self.store.get("notifications", "x") == {"kind": "note"}

    def test_update_merges(self) -> None:
        self.store.create("documents", "d1", {"name": "a", "notes": "n"})
        updated = self.store.update("documents", "d1", {"name": "b"})
        assert updated == {"name": "b", "notes": "n"}

    def test_update_missing(self) -> None:
        with pytest.raises(DocumentStoreError):
            self.store.update("documents", "missing", {"name": "b"})

    def test_delete_is_idempotent(self) -> None:
        self.store.create("documents", "d1", {})
        self.store.delete("documents", "d1")
        self.store.delete("documents", "d1")
        assert self.store.count("documents") == 0


class TestInMemoryObjectStorage:
    """Tests for the dict-backed object store."""

    def test_put_get_delete(self) -> None:
        storage = InMemoryObjectStorage(bucket="b")
        url = storage.put("u1/doc.jpg", b"data", "image/jpeg", {"ownerId": "u1"})
        assert url == "memory://b/u1/doc.jpg"

        obj = storage.get("u1/doc.jpg")
        assert obj.content == b"data"
        assert obj.metadata == {"ownerId": "u1"}

        storage.delete("u1/doc.jpg")
        assert "u1/doc.jpg" not in storage

    def test_missing_object(self) -> None:
        storage = InMemoryObjectStorage()
        with pytest.raises(ObjectStorageError):
            storage.get("nope")
        with pytest.raises(ObjectStorageError):
            storage.delete("nope")


class TestLocalObjectStorage:
    """Tests for the filesystem object store."""

    def test_roundtrip(self, tmp_path: Path) -> None:
        storage = LocalObjectStorage(tmp_path, "http://files.test/")
        url = storage.put("u1/doc.pdf", b"%PDF", "application/pdf")
        assert url == "http://files.test/u1/doc.pdf"
        assert (tmp_path / "u1" / "doc.pdf").read_bytes() == b"%PDF"

        obj = storage.get("u1/doc.pdf")
        assert obj.content_type == "application/pdf"

        storage.delete("u1/doc.pdf")
        assert not (tmp_path / "u1" / "doc.pdf").exists()
        assert not (tmp_path / "u1" / "doc.pdf.type").exists()

    def test_missing_object(self, tmp_path: Path) -> None:
        storage = LocalObjectStorage(tmp_path, "http://files.test")
        with pytest.raises(ObjectStorageError):
            storage.get("u1/none.jpg")
        with pytest.raises(ObjectStorageError):
            storage.delete("u1/none.jpg")

    def test_path_escape_rejected(self, tmp_path: Path) -> None:
        storage = LocalObjectStorage(tmp_path / "root", "http://files.test")
        with pytest.raises(ObjectStorageError):
            storage.put("../outside.jpg", b"x", "image/jpeg")


class TestCreateObjectStorage:
    def test_memory(self) -> None:
        storage = create_object_storage(StorageConfig(backend="memory"))
        assert isinstance(storage, InMemoryObjectStorage)

    def test_local(self, tmp_path: Path) -> None:
        storage = create_object_storage(StorageConfig(backend="local", root_dir=str(tmp_path)))
        assert isinstance(storage, LocalObjectStorage)

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValueError):
            create_object_storage(StorageConfig(backend="s3"))
