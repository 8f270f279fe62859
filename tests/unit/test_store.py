"""Tests for the record store."""

import json
from pathlib import Path

import pytest
from pydantic import TypeAdapter

from stepwright.config import StoreConfig
from stepwright.exceptions import StorageQuotaError
from stepwright.models import Project, Workflow
from stepwright.store import Collection, JsonFileBackend, MemoryBackend, Storage


def _projects(backend, max_bytes=None) -> Collection[list[Project]]:
    return Collection(backend, "projects-data", TypeAdapter(list[Project]), list, max_bytes)


class TestCollection:
    """Tests for Collection get/mutate."""

    def test_missing_record_loads_default(self) -> None:
        assert _projects(MemoryBackend()).get() == []

    def test_mutate_persists_whole_document(self) -> None:
        backend = MemoryBackend()
        collection = _projects(backend)

        collection.mutate(lambda items: [*items, Project(id="p1", title="One")])

        stored = json.loads(backend.records["projects-data"])
        assert stored == [{"id": "p1", "title": "One", "description": "", "workflows": []}]

    def test_get_returns_a_copy(self) -> None:
        """Test mutating a returned value does not change the store."""
        collection = _projects(MemoryBackend())
        collection.mutate(lambda items: [Project(id="p1", title="One")])

        value = collection.get()
        value[0].title = "changed"
        value.append(Project(id="p2", title="Two"))

        assert [p.title for p in collection.get()] == ["One"]

    def test_camel_case_keys(self) -> None:
        backend = MemoryBackend()
        collection = _projects(backend)
        workflow = Workflow(id="w1", project_id="p1", title="W")

        collection.mutate(lambda _: [Project(id="p1", title="P", workflows=[workflow])])

        stored = json.loads(backend.records["projects-data"])
        assert stored[0]["workflows"][0]["projectId"] == "p1"
        assert stored[0]["workflows"][0]["version"] == 1

    def test_legacy_workflow_without_version(self) -> None:
        """Test records written before versioning load as version 1."""
        legacy = [
            {
                "id": "p1",
                "title": "P",
                "workflows": [{"id": "w1", "projectId": "p1", "title": "W", "tasks": []}],
            }
        ]
        backend = MemoryBackend({"projects-data": json.dumps(legacy)})

        assert _projects(backend).get()[0].workflows[0].version == 1

    def test_corrupt_record_loads_default(self) -> None:
        backend = MemoryBackend({"projects-data": "{not json"})

        assert _projects(backend).get() == []

    def test_quota_refuses_write(self) -> None:
        """Test an oversized record raises and leaves the store untouched."""
        backend = MemoryBackend()
        collection = _projects(backend, max_bytes=200)
        collection.mutate(lambda _: [Project(id="p1", title="small")])

        with pytest.raises(StorageQuotaError) as exc_info:
            collection.mutate(lambda items: [*items, Project(id="p2", title="x" * 500)])

        assert exc_info.value.key == "projects-data"
        assert exc_info.value.size_bytes > 200
        assert "MB" in str(exc_info.value)
        assert [p.id for p in collection.get()] == ["p1"]
        assert "p2" not in backend.records["projects-data"]

    def test_failed_transform_writes_nothing(self) -> None:
        backend = MemoryBackend()
        collection = _projects(backend)

        def boom(items):
            raise KeyError("nope")

        with pytest.raises(KeyError):
            collection.mutate(boom)

        assert "projects-data" not in backend.records

    def test_reload(self) -> None:
        backend = MemoryBackend()
        collection = _projects(backend)
        collection.get()
        backend.records["projects-data"] = json.dumps([{"id": "p9", "title": "External"}])

        assert collection.get() == []
        assert collection.reload()[0].id == "p9"


class TestJsonFileBackend:
    """Tests for file persistence."""

    def test_round_trip(self, tmp_path: Path) -> None:
        backend = JsonFileBackend(tmp_path)

        backend.write("projects-data", "[]")

        assert (tmp_path / "projects-data.json").read_text(encoding="utf-8") == "[]"
        assert backend.read("projects-data") == "[]"
        assert backend.read("missing") is None

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        backend = JsonFileBackend(tmp_path)
        backend.write("a", "1")
        backend.write("a", "2")

        assert sorted(p.name for p in tmp_path.iterdir()) == ["a.json"]

    def test_undecodable_file_loads_default(self, tmp_path: Path) -> None:
        """Test a record file that is not UTF-8 loads as the default."""
        (tmp_path / "projects-data.json").write_bytes(b"\xff\xfe\x00garbage")
        collection = _projects(JsonFileBackend(tmp_path))

        assert collection.get() == []

        collection.mutate(lambda projects: [*projects, Project(id="p1", title="Fresh")])
        saved = json.loads((tmp_path / "projects-data.json").read_text(encoding="utf-8"))
        assert saved[0]["id"] == "p1"


class TestStorage:
    """Tests for the collection bundle."""

    def test_from_config_uses_data_dir(self, data_dir: Path) -> None:
        storage = Storage.from_config(StoreConfig())
        storage.projects.mutate(lambda _: [Project(id="p1", title="P")])

        assert (data_dir / "projects-data.json").exists()
        reopened = Storage.from_config(StoreConfig())
        assert reopened.projects.get()[0].id == "p1"

    def test_knowledge_defaults(self, storage: Storage) -> None:
        assert [item.id for item in storage.knowledge.get()] == ["kb-1", "kb-2"]

    def test_collections_are_independent(self, storage: Storage) -> None:
        storage.projects.mutate(lambda _: [Project(id="p1", title="P")])

        assert storage.executions.get() == []
