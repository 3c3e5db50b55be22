import json
from pathlib import Path

import pytest

from backend.src.models.document import Document, DocumentVersion
from backend.src.services.config import AppConfig
from backend.src.services.index_store import IndexStore


@pytest.fixture
def vault_config(tmp_path: Path) -> AppConfig:
    return AppConfig(vault_path=tmp_path / "vault")


@pytest.fixture
def store(vault_config: AppConfig) -> IndexStore:
    return IndexStore(vault_config)


def test_read_returns_default_for_missing_or_corrupt_file(store: IndexStore, tmp_path: Path) -> None:
    missing = tmp_path / "missing.json"
    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{not json", encoding="utf-8")

    assert store.read(missing, []) == []
    assert store.read(corrupt, {"fallback": True}) == {"fallback": True}


def test_write_is_pretty_printed_and_leaves_no_temp_files(store: IndexStore, tmp_path: Path) -> None:
    target = tmp_path / "nested" / "data.json"

    store.write(target, [{"name": "Café"}])

    text = target.read_text(encoding="utf-8")
    assert text == '[\n  {\n    "name": "Café"\n  }\n]\n'
    assert [path.name for path in target.parent.iterdir()] == ["data.json"]


def test_write_if_changed_skips_identical_content(store: IndexStore, tmp_path: Path) -> None:
    target = tmp_path / "data.json"

    assert store.write_if_changed(target, [1, 2]) is True
    first_mtime = target.stat().st_mtime_ns
    assert store.write_if_changed(target, [1, 2]) is False
    assert target.stat().st_mtime_ns == first_mtime
    assert store.write_if_changed(target, [1, 2, 3]) is True


def test_documents_round_trip_through_index(store: IndexStore, vault_config: AppConfig) -> None:
    document = Document(
        id="doc-1",
        name="Plan",
        content="body",
        folder_id="folder-1",
        versions=[DocumentVersion(id="version-1", content="old body")],
    )

    store.write_documents([document])

    raw = json.loads(vault_config.documents_index_path.read_text(encoding="utf-8"))
    assert raw[0]["folderId"] == "folder-1"
    assert raw[0]["versions"][0]["content"] == ""
    loaded = store.read_documents()
    assert [doc.id for doc in loaded] == ["doc-1"]
    assert loaded[0].folder_id == "folder-1"


def test_invalid_index_entries_are_skipped(store: IndexStore, vault_config: AppConfig) -> None:
    vault_config.metadata_path.mkdir(parents=True)
    vault_config.folders_index_path.write_text(
        json.dumps([{"id": "folder-1", "name": "Good"}, {"id": "folder-2"}, "junk"]),
        encoding="utf-8",
    )

    folders = store.read_folders()

    assert [folder.id for folder in folders] == ["folder-1"]


def test_ensure_initialized_creates_layout_once(store: IndexStore, vault_config: AppConfig) -> None:
    created = store.ensure_initialized()

    assert str(vault_config.metadata_path) in created
    assert vault_config.documents_index_path.read_text(encoding="utf-8") == "[]\n"
    assert vault_config.folders_index_path.exists()
    assert store.ensure_initialized() == []


def test_compositions_keep_unknown_keys(store: IndexStore, vault_config: AppConfig) -> None:
    store.write_compositions([{"id": "comp-1", "name": "Draft", "content": "", "custom": 7}])

    raw = store.read_compositions_raw()
    assert raw[0]["custom"] == 7
    compositions = store.read_compositions()
    assert compositions[0].name == "Draft"
    assert compositions[0].model_dump(by_alias=True)["custom"] == 7
