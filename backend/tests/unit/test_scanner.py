import json
from pathlib import Path

import pytest

from backend.src.services.config import AppConfig
from backend.src.services.index_store import IndexStore
from backend.src.services.markdown import decode
from backend.src.services.scanner import DirectoryScanner, FolderTree


@pytest.fixture
def vault_config(tmp_path: Path) -> AppConfig:
    config = AppConfig(vault_path=tmp_path / "vault")
    config.vault_path.mkdir()
    return config


@pytest.fixture
def scanner(vault_config: AppConfig) -> DirectoryScanner:
    return DirectoryScanner(vault_config, IndexStore(vault_config))


def _write(root: Path, relative: str, text: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _frontmatter_id(path: Path) -> str | None:
    return decode(path.read_text(encoding="utf-8"), fallback_name=path.stem).id


def test_duplicate_ids_on_disk_are_split(scanner: DirectoryScanner, vault_config: AppConfig) -> None:
    first = _write(vault_config.vault_path, "a.md", "---\nid: doc-1\nname: First\n---\n\nOne")
    second = _write(vault_config.vault_path, "b.md", "---\nid: doc-1\nname: Second\n---\n\nTwo")

    result = scanner.scan()

    ids = {doc.name: doc.id for doc in result.documents}
    assert ids["First"] == "doc-1"
    assert ids["Second"] != "doc-1"
    assert ids["Second"].startswith("doc-")
    assert _frontmatter_id(first) == "doc-1"
    assert _frontmatter_id(second) == ids["Second"]

    rescanned = {doc.name: doc.id for doc in scanner.scan().documents}
    assert rescanned == ids


def test_missing_id_is_minted_and_persisted(scanner: DirectoryScanner, vault_config: AppConfig) -> None:
    note = _write(vault_config.vault_path, "note.md", "Plain body\n")

    result = scanner.scan()

    assert len(result.documents) == 1
    minted = result.documents[0].id
    assert minted and minted.startswith("doc-")
    assert _frontmatter_id(note) == minted
    assert decode(note.read_text(encoding="utf-8"), fallback_name="note").content == "Plain body\n"
    assert scanner.scan().documents[0].id == minted


def test_folder_tree_built_before_documents(scanner: DirectoryScanner, vault_config: AppConfig) -> None:
    _write(vault_config.vault_path, "Projects/Alpha/plan.md", "---\nid: doc-1\nname: plan\n---\n\n")
    (vault_config.vault_path / "Projects" / "Empty").mkdir()
    _write(vault_config.vault_path, ".obsidian/ignored.md", "not a document")
    _write(vault_config.vault_path, ".git/HEAD.md", "not a document")

    result = scanner.scan()

    folders = {folder.name: folder for folder in result.folders}
    assert set(folders) == {"Projects", "Alpha", "Empty"}
    assert folders["Projects"].parent_id is None
    assert folders["Alpha"].parent_id == folders["Projects"].id
    assert folders["Empty"].parent_id == folders["Projects"].id
    assert [doc.id for doc in result.documents] == ["doc-1"]
    assert result.documents[0].folder_id == folders["Alpha"].id


def test_folder_ids_are_reused_from_index(scanner: DirectoryScanner, vault_config: AppConfig) -> None:
    (vault_config.vault_path / "Research").mkdir()
    vault_config.metadata_path.mkdir()
    vault_config.folders_index_path.write_text(
        json.dumps(
            [{"id": "folder-keep", "name": "Research", "createdAt": "2024-05-01T00:00:00+00:00", "parentId": None}]
        ),
        encoding="utf-8",
    )

    folders = scanner.scan_folders()

    assert len(folders) == 1
    assert folders[0].id == "folder-keep"
    assert folders[0].created_at.year == 2024


def test_scan_prunes_index_entries_without_files(scanner: DirectoryScanner, vault_config: AppConfig) -> None:
    _write(vault_config.vault_path, "kept.md", "---\nid: doc-kept\nname: kept\n---\n\n")
    vault_config.metadata_path.mkdir()
    vault_config.documents_index_path.write_text(
        json.dumps([{"id": "doc-gone", "name": "gone"}, {"id": "doc-kept", "name": "kept"}]),
        encoding="utf-8",
    )

    scanner.scan()

    index = json.loads(vault_config.documents_index_path.read_text(encoding="utf-8"))
    assert [entry["id"] for entry in index] == ["doc-kept"]


def test_externally_moved_document_keeps_its_id(scanner: DirectoryScanner, vault_config: AppConfig) -> None:
    original = _write(vault_config.vault_path, "Inbox/idea.md", "---\nid: doc-7\nname: idea\n---\n\nBody")
    scanner.scan()

    target = vault_config.vault_path / "Archive" / "renamed idea.md"
    target.parent.mkdir()
    original.rename(target)
    result = scanner.scan()

    assert [doc.id for doc in result.documents] == ["doc-7"]
    assert result.document_paths["doc-7"] == target


def test_unreadable_file_is_skipped(scanner: DirectoryScanner, vault_config: AppConfig) -> None:
    (vault_config.vault_path / "binary.md").write_bytes(b"\xff\xfe\x00bad")
    _write(vault_config.vault_path, "good.md", "---\nid: doc-good\nname: good\n---\n\n")

    result = scanner.scan()

    assert [doc.id for doc in result.documents] == ["doc-good"]


def test_folder_tree_creates_missing_ancestors() -> None:
    tree = FolderTree()

    leaf_id = tree.ensure("a/b/c")

    by_name = {folder.name: folder for folder in tree.folders}
    assert by_name["c"].id == leaf_id
    assert by_name["c"].parent_id == by_name["b"].id
    assert by_name["b"].parent_id == by_name["a"].id
    assert tree.ensure("a/b/c") == leaf_id
    assert tree.ensure("") is None
