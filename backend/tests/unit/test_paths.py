from pathlib import Path

from backend.src.models.document import Document
from backend.src.models.folder import Folder
from backend.src.services.paths import (
    document_path,
    folder_chain,
    folder_path,
    is_descendant,
    relative_document_path,
    relative_folder_path,
    sanitize_name,
)


def _tree() -> list[Folder]:
    return [
        Folder(id="f-root", name="Projects"),
        Folder(id="f-child", name="Alpha", parent_id="f-root"),
        Folder(id="f-leaf", name="Notes: 2024", parent_id="f-child"),
    ]


def test_sanitize_name_replaces_unsafe_characters() -> None:
    assert sanitize_name('a/b\\c?d%e*f:g|h"i<j>k') == "a-b-c-d-e-f-g-h-i-j-k"
    assert sanitize_name("Plain name") == "Plain name"


def test_sanitize_name_never_yields_traversal_segments() -> None:
    assert sanitize_name("") == "-"
    assert sanitize_name(".") == "-"
    assert sanitize_name("..") == "--"
    assert sanitize_name("../..") == "..-.."


def test_document_path_walks_folder_chain(tmp_path: Path) -> None:
    folders = _tree()
    document = Document(id="doc-1", name="Plan", folder_id="f-leaf")

    assert relative_document_path(document, folders) == "Projects/Alpha/Notes- 2024/Plan"
    assert document_path(tmp_path, document, folders) == tmp_path / "Projects" / "Alpha" / "Notes- 2024" / "Plan.md"


def test_folder_path_for_nested_folder(tmp_path: Path) -> None:
    folders = _tree()

    assert relative_folder_path(folders[1], folders) == "Projects/Alpha"
    assert folder_path(tmp_path, folders[0], folders) == tmp_path / "Projects"


def test_unresolved_folder_reference_is_treated_as_root(tmp_path: Path) -> None:
    document = Document(id="doc-1", name="Loose", folder_id="missing")

    assert document_path(tmp_path, document, []) == tmp_path / "Loose.md"


def test_parent_cycle_does_not_loop_forever() -> None:
    folders = [
        Folder(id="a", name="A", parent_id="b"),
        Folder(id="b", name="B", parent_id="a"),
    ]

    chain = folder_chain("a", folders)
    assert [folder.id for folder in chain] == ["b", "a"]
    assert relative_folder_path(folders[0], folders) == "B/A"

    self_loop = Folder(id="s", name="Self", parent_id="s")
    assert relative_folder_path(self_loop, [self_loop]) == "Self"


def test_is_descendant() -> None:
    folders = _tree()

    assert is_descendant("f-leaf", "f-root", folders)
    assert is_descendant("f-root", "f-root", folders)
    assert not is_descendant("f-root", "f-leaf", folders)
    assert not is_descendant(None, "f-root", folders)
