from datetime import datetime, timezone
from pathlib import Path

import pytest
from pydantic import ValidationError

from backend.src.models.document import (
    Annotation,
    ContextDocument,
    Document,
    DocumentVersion,
)
from backend.src.services.markdown import decode, decode_file, encode, split_frontmatter


def _document() -> Document:
    created = datetime(2025, 1, 10, 9, 0, tzinfo=timezone.utc)
    updated = datetime(2025, 1, 15, 14, 30, 12, 345000, tzinfo=timezone.utc)
    return Document(
        id="doc-1",
        name="Design: Notes",
        content="\n# Design\n\nSee [[Roadmap|the plan]].  \n\n",
        created_at=created,
        updated_at=updated,
        versions=[
            DocumentVersion(id="version-2", content="second draft", created_at=updated, message="Second"),
            DocumentVersion(id="version-1", content="first draft", created_at=created, message=None),
        ],
        folder_id="folder-1",
        annotations=[
            Annotation(
                id="annotation-1",
                document_id="doc-1",
                start_offset=3,
                end_offset=9,
                content="Design",
                color="green",
                created_at=created,
                updated_at=updated,
                tags=["heading", "todo"],
            )
        ],
        context_documents=[ContextDocument(id="doc-2", name="Roadmap")],
    )


def test_round_trip_preserves_every_field_but_version_bodies() -> None:
    document = _document()

    decoded = decode(encode(document), fallback_name="ignored", folder_id="folder-1")

    expected = document.model_copy(deep=True)
    for version in expected.versions:
        version.content = ""
    assert decoded == expected


def test_round_trip_keeps_missing_values_missing() -> None:
    document = Document(
        id="doc-1",
        name="Sparse",
        content="body",
        created_at=None,
        updated_at=None,
        versions=None,
        annotations=None,
    )

    decoded = decode(encode(document), fallback_name="Sparse")

    assert decoded.created_at is None
    assert decoded.updated_at is None
    assert decoded.versions is None
    assert decoded.annotations is None
    assert decoded.context_documents == []
    assert decoded.content == "body"


def test_encode_writes_frontmatter_then_blank_line_then_body() -> None:
    text = encode(Document(id="doc-1", name="Note", content="Hello", versions=[], annotations=[]))

    assert text.startswith("---\nid: doc-1\nname: Note\n")
    assert text.endswith("\n---\n\nHello")
    assert "contextDocuments" not in text


def test_decode_without_frontmatter_uses_file_stem() -> None:
    document = decode("Just some text\n", fallback_name="stem")

    assert document.id is None
    assert document.name == "stem"
    assert document.content == "Just some text\n"
    assert document.created_at is None


def test_decode_malformed_yaml_falls_back_to_empty_metadata() -> None:
    text = "---\nname: [unclosed\nid: doc-9\n---\nBody after block"

    document = decode(text, fallback_name="broken")

    assert document.id is None
    assert document.name == "broken"
    assert document.content == "Body after block"


def test_decode_coerces_untrusted_values() -> None:
    text = (
        "---\n"
        "id: 42\n"
        "name: Coerced\n"
        "createdAt: not-a-date\n"
        "updatedAt: 1700000000000\n"
        "versions: oops\n"
        "annotations:\n"
        "  - startOffset: -3\n"
        "    endOffset: '12'\n"
        "    tags: [1, x, null]\n"
        "  - just a string\n"
        "contextDocuments:\n"
        "  - {id: doc-2, name: Other}\n"
        "  - {name: no id}\n"
        "---\n"
        "\n"
        "Body"
    )

    document = decode(text, fallback_name="fallback")

    assert document.id == "42"
    assert document.name == "Coerced"
    assert document.created_at is None
    assert document.updated_at == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)
    assert document.versions is None
    assert len(document.annotations) == 1
    annotation = document.annotations[0]
    assert annotation.id is None
    assert annotation.start_offset == 0
    assert annotation.end_offset == 12
    assert annotation.tags == ["1", "x"]
    assert annotation.color == "yellow"
    assert [ref.id for ref in document.context_documents] == ["doc-2"]
    assert document.content == "Body"


def test_split_frontmatter_accepts_crlf() -> None:
    raw, body = split_frontmatter("---\r\nid: doc-1\r\n---\r\n\r\nBody\r\n")

    assert raw is not None and "id: doc-1" in raw
    assert body == "Body\r\n"


def test_decode_file_resolves_folder_from_directory(tmp_path: Path) -> None:
    target = tmp_path / "Projects" / "Alpha" / "plan.md"
    target.parent.mkdir(parents=True)
    target.write_text("---\nid: doc-1\nname: Plan\n---\n\nBody", encoding="utf-8")
    calls = []

    def resolve(relative_dir: str) -> str:
        calls.append(relative_dir)
        return "folder-alpha"

    document = decode_file(target, "Projects/Alpha/plan.md", resolve)

    assert calls == ["Projects/Alpha"]
    assert document.folder_id == "folder-alpha"
    assert document.name == "Plan"


def test_decode_file_at_root_has_no_folder(tmp_path: Path) -> None:
    target = tmp_path / "loose.md"
    target.write_text("Body only", encoding="utf-8")

    document = decode_file(target, "loose.md", lambda _: "unexpected")

    assert document.folder_id is None
    assert document.name == "loose"


@pytest.mark.parametrize("value", [".nan", ".inf", "-.inf"])
def test_non_finite_offsets_become_zero(value: str) -> None:
    text = (
        "---\n"
        "id: doc-n\n"
        "name: Offsets\n"
        f"annotations:\n  - startOffset: {value}\n    endOffset: 3\n"
        "---\n\nBody"
    )

    document = decode(text, fallback_name="offsets")

    assert document.id == "doc-n"
    assert document.annotations[0].start_offset == 0
    assert document.annotations[0].end_offset == 3


def test_document_name_must_not_be_empty() -> None:
    with pytest.raises(ValidationError):
        Document(id="doc-1", name="", content="x")


@pytest.mark.parametrize(
    "document",
    [
        Document(id="doc-1", name="Ünïcödé 名前 ✓", content="héllo wörld"),
        Document(id="doc-2", name="Empty body", content=""),
        Document(id="doc-3", name="yes", content="no", versions=[], annotations=[]),
        Document(id="doc-4", name="123", content="456"),
        Document(id="doc-5", name="Dashes", content="---\nnot: frontmatter\n---\n"),
        Document(id="doc-6", name=" padded ", content="\n\n"),
        Document(id="doc-7", name="null", content="[[Link|alias]]", context_documents=[ContextDocument(id="doc-1")]),
    ],
    ids=lambda document: document.id,
)
def test_round_trip_over_varied_documents(document: Document) -> None:
    decoded = decode(encode(document), fallback_name="stem")

    assert decoded == document
