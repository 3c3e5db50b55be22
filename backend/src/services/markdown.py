"""Markdown + YAML frontmatter codec for vault documents."""

from __future__ import annotations

import logging
import math
from pathlib import Path, PurePosixPath
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

import frontmatter
import yaml

from ..models.common import format_timestamp, parse_timestamp
from ..models.document import Annotation, ContextDocument, Document, DocumentVersion

logger = logging.getLogger(__name__)

FRONTMATTER_BLOCK = re.compile(
    r"\A---[ \t]*\r?\n(?P<meta>.*?)^---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)

FolderResolver = Callable[[str], Optional[str]]

_yaml_handler = frontmatter.YAMLHandler()


# ---------------------------------------------------------------------------
# Frontmatter block helpers (shared with the composition repair)
# ---------------------------------------------------------------------------


def split_frontmatter(text: str) -> Tuple[Optional[str], str]:
    """
    Split text into (raw frontmatter, body).

    Raw frontmatter is None when the text does not start with a '---' block.
    The single blank line that separates the block from the body is dropped.
    """
    match = FRONTMATTER_BLOCK.match(text or "")
    if match is None:
        return None, text or ""
    body = text[match.end():]
    if body.startswith("\r\n"):
        body = body[2:]
    elif body.startswith("\n"):
        body = body[1:]
    return match.group("meta"), body


def load_frontmatter(raw: str) -> Dict[str, Any]:
    """
    Parse a raw frontmatter block.

    Raises yaml.YAMLError when the YAML is malformed and ValueError when it
    parses to something other than a mapping.
    """
    data = _yaml_handler.load(raw) if raw.strip() else {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Frontmatter must be a mapping, got {type(data).__name__}")
    return data


def render_markdown(metadata: Dict[str, Any], body: str) -> str:
    """Render a frontmatter block, a blank line, then the body verbatim."""
    header = frontmatter.dumps(frontmatter.Post("", **metadata), sort_keys=False)
    return f"{header}\n\n{body}"


# ---------------------------------------------------------------------------
# Coercion of untrusted frontmatter values
# ---------------------------------------------------------------------------


def _text(value: Any, default: str = "") -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return _text(value)


def _offset(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    if isinstance(value, (int, float)):
        return max(0, int(value))
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 0


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [_text(item) for item in value if _text(item, default="") != ""]


def _coerce_versions(value: Any) -> Optional[List[DocumentVersion]]:
    if not isinstance(value, list):
        return None
    versions = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        versions.append(
            DocumentVersion(
                id=_optional_text(entry.get("id")),
                content="",
                created_at=parse_timestamp(entry.get("createdAt")),
                message=_optional_text(entry.get("message")),
            )
        )
    return versions


def _coerce_annotations(value: Any) -> Optional[List[Annotation]]:
    if not isinstance(value, list):
        return None
    annotations = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        annotations.append(
            Annotation(
                id=_text(entry.get("id")) or None,
                document_id=_optional_text(entry.get("documentId")),
                start_offset=_offset(entry.get("startOffset")),
                end_offset=_offset(entry.get("endOffset")),
                content=_text(entry.get("content")),
                color=_text(entry.get("color")) or "yellow",
                created_at=parse_timestamp(entry.get("createdAt")),
                updated_at=parse_timestamp(entry.get("updatedAt")),
                tags=_string_list(entry.get("tags")),
            )
        )
    return annotations


def _coerce_context_documents(value: Any) -> List[ContextDocument]:
    if not isinstance(value, list):
        return []
    return [
        ContextDocument(id=_text(entry.get("id")), name=_text(entry.get("name")))
        for entry in value
        if isinstance(entry, dict) and _text(entry.get("id"))
    ]


# ---------------------------------------------------------------------------
# Document codec
# ---------------------------------------------------------------------------


def document_metadata(document: Document) -> Dict[str, Any]:
    """Frontmatter mapping for a document (version bodies are not persisted)."""
    metadata: Dict[str, Any] = {}
    if document.id is not None:
        metadata["id"] = document.id
    metadata["name"] = document.name
    if document.created_at is not None:
        metadata["createdAt"] = format_timestamp(document.created_at)
    if document.updated_at is not None:
        metadata["updatedAt"] = format_timestamp(document.updated_at)
    if document.versions is not None:
        metadata["versions"] = [
            _without_none(
                {
                    "id": version.id,
                    "createdAt": format_timestamp(version.created_at),
                    "message": version.message,
                },
                keep={"id", "message"},
            )
            for version in document.versions
        ]
    if document.annotations is not None:
        metadata["annotations"] = [
            _without_none(
                {
                    "id": annotation.id,
                    "documentId": annotation.document_id,
                    "startOffset": annotation.start_offset,
                    "endOffset": annotation.end_offset,
                    "content": annotation.content,
                    "color": annotation.color,
                    "createdAt": format_timestamp(annotation.created_at),
                    "updatedAt": format_timestamp(annotation.updated_at),
                    "tags": list(annotation.tags),
                },
                keep={"documentId"},
            )
            for annotation in document.annotations
        ]
    if document.context_documents:
        metadata["contextDocuments"] = [
            {"id": ref.id, "name": ref.name} for ref in document.context_documents
        ]
    return metadata


def _without_none(data: Dict[str, Any], keep: set[str]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None or key in keep}


def encode(document: Document) -> str:
    """Serialize a document to Markdown with YAML frontmatter."""
    return render_markdown(document_metadata(document), document.content)


def decode(text: str, *, fallback_name: str, folder_id: Optional[str] = None) -> Document:
    """
    Parse Markdown with YAML frontmatter into a Document.

    Malformed frontmatter does not abort the decode: metadata falls back to
    empty and the text after the block is used as the body. A missing id is
    left as None for the caller to mint.
    """
    raw, body = split_frontmatter(text)
    metadata: Dict[str, Any] = {}
    if raw is not None:
        try:
            metadata = load_frontmatter(raw)
        except (yaml.YAMLError, ValueError) as exc:
            logger.warning(
                "Ignoring malformed frontmatter",
                extra={"document_name": fallback_name, "error": str(exc)},
            )

    return Document(
        id=_text(metadata.get("id")) or None,
        name=_text(metadata.get("name")) or fallback_name,
        content=body,
        created_at=parse_timestamp(metadata.get("createdAt")),
        updated_at=parse_timestamp(metadata.get("updatedAt")),
        versions=_coerce_versions(metadata.get("versions")),
        folder_id=folder_id,
        annotations=_coerce_annotations(metadata.get("annotations")),
        context_documents=_coerce_context_documents(metadata.get("contextDocuments")),
    )


def decode_file(file_path: Path, relative_path: str, resolve_folder: FolderResolver) -> Document:
    """
    Read and decode one Markdown file.

    `relative_path` is the file's vault-relative POSIX path; its directory is
    resolved to a folder id through `resolve_folder`, which may create missing
    intermediate folders.
    """
    text = file_path.read_text(encoding="utf-8")
    parent = PurePosixPath(relative_path).parent
    folder_id = resolve_folder(str(parent)) if str(parent) not in ("", ".") else None
    return decode(text, fallback_name=file_path.stem, folder_id=folder_id)


__all__ = [
    "FRONTMATTER_BLOCK",
    "decode",
    "decode_file",
    "document_metadata",
    "encode",
    "load_frontmatter",
    "render_markdown",
    "split_frontmatter",
]
