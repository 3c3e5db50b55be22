"""JSON index files: the documents index, the folders index and compositions."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
import tempfile
from typing import Any, Iterable, List, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..models.composition import Composition
from ..models.document import Document
from ..models.folder import Folder
from .config import AppConfig, get_config

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def atomic_write_text(path: Path, text: str) -> None:
    """
    Write text to `path` through a temp file in the same directory.

    Readers see either the old or the new content, never a partial write.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def serialize(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


class IndexStore:
    """Reads and rewrites the vault's JSON metadata files."""

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or get_config()

    # ------------------------------------------------------------------
    # Raw JSON access
    # ------------------------------------------------------------------

    def read(self, path: Path, default: Any) -> Any:
        """Return the parsed file, or `default` when it is absent or unreadable."""
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return default
        except OSError as exc:
            logger.warning("Unable to read index file", extra={"path": str(path), "error": str(exc)})
            return default
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            logger.warning("Index file is not valid JSON", extra={"path": str(path), "error": str(exc)})
            return default

    def write(self, path: Path, data: Any) -> None:
        """Rewrite the whole collection atomically."""
        atomic_write_text(path, serialize(data))

    def write_if_changed(self, path: Path, data: Any) -> bool:
        """Write only when the serialized form differs from the file on disk."""
        text = serialize(data)
        try:
            if path.read_text(encoding="utf-8") == text:
                return False
        except OSError:
            pass
        atomic_write_text(path, text)
        return True

    # ------------------------------------------------------------------
    # Typed collections
    # ------------------------------------------------------------------

    def _read_models(self, path: Path, model: Type[ModelT]) -> List[ModelT]:
        raw = self.read(path, [])
        if not isinstance(raw, list):
            logger.warning("Index file does not hold a list", extra={"path": str(path)})
            return []
        items: List[ModelT] = []
        for entry in raw:
            try:
                items.append(model.model_validate(entry))
            except ValidationError as exc:
                logger.warning(
                    "Skipping invalid index entry",
                    extra={"path": str(path), "model": model.__name__, "error": str(exc)},
                )
        return items

    @staticmethod
    def _dump(items: Iterable[BaseModel]) -> List[Any]:
        return [item.model_dump(mode="json", by_alias=True) for item in items]

    def read_documents(self) -> List[Document]:
        return self._read_models(self.config.documents_index_path, Document)

    def write_documents(self, documents: Sequence[Document], *, only_if_changed: bool = False) -> bool:
        """Persist the document index. Version bodies are kept in memory only."""
        entries = self._dump(documents)
        for entry in entries:
            for version in entry.get("versions") or []:
                version["content"] = ""
        return self._persist(self.config.documents_index_path, entries, only_if_changed)

    def read_folders(self) -> List[Folder]:
        return self._read_models(self.config.folders_index_path, Folder)

    def write_folders(self, folders: Sequence[Folder], *, only_if_changed: bool = False) -> bool:
        return self._persist(self.config.folders_index_path, self._dump(folders), only_if_changed)

    def read_compositions_raw(self) -> List[Any]:
        """Compositions as stored, so unknown keys and odd entries survive a rewrite."""
        raw = self.read(self.config.compositions_path, [])
        if not isinstance(raw, list):
            logger.warning(
                "Compositions file does not hold a list",
                extra={"path": str(self.config.compositions_path)},
            )
            return []
        return raw

    def read_compositions(self) -> List[Composition]:
        return self._read_models(self.config.compositions_path, Composition)

    def write_compositions(self, compositions: Sequence[Any]) -> None:
        entries = [
            item.model_dump(mode="json", by_alias=True) if isinstance(item, BaseModel) else item
            for item in compositions
        ]
        self.write(self.config.compositions_path, entries)

    def _persist(self, path: Path, entries: List[Any], only_if_changed: bool) -> bool:
        if only_if_changed:
            return self.write_if_changed(path, entries)
        self.write(path, entries)
        return True

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    def ensure_initialized(self) -> List[str]:
        """Create the vault root, metadata directory and empty index files."""
        created: List[str] = []
        for directory in (self.config.vault_path, self.config.metadata_path):
            if not directory.is_dir():
                directory.mkdir(parents=True, exist_ok=True)
                created.append(str(directory))
        for path in (self.config.documents_index_path, self.config.folders_index_path):
            if not path.exists():
                self.write(path, [])
                created.append(str(path))
        if created:
            logger.info("Initialized vault storage", extra={"created_paths": created})
        return created


__all__ = ["IndexStore", "atomic_write_text", "serialize"]
