"""Filesystem vault management."""

from __future__ import annotations

import logging
import os
from pathlib import Path
import shutil
from typing import Callable, Dict, List, Optional, Set, Tuple
import uuid

from ..models.common import generate_id, utcnow
from ..models.document import Backlink, Document, DocumentRenameResult, DocumentVersion
from ..models.folder import Folder, FolderDeleteResult, FolderMoveResult
from .config import AppConfig, get_config
from .errors import DocumentNotFoundError, FolderNotFoundError, VaultConflictError, VaultError
from .index_store import IndexStore, atomic_write_text
from .links import extract_links, id_token, replace_link_prefix, replace_link_target, rewrite_links
from .markdown import encode
from .paths import (
    document_path,
    folder_lookup,
    folder_path,
    is_descendant,
    relative_document_path,
    relative_folder_path,
)
from .scanner import DirectoryScanner, ScanResult

logger = logging.getLogger(__name__)

ContentRewrite = Callable[[str], Tuple[str, int]]


class VaultService:
    """CRUD over the vault's Markdown tree and its JSON indexes."""

    def __init__(self, config: AppConfig | None = None, index_store: IndexStore | None = None) -> None:
        self.config = config or get_config()
        self.vault_root = self.config.vault_path
        self.vault_root.mkdir(parents=True, exist_ok=True)
        self.index_store = index_store or IndexStore(self.config)
        self.scanner = DirectoryScanner(self.config, self.index_store)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_vault(self) -> ScanResult:
        """Full rescan of the vault; the indexes are rewritten to match disk."""
        return self.scanner.scan()

    def load_documents(self) -> List[Document]:
        return self.load_vault().documents

    def load_folders(self) -> List[Folder]:
        return self.scanner.scan_folders()

    def get_document(self, document_id: str) -> Document:
        return self._find_document(self.load_vault(), document_id)

    def get_folder(self, folder_id: str) -> Folder:
        for folder in self.load_folders():
            if folder.id == folder_id:
                return folder
        raise FolderNotFoundError(folder_id)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def save_document(self, document: Document) -> Document:
        """
        Create or update a document: index entry and Markdown file.

        A document without an id gets one. When the document already lives at
        a different path (renamed through a save), its old file is moved
        rather than left behind as a duplicate.
        """
        document = document.model_copy(deep=True)
        now = utcnow()
        if not document.id:
            document.id = generate_id("doc")
        if document.created_at is None:
            document.created_at = now
        if document.updated_at is None:
            document.updated_at = now

        snapshot = self.load_vault()
        self._write_document(document, snapshot)
        self._commit_documents(snapshot)
        logger.info(
            "Saved document",
            extra={"document_id": document.id, "file_path": str(snapshot.document_paths[document.id])},
        )
        return document

    def delete_document(self, document_id: str) -> None:
        """Remove a document from the index and disk; unknown ids are ignored."""
        snapshot = self.load_vault()
        if not any(document.id == document_id for document in snapshot.documents):
            logger.debug("Delete requested for unknown document", extra={"document_id": document_id})
            return
        self._remove_documents(snapshot, {document_id})
        self._commit_documents(snapshot)
        logger.info("Deleted document", extra={"document_id": document_id})

    def rename_document(self, document_id: str, new_name: str) -> DocumentRenameResult:
        """Rename a document, move its file and rewrite links to its old name and path."""
        if not new_name or not new_name.strip():
            raise ValueError("Document name must not be empty")
        snapshot = self.load_vault()
        document = self._find_document(snapshot, document_id)
        lookup = folder_lookup(snapshot.folders)

        old_name = document.name
        old_relative = relative_document_path(document, lookup)
        document.name = new_name
        document.updated_at = utcnow()
        self._write_document(document, snapshot)
        self._commit_documents(snapshot)
        new_relative = relative_document_path(document, lookup)

        replacements = {old_relative: new_relative, old_name: new_name}
        updated_links = self._rewrite_all(snapshot, _replace_targets(replacements))[0]
        logger.info(
            "Renamed document",
            extra={
                "document_id": document_id,
                "old_path": old_relative,
                "new_path": new_relative,
                "updated_links": updated_links,
            },
        )
        return DocumentRenameResult(document=document, updated_links=updated_links)

    def move_document(self, document_id: str, target_folder_id: Optional[str]) -> Document:
        """Move a document into another folder (None for the vault root)."""
        snapshot = self.load_vault()
        document = self._find_document(snapshot, document_id)
        lookup = folder_lookup(snapshot.folders)
        if target_folder_id is not None and target_folder_id not in lookup:
            raise FolderNotFoundError(target_folder_id)

        old_relative = relative_document_path(document, lookup)
        document.folder_id = target_folder_id
        document.updated_at = utcnow()
        self._write_document(document, snapshot)
        self._commit_documents(snapshot)
        new_relative = relative_document_path(document, lookup)

        self._rewrite_all(snapshot, _replace_targets({old_relative: new_relative}))
        logger.info(
            "Moved document",
            extra={"document_id": document_id, "old_path": old_relative, "new_path": new_relative},
        )
        return document

    def create_version(self, document_id: str, message: Optional[str] = None) -> Document:
        """Snapshot the current content as the newest version."""
        snapshot = self.load_vault()
        document = self._find_document(snapshot, document_id)
        version = DocumentVersion(
            id=generate_id("version"),
            content=document.content,
            created_at=utcnow(),
            message=message,
        )
        document.versions = [version, *(document.versions or [])]
        document.updated_at = utcnow()
        self._write_document(document, snapshot)
        self._commit_documents(snapshot)
        logger.info("Created document version", extra={"document_id": document_id, "version_id": version.id})
        return document

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    def save_folder(self, folder: Folder) -> Folder:
        """Create or update a folder entry and its directory."""
        folder = folder.model_copy()
        if not folder.id:
            folder.id = generate_id("folder")
        if folder.created_at is None:
            folder.created_at = utcnow()

        folders = self.load_folders()
        lookup = folder_lookup(folders)
        if folder.parent_id is not None:
            if folder.parent_id not in lookup:
                raise FolderNotFoundError(folder.parent_id)
            if is_descendant(folder.parent_id, folder.id, lookup):
                raise VaultError("Cannot move a folder into itself or one of its subfolders")

        existing = lookup.get(folder.id)
        old_path = folder_path(self.vault_root, existing, lookup) if existing else None
        old_relative = relative_folder_path(existing, lookup) if existing else None
        updated = [item for item in folders if item.id != folder.id] + [folder]
        updated_lookup = folder_lookup(updated)

        relative = relative_folder_path(folder, updated_lookup)
        self._check_folder_destination(relative, folder.id, updated)

        new_path = folder_path(self.vault_root, folder, updated_lookup)
        if old_path is not None:
            self._relocate(old_path, new_path)
        new_path.mkdir(parents=True, exist_ok=True)
        self.index_store.write_folders(updated)
        if old_relative is not None and old_relative != relative:
            self.update_links_folder_prefix(old_relative, relative)
        logger.info("Saved folder", extra={"folder_id": folder.id, "rel_path": relative})
        return folder

    def delete_folder(self, folder_id: str, recursive: bool = False) -> FolderDeleteResult:
        """
        Delete a folder.

        Without `recursive`, a folder holding documents or subfolders is left
        untouched and the result says a recursive delete is possible. With it,
        every descendant folder and document is dropped from the indexes
        before the directory tree is removed.
        """
        snapshot = self.load_vault()
        lookup = folder_lookup(snapshot.folders)
        folder = lookup.get(folder_id)
        if folder is None:
            raise FolderNotFoundError(folder_id)

        direct_documents = [doc for doc in snapshot.documents if doc.folder_id == folder_id]
        has_subfolders = any(item.parent_id == folder_id for item in snapshot.folders)
        if (direct_documents or has_subfolders) and not recursive:
            return FolderDeleteResult(
                success=False,
                error="Cannot delete folder that contains documents or subfolders",
                can_recurse=True,
                document_count=len(direct_documents),
            )

        directory = folder_path(self.vault_root, folder, lookup)
        subtree = {item.id for item in snapshot.folders if is_descendant(item.id, folder_id, lookup)}
        doomed_documents = {doc.id for doc in snapshot.documents if doc.folder_id in subtree}

        snapshot.folders[:] = [item for item in snapshot.folders if item.id not in subtree]
        snapshot.documents[:] = [doc for doc in snapshot.documents if doc.id not in doomed_documents]
        self.index_store.write_folders(snapshot.folders)
        self._commit_documents(snapshot)

        try:
            if recursive:
                shutil.rmtree(directory)
            else:
                directory.rmdir()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.error(
                "Failed to remove folder directory",
                extra={"folder_id": folder_id, "dir_path": str(directory), "error": str(exc)},
            )
            return FolderDeleteResult(success=False, error=f"Failed to remove folder directory: {exc}")

        logger.info(
            "Deleted folder",
            extra={"folder_id": folder_id, "folders_removed": len(subtree), "documents_removed": len(doomed_documents)},
        )
        return FolderDeleteResult(success=True)

    def rename_folder(self, folder_id: str, new_name: str) -> Folder:
        """Rename a folder's directory and rewrite links below its old path."""
        if not new_name or not new_name.strip():
            raise ValueError("Folder name must not be empty")
        folders = self.load_folders()
        lookup = folder_lookup(folders)
        folder = lookup.get(folder_id)
        if folder is None:
            raise FolderNotFoundError(folder_id)

        old_path = folder_path(self.vault_root, folder, lookup)
        old_relative = relative_folder_path(folder, lookup)
        folder.name = new_name
        new_relative = relative_folder_path(folder, lookup)
        self._check_folder_destination(new_relative, folder_id, folders)

        new_path = folder_path(self.vault_root, folder, lookup)
        self._relocate(old_path, new_path)
        new_path.mkdir(parents=True, exist_ok=True)
        self.index_store.write_folders(folders)
        self.update_links_folder_prefix(old_relative, new_relative)
        logger.info(
            "Renamed folder",
            extra={"folder_id": folder_id, "old_path": old_relative, "new_path": new_relative},
        )
        return folder

    def move_folder(self, folder_id: str, target_parent_id: Optional[str]) -> FolderMoveResult:
        """Move a folder under another parent (None for the vault root)."""
        folders = self.load_folders()
        lookup = folder_lookup(folders)
        folder = lookup.get(folder_id)
        if folder is None:
            raise FolderNotFoundError(folder_id)
        if target_parent_id is not None:
            if target_parent_id not in lookup:
                raise FolderNotFoundError(target_parent_id)
            if is_descendant(target_parent_id, folder_id, lookup):
                return FolderMoveResult(
                    success=False,
                    error="Cannot move a folder into itself or one of its subfolders",
                )

        old_path = folder_path(self.vault_root, folder, lookup)
        old_relative = relative_folder_path(folder, lookup)
        folder.parent_id = target_parent_id
        new_relative = relative_folder_path(folder, lookup)
        self._check_folder_destination(new_relative, folder_id, folders)

        new_path = folder_path(self.vault_root, folder, lookup)
        self._relocate(old_path, new_path)
        new_path.mkdir(parents=True, exist_ok=True)
        self.index_store.write_folders(folders)
        self.update_links_folder_prefix(old_relative, new_relative)
        logger.info(
            "Moved folder",
            extra={"folder_id": folder_id, "old_path": old_relative, "new_path": new_relative},
        )
        return FolderMoveResult(success=True, folder=folder)

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def update_links(self, old_target: str, new_target: str) -> int:
        """Rewrite ``[[old]]`` links everywhere; returns the number of documents changed."""
        snapshot = self.load_vault()
        return self._rewrite_all(
            snapshot, lambda content: replace_link_target(content, old_target, new_target)
        )[0]

    def update_links_folder_prefix(self, old_prefix: str, new_prefix: str) -> int:
        """Rewrite links below a folder path; returns the number of documents changed."""
        snapshot = self.load_vault()
        return self._rewrite_all(
            snapshot, lambda content: replace_link_prefix(content, old_prefix, new_prefix)
        )[0]

    def get_backlinks(self, document_id: str) -> List[Backlink]:
        """Documents linking to `document_id` by id token, name or path."""
        snapshot = self.load_vault()
        target = self._find_document(snapshot, document_id)
        targets = self._link_targets(target, snapshot)

        backlinks = []
        for document in snapshot.documents:
            if document.id == document_id:
                continue
            if any(
                link.document_id == document_id or link.target in targets
                for link in extract_links(document.content)
            ):
                backlinks.append(Backlink(id=document.id, name=document.name))
        return backlinks

    def migrate_links(self) -> int:
        """
        Convert name and path links into id tokens.

        Only links that resolve to exactly one document are converted; the
        link text is kept as display text. Returns the number of links rewritten.
        """
        snapshot = self.load_vault()
        owners: Dict[str, Set[str]] = {}
        for document in snapshot.documents:
            for target in self._link_targets(document, snapshot):
                owners.setdefault(target, set()).add(document.id)

        def _to_token(link) -> Optional[str]:
            if link.document_id is not None:
                return None
            candidates = owners.get(link.target, set())
            if len(candidates) != 1:
                return None
            return id_token(next(iter(candidates)), link.alias or link.target)

        documents_changed, links_changed = self._rewrite_all(
            snapshot, lambda content: rewrite_links(content, _to_token)
        )
        logger.info(
            "Migrated links to id tokens",
            extra={"documents_changed": documents_changed, "links_changed": links_changed},
        )
        return links_changed

    # ------------------------------------------------------------------
    # Trash
    # ------------------------------------------------------------------

    def move_to_trash(self, document_id: str) -> Document:
        self.get_document(document_id)
        trash = self._trash_folder(self.load_folders())
        if trash is None:
            trash = self.save_folder(Folder(name=self.config.trash_folder_name))
        return self.move_document(document_id, trash.id)

    def restore_from_trash(self, document_id: str, target_folder_id: Optional[str] = None) -> Document:
        document = self.get_document(document_id)
        trash = self._trash_folder(self.load_folders())
        if trash is None or document.folder_id != trash.id:
            raise VaultError(f"Document is not in trash: {document_id}")
        return self.move_document(document_id, target_folder_id)

    def empty_trash(self) -> int:
        """Permanently delete every document in the trash folder."""
        snapshot = self.load_vault()
        trash = self._trash_folder(snapshot.folders)
        if trash is None:
            return 0
        trashed = {doc.id for doc in snapshot.documents if doc.folder_id == trash.id}
        if trashed:
            self._remove_documents(snapshot, trashed)
            self._commit_documents(snapshot)
        logger.info("Emptied trash", extra={"documents_removed": len(trashed)})
        return len(trashed)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _find_document(snapshot: ScanResult, document_id: str) -> Document:
        for document in snapshot.documents:
            if document.id == document_id:
                return document
        raise DocumentNotFoundError(document_id)

    def _trash_folder(self, folders: List[Folder]) -> Optional[Folder]:
        for folder in folders:
            if folder.name == self.config.trash_folder_name and folder.parent_id is None:
                return folder
        return None

    def _link_targets(self, document: Document, snapshot: ScanResult) -> Set[str]:
        """Legacy link texts that refer to a document: its name and its paths."""
        targets = {document.name, relative_document_path(document, folder_lookup(snapshot.folders))}
        actual = snapshot.document_paths.get(document.id)
        if actual is not None:
            targets.add(actual.relative_to(self.vault_root).with_suffix("").as_posix())
        targets.discard("")
        return targets

    def _write_document(self, document: Document, snapshot: ScanResult) -> None:
        """Write a document's file, moving it from its current location, and update `snapshot`."""
        lookup = folder_lookup(snapshot.folders)
        if document.folder_id is not None and document.folder_id not in lookup:
            raise FolderNotFoundError(document.folder_id)

        destination = document_path(self.vault_root, document, lookup)
        source = snapshot.document_paths.get(document.id)
        self._check_destination(destination, document.id, snapshot, source)
        if source is not None and source != destination and source.exists():
            self._relocate(source, destination)
        atomic_write_text(destination, encode(document))

        snapshot.document_paths[document.id] = destination
        for position, existing in enumerate(snapshot.documents):
            if existing.id == document.id:
                snapshot.documents[position] = document
                break
        else:
            snapshot.documents.append(document)

    def _check_destination(
        self,
        destination: Path,
        document_id: str,
        snapshot: ScanResult,
        source: Optional[Path],
    ) -> None:
        if not destination.exists():
            return
        if source is not None and source.exists() and os.path.samefile(source, destination):
            return
        for other_id, path in snapshot.document_paths.items():
            if path == destination and other_id == document_id:
                return
        relative = destination.relative_to(self.vault_root).as_posix()
        raise VaultConflictError(f"Destination already exists: {relative}")

    @staticmethod
    def _check_folder_destination(relative: str, folder_id: str, folders: List[Folder]) -> None:
        lookup = folder_lookup(folders)
        for other in folders:
            if other.id != folder_id and relative_folder_path(other, lookup) == relative:
                raise VaultConflictError(f"A folder already exists at {relative}")

    def _relocate(self, source: Path, destination: Path) -> None:
        """Move a file or directory, going through a temp name for case-only renames."""
        if source == destination or not source.exists():
            return
        if destination.exists() and not os.path.samefile(source, destination):
            relative = destination.relative_to(self.vault_root).as_posix()
            raise VaultConflictError(f"Destination already exists: {relative}")

        destination.parent.mkdir(parents=True, exist_ok=True)
        if str(source).lower() == str(destination).lower():
            temporary = source.with_name(f".{source.name}.{uuid.uuid4().hex[:8]}.tmp")
            os.rename(source, temporary)
            os.rename(temporary, destination)
        else:
            os.rename(source, destination)

    def _remove_documents(self, snapshot: ScanResult, document_ids: Set[str]) -> None:
        snapshot.documents[:] = [doc for doc in snapshot.documents if doc.id not in document_ids]
        for document_id in document_ids:
            path = snapshot.document_paths.pop(document_id, None)
            if path is not None:
                path.unlink(missing_ok=True)

    def _commit_documents(self, snapshot: ScanResult) -> None:
        self.index_store.write_documents(snapshot.documents)

    def _rewrite_all(self, snapshot: ScanResult, rewrite: ContentRewrite) -> Tuple[int, int]:
        """Apply `rewrite` to every document's content; returns (documents, links) changed."""
        documents_changed = 0
        links_changed = 0
        try:
            for document in list(snapshot.documents):
                content, count = rewrite(document.content)
                if not count:
                    continue
                updated = document.model_copy(update={"content": content, "updated_at": utcnow()})
                self._write_document(updated, snapshot)
                documents_changed += 1
                links_changed += count
        finally:
            # Files already rewritten must be reflected in the index even on failure.
            if documents_changed:
                self._commit_documents(snapshot)
        if documents_changed:
            logger.info(
                "Rewrote links",
                extra={"documents_changed": documents_changed, "links_changed": links_changed},
            )
        return documents_changed, links_changed


def _replace_targets(replacements: Dict[str, str]) -> ContentRewrite:
    def _rewrite(content: str) -> Tuple[str, int]:
        total = 0
        for old_target, new_target in replacements.items():
            content, count = replace_link_target(content, old_target, new_target)
            total += count
        return content, total

    return _rewrite


__all__ = ["VaultService"]
