"""Vault integrity checker: finds and repairs metadata corruption."""

from __future__ import annotations

import logging
from pathlib import Path
import time
from typing import Any, Dict, List, Optional

import yaml

from ..models.common import generate_id, utcnow
from ..models.document import Document
from ..models.folder import Folder
from ..models.integrity import IntegrityReport
from .index_store import atomic_write_text
from .markdown import encode, load_frontmatter, render_markdown, split_frontmatter
from .paths import folder_lookup
from .scanner import reassign_duplicate_ids
from .vault import VaultService

logger = logging.getLogger(__name__)


class IntegrityChecker:
    """
    Scan the vault and repair what can be repaired.

    Running the checker twice in a row is safe: the second pass finds nothing
    to fix. Problems are reported in the returned IntegrityReport and never
    raised.
    """

    def __init__(self, vault_service: VaultService | None = None) -> None:
        self.vault = vault_service or VaultService()
        self.index_store = self.vault.index_store

    def check_and_fix(self) -> IntegrityReport:
        start_time = time.time()
        report = IntegrityReport()
        logger.info("Starting vault integrity check", extra={"vault_path": str(self.vault.vault_root)})

        try:
            for created in self.index_store.ensure_initialized():
                report.details.append(f"Created missing {self._describe(Path(created))}")
        except Exception as exc:
            logger.exception("Unable to initialize vault storage")
            report.details.append(f"⚠️ Error creating vault directories: {exc}")
            return report

        try:
            snapshot = self.vault.load_vault()
        except Exception as exc:
            logger.exception("Unable to load documents")
            report.details.append(f"⚠️ Error loading documents: {exc}")
            return report
        try:
            folders = self.vault.load_folders()
        except Exception as exc:
            logger.exception("Unable to load folders")
            report.details.append(f"⚠️ Error loading folders: {exc}")
            return report

        documents = snapshot.documents
        report.documents_checked = len(documents)
        report.folders_checked = len(folders)
        # Files are keyed by object so re-identified documents keep their path.
        file_paths = {
            id(document): snapshot.document_paths.get(document.id) for document in documents
        }

        try:
            dirty_documents: Dict[int, Document] = {}
            ids_changed = self._fix_document_ids(documents, report, dirty_documents)
            ids_changed = self._fix_folder_ids(folders, report) or ids_changed
            if ids_changed:
                self.index_store.write_documents(documents)
                self.index_store.write_folders(folders)

            if self._fix_folders(folders, report):
                self.index_store.write_folders(folders)
            self._fix_documents(documents, folders, report, dirty_documents)
            self._save_documents(list(dirty_documents.values()), documents, file_paths, report)

            self._fix_compositions(report, {document.id for document in documents})
        except Exception as exc:
            logger.exception("Vault integrity check aborted")
            report.details.append(f"⚠️ Error in vault integrity check: {exc}")
            return report

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Vault integrity check completed",
            extra={
                "documents_checked": report.documents_checked,
                "folders_checked": report.folders_checked,
                "total_fixes": report.total_fixes,
                "duration_ms": f"{duration_ms:.2f}",
            },
        )
        return report

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @staticmethod
    def _fix_document_ids(
        documents: List[Document], report: IntegrityReport, dirty: Dict[int, Document]
    ) -> bool:
        changed = False
        for document in documents:
            if not document.id:
                document.id = generate_id("doc")
                report.missing_metadata_fixed += 1
                report.details.append(f"Added missing ID for document: {document.name} → {document.id}")
                dirty[id(document)] = document
                changed = True
        for old_id, document in reassign_duplicate_ids(documents, "doc"):
            report.duplicate_ids_fixed += 1
            report.details.append(f"Fixed duplicate document ID: {old_id} → {document.id} ({document.name})")
            dirty[id(document)] = document
            changed = True
        return changed

    @staticmethod
    def _fix_folder_ids(folders: List[Folder], report: IntegrityReport) -> bool:
        changed = False
        for folder in folders:
            if not folder.id:
                folder.id = generate_id("folder")
                report.missing_metadata_fixed += 1
                report.details.append(f"Added missing ID for folder: {folder.name} → {folder.id}")
                changed = True
        for old_id, folder in reassign_duplicate_ids(folders, "folder"):
            report.duplicate_ids_fixed += 1
            report.details.append(f"Fixed duplicate folder ID: {old_id} → {folder.id} ({folder.name})")
            changed = True
        return changed

    # ------------------------------------------------------------------
    # Field-level repairs
    # ------------------------------------------------------------------

    @staticmethod
    def _fix_folders(folders: List[Folder], report: IntegrityReport) -> bool:
        changed = False
        lookup = folder_lookup(folders)

        for folder in folders:
            if folder.parent_id is not None and folder.parent_id not in lookup:
                report.orphaned_folders_fixed += 1
                report.details.append(
                    f"Fixed orphaned folder: {folder.name} ({folder.id}) had missing parent {folder.parent_id}"
                )
                folder.parent_id = None
                changed = True

        for folder in folders:
            visited = {folder.id}
            current = folder
            while current.parent_id is not None:
                if current.parent_id in visited:
                    report.orphaned_folders_fixed += 1
                    report.details.append(
                        f"Broke folder cycle at: {current.name} ({current.id}) → {current.parent_id}"
                    )
                    current.parent_id = None
                    changed = True
                    break
                parent = lookup.get(current.parent_id)
                if parent is None:
                    break
                visited.add(parent.id)
                current = parent

        for folder in folders:
            if folder.created_at is None:
                folder.created_at = utcnow()
                report.invalid_dates_fixed += 1
                report.details.append(f"Fixed invalid createdAt date for folder: {folder.name} ({folder.id})")
                changed = True
        return changed

    @staticmethod
    def _fix_documents(
        documents: List[Document],
        folders: List[Folder],
        report: IntegrityReport,
        dirty: Dict[int, Document],
    ) -> None:
        folder_ids = {folder.id for folder in folders}
        document_ids = {document.id for document in documents}

        for document in documents:
            label = f"{document.name} ({document.id})"
            fixes: List[str] = []

            if document.created_at is None:
                document.created_at = utcnow()
                report.invalid_dates_fixed += 1
                fixes.append(f"Fixed invalid createdAt date for document: {label}")
            if document.updated_at is None:
                document.updated_at = utcnow()
                report.invalid_dates_fixed += 1
                fixes.append(f"Fixed invalid updatedAt date for document: {label}")

            if document.versions is None:
                document.versions = []
                report.missing_metadata_fixed += 1
                fixes.append(f"Fixed missing versions array for document: {label}")
            for version in document.versions:
                if version.created_at is None:
                    version.created_at = utcnow()
                    report.invalid_dates_fixed += 1
                    fixes.append(f"Fixed invalid date in version for document: {label}")
                if not version.id:
                    version.id = generate_id("version")
                    report.missing_metadata_fixed += 1
                    fixes.append(f"Added missing version ID for document: {label}")

            if document.annotations is None:
                document.annotations = []
                report.missing_metadata_fixed += 1
                fixes.append(f"Fixed missing annotations array for document: {label}")
            for annotation in document.annotations:
                if not annotation.id:
                    annotation.id = generate_id("annotation")
                    report.missing_metadata_fixed += 1
                    fixes.append(f"Added missing annotation ID for document: {label}")
                if annotation.document_id != document.id:
                    annotation.document_id = document.id
                    report.missing_metadata_fixed += 1
                    fixes.append(f"Fixed incorrect documentId in annotation for document: {label}")
                if annotation.created_at is None or annotation.updated_at is None:
                    annotation.created_at = annotation.created_at or utcnow()
                    annotation.updated_at = annotation.updated_at or utcnow()
                    report.invalid_dates_fixed += 1
                    fixes.append(f"Fixed invalid date in annotation for document: {label}")

            if document.folder_id is not None and document.folder_id not in folder_ids:
                fixes.append(f"Fixed orphaned document: {label} had missing folder {document.folder_id}")
                document.folder_id = None
                report.orphaned_documents_fixed += 1

            kept = [ref for ref in document.context_documents if ref.id in document_ids]
            if len(kept) != len(document.context_documents):
                report.broken_context_references_fixed += len(document.context_documents) - len(kept)
                fixes.append(f"Removed broken context references from document: {label}")
                document.context_documents = kept

            if fixes:
                report.details.extend(fixes)
                dirty[id(document)] = document

    def _save_documents(
        self,
        repaired: List[Document],
        documents: List[Document],
        file_paths: Dict[int, Optional[Path]],
        report: IntegrityReport,
    ) -> None:
        """
        Write repaired documents back where they were found.

        Repairs never move a file: the canonical path derived from the name may
        belong to another document, and relocation is the vault service's job.
        """
        if not repaired:
            return
        for document in repaired:
            file_path = file_paths.get(id(document))
            try:
                if file_path is None:
                    self.vault.save_document(document)
                else:
                    atomic_write_text(file_path, encode(document))
            except Exception as exc:
                logger.exception("Failed to save repaired document", extra={"document_id": document.id})
                report.details.append(f"⚠️ Failed to save document: {document.name} ({document.id}) - {exc}")
            else:
                report.details.append(f"✓ Saved fixed document: {document.name} ({document.id})")
        self.index_store.write_documents(documents)

    # ------------------------------------------------------------------
    # Compositions
    # ------------------------------------------------------------------

    def _fix_compositions(self, report: IntegrityReport, document_ids: set) -> None:
        compositions = self.index_store.read_compositions_raw()
        changed = False
        for entry in compositions:
            if not isinstance(entry, dict):
                continue
            report.compositions_checked += 1
            if self._fix_composition(entry, report, document_ids):
                changed = True

        if not changed:
            return
        try:
            self.index_store.write_compositions(compositions)
        except Exception as exc:
            logger.exception("Failed to save compositions file")
            report.details.append(f"⚠️ Failed to save compositions file: {exc}")

    @staticmethod
    def _fix_composition(entry: Dict[str, Any], report: IntegrityReport, document_ids: set) -> bool:
        changed = False
        if not isinstance(entry.get("id"), str) or not entry["id"]:
            entry["id"] = generate_id("composition")
            report.missing_metadata_fixed += 1
            report.details.append(f"Added missing ID for composition: {entry['id']}")
            changed = True
        title = entry.get("name") if isinstance(entry.get("name"), str) and entry.get("name") else "Untitled"
        label = f"{title} ({entry['id']})"

        content = entry.get("content") if isinstance(entry.get("content"), str) else ""
        raw, body = split_frontmatter(content)
        header = {"id": entry["id"], "title": title}
        repaired: Optional[str] = None
        if raw is None:
            repaired = render_markdown(header, body if body.strip() else f"# {title}\n")
            report.details.append(f"Added missing frontmatter to composition: {label}")
        else:
            try:
                load_frontmatter(raw)
            except (yaml.YAMLError, ValueError):
                repaired = render_markdown(header, body)
                report.details.append(f"Replaced malformed frontmatter in composition: {label}")
        if repaired is not None:
            entry["content"] = repaired
            report.composition_frontmatter_fixed += 1
            changed = True

        references = entry.get("contextDocuments")
        if isinstance(references, list):
            kept = [
                ref
                for ref in references
                if isinstance(ref, dict) and ref.get("id") in document_ids
            ]
            if len(kept) != len(references):
                report.broken_context_references_fixed += len(references) - len(kept)
                report.details.append(f"Removed broken context references from composition: {label}")
                entry["contextDocuments"] = kept
                changed = True
        return changed

    def _describe(self, path: Path) -> str:
        config = self.vault.config
        labels = {
            config.vault_path: "vault directory",
            config.metadata_path: f"{config.metadata_dir_name} directory",
            config.documents_index_path: "documents index file",
            config.folders_index_path: "folders index file",
        }
        return labels.get(path, str(path))


def check_and_fix_vault_integrity(vault_service: VaultService | None = None) -> IntegrityReport:
    """Run one integrity pass over the configured vault."""
    return IntegrityChecker(vault_service).check_and_fix()


__all__ = ["IntegrityChecker", "check_and_fix_vault_integrity"]
