"""Integrity report model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class IntegrityReport(BaseModel):
    """Tally of what an integrity pass checked and repaired."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "documentsChecked": 42,
                "foldersChecked": 7,
                "compositionsChecked": 3,
                "duplicateIdsFixed": 1,
                "missingMetadataFixed": 0,
                "invalidDatesFixed": 2,
                "orphanedDocumentsFixed": 0,
                "orphanedFoldersFixed": 0,
                "brokenContextReferencesFixed": 0,
                "compositionFrontmatterFixed": 1,
                "details": ["Fixed duplicate document ID: doc-1 → doc-... (Draft)"],
            }
        },
    )

    documents_checked: int = Field(0, ge=0)
    folders_checked: int = Field(0, ge=0)
    compositions_checked: int = Field(0, ge=0)
    duplicate_ids_fixed: int = Field(0, ge=0)
    missing_metadata_fixed: int = Field(0, ge=0)
    invalid_dates_fixed: int = Field(0, ge=0)
    orphaned_documents_fixed: int = Field(0, ge=0)
    orphaned_folders_fixed: int = Field(0, ge=0)
    broken_context_references_fixed: int = Field(0, ge=0)
    composition_frontmatter_fixed: int = Field(0, ge=0)
    details: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_fixes(self) -> int:
        return (
            self.duplicate_ids_fixed
            + self.missing_metadata_fixed
            + self.invalid_dates_fixed
            + self.orphaned_documents_fixed
            + self.orphaned_folders_fixed
            + self.broken_context_references_fixed
            + self.composition_frontmatter_fixed
        )


__all__ = ["IntegrityReport"]
