"""Composition model (entries of the compositions JSON array)."""

from __future__ import annotations

from pydantic import ConfigDict, Field

from .common import Timestamp, VaultModel, utcnow
from .document import ContextDocument


class Composition(VaultModel):
    """AI composition draft; its content embeds its own frontmatter block."""

    model_config = ConfigDict(
        alias_generator=VaultModel.model_config["alias_generator"],
        populate_by_name=True,
        extra="allow",
    )

    id: str
    name: str = "Untitled"
    content: str = ""
    context_documents: list[ContextDocument] = Field(default_factory=list)
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)


__all__ = ["Composition"]
