"""
Pydantic schemas for discovery API requests and responses.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from policyscout.models import DiscoveredDocument, DocumentType, TargetIdentity


class ValidateContentRequest(BaseModel):
    """Raw page text to check against a document type."""

    text: str = Field(..., description="Visible text of the page")
    document_type: DocumentType = DocumentType.PRIVACY


class DiscoveredDocumentsResponse(BaseModel):
    """All policy documents found for one domain."""

    domain: str
    target: TargetIdentity
    documents: List[DiscoveredDocument] = Field(default_factory=list)
