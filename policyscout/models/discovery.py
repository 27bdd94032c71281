"""
Domain models shared by the discovery engine, its strategies and the API.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from urllib.parse import urlsplit, urlunsplit

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def clamp_confidence(value: float) -> int:
    return int(max(0, min(100, round(value))))


def canonicalize_url(url: str) -> str:
    """Lower-case scheme and host, drop the fragment, keep path and query intact."""
    parts = urlsplit(url.strip())
    scheme = (parts.scheme or "https").lower()
    netloc = parts.netloc.lower()
    path = parts.path or "/"
    return urlunsplit((scheme, netloc, path, parts.query, ""))


def dedup_key(url: str) -> str:
    return canonicalize_url(url).lower().rstrip("/")


class DocumentType(str, Enum):
    PRIVACY = "privacy"
    TERMS = "terms"
    COOKIES = "cookies"
    SECURITY = "security"
    GDPR = "gdpr"
    CCPA = "ccpa"
    AI = "ai"
    ACCEPTABLE_USE = "acceptable_use"


DOCUMENT_TYPE_PRIORITY: List[DocumentType] = list(DocumentType)


class CandidateSource(str, Enum):
    SPECIAL_DOMAIN = "special_domain"
    DIRECT_FETCH = "direct_fetch"
    STANDARD_PATH = "standard_path"
    FOOTER_LINK = "footer_link"
    LEGAL_PAGE = "legal_page"
    SITEMAP = "sitemap"
    SEARCH_FALLBACK = "search_fallback"
    CONTENT_ANALYSIS = "content_analysis"


class Candidate(BaseModel):
    """A proposed document URL. Immutable once produced by a strategy."""

    model_config = ConfigDict(frozen=True)

    url: str
    source: CandidateSource
    confidence: int
    document_type: DocumentType = DocumentType.PRIVACY
    found_at: datetime = Field(default_factory=_utc_now)
    method_detail: str = ""

    @field_validator("url")
    @classmethod
    def _canonical_url(cls, value: str) -> str:
        return canonicalize_url(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, value: float) -> int:
        return clamp_confidence(value)

    @property
    def key(self) -> str:
        return dedup_key(self.url)

    def refined(self, url: str, confidence: int, reason: str) -> "Candidate":
        """Return a new candidate for a better nested page, keeping the source."""
        return Candidate(
            url=url,
            source=self.source,
            confidence=confidence,
            document_type=self.document_type,
            method_detail=f"{self.method_detail}; refined: {reason}".strip("; "),
        )


class DiscoveredDocument(BaseModel):
    type: DocumentType
    display_name: str
    url: str
    source: Optional[CandidateSource] = None
    confidence: Optional[int] = None


class ContentValidationMetrics(BaseModel):
    character_count: int
    word_count: int
    keyword_count: int
    topics_found: List[str] = Field(default_factory=list)
    positive_indicator_count: int = 0
    negative_indicator_count: int = 0
    detected_language: Optional[str] = None


class ContentValidationResult(BaseModel):
    is_valid: bool
    confidence: int
    issues: List[str] = Field(default_factory=list)
    metrics: ContentValidationMetrics


class QuickRejectResult(BaseModel):
    rejected: bool
    reason: Optional[str] = None


class DeepScanResult(BaseModel):
    url: str
    confidence: int
    reason: str
    depth: int = 1


class DiscoveryReport(BaseModel):
    """Diagnostics record of one discover() call."""

    domain: str
    document_type: DocumentType = DocumentType.PRIVACY
    candidate: Optional[Candidate] = None
    candidates: List[Candidate] = Field(default_factory=list)
    strategies_run: List[str] = Field(default_factory=list)
    early_stopped: bool = False
    refined: bool = False
    duration_ms: int = 0

    @computed_field
    @property
    def found(self) -> bool:
        return self.candidate is not None


class TargetIdentity(BaseModel):
    original_input: str
    clean_domain: str
    resolved_via: str


@dataclass(frozen=True)
class FetchResult:
    body: bytes
    text: str
    final_url: str
    content_type: str
    status_code: int
    user_agent: str
    localized: bool = False

    @property
    def is_html(self) -> bool:
        return "html" in self.content_type.lower()
