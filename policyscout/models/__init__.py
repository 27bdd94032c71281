from .discovery import (
    DOCUMENT_TYPE_PRIORITY,
    Candidate,
    CandidateSource,
    ContentValidationMetrics,
    ContentValidationResult,
    DeepScanResult,
    DiscoveredDocument,
    DiscoveryReport,
    DocumentType,
    FetchResult,
    QuickRejectResult,
    TargetIdentity,
    canonicalize_url,
    clamp_confidence,
    dedup_key,
)

__all__ = [
    "DOCUMENT_TYPE_PRIORITY",
    "Candidate",
    "CandidateSource",
    "ContentValidationMetrics",
    "ContentValidationResult",
    "DeepScanResult",
    "DiscoveredDocument",
    "DiscoveryReport",
    "DocumentType",
    "FetchResult",
    "QuickRejectResult",
    "TargetIdentity",
    "canonicalize_url",
    "clamp_confidence",
    "dedup_key",
]
