"""
Discovery endpoints
"""

from fastapi import APIRouter, Depends, Query
from loguru import logger

from policyscout.api.dependencies import (
    get_content_validator,
    get_discovery_engine,
    get_target_identifier,
)
from policyscout.core.exceptions import NotFoundError
from policyscout.domains.discovery import ContentValidator, PolicyDiscoveryEngine, TargetIdentifier
from policyscout.domains.discovery.rules import display_name
from policyscout.models import ContentValidationResult, DiscoveryReport, DocumentType
from policyscout.schemas import DiscoveredDocumentsResponse, ValidateContentRequest

router = APIRouter()


@router.post("/validate", response_model=ContentValidationResult)
async def validate_content(
    payload: ValidateContentRequest,
    validator: ContentValidator = Depends(get_content_validator),
) -> ContentValidationResult:
    """Score page text as a document of the requested type."""
    return validator.check(payload.text, payload.document_type, source="request body")


@router.get("/{target}", response_model=DiscoveryReport)
async def discover_document(
    target: str,
    document_type: DocumentType = Query(DocumentType.PRIVACY),
    identifier: TargetIdentifier = Depends(get_target_identifier),
    engine: PolicyDiscoveryEngine = Depends(get_discovery_engine),
) -> DiscoveryReport:
    """
    Resolve `target` (domain, URL or company name) and find its policy document.
    """
    identity = await identifier.identify(target)
    report = await engine.discover_with_report(identity.clean_domain, document_type)
    if not report.found:
        raise NotFoundError(
            f"Could not find a {display_name(document_type)} for {identity.clean_domain}",
            domain=identity.clean_domain,
        )

    logger.info(
        f"Discovery for {target!r}: {report.candidate.url} "
        f"(confidence {report.candidate.confidence}, {report.duration_ms}ms)"
    )
    return report


@router.get("/{target}/documents", response_model=DiscoveredDocumentsResponse)
async def discover_documents(
    target: str,
    identifier: TargetIdentifier = Depends(get_target_identifier),
    engine: PolicyDiscoveryEngine = Depends(get_discovery_engine),
) -> DiscoveredDocumentsResponse:
    """Every policy document type that can be found and validated for `target`."""
    identity = await identifier.identify(target)
    documents = await engine.discover_all(identity.clean_domain)
    return DiscoveredDocumentsResponse(domain=identity.clean_domain, target=identity, documents=documents)
