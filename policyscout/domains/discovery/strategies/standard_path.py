from __future__ import annotations

from typing import List, Optional
from urllib.parse import urlparse

from loguru import logger

from policyscout.core.config import settings
from policyscout.domains.discovery.rules import PolicyTypeSpec, type_spec
from policyscout.domains.discovery.strategies.interfaces import DiscoveryStrategy, run_in_batches
from policyscout.models.discovery import Candidate, CandidateSource, DocumentType
from policyscout.scrapers.fetcher import REQUEST_ERRORS, is_valid_policy_url

BASE_CONFIDENCE = 65
KEYWORD_BONUS = 5


class StandardPathStrategy(DiscoveryStrategy):
    """HEAD probes over the well-known paths for each document type."""

    name = "standard_path"

    async def _discover(self, domain: str, document_types: List[DocumentType]) -> List[Candidate]:
        candidates: List[Candidate] = []
        for document_type in document_types:
            spec = type_spec(document_type)
            urls = [f"https://{domain}{path}" for path in spec.paths]
            results = await run_in_batches(
                urls,
                lambda url, spec=spec: self._probe(url, spec),
                stop_when=lambda batch: any(result is not None for result in batch),
            )
            candidates.extend(candidate for candidate in results if candidate is not None)
        return candidates

    async def _probe(self, url: str, spec: PolicyTypeSpec) -> Optional[Candidate]:
        try:
            response = await self.fetcher.request(
                "HEAD",
                url,
                timeout=settings.SCRAPER_PROBE_TIMEOUT,
                follow_redirects=True,
            )
        except REQUEST_ERRORS as exc:
            logger.debug(f"StandardPath: HEAD {url} failed: {exc!r}")
            return None

        final_url = str(response.url)
        content_type = response.headers.get("content-type", "").lower()
        if response.status_code != 200 or "text/html" not in content_type:
            return None
        if not is_valid_policy_url(final_url):
            logger.debug(f"StandardPath: {url} redirected to auth page {final_url}")
            return None

        confidence = BASE_CONFIDENCE
        final_path = urlparse(final_url).path.lower()
        if any(keyword in final_path for keyword in spec.url_keywords):
            confidence += KEYWORD_BONUS

        return Candidate(
            url=final_url,
            source=CandidateSource.STANDARD_PATH,
            confidence=confidence,
            document_type=spec.type,
            method_detail=f"HEAD probe of {urlparse(url).path}",
        )
