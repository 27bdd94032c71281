from __future__ import annotations

import asyncio
from typing import List, Optional

from loguru import logger

from policyscout.core.config import settings
from policyscout.domains.discovery.rules import SpecialDomainTable, load_special_domains, lookup_special_domain
from policyscout.domains.discovery.strategies.interfaces import DiscoveryStrategy
from policyscout.models.discovery import Candidate, CandidateSource, DocumentType
from policyscout.scrapers.fetcher import GOOGLEBOT_UA, REQUEST_ERRORS, PolicyFetcher, requires_bot_user_agent

SPECIAL_DOMAIN_CONFIDENCE = 95
MIN_VERIFIED_BYTES = 1000


class SpecialDomainStrategy(DiscoveryStrategy):
    """Known policy URLs for sites whose standard paths lead to login walls."""

    name = "special_domain"

    def __init__(self, fetcher: PolicyFetcher, special_domains: Optional[SpecialDomainTable] = None) -> None:
        super().__init__(fetcher)
        self.special_domains = (
            special_domains
            if special_domains is not None
            else load_special_domains(settings.DISCOVERY_SPECIAL_DOMAINS_FILE)
        )

    async def _discover(self, domain: str, document_types: List[DocumentType]) -> List[Candidate]:
        entry = lookup_special_domain(self.special_domains, domain)
        if not entry:
            return []

        checks = [
            self._verify(url, document_type)
            for document_type, url in entry.items()
            if document_type in document_types
        ]
        results = await asyncio.gather(*checks)
        return [candidate for candidate in results if candidate is not None]

    async def _verify(self, url: str, document_type: DocumentType) -> Optional[Candidate]:
        user_agent = GOOGLEBOT_UA if requires_bot_user_agent(url) else None
        try:
            response = await self.fetcher.request(
                "GET",
                url,
                user_agent=user_agent,
                timeout=settings.SCRAPER_PROBE_TIMEOUT,
            )
        except REQUEST_ERRORS as exc:
            logger.debug(f"Special domain URL failed: {url} ({exc!r})")
            return None

        if response.status_code != 200 or len(response.content) <= MIN_VERIFIED_BYTES:
            logger.info(
                f"Special domain URL {url} did not verify "
                f"(status {response.status_code}, {len(response.content)} bytes)"
            )
            return None

        return Candidate(
            url=url,
            source=CandidateSource.SPECIAL_DOMAIN,
            confidence=SPECIAL_DOMAIN_CONFIDENCE,
            document_type=document_type,
            method_detail="Verified special-domain URL",
        )
