from __future__ import annotations

from typing import Dict, List, Optional

from loguru import logger

from policyscout.core.exceptions import FetchError
from policyscout.domains.discovery.ranking import LinkFeatures, LinkScorer, scorer_bonus
from policyscout.domains.discovery.rules import LEGAL_HUB_PATHS, classify_link, is_legal_hub, type_spec
from policyscout.domains.discovery.strategies.interfaces import DiscoveryStrategy
from policyscout.models.discovery import Candidate, CandidateSource, DocumentType, dedup_key
from policyscout.scrapers.fetcher import PolicyFetcher, is_valid_policy_url
from policyscout.scrapers.html import LinkRef, iter_links, parse_html

HOMEPAGE_TIMEOUT = 15.0
HUB_TIMEOUT = 10.0

FOOTER_BASE_CONFIDENCE = 60
HUB_BASE_CONFIDENCE = 65
FOOTER_BONUS = 20
NAV_BONUS = 10
EXACT_PHRASE_BONUS = 15
BARE_KEYWORD_BONUS = 10
MAX_CONFIDENCE = 95


def text_bonus(text: str, document_type: DocumentType) -> int:
    spec = type_spec(document_type)
    normalized = " ".join(text.lower().split())
    if normalized in spec.exact_phrases:
        return EXACT_PHRASE_BONUS
    if normalized in spec.bare_keywords:
        return BARE_KEYWORD_BONUS
    return 0


class HomepageLinkStrategy(DiscoveryStrategy):
    """
    Scrapes the homepage for policy links (footer links score highest) and, when
    a requested type is still missing, crawls the usual legal hub pages.
    """

    name = "homepage_links"

    def __init__(self, fetcher: PolicyFetcher, link_scorer: Optional[LinkScorer] = None) -> None:
        super().__init__(fetcher)
        self.link_scorer = link_scorer

    async def _discover(self, domain: str, document_types: List[DocumentType]) -> List[Candidate]:
        found: Dict[str, Candidate] = {}

        homepage = f"https://{domain}"
        try:
            page = await self.fetcher.fetch(homepage, timeout=HOMEPAGE_TIMEOUT, max_retries=1)
        except FetchError as exc:
            logger.info(f"Homepage fetch failed for {domain}: {exc}")
        else:
            for link in iter_links(parse_html(page.text), page.final_url):
                for candidate in self._score_footer_link(link, page.final_url, document_types):
                    self._keep_best(found, candidate)

        covered = {candidate.document_type for candidate in found.values()}
        missing = [document_type for document_type in document_types if document_type not in covered]
        if missing:
            for candidate in await self._crawl_legal_hubs(domain, missing):
                self._keep_best(found, candidate)

        return sorted(found.values(), key=lambda candidate: candidate.confidence, reverse=True)

    def _score_footer_link(
        self,
        link: LinkRef,
        base_url: str,
        document_types: List[DocumentType],
    ) -> List[Candidate]:
        if not is_valid_policy_url(link.url) or is_legal_hub(link.url):
            return []

        text = link.text.lower()
        href = link.href.lower()
        if link.context == "body":
            # body links need a matching text and a policy-looking href
            matched = [
                document_type
                for document_type in classify_link(text, "", document_types)
                if classify_link("", href, [document_type]) or "legal" in href or "policy" in href
            ]
        else:
            matched = classify_link(text, href, document_types)

        candidates = []
        for document_type in matched:
            confidence = FOOTER_BASE_CONFIDENCE
            if link.context == "footer":
                confidence += FOOTER_BONUS
            elif link.context == "nav":
                confidence += NAV_BONUS
            confidence += text_bonus(link.text, document_type)
            confidence += scorer_bonus(
                self.link_scorer,
                LinkFeatures(text=link.text, href=link.href, context=link.context, base_url=base_url),
            )
            candidates.append(
                Candidate(
                    url=link.url,
                    source=CandidateSource.FOOTER_LINK,
                    confidence=min(confidence, MAX_CONFIDENCE),
                    document_type=document_type,
                    method_detail=f'Found link "{link.text}" in {link.context}',
                )
            )
        return candidates

    async def _crawl_legal_hubs(self, domain: str, document_types: List[DocumentType]) -> List[Candidate]:
        found: Dict[DocumentType, Candidate] = {}

        for path in LEGAL_HUB_PATHS:
            hub_url = f"https://{domain}{path}"
            try:
                page = await self.fetcher.fetch(hub_url, timeout=HUB_TIMEOUT, max_retries=0)
            except FetchError as exc:
                logger.debug(f"Legal hub {hub_url} unavailable: {exc}")
                continue

            for link in iter_links(parse_html(page.text), page.final_url):
                if not is_valid_policy_url(link.url) or is_legal_hub(link.url):
                    continue
                for document_type in classify_link(link.text.lower(), link.href.lower(), document_types):
                    confidence = min(HUB_BASE_CONFIDENCE + text_bonus(link.text, document_type), MAX_CONFIDENCE)
                    existing = found.get(document_type)
                    if existing is not None and existing.confidence >= confidence:
                        continue
                    found[document_type] = Candidate(
                        url=link.url,
                        source=CandidateSource.LEGAL_PAGE,
                        confidence=confidence,
                        document_type=document_type,
                        method_detail=f'Found link "{link.text}" on legal hub {path}',
                    )

            if all(document_type in found for document_type in document_types):
                logger.info(f"Legal hub {hub_url} covered every requested type")
                break

        return list(found.values())

    @staticmethod
    def _keep_best(found: Dict[str, Candidate], candidate: Candidate) -> None:
        key = f"{candidate.document_type.value}|{dedup_key(candidate.url)}"
        existing = found.get(key)
        if existing is None or candidate.confidence > existing.confidence:
            found[key] = candidate
