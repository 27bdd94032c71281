"""
Discovery engine: runs the strategies in order, ranks their candidates and
refines the winner.
"""

from __future__ import annotations

import time
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from policyscout.core.config import settings
from policyscout.core.exceptions import FetchError, TargetResolutionError
from policyscout.domains.discovery.deep_link_scanner import DeepLinkScanner
from policyscout.domains.discovery.ranking import LinkScorer
from policyscout.domains.discovery.rules import (
    SpecialDomainTable,
    display_name,
    load_special_domains,
    lookup_special_domain,
)
from policyscout.domains.discovery.strategies import (
    DiscoveryStrategy,
    SearchFallbackStrategy,
    default_strategies,
    multi_document_strategies,
    normalize_domain,
)
from policyscout.domains.discovery.validator import ContentValidator
from policyscout.models.discovery import (
    DOCUMENT_TYPE_PRIORITY,
    Candidate,
    CandidateSource,
    DiscoveredDocument,
    DiscoveryReport,
    DocumentType,
)
from policyscout.scrapers.fetcher import PolicyFetcher
from policyscout.scrapers.html import extract_text

SPECIAL_DOMAIN_BYPASS_CONFIDENCE = 99
PREVALIDATED_SOURCES = frozenset({CandidateSource.SPECIAL_DOMAIN, CandidateSource.SEARCH_FALLBACK})
SEARCH_DOCUMENT_TYPES = frozenset({DocumentType.PRIVACY, DocumentType.TERMS})


def rank_candidates(candidates: Iterable[Candidate]) -> List[Candidate]:
    """Highest confidence first; ties keep arrival order; one entry per canonical URL."""
    ranked = sorted(candidates, key=lambda candidate: candidate.confidence, reverse=True)
    unique: List[Candidate] = []
    seen = set()
    for candidate in ranked:
        if candidate.key in seen:
            continue
        seen.add(candidate.key)
        unique.append(candidate)
    return unique


class PolicyDiscoveryEngine:
    """Finds the most likely policy document URL(s) for a domain."""

    def __init__(
        self,
        fetcher: Optional[PolicyFetcher] = None,
        *,
        strategies: Optional[Sequence[DiscoveryStrategy]] = None,
        multi_strategies: Optional[Sequence[DiscoveryStrategy]] = None,
        validator: Optional[ContentValidator] = None,
        deep_scanner: Optional[DeepLinkScanner] = None,
        special_domains: Optional[SpecialDomainTable] = None,
        link_scorer: Optional[LinkScorer] = None,
        early_stop_confidence: Optional[int] = None,
        deep_scan_depth: Optional[int] = None,
    ) -> None:
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or PolicyFetcher()
        self.validator = validator or ContentValidator()
        self.special_domains = (
            special_domains
            if special_domains is not None
            else load_special_domains(settings.DISCOVERY_SPECIAL_DOMAINS_FILE)
        )
        self.strategies: List[DiscoveryStrategy] = list(
            strategies
            if strategies is not None
            else default_strategies(self.fetcher, validator=self.validator, link_scorer=link_scorer)
        )
        self.multi_strategies: List[DiscoveryStrategy] = list(
            multi_strategies
            if multi_strategies is not None
            else multi_document_strategies(
                self.fetcher,
                validator=self.validator,
                link_scorer=link_scorer,
                special_domains=self.special_domains,
            )
        )
        self.deep_scanner = deep_scanner or DeepLinkScanner(self.fetcher, self.validator)
        self.early_stop_confidence = (
            settings.DISCOVERY_EARLY_STOP_CONFIDENCE if early_stop_confidence is None else early_stop_confidence
        )
        self.deep_scan_depth = settings.DISCOVERY_DEEP_SCAN_DEPTH if deep_scan_depth is None else deep_scan_depth

    async def close(self) -> None:
        if self._owns_fetcher:
            await self.fetcher.close()

    async def discover(
        self,
        domain: str,
        document_type: DocumentType = DocumentType.PRIVACY,
    ) -> Tuple[Optional[Candidate], bool]:
        """``(candidate, True)`` for the best URL, ``(None, False)`` when nothing was found."""
        report = await self.discover_with_report(domain, document_type)
        return report.candidate, report.found

    async def discover_with_report(
        self,
        domain: str,
        document_type: DocumentType = DocumentType.PRIVACY,
    ) -> DiscoveryReport:
        started = time.perf_counter()
        document_type = DocumentType(document_type)
        bare = self._bare_domain(domain)
        report = DiscoveryReport(domain=bare, document_type=document_type)

        logger.info(f"Starting {document_type.value} discovery for {bare}")

        special = lookup_special_domain(self.special_domains, bare)
        if special and document_type in special:
            candidate = Candidate(
                url=special[document_type],
                source=CandidateSource.SPECIAL_DOMAIN,
                confidence=SPECIAL_DOMAIN_BYPASS_CONFIDENCE,
                document_type=document_type,
                method_detail="Known special-domain URL",
            )
            logger.info(f"Special domain {bare}: using {candidate.url}")
            report.candidate = candidate
            report.candidates = [candidate]
            report.duration_ms = _elapsed_ms(started)
            return report

        accumulated: List[Candidate] = []
        for strategy in self.strategies:
            logger.info(f"Running strategy {strategy.name} for {bare}")
            candidates = await strategy.execute(bare, [document_type])
            report.strategies_run.append(strategy.name)
            accumulated.extend(candidates)

            if any(candidate.confidence >= self.early_stop_confidence for candidate in accumulated):
                logger.info(
                    f"High-confidence match (>= {self.early_stop_confidence}) after {strategy.name}, stopping early"
                )
                report.early_stopped = True
                break

        ranked = rank_candidates(accumulated)
        report.candidates = ranked
        if not ranked:
            logger.info(f"No {document_type.value} candidates for {bare}")
            report.duration_ms = _elapsed_ms(started)
            return report

        best = ranked[0]
        if document_type == DocumentType.PRIVACY and self.deep_scan_depth > 0:
            refined = await self._refine(best, bare)
            if refined is not None:
                best = refined
                report.refined = True

        logger.info(f"Selected {best.url} for {bare} ({best.source.value}, confidence {best.confidence})")
        report.candidate = best
        report.duration_ms = _elapsed_ms(started)
        return report

    async def discover_all(
        self,
        domain: str,
        document_types: Optional[Iterable[DocumentType]] = None,
    ) -> List[DiscoveredDocument]:
        """At most one validated document per type, ordered by type priority."""
        started = time.perf_counter()
        bare = self._bare_domain(domain)
        wanted = [DocumentType(t) for t in document_types] if document_types else list(DOCUMENT_TYPE_PRIORITY)
        found: Dict[DocumentType, DiscoveredDocument] = {}

        logger.info(f"Starting multi-document discovery for {bare}: {[t.value for t in wanted]}")
        for strategy in self.multi_strategies:
            missing = [document_type for document_type in wanted if document_type not in found]
            if isinstance(strategy, SearchFallbackStrategy):
                missing = [document_type for document_type in missing if document_type in SEARCH_DOCUMENT_TYPES]
            if not missing:
                continue

            candidates = await strategy.execute(bare, missing)
            for document_type in missing:
                typed = rank_candidates(c for c in candidates if c.document_type == document_type)
                for candidate in typed:
                    if candidate.source in PREVALIDATED_SOURCES or await self._content_is_valid(candidate):
                        found[document_type] = DiscoveredDocument(
                            type=document_type,
                            display_name=display_name(document_type),
                            url=candidate.url,
                            source=candidate.source,
                            confidence=candidate.confidence,
                        )
                        logger.info(f"Validated {document_type.value} for {bare}: {candidate.url}")
                        break

        privacy = found.get(DocumentType.PRIVACY)
        if privacy is not None and self.deep_scan_depth > 0:
            found[DocumentType.PRIVACY] = await self._refine_document(privacy, bare)

        documents = [found[document_type] for document_type in DOCUMENT_TYPE_PRIORITY if document_type in found]
        logger.info(
            f"Multi-document discovery for {bare} found {len(documents)} documents in {_elapsed_ms(started)}ms"
        )
        return documents

    async def _refine(self, best: Candidate, domain: str) -> Optional[Candidate]:
        try:
            result = await self.deep_scanner.refine(best.url, domain, self.deep_scan_depth, best.document_type)
        except Exception as exc:
            logger.warning(f"Deep scan failed for {best.url}: {exc!r}")
            return None

        if result is None or result.confidence <= best.confidence:
            if result is not None:
                logger.info(
                    f"Deep scan result {result.url} ({result.confidence}) does not beat {best.url} ({best.confidence})"
                )
            return None
        return best.refined(result.url, result.confidence, result.reason)

    async def _refine_document(self, document: DiscoveredDocument, domain: str) -> DiscoveredDocument:
        try:
            result = await self.deep_scanner.refine(document.url, domain, self.deep_scan_depth, document.type)
        except Exception as exc:
            logger.warning(f"Deep scan failed for {document.url}: {exc!r}")
            return document

        if result is None or result.confidence <= (document.confidence or 0):
            return document
        logger.info(f"Deep scan found better {document.type.value} URL: {result.url} ({result.confidence})")
        return document.model_copy(
            update={
                "url": result.url,
                "confidence": result.confidence,
                "source": CandidateSource.CONTENT_ANALYSIS,
            }
        )

    async def _content_is_valid(self, candidate: Candidate) -> bool:
        try:
            page = await self.fetcher.fetch(candidate.url)
        except FetchError as exc:
            logger.debug(f"Validation fetch failed for {candidate.url}: {exc}")
            return False
        text = extract_text(page.text) if page.is_html else page.text
        result = self.validator.check(text, candidate.document_type, source=page.final_url)
        if not result.is_valid:
            logger.info(f"{candidate.url} failed {candidate.document_type.value} validation: {result.issues}")
        return result.is_valid

    @staticmethod
    def _bare_domain(domain: str) -> str:
        bare = normalize_domain(domain or "")
        if not bare:
            raise TargetResolutionError(f"Cannot discover policies for empty domain {domain!r}")
        return bare


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
