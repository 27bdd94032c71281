from __future__ import annotations

from typing import List, Optional
from urllib.parse import parse_qs, quote_plus, urlparse

from loguru import logger

from policyscout.core.exceptions import FetchError
from policyscout.domains.discovery.rules import type_spec
from policyscout.domains.discovery.strategies.interfaces import DiscoveryStrategy
from policyscout.domains.discovery.validator import ContentValidator
from policyscout.models.discovery import Candidate, CandidateSource, DocumentType
from policyscout.scrapers.fetcher import REQUEST_ERRORS, PolicyFetcher, is_valid_policy_url
from policyscout.scrapers.html import extract_text, is_same_site, parse_html

DUCKDUCKGO_URL = "https://html.duckduckgo.com/html/?q={query}"
BING_URL = "https://www.bing.com/search?q={query}"
SEARCH_TIMEOUT = 10.0
MAX_RESULTS = 3
MAX_CONFIDENCE = 70
RANK_PENALTY = 10


def decode_result_href(href: str) -> Optional[str]:
    """Unwrap DuckDuckGo ``uddg=`` redirects; plain absolute URLs pass through."""
    href = href.strip()
    if "uddg=" in href:
        target = parse_qs(urlparse(href if "://" in href else f"https:{href}").query).get("uddg")
        return target[0] if target else None
    if href.startswith(("http://", "https://")):
        return href
    return None


def parse_duckduckgo_results(markup: str) -> List[str]:
    results = []
    for anchor in parse_html(markup).select(".result__a"):
        url = decode_result_href(anchor.get("href", ""))
        if url:
            results.append(url)
    return results


def parse_bing_results(markup: str) -> List[str]:
    results = []
    for anchor in parse_html(markup).select("li.b_algo h2 a"):
        url = decode_result_href(anchor.get("href", ""))
        if url:
            results.append(url)
    return results


class SearchFallbackStrategy(DiscoveryStrategy):
    """``site:`` searches on DuckDuckGo, then Bing; results are validated before use."""

    name = "search_fallback"

    def __init__(self, fetcher: PolicyFetcher, validator: Optional[ContentValidator] = None) -> None:
        super().__init__(fetcher)
        self.validator = validator or ContentValidator()

    async def _discover(self, domain: str, document_types: List[DocumentType]) -> List[Candidate]:
        candidates: List[Candidate] = []
        for document_type in document_types:
            candidates.extend(await self._search_type(domain, document_type))
        return candidates

    async def _search_type(self, domain: str, document_type: DocumentType) -> List[Candidate]:
        query = quote_plus(f"site:{domain} {type_spec(document_type).search_phrase}")

        results: List[str] = []
        for engine, template, parser in (
            ("DuckDuckGo", DUCKDUCKGO_URL, parse_duckduckgo_results),
            ("Bing", BING_URL, parse_bing_results),
        ):
            markup = await self._search(engine, template.format(query=query))
            if markup is None:
                continue
            results = [
                url for url in parser(markup) if is_same_site(domain, url) and is_valid_policy_url(url)
            ]
            if results:
                logger.info(f"{engine} returned {len(results)} results for {domain} ({document_type.value})")
                break

        candidates: List[Candidate] = []
        for rank, url in enumerate(results[:MAX_RESULTS]):
            candidate = await self._validate_result(url, rank, document_type)
            if candidate is not None:
                candidates.append(candidate)
        return candidates

    async def _search(self, engine: str, url: str) -> Optional[str]:
        try:
            response = await self.fetcher.request("GET", url, timeout=SEARCH_TIMEOUT)
        except REQUEST_ERRORS as exc:
            logger.warning(f"{engine} search failed: {exc!r}")
            return None
        if response.status_code != 200:
            logger.info(f"{engine} returned status {response.status_code}")
            return None
        return response.text

    async def _validate_result(self, url: str, rank: int, document_type: DocumentType) -> Optional[Candidate]:
        try:
            page = await self.fetcher.fetch(url, timeout=SEARCH_TIMEOUT, max_retries=0)
        except FetchError as exc:
            logger.debug(f"Search result {url} could not be fetched: {exc}")
            return None

        text = extract_text(page.text) if page.is_html else page.text
        result = self.validator.check(text, document_type, source=page.final_url)
        if not result.is_valid:
            logger.info(f"Search result {page.final_url} rejected: {', '.join(result.issues)}")
            return None

        return Candidate(
            url=page.final_url,
            source=CandidateSource.SEARCH_FALLBACK,
            confidence=min(result.confidence, MAX_CONFIDENCE) - RANK_PENALTY * rank,
            document_type=document_type,
            method_detail=f"Search result #{rank + 1}, validator confidence {result.confidence}",
        )
