"""
Bounded refinement from hub pages to the actual document.

Some resolved pages (a German ``/datenschutz/`` landing page, a "privacy center")
only link to the real policy. The scanner follows more specific same-site links
and keeps a page only when it validates with strictly higher confidence.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple
from urllib.parse import unquote

from loguru import logger

from policyscout.core.exceptions import FetchError
from policyscout.domains.discovery.rules import is_legal_hub, matches_type
from policyscout.domains.discovery.validator import ContentValidator
from policyscout.models.discovery import DeepScanResult, DocumentType, dedup_key
from policyscout.scrapers.fetcher import PolicyFetcher, is_valid_policy_url
from policyscout.scrapers.html import extract_text, extract_title, is_same_site, iter_links, parse_html

LINKS_PER_LEVEL = 5
PAGE_TIMEOUT = 12.0

SPECIFICITY_SIGNALS: Tuple[re.Pattern[str], ...] = tuple(
    re.compile(source, re.IGNORECASE)
    for source in (
        r"erkl(ä|ae)rung",
        r"policy",
        r"notice",
        r"statement",
        r"richtlinie",
        r"hinweise",
        r"\bfull\b",
        r"complete",
        r"detailed",
        r"(19|20)\d{2}",
        r"\bv\d+\b",
    )
)


def specificity(*values: str) -> int:
    """Number of distinct specificity signals present in the given strings."""
    haystack = " ".join(unquote(value) for value in values)
    return sum(1 for signal in SPECIFICITY_SIGNALS if signal.search(haystack))


@dataclass
class _Page:
    url: str
    markup: str
    specificity: int


class DeepLinkScanner:
    def __init__(self, fetcher: PolicyFetcher, validator: Optional[ContentValidator] = None) -> None:
        self.fetcher = fetcher
        self.validator = validator or ContentValidator()

    async def refine(
        self,
        seed_url: str,
        domain: str,
        max_depth: int = 2,
        document_type: DocumentType = DocumentType.PRIVACY,
    ) -> Optional[DeepScanResult]:
        """
        Best nested page whose validator confidence beats the seed's, or None.

        Every level validates at most five links; no URL is fetched twice.
        """
        try:
            seed = await self.fetcher.fetch(seed_url, timeout=PAGE_TIMEOUT, max_retries=0)
        except FetchError as exc:
            logger.info(f"Deep scan: seed {seed_url} unavailable: {exc}")
            return None

        baseline = self.validator.validate(extract_text(seed.text), document_type).confidence
        visited: Set[str] = {dedup_key(seed_url), dedup_key(seed.final_url)}
        frontier = [_Page(seed.final_url, seed.text, specificity(seed.final_url, extract_title(seed.text)))]
        best: Optional[DeepScanResult] = None

        logger.info(f"Deep scan: {seed.final_url} baseline confidence {baseline}")
        for depth in range(1, max(0, max_depth) + 1):
            links = self._nested_links(frontier, domain, document_type, visited)
            if not links:
                break
            visited.update(dedup_key(url) for url, _ in links)

            results = await asyncio.gather(*(self._evaluate(url, document_type) for url, _ in links))
            next_frontier: List[_Page] = []
            for (url, link_specificity), evaluated in zip(links, results):
                if evaluated is None:
                    continue
                final_url, markup, confidence, valid = evaluated
                visited.add(dedup_key(final_url))
                next_frontier.append(_Page(final_url, markup, link_specificity))

                floor = best.confidence if best is not None else baseline
                if valid and confidence > floor:
                    best = DeepScanResult(
                        url=final_url,
                        confidence=confidence,
                        reason=f"more specific page at depth {depth} (confidence {confidence} > {floor})",
                        depth=depth,
                    )
            frontier = next_frontier

        if best is not None:
            logger.info(f"Deep scan: found better page {best.url} (confidence {best.confidence})")
        return best

    def _nested_links(
        self,
        pages: List[_Page],
        domain: str,
        document_type: DocumentType,
        visited: Set[str],
    ) -> List[Tuple[str, int]]:
        selected: List[Tuple[str, int]] = []
        seen: Set[str] = set()
        for page in pages:
            for link in iter_links(parse_html(page.markup), page.url):
                key = dedup_key(link.url)
                if key in visited or key in seen:
                    continue
                if not is_same_site(domain, link.url) or not is_valid_policy_url(link.url):
                    continue
                if is_legal_hub(link.url):
                    continue
                if not (matches_type(link.text, document_type) or matches_type(link.href, document_type)):
                    continue
                link_specificity = specificity(link.href, link.text)
                if link_specificity <= page.specificity:
                    continue
                seen.add(key)
                selected.append((link.url, link_specificity))

        selected.sort(key=lambda item: item[1], reverse=True)
        return selected[:LINKS_PER_LEVEL]

    async def _evaluate(self, url: str, document_type: DocumentType) -> Optional[Tuple[str, str, int, bool]]:
        try:
            page = await self.fetcher.fetch(url, timeout=PAGE_TIMEOUT, max_retries=0)
        except FetchError as exc:
            logger.debug(f"Deep scan: {url} unavailable: {exc}")
            return None
        result = self.validator.validate(extract_text(page.text), document_type)
        logger.debug(f"Deep scan: {page.final_url} confidence {result.confidence} valid={result.is_valid}")
        return page.final_url, page.text, result.confidence, result.is_valid
