from __future__ import annotations

from typing import Dict, List, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from loguru import logger

from policyscout.core.exceptions import FetchError
from policyscout.domains.discovery.rules import is_legal_hub, matches_type, type_spec
from policyscout.domains.discovery.strategies.interfaces import DiscoveryStrategy
from policyscout.models.discovery import Candidate, CandidateSource, DocumentType
from policyscout.scrapers.fetcher import is_valid_policy_url
from policyscout.scrapers.html import is_same_site

SITEMAP_TIMEOUT = 10.0
SITEMAP_ACCEPT = "application/xml,text/xml;q=0.9,*/*;q=0.8"
DEFAULT_SITEMAP_PATHS = ("/sitemap.xml", "/sitemap_index.xml", "/sitemap-index.xml")
MAX_CHILD_SITEMAPS = 5
CHILD_HINTS = ("legal", "policy", "policies", "privacy", "page", "static", "misc")

BASE_CONFIDENCE = 45
SEGMENT_BONUS = 10


def parse_robots_sitemaps(robots_txt: str) -> List[str]:
    sitemaps = []
    for line in robots_txt.splitlines():
        key, _, value = line.partition(":")
        if key.strip().lower() == "sitemap" and value.strip():
            sitemaps.append(value.strip())
    return sitemaps


def parse_sitemap(xml: str) -> Tuple[List[str], List[str]]:
    """(page URLs, child sitemap URLs) of a sitemap or sitemap index."""
    soup = BeautifulSoup(xml, "xml")
    pages: List[str] = []
    children: List[str] = []
    for loc in soup.find_all("loc"):
        value = loc.get_text(strip=True)
        if not value:
            continue
        parent = loc.parent.name if loc.parent is not None else ""
        if parent == "sitemap":
            children.append(value)
        else:
            pages.append(value)
    return pages, children


class SitemapStrategy(DiscoveryStrategy):
    """Looks for policy URLs in robots.txt-declared and conventional sitemaps."""

    name = "sitemap"

    async def _discover(self, domain: str, document_types: List[DocumentType]) -> List[Candidate]:
        for sitemap_url in await self._sitemap_urls(domain):
            pages = await self._collect_pages(sitemap_url)
            candidates = self._match(domain, pages, document_types, sitemap_url)
            if candidates:
                logger.info(f"Sitemap {sitemap_url} listed {len(candidates)} policy URLs")
                return candidates
        return []

    async def _sitemap_urls(self, domain: str) -> List[str]:
        urls: List[str] = []
        try:
            robots = await self.fetcher.fetch(
                f"https://{domain}/robots.txt",
                timeout=SITEMAP_TIMEOUT,
                max_retries=0,
                accept="text/plain,*/*;q=0.8",
            )
        except FetchError as exc:
            logger.debug(f"robots.txt unavailable for {domain}: {exc}")
        else:
            urls.extend(parse_robots_sitemaps(robots.text))

        for path in DEFAULT_SITEMAP_PATHS:
            url = f"https://{domain}{path}"
            if url not in urls:
                urls.append(url)
        return urls

    async def _fetch_xml(self, url: str) -> str:
        result = await self.fetcher.fetch(
            url,
            timeout=SITEMAP_TIMEOUT,
            max_retries=0,
            correct_locale=False,
            accept=SITEMAP_ACCEPT,
        )
        return result.text

    async def _collect_pages(self, sitemap_url: str) -> List[str]:
        try:
            pages, children = parse_sitemap(await self._fetch_xml(sitemap_url))
        except FetchError as exc:
            logger.debug(f"Sitemap {sitemap_url} unavailable: {exc}")
            return []

        if children:
            ordered = sorted(
                children,
                key=lambda child: 0 if any(hint in child.lower() for hint in CHILD_HINTS) else 1,
            )
            for child in ordered[:MAX_CHILD_SITEMAPS]:
                try:
                    child_pages, _ = parse_sitemap(await self._fetch_xml(child))
                except FetchError as exc:
                    logger.debug(f"Child sitemap {child} unavailable: {exc}")
                    continue
                pages.extend(child_pages)
        return pages

    def _match(
        self,
        domain: str,
        pages: List[str],
        document_types: List[DocumentType],
        sitemap_url: str,
    ) -> List[Candidate]:
        best: Dict[DocumentType, Candidate] = {}
        for page in pages:
            if not is_same_site(domain, page):
                logger.debug(f"Sitemap {sitemap_url}: ignoring off-site URL {page}")
                continue
            if not is_valid_policy_url(page) or is_legal_hub(page):
                continue
            path = urlparse(page).path
            last_segment = path.rstrip("/").rsplit("/", 1)[-1].lower()
            for document_type in document_types:
                if not matches_type(path, document_type):
                    continue
                confidence = BASE_CONFIDENCE
                if any(keyword.strip("/-") in last_segment for keyword in type_spec(document_type).url_keywords):
                    confidence += SEGMENT_BONUS
                existing = best.get(document_type)
                if existing is None or confidence > existing.confidence:
                    best[document_type] = Candidate(
                        url=page,
                        source=CandidateSource.SITEMAP,
                        confidence=confidence,
                        document_type=document_type,
                        method_detail=f"Listed in {sitemap_url}",
                    )
        return list(best.values())
