from __future__ import annotations

from typing import List, Optional

from loguru import logger

from policyscout.core.exceptions import FetchError
from policyscout.domains.discovery.rules import BOT_PRIORITY_PATHS, PolicyTypeSpec, type_spec
from policyscout.domains.discovery.strategies.interfaces import DiscoveryStrategy, run_in_batches
from policyscout.models.discovery import Candidate, CandidateSource, DocumentType
from policyscout.scrapers.fetcher import has_password_field, is_bot_user_agent, requires_bot_user_agent
from policyscout.scrapers.html import extract_title

DIRECT_FETCH_TIMEOUT = 12.0
BASE_CONFIDENCE = 75
MAX_CONFIDENCE = 98
MAX_RESULTS = 3

SMALL_SCAN_BYTES = 15_000
LARGE_SCAN_BYTES = 500_000
LARGE_BODY_BYTES = 100_000

LOGIN_INDICATORS = (
    "enter your password",
    "sign in to continue",
    "log in to continue",
    "create an account",
    "forgot password",
)


class DirectFetchStrategy(DiscoveryStrategy):
    """Full GETs of prioritized paths, accepted only when the body looks like the document."""

    name = "direct_fetch"

    async def _discover(self, domain: str, document_types: List[DocumentType]) -> List[Candidate]:
        use_bot = requires_bot_user_agent(domain)
        if use_bot:
            logger.info(f"DirectFetch: {domain} needs a crawler user agent")

        candidates: List[Candidate] = []
        for document_type in document_types:
            spec = type_spec(document_type)
            candidates.extend(await self._discover_type(domain, spec, use_bot))
        return candidates

    async def _discover_type(self, domain: str, spec: PolicyTypeSpec, use_bot: bool) -> List[Candidate]:
        if use_bot and spec.type == DocumentType.PRIVACY:
            for path in BOT_PRIORITY_PATHS:
                candidate = await self._try_url(f"https://www.{domain}{path}", spec)
                if candidate is not None:
                    return [candidate]

        urls: List[str] = []
        for path in spec.priority_paths:
            urls.append(f"https://{domain}{path}")
            urls.append(f"https://www.{domain}{path}")

        results = await run_in_batches(
            urls,
            lambda url: self._try_url(url, spec),
            stop_when=lambda batch: any(result is not None for result in batch),
        )
        valid = [candidate for candidate in results if candidate is not None]
        valid.sort(key=lambda candidate: candidate.confidence, reverse=True)
        return valid[:MAX_RESULTS]

    async def _try_url(self, url: str, spec: PolicyTypeSpec) -> Optional[Candidate]:
        try:
            result = await self.fetcher.fetch(url, timeout=DIRECT_FETCH_TIMEOUT, max_retries=1)
        except FetchError as exc:
            logger.debug(f"DirectFetch: {url} failed: {exc}")
            return None

        if result.status_code != 200:
            logger.debug(f"DirectFetch: {url} returned status {result.status_code}")
            return None

        bot_fetched = is_bot_user_agent(result.user_agent)
        body = result.text
        scan_size = LARGE_SCAN_BYTES if len(body) > LARGE_BODY_BYTES else SMALL_SCAN_BYTES
        scanned = body[:scan_size].lower()

        matched = [indicator for indicator in spec.indicators if indicator in scanned]
        required = 1 if bot_fetched else 2
        if len(matched) < required:
            logger.debug(
                f"DirectFetch: skipping {result.final_url}, {len(matched)}/{required} indicators "
                f"[scanned {min(scan_size, len(body))} of {len(body)} chars]"
            )
            return None

        login_matches = sum(1 for indicator in LOGIN_INDICATORS if indicator in scanned)
        if has_password_field(scanned):
            login_matches += 1
        if login_matches >= 2:
            logger.debug(f"DirectFetch: skipping {result.final_url}, looks like a login page")
            return None

        final_url = result.final_url.lower()
        confidence = BASE_CONFIDENCE
        if any(keyword in final_url for keyword in spec.url_keywords):
            confidence += 10
        if len(matched) >= 4:
            confidence += 5
        title = extract_title(body).lower()
        if title and any(keyword in title for keyword in spec.bare_keywords + spec.exact_phrases):
            confidence += 5
        if bot_fetched:
            confidence += 3

        logger.info(
            f"DirectFetch: found {spec.type.value} at {result.final_url} "
            f"(confidence {min(confidence, MAX_CONFIDENCE)}, indicators {len(matched)})"
        )
        return Candidate(
            url=result.final_url,
            source=CandidateSource.DIRECT_FETCH,
            confidence=min(confidence, MAX_CONFIDENCE),
            document_type=spec.type,
            method_detail="Direct GET with bot UA" if bot_fetched else "Direct GET request",
        )
