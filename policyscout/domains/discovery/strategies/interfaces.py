"""
Common contract for discovery strategies.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Iterable, List, Optional, Sequence, TypeVar

from loguru import logger

from policyscout.core.config import settings
from policyscout.models.discovery import Candidate, DocumentType
from policyscout.scrapers.fetcher import PolicyFetcher

T = TypeVar("T")
R = TypeVar("R")


def normalize_domain(domain: str) -> str:
    """Bare lower-case host: scheme, path, port and leading ``www.`` removed."""
    value = domain.strip().lower()
    if "://" in value:
        value = value.split("://", 1)[1]
    value = value.split("/", 1)[0].split("?", 1)[0].split("#", 1)[0]
    value = value.split("@")[-1].split(":", 1)[0].strip(".")
    return value[4:] if value.startswith("www.") else value


def requested_types(document_types: Optional[Iterable[DocumentType]]) -> List[DocumentType]:
    if not document_types:
        return [DocumentType.PRIVACY]
    seen: List[DocumentType] = []
    for document_type in document_types:
        document_type = DocumentType(document_type)
        if document_type not in seen:
            seen.append(document_type)
    return seen


async def run_in_batches(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    *,
    batch_size: Optional[int] = None,
    stop_when: Optional[Callable[[List[R]], bool]] = None,
) -> List[R]:
    """
    Run `worker` over `items` in concurrent batches, each batch fully awaited.

    Stops after the first batch for which `stop_when(batch_results)` is true.
    """
    size = max(1, batch_size or settings.SCRAPER_BATCH_SIZE)
    results: List[R] = []
    for start in range(0, len(items), size):
        batch = await asyncio.gather(*(worker(item) for item in items[start : start + size]))
        results.extend(batch)
        if stop_when is not None and stop_when(list(batch)):
            break
    return results


class DiscoveryStrategy(ABC):
    """
    One way of finding document URLs for a domain.

    ``execute`` never raises: failures are logged and yield no candidates.
    """

    name: str = "strategy"

    def __init__(self, fetcher: PolicyFetcher) -> None:
        self.fetcher = fetcher

    async def execute(
        self,
        domain: str,
        document_types: Optional[Iterable[DocumentType]] = None,
    ) -> List[Candidate]:
        types = requested_types(document_types)
        bare = normalize_domain(domain)
        try:
            candidates = await self._discover(bare, types)
        except Exception as exc:
            logger.warning(f"Strategy {self.name} failed for {bare}: {exc!r}")
            return []

        wanted = set(types)
        candidates = [candidate for candidate in candidates if candidate.document_type in wanted]
        if candidates:
            logger.info(f"Strategy {self.name} found {len(candidates)} candidates for {bare}")
        else:
            logger.debug(f"Strategy {self.name} found nothing for {bare}")
        return candidates

    @abstractmethod
    async def _discover(self, domain: str, document_types: List[DocumentType]) -> List[Candidate]:
        """Strategy-specific lookup; may raise, ``execute`` contains the failure."""
