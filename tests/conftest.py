from __future__ import annotations

from typing import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from policyscout.api.dependencies import get_discovery_engine, get_fetcher, get_target_identifier
from policyscout.domains.discovery import PolicyDiscoveryEngine, TargetIdentifier
from policyscout.main import app
from policyscout.scrapers.fetcher import PolicyFetcher
from tests.utils.fakes import FakeDeepScanner
from tests.utils.http import MockSite, make_fetcher


@pytest.fixture
def mock_site() -> MockSite:
    return MockSite()


@pytest.fixture
def fetcher(mock_site: MockSite) -> PolicyFetcher:
    return make_fetcher(mock_site)


@pytest.fixture
def discovery_engine(fetcher: PolicyFetcher) -> PolicyDiscoveryEngine:
    """Engine with no strategies; tests append the fakes they need."""
    return PolicyDiscoveryEngine(
        fetcher,
        strategies=[],
        multi_strategies=[],
        special_domains={},
        deep_scanner=FakeDeepScanner(),
    )


@pytest_asyncio.fixture
async def async_client(
    fetcher: PolicyFetcher,
    discovery_engine: PolicyDiscoveryEngine,
) -> AsyncIterator[AsyncClient]:
    app.dependency_overrides[get_fetcher] = lambda: fetcher
    app.dependency_overrides[get_target_identifier] = lambda: TargetIdentifier(fetcher, verify_dns=False)
    app.dependency_overrides[get_discovery_engine] = lambda: discovery_engine

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    await fetcher.client.aclose()
