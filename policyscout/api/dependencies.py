"""
FastAPI dependencies wiring the discovery components together.
"""

from fastapi import Depends, Request

from policyscout.domains.discovery import ContentValidator, PolicyDiscoveryEngine, TargetIdentifier
from policyscout.scrapers.fetcher import PolicyFetcher


def get_fetcher(request: Request) -> PolicyFetcher:
    """Application-wide fetcher; its rate limiter is shared by every request."""
    fetcher = getattr(request.app.state, "fetcher", None)
    if fetcher is None:
        fetcher = PolicyFetcher()
        request.app.state.fetcher = fetcher
    return fetcher


def get_content_validator() -> ContentValidator:
    return ContentValidator()


def get_discovery_engine(
    fetcher: PolicyFetcher = Depends(get_fetcher),
    validator: ContentValidator = Depends(get_content_validator),
) -> PolicyDiscoveryEngine:
    return PolicyDiscoveryEngine(fetcher, validator=validator)


def get_target_identifier(fetcher: PolicyFetcher = Depends(get_fetcher)) -> TargetIdentifier:
    return TargetIdentifier(fetcher)
