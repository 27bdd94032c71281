from __future__ import annotations

import pytest

from policyscout.core.exceptions import TargetResolutionError
from policyscout.domains.discovery import TargetIdentifier
from policyscout.domains.discovery.identifier import guess_domain, parse_domain
from tests.utils.http import MockSite, make_fetcher
from tests.utils.pages import duckduckgo_results_html


async def _resolves(domain: str) -> bool:
    return True


async def _never_resolves(domain: str) -> bool:
    return False


def _identifier(site: MockSite, resolver=_resolves) -> TargetIdentifier:
    return TargetIdentifier(make_fetcher(site), verify_dns=True, dns_resolver=resolver)


def test_parse_domain() -> None:
    assert parse_domain("https://www.Example.com/privacy?x=1") == "example.com"
    assert parse_domain("shop.example.co.uk") == "shop.example.co.uk"
    assert parse_domain("Example Corp") is None
    assert parse_domain("http://") is None


def test_guess_domain_strips_punctuation() -> None:
    assert guess_domain("Acme Widgets, Inc.") == "acmewidgetsinc.com"


@pytest.mark.asyncio
async def test_url_input_resolves_directly() -> None:
    site = MockSite()

    identity = await _identifier(site).identify("  https://www.Example.com/legal  ")

    assert identity.clean_domain == "example.com"
    assert identity.resolved_via == "url"
    assert identity.original_input == "https://www.Example.com/legal"
    assert site.requests == []


@pytest.mark.asyncio
async def test_bare_hostname_resolves_as_domain() -> None:
    identity = await _identifier(MockSite()).identify("www.example.org")

    assert identity.clean_domain == "example.org"
    assert identity.resolved_via == "domain"


@pytest.mark.asyncio
async def test_known_company_needs_no_network() -> None:
    site = MockSite()

    identity = await _identifier(site).identify("Net flix")

    assert identity.clean_domain == "netflix.com"
    assert identity.resolved_via == "known_company"
    assert site.requests == []


@pytest.mark.asyncio
async def test_company_name_resolved_by_search() -> None:
    site = MockSite().add(
        "https://html.duckduckgo.com/html/",
        duckduckgo_results_html("https://www.acmewidgets.io/about"),
    )

    identity = await _identifier(site).identify("Acme Widgets")

    assert identity.clean_domain == "acmewidgets.io"
    assert identity.resolved_via == "search"


@pytest.mark.asyncio
async def test_company_name_falls_back_to_guess() -> None:
    identity = await _identifier(MockSite()).identify("Acme Widgets")

    assert identity.clean_domain == "acmewidgets.com"
    assert identity.resolved_via == "guess"


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["", "   ", "!!!", "http://"])
async def test_unresolvable_input_is_rejected(raw: str) -> None:
    with pytest.raises(TargetResolutionError):
        await _identifier(MockSite()).identify(raw)


@pytest.mark.asyncio
async def test_domain_that_does_not_resolve_is_rejected() -> None:
    with pytest.raises(TargetResolutionError):
        await _identifier(MockSite(), resolver=_never_resolves).identify("example.invalid")


@pytest.mark.asyncio
async def test_dns_check_can_be_disabled() -> None:
    identifier = TargetIdentifier(make_fetcher(MockSite()), verify_dns=False, dns_resolver=_never_resolves)

    identity = await identifier.identify("example.invalid")

    assert identity.clean_domain == "example.invalid"
