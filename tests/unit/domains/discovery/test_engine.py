from __future__ import annotations

import httpx
import pytest

from policyscout.core.exceptions import TargetResolutionError
from policyscout.domains.discovery import PolicyDiscoveryEngine, rank_candidates
from policyscout.domains.discovery.strategies import DirectFetchStrategy, default_strategies
from policyscout.models import CandidateSource, DeepScanResult, DocumentType
from tests.utils.fakes import (
    FailingStrategy,
    FakeDeepScanner,
    FakeSearch,
    FakeStrategy,
    KeywordValidator,
    make_candidate,
)
from tests.utils.http import XML, MockSite, make_fetcher
from tests.utils.pages import homepage_html, sitemap_xml


def _engine(site: MockSite | None = None, **kwargs) -> PolicyDiscoveryEngine:
    kwargs.setdefault("special_domains", {})
    kwargs.setdefault("deep_scanner", FakeDeepScanner())
    return PolicyDiscoveryEngine(make_fetcher(site or MockSite()), **kwargs)


def test_rank_candidates_orders_by_confidence_and_deduplicates() -> None:
    first = make_candidate("https://example.com/privacy", 70)
    duplicate = make_candidate("HTTPS://Example.com/privacy/", 60, source=CandidateSource.SITEMAP)
    best = make_candidate("https://example.com/legal/privacy", 90)
    tie = make_candidate("https://example.com/privacy-policy", 70)

    ranked = rank_candidates([first, duplicate, best, tie])

    assert [candidate.url for candidate in ranked] == [
        "https://example.com/legal/privacy",
        "https://example.com/privacy",
        "https://example.com/privacy-policy",
    ]


def test_default_strategy_order_is_explicit() -> None:
    strategies = default_strategies(make_fetcher(MockSite()))

    assert [strategy.name for strategy in strategies] == [
        "homepage_links",
        "direct_fetch",
        "standard_path",
        "sitemap",
        "search_fallback",
    ]


@pytest.mark.asyncio
async def test_special_domain_bypasses_strategies() -> None:
    strategy = FakeStrategy("never", [make_candidate("https://facebook.com/other", 50)])
    scanner = FakeDeepScanner()
    engine = PolicyDiscoveryEngine(
        make_fetcher(MockSite()),
        strategies=[strategy],
        deep_scanner=scanner,
    )

    candidate, found = await engine.discover("https://www.facebook.com/")

    assert found is True
    assert candidate.url == "https://www.facebook.com/privacy/policy/"
    assert candidate.source == CandidateSource.SPECIAL_DOMAIN
    assert candidate.confidence == 99
    assert strategy.calls == []
    assert scanner.calls == []


@pytest.mark.asyncio
async def test_special_domain_without_requested_type_runs_strategies() -> None:
    strategy = FakeStrategy(
        "fake",
        [make_candidate("https://www.meta.com/legal/cookies", 70, document_type=DocumentType.COOKIES)],
    )
    engine = PolicyDiscoveryEngine(make_fetcher(MockSite()), strategies=[strategy], deep_scanner=FakeDeepScanner())

    candidate, found = await engine.discover("meta.com", DocumentType.COOKIES)

    assert found is True
    assert candidate.source == CandidateSource.FOOTER_LINK
    assert strategy.calls == [("meta.com", [DocumentType.COOKIES])]


@pytest.mark.asyncio
async def test_early_stop_skips_remaining_strategies() -> None:
    first = FakeStrategy("first", [make_candidate("https://example.com/privacy", 90)])
    second = FakeStrategy("second", [make_candidate("https://example.com/other", 95)])
    engine = _engine(strategies=[first, second])

    report = await engine.discover_with_report("example.com")

    assert report.early_stopped is True
    assert report.strategies_run == ["first"]
    assert second.calls == []
    assert report.candidate.url == "https://example.com/privacy"


@pytest.mark.asyncio
async def test_threshold_applies_to_accumulated_candidates() -> None:
    first = FakeStrategy("first", [make_candidate("https://example.com/a", 60)])
    second = FakeStrategy("second", [make_candidate("https://example.com/b", 85)])
    third = FakeStrategy("third", [make_candidate("https://example.com/c", 99)])
    engine = _engine(strategies=[first, second, third])

    report = await engine.discover_with_report("example.com")

    assert report.strategies_run == ["first", "second"]
    assert report.candidate.url == "https://example.com/b"


@pytest.mark.asyncio
async def test_best_candidate_has_maximum_confidence() -> None:
    first = FakeStrategy(
        "first",
        [make_candidate("https://example.com/a", 60), make_candidate("https://example.com/b", 70)],
    )
    second = FakeStrategy("second", [make_candidate("https://example.com/c", 80)])
    engine = _engine(strategies=[first, second])

    report = await engine.discover_with_report("example.com")

    assert report.early_stopped is False
    assert report.candidate.confidence == max(candidate.confidence for candidate in report.candidates)
    assert report.candidate.url == "https://example.com/c"
    assert len(report.candidates) == 3


@pytest.mark.asyncio
async def test_nothing_found_is_not_an_error() -> None:
    engine = _engine(strategies=[FakeStrategy("empty"), FailingStrategy(None)])

    candidate, found = await engine.discover("example.com")

    assert candidate is None
    assert found is False


@pytest.mark.asyncio
async def test_empty_domain_is_rejected() -> None:
    engine = _engine(strategies=[])

    with pytest.raises(TargetResolutionError):
        await engine.discover("   ")


@pytest.mark.asyncio
async def test_deep_scan_only_replaces_with_strictly_better_page() -> None:
    strategy = FakeStrategy("first", [make_candidate("https://example.com/privacy", 90)])
    scanner = FakeDeepScanner(DeepScanResult(url="https://example.com/privacy/full", confidence=85, reason="nested"))
    engine = _engine(strategies=[strategy], deep_scanner=scanner)

    report = await engine.discover_with_report("example.com")

    assert report.candidate.url == "https://example.com/privacy"
    assert report.refined is False
    assert scanner.calls == [("https://example.com/privacy", "example.com", 2, DocumentType.PRIVACY)]


@pytest.mark.asyncio
async def test_deep_scan_improvement_replaces_candidate() -> None:
    strategy = FakeStrategy("first", [make_candidate("https://example.com/privacy", 70)])
    scanner = FakeDeepScanner(DeepScanResult(url="https://example.com/privacy/full", confidence=88, reason="nested"))
    engine = _engine(strategies=[strategy], deep_scanner=scanner)

    report = await engine.discover_with_report("example.com")

    assert report.refined is True
    assert report.candidate.url == "https://example.com/privacy/full"
    assert report.candidate.confidence == 88
    assert report.candidate.source == CandidateSource.FOOTER_LINK
    assert "refined" in report.candidate.method_detail


@pytest.mark.asyncio
async def test_deep_scan_runs_for_privacy_only() -> None:
    strategy = FakeStrategy(
        "first",
        [make_candidate("https://example.com/terms", 70, document_type=DocumentType.TERMS)],
    )
    scanner = FakeDeepScanner(DeepScanResult(url="https://example.com/x", confidence=99, reason="nested"))
    engine = _engine(strategies=[strategy], deep_scanner=scanner)

    candidate, _ = await engine.discover("example.com", DocumentType.TERMS)

    assert candidate.url == "https://example.com/terms"
    assert scanner.calls == []


@pytest.mark.asyncio
async def test_sitemap_only_candidate_is_still_selected() -> None:
    site = (
        MockSite()
        .add("https://example.com/", homepage_html(body="<p>Nothing legal here.</p>"))
        .add(
            "https://example.com/sitemap.xml",
            sitemap_xml("https://example.com/about", "https://example.com/legal/privacy-notice"),
            content_type=XML,
        )
    )
    fetcher = make_fetcher(site)
    engine = PolicyDiscoveryEngine(fetcher, special_domains={})

    report = await engine.discover_with_report("example.com")

    assert report.found is True
    assert report.candidate.url == "https://example.com/legal/privacy-notice"
    assert report.candidate.source == CandidateSource.SITEMAP
    assert report.candidate.confidence <= 60
    assert report.strategies_run == ["homepage_links", "direct_fetch", "standard_path", "sitemap", "search_fallback"]


@pytest.mark.asyncio
async def test_forbidden_strategy_yields_nothing_and_engine_moves_on() -> None:
    site = MockSite(default=lambda request: httpx.Response(403))
    fetcher = make_fetcher(site)
    fallback = FakeStrategy("fallback", [make_candidate("https://www.meta.com/privacy/policy/", 65)])
    engine = PolicyDiscoveryEngine(
        fetcher,
        strategies=[DirectFetchStrategy(fetcher), fallback],
        special_domains={},
        deep_scanner=FakeDeepScanner(),
    )

    report = await engine.discover_with_report("meta.com")

    assert report.strategies_run == ["direct_fetch", "fallback"]
    assert [candidate.url for candidate in report.candidates] == ["https://www.meta.com/privacy/policy/"]
    assert report.candidate.source == CandidateSource.FOOTER_LINK


@pytest.mark.asyncio
async def test_discover_all_validates_and_orders_documents() -> None:
    site = (
        MockSite()
        .add("https://example.com/terms", "<html><body>This is a genuine policy page.</body></html>")
        .add("https://example.com/cookies", "<html><body>Cookie jar recipes.</body></html>")
        .add("https://example.com/cookie-policy", "<html><body>Our genuine policy on cookies.</body></html>")
    )
    special = FakeStrategy(
        "special",
        [make_candidate("https://example.com/privacy", 95, source=CandidateSource.SPECIAL_DOMAIN)],
    )
    footer = FakeStrategy(
        "footer",
        [
            make_candidate("https://example.com/cookies", 90, document_type=DocumentType.COOKIES),
            make_candidate("https://example.com/cookie-policy", 70, document_type=DocumentType.COOKIES),
            make_candidate("https://example.com/terms", 80, document_type=DocumentType.TERMS),
        ],
    )
    search = FakeSearch()
    engine = _engine(
        site,
        multi_strategies=[special, footer, search],
        validator=KeywordValidator(),
        deep_scan_depth=0,
    )

    documents = await engine.discover_all("example.com")

    assert [document.type for document in documents] == [
        DocumentType.PRIVACY,
        DocumentType.TERMS,
        DocumentType.COOKIES,
    ]
    assert documents[0].display_name == "Privacy Policy"
    assert documents[2].url == "https://example.com/cookie-policy"
    assert site.requests_to("https://example.com/privacy") == []
    assert search.requested == []
    assert footer.calls[0][1] == [t for t in DocumentType if t != DocumentType.PRIVACY]


@pytest.mark.asyncio
async def test_discover_all_skips_candidate_stuck_in_redirect_loop() -> None:
    site = (
        MockSite()
        .redirect("https://example.com/terms", "https://example.com/terms")
        .add("https://example.com/legal/terms", "<html><body>This is a genuine policy page.</body></html>")
    )
    footer = FakeStrategy(
        "footer",
        [
            make_candidate("https://example.com/terms", 90, document_type=DocumentType.TERMS),
            make_candidate("https://example.com/legal/terms", 70, document_type=DocumentType.TERMS),
        ],
    )
    engine = _engine(site, multi_strategies=[footer], validator=KeywordValidator(), deep_scan_depth=0)

    documents = await engine.discover_all("example.com", [DocumentType.TERMS])

    assert [document.url for document in documents] == ["https://example.com/legal/terms"]


@pytest.mark.asyncio
async def test_discover_all_limits_search_to_privacy_and_terms() -> None:
    search = FakeSearch()
    engine = _engine(multi_strategies=[FakeStrategy("empty"), search], deep_scan_depth=0)

    documents = await engine.discover_all("example.com")

    assert documents == []
    assert search.requested == [[DocumentType.PRIVACY, DocumentType.TERMS]]


@pytest.mark.asyncio
async def test_discover_all_refines_privacy_with_content_analysis() -> None:
    special = FakeStrategy(
        "special",
        [make_candidate("https://example.com/privacy", 80, source=CandidateSource.SPECIAL_DOMAIN)],
    )
    scanner = FakeDeepScanner(DeepScanResult(url="https://example.com/privacy/full", confidence=92, reason="nested"))
    engine = _engine(multi_strategies=[special], deep_scanner=scanner)

    documents = await engine.discover_all("example.com", [DocumentType.PRIVACY])

    assert documents[0].url == "https://example.com/privacy/full"
    assert documents[0].source == CandidateSource.CONTENT_ANALYSIS
    assert documents[0].confidence == 92
