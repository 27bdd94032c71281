from __future__ import annotations

from typing import List, Optional

from policyscout.domains.discovery.ranking import LinkScorer
from policyscout.domains.discovery.rules import SpecialDomainTable
from policyscout.domains.discovery.validator import ContentValidator
from policyscout.scrapers.fetcher import PolicyFetcher

from .direct_fetch import DirectFetchStrategy
from .homepage_links import HomepageLinkStrategy
from .interfaces import DiscoveryStrategy, normalize_domain
from .search_fallback import SearchFallbackStrategy
from .sitemap import SitemapStrategy
from .special_domain import SpecialDomainStrategy
from .standard_path import StandardPathStrategy


def default_strategies(
    fetcher: PolicyFetcher,
    *,
    validator: Optional[ContentValidator] = None,
    link_scorer: Optional[LinkScorer] = None,
) -> List[DiscoveryStrategy]:
    """Single-document order: footer/hub, direct fetch, standard paths, sitemap, search."""
    return [
        HomepageLinkStrategy(fetcher, link_scorer=link_scorer),
        DirectFetchStrategy(fetcher),
        StandardPathStrategy(fetcher),
        SitemapStrategy(fetcher),
        SearchFallbackStrategy(fetcher, validator=validator),
    ]


def multi_document_strategies(
    fetcher: PolicyFetcher,
    *,
    validator: Optional[ContentValidator] = None,
    link_scorer: Optional[LinkScorer] = None,
    special_domains: Optional[SpecialDomainTable] = None,
) -> List[DiscoveryStrategy]:
    """All-documents order: special domains, footer/hub, standard paths, sitemap, search."""
    return [
        SpecialDomainStrategy(fetcher, special_domains=special_domains),
        HomepageLinkStrategy(fetcher, link_scorer=link_scorer),
        StandardPathStrategy(fetcher),
        SitemapStrategy(fetcher),
        SearchFallbackStrategy(fetcher, validator=validator),
    ]


__all__ = [
    "DirectFetchStrategy",
    "DiscoveryStrategy",
    "HomepageLinkStrategy",
    "SearchFallbackStrategy",
    "SitemapStrategy",
    "SpecialDomainStrategy",
    "StandardPathStrategy",
    "default_strategies",
    "multi_document_strategies",
    "normalize_domain",
]
