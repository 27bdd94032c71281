"""
Static discovery data: per-type paths and link patterns, legal hubs and the
special-domain table.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Pattern, Tuple

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from policyscout.core.exceptions import ConfigurationError
from policyscout.models.discovery import DocumentType


@dataclass(frozen=True)
class PolicyTypeSpec:
    """Everything discovery knows about one document type."""

    type: DocumentType
    name: str
    # broad list for HEAD probing
    paths: Tuple[str, ...]
    # short list for full GET probing
    priority_paths: Tuple[str, ...]
    # substrings that mark a URL as being about this type
    url_keywords: Tuple[str, ...]
    # anchor texts that name the document exactly / loosely
    exact_phrases: Tuple[str, ...]
    bare_keywords: Tuple[str, ...]
    # phrases whose presence in a body suggests the document
    indicators: Tuple[str, ...]
    search_phrase: str
    link_patterns: Tuple[Pattern[str], ...] = field(default_factory=tuple)


def _patterns(*sources: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(source, re.IGNORECASE) for source in sources)


POLICY_TYPES: Dict[DocumentType, PolicyTypeSpec] = {
    DocumentType.PRIVACY: PolicyTypeSpec(
        type=DocumentType.PRIVACY,
        name="Privacy Policy",
        paths=(
            "/privacy",
            "/privacy-policy",
            "/legal/privacy",
            "/legal/privacy-policy",
            "/data-protection",
            "/privacypolicy",
            "/about/privacy",
            "/policies/privacy",
            "/privacy/policy",
            "/help/privacy",
            "/policy/privacy",
            "/policy",
        ),
        priority_paths=(
            "/privacy",
            "/privacy-policy",
            "/privacy/policy",
            "/legal/privacy",
            "/about/privacy",
            "/policies/privacy",
            "/privacy/center",
            "/privacycenter",
            "/help/privacy",
        ),
        url_keywords=("privacy", "datenschutz", "privacidad", "data-protection"),
        exact_phrases=("privacy policy", "privacy notice", "privacy statement", "datenschutzerklärung"),
        bare_keywords=("privacy", "datenschutz"),
        indicators=(
            "privacy",
            "personal data",
            "personal information",
            "data protection",
            "collect information",
            "data we collect",
            "information we collect",
            "how we use",
            "your data",
            "your information",
            "datenschutz",
            "privacidad",
        ),
        search_phrase='"privacy policy"',
        link_patterns=_patterns(
            r"privacy\s*(policy|notice|statement)?",
            r"data\s*(protection|policy)",
            r"personal\s*(data|information)",
            r"datenschutz",
            r"privacidad",
            r"confidentialit[eé]",
        ),
    ),
    DocumentType.TERMS: PolicyTypeSpec(
        type=DocumentType.TERMS,
        name="Terms of Service",
        paths=(
            "/terms",
            "/tos",
            "/terms-of-service",
            "/legal/terms",
            "/terms-and-conditions",
            "/termsofservice",
            "/user-agreement",
            "/policies/terms",
            "/about/terms",
            "/legal/tos",
        ),
        priority_paths=("/terms", "/terms-of-service", "/legal/terms", "/terms-and-conditions", "/tos"),
        url_keywords=("terms", "tos", "user-agreement", "nutzungsbedingungen", "agb"),
        exact_phrases=("terms of service", "terms of use", "terms and conditions", "user agreement"),
        bare_keywords=("terms", "legal terms"),
        indicators=(
            "terms of service",
            "terms of use",
            "agreement",
            "termination",
            "liability",
            "governing law",
            "intellectual property",
            "warranty",
        ),
        search_phrase='"terms of service" OR "terms of use"',
        link_patterns=_patterns(
            r"terms\s*(of\s*)?(service|use|agreement)?",
            r"user\s*agreement",
            r"legal\s*(terms|agreement)",
            r"conditions?\s*(of\s*)?(use|service)",
            r"subscriber\s*agreement",
            r"\beula\b|end\s*user",
            r"nutzungsbedingungen",
            r"\bagb\b",
        ),
    ),
    DocumentType.COOKIES: PolicyTypeSpec(
        type=DocumentType.COOKIES,
        name="Cookie Policy",
        paths=(
            "/cookies",
            "/cookie-policy",
            "/legal/cookies",
            "/cookiepolicy",
            "/cookie-notice",
            "/policies/cookies",
            "/help/cookies",
        ),
        priority_paths=("/cookies", "/cookie-policy", "/legal/cookies", "/cookie-notice"),
        url_keywords=("cookie",),
        exact_phrases=("cookie policy", "cookie notice", "cookies policy"),
        bare_keywords=("cookies", "cookie"),
        indicators=("cookie", "tracking", "analytics", "session", "persistent", "opt-out", "third-party cookies"),
        search_phrase='"cookie policy"',
        link_patterns=_patterns(
            r"cookie\s*(policy|notice|settings)?",
            r"cookies",
            r"tracking",
        ),
    ),
    DocumentType.SECURITY: PolicyTypeSpec(
        type=DocumentType.SECURITY,
        name="Security Policy",
        paths=(
            "/security",
            "/security-policy",
            "/legal/security",
            "/trust",
            "/trust-center",
            "/about/security",
        ),
        priority_paths=("/security", "/security-policy", "/trust"),
        url_keywords=("security", "trust"),
        exact_phrases=("security policy", "security", "trust center"),
        bare_keywords=("trust",),
        indicators=("security", "encryption", "vulnerability", "authentication", "access control", "incident"),
        search_phrase='"security policy"',
        link_patterns=_patterns(
            r"security\s*(policy|center|info)?",
            r"trust\s*(center)?",
            r"data\s*security",
        ),
    ),
    DocumentType.GDPR: PolicyTypeSpec(
        type=DocumentType.GDPR,
        name="GDPR Notice",
        paths=("/gdpr", "/legal/gdpr", "/eu-privacy", "/european-privacy", "/privacy/gdpr"),
        priority_paths=("/gdpr", "/legal/gdpr", "/privacy/gdpr"),
        url_keywords=("gdpr", "eu-privacy", "european-privacy"),
        exact_phrases=("gdpr", "gdpr notice", "eu privacy"),
        bare_keywords=("gdpr",),
        indicators=("gdpr", "data subject", "lawful basis", "legitimate interest", "controller", "portability"),
        search_phrase='"gdpr"',
        link_patterns=_patterns(
            r"\bgdpr\b",
            r"\beu\s*privacy",
            r"european?\s*(privacy|data)",
        ),
    ),
    DocumentType.CCPA: PolicyTypeSpec(
        type=DocumentType.CCPA,
        name="CCPA Notice",
        paths=(
            "/ccpa",
            "/california-privacy",
            "/legal/ccpa",
            "/ca-privacy",
            "/your-privacy-choices",
            "/privacy/ccpa",
        ),
        priority_paths=("/ccpa", "/california-privacy", "/privacy/ccpa"),
        url_keywords=("ccpa", "california", "privacy-choices"),
        exact_phrases=("ccpa", "your privacy choices", "do not sell my personal information"),
        bare_keywords=("california privacy",),
        indicators=("ccpa", "california", "do not sell", "consumer rights", "shine the light"),
        search_phrase='"ccpa" OR "california privacy"',
        link_patterns=_patterns(
            r"\bccpa\b",
            r"california\s*(privacy|consumer)",
            r"do\s*not\s*sell",
            r"your\s*privacy\s*choices",
        ),
    ),
    DocumentType.AI: PolicyTypeSpec(
        type=DocumentType.AI,
        name="AI/ML Terms",
        paths=(
            "/ai-terms",
            "/ai-policy",
            "/machine-learning-policy",
            "/legal/ai",
            "/ai-guidelines",
            "/generative-ai-terms",
        ),
        priority_paths=("/ai-terms", "/ai-policy", "/legal/ai"),
        url_keywords=("ai-", "/ai", "machine-learning", "artificial-intelligence"),
        exact_phrases=("ai terms", "ai policy", "ai guidelines", "generative ai terms"),
        bare_keywords=("ai", "artificial intelligence"),
        indicators=("artificial intelligence", "machine learning", "training data", "generative", "model"),
        search_phrase='"ai terms" OR "ai policy"',
        link_patterns=_patterns(
            r"\bai\b[\s_-]*(policy|terms|guidelines)",
            r"machine[\s_-]*learning",
            r"artificial[\s_-]*intelligence",
        ),
    ),
    DocumentType.ACCEPTABLE_USE: PolicyTypeSpec(
        type=DocumentType.ACCEPTABLE_USE,
        name="Acceptable Use Policy",
        paths=(
            "/acceptable-use",
            "/aup",
            "/legal/acceptable-use",
            "/usage-policy",
            "/community-guidelines",
            "/policies/community",
            "/community-standards",
        ),
        priority_paths=("/acceptable-use", "/aup", "/legal/acceptable-use", "/community-guidelines"),
        url_keywords=("acceptable-use", "aup", "community", "usage-policy"),
        exact_phrases=("acceptable use policy", "community guidelines", "community standards"),
        bare_keywords=("acceptable use",),
        indicators=("acceptable use", "prohibited", "abuse", "spam", "harassment", "violations"),
        search_phrase='"acceptable use policy"',
        link_patterns=_patterns(
            r"acceptable[\s_-]*use",
            r"\baup\b",
            r"community[\s_-]*(guidelines|standards)",
            r"user\s*guidelines",
            r"content\s*policy",
        ),
    ),
}

# Index pages that link to policies but are never policies themselves.
LEGAL_HUB_PATTERNS: Tuple[Pattern[str], ...] = _patterns(
    r"/legal/?$",
    r"/policies/?$",
    r"/legal/index",
    r"/about/legal/?$",
    r"/company/legal/?$",
    r"/help/legal/?$",
    r"/legal-notices/?$",
)

LEGAL_HUB_PATHS: Tuple[str, ...] = (
    "/legal",
    "/policies",
    "/about/legal",
    "/company/legal",
    "/help/legal",
    "/legal-notices",
)

# Paths that serve Meta properties to crawler user agents.
BOT_PRIORITY_PATHS: Tuple[str, ...] = (
    "/privacy/policy/",
    "/privacy/policy",
    "/privacy/",
    "/legal/privacy/",
    "/help/privacy/",
)

SpecialDomainTable = Dict[str, Dict[DocumentType, str]]

SPECIAL_DOMAINS: SpecialDomainTable = {
    "facebook.com": {
        DocumentType.PRIVACY: "https://www.facebook.com/privacy/policy/",
        DocumentType.TERMS: "https://www.facebook.com/legal/terms",
    },
    "www.facebook.com": {
        DocumentType.PRIVACY: "https://www.facebook.com/privacy/policy/",
        DocumentType.TERMS: "https://www.facebook.com/legal/terms",
    },
    "meta.com": {
        DocumentType.PRIVACY: "https://www.facebook.com/privacy/policy/",
    },
    "instagram.com": {
        DocumentType.PRIVACY: "https://privacycenter.instagram.com/policy",
        DocumentType.TERMS: "https://help.instagram.com/581066165581870",
    },
    "threads.net": {
        DocumentType.PRIVACY: "https://help.instagram.com/515230437301944",
    },
    "whatsapp.com": {
        DocumentType.PRIVACY: "https://www.whatsapp.com/legal/privacy-policy",
        DocumentType.TERMS: "https://www.whatsapp.com/legal/terms-of-service",
    },
    "twitter.com": {
        DocumentType.PRIVACY: "https://twitter.com/en/privacy",
        DocumentType.TERMS: "https://twitter.com/en/tos",
    },
    "x.com": {
        DocumentType.PRIVACY: "https://x.com/en/privacy",
        DocumentType.TERMS: "https://x.com/en/tos",
    },
    "tiktok.com": {
        DocumentType.PRIVACY: "https://www.tiktok.com/legal/page/row/privacy-policy/en",
        DocumentType.TERMS: "https://www.tiktok.com/legal/page/row/terms-of-service/en",
    },
}

_special_domains_adapter = TypeAdapter(Dict[str, Dict[DocumentType, str]])


def type_spec(document_type: DocumentType) -> PolicyTypeSpec:
    return POLICY_TYPES[DocumentType(document_type)]


def display_name(document_type: DocumentType) -> str:
    return type_spec(document_type).name


def is_legal_hub(url: str) -> bool:
    path = url.split("?", 1)[0].split("#", 1)[0]
    return any(pattern.search(path) for pattern in LEGAL_HUB_PATTERNS)


def matches_type(value: str, document_type: DocumentType) -> bool:
    return any(pattern.search(value) for pattern in type_spec(document_type).link_patterns)


def classify_link(text: str, href: str, document_types: List[DocumentType]) -> List[DocumentType]:
    """Requested types whose link patterns match the anchor text or href."""
    return [
        document_type
        for document_type in document_types
        if matches_type(text, document_type) or matches_type(href, document_type)
    ]


def load_special_domains(path: Optional[str] = None) -> SpecialDomainTable:
    """
    Built-in special-domain table, optionally extended from a JSON file of
    ``{domain: {type: url}}`` entries. File entries replace built-in ones per type.
    """
    table: SpecialDomainTable = {domain: dict(urls) for domain, urls in SPECIAL_DOMAINS.items()}
    if not path:
        return table

    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise ConfigurationError(f"Cannot read special domains file {path}: {exc}") from exc

    try:
        overrides = _special_domains_adapter.validate_json(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid special domains file {path}: {exc}") from exc

    for domain, urls in overrides.items():
        entry = table.setdefault(domain.lower().strip(), {})
        for document_type, url in urls.items():
            if not url.startswith(("http://", "https://")):
                raise ConfigurationError(f"Special domain URL for {domain} must be absolute: {url}")
            entry[document_type] = url

    logger.info(f"Loaded {len(overrides)} special domain overrides from {path}")
    return table


def lookup_special_domain(table: SpecialDomainTable, domain: str) -> Optional[Dict[DocumentType, str]]:
    """Exact, ``www.``-prefixed or bare-host match in the special-domain table."""
    domain = domain.lower().strip()
    bare = domain[4:] if domain.startswith("www.") else domain
    for key in (domain, f"www.{domain}", bare):
        entry = table.get(key)
        if entry:
            return entry
    return None
