"""
Validator lexicon: keyword lists, required topics and weighted indicators.

Everything here is plain data consumed by ``validator.py``; swap tables to tune
validation without touching the scoring code.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional, Pattern, Tuple

from policyscout.models.discovery import DocumentType

BASE_LANGUAGE = "en"


@dataclass(frozen=True)
class Indicator:
    pattern: Pattern[str]
    weight: int = 1


def _indicators(*entries) -> Tuple[Indicator, ...]:
    result = []
    for entry in entries:
        source, weight = entry if isinstance(entry, tuple) else (entry, 1)
        result.append(Indicator(re.compile(source, re.IGNORECASE | re.MULTILINE), weight))
    return tuple(result)


# Counted in every language.
GLOBAL_KEYWORDS: Tuple[str, ...] = ("gdpr", "ccpa", "dsgvo", "lgpd", "cookies")

# Privacy vocabulary per language; also drives language detection.
LANGUAGE_TERMS: Dict[str, Tuple[str, ...]] = {
    "en": (
        "privacy",
        "personal data",
        "personal information",
        "data protection",
        "information we collect",
        "third parties",
        "consent",
        "data controller",
    ),
    "de": (
        "datenschutz",
        "personenbezogene daten",
        "datenverarbeitung",
        "einwilligung",
        "verantwortlicher",
        "betroffene person",
    ),
    "fr": (
        "confidentialité",
        "données personnelles",
        "protection des données",
        "traitement des données",
        "consentement",
    ),
    "es": (
        "privacidad",
        "datos personales",
        "protección de datos",
        "tratamiento de datos",
        "consentimiento",
    ),
    "it": (
        "riservatezza",
        "dati personali",
        "protezione dei dati",
        "trattamento dei dati",
        "consenso",
    ),
    "pt": (
        "privacidade",
        "dados pessoais",
        "proteção de dados",
        "tratamento de dados",
        "consentimento",
    ),
    "nl": (
        "privacybeleid",
        "persoonsgegevens",
        "gegevensbescherming",
        "gegevensverwerking",
        "toestemming",
    ),
}

PRIVACY_TOPICS: Dict[str, Tuple[str, ...]] = {
    "en": (
        "personal data",
        "personal information",
        "data we collect",
        "information we collect",
        "how we use",
        "data processing",
        "data protection",
        "your rights",
        "third parties",
        "cookies",
        "retention",
        "security",
        "contact us",
        "data controller",
        "lawful basis",
        "consent",
    ),
    "de": (
        "personenbezogene daten",
        "daten erheben",
        "datenverarbeitung",
        "ihre rechte",
        "dritte",
        "cookies",
        "datenspeicherung",
        "datensicherheit",
        "kontakt",
        "verantwortlicher",
        "einwilligung",
        "widerspruch",
        "auskunft",
    ),
    "fr": (
        "données personnelles",
        "données collectées",
        "traitement des données",
        "vos droits",
        "tiers",
        "cookies",
        "conservation des données",
        "sécurité",
        "contact",
        "responsable du traitement",
        "consentement",
        "droit d'accès",
    ),
    "es": (
        "datos personales",
        "datos recogidos",
        "tratamiento de datos",
        "sus derechos",
        "terceros",
        "cookies",
        "conservación de datos",
        "seguridad",
        "contacto",
        "responsable del tratamiento",
        "consentimiento",
    ),
    "it": (
        "dati personali",
        "dati raccolti",
        "trattamento dei dati",
        "i tuoi diritti",
        "terzi",
        "cookies",
        "conservazione dei dati",
        "sicurezza",
        "contatto",
        "titolare del trattamento",
        "consenso",
    ),
    "pt": (
        "dados pessoais",
        "dados coletados",
        "tratamento de dados",
        "seus direitos",
        "terceiros",
        "cookies",
        "retenção de dados",
        "segurança",
        "contato",
        "controlador de dados",
        "consentimento",
    ),
    "nl": (
        "persoonsgegevens",
        "gegevens verzamelen",
        "gegevensverwerking",
        "uw rechten",
        "derden",
        "cookies",
        "bewaartermijn",
        "beveiliging",
        "contact",
        "verwerkingsverantwoordelijke",
        "toestemming",
    ),
}

NEGATIVE_INDICATORS: Tuple[Indicator, ...] = _indicators(
    # social profiles
    r"followers?\s*:\s*\d+",
    r"following\s*:\s*\d+",
    r"posts?\s*:\s*\d+",
    r"connections?\s*:\s*\d+",
    r"^\s*[A-Z][a-z]+\s+[A-Z][a-z]+\s*\|\s*LinkedIn",
    r"company\s+size\s*:",
    r"industry\s*:",
    r"headquarters\s*:",
    r"founded\s*:\s*\d{4}",
    # news
    r"^(breaking|latest|news|article|story)\s*:",
    r"\d+\s+min\s+read",
    r"share\s+(this\s+)?(article|story|post)",
    # shop pages
    r"add\s+to\s+cart",
    r"buy\s+now",
    r"price\s*:\s*[$€£¥]",
    r"out\s+of\s+stock",
    r"customer\s+reviews?\s*\(\d+\)",
    # auth pages
    r"sign\s+in\s+with",
    r"log\s+in\s+to\s+continue",
    r"forgot\s+(your\s+)?password",
    r"don't\s+have\s+an?\s+account",
    # directories
    r"similar\s+companies",
    r"related\s+companies",
    r"company\s+profile",
    r"business\s+profile",
)

# Structural markers shared by every kind of legal document.
LEGAL_STRUCTURE_INDICATORS: Tuple[Indicator, ...] = _indicators(
    r"last\s+(updated|modified|revised)",
    r"effective\s+(date|as\s+of)",
    r"version\s*:?\s*\d",
    r"table\s+of\s+contents",
    r"^\s*\d+\.\s+(introduction|scope|definitions)",
    r"how\s+to\s+contact\s+us",
)

PRIVACY_POSITIVE_INDICATORS: Tuple[Indicator, ...] = LEGAL_STRUCTURE_INDICATORS + _indicators(
    r"\bgdpr\b",
    r"general\s+data\s+protection\s+regulation",
    r"article\s+\d{1,2}\b",
    r"data\s+subject",
    r"lawful\s+basis",
    r"legitimate\s+interest",
    r"data\s+controller",
    r"data\s+processor",
    r"supervisory\s+authority",
    r"\bdpo\b|data\s+protection\s+officer",
    r"\bccpa\b",
    r"california\s+consumer\s+privacy",
    r"do\s+not\s+sell",
    r"shine\s+the\s+light",
    r"\bdsgvo\b",
    r"bundesdatenschutzgesetz",
    r"\bbdsg\b",
    r"what\s+information\s+(do\s+)?we\s+collect",
    r"how\s+(do\s+)?we\s+use\s+(your\s+)?information",
    r"how\s+(do\s+)?we\s+share\s+(your\s+)?information",
    r"your\s+(privacy\s+)?(rights|choices)",
    r"data\s+retention",
    r"security\s+measures",
    r"children('s)?\s+privacy",
    r"international\s+transfers?",
    r"cookies?\s+(and|&)\s+tracking",
)


@dataclass(frozen=True)
class ValidationTable:
    """Lexicon for one document type."""

    keywords: Tuple[str, ...]
    topics: Dict[str, Tuple[str, ...]]
    positive: Tuple[Indicator, ...]
    negative: Tuple[Indicator, ...] = NEGATIVE_INDICATORS
    min_keywords: Optional[int] = None
    # privacy counts the detected language's terms instead of ``keywords``
    multilingual: bool = False


VALIDATION_TABLES: Dict[DocumentType, ValidationTable] = {
    DocumentType.PRIVACY: ValidationTable(
        keywords=(),
        topics=PRIVACY_TOPICS,
        positive=PRIVACY_POSITIVE_INDICATORS,
        multilingual=True,
    ),
    DocumentType.TERMS: ValidationTable(
        keywords=(
            "agreement",
            "license",
            "prohibited",
            "termination",
            "liability",
            "warranty",
            "indemnify",
            "governing law",
            "dispute",
            "arbitration",
            "user conduct",
            "acceptable use",
            "intellectual property",
        ),
        topics={
            "en": (
                "acceptance of",
                "termination",
                "limitation of liability",
                "governing law",
                "intellectual property",
                "disclaimer",
                "indemnif",
                "dispute",
                "changes to these terms",
                "your account",
            )
        },
        positive=LEGAL_STRUCTURE_INDICATORS
        + _indicators(
            r"terms\s+of\s+(service|use)",
            r"limitation\s+of\s+liability",
            r"governing\s+law",
            r"binding\s+arbitration",
            r"as\s+is",
        ),
    ),
    DocumentType.COOKIES: ValidationTable(
        keywords=(
            "cookie",
            "cookies",
            "tracking",
            "analytics",
            "advertising cookies",
            "session",
            "persistent",
            "third-party cookies",
            "opt-out",
            "consent",
        ),
        topics={
            "en": (
                "what are cookies",
                "how we use cookies",
                "types of cookies",
                "essential cookies",
                "analytics",
                "advertising",
                "third-party cookies",
                "manage cookies",
                "browser settings",
                "consent",
            )
        },
        positive=LEGAL_STRUCTURE_INDICATORS
        + _indicators(
            r"(strictly\s+)?necessary\s+cookies",
            r"session\s+cookies",
            r"persistent\s+cookies",
            r"cookie\s+(settings|preferences)",
        ),
    ),
    DocumentType.SECURITY: ValidationTable(
        keywords=(
            "security",
            "encryption",
            "protect",
            "secure",
            "vulnerability",
            "authentication",
            "access control",
            "safeguards",
            "breach",
            "incident",
        ),
        topics={
            "en": (
                "encryption",
                "access control",
                "vulnerability",
                "incident response",
                "compliance",
                "authentication",
                "data center",
                "responsible disclosure",
                "penetration test",
                "monitoring",
            )
        },
        positive=LEGAL_STRUCTURE_INDICATORS
        + _indicators(
            r"soc\s*2",
            r"iso\s*27001",
            r"responsible\s+disclosure",
            r"bug\s+bounty",
            r"encrypt(ed|ion)\s+(at\s+rest|in\s+transit)",
        ),
    ),
    DocumentType.GDPR: ValidationTable(
        keywords=(
            "gdpr",
            "european",
            "data subject",
            "right to erasure",
            "portability",
            "legitimate interest",
            "lawful basis",
            "processing",
            "controller",
            "processor",
        ),
        topics={
            "en": (
                "data subject",
                "right of access",
                "right to erasure",
                "portability",
                "lawful basis",
                "legitimate interest",
                "supervisory authority",
                "data protection officer",
                "international transfers",
                "controller",
            )
        },
        positive=PRIVACY_POSITIVE_INDICATORS,
    ),
    DocumentType.CCPA: ValidationTable(
        keywords=(
            "ccpa",
            "california",
            "do not sell",
            "opt-out",
            "consumer rights",
            "shine the light",
            "personal information",
            "categories",
            "disclosed",
        ),
        topics={
            "en": (
                "right to know",
                "right to delete",
                "do not sell",
                "opt-out",
                "categories of personal information",
                "non-discrimination",
                "authorized agent",
                "california residents",
                "shine the light",
                "verify your request",
            )
        },
        positive=PRIVACY_POSITIVE_INDICATORS,
    ),
    DocumentType.AI: ValidationTable(
        keywords=(
            "artificial intelligence",
            "machine learning",
            "ai",
            "model",
            "training data",
            "automated",
            "algorithm",
            "generative",
        ),
        topics={
            "en": (
                "training data",
                "outputs",
                "model",
                "generative",
                "automated decision",
                "prohibited uses",
                "machine learning",
                "artificial intelligence",
                "accuracy",
            )
        },
        positive=LEGAL_STRUCTURE_INDICATORS
        + _indicators(
            r"generative\s+ai",
            r"(ai|model)\s+outputs?",
            r"training\s+data",
            r"automated\s+decision",
        ),
        min_keywords=2,
    ),
    DocumentType.ACCEPTABLE_USE: ValidationTable(
        keywords=(
            "acceptable use",
            "prohibited",
            "abuse",
            "spam",
            "harassment",
            "content policy",
            "community guidelines",
            "violations",
            "enforcement",
        ),
        topics={
            "en": (
                "prohibited",
                "illegal",
                "harassment",
                "spam",
                "malware",
                "intellectual property",
                "enforcement",
                "reporting",
                "suspension",
                "violations",
            )
        },
        positive=LEGAL_STRUCTURE_INDICATORS
        + _indicators(
            r"you\s+(may|must)\s+not",
            r"prohibited\s+(content|uses?|activities)",
            r"report(ing)?\s+(abuse|violations)",
        ),
    ),
}


def validation_table(document_type: DocumentType) -> ValidationTable:
    return VALIDATION_TABLES[DocumentType(document_type)]
