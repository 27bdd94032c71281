"""
Content validation: decides whether page text really is a policy document of
the requested type, and how confident we are about it.

Scoring is a pure function of (text, lexicon tables, thresholds).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, List, Optional, Pattern, Tuple

from loguru import logger

from policyscout.core.config import settings
from policyscout.domains.discovery.lexicon import (
    BASE_LANGUAGE,
    GLOBAL_KEYWORDS,
    LANGUAGE_TERMS,
    Indicator,
    ValidationTable,
    validation_table,
)
from policyscout.models.discovery import (
    ContentValidationMetrics,
    ContentValidationResult,
    DocumentType,
    QuickRejectResult,
    clamp_confidence,
)

QUICK_REJECT_MIN_LENGTH = 200

_NEWS_MARKERS = (
    re.compile(r"\d+\s+min\s+read", re.IGNORECASE),
    re.compile(r"published\s+\d+\s+(hours?|days?|weeks?)\s+ago", re.IGNORECASE),
)
_FACEBOOK_LIKES = re.compile(r"[\d,.]+\s*[km]?\s+(people\s+like\s+this|likes)\b", re.IGNORECASE)


@dataclass(frozen=True)
class ValidatorThresholds:
    min_length: int = 500
    min_words: int = 100
    min_keywords: int = 3
    min_topics: int = 2
    negative_margin: int = 2
    pass_confidence: int = 40

    @classmethod
    def from_settings(cls) -> "ValidatorThresholds":
        return cls(
            min_length=settings.VALIDATOR_MIN_LENGTH,
            min_words=settings.VALIDATOR_MIN_WORDS,
            min_keywords=settings.VALIDATOR_MIN_KEYWORDS,
            min_topics=settings.VALIDATOR_MIN_TOPICS,
            negative_margin=settings.VALIDATOR_NEGATIVE_MARGIN,
            pass_confidence=settings.VALIDATOR_PASS_CONFIDENCE,
        )


@lru_cache(maxsize=512)
def _term_pattern(term: str) -> Pattern[str]:
    # short terms ("ai", "tos") must be whole words, longer ones may prefix compounds
    suffix = r"(?!\w)" if len(term) <= 3 else ""
    return re.compile(rf"(?<!\w){re.escape(term)}{suffix}", re.IGNORECASE)


def count_term(text: str, term: str) -> int:
    return len(_term_pattern(term).findall(text))


def count_words(text: str) -> int:
    return len(text.split())


def detect_language(text: str) -> Optional[str]:
    """Language with the most privacy-term hits, or None when nothing matches."""
    best_language: Optional[str] = None
    best_score = 0
    for language, terms in LANGUAGE_TERMS.items():
        score = sum(count_term(text, term) for term in terms)
        if score > best_score:
            best_language, best_score = language, score
    return best_language


def keyword_terms(table: ValidationTable, language: Optional[str]) -> Tuple[str, ...]:
    if table.multilingual:
        return GLOBAL_KEYWORDS + LANGUAGE_TERMS.get(language or BASE_LANGUAGE, LANGUAGE_TERMS[BASE_LANGUAGE])
    return table.keywords


def count_keywords(text: str, terms: Iterable[str]) -> int:
    return sum(count_term(text, term) for term in terms)


def find_topics(text: str, table: ValidationTable, language: Optional[str]) -> List[str]:
    lowered = text.lower()
    base_topics = table.topics.get(BASE_LANGUAGE, ())
    topics = table.topics.get(language or BASE_LANGUAGE, base_topics)

    found: List[str] = [topic for topic in topics if topic in lowered]
    if language and language != BASE_LANGUAGE:
        found.extend(topic for topic in base_topics if topic in lowered and topic not in found)
    return found


def match_indicators(text: str, indicators: Iterable[Indicator]) -> Tuple[int, int]:
    """(number of matching indicators, sum of their weights)"""
    count = 0
    weight = 0
    for indicator in indicators:
        if indicator.pattern.search(text):
            count += 1
            weight += indicator.weight
    return count, weight


def hard_reject_reason(text: str, keyword_count: int) -> Optional[str]:
    """Markers that disqualify a page outright, whatever else it contains."""
    if len(text.strip()) < QUICK_REJECT_MIN_LENGTH:
        return "Content too short"

    lowered = text.lower()
    if "linkedin" in lowered and ("followers" in lowered or "employees on linkedin" in lowered):
        return "Appears to be a LinkedIn profile"
    if "facebook" in lowered and _FACEBOOK_LIKES.search(lowered):
        return "Appears to be a Facebook page"
    if any(marker.search(text) for marker in _NEWS_MARKERS):
        return "Appears to be a news article"
    if "company size" in lowered and "industry" in lowered and "headquarters" in lowered:
        return "Appears to be a company directory listing"
    if keyword_count == 0:
        return "No policy-related terms found"
    return None


def _quick_scan(text: str, document_type: DocumentType) -> Tuple[Optional[str], Optional[str], int]:
    table = validation_table(DocumentType(document_type))
    language = detect_language(text)
    keyword_count = count_keywords(text, keyword_terms(table, language))
    return hard_reject_reason(text, keyword_count), language, keyword_count


def quick_reject_content(text: str, document_type: DocumentType = DocumentType.PRIVACY) -> QuickRejectResult:
    reason, _, _ = _quick_scan(text, document_type)
    return QuickRejectResult(rejected=reason is not None, reason=reason)


def _rejected_result(text: str, reason: str, language: Optional[str], keyword_count: int) -> ContentValidationResult:
    """Invalid result for quick-rejected content, built without running the scorer."""
    return ContentValidationResult(
        is_valid=False,
        confidence=0,
        issues=[reason],
        metrics=ContentValidationMetrics(
            character_count=len(text),
            word_count=count_words(text),
            keyword_count=keyword_count,
            detected_language=language,
        ),
    )


def validate_content(
    text: str,
    document_type: DocumentType = DocumentType.PRIVACY,
    thresholds: Optional[ValidatorThresholds] = None,
) -> ContentValidationResult:
    document_type = DocumentType(document_type)
    thresholds = thresholds or ValidatorThresholds()
    table = validation_table(document_type)
    issues: List[str] = []

    character_count = len(text)
    word_count = count_words(text)
    if character_count < thresholds.min_length:
        issues.append(f"Content too short ({character_count} chars, need {thresholds.min_length})")
    if word_count < thresholds.min_words:
        issues.append(f"Not enough words ({word_count}, need {thresholds.min_words})")

    language = detect_language(text)

    keyword_count = count_keywords(text, keyword_terms(table, language))
    min_keywords = table.min_keywords if table.min_keywords is not None else thresholds.min_keywords
    if keyword_count < min_keywords:
        issues.append(f"Not enough policy keywords ({keyword_count}, need {min_keywords})")

    topics_found = find_topics(text, table, language)
    if len(topics_found) < thresholds.min_topics:
        issues.append(f"Not enough policy topics covered ({len(topics_found)}, need {thresholds.min_topics})")

    positive_count, positive_weight = match_indicators(text, table.positive)
    negative_count, negative_weight = match_indicators(text, table.negative)
    if negative_count > positive_count + thresholds.negative_margin:
        issues.append(
            f"More negative indicators ({negative_count}) than positive ({positive_count}) "
            f"- may not be a {document_type.value} document"
        )

    reject_reason = hard_reject_reason(text, keyword_count)
    if reject_reason and reject_reason not in issues:
        issues.append(reject_reason)

    confidence = 50
    if character_count >= 2000:
        confidence += 10
    if character_count >= 5000:
        confidence += 10
    if character_count < 500:
        confidence -= 30
    if keyword_count >= 10:
        confidence += 15
    if keyword_count >= 20:
        confidence += 10
    if len(topics_found) >= 5:
        confidence += 15
    if len(topics_found) >= 10:
        confidence += 10
    confidence += 3 * positive_weight
    confidence -= 5 * negative_weight
    confidence = clamp_confidence(confidence)

    is_valid = (
        character_count >= thresholds.min_length
        and word_count >= thresholds.min_words
        and keyword_count >= min_keywords
        and len(topics_found) >= thresholds.min_topics
        and negative_count <= positive_count + thresholds.negative_margin
        and reject_reason is None
        and confidence >= thresholds.pass_confidence
    )

    return ContentValidationResult(
        is_valid=is_valid,
        confidence=confidence,
        issues=issues,
        metrics=ContentValidationMetrics(
            character_count=character_count,
            word_count=word_count,
            keyword_count=keyword_count,
            topics_found=topics_found,
            positive_indicator_count=positive_count,
            negative_indicator_count=negative_count,
            detected_language=language,
        ),
    )


class ContentValidator:
    """Validator bound to one set of thresholds."""

    def __init__(self, thresholds: Optional[ValidatorThresholds] = None) -> None:
        self.thresholds = thresholds or ValidatorThresholds.from_settings()

    def validate(self, text: str, document_type: DocumentType = DocumentType.PRIVACY) -> ContentValidationResult:
        return validate_content(text, document_type, self.thresholds)

    def quick_reject(self, text: str, document_type: DocumentType = DocumentType.PRIVACY) -> QuickRejectResult:
        return quick_reject_content(text, document_type)

    def check(
        self,
        text: str,
        document_type: DocumentType = DocumentType.PRIVACY,
        *,
        source: str = "",
    ) -> ContentValidationResult:
        """Quick-reject check, then full validation for content that survives it."""
        document_type = DocumentType(document_type)
        reason, language, keyword_count = _quick_scan(text, document_type)
        if reason is not None:
            logger.info(f"Content rejected for {source or 'page'}: {reason}")
            return _rejected_result(text, reason, language, keyword_count)

        result = self.validate(text, document_type)
        logger.debug(
            f"Validated {source or 'page'} as {document_type.value}: valid={result.is_valid} "
            f"confidence={result.confidence} language={result.metrics.detected_language} "
            f"topics={len(result.metrics.topics_found)} issues={result.issues}"
        )
        return result

