from __future__ import annotations

import pytest

from policyscout.domains.discovery import validator as validator_module
from policyscout.domains.discovery.validator import (
    ContentValidator,
    ValidatorThresholds,
    count_term,
    detect_language,
    quick_reject_content,
    validate_content,
)
from policyscout.models import DocumentType
from tests.utils.pages import FILLER_SENTENCE, privacy_policy_text

GERMAN_POLICY = "\n".join(
    [
        "Datenschutzerklärung",
        "Der Verantwortlicher für die Datenverarbeitung auf dieser Website ist die Beispiel GmbH.",
        "Wir verarbeiten personenbezogene Daten nur auf Grundlage Ihrer Einwilligung.",
        "Ihre Rechte: Sie haben jederzeit das Recht auf Auskunft und Widerspruch.",
        "Wir setzen Cookies ein, um die Nutzung der Website auszuwerten.",
        "Eine Weitergabe personenbezogene Daten an Dritte erfolgt nicht.",
        "Die Datenspeicherung erfolgt auf Servern in der Europäischen Union.",
    ]
    + ["Die Beispiel GmbH betreibt einen Dienst für Rezepte und Einkaufslisten."] * 12
)

LINKEDIN_PROFILE = (
    "Example Corp | LinkedIn\n"
    "Example Corp builds software for recipes. 12,000 followers on LinkedIn.\n"
    "See who you know at Example Corp and read our privacy commitments.\n"
    + FILLER_SENTENCE * 3
)

SHOP_PAGE = (
    "Privacy-friendly blender\n"
    "Price: $49.99\n"
    "Add to cart\n"
    "Buy now\n"
    "Out of stock in some regions\n"
    "Customer reviews (12)\n"
    + FILLER_SENTENCE * 10
)


def test_english_policy_passes_with_high_confidence() -> None:
    text = privacy_policy_text(3000)

    result = validate_content(text, DocumentType.PRIVACY)

    assert len(text) == 3000
    assert result.is_valid is True
    assert result.confidence >= 80
    assert result.issues == []
    assert result.metrics.detected_language == "en"
    assert result.metrics.keyword_count >= 12
    assert "your rights" in result.metrics.topics_found
    assert result.metrics.positive_indicator_count >= 3


def test_validation_is_deterministic() -> None:
    text = privacy_policy_text()

    assert validate_content(text) == validate_content(text)


def test_document_type_accepts_plain_string() -> None:
    text = privacy_policy_text()

    assert validate_content(text, "privacy") == validate_content(text, DocumentType.PRIVACY)


def test_short_text_is_rejected_everywhere() -> None:
    text = "Privacy policy"

    rejection = quick_reject_content(text)
    result = validate_content(text)

    assert rejection.rejected is True
    assert rejection.reason == "Content too short"
    assert result.is_valid is False
    assert "Content too short" in result.issues
    assert result.confidence < 40


def test_linkedin_profile_is_rejected_by_quick_check_and_full_validation() -> None:
    rejection = quick_reject_content(LINKEDIN_PROFILE)
    result = validate_content(LINKEDIN_PROFILE)

    assert rejection.rejected is True
    assert rejection.reason == "Appears to be a LinkedIn profile"
    assert result.is_valid is False
    assert rejection.reason in result.issues


def test_negative_indicators_outweigh_positive_ones() -> None:
    result = validate_content(SHOP_PAGE)

    assert result.is_valid is False
    assert result.metrics.negative_indicator_count > result.metrics.positive_indicator_count + 2
    assert any("negative indicators" in issue for issue in result.issues)


def test_german_policy_is_detected_and_scored_in_german() -> None:
    result = validate_content(GERMAN_POLICY)

    assert result.metrics.detected_language == "de"
    assert "ihre rechte" in result.metrics.topics_found
    assert result.metrics.keyword_count >= 3


def test_text_without_policy_terms_has_no_language() -> None:
    text = FILLER_SENTENCE * 40

    result = validate_content(text)

    assert detect_language(text) is None
    assert result.metrics.detected_language is None
    assert result.is_valid is False
    assert "No policy-related terms found" in result.issues


def test_short_terms_match_whole_words_only() -> None:
    assert count_term("AI models and ai outputs", "ai") == 2
    assert count_term("We said it would rain", "ai") == 0
    assert count_term("Datenschutzerklärung", "datenschutz") == 1


def test_thresholds_are_configurable() -> None:
    text = privacy_policy_text()
    strict = ValidatorThresholds(min_length=10_000)

    result = validate_content(text, DocumentType.PRIVACY, strict)

    assert result.is_valid is False
    assert any("too short" in issue for issue in result.issues)


def test_terms_document_uses_terms_lexicon() -> None:
    text = "\n".join(
        [
            "Terms of Service",
            "Last updated: March 1, 2024",
            "By using the service you accept this agreement.",
            "Termination: we may suspend accounts that break these rules.",
            "Limitation of liability: the service is provided as is.",
            "Governing law: this agreement is governed by the laws of Delaware.",
            "Intellectual property in the service remains ours.",
            "Any dispute will be resolved by binding arbitration.",
        ]
        + [FILLER_SENTENCE] * 10
    )

    result = validate_content(text, DocumentType.TERMS)

    assert result.is_valid is True
    assert "governing law" in result.metrics.topics_found
    assert result.metrics.detected_language is None


def _count_full_validations(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    calls: list[str] = []
    original = validator_module.validate_content

    def counting(text, document_type=DocumentType.PRIVACY, thresholds=None):
        calls.append(text)
        return original(text, document_type, thresholds)

    monkeypatch.setattr(validator_module, "validate_content", counting)
    return calls


def test_check_skips_scoring_for_quick_rejected_content(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _count_full_validations(monkeypatch)
    validator = ContentValidator(ValidatorThresholds())

    result = validator.check(LINKEDIN_PROFILE, DocumentType.PRIVACY, source="https://www.linkedin.com/company/x")

    assert calls == []
    assert result.is_valid is False
    assert result.confidence == 0
    assert result.issues == ["Appears to be a LinkedIn profile"]
    assert result.metrics.character_count == len(LINKEDIN_PROFILE)


def test_check_short_text_never_reaches_scorer(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _count_full_validations(monkeypatch)

    result = ContentValidator(ValidatorThresholds()).check("Privacy policy", "privacy")

    assert calls == []
    assert result.is_valid is False
    assert result.issues == ["Content too short"]


def test_check_scores_content_that_survives_quick_reject(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _count_full_validations(monkeypatch)
    text = privacy_policy_text()

    result = ContentValidator(ValidatorThresholds()).check(text, DocumentType.PRIVACY)

    assert calls == [text]
    assert result == validate_content(text, DocumentType.PRIVACY)
    assert result.is_valid is True


@pytest.mark.parametrize("document_type", list(DocumentType))
def test_every_document_type_has_a_lexicon(document_type: DocumentType) -> None:
    result = validate_content(privacy_policy_text(), document_type)

    assert 0 <= result.confidence <= 100
