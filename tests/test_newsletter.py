"""Tests for newsletter detection and unsubscribe link extraction."""

import pytest
from mailtriage.config import DEFAULT_PATTERN_CATALOG
from mailtriage.processing.catalog import PatternCatalog
from mailtriage.processing.newsletter import NewsletterDetector, extract_unsubscribe_links


@pytest.fixture
def detector() -> NewsletterDetector:
    return NewsletterDetector(PatternCatalog.load(str(DEFAULT_PATTERN_CATALOG)))


class TestUnsubscribeLinks:
    def test_double_quoted_href(self):
        body = '<a href="https://x.com/unsubscribe?x=1">Unsubscribe</a>'
        assert extract_unsubscribe_links(body) == ["https://x.com/unsubscribe?x=1"]

    def test_single_quoted_href(self):
        body = "<a href='https://x.com/Unsubscribe'>Leave</a>"
        assert extract_unsubscribe_links(body) == ["https://x.com/Unsubscribe"]

    def test_opt_out_and_remove_links(self):
        body = (
            '<a href="https://x.com/opt-out">Opt out</a> '
            '<a href="https://x.com/remove-me">Remove</a>'
        )
        assert extract_unsubscribe_links(body) == [
            "https://x.com/opt-out",
            "https://x.com/remove-me",
        ]

    def test_duplicates_removed(self):
        body = (
            '<a href="https://x.com/unsubscribe">One</a>'
            '<a href="https://x.com/unsubscribe">Two</a>'
        )
        assert extract_unsubscribe_links(body) == ["https://x.com/unsubscribe"]

    def test_unrelated_link_before_unsubscribe_not_captured(self):
        body = (
            '<a href="https://x.com/home">Home</a> '
            '<a href="https://x.com/unsubscribe">Unsubscribe</a>'
        )
        assert extract_unsubscribe_links(body) == ["https://x.com/unsubscribe"]

    def test_plain_text_link_not_extracted(self):
        body = "Unsubscribe: https://techcrunch.com/unsubscribe?token=abc123"
        assert extract_unsubscribe_links(body) == []


class TestDetect:
    def test_unsubscribe_link_alone_is_enough(self, detector):
        result = detector.detect("Hello", '<a href="https://x.com/unsubscribe?x=1">Unsubscribe</a>', "a@x.com")
        assert result.is_newsletter is True
        assert "https://x.com/unsubscribe?x=1" in result.unsubscribe_links
        # score 4 (keyword + body pattern) + 5 link bonus
        assert result.confidence == pytest.approx(0.9)

    def test_high_score_without_link(self, detector):
        result = detector.detect("Weekly Newsletter", "Our monthly edition", "news@site.com")
        assert result.is_newsletter is True
        assert result.unsubscribe_links == []
        assert result.confidence == 1.0

    def test_regular_email(self, detector):
        result = detector.detect("Lunch tomorrow?", "Are you free at noon?", "friend@gmail.com")
        assert result.is_newsletter is False
        assert result.confidence == 0.0

    def test_score_at_threshold_is_not_newsletter(self, detector):
        # "weekly" in subject (+3) and body (+2) = 5, not above 5
        result = detector.detect("weekly", "weekly", "a@b.com")
        assert result.is_newsletter is False
        assert result.confidence == pytest.approx(0.5)

    def test_reputation_and_frequency_unknown(self, detector):
        result = detector.detect("Newsletter", "", "news@site.com")
        assert result.sender_reputation == "unknown"
        assert result.frequency == "unknown"

    def test_none_inputs_tolerated(self, detector):
        result = detector.detect(None, None, None)
        assert result.is_newsletter is False

    def test_result_fields(self, detector):
        result = detector.detect("Newsletter", "", "news@site.com")
        assert set(result.model_dump()) == {
            "is_newsletter",
            "confidence",
            "unsubscribe_links",
            "sender_reputation",
            "frequency",
        }
