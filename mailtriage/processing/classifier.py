"""
Heuristic email classifier.

Scores an email against every category in the pattern catalog, picks the
highest-scoring category, and derives the newsletter flag and a priority.
No model, no network: a pure function of the email text, the catalog, and
the current ProcessingConfig.

Usage:
    from mailtriage.processing.classifier import EmailClassifier

    classifier = EmailClassifier(config=config, catalog=catalog)
    result = classifier.classify(subject, body, sender)
    print(result.category, result.confidence)
"""

import logging
from typing import Optional

from mailtriage.processing.catalog import PatternCatalog
from mailtriage.processing.newsletter import NewsletterDetector
from mailtriage.processing.schemas import (
    EmailCategory,
    EmailClassificationResult,
    ProcessingConfig,
    TodoPriority,
)
from mailtriage.processing.scoring import matched_indicators, score_category
from mailtriage.logging.audit import audit

logger = logging.getLogger(__name__)

# Priority keywords over subject + body, checked top to bottom.
PRIORITY_KEYWORDS = (
    (TodoPriority.URGENT, ("urgent", "asap", "emergency")),
    (TodoPriority.HIGH, ("important", "deadline", "critical")),
    (TodoPriority.MEDIUM, ("please", "request", "need")),
)

# Secondary categories must score above this to be listed.
SUBCATEGORY_MIN_SCORE = 2
MAX_SUBCATEGORIES = 3


def failed_classification(reason: str = "Classification failed due to error") -> EmailClassificationResult:
    """The safe default returned whenever classification cannot run."""
    return EmailClassificationResult(
        category=EmailCategory.OTHER,
        subcategories=[],
        confidence=0.0,
        is_newsletter=False,
        priority=None,
        reasoning=reason,
    )


def determine_priority(subject: str, body: str) -> Optional[TodoPriority]:
    """First keyword tier found in the text wins; None when nothing matches."""
    text = f"{subject} {body}".lower()
    for priority, keywords in PRIORITY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return priority
    return None


class EmailClassifier:
    """
    Category scoring over the pattern catalog.

    Holds a reference to the shared ProcessingConfig; reconfiguration made
    through the processing engine is visible on the next call.
    """

    def __init__(self, config: ProcessingConfig, catalog: PatternCatalog):
        self.config = config
        self._catalog = catalog
        self._newsletters = NewsletterDetector(catalog)

    @property
    def newsletter_detector(self) -> NewsletterDetector:
        return self._newsletters

    def score_all(self, subject: str, body: str, sender: str) -> list[tuple[EmailCategory, int]]:
        """
        Score every category and sort by score, highest first.

        The sort is stable, so equal scores keep catalog order.
        """
        subject, body, sender = subject.lower(), body.lower(), sender.lower()
        scores = [
            (category, score_category(patterns, subject, body, sender))
            for category, patterns in self._catalog.categories.items()
        ]
        return sorted(scores, key=lambda item: item[1], reverse=True)

    def classify(self, subject: str, body: str, sender: str) -> EmailClassificationResult:
        """
        Classify a single email.

        Never raises. Any fault (including None subject or body) yields the
        default "other" result with zero confidence.
        """
        try:
            ranked = self.score_all(subject, body, sender)
            primary, primary_score = ranked[0]

            # Nothing matched anywhere: don't let catalog order pick a winner.
            if primary_score == 0:
                primary = EmailCategory.OTHER

            confidence = min(primary_score / 10, 1.0)

            subcategories = [
                category
                for category, score in ranked
                if category != primary and score > SUBCATEGORY_MIN_SCORE
            ][:MAX_SUBCATEGORIES]

            is_newsletter = primary == EmailCategory.NEWSLETTER
            if not is_newsletter and self.config.enable_newsletter_detection:
                is_newsletter = self._newsletters.detect(subject, body, sender).is_newsletter

            indicators = matched_indicators(
                self._catalog.patterns_for(primary),
                subject.lower(),
                body.lower(),
                sender.lower(),
            )

            result = EmailClassificationResult(
                category=primary,
                subcategories=subcategories,
                confidence=confidence,
                is_newsletter=is_newsletter,
                priority=determine_priority(subject, body),
                reasoning=f"Primary indicators: {', '.join(indicators)}",
            )

            audit.info(
                "email.classified",
                category=result.category.value,
                confidence=result.confidence,
                is_newsletter=result.is_newsletter,
                priority=result.priority.value if result.priority else None,
            )
            return result

        except Exception as e:
            logger.error(
                "classification.failed",
                extra={"action": "classification.failed", "error": str(e)},
                exc_info=True,
            )
            return failed_classification()
