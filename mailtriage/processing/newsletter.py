"""
Newsletter detection.

Scores an email against the newsletter pattern set and pulls unsubscribe
links out of HTML-ish bodies. Used on its own and by the classifier, which
flags an email as a newsletter when either signal fires.

Usage:
    from mailtriage.processing.newsletter import NewsletterDetector
    detector = NewsletterDetector(catalog)
    result = detector.detect(subject, body, sender)
    if result.is_newsletter:
        print(result.unsubscribe_links)
"""

import logging
import re

from mailtriage.processing.catalog import PatternCatalog
from mailtriage.processing.schemas import EmailCategory, NewsletterDetectionResult
from mailtriage.processing.scoring import score_category

logger = logging.getLogger(__name__)

# href values that point at an opt-out page, checked in this order.
UNSUBSCRIBE_LINK_PATTERNS = (
    re.compile(r"""href=["']([^"']*unsubscribe[^"']*)["']""", re.IGNORECASE),
    re.compile(r"""href=["']([^"']*opt-out[^"']*)["']""", re.IGNORECASE),
    re.compile(r"""href=["']([^"']*remove[^"']*)["']""", re.IGNORECASE),
)

# Newsletter score above this marks an email as a newsletter on its own.
NEWSLETTER_SCORE_THRESHOLD = 5
# Score bonus for carrying at least one unsubscribe link.
UNSUBSCRIBE_BONUS = 5


def extract_unsubscribe_links(body: str) -> list[str]:
    """Return unsubscribe/opt-out/remove hrefs, deduplicated in first-seen order."""
    links: dict[str, None] = {}
    for pattern in UNSUBSCRIBE_LINK_PATTERNS:
        for match in pattern.finditer(body):
            link = match.group(1).strip()
            if link:
                links.setdefault(link, None)
    return list(links)


class NewsletterDetector:
    """Newsletter heuristics over the catalog's newsletter pattern set."""

    def __init__(self, catalog: PatternCatalog):
        self._patterns = catalog.patterns_for(EmailCategory.NEWSLETTER)

    def score(self, subject: str, body: str, sender: str) -> int:
        """Newsletter category score. Inputs may be in any case."""
        return score_category(
            self._patterns, subject.lower(), body.lower(), sender.lower()
        )

    def detect(self, subject: str, body: str, sender: str) -> NewsletterDetectionResult:
        """
        Decide whether an email is a newsletter.

        is_newsletter: score > 5, or at least one unsubscribe link.
        confidence:    (score + 5 if a link was found) / 10, capped at 1.
        """
        subject = subject or ""
        body = body or ""
        sender = sender or ""

        links = extract_unsubscribe_links(body)
        has_unsubscribe = bool(links)
        score = self.score(subject, body, sender)

        bonus = UNSUBSCRIBE_BONUS if has_unsubscribe else 0
        return NewsletterDetectionResult(
            is_newsletter=score > NEWSLETTER_SCORE_THRESHOLD or has_unsubscribe,
            confidence=min((score + bonus) / 10, 1.0),
            unsubscribe_links=links,
        )
