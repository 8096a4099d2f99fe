"""
Additive substring scoring shared by the classifier and the newsletter detector.

Every argument is expected to be lowercased already; the classifier lowercases
subject, body and sender once per email and reuses them for all categories.
"""

from mailtriage.processing.schemas import CategoryPatternSet

# Weights per match. Subject matches count more than body matches.
BODY_KEYWORD_WEIGHT = 2
SUBJECT_KEYWORD_WEIGHT = 3
SENDER_PATTERN_WEIGHT = 4
SUBJECT_PATTERN_WEIGHT = 3
BODY_PATTERN_WEIGHT = 2
DOMAIN_PATTERN_WEIGHT = 3

MAX_INDICATORS = 3


def score_category(patterns: CategoryPatternSet, subject: str, body: str, sender: str) -> int:
    """Sum the weights of every pattern found. No early exit."""
    score = 0

    for keyword in patterns.keywords:
        if keyword in body:
            score += BODY_KEYWORD_WEIGHT
        if keyword in subject:
            score += SUBJECT_KEYWORD_WEIGHT

    for pattern in patterns.sender_patterns:
        if pattern in sender:
            score += SENDER_PATTERN_WEIGHT

    for pattern in patterns.subject_patterns:
        if pattern in subject:
            score += SUBJECT_PATTERN_WEIGHT

    for pattern in patterns.body_patterns:
        if pattern in body:
            score += BODY_PATTERN_WEIGHT

    for pattern in patterns.domain_patterns:
        if pattern in sender:
            score += DOMAIN_PATTERN_WEIGHT

    return score


def matched_indicators(
    patterns: CategoryPatternSet, subject: str, body: str, sender: str
) -> list[str]:
    """Human-readable list of the first few keyword and sender matches."""
    indicators = [
        f"keyword: {keyword}"
        for keyword in patterns.keywords
        if keyword in subject or keyword in body
    ]
    indicators.extend(
        f"sender pattern: {pattern}"
        for pattern in patterns.sender_patterns
        if pattern in sender
    )
    return indicators[:MAX_INDICATORS]
