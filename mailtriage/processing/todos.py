"""
Heuristic todo extraction.

Turns free-text email content into a deduplicated list of action items:

1. Sentence pass: split on sentence punctuation and blank lines, match each
   sentence against the catalog's action tiers (urgent → high → medium →
   low), then against imperative/modal phrasing as a fallback.
2. List pass: numbered items, bullets, and checkboxes anywhere in the text.
3. Due dates: resolved per candidate from its own source text.
4. Dedup: exact signature match drops; rewordings merge into the stronger one.
5. Threshold: candidates below config.confidence_threshold are dropped.

Usage:
    from mailtriage.processing.todos import TodoExtractor

    extractor = TodoExtractor(config=config, catalog=catalog)
    result = extractor.extract(subject, body, sender)
    for todo in result.todos:
        print(todo.priority, todo.title, todo.due_date)
"""

import logging
import re
from datetime import date
from typing import Callable, Optional

from mailtriage.processing.catalog import PatternCatalog
from mailtriage.processing.dates import extract_due_date
from mailtriage.processing.schemas import (
    ActionTier,
    ProcessingConfig,
    TodoCandidate,
    TodoExtractionResult,
    TodoPriority,
    TodoStatus,
    priority_rank,
)
from mailtriage.logging.audit import audit

logger = logging.getLogger(__name__)

# Sentence punctuation, or a blank line between paragraphs.
SENTENCE_SPLIT = re.compile(r"[.!?]+|\n\s*\n")
# "...last sentence\n2": the number belongs to the next list item.
LIST_MARKER_TAIL = re.compile(r"\n\s*\d+$")

# Fragments this short are noise; sentences outside [10, 200] never become todos.
MIN_FRAGMENT_LENGTH = 10
MIN_SENTENCE_LENGTH = 10
MAX_SENTENCE_LENGTH = 200

TITLE_MAX_LENGTH = 60
TITLE_PREFIX = re.compile(r"^(please\s+|kindly\s+|could you\s+|can you\s+|would you\s+)", re.IGNORECASE)

IMPERATIVE_VERBS = (
    "review|send|complete|finish|update|check|verify|confirm|schedule|call|email"
    "|submit|approve|sign|reply|respond|rsvp|pay|prepare|provide"
)
IMPERATIVE_PATTERNS = (
    re.compile(rf"(?:^|\bplease\s+)(?:{IMPERATIVE_VERBS})\b", re.IGNORECASE),
    re.compile(r"(need to|have to|must|should|could you|would you|can you)", re.IGNORECASE),
)
# Used when no keyword tier matches but the sentence reads like an instruction.
IMPERATIVE_TIER = ActionTier(keywords=(), priority=TodoPriority.MEDIUM, confidence=0.6)

NUMBERED_ITEM = re.compile(r"\d+\.\s+([^\n\r]+)")
BULLET_ITEM = re.compile(r"[-•*]\s+(?!\[[\sx]\])([^\n\r]+)", re.IGNORECASE)
CHECKBOX_ITEM = re.compile(r"\[([\sx])\]\s+([^\n\r]+)", re.IGNORECASE)

# A list item reads as a task when it opens with a verb ("Update your
# contact info", not "Market update") or carries request/deadline wording.
LIST_ITEM_VERB = re.compile(
    rf"^(?:please\s+|kindly\s+)?(?:need|must|should|{IMPERATIVE_VERBS})\b",
    re.IGNORECASE,
)
REQUEST_INDICATORS = (
    re.compile(r"\b(action|task|todo|follow up|deadline|due)\b", re.IGNORECASE),
    re.compile(r"\b(please|kindly|would you|can you|could you)\b", re.IGNORECASE),
)
LIST_ITEM_CONFIDENCE = 0.7

SIGNATURE_LENGTH = 50
WORD = re.compile(r"[a-z]+")
# Politeness and articles don't make two todos different.
FILLER_WORDS = frozenset({"please", "kindly", "could", "can", "would", "you", "the", "a", "an"})
# Two candidates whose content words differ by at most this many are rewordings.
MAX_REWORDING_DISTANCE = 1


def make_title(content: str) -> str:
    """Strip a politeness prefix, cap at 60 characters, capitalize."""
    title = TITLE_PREFIX.sub("", " ".join(content.split()))
    if len(title) > TITLE_MAX_LENGTH:
        title = title[: TITLE_MAX_LENGTH - 3] + "..."
    return title[:1].upper() + title[1:]


def looks_like_todo(content: str) -> bool:
    """A list item that opens with a verb or asks for something."""
    if LIST_ITEM_VERB.search(content.strip()):
        return True
    return any(pattern.search(content) for pattern in REQUEST_INDICATORS)


def split_sentences(text: str) -> list[str]:
    """Sentences with their whitespace collapsed to single spaces."""
    sentences = []
    for fragment in SENTENCE_SPLIT.split(text):
        fragment = LIST_MARKER_TAIL.sub("", fragment.strip())
        fragment = " ".join(fragment.split())
        if len(fragment) > MIN_FRAGMENT_LENGTH:
            sentences.append(fragment)
    return sentences


def signature(todo: TodoCandidate) -> str:
    raw = f"{todo.title.lower()}_{todo.description.lower()}"
    return re.sub(r"\s+", "", raw)[:SIGNATURE_LENGTH]


def content_words(todo: TodoCandidate) -> frozenset[str]:
    return frozenset(w for w in WORD.findall(todo.description.lower()) if w not in FILLER_WORDS)


def is_rewording(words: frozenset[str], other: frozenset[str]) -> bool:
    """True when the word sets differ by at most one word, e.g. an added "attached"."""
    return bool(words) and bool(other) and len(words ^ other) <= MAX_REWORDING_DISTANCE


def _strength(todo: TodoCandidate) -> tuple[int, float]:
    return -priority_rank(todo.priority), todo.confidence


def merge_rewordings(kept: TodoCandidate, later: TodoCandidate) -> TodoCandidate:
    """
    Collapse two rewordings of one task into the stronger of the two.

    Higher priority wins, then higher confidence; ties keep the earlier one.
    A due date found on either survives.
    """
    winner, loser = (later, kept) if _strength(later) > _strength(kept) else (kept, later)
    if winner.due_date is None and loser.due_date is not None:
        winner = winner.model_copy(update={"due_date": loser.due_date})
    return winner


def deduplicate(todos: list[TodoCandidate]) -> list[TodoCandidate]:
    """
    Drop repeated candidates, keeping input order.

    A candidate whose signature was already seen is dropped. One that is a
    rewording of a kept candidate is merged into it in place.
    """
    kept: list[TodoCandidate] = []
    seen_signatures: set[str] = set()

    for todo in todos:
        sig = signature(todo)
        if sig in seen_signatures:
            continue
        seen_signatures.add(sig)

        words = content_words(todo)
        for index, other in enumerate(kept):
            if is_rewording(words, content_words(other)):
                kept[index] = merge_rewordings(other, todo)
                break
        else:
            kept.append(todo)

    return kept


def failed_extraction(reason: str = "Extraction failed due to error") -> TodoExtractionResult:
    """The safe default returned whenever extraction cannot run."""
    return TodoExtractionResult(todos=[], has_todos=False, confidence=0.0, reasoning=reason)


class TodoExtractor:
    """
    Action-item extraction over the catalog's action tiers.

    `today` is a zero-argument callable returning the reference date for
    relative due dates ("by tomorrow"); it defaults to date.today.
    """

    def __init__(
        self,
        config: ProcessingConfig,
        catalog: PatternCatalog,
        today: Optional[Callable[[], date]] = None,
    ):
        self.config = config
        self._tiers = catalog.action_tiers
        self._today = today or date.today

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def extract(self, subject: str, body: str, sender: str) -> TodoExtractionResult:
        """
        Extract todos from one email.

        Never raises. Non-string subject or body yields an empty result whose
        reasoning mentions the failure.
        """
        try:
            if not isinstance(subject, str) or not isinstance(body, str):
                raise TypeError("subject and body must be strings")

            text = f"{subject} {body}"
            today = self._today()

            candidates = self.find_action_items(text, today) + self.find_list_items(text, today)
            unique = deduplicate(candidates)

            threshold = self.config.confidence_threshold
            todos = [todo for todo in unique if todo.confidence >= threshold]

            has_todos = bool(todos)
            confidence = sum(t.confidence for t in todos) / len(todos) if has_todos else 0.0

            result = TodoExtractionResult(
                todos=todos,
                has_todos=has_todos,
                confidence=confidence,
                reasoning=self._reasoning(todos),
            )

            audit.info(
                "todos.extracted",
                candidate_count=len(candidates),
                unique_count=len(unique),
                todo_count=len(todos),
                confidence=round(confidence, 3),
            )
            return result

        except Exception as e:
            logger.error(
                "todo_extraction.failed",
                extra={"action": "todo_extraction.failed", "error": str(e)},
                exc_info=True,
            )
            return failed_extraction()

    # =========================================================================
    # SENTENCE PASS
    # =========================================================================

    def find_action_items(self, text: str, today: date) -> list[TodoCandidate]:
        todos = []
        for sentence in split_sentences(text):
            tier = self.match_tier(sentence)
            if tier is None:
                continue
            todo = self._from_sentence(sentence, tier, today)
            if todo is not None:
                todos.append(todo)
        return todos

    def match_tier(self, sentence: str) -> Optional[ActionTier]:
        """First keyword tier present in the sentence, else the imperative tier, else None."""
        lower = sentence.lower()
        for tier in self._tiers:
            if any(keyword in lower for keyword in tier.keywords):
                return tier

        if any(pattern.search(sentence) for pattern in IMPERATIVE_PATTERNS):
            return IMPERATIVE_TIER

        return None

    def _from_sentence(self, sentence: str, tier: ActionTier, today: date) -> Optional[TodoCandidate]:
        clean = sentence.strip()
        if not MIN_SENTENCE_LENGTH <= len(clean) <= MAX_SENTENCE_LENGTH:
            return None

        lower = sentence.lower()
        return TodoCandidate(
            title=make_title(clean),
            description=clean,
            priority=tier.priority,
            status=TodoStatus.PENDING,
            due_date=extract_due_date(sentence, today),
            confidence=tier.confidence,
            context=sentence,
            action_keywords=[k for k in tier.keywords if k in lower],
        )

    # =========================================================================
    # LIST PASS
    # =========================================================================

    def find_list_items(self, text: str, today: date) -> list[TodoCandidate]:
        todos = []

        for pattern in (NUMBERED_ITEM, BULLET_ITEM):
            for match in pattern.finditer(text):
                content = match.group(1).strip()
                if content and looks_like_todo(content):
                    todos.append(self._from_list_item(content, today))

        for match in CHECKBOX_ITEM.finditer(text):
            content = match.group(2).strip()
            if not content:
                continue
            checked = match.group(1).lower() == "x"
            status = TodoStatus.COMPLETED if checked else TodoStatus.PENDING
            todos.append(self._from_list_item(content, today, status))

        return todos

    def _from_list_item(
        self, content: str, today: date, status: TodoStatus = TodoStatus.PENDING
    ) -> TodoCandidate:
        return TodoCandidate(
            title=make_title(content),
            description=content,
            priority=TodoPriority.MEDIUM,
            status=status,
            due_date=extract_due_date(content, today),
            confidence=LIST_ITEM_CONFIDENCE,
            context=content,
            action_keywords=[],
        )

    # =========================================================================
    # REASONING
    # =========================================================================

    @staticmethod
    def _reasoning(todos: list[TodoCandidate]) -> str:
        if not todos:
            return "No actionable items detected in email content"

        reasons = []
        for index, todo in enumerate(todos, start=1):
            keywords = ", ".join(todo.action_keywords) if todo.action_keywords else "action verbs"
            reasons.append(
                f'Todo {index}: Detected "{keywords}" indicating {todo.priority.value} priority action'
            )
        return "; ".join(reasons)
