"""
Data models for the email processing pipeline.

These Pydantic models define the shape of everything flowing through the
classifier, the todo extractor, and the processing engine. Results are
frozen once built so callers can hand them to storage without copying.
"""

from datetime import date, datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field


class EmailCategory(str, Enum):
    """
    Primary category assigned to an email.

    Declaration order is the catalog order, which is also the tie-break
    order when two categories score the same.
    """
    NEWSLETTER = "newsletter"
    SOCIAL = "social"
    PROMOTIONAL = "promotional"
    WORK = "work"
    PERSONAL = "personal"
    FINANCE = "finance"
    TRAVEL = "travel"
    SHOPPING = "shopping"
    SUPPORT = "support"
    SPAM = "spam"
    IMPORTANT = "important"
    TODO = "todo"
    OTHER = "other"


class TodoPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TodoStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    SNOOZED = "snoozed"


# Storage-side numeric encoding. Lower number = more urgent.
PRIORITY_RANKS = {
    TodoPriority.URGENT: 1,
    TodoPriority.HIGH: 2,
    TodoPriority.MEDIUM: 3,
    TodoPriority.LOW: 4,
}


def priority_rank(priority: Optional[TodoPriority]) -> int:
    """Map a priority to the integer the persistence layer stores (None → medium)."""
    if priority is None:
        return PRIORITY_RANKS[TodoPriority.MEDIUM]
    return PRIORITY_RANKS[priority]


# =============================================================================
# CONFIGURATION
# =============================================================================

class ProcessingConfig(BaseModel):
    """
    Runtime knobs shared by the classifier, the todo extractor, and the
    batch coordinator.

    Range checks run at construction. Partial updates go through
    ProcessingEngine.update_config, which re-validates the merged result.
    """
    enable_categorization: bool = Field(default=True)
    enable_todo_extraction: bool = Field(default=True)
    enable_newsletter_detection: bool = Field(default=True)
    max_tokens_per_email: int = Field(default=4000, ge=1000, le=10000)
    confidence_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    batch_size: int = Field(default=10, ge=1, le=50)


class ProcessingConfigUpdate(BaseModel):
    """Partial update for ProcessingConfig. Unset fields are left alone."""
    enable_categorization: Optional[bool] = None
    enable_todo_extraction: Optional[bool] = None
    enable_newsletter_detection: Optional[bool] = None
    max_tokens_per_email: Optional[int] = None
    confidence_threshold: Optional[float] = None
    batch_size: Optional[int] = None


# =============================================================================
# PATTERN CATALOG
# =============================================================================

class CategoryPatternSet(BaseModel):
    """The five substring lists used to score one category."""
    keywords: tuple[str, ...] = ()
    sender_patterns: tuple[str, ...] = ()
    subject_patterns: tuple[str, ...] = ()
    body_patterns: tuple[str, ...] = ()
    domain_patterns: tuple[str, ...] = ()

    model_config = {"frozen": True}


class ActionTier(BaseModel):
    """A bucket of action keywords that maps to one todo priority."""
    keywords: tuple[str, ...]
    priority: TodoPriority
    confidence: float = Field(ge=0.0, le=1.0)

    model_config = {"frozen": True}


# =============================================================================
# EMAIL INPUT
# =============================================================================

class EmailInput(BaseModel):
    """An email as handed over by a fetcher or an API caller."""
    id: str
    subject: Optional[str] = Field(default="")
    body: Optional[str] = Field(default="")
    sender: Optional[str] = Field(default="")
    received_at: Optional[datetime] = Field(default=None)


# =============================================================================
# RESULTS
# =============================================================================

class EmailClassificationResult(BaseModel):
    """Result of classifying a single email."""
    category: EmailCategory
    subcategories: list[EmailCategory] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    is_newsletter: bool = False
    priority: Optional[TodoPriority] = None
    reasoning: str = ""

    model_config = {"frozen": True}


class NewsletterDetectionResult(BaseModel):
    """Result of the standalone newsletter heuristics."""
    is_newsletter: bool
    confidence: float = Field(ge=0.0, le=1.0)
    unsubscribe_links: list[str] = Field(default_factory=list)
    sender_reputation: Literal["trusted", "suspicious", "unknown"] = "unknown"
    frequency: Literal["daily", "weekly", "monthly", "irregular", "unknown"] = "unknown"

    model_config = {"frozen": True}


class TodoCandidate(BaseModel):
    """An action item extracted from email text, before it gets a storage id."""
    title: str
    description: str
    priority: TodoPriority
    status: TodoStatus = TodoStatus.PENDING
    due_date: Optional[date] = None
    confidence: float = Field(ge=0.0, le=1.0)
    context: str = ""
    action_keywords: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class TodoExtractionResult(BaseModel):
    """Result of extracting todos from a single email."""
    todos: list[TodoCandidate] = Field(default_factory=list)
    has_todos: bool = False
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reasoning: str = ""

    model_config = {"frozen": True}


class ProcessingMetadata(BaseModel):
    """Bookkeeping attached to every processed email."""
    processed_at: datetime
    processing_version: str
    tokens_used: int = 0
    processing_time_ms: int = 0
    errors: list[str] = Field(default_factory=list)


class EmailProcessingResult(BaseModel):
    """Merged output of the processing engine for one email."""
    email_id: str
    classification: EmailClassificationResult
    todo_extraction: TodoExtractionResult
    metadata: ProcessingMetadata
    success: bool
    error: Optional[str] = None
