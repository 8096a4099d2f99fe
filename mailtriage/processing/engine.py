"""
Processing engine: the orchestrator for per-email processing.

Runs the classifier and the todo extractor for each email, attaches
processing metadata, and hands the merged result to a result store.

The engine does NOT fetch emails or own a database. It receives email
records and an optional ResultStore, keeping it testable and decoupled
from the fetchers and the persistence layer.

Usage:
    from mailtriage.processing.engine import ProcessingEngine

    engine = ProcessingEngine(config=settings.processing_config(), catalog=catalog)

    # One email
    result = engine.process_email(email)

    # Many emails, batch_size at a time
    results = engine.process_batch(emails)

    # Reconfigure (validated, last writer wins)
    engine.update_config(confidence_threshold=0.7)
"""

import logging
import math
import time
from datetime import date, datetime, timezone
from typing import Callable, Optional, Sequence

from mailtriage.config import settings
from mailtriage.processing.batch import BatchCoordinator, run_chunked
from mailtriage.processing.catalog import PatternCatalog
from mailtriage.processing.classifier import EmailClassifier, failed_classification
from mailtriage.processing.schemas import (
    EmailInput,
    EmailProcessingResult,
    ProcessingConfig,
    ProcessingMetadata,
)
from mailtriage.processing.store import ResultStore
from mailtriage.processing.todos import TodoExtractor, failed_extraction
from mailtriage.logging.audit import audit
from mailtriage.logging.config import email_id_var

logger = logging.getLogger(__name__)

# Rough size heuristic: ~4 characters per token.
CHARS_PER_TOKEN = 4


def estimate_tokens(subject: str, body: str) -> int:
    """Approximate token count for an email's subject and body."""
    return math.ceil((len(subject) + len(body)) / CHARS_PER_TOKEN)


class ProcessingEngine:
    """
    Orchestrates classification and todo extraction for single emails and
    batches.

    The ProcessingConfig object is shared with the classifier, the extractor,
    and the batch coordinator. update_config mutates it in place, so all of
    them see the change on their next call. Updates during an in-flight
    batch are not synchronized: last writer wins.
    """

    def __init__(
        self,
        config: ProcessingConfig,
        catalog: PatternCatalog,
        store: Optional[ResultStore] = None,
        today: Optional[Callable[[], date]] = None,
        processing_version: Optional[str] = None,
    ):
        self._config = config
        self._store = store
        self._version = processing_version or settings.processing_version

        self.classifier = EmailClassifier(config=config, catalog=catalog)
        self.extractor = TodoExtractor(config=config, catalog=catalog, today=today)
        self.batch = BatchCoordinator(config, self.classifier, self.extractor)

        logger.info(
            "processing_engine.initialized",
            extra={
                "action": "processing_engine.initialized",
                "processing_version": self._version,
                "has_store": store is not None,
            },
        )

    # =========================================================================
    # SINGLE EMAIL
    # =========================================================================

    def process_email(self, email: EmailInput) -> EmailProcessingResult:
        """
        Classify an email, extract its todos, and save both.

        Disabled engines contribute their default "disabled or failed"
        result. A store failure marks the result unsuccessful but still
        returns the computed classification and todos.
        """
        token = email_id_var.set(email.id)
        start = time.monotonic()
        config = self._config

        try:
            subject = email.subject or ""
            sender = email.sender or ""
            body = self._truncate(email.body or "", config.max_tokens_per_email)

            classification = None
            todo_extraction = None
            if config.enable_categorization:
                classification = self.classifier.classify(subject, body, sender)
            if config.enable_todo_extraction:
                todo_extraction = self.extractor.extract(subject, body, sender)

            errors: list[str] = []
            if self._store is not None:
                try:
                    self._store.save_results(email.id, classification, todo_extraction)
                except Exception as e:
                    logger.error(
                        "email.save_failed",
                        extra={"action": "email.save_failed", "error": str(e)},
                        exc_info=True,
                    )
                    errors.append(str(e))

            processing_time_ms = int((time.monotonic() - start) * 1000)
            result = EmailProcessingResult(
                email_id=email.id,
                classification=classification
                or failed_classification("Classification disabled or failed"),
                todo_extraction=todo_extraction
                or failed_extraction("Todo extraction disabled or failed"),
                metadata=ProcessingMetadata(
                    processed_at=datetime.now(timezone.utc),
                    processing_version=self._version,
                    tokens_used=estimate_tokens(subject, body),
                    processing_time_ms=processing_time_ms,
                    errors=errors,
                ),
                success=not errors,
                error=errors[0] if errors else None,
            )

            audit.info(
                "email.processed",
                email_id=email.id,
                category=result.classification.category.value,
                todo_count=len(result.todo_extraction.todos),
                success=result.success,
                latency_ms=processing_time_ms,
            )
            return result

        finally:
            email_id_var.reset(token)

    def reprocess_email(self, email_id: str) -> Optional[EmailProcessingResult]:
        """
        Re-run processing for a stored email, replacing its todos.

        Returns None when the store doesn't know the email.
        """
        if self._store is None:
            raise RuntimeError("Reprocessing requires a result store")

        email = self._store.get_email(email_id)
        if email is None:
            logger.warning(
                "email.reprocess_not_found",
                extra={"action": "email.reprocess_not_found", "email_id": email_id},
            )
            return None

        self._store.clear_todos(email_id)
        result = self.process_email(email)
        audit.info("email.reprocessed", email_id=email_id, success=result.success)
        return result

    # =========================================================================
    # BATCH
    # =========================================================================

    def process_batch(self, emails: Sequence[EmailInput]) -> list[EmailProcessingResult]:
        """
        Process emails batch_size at a time, concurrently within a chunk.

        Results come back in input order. An email whose processing raises
        gets a "Batch processing failed" result; the rest carry on.
        """
        results = []
        for email, outcome in run_chunked(list(emails), self._config.batch_size, self.process_email):
            if isinstance(outcome, BaseException):
                email_id = str(getattr(email, "id", "unknown"))
                logger.error(
                    "batch.email_failed",
                    extra={"action": "batch.email_failed", "email_id": email_id, "error": str(outcome)},
                )
                results.append(self._batch_failure(email_id))
            else:
                results.append(outcome)

        audit.info(
            "batch.processed",
            total_emails=len(results),
            successful_count=sum(1 for r in results if r.success),
            failed_count=sum(1 for r in results if not r.success),
        )
        return results

    def _batch_failure(self, email_id: str) -> EmailProcessingResult:
        message = "Batch processing failed"
        return EmailProcessingResult(
            email_id=email_id,
            classification=failed_classification(message),
            todo_extraction=failed_extraction(message),
            metadata=ProcessingMetadata(
                processed_at=datetime.now(timezone.utc),
                processing_version=self._version,
                errors=[message],
            ),
            success=False,
            error=message,
        )

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def update_config(self, **changes) -> ProcessingConfig:
        """
        Merge a partial update into the shared config.

        None values are ignored. The merged config is validated as a whole
        before anything changes; a ValidationError leaves the config intact.
        """
        unknown = set(changes) - set(ProcessingConfig.model_fields)
        if unknown:
            raise TypeError(f"Unknown config fields: {', '.join(sorted(unknown))}")

        merged = self._config.model_dump()
        merged.update({k: v for k, v in changes.items() if v is not None})
        validated = ProcessingConfig(**merged)

        for field in ProcessingConfig.model_fields:
            setattr(self._config, field, getattr(validated, field))

        audit.info("config.updated", **self._config.model_dump())
        return self.get_config()

    def get_config(self) -> ProcessingConfig:
        """A copy of the current config; mutating it has no effect."""
        return self._config.model_copy()

    @staticmethod
    def _truncate(body: str, max_tokens: int) -> str:
        limit = max_tokens * CHARS_PER_TOKEN
        if len(body) <= limit:
            return body
        logger.warning(
            "email.body_truncated",
            extra={"action": "email.body_truncated", "original_chars": len(body), "limit_chars": limit},
        )
        return body[:limit]
