"""
Batch coordinator.

Runs many emails through the classifier or the todo extractor in chunks of
config.batch_size. Each chunk runs concurrently in its own thread pool and is
joined before its results are merged, so no work outlives the call.

Results are keyed by email id; completion order doesn't matter. An email
whose processing raises is logged and left out of the result map.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterator, Sequence, TypeVar

from mailtriage.processing.classifier import EmailClassifier
from mailtriage.processing.schemas import (
    EmailClassificationResult,
    EmailInput,
    ProcessingConfig,
    TodoExtractionResult,
)
from mailtriage.processing.todos import TodoExtractor
from mailtriage.logging.audit import audit

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most `size` items."""
    for start in range(0, len(items), size):
        yield items[start:start + size]


def run_chunked(
    items: Sequence[T],
    size: int,
    work: Callable[[T], R],
) -> Iterator[tuple[T, R | BaseException]]:
    """
    Apply `work` to every item, `size` at a time, in parallel within a chunk.

    Yields (item, result) pairs in input order; a raised exception is
    yielded in place of the result instead of propagating.
    """
    for chunk in chunked(items, size):
        with ThreadPoolExecutor(max_workers=len(chunk)) as pool:
            futures = [(item, pool.submit(work, item)) for item in chunk]
        # Leaving the with-block joins every future in the chunk.
        for item, future in futures:
            error = future.exception()
            yield item, error if error is not None else future.result()


class BatchCoordinator:
    """Fans emails out through the two engines in fixed-size chunks."""

    def __init__(
        self,
        config: ProcessingConfig,
        classifier: EmailClassifier,
        extractor: TodoExtractor,
    ):
        self.config = config
        self._classifier = classifier
        self._extractor = extractor

    def classify_batch(self, emails: Sequence[EmailInput]) -> dict[str, EmailClassificationResult]:
        return self._run(
            emails,
            lambda e: self._classifier.classify(e.subject, e.body, e.sender),
            "classification",
        )

    def extract_batch(self, emails: Sequence[EmailInput]) -> dict[str, TodoExtractionResult]:
        return self._run(
            emails,
            lambda e: self._extractor.extract(e.subject, e.body, e.sender),
            "todo_extraction",
        )

    def _run(self, emails: Sequence[EmailInput], work: Callable, kind: str) -> dict:
        results = {}
        failed = 0

        for email, outcome in run_chunked(list(emails), self.config.batch_size, work):
            if isinstance(outcome, BaseException):
                failed += 1
                logger.error(
                    f"batch.{kind}_failed",
                    extra={
                        "action": f"batch.{kind}_failed",
                        "email_id": getattr(email, "id", None),
                        "error": str(outcome),
                    },
                )
                continue
            results[email.id] = outcome

        audit.info(
            f"batch.{kind}_completed",
            email_count=len(emails),
            result_count=len(results),
            failed_count=failed,
            batch_size=self.config.batch_size,
        )
        return results
