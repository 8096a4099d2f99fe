"""Tests for chunked concurrent batch processing."""

import threading
import pytest
from unittest.mock import MagicMock
from mailtriage.config import DEFAULT_PATTERN_CATALOG
from mailtriage.processing.batch import BatchCoordinator, chunked, run_chunked
from mailtriage.processing.catalog import PatternCatalog
from mailtriage.processing.classifier import EmailClassifier
from mailtriage.processing.schemas import EmailCategory, EmailInput, ProcessingConfig
from mailtriage.processing.todos import TodoExtractor
from mailtriage.logging.config import setup_logging


# --- Fixtures ---

@pytest.fixture(autouse=True)
def init_logging():
    setup_logging("debug")


@pytest.fixture
def config() -> ProcessingConfig:
    return ProcessingConfig(batch_size=10)


@pytest.fixture
def coordinator(config) -> BatchCoordinator:
    catalog = PatternCatalog.load(str(DEFAULT_PATTERN_CATALOG))
    return BatchCoordinator(
        config,
        EmailClassifier(config=config, catalog=catalog),
        TodoExtractor(config=config, catalog=catalog),
    )


def make_emails(count: int) -> list[EmailInput]:
    return [
        EmailInput(
            id=f"email-{i}",
            subject=f"Weekly newsletter #{i}",
            body="Please review the attached report.",
            sender="news@site.com",
        )
        for i in range(count)
    ]


# =============================================================================
# CHUNKING
# =============================================================================

class TestChunking:
    def test_chunk_sizes(self):
        sizes = [len(chunk) for chunk in chunked(list(range(25)), 10)]
        assert sizes == [10, 10, 5]

    def test_empty(self):
        assert list(chunked([], 10)) == []

    def test_results_in_input_order(self):
        pairs = list(run_chunked(list(range(7)), 3, lambda n: n * n))
        assert pairs == [(n, n * n) for n in range(7)]

    def test_exception_yielded_in_place(self):
        def work(n):
            if n == 2:
                raise ValueError("boom")
            return n

        pairs = list(run_chunked([1, 2, 3], 3, work))
        assert pairs[0] == (1, 1)
        assert isinstance(pairs[1][1], ValueError)
        assert pairs[2] == (3, 3)

    def test_chunk_completes_before_next_starts(self):
        lock = threading.Lock()
        running = 0
        peak = 0

        def work(n):
            nonlocal running, peak
            with lock:
                running += 1
                peak = max(peak, running)
            with lock:
                running -= 1
            return n

        list(run_chunked(list(range(12)), 4, work))
        assert peak <= 4


# =============================================================================
# COORDINATOR
# =============================================================================

class TestBatchCoordinator:
    def test_classify_batch_covers_every_email(self, coordinator):
        emails = make_emails(25)
        results = coordinator.classify_batch(emails)

        assert set(results) == {e.id for e in emails}
        assert all(r.category == EmailCategory.NEWSLETTER for r in results.values())

    def test_extract_batch_covers_every_email(self, coordinator):
        emails = make_emails(12)
        results = coordinator.extract_batch(emails)

        assert set(results) == {e.id for e in emails}
        assert all(r.has_todos for r in results.values())

    def test_failed_email_is_left_out(self, config):
        emails = make_emails(5)
        classifier = MagicMock(spec=EmailClassifier)

        def classify(subject, body, sender):
            if subject.endswith("#3"):
                raise RuntimeError("classifier crashed")
            return MagicMock(name="result")

        classifier.classify.side_effect = classify
        coordinator = BatchCoordinator(config, classifier, MagicMock(spec=TodoExtractor))

        results = coordinator.classify_batch(emails)

        assert "email-3" not in results
        assert len(results) == 4
        assert classifier.classify.call_count == 5

    def test_empty_batch(self, coordinator):
        assert coordinator.classify_batch([]) == {}
