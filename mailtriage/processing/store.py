"""
Result store interface.

The processing engine never talks to a database directly. It receives an
object implementing ResultStore, which owns id generation, foreign keys, and
how priorities are encoded on disk. InMemoryResultStore is the reference
implementation used for local runs and tests.
"""

import threading
from typing import Optional, Protocol

from mailtriage.processing.schemas import (
    EmailClassificationResult,
    EmailInput,
    TodoCandidate,
    TodoExtractionResult,
    priority_rank,
)


class ResultStore(Protocol):
    """Persistence collaborator for processed emails."""

    def get_email(self, email_id: str) -> Optional[EmailInput]: ...

    def save_results(
        self,
        email_id: str,
        classification: Optional[EmailClassificationResult],
        todo_extraction: Optional[TodoExtractionResult],
    ) -> None: ...

    def clear_todos(self, email_id: str) -> None: ...


class StoredEmail:
    """What the in-memory store keeps per email."""

    def __init__(self, email: EmailInput):
        self.email = email
        self.classification: Optional[EmailClassificationResult] = None
        self.priority_rank: Optional[int] = None
        self.has_todos = False
        self.todos: list[TodoCandidate] = []


class InMemoryResultStore:
    """Dict-backed ResultStore. Safe to share across batch worker threads."""

    def __init__(self, emails: Optional[list[EmailInput]] = None):
        self._lock = threading.Lock()
        self._emails: dict[str, StoredEmail] = {}
        for email in emails or []:
            self.add_email(email)

    def add_email(self, email: EmailInput) -> None:
        with self._lock:
            self._emails[email.id] = StoredEmail(email)

    def get_email(self, email_id: str) -> Optional[EmailInput]:
        with self._lock:
            stored = self._emails.get(email_id)
            return stored.email if stored else None

    def get_record(self, email_id: str) -> Optional[StoredEmail]:
        with self._lock:
            return self._emails.get(email_id)

    def save_results(
        self,
        email_id: str,
        classification: Optional[EmailClassificationResult],
        todo_extraction: Optional[TodoExtractionResult],
    ) -> None:
        with self._lock:
            stored = self._emails.get(email_id)
            if stored is None:
                raise KeyError(f"Email not found: {email_id}")

            if classification is not None:
                stored.classification = classification
                stored.priority_rank = priority_rank(classification.priority)
                stored.has_todos = bool(todo_extraction and todo_extraction.has_todos)

            if todo_extraction is not None and todo_extraction.has_todos:
                # Same (title, description) is only stored once per email.
                existing = {(t.title, t.description) for t in stored.todos}
                for todo in todo_extraction.todos:
                    if (todo.title, todo.description) not in existing:
                        stored.todos.append(todo)
                        existing.add((todo.title, todo.description))

    def clear_todos(self, email_id: str) -> None:
        with self._lock:
            stored = self._emails.get(email_id)
            if stored is not None:
                stored.todos = []
                stored.has_todos = False
