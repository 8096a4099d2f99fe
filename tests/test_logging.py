"""Tests for the structured logging system."""

import json
import logging
from mailtriage.logging.config import setup_logging, request_id_var, email_id_var
from mailtriage.logging.audit import audit


def test_json_format(capsys):
    """Log output should be valid JSON with expected fields."""
    setup_logging(level="debug")
    logger = logging.getLogger("test")
    logger.info("test message")

    captured = capsys.readouterr()
    log = json.loads(captured.out.strip())

    assert log["level"] == "info"
    assert log["message"] == "test message"
    assert log["logger"] == "test"
    assert "timestamp" in log
    assert "request_id" in log
    assert "email_id" in log


def test_context_vars_appear_in_log(capsys):
    """Context variables should be included in every log line."""
    setup_logging(level="debug")
    logger = logging.getLogger("test")

    req_token = request_id_var.set("abc123")
    email_token = email_id_var.set("msg-42")

    try:
        logger.info("email step")
        captured = capsys.readouterr()
        log = json.loads(captured.out.strip())

        assert log["request_id"] == "abc123"
        assert log["email_id"] == "msg-42"
    finally:
        request_id_var.reset(req_token)
        email_id_var.reset(email_token)


def test_extra_fields(capsys):
    """Extra kwargs should appear as top-level fields in the JSON."""
    setup_logging(level="debug")
    logger = logging.getLogger("test")
    logger.info("email processed", extra={"email_id": "msg-123", "latency_ms": 450})

    captured = capsys.readouterr()
    log = json.loads(captured.out.strip())

    assert log["email_id"] == "msg-123"
    assert log["latency_ms"] == 450


def test_exception_logging(capsys):
    """Exceptions should include type, message, and traceback."""
    setup_logging(level="debug")
    logger = logging.getLogger("test")

    try:
        raise ValueError("something went wrong")
    except ValueError:
        logger.exception("operation failed")

    captured = capsys.readouterr()
    log = json.loads(captured.out.strip())

    assert log["level"] == "error"
    assert log["exception_type"] == "ValueError"
    assert log["exception_message"] == "something went wrong"
    assert "traceback" in log


def test_audit_info(capsys):
    """Audit logger should produce structured JSON with action field."""
    setup_logging(level="debug")
    audit.info("email.classified", email_id="msg-456", category="work")

    captured = capsys.readouterr()
    log = json.loads(captured.out.strip())

    assert log["level"] == "info"
    assert log["action"] == "email.classified"
    assert log["email_id"] == "msg-456"
    assert log["category"] == "work"
    assert "dropped_fields" not in log


def test_audit_warning(capsys):
    setup_logging(level="debug")
    audit.warning("email.body_truncated", original_chars=20000)

    log = json.loads(capsys.readouterr().out.strip())
    assert log["level"] == "warning"
    assert log["original_chars"] == 20000


def test_audit_error(capsys):
    """Audit error should log at error level."""
    setup_logging(level="debug")
    audit.error("classification.failed", email_id="msg-789", error_type="TypeError")

    captured = capsys.readouterr()
    log = json.loads(captured.out.strip())

    assert log["level"] == "error"
    assert log["action"] == "classification.failed"
    assert log["error_type"] == "TypeError"


def test_audit_drops_content_fields(capsys):
    """Subjects, bodies, and todo titles never reach the log."""
    setup_logging(level="debug")
    audit.info(
        "todos.extracted",
        todo_count=1,
        subject="Salary review",
        body="Confidential",
        title="Sign the offer",
    )

    log = json.loads(capsys.readouterr().out.strip())

    assert log["todo_count"] == 1
    assert "subject" not in log
    assert "body" not in log
    assert "title" not in log
    assert log["dropped_fields"] == ["body", "subject", "title"]
    assert "Confidential" not in json.dumps(log)


def test_default_context_values(capsys):
    """Without middleware or engine setting context, defaults should appear."""
    setup_logging(level="debug")

    logger = logging.getLogger("test")
    logger.info("no context")

    captured = capsys.readouterr()
    log = json.loads(captured.out.strip())

    assert log["request_id"] == "-"
    assert log["email_id"] == "-"
