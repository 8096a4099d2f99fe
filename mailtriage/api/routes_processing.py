"""
Processing API routes.

Thin HTTP adapter over the processing engine:
- Classifying an email, extracting its todos, checking newsletter signals
- Processing one email or a batch end to end
- Reading and updating the runtime processing config

The engine is built once per process so config updates persist across
requests.
"""

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, ValidationError

from mailtriage.config import settings
from mailtriage.processing.catalog import PatternCatalog
from mailtriage.processing.engine import ProcessingEngine
from mailtriage.processing.schemas import (
    EmailClassificationResult,
    EmailInput,
    EmailProcessingResult,
    NewsletterDetectionResult,
    ProcessingConfig,
    ProcessingConfigUpdate,
    TodoExtractionResult,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/processing", tags=["processing"])

MAX_BATCH_EMAILS = 100


class EmailText(BaseModel):
    """Raw email text for the single-engine endpoints."""
    subject: str = Field(default="")
    body: str = Field(default="")
    sender: str = Field(default="")


class BatchRequest(BaseModel):
    emails: list[EmailInput] = Field(min_length=1, max_length=MAX_BATCH_EMAILS)


@lru_cache(maxsize=1)
def get_engine() -> ProcessingEngine:
    """Process-wide engine built from settings."""
    catalog = PatternCatalog.load(settings.pattern_catalog_path)
    return ProcessingEngine(config=settings.processing_config(), catalog=catalog)


@router.post("/classify")
async def classify_email(
    request: EmailText,
    engine: ProcessingEngine = Depends(get_engine),
) -> EmailClassificationResult:
    return engine.classifier.classify(request.subject, request.body, request.sender)


@router.post("/todos")
async def extract_todos(
    request: EmailText,
    engine: ProcessingEngine = Depends(get_engine),
) -> TodoExtractionResult:
    return engine.extractor.extract(request.subject, request.body, request.sender)


@router.post("/newsletter")
async def detect_newsletter(
    request: EmailText,
    engine: ProcessingEngine = Depends(get_engine),
) -> NewsletterDetectionResult:
    return engine.classifier.newsletter_detector.detect(
        request.subject, request.body, request.sender
    )


@router.post("/process")
async def process_email(
    email: EmailInput,
    engine: ProcessingEngine = Depends(get_engine),
) -> EmailProcessingResult:
    return engine.process_email(email)


@router.post("/batch")
async def process_batch(
    request: BatchRequest,
    engine: ProcessingEngine = Depends(get_engine),
) -> list[EmailProcessingResult]:
    return engine.process_batch(request.emails)


@router.get("/config")
async def get_config(engine: ProcessingEngine = Depends(get_engine)) -> ProcessingConfig:
    return engine.get_config()


@router.patch("/config")
async def update_config(
    update: ProcessingConfigUpdate,
    engine: ProcessingEngine = Depends(get_engine),
) -> ProcessingConfig:
    """
    Merge a partial config update.

    Out-of-range values are rejected with 422 and leave the config unchanged.
    """
    try:
        return engine.update_config(**update.model_dump(exclude_unset=True))
    except ValidationError as e:
        logger.warning(
            "config.update_rejected",
            extra={"action": "config.update_rejected", "error_count": e.error_count()},
        )
        raise HTTPException(
            status_code=422,
            detail=[{"loc": err["loc"], "msg": err["msg"]} for err in e.errors()],
        )
