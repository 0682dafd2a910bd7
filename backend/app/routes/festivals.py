"""
Festival endpoints.

- POST /duplicates: advisory duplicate report for a record
- POST /save-data: import a record (optionally refusing exact duplicates)
- GET /festivals/{event_id}: read back a stored festival
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..db import ConnectionPool
from ..errors import StoreUnavailable, classify_store_error
from ..feature_flags import FeatureFlags, get_feature_flags
from ..ingestion import FestivalImporter
from ..models import DuplicateReport, FestivalRecord, ImportResult, MatchTier
from ..services import DuplicateDetector, FestivalRepository

logger = logging.getLogger(__name__)
router = APIRouter()

RETRY_AFTER_SECONDS = 10


# === Models ===


class SaveDataRequest(BaseModel):
    """A validated record plus the extraction confidence it came with."""
    data: FestivalRecord
    confidence: float = Field(..., ge=0, le=1, description="Extraction confidence")


class SaveDataResponse(BaseModel):
    """Successful import envelope."""
    success: bool = True
    data: ImportResult
    meta: dict[str, Any]


# === Dependencies ===


def get_pool(request: Request) -> ConnectionPool:
    """Pool opened by the application lifespan."""
    return request.app.state.pool


def get_detector(pool: ConnectionPool = Depends(get_pool)) -> DuplicateDetector:
    return DuplicateDetector(pool)


def get_importer(pool: ConnectionPool = Depends(get_pool)) -> FestivalImporter:
    return FestivalImporter(pool)


def _meta(request_id: str, started: float, **extra) -> dict[str, Any]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request_id,
        "duration_ms": int((time.perf_counter() - started) * 1000),
        **extra,
    }


# === Endpoints ===


@router.post("/duplicates", response_model=DuplicateReport)
async def check_duplicates(
    record: FestivalRecord,
    detector: DuplicateDetector = Depends(get_detector),
) -> DuplicateReport:
    """Report existing entities that resemble the record. Never fails on store errors."""
    return await detector.detect(record)


@router.post("/save-data", response_model=SaveDataResponse)
async def save_data(
    body: SaveDataRequest,
    detector: DuplicateDetector = Depends(get_detector),
    importer: FestivalImporter = Depends(get_importer),
    flags: FeatureFlags = Depends(get_feature_flags),
):
    """
    Import a festival record.

    Returns:
        200 with the ImportResult on success
        409 when a high-tier festival duplicate exists (flag-controlled)
        503 when the store is unreachable, 500 on any other write failure
    """
    request_id = str(uuid.uuid4())
    started = time.perf_counter()
    record = body.data
    logger.info(f"[{request_id}] Saving festival '{record.name}' (confidence={body.confidence})")

    if flags.feature_duplicate_check:
        report = await detector.detect(record)
        exact = [dup for dup in report.festivals if dup.match_type == MatchTier.HIGH]
        if exact and flags.feature_skip_exact_duplicates:
            logger.info(
                f"[{request_id}] Skipping '{record.name}': matches existing "
                f"'{exact[0].existing_name}' ({exact[0].existing_id})"
            )
            return JSONResponse(
                status_code=409,
                content={
                    "success": False,
                    "error": {
                        "code": "DUPLICATE_FESTIVAL",
                        "message": f'Festival already exists: "{exact[0].existing_name}"',
                    },
                    "duplicates": report.model_dump(mode="json"),
                    "meta": _meta(request_id, started),
                },
            )

    result = await importer.import_festival(record)

    if not result.success:
        logger.error(f"[{request_id}] Import failed ({result.error_code}): {result.error}")
        if result.error_code == StoreUnavailable.code:
            raise HTTPException(
                status_code=503,
                detail={"code": result.error_code, "message": result.error},
                headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
            )
        raise HTTPException(
            status_code=500,
            detail={"code": result.error_code, "message": result.error},
        )

    return SaveDataResponse(
        data=result,
        meta=_meta(request_id, started, confidence=body.confidence),
    )


@router.get("/festivals/{event_id}")
async def get_festival(event_id: str, pool: ConnectionPool = Depends(get_pool)) -> dict:
    """Stored festival with venue, teachers, musicians, tags and prices."""
    try:
        async with pool.acquire() as conn:
            festival: Optional[dict] = await FestivalRepository().get_festival(conn, event_id)
    except Exception as e:
        error = classify_store_error(e)
        logger.error(f"Failed to load festival {event_id}: {error.message}", exc_info=True)
        if isinstance(error, StoreUnavailable):
            raise HTTPException(
                status_code=503,
                detail=error.to_dict(),
                headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
            )
        raise HTTPException(status_code=500, detail="Internal server error")

    if festival is None:
        raise HTTPException(status_code=404, detail="Festival not found")
    return festival
