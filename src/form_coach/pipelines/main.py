"""
FastAPI entry point for the Form Coach backend.

Endpoints:
    POST /api/form/analyze
        Receives a complete pose sequence (already estimated on the client
        or by a batch job) plus recording metadata and returns the
        FormAnalysis report.
    POST /api/form/analyze-metadata
        Metadata-only assessment when no pose sequence is available.

Run:
    cd <project_root>
    uvicorn form_coach.pipelines.main:app --host 0.0.0.0 --port 8000 --reload
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import LOG_LEVEL
from .engine import analyze_metadata_only, analyze_pose_frames
from .errors import ConsentRequiredError, ExerciseNotIdentifiedError, FrameSequenceError
from .state import FormAnalysis, PoseFrame, VideoMetadata
from ..agents import CoachingAgent

logger = logging.getLogger("form_coach")
logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s | %(name)s | %(message)s")


# ============================================================================
# Pydantic request / response models
# ============================================================================

class PoseAnalysisRequest(BaseModel):
    exercise: str = Field(..., description="Exercise name or library id, e.g. 'squat'")
    metadata: VideoMetadata
    frames: list[PoseFrame] = Field(
        ..., description="Pose sequence sampled at 30 Hz, frame numbers from 0"
    )


class MetadataAnalysisRequest(BaseModel):
    exercise: Optional[str] = None
    metadata: VideoMetadata


class ErrorResponse(BaseModel):
    error_code: str
    message: str


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error_code": code, "message": message},
    )


# ============================================================================
# App lifecycle: build the coaching graph once on startup
# ============================================================================

_state: dict[str, CoachingAgent] = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Compile the coaching graph at startup."""
    logger.info("Starting Form Coach backend …")
    _state["agent"] = CoachingAgent()
    logger.info("Coaching graph compiled, server is ready.")
    yield
    _state.clear()
    logger.info("Shutting down.")


app = FastAPI(
    title="Form Coach API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Health-check
# ============================================================================

@app.get("/health")
async def health():
    return {"status": "ok"}


# ============================================================================
# Analysis endpoints
# ============================================================================

@app.post(
    "/api/form/analyze",
    response_model=FormAnalysis,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
def analyze_form(request: PoseAnalysisRequest):
    """Pose sequence → rules → quality → coaching → report.

    NOTE: sync endpoint so FastAPI runs it in its threadpool.
    """
    t0 = time.time()
    try:
        report = analyze_pose_frames(
            frames=request.frames,
            metadata=request.metadata,
            exercise=request.exercise,
            coaching_agent=_state.get("agent"),
        )
    except ConsentRequiredError as exc:
        return _error(403, "CONSENT_REQUIRED", str(exc))
    except ExerciseNotIdentifiedError as exc:
        return _error(422, "EXERCISE_NOT_IDENTIFIED", str(exc))
    except FrameSequenceError as exc:
        return _error(400, "INVALID_REQUEST", str(exc))
    except Exception as exc:
        logger.exception("Form analysis failed")
        return _error(500, "ANALYSIS_FAILED", f"Analysis error: {exc}")

    logger.info(
        "Request complete in %.2fs: exercise='%s' frames=%d errors=%d",
        time.time() - t0, request.exercise, len(request.frames), len(report.errors),
    )
    return report


@app.post(
    "/api/form/analyze-metadata",
    response_model=FormAnalysis,
    responses={
        403: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
def analyze_metadata(request: MetadataAnalysisRequest):
    """Recording-metadata quality assessment without pose data."""
    try:
        return analyze_metadata_only(
            metadata=request.metadata,
            exercise=request.exercise,
            coaching_agent=_state.get("agent"),
        )
    except ConsentRequiredError as exc:
        return _error(403, "CONSENT_REQUIRED", str(exc))
    except Exception as exc:
        logger.exception("Metadata analysis failed")
        return _error(500, "ANALYSIS_FAILED", f"Analysis error: {exc}")
