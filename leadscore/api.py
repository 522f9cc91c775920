"""
HTTP API for the analysis pipeline.

Routes:
    POST /api/analyze                 run transcription + scoring for a call
    GET  /api/analyze/{id}            call with derived statuses and customer
    GET  /api/analyze                 filtered, paginated listing
    POST /api/analyze/{id}/score      score an already transcribed call
    GET  /api/scoring/config          weights, thresholds, lexicon version
    GET  /health
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import Field

from . import __version__
from .analyzer import AnalysisOrchestrator
from .config import Settings
from .errors import LeadScoreError
from .models import CallAnalysisView, CamelModel, Customer, SalesCall
from .queries import AnalysisQueryService
from .scoring import ScoringEngine
from .sqlite_repository import SQLiteCallRepository
from .stats import transcription_stats
from .transcription import WhisperTranscriptionGateway

logger = logging.getLogger(__name__)


class AnalyzeRequest(CamelModel):
    """Body of POST /api/analyze."""

    sales_call_id: int = Field(..., description="Sales call to analyze")


# =============================================================================
# Serialization helpers
# =============================================================================


def dump(model: CamelModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


def call_payload(
    call: SalesCall, customer: Optional[Customer] = None, with_stats: bool = False
) -> dict[str, Any]:
    data = dump(call)
    data["customer"] = dump(customer) if customer else None
    if with_stats:
        stats = (
            transcription_stats(call.transcript, call.transcript_duration)
            if call.has_transcript
            else None
        )
        data["transcriptionStats"] = dump(stats) if stats else None
    return data


def view_payload(view: CallAnalysisView) -> dict[str, Any]:
    data = call_payload(view.sales_call, view.customer)
    data["transcriptionStats"] = (
        dump(view.transcription_stats) if view.transcription_stats else None
    )
    return data


# =============================================================================
# Exception Handlers
# =============================================================================


async def pipeline_exception_handler(request: Request, exc: LeadScoreError):
    """Render pipeline errors with their code and context."""
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.code,
            "message": exc.message,
            "data": jsonable_encoder(exc.context) if exc.context else None,
        },
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed requests are 400s, matching the pipeline's ValidationError."""
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "validation_error",
            "message": "Validation failed",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


async def generic_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "internal_error",
            "message": "An unexpected error occurred",
        },
    )


# =============================================================================
# Dependencies
# =============================================================================


def get_orchestrator(request: Request) -> AnalysisOrchestrator:
    return request.app.state.orchestrator


def get_query_service(request: Request) -> AnalysisQueryService:
    return request.app.state.query_service


# =============================================================================
# Routes
# =============================================================================


router = APIRouter(prefix="/api")


@router.post("/analyze")
async def analyze_call(
    body: AnalyzeRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """Transcribe and score a sales call."""
    outcome = await orchestrator.run_full_analysis(body.sales_call_id)
    return {
        "success": True,
        "message": "Audio analysis completed successfully",
        "data": {
            "salesCall": call_payload(outcome.sales_call, outcome.customer),
            "transcription": {
                "text": outcome.transcription.text,
                "language": outcome.transcription.language,
                "duration": outcome.transcription.duration,
                "stats": dump(outcome.stats),
            },
            "scoring": dump(outcome.scoring),
        },
    }


@router.get("/analyze/{call_id}")
async def get_analysis(
    call_id: int,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """Get analysis results for a sales call."""
    view = await orchestrator.get_analysis(call_id)
    return {"success": True, "data": view_payload(view)}


@router.get("/analyze")
async def list_analyses(
    request: Request,
    status: Optional[str] = Query(default=None),
    customer_id: Optional[int] = Query(default=None, alias="customerId"),
    page: int = Query(default=1),
    limit: Optional[int] = Query(default=None),
    query_service: AnalysisQueryService = Depends(get_query_service),
):
    """List analyses with filters and pagination."""
    result = await query_service.list(
        status=status,
        customer_id=customer_id,
        page=page,
        limit=limit if limit is not None else request.app.state.default_page_size,
    )
    return {
        "success": True,
        "data": {
            "analyses": [
                call_payload(call, result.customers.get(call.customer_id), with_stats=True)
                for call in result.items
            ],
            "pagination": {
                "total": result.total,
                "page": result.page,
                "limit": result.limit,
                "totalPages": result.total_pages,
            },
            "summary": dump(result.summary),
        },
    }


@router.post("/analyze/{call_id}/score")
async def score_call(
    call_id: int,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """Score an already transcribed sales call."""
    outcome = await orchestrator.score_existing(call_id)
    return {
        "success": True,
        "message": "Scoring completed successfully",
        "data": {
            "salesCall": call_payload(outcome.sales_call, outcome.customer),
            "scoring": dump(outcome.scoring),
        },
    }


@router.get("/scoring/config")
async def scoring_config(orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)):
    """Scoring weights, thresholds and lexicon version."""
    return {"success": True, "data": orchestrator.engine.describe()}


# =============================================================================
# Application Factory
# =============================================================================


def create_app(
    orchestrator: AnalysisOrchestrator,
    query_service: AnalysisQueryService,
    *,
    default_page_size: int = 10,
    lifespan=None,
) -> FastAPI:
    """
    Create the FastAPI application around already constructed services.

    Args:
        orchestrator: Pipeline coordinator
        query_service: Read-side listing service
        default_page_size: Page size when the request gives none
        lifespan: Optional lifespan context manager

    Returns:
        FastAPI app
    """
    app = FastAPI(title="LeadScore", version=__version__, lifespan=lifespan)
    app.state.orchestrator = orchestrator
    app.state.query_service = query_service
    app.state.default_page_size = default_page_size

    app.add_exception_handler(LeadScoreError, pipeline_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(router)

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "version": __version__,
            "timestamp": datetime.now().isoformat(),
        }

    return app


def build_app(settings: Settings) -> FastAPI:
    """Wire SQLite, Whisper and the scoring engine from settings."""
    repository = SQLiteCallRepository(settings.sqlite_db_path)
    gateway = WhisperTranscriptionGateway(settings)
    orchestrator = AnalysisOrchestrator(
        repository,
        gateway,
        ScoringEngine(settings.scoring_config()),
        transcription_timeout=settings.transcription_timeout_seconds,
    )
    query_service = AnalysisQueryService(repository, max_limit=settings.max_page_size)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Database: %s", settings.sqlite_db_path)
        yield
        await gateway.aclose()
        await repository.close()

    return create_app(
        orchestrator,
        query_service,
        default_page_size=settings.default_page_size,
        lifespan=lifespan,
    )
