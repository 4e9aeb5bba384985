"""Analyses routes for the MFA API.

Provides create/list/get/delete for analyses and the edit operations that
recompute results. Every edit loads the record, applies the change and
flushes the save before responding, so a 200 means the edit is stored.

Supports both SQL persistence (when configured) and the in-memory fallback.
"""

from typing import Any

from fastapi import APIRouter, Query, Request, Response
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from mfa.analysis.record import AnalysisRecord, RecordState
from mfa.api.errors import MfaHttpError
from mfa.config import load_config
from mfa.models.analysis import Attribute, Scenario, ScenarioResult, WeightSource
from mfa.persistence.saver import DebouncedSaver
from mfa.persistence.store import DEFAULT_LIST_LIMIT, AnalysisStore

router = APIRouter(prefix="/v1", tags=["Analyses"])


class CreateAnalysisRequest(BaseModel):
    """Request body for POST /v1/analyses."""

    name: str = Field(..., min_length=1)
    description: str | None = None


class RenameAnalysisRequest(BaseModel):
    """Request body for PATCH /v1/analyses/{analysis_id}."""

    name: str = Field(..., min_length=1)
    description: str | None = None


class WeightEditRequest(BaseModel):
    """Request body for a manual weight edit."""

    weight: int = Field(..., ge=0, le=100)


class RatingEditRequest(BaseModel):
    """Request body for a rating edit.

    The 0-100 bound is enforced by the record so out-of-range values get the
    RATING_OUT_OF_BOUNDS error code.
    """

    rating: int


class JudgmentRequest(BaseModel):
    """Request body for a pairwise judgment between attribute positions i and j."""

    i: int = Field(..., ge=0)
    j: int = Field(..., ge=0)
    slider: int


class Analysis(BaseModel):
    """Full analysis with derived results."""

    id: str
    name: str
    description: str | None = None
    attributes: list[Attribute]
    scenarios: list[Scenario]
    matrix: list[list[float]]
    results: list[ScenarioResult]
    weight_source: WeightSource
    active_weights: list[int]
    weights_total: int
    top_scenario_id: int | None = None
    state: str
    created_at: str | None = None
    updated_at: str | None = None


class AnalysisSummary(BaseModel):
    """Listing entry for an analysis."""

    id: str
    name: str
    description: str | None = None
    created_at: str
    updated_at: str | None = None


class AnalysisList(BaseModel):
    """List of analyses, newest first."""

    items: list[AnalysisSummary]


def _get_store(request: Request) -> AnalysisStore:
    store: AnalysisStore = request.app.state.store
    return store


def _get_saver(request: Request) -> DebouncedSaver:
    saver: DebouncedSaver = request.app.state.saver
    return saver


def _to_response(record: AnalysisRecord) -> Analysis:
    top = record.top_recommendation
    return Analysis(
        id=record.id,
        name=record.name,
        description=record.description,
        attributes=record.attributes,
        scenarios=record.scenarios,
        matrix=record.matrix.rows(),
        results=record.results,
        weight_source=record.weight_source,
        active_weights=record.active_weights,
        weights_total=record.weights_total,
        top_scenario_id=top.id if top is not None else None,
        state=record.state.value,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


async def _load(request: Request, analysis_id: str) -> AnalysisRecord:
    record: AnalysisRecord = await run_in_threadpool(
        AnalysisRecord.load, analysis_id, _get_store(request)
    )
    return record


async def _save(request: Request, record: AnalysisRecord) -> Analysis:
    """Flush the record to the store, failing the request if the save fails."""
    saved = await _get_saver(request).flush(record)
    if not saved or record.state is not RecordState.LOADED:
        raise MfaHttpError(
            status_code=503,
            code="SAVE_FAILED",
            message="The analysis was changed but could not be saved",
            details={"analysis_id": record.id, "error": record.last_save_error},
        )
    return _to_response(record)


@router.post("/analyses", response_model=Analysis, status_code=201)
async def create_analysis(request_body: CreateAnalysisRequest, request: Request) -> Analysis:
    """Create an analysis seeded with the default attributes and scenarios.

    Args:
        request_body: Name and optional description.
        request: FastAPI request for app state access.

    Returns:
        The created analysis.
    """
    record: AnalysisRecord = await run_in_threadpool(
        AnalysisRecord.create,
        request_body.name,
        request_body.description,
        _get_store(request),
    )
    return _to_response(record)


@router.get("/analyses", response_model=AnalysisList)
async def list_analyses(
    request: Request,
    limit: int = Query(DEFAULT_LIST_LIMIT, ge=1),
) -> AnalysisList:
    """List analyses, newest first.

    ``limit`` is capped at MFA_LIST_LIMIT_MAX.
    """
    effective_limit = min(limit, load_config().list_limit_max)
    documents: list[dict[str, Any]] = await run_in_threadpool(
        _get_store(request).list, effective_limit
    )
    items = [
        AnalysisSummary(
            id=d["id"],
            name=d["name"],
            description=d.get("description"),
            created_at=d["created_at"],
            updated_at=d.get("updated_at"),
        )
        for d in documents
    ]
    return AnalysisList(items=items)


@router.get("/analyses/{analysis_id}", response_model=Analysis)
async def get_analysis(analysis_id: str, request: Request) -> Analysis:
    """Load an analysis; results are recomputed from its inputs."""
    return _to_response(await _load(request, analysis_id))


@router.patch("/analyses/{analysis_id}", response_model=Analysis)
async def rename_analysis(
    analysis_id: str,
    request_body: RenameAnalysisRequest,
    request: Request,
) -> Analysis:
    """Change the name of an analysis, and its description when one is sent."""
    record = await _load(request, analysis_id)
    description = record.description
    if "description" in request_body.model_fields_set:
        description = request_body.description
    record.rename(request_body.name, description)
    return await _save(request, record)


@router.delete("/analyses/{analysis_id}", status_code=204)
async def delete_analysis(analysis_id: str, request: Request) -> Response:
    """Delete an analysis. Works even when the stored document is malformed."""
    await run_in_threadpool(_get_store(request).delete, analysis_id)
    return Response(status_code=204)


@router.put("/analyses/{analysis_id}/attributes/{attribute_id}/weight", response_model=Analysis)
async def set_attribute_weight(
    analysis_id: str,
    attribute_id: int,
    request_body: WeightEditRequest,
    request: Request,
) -> Analysis:
    """Edit one manual weight.

    Increases are clamped so the weight total never exceeds 100; the
    response shows the weight actually applied. Switches the analysis back
    to manual weights.
    """
    record = await _load(request, analysis_id)
    record.set_attribute_weight(attribute_id, request_body.weight)
    return await _save(request, record)


@router.put(
    "/analyses/{analysis_id}/scenarios/{scenario_id}/ratings/{index}",
    response_model=Analysis,
)
async def set_rating(
    analysis_id: str,
    scenario_id: int,
    index: int,
    request_body: RatingEditRequest,
    request: Request,
) -> Analysis:
    """Set the rating of one scenario against the attribute at ``index``."""
    record = await _load(request, analysis_id)
    record.set_rating(scenario_id, index, request_body.rating)
    return await _save(request, record)


@router.put("/analyses/{analysis_id}/judgments", response_model=Analysis)
async def set_judgment(
    analysis_id: str,
    request_body: JudgmentRequest,
    request: Request,
) -> Analysis:
    """Record a pairwise judgment; derived weights are re-derived if active."""
    record = await _load(request, analysis_id)
    record.set_judgment(request_body.i, request_body.j, request_body.slider)
    return await _save(request, record)


@router.post("/analyses/{analysis_id}/derive-weights", response_model=Analysis)
async def derive_weights(analysis_id: str, request: Request) -> Analysis:
    """Derive weights from the pairwise matrix and score with them."""
    record = await _load(request, analysis_id)
    record.derive_weights()
    return await _save(request, record)


@router.post("/analyses/{analysis_id}/manual-weights", response_model=Analysis)
async def use_manual_weights(analysis_id: str, request: Request) -> Analysis:
    """Drop derived weights and score with the manual weights again."""
    record = await _load(request, analysis_id)
    record.use_manual_weights()
    return await _save(request, record)
