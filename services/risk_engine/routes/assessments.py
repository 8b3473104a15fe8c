"""
Assessment Run Routes
=====================

API endpoints for assessment runs: creation, document analysis results,
evidence submission and review decisions.

Version: 0.1.0
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from services.risk_engine.dependencies import get_orchestrator
from services.risk_engine.models.api import (
    AnalysisResultRequest,
    CreateRunRequest,
    RegisterDocumentRequest,
)
from services.risk_engine.models.evidence import AnalysisStatus, UploadedDocument
from services.risk_engine.services.reanalysis import EvidenceSubmission, ReanalysisOrchestrator
from shared.logging import get_logger
from shared.models.common import BaseResponse


logger = get_logger(__name__)

router = APIRouter()


@router.post("", response_model=BaseResponse[dict[str, Any]], status_code=status.HTTP_201_CREATED)
async def create_run(
    request: CreateRunRequest,
    orchestrator: ReanalysisOrchestrator = Depends(get_orchestrator),
) -> BaseResponse[dict[str, Any]]:
    """
    Create an assessment run.

    Weights are validated immediately; an invalid set returns 422.
    """
    run = await orchestrator.create_run(
        organization_id=request.organization_id,
        weight_config=request.weights.to_config(),
        sub_scores=request.sub_scores,
    )
    return BaseResponse(data=run.to_dict(), message="Assessment run created")


@router.get("", response_model=BaseResponse[list[dict[str, Any]]])
async def list_runs(
    organization_id: str | None = Query(default=None, description="Filter by organization"),
    orchestrator: ReanalysisOrchestrator = Depends(get_orchestrator),
) -> BaseResponse[list[dict[str, Any]]]:
    """List assessment runs."""
    runs = orchestrator.list_runs(organization_id)
    return BaseResponse(data=[r.to_dict() for r in runs])


@router.get("/{run_id}", response_model=BaseResponse[dict[str, Any]])
async def get_run(
    run_id: str,
    orchestrator: ReanalysisOrchestrator = Depends(get_orchestrator),
) -> BaseResponse[dict[str, Any]]:
    """Get an assessment run with its latest result and history."""
    run = orchestrator.get_run(run_id)
    return BaseResponse(data=run.to_dict())


@router.post(
    "/{run_id}/documents",
    response_model=BaseResponse[dict[str, Any]],
    status_code=status.HTTP_201_CREATED,
)
async def register_document(
    run_id: str,
    request: RegisterDocumentRequest,
    orchestrator: ReanalysisOrchestrator = Depends(get_orchestrator),
) -> BaseResponse[dict[str, Any]]:
    """Attach an uploaded document; it stays pending until analyzed."""
    document = await orchestrator.register_document(
        run_id,
        UploadedDocument(
            evidence_id=request.document_id,
            document_id=request.document_id,
            filename=request.filename,
            categories=tuple(request.categories),
            question_ids=tuple(request.question_ids),
        ),
    )
    return BaseResponse(data=document.model_dump(mode="json"), message="Document registered")


@router.post("/{run_id}/documents/{document_id}/analysis", response_model=BaseResponse[dict[str, Any]])
async def report_analysis(
    run_id: str,
    document_id: str,
    request: AnalysisResultRequest,
    orchestrator: ReanalysisOrchestrator = Depends(get_orchestrator),
) -> BaseResponse[dict[str, Any]]:
    """Report the outcome of a document analysis."""
    if request.status == AnalysisStatus.ANALYZED:
        document = await orchestrator.complete_analysis(
            run_id,
            document_id,
            kind=request.document_kind,
            categories=request.categories,
            question_ids=request.question_ids,
        )
    elif request.status == AnalysisStatus.FAILED:
        document = await orchestrator.fail_analysis(
            run_id,
            document_id,
            reason=request.reason or "analysis failed",
        )
    else:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Analysis result must be 'analyzed' or 'failed'",
        )

    return BaseResponse(data=document.model_dump(mode="json"))


@router.post("/{run_id}/evidence", response_model=BaseResponse[dict[str, Any]])
async def submit_evidence(
    run_id: str,
    submission: EvidenceSubmission,
    orchestrator: ReanalysisOrchestrator = Depends(get_orchestrator),
) -> BaseResponse[dict[str, Any]]:
    """
    Submit selected evidence and re-score the run.

    Waits for the selected documents' analyses to finish.
    """
    run = await orchestrator.submit_evidence(run_id, submission)
    return BaseResponse(data=run.to_dict(), message=f"Assessment {run.status.value.lower()}")


@router.post("/{run_id}/skip-review", response_model=BaseResponse[dict[str, Any]])
async def skip_review(
    run_id: str,
    orchestrator: ReanalysisOrchestrator = Depends(get_orchestrator),
) -> BaseResponse[dict[str, Any]]:
    """Complete a run without resolving its low-confidence answers."""
    run = await orchestrator.skip_review(run_id)
    return BaseResponse(data=run.to_dict())


@router.post("/{run_id}/accept", response_model=BaseResponse[dict[str, Any]])
async def accept_run(
    run_id: str,
    orchestrator: ReanalysisOrchestrator = Depends(get_orchestrator),
) -> BaseResponse[dict[str, Any]]:
    """Accept a completed run."""
    run = await orchestrator.accept(run_id)
    return BaseResponse(data=run.to_dict())


@router.post("/{run_id}/abandon", response_model=BaseResponse[dict[str, Any]])
async def abandon_run(
    run_id: str,
    orchestrator: ReanalysisOrchestrator = Depends(get_orchestrator),
) -> BaseResponse[dict[str, Any]]:
    """Abandon a run. The run is kept for reference."""
    run = await orchestrator.abandon(run_id)
    return BaseResponse(data=run.to_dict())
