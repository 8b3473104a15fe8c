"""
Reanalysis Workflow Service
===========================

Drives an assessment run through scoring and re-scoring as documents are
analyzed and answers are supplied.

Workflow:
1. Create run -> Draft (weights validated up front)
2. Register documents; each gets its own analysis completion signal
3. Submit evidence -> Scoring (waits only for the selected documents)
4. Aggregate -> Completed, or Needs Review if low-confidence answers remain
5. Supply answers / documents -> Rescoring -> Completed / Needs Review
6. Skip review, accept or abandon

Version: 0.1.0
"""

import asyncio
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from services.risk_engine.exceptions import (
    AggregationError,
    EvidenceAnalysisError,
    EvidenceNotFoundError,
    InvalidTransitionError,
    InvalidWeightsError,
    RunNotFoundError,
)
from services.risk_engine.models.assessment import AssessmentStatus, RiskLevel
from services.risk_engine.models.evidence import (
    AiExtractedAnswer,
    AnalysisStatus,
    DocumentKind,
    EvidenceItem,
    ManualAnswer,
    UploadedDocument,
)
from services.risk_engine.models.weights import CategoryWeightSet
from services.risk_engine.services.aggregator import (
    LowConfidenceQuestion,
    ScoreAggregator,
    ScoreResult,
)
from services.risk_engine.services.weights import WeightValidator
from shared.logging import get_logger


logger = get_logger(__name__)

UNCATEGORIZED = "uncategorized"


class WorkflowAction(str, Enum):
    """Assessment run workflow actions."""

    SUBMIT = "submit"
    COMPLETE = "complete"
    FLAG_REVIEW = "flag_review"
    FAIL = "fail"
    SKIP = "skip"
    ACCEPT = "accept"
    ABANDON = "abandon"


@dataclass
class AssessmentWorkflow:
    """Assessment run state machine."""

    # Valid transitions
    transitions: dict[AssessmentStatus, dict[WorkflowAction, AssessmentStatus]] = field(
        default_factory=lambda: {
            AssessmentStatus.DRAFT: {
                WorkflowAction.SUBMIT: AssessmentStatus.SCORING,
                WorkflowAction.ABANDON: AssessmentStatus.ABANDONED,
            },
            AssessmentStatus.SCORING: {
                WorkflowAction.COMPLETE: AssessmentStatus.COMPLETED,
                WorkflowAction.FLAG_REVIEW: AssessmentStatus.NEEDS_REVIEW,
                WorkflowAction.FAIL: AssessmentStatus.FAILED,
                WorkflowAction.ABANDON: AssessmentStatus.ABANDONED,
            },
            AssessmentStatus.RESCORING: {
                WorkflowAction.COMPLETE: AssessmentStatus.COMPLETED,
                WorkflowAction.FLAG_REVIEW: AssessmentStatus.NEEDS_REVIEW,
                WorkflowAction.FAIL: AssessmentStatus.FAILED,
                WorkflowAction.ABANDON: AssessmentStatus.ABANDONED,
            },
            AssessmentStatus.NEEDS_REVIEW: {
                WorkflowAction.SUBMIT: AssessmentStatus.RESCORING,
                WorkflowAction.SKIP: AssessmentStatus.COMPLETED,
                WorkflowAction.ABANDON: AssessmentStatus.ABANDONED,
            },
            AssessmentStatus.COMPLETED: {
                WorkflowAction.SUBMIT: AssessmentStatus.RESCORING,
                WorkflowAction.ACCEPT: AssessmentStatus.ACCEPTED,
                WorkflowAction.ABANDON: AssessmentStatus.ABANDONED,
            },
        }
    )

    def can_transition(
        self,
        current: AssessmentStatus,
        action: WorkflowAction,
    ) -> bool:
        """Check if transition is valid."""
        if current not in self.transitions:
            return False
        return action in self.transitions[current]

    def get_next_status(
        self,
        current: AssessmentStatus,
        action: WorkflowAction,
    ) -> AssessmentStatus | None:
        """Get the next status after an action."""
        if not self.can_transition(current, action):
            return None
        return self.transitions[current][action]


class EvidenceSubmission(BaseModel):
    """Evidence selected by the user for one scoring pass."""

    document_ids: list[str] = Field(default_factory=list)
    manual_answers: dict[str, str] = Field(default_factory=dict)
    ai_answers: list[AiExtractedAnswer] = Field(default_factory=list)
    sub_scores: dict[str, float] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        """No evidence item was selected."""
        return not (self.document_ids or self.manual_answers or self.ai_answers)


@dataclass
class EvidenceFailure:
    """A recorded per-item analysis failure."""

    evidence_id: str
    reason: str
    message: str
    failed_at: datetime

    @classmethod
    def from_error(cls, error: EvidenceAnalysisError) -> "EvidenceFailure":
        return cls(
            evidence_id=error.evidence_id,
            reason=error.reason,
            message=error.message,
            failed_at=datetime.now(UTC),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "evidence_id": self.evidence_id,
            "reason": self.reason,
            "message": self.message,
            "failed_at": self.failed_at.isoformat(),
        }


@dataclass
class AssessmentRun:
    """State of one assessment run."""

    run_id: str
    organization_id: str
    weights: CategoryWeightSet
    sub_scores: dict[str, float] = field(default_factory=dict)
    status: AssessmentStatus = AssessmentStatus.DRAFT

    # Evidence by id; documents count once selected in a submission
    evidence: dict[str, EvidenceItem] = field(default_factory=dict)
    selected_documents: set[str] = field(default_factory=set)

    # Latest result and the results it superseded, oldest first
    result: ScoreResult | None = None
    history: list[ScoreResult] = field(default_factory=list)

    failures: dict[str, EvidenceFailure] = field(default_factory=dict)
    completed_with_unresolved: bool = False
    failure_reason: str | None = None

    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def pending_questions(self) -> tuple[LowConfidenceQuestion, ...]:
        if self.result is None:
            return ()
        return self.result.low_confidence_questions

    @property
    def risk_level(self) -> RiskLevel | None:
        return self.result.risk_level if self.result else None

    def scoring_evidence(self) -> list[EvidenceItem]:
        """Evidence that takes part in aggregation."""
        return [
            item
            for item in self.evidence.values()
            if not isinstance(item, UploadedDocument) or item.evidence_id in self.selected_documents
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "organization_id": self.organization_id,
            "status": self.status.value,
            "weights": self.weights.as_dict(),
            "sub_scores": dict(self.sub_scores),
            "result": self.result.to_dict() if self.result else None,
            "history": [r.to_dict() for r in self.history],
            "documents": [
                {
                    "document_id": item.document_id,
                    "filename": item.filename,
                    "analysis_status": item.analysis_status.value,
                    "document_kind": item.document_kind.value if item.document_kind else None,
                    "selected": item.evidence_id in self.selected_documents,
                }
                for item in self.evidence.values()
                if isinstance(item, UploadedDocument)
            ],
            "failures": [f.to_dict() for f in self.failures.values()],
            "completed_with_unresolved": self.completed_with_unresolved,
            "failure_reason": self.failure_reason,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class ReanalysisOrchestrator:
    """
    Service for managing assessment runs.

    Handles:
    - Run creation with up-front weight validation
    - Document analysis completion signals
    - Serialized scoring per run
    - Workflow transitions and result history
    """

    def __init__(
        self,
        aggregator: ScoreAggregator | None = None,
        analysis_timeout_seconds: float = 300.0,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            aggregator: Score aggregator (defaults used if not provided)
            analysis_timeout_seconds: Max wait for selected document analyses
        """
        self.workflow = AssessmentWorkflow()
        self.aggregator = aggregator or ScoreAggregator()
        self.weight_validator = WeightValidator(self.aggregator.config.weight_tolerance)
        self.analysis_timeout_seconds = analysis_timeout_seconds

        self._runs: dict[str, AssessmentRun] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._analyses: dict[tuple[str, str], asyncio.Future[UploadedDocument]] = {}

    # =========================================================================
    # Runs
    # =========================================================================

    async def create_run(
        self,
        organization_id: str,
        weight_config: CategoryWeightSet | dict[str, Any],
        sub_scores: dict[str, float] | None = None,
    ) -> AssessmentRun:
        """
        Create a new assessment run.

        Raises:
            InvalidWeightsError: If the weight configuration is rejected
        """
        weights = self.weight_validator.load_weight_set(weight_config)
        run = AssessmentRun(
            run_id=str(uuid.uuid4()),
            organization_id=organization_id,
            weights=weights,
            sub_scores=dict(sub_scores or {}),
        )
        self._runs[run.run_id] = run
        self._locks[run.run_id] = asyncio.Lock()

        logger.info(
            "assessment_run_created",
            run_id=run.run_id,
            organization_id=organization_id,
            categories=weights.keys,
        )
        return run

    def get_run(self, run_id: str) -> AssessmentRun:
        """
        Get a run by id.

        Raises:
            RunNotFoundError: If no such run exists
        """
        run = self._runs.get(run_id)
        if run is None:
            raise RunNotFoundError(f"Assessment run {run_id} not found", details={"run_id": run_id})
        return run

    def list_runs(self, organization_id: str | None = None) -> list[AssessmentRun]:
        """List runs, oldest first, optionally for one organization."""
        runs = sorted(self._runs.values(), key=lambda r: r.created_at)
        if organization_id is None:
            return runs
        return [r for r in runs if r.organization_id == organization_id]

    # =========================================================================
    # Document analysis
    # =========================================================================

    async def register_document(self, run_id: str, document: UploadedDocument) -> UploadedDocument:
        """
        Register an uploaded document awaiting analysis.

        Re-registering a document restarts its analysis.
        """
        run = self.get_run(run_id)
        self._require_active(run, "register documents")

        pending = document.model_copy(
            update={
                "analysis_status": AnalysisStatus.PENDING,
                "document_kind": None,
                "failure_reason": None,
            }
        )
        run.evidence[pending.evidence_id] = pending
        run.failures.pop(pending.evidence_id, None)
        run.updated_at = datetime.now(UTC)

        key = (run_id, pending.evidence_id)
        previous = self._analyses.get(key)
        if previous is not None and not previous.done():
            previous.cancel()
        self._analyses[key] = asyncio.get_running_loop().create_future()

        logger.info(
            "document_registered",
            run_id=run_id,
            document_id=pending.evidence_id,
            filename=pending.filename,
        )
        return pending

    async def complete_analysis(
        self,
        run_id: str,
        document_id: str,
        kind: DocumentKind | None,
        categories: Iterable[str] | None = None,
        question_ids: Iterable[str] | None = None,
    ) -> UploadedDocument:
        """Record a successful document analysis and signal waiters."""
        run = self.get_run(run_id)
        self._require_active(run, "record analysis results")
        document = self._get_document(run, document_id)

        update: dict[str, Any] = {
            "analysis_status": AnalysisStatus.ANALYZED,
            "document_kind": kind,
            "failure_reason": None,
        }
        if categories is not None:
            update["categories"] = tuple(categories)
        if question_ids is not None:
            update["question_ids"] = tuple(question_ids)

        analyzed = document.model_copy(update=update)
        run.evidence[document_id] = analyzed
        run.failures.pop(document_id, None)
        run.updated_at = datetime.now(UTC)
        self._resolve(run_id, document_id, analyzed)

        logger.info(
            "document_analyzed",
            run_id=run_id,
            document_id=document_id,
            kind=kind.value if kind else None,
        )
        return analyzed

    async def fail_analysis(self, run_id: str, document_id: str, reason: str) -> UploadedDocument:
        """Record a failed document analysis and signal waiters."""
        run = self.get_run(run_id)
        self._require_active(run, "record analysis results")
        document = self._get_document(run, document_id)

        failed = self._mark_failed(run, document, reason)
        self._resolve(run_id, document_id, failed)
        return failed

    # =========================================================================
    # Scoring
    # =========================================================================

    async def submit_evidence(self, run_id: str, submission: EvidenceSubmission) -> AssessmentRun:
        """
        Score the run with newly selected evidence.

        Waits for the selected documents' analyses only. Documents that fail
        or time out are recorded on the run and left out of scoring.

        Raises:
            InvalidTransitionError: If the run cannot be submitted
            EvidenceNotFoundError: If a selected document is not registered
            AggregationError: If scoring fails unexpectedly (run is FAILED)
        """
        run = self.get_run(run_id)

        async with self._lock(run_id):
            self._check(run, WorkflowAction.SUBMIT)
            if run.status == AssessmentStatus.DRAFT and submission.is_empty:
                raise InvalidTransitionError(
                    "At least one evidence item must be selected",
                    details={"run_id": run_id},
                )
            for document_id in submission.document_ids:
                self._get_document(run, document_id)

            previous_status = run.status
            self._transition(run, WorkflowAction.SUBMIT)

            try:
                await self._await_documents(run, submission.document_ids)
            except asyncio.CancelledError:
                # An abandon may have landed while waiting
                if run.status in (AssessmentStatus.SCORING, AssessmentStatus.RESCORING):
                    run.status = previous_status
                raise

            if run.status.is_terminal:
                logger.info("assessment_scoring_skipped", run_id=run_id, status=run.status.value)
                return run

            self._merge(run, submission)

            try:
                result = self.aggregator.aggregate(
                    run.sub_scores,
                    run.weights,
                    run.scoring_evidence(),
                )
            except InvalidWeightsError:
                run.status = previous_status
                raise
            except AggregationError as e:
                self._fail_run(run, e)
                raise

            if run.result is not None:
                run.history.append(run.result)
            run.result = result
            run.completed_with_unresolved = False

            action = WorkflowAction.FLAG_REVIEW if result.needs_review else WorkflowAction.COMPLETE
            self._transition(run, action)

        logger.info(
            "assessment_scored",
            run_id=run_id,
            status=run.status.value,
            overall=result.overall,
            risk_level=result.risk_level.value,
            pending_questions=len(result.low_confidence_questions),
            failures=len(run.failures),
        )
        return run

    async def _await_documents(self, run: AssessmentRun, document_ids: list[str]) -> None:
        futures = {doc_id: self._analyses.get((run.run_id, doc_id)) for doc_id in document_ids}
        waiting = [f for f in futures.values() if f is not None and not f.done()]
        if waiting:
            await asyncio.wait(waiting, timeout=self.analysis_timeout_seconds)
        if run.status.is_terminal:
            return

        for document_id, future in futures.items():
            run.selected_documents.add(document_id)
            document = self._get_document(run, document_id)

            if future is not None and not future.done():
                self._mark_failed(
                    run,
                    document,
                    f"analysis timed out after {self.analysis_timeout_seconds:g}s",
                )
            elif future is not None and future.cancelled():
                self._mark_failed(run, document, "analysis cancelled")
            elif document.analysis_status == AnalysisStatus.FAILED:
                self._record_failure(run, document.evidence_id, document.failure_reason or "unknown")

    def _merge(self, run: AssessmentRun, submission: EvidenceSubmission) -> None:
        for answer in submission.ai_answers:
            run.evidence[answer.evidence_id] = answer

        known_categories = {
            item.question_id: item.category
            for item in run.evidence.values()
            if isinstance(item, AiExtractedAnswer)
        }
        for question_id, text in submission.manual_answers.items():
            category = known_categories.get(question_id)
            if category is None:
                logger.warning("manual_answer_uncategorized", run_id=run.run_id, question_id=question_id)
                category = UNCATEGORIZED

            answer = ManualAnswer(
                evidence_id=f"manual:{question_id}",
                question_id=question_id,
                category=category,
                answer=text,
            )
            run.evidence[answer.evidence_id] = answer

        run.sub_scores.update(submission.sub_scores)
        run.updated_at = datetime.now(UTC)

    # =========================================================================
    # Review decisions
    # =========================================================================

    async def skip_review(self, run_id: str) -> AssessmentRun:
        """Complete a run while leaving its low-confidence answers unresolved."""
        run = self.get_run(run_id)
        async with self._lock(run_id):
            self._transition(run, WorkflowAction.SKIP)
            run.completed_with_unresolved = True

        logger.info(
            "assessment_review_skipped",
            run_id=run_id,
            unresolved=len(run.pending_questions),
        )
        return run

    async def accept(self, run_id: str) -> AssessmentRun:
        """Accept a completed run."""
        run = self.get_run(run_id)
        async with self._lock(run_id):
            self._transition(run, WorkflowAction.ACCEPT)

        logger.info("assessment_accepted", run_id=run_id)
        return run

    async def abandon(self, run_id: str) -> AssessmentRun:
        """
        Abandon a run.

        Pending document analyses are cancelled and an in-flight submission
        stops without scoring. Abandoned runs are retained.
        """
        run = self.get_run(run_id)
        self._transition(run, WorkflowAction.ABANDON)

        logger.info("assessment_abandoned", run_id=run_id)
        return run

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check(self, run: AssessmentRun, action: WorkflowAction) -> AssessmentStatus:
        next_status = self.workflow.get_next_status(run.status, action)
        if next_status is None:
            raise InvalidTransitionError(
                f"Cannot {action.value} assessment in {run.status.value} status",
                details={"run_id": run.run_id, "status": run.status.value, "action": action.value},
            )
        return next_status

    def _transition(self, run: AssessmentRun, action: WorkflowAction) -> None:
        next_status = self._check(run, action)
        logger.debug(
            "assessment_transition",
            run_id=run.run_id,
            from_status=run.status.value,
            action=action.value,
            to_status=next_status.value,
        )
        run.status = next_status
        run.updated_at = datetime.now(UTC)
        if next_status.is_terminal:
            self._release(run.run_id)

    def _lock(self, run_id: str) -> asyncio.Lock:
        # Terminal runs have no lock left; every action on them is rejected
        return self._locks.get(run_id) or asyncio.Lock()

    def _release(self, run_id: str) -> None:
        """Drop a finished run's lock and analysis signals."""
        self._locks.pop(run_id, None)
        for key in [k for k in self._analyses if k[0] == run_id]:
            future = self._analyses.pop(key)
            if not future.done():
                future.cancel()

    def _require_active(self, run: AssessmentRun, operation: str) -> None:
        if run.status.is_terminal:
            raise InvalidTransitionError(
                f"Cannot {operation} on assessment in {run.status.value} status",
                details={"run_id": run.run_id, "status": run.status.value},
            )

    def _get_document(self, run: AssessmentRun, document_id: str) -> UploadedDocument:
        item = run.evidence.get(document_id)
        if not isinstance(item, UploadedDocument):
            raise EvidenceNotFoundError(
                f"Document {document_id} not found",
                details={"run_id": run.run_id, "document_id": document_id},
            )
        return item

    def _mark_failed(self, run: AssessmentRun, document: UploadedDocument, reason: str) -> UploadedDocument:
        failed = document.model_copy(
            update={"analysis_status": AnalysisStatus.FAILED, "failure_reason": reason}
        )
        run.evidence[document.evidence_id] = failed
        run.updated_at = datetime.now(UTC)
        self._record_failure(run, document.evidence_id, reason)
        return failed

    def _record_failure(self, run: AssessmentRun, document_id: str, reason: str) -> None:
        error = EvidenceAnalysisError(document_id, reason)
        run.failures[document_id] = EvidenceFailure.from_error(error)
        logger.warning(
            "document_analysis_failed",
            run_id=run.run_id,
            document_id=document_id,
            reason=reason,
        )

    def _resolve(self, run_id: str, document_id: str, document: UploadedDocument) -> None:
        future = self._analyses.get((run_id, document_id))
        if future is not None and not future.done():
            future.set_result(document)

    def _fail_run(self, run: AssessmentRun, error: AggregationError) -> None:
        self._transition(run, WorkflowAction.FAIL)
        run.failure_reason = error.message
        logger.error(
            "assessment_failed",
            run_id=run.run_id,
            code=error.code,
            details=error.details,
        )
