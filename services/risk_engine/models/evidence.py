"""
Evidence Models
===============

Closed set of evidence variants that can back an assessment answer.

Every item carries a `source` tag so that payloads parse into exactly one
variant and the tier classifier can match them exhaustively.

Version: 0.1.0
"""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class EvidenceSource(str, Enum):
    """Where a piece of evidence came from."""

    UPLOADED_DOCUMENT = "UPLOADED_DOCUMENT"
    MANUAL_ANSWER = "MANUAL_ANSWER"
    AI_EXTRACTED = "AI_EXTRACTED"


class EvidenceTier(str, Enum):
    """Trust grading of evidence."""

    TIER_0 = "TIER_0"  # Self-declared
    TIER_1 = "TIER_1"  # Policy document backed
    TIER_2 = "TIER_2"  # System generated / verified
    PENDING = "pending"  # Not yet analyzed, contributes nothing

    @property
    def is_resolved(self) -> bool:
        """Whether the tier may contribute to scoring."""
        return self != EvidenceTier.PENDING


class AnalysisStatus(str, Enum):
    """Document analysis progress."""

    PENDING = "pending"
    ANALYZED = "analyzed"
    FAILED = "failed"


class DocumentKind(str, Enum):
    """Document type reported by the upstream document classifier."""

    SYSTEM_EXPORT = "system_export"  # Structured exports, audit logs
    POLICY = "policy"  # Policies, procedures
    INFORMAL = "informal"  # Emails, notes, drafts


class EvidenceBasis(str, Enum):
    """What an AI-extracted answer was derived from."""

    SYSTEM_RECORD = "system_record"
    POLICY_DOCUMENT = "policy_document"
    NONE = "none"


class _EvidenceBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    evidence_id: str = Field(..., min_length=1)

    @property
    def source_type(self) -> EvidenceSource:
        """The `source` tag as an enum member."""
        return EvidenceSource(self.source)  # type: ignore[attr-defined]


class UploadedDocument(_EvidenceBase):
    """A document uploaded by the organization."""

    source: Literal["UPLOADED_DOCUMENT"] = "UPLOADED_DOCUMENT"
    document_id: str
    filename: str | None = None
    categories: tuple[str, ...] = ()
    question_ids: tuple[str, ...] = ()
    analysis_status: AnalysisStatus = AnalysisStatus.PENDING
    document_kind: DocumentKind | None = None
    failure_reason: str | None = None


class ManualAnswer(_EvidenceBase):
    """An answer typed in by a user."""

    source: Literal["MANUAL_ANSWER"] = "MANUAL_ANSWER"
    question_id: str
    category: str
    answer: str


class AiExtractedAnswer(_EvidenceBase):
    """An answer produced by the AI analysis collaborator."""

    source: Literal["AI_EXTRACTED"] = "AI_EXTRACTED"
    question_id: str
    question: str = ""
    section_title: str = "Unknown Section"
    category: str
    answer: str | None = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    basis: EvidenceBasis = EvidenceBasis.NONE


EvidenceItem = Annotated[
    Union[UploadedDocument, ManualAnswer, AiExtractedAnswer],
    Field(discriminator="source"),
]

evidence_adapter: TypeAdapter[EvidenceItem] = TypeAdapter(EvidenceItem)


def evidence_categories(item: EvidenceItem) -> tuple[str, ...]:
    """Categories an evidence item contributes to."""
    if isinstance(item, UploadedDocument):
        return item.categories
    return (item.category,)
