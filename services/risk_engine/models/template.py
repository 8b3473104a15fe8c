"""
Assessment Template Models
==========================

Question-level scoring inputs: a template groups weighted questions into
weighted sections, and answers carry a quality score on a 0-5 scale with
the tiers of the evidence linked to them.

Version: 0.1.0
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator

from services.risk_engine.models.evidence import EvidenceTier


MAX_QUALITY_SCORE = 5.0


class TemplateQuestion(BaseModel):
    """A weighted question within a section."""

    model_config = ConfigDict(frozen=True)

    question_id: str = Field(..., min_length=1)
    weight: float = Field(..., ge=0.0, le=1.0)
    text: str = ""


class TemplateSection(BaseModel):
    """
    A weighted group of questions.

    The section's scaled score becomes the sub-score of `key`, which is
    the explicit category when given and the title otherwise.
    """

    model_config = ConfigDict(frozen=True)

    section_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    weight: float = Field(..., ge=0.0, le=1.0)
    category: str | None = None
    questions: tuple[TemplateQuestion, ...] = ()

    @model_validator(mode="after")
    def check_unique_questions(self) -> "TemplateSection":
        ids = [q.question_id for q in self.questions]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f'duplicate questions in section "{self.title}": {", ".join(duplicates)}')
        return self

    @property
    def key(self) -> str:
        return self.category or self.title

    @property
    def question_weights(self) -> list[float]:
        return [q.weight for q in self.questions]


class AssessmentTemplate(BaseModel):
    """Ordered sections of an assessment questionnaire."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    sections: tuple[TemplateSection, ...] = ()

    @model_validator(mode="after")
    def check_unique_sections(self) -> "AssessmentTemplate":
        """Two sections feeding one category would be counted twice."""
        keys = [s.key for s in self.sections]
        duplicates = sorted({k for k in keys if keys.count(k) > 1})
        if duplicates:
            raise ValueError(f"duplicate section categories: {', '.join(duplicates)}")
        return self

    @property
    def section_weights(self) -> list[float]:
        return [s.weight for s in self.sections]


class QuestionAnswer(BaseModel):
    """
    An answer's scoring inputs.

    A missing quality score means the answer has not been rated yet and
    scores 0.
    """

    model_config = ConfigDict(frozen=True)

    question_id: str = Field(..., min_length=1)
    raw_quality_score: float | None = Field(None, ge=0.0, le=MAX_QUALITY_SCORE)
    evidence_tiers: tuple[EvidenceTier, ...] = ()
