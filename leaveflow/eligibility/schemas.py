"""Eligibility Pydantic v2 schemas — score results, notes, ratings."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from leaveflow.common.constants import Confidence, NoteType, Recommendation, Sentiment
from leaveflow.sla.clock import to_utc


# ═════════════════════════════════════════════════════════════════════
# Scores (derived, never persisted)
# ═════════════════════════════════════════════════════════════════════


class ScoreComponent(BaseModel):
    score: int = Field(..., ge=0, le=100)
    factors: list[str]


class EmployeeScoreBreakdown(BaseModel):
    performance: ScoreComponent
    attendance: ScoreComponent
    behavior: ScoreComponent
    leave_history: ScoreComponent
    supervisor_rating: Optional[ScoreComponent] = None


class EmployeeEligibilityOut(BaseModel):
    """General standing of an employee."""

    employee_id: uuid.UUID
    overall_score: int = Field(..., ge=0, le=100)
    breakdown: EmployeeScoreBreakdown
    recommendation: Recommendation
    confidence: Confidence
    reasoning: str


class RequestScoreBreakdown(BaseModel):
    performance: ScoreComponent
    attendance: ScoreComponent
    behavior: ScoreComponent
    leave_history: ScoreComponent
    workload: ScoreComponent


class RequestEligibilityOut(BaseModel):
    """Advice for one pending leave request, including team overlap."""

    leave_request_id: uuid.UUID
    employee_id: uuid.UUID
    overall_score: int = Field(..., ge=0, le=100)
    breakdown: RequestScoreBreakdown
    recommendation: Recommendation
    confidence: Confidence
    reasoning: str
    overlapping_leaves: int = 0


# ═════════════════════════════════════════════════════════════════════
# Notes
# ═════════════════════════════════════════════════════════════════════


class EmployeeNoteCreate(BaseModel):
    note_type: NoteType = NoteType.general
    content: str = Field(..., max_length=4000)
    sentiment: Optional[Sentiment] = Field(
        None, description="Inferred from the content when omitted",
    )

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Note content must not be empty.")
        return v


class EmployeeNoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    organization_id: uuid.UUID
    employee_id: uuid.UUID
    author_id: uuid.UUID
    note_type: NoteType
    sentiment: Sentiment
    content: str
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        return to_utc(v)


# ═════════════════════════════════════════════════════════════════════
# Supervisor ratings
# ═════════════════════════════════════════════════════════════════════


class SupervisorRatingCreate(BaseModel):
    """Each criterion is an integer from 1 to 5 (checked by the service)."""

    quality_of_work: int
    efficiency: int
    teamwork: int
    initiative: int
    communication: int
    reliability: int
    rating_period: Optional[str] = Field(
        None, pattern=r"^\d{4}-\d{2}$", description="YYYY-MM; defaults to current month",
    )
    strengths: Optional[str] = Field(None, max_length=2000)
    areas_for_improvement: Optional[str] = Field(None, max_length=2000)
    general_comments: Optional[str] = Field(None, max_length=2000)


class SupervisorRatingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    organization_id: uuid.UUID
    employee_id: uuid.UUID
    supervisor_id: uuid.UUID
    quality_of_work: int
    efficiency: int
    teamwork: int
    initiative: int
    communication: int
    reliability: int
    overall_rating: float
    rating_period: str
    strengths: Optional[str] = None
    areas_for_improvement: Optional[str] = None
    general_comments: Optional[str] = None
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        return to_utc(v)
