"""Insight schemas: generator contract and stored snapshot views."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from caretrack.db.enums import InsightType, TimeWindow


class KeyObservations(BaseModel):
    increases: list[str] = Field(default_factory=list)
    decreases: list[str] = Field(default_factory=list)
    stable: list[str] = Field(default_factory=list)


class InsightPayload(BaseModel):
    """
    Content returned by the insight generator.

    Field aliases match the generator's camelCase JSON; storage metadata
    (ids, dates, counts) is added by the insight service.
    """
    model_config = ConfigDict(populate_by_name=True)

    summary: str = Field(..., min_length=1)
    key_observations: KeyObservations = Field(
        default_factory=KeyObservations, alias="keyObservations"
    )
    medication_patterns: str = Field("", alias="medicationPatterns")
    symptom_trends: str = Field("", alias="symptomTrends")
    wearing_off_patterns: str = Field("", alias="wearingOffPatterns")
    recommendations: list[str] = Field(default_factory=list)


class InsightRequest(BaseModel):
    time_range: TimeWindow = TimeWindow.LAST_7_DAYS


class InsightRead(BaseModel):
    id: UUID
    user_id: UUID
    insight_type: InsightType
    date_range_start: date
    date_range_end: date
    summary: str
    key_observations: KeyObservations
    medication_patterns: str
    symptom_trends: str
    wearing_off_patterns: str
    recommendations: list[str]
    data_points_analyzed: int
    created_at: datetime

    model_config = {"from_attributes": True}


class LatestInsightResponse(BaseModel):
    patient_id: UUID
    restricted: bool = False
    reason: str | None = None
    insight: InsightRead | None = None


class InsightListResponse(BaseModel):
    patient_id: UUID
    restricted: bool = False
    reason: str | None = None
    insights: list[InsightRead] = []
