from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, Field

from app.domain.facilities.enums import CovenantStatus
from app.domain.facilities.schemas.covenants import CovenantOut


class CovenantCheckRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    current_value: float = Field(allow_inf_nan=False)


class CovenantCheckResultOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    covenant_id: uuid.UUID
    facility_id: uuid.UUID
    previous_status: CovenantStatus
    new_status: CovenantStatus
    current_value: float
    threshold_value: float
    breach_detected: bool
    notifications_sent: int


class CovenantCheckFailureOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    covenant_id: uuid.UUID
    error: str


class BatchRunOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    mode: str
    total_checked: int
    breaches_detected: int
    results: list[CovenantCheckResultOut]
    failures: list[CovenantCheckFailureOut]


class BreachSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    compliant: int
    warning: int
    breach: int
    breaches: list[CovenantOut]


class JobRunOut(BaseModel):
    job: str
    status: str = "submitted"
