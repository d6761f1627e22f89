from __future__ import annotations

import datetime as dt
import uuid

from pydantic import BaseModel, ConfigDict, Field

from app.domain.facilities.enums import (
    CheckFrequency,
    CovenantStatus,
    CovenantType,
    MeasurementSource,
    ThresholdOperator,
)


class CovenantCreate(BaseModel):
    covenant_type: CovenantType
    threshold_operator: ThresholdOperator
    threshold_value: float = Field(allow_inf_nan=False)
    warning_band_pct: float | None = Field(default=None, ge=0, le=100)
    measurement_source: MeasurementSource | None = None
    current_value: float | None = Field(default=None, allow_inf_nan=False)
    check_frequency: CheckFrequency = CheckFrequency.QUARTERLY
    next_check_date: dt.datetime | None = None


class CovenantUpdate(BaseModel):
    """Status is deliberately absent: it only changes through an evaluation."""

    model_config = ConfigDict(extra="forbid")

    threshold_operator: ThresholdOperator | None = None
    threshold_value: float | None = Field(default=None, allow_inf_nan=False)
    warning_band_pct: float | None = Field(default=None, ge=0, le=100)
    measurement_source: MeasurementSource | None = None
    check_frequency: CheckFrequency | None = None
    next_check_date: dt.datetime | None = None


class CovenantOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    facility_id: uuid.UUID
    covenant_type: CovenantType
    threshold_operator: ThresholdOperator
    threshold_value: float
    warning_band_pct: float | None
    measurement_source: MeasurementSource | None
    current_value: float | None
    status: CovenantStatus
    check_frequency: CheckFrequency
    last_checked: dt.datetime | None
    next_check_date: dt.datetime | None
    breach_notified: bool
    created_at: dt.datetime
    updated_at: dt.datetime
