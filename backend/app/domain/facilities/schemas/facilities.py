from __future__ import annotations

import datetime as dt
import uuid

from pydantic import BaseModel, ConfigDict, Field

from app.domain.facilities.enums import FacilityStatus


class FacilityCreate(BaseModel):
    fund_name: str = Field(min_length=2, max_length=255)
    gp_name: str | None = Field(default=None, max_length=255)
    gp_user_id: uuid.UUID | None = None
    principal_amount: float = Field(gt=0)
    outstanding_balance: float = Field(default=0.0, ge=0)
    interest_rate: float = Field(default=0.0, ge=0, le=100)
    ltv_ratio: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    current_nav: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    sector: str | None = Field(default=None, max_length=120)
    vintage_year: int | None = Field(default=None, ge=1900, le=2100)
    maturity_date: dt.date | None = None
    status: FacilityStatus = FacilityStatus.PENDING


class FacilityUpdate(BaseModel):
    """Partial update; unknown fields are rejected (no mass-assignment)."""

    model_config = ConfigDict(extra="forbid")

    fund_name: str | None = Field(default=None, min_length=2, max_length=255)
    gp_name: str | None = Field(default=None, max_length=255)
    gp_user_id: uuid.UUID | None = None
    outstanding_balance: float | None = Field(default=None, ge=0)
    interest_rate: float | None = Field(default=None, ge=0, le=100)
    ltv_ratio: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    current_nav: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    sector: str | None = Field(default=None, max_length=120)
    vintage_year: int | None = Field(default=None, ge=1900, le=2100)
    maturity_date: dt.date | None = None
    status: FacilityStatus | None = None


class FacilityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    fund_name: str
    gp_name: str | None
    gp_user_id: uuid.UUID | None
    principal_amount: float
    outstanding_balance: float
    interest_rate: float
    ltv_ratio: float | None
    current_nav: float | None
    sector: str | None
    vintage_year: int | None
    maturity_date: dt.date | None
    status: FacilityStatus
    created_at: dt.datetime
    updated_at: dt.datetime
