from __future__ import annotations

import datetime as dt
import uuid

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.domain.facilities.enums import CashFlowStatus


class CashFlowCreate(BaseModel):
    due_date: dt.date
    principal_due: float = Field(default=0.0, ge=0)
    interest_due: float = Field(default=0.0, ge=0)
    total_due: float | None = Field(default=None, ge=0)
    paid_amount: float = Field(default=0.0, ge=0)
    paid_date: dt.date | None = None
    status: CashFlowStatus = CashFlowStatus.SCHEDULED

    @model_validator(mode="after")
    def _default_total(self) -> "CashFlowCreate":
        if self.total_due is None:
            self.total_due = self.principal_due + self.interest_due
        return self


class CashFlowUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    paid_amount: float | None = Field(default=None, ge=0)
    paid_date: dt.date | None = None
    status: CashFlowStatus | None = None


class CashFlowOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    facility_id: uuid.UUID
    due_date: dt.date
    principal_due: float
    interest_due: float
    total_due: float
    paid_amount: float
    paid_date: dt.date | None
    status: CashFlowStatus
    created_at: dt.datetime
    updated_at: dt.datetime
