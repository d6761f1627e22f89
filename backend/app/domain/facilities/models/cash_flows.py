from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy import Date, Enum, Float, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.db.base import AuditMetaMixin, Base, IdMixin
from app.domain.facilities.enums import CashFlowStatus


class CashFlow(Base, IdMixin, AuditMetaMixin):
    __tablename__ = "cash_flows"

    facility_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("facilities.id", ondelete="CASCADE"), index=True)
    due_date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    principal_due: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    interest_due: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_due: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    paid_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    paid_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    status: Mapped[CashFlowStatus] = mapped_column(
        Enum(CashFlowStatus, name="cash_flow_status_enum", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=CashFlowStatus.SCHEDULED,
        index=True,
    )

    facility: Mapped["Facility"] = relationship(back_populates="cash_flows")  # noqa: F821
