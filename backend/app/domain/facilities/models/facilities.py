from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy import Date, Enum, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.db.base import AuditMetaMixin, Base, IdMixin
from app.domain.facilities.enums import FacilityStatus


class Facility(Base, IdMixin, AuditMetaMixin):
    """
    A NAV-lending credit line.

    Facilities are never deleted, only status-transitioned. ``outstanding_balance``
    is the exposure figure used by concentration and stress math.
    """

    __tablename__ = "facilities"

    fund_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    gp_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Back-reference used only for authorization; NULL means "unassigned".
    gp_user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    principal_amount: Mapped[float] = mapped_column(Float, nullable=False)
    outstanding_balance: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    interest_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)  # percent
    ltv_ratio: Mapped[float | None] = mapped_column(Float, nullable=True)  # percent
    current_nav: Mapped[float | None] = mapped_column(Float, nullable=True)  # latest fund-admin NAV

    sector: Mapped[str | None] = mapped_column(String(120), nullable=True, index=True)
    vintage_year: Mapped[int | None] = mapped_column(Integer, nullable=True)

    maturity_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True, index=True)
    status: Mapped[FacilityStatus] = mapped_column(
        Enum(FacilityStatus, name="facility_status_enum", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=FacilityStatus.PENDING,
        index=True,
    )

    covenants: Mapped[list["Covenant"]] = relationship(back_populates="facility")  # noqa: F821
    cash_flows: Mapped[list["CashFlow"]] = relationship(back_populates="facility")  # noqa: F821
