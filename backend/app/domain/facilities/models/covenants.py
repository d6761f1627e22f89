from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy import Boolean, DateTime, Enum, Float, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.db.base import AuditMetaMixin, Base, IdMixin
from app.domain.facilities.enums import (
    CheckFrequency,
    CovenantStatus,
    CovenantType,
    MeasurementSource,
    ThresholdOperator,
)


def _values(enum_cls) -> list[str]:
    return [m.value for m in enum_cls]


class Covenant(Base, IdMixin, AuditMetaMixin):
    """
    A monitored compliance rule attached to exactly one facility.

    ``status`` is only ever written by an evaluation; ``breach_notified`` makes the
    breach fan-out happen at most once per breach episode.
    """

    __tablename__ = "covenants"

    facility_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("facilities.id", ondelete="CASCADE"), index=True)
    covenant_type: Mapped[CovenantType] = mapped_column(
        Enum(CovenantType, name="covenant_type_enum", values_callable=_values),
        nullable=False,
        index=True,
    )
    threshold_operator: Mapped[ThresholdOperator] = mapped_column(
        Enum(ThresholdOperator, name="threshold_operator_enum", values_callable=_values),
        nullable=False,
    )
    threshold_value: Mapped[float] = mapped_column(Float, nullable=False)
    warning_band_pct: Mapped[float | None] = mapped_column(Float, nullable=True)
    measurement_source: Mapped[MeasurementSource | None] = mapped_column(
        Enum(MeasurementSource, name="measurement_source_enum", values_callable=_values),
        nullable=True,
    )

    current_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[CovenantStatus] = mapped_column(
        Enum(CovenantStatus, name="covenant_status_enum", values_callable=_values),
        nullable=False,
        default=CovenantStatus.COMPLIANT,
        index=True,
    )

    check_frequency: Mapped[CheckFrequency] = mapped_column(
        Enum(CheckFrequency, name="check_frequency_enum", values_callable=_values),
        nullable=False,
        default=CheckFrequency.QUARTERLY,
    )
    last_checked: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    next_check_date: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    breach_notified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    facility: Mapped["Facility"] = relationship(back_populates="covenants")  # noqa: F821

    __table_args__ = (Index("ix_covenants_next_check", "next_check_date"),)
