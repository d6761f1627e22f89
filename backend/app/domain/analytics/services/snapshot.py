from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.domain.facilities.enums import FacilityStatus
from app.domain.facilities.models import CashFlow, Covenant, Facility


@dataclass(frozen=True)
class PortfolioSnapshot:
    facilities: list[Facility] = field(default_factory=list)
    covenants: list[Covenant] = field(default_factory=list)
    cash_flows: list[CashFlow] = field(default_factory=list)

    @property
    def active_facilities(self) -> list[Facility]:
        return [f for f in self.facilities if f.status is FacilityStatus.ACTIVE]


def load_snapshot(db: Session) -> PortfolioSnapshot:
    """Read current persisted state; analytics never cache a portfolio view."""
    return PortfolioSnapshot(
        facilities=list(db.execute(select(Facility)).scalars().all()),
        covenants=list(db.execute(select(Covenant)).scalars().all()),
        cash_flows=list(db.execute(select(CashFlow)).scalars().all()),
    )
