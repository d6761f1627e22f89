"""
Where a covenant's current value comes from.

Each covenant type maps to one source variant; resolving a source against
its facility yields the measured value (or ``None`` when nothing is known yet).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from app.domain.facilities.enums import CovenantType, MeasurementSource
from app.domain.facilities.models import Covenant, Facility


@dataclass(frozen=True)
class LtvFromFacility:
    """Loan-to-NAV ratio (percent) carried on the facility."""


@dataclass(frozen=True)
class NavFromFundAdmin:
    """Latest NAV synced from the fund administrator onto the facility."""


@dataclass(frozen=True)
class Manual:
    value: float | None


CovenantSource = Union[LtvFromFacility, NavFromFundAdmin, Manual]

SOURCE_BY_TYPE: dict[CovenantType, MeasurementSource] = {
    CovenantType.LTV_RATIO: MeasurementSource.LTV_FROM_FACILITY,
    CovenantType.MINIMUM_NAV: MeasurementSource.NAV_FROM_FUND_ADMIN,
    CovenantType.DIVERSIFICATION: MeasurementSource.MANUAL,
    CovenantType.INTEREST_COVERAGE: MeasurementSource.MANUAL,
    CovenantType.LIQUIDITY: MeasurementSource.MANUAL,
}


def default_source_for(covenant_type: CovenantType | str) -> MeasurementSource:
    return SOURCE_BY_TYPE.get(CovenantType(covenant_type), MeasurementSource.MANUAL)


def source_for(covenant: Covenant) -> CovenantSource:
    kind = covenant.measurement_source or default_source_for(covenant.covenant_type)
    if kind is MeasurementSource.LTV_FROM_FACILITY:
        return LtvFromFacility()
    if kind is MeasurementSource.NAV_FROM_FUND_ADMIN:
        return NavFromFundAdmin()
    return Manual(value=covenant.current_value)


def resolve(source: CovenantSource, facility: Facility) -> float | None:
    if isinstance(source, LtvFromFacility):
        return facility.ltv_ratio
    if isinstance(source, NavFromFundAdmin):
        return facility.current_nav
    if isinstance(source, Manual):
        return source.value
    raise TypeError(f"Unsupported covenant source: {source!r}")
