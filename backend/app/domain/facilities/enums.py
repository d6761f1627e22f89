from __future__ import annotations

from enum import Enum


class FacilityStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    CLOSED = "closed"
    MATURED = "matured"
    DEFAULTED = "defaulted"


class CovenantType(str, Enum):
    LTV_RATIO = "ltv_ratio"
    MINIMUM_NAV = "minimum_nav"
    DIVERSIFICATION = "diversification"
    INTEREST_COVERAGE = "interest_coverage"
    LIQUIDITY = "liquidity"


class ThresholdOperator(str, Enum):
    LESS_THAN = "less_than"
    LESS_THAN_EQUAL = "less_than_equal"
    GREATER_THAN = "greater_than"
    GREATER_THAN_EQUAL = "greater_than_equal"

    @property
    def is_upper_bound(self) -> bool:
        return self in (ThresholdOperator.LESS_THAN, ThresholdOperator.LESS_THAN_EQUAL)


class CovenantStatus(str, Enum):
    COMPLIANT = "compliant"
    WARNING = "warning"
    BREACH = "breach"


class CheckFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


class MeasurementSource(str, Enum):
    LTV_FROM_FACILITY = "ltv_from_facility"
    NAV_FROM_FUND_ADMIN = "nav_from_fund_admin"
    MANUAL = "manual"


class CashFlowStatus(str, Enum):
    SCHEDULED = "scheduled"
    PAID = "paid"
    OVERDUE = "overdue"
    PARTIAL = "partial"
    WAIVED = "waived"
