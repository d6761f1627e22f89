from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.domain.analytics.enums import ConcentrationLevel, RiskLevel


class PortfolioOverview(BaseModel):
    total_facilities: int
    active_facilities: int
    total_principal_amount: float
    total_outstanding_balance: float
    avg_ltv_ratio: float
    avg_interest_rate: float


class CovenantHealth(BaseModel):
    total: int
    compliant: int
    warning: int
    breach: int
    compliant_percentage: float
    warning_percentage: float
    breach_percentage: float


class PaymentPerformance(BaseModel):
    total_cash_flows: int
    paid_count: int
    overdue_count: int
    scheduled_count: int
    partial_count: int
    paid_percentage: float
    overdue_percentage: float
    scheduled_percentage: float
    total_paid: float
    total_overdue: float
    total_scheduled: float


class RiskMetrics(BaseModel):
    risk_score: float
    risk_level: RiskLevel
    upcoming_maturities: int
    concentration_ratio: float
    top_n_exposure: float


class PortfolioSummaryOut(BaseModel):
    overview: PortfolioOverview
    status_distribution: dict[str, int]
    covenant_health: CovenantHealth
    payment_performance: PaymentPerformance
    risk_metrics: RiskMetrics


class ExposureGroup(BaseModel):
    group: str
    exposure: float
    facility_count: int
    percentage: float


class ConcentrationDimension(BaseModel):
    groups: list[ExposureGroup]
    herfindahl_index: float
    level: ConcentrationLevel
    most_concentrated: ExposureGroup | None


class ConcentrationOut(BaseModel):
    total_exposure: float
    facility_count: int
    top_n: int
    top_n_exposure: float
    top_n_concentration_ratio: float
    herfindahl_index: float
    concentration_level: ConcentrationLevel
    by_sector: ConcentrationDimension
    by_vintage: ConcentrationDimension
    by_gp: ConcentrationDimension


class StressTestRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    shocks_pct: list[float] = Field(min_length=1, max_length=10)

    @field_validator("shocks_pct")
    @classmethod
    def _shock_range(cls, v: list[float]) -> list[float]:
        for shock in v:
            if shock <= 0 or shock >= 100:
                raise ValueError("NAV decline must be between 0 and 100 percent (exclusive)")
        return v


class StressScenario(BaseModel):
    name: str
    nav_decline_pct: float
    total_exposure: float
    avg_ltv: float
    facilities_at_risk: int
    breach_count: int


class StressRecommendation(BaseModel):
    facility_id: uuid.UUID
    fund_name: str
    current_ltv: float
    ltv_threshold: float
    moderate_stress_ltv: float
    severe_stress_ltv: float
    risk_level: RiskLevel
    recommendation: str


class StressTestOut(BaseModel):
    baseline: StressScenario
    scenarios: list[StressScenario]
    recommendations: list[StressRecommendation]
    excluded_facilities: int


class PortfolioRoi(BaseModel):
    total_invested: float
    total_interest_earned: float
    total_principal_repaid: float
    roi: float
    annualized_roi: float


class DefaultMetrics(BaseModel):
    total_facilities: int
    defaulted_facilities: int
    default_rate: float
    total_defaulted_amount: float
    total_recovered_amount: float
    recovery_rate: float
    net_loss: float


class StatusPerformance(BaseModel):
    count: int
    total_principal: float
    total_outstanding: float
    percentage: float


class PerformanceOut(BaseModel):
    portfolio_roi: PortfolioRoi
    default_metrics: DefaultMetrics
    performance_by_status: dict[str, StatusPerformance]
