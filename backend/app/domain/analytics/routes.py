from __future__ import annotations

from collections.abc import Sequence

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db.session import get_db
from app.core.security.dependencies import require_roles
from app.domain.analytics.schemas import (
    ConcentrationOut,
    PerformanceOut,
    PortfolioSummaryOut,
    StressTestOut,
    StressTestRequest,
)
from app.domain.analytics.services.concentration import concentration_analysis
from app.domain.analytics.services.performance import performance_metrics
from app.domain.analytics.services.risk import RiskWeights, portfolio_summary
from app.domain.analytics.services.snapshot import load_snapshot
from app.domain.analytics.services.stress_test import run_stress_test
from app.shared.utils import utcnow

# Portfolio-wide views cross every GP's facilities: staff only.
router = APIRouter(prefix="/analytics", tags=["analytics"], dependencies=[Depends(require_roles())])


@router.get("/portfolio-summary", response_model=PortfolioSummaryOut)
def get_portfolio_summary(db: Session = Depends(get_db)) -> PortfolioSummaryOut:
    summary = portfolio_summary(
        load_snapshot(db),
        today=utcnow().date(),
        weights=RiskWeights.from_settings(settings),
        top_n=settings.concentration_top_n,
        maturity_window_days=settings.maturity_window_days,
    )
    return PortfolioSummaryOut.model_validate(summary)


@router.get("/concentration", response_model=ConcentrationOut)
def get_concentration(db: Session = Depends(get_db)) -> ConcentrationOut:
    snapshot = load_snapshot(db)
    result = concentration_analysis(
        snapshot.active_facilities,
        top_n=settings.concentration_top_n,
        moderate_threshold=settings.hhi_moderate_threshold,
        high_threshold=settings.hhi_high_threshold,
    )
    return ConcentrationOut.model_validate(result)


def _stress(db: Session, shocks_pct: Sequence[float]) -> StressTestOut:
    snapshot = load_snapshot(db)
    result = run_stress_test(
        snapshot.facilities,
        snapshot.covenants,
        shocks_pct=shocks_pct,
        default_threshold=settings.default_ltv_covenant_threshold,
        high_ltv_pct=settings.stress_high_ltv_pct,
        critical_ltv_pct=settings.stress_critical_ltv_pct,
    )
    return StressTestOut.model_validate(result)


@router.get("/stress-test", response_model=StressTestOut)
def get_stress_test(db: Session = Depends(get_db)) -> StressTestOut:
    return _stress(db, (settings.stress_moderate_shock_pct, settings.stress_severe_shock_pct))


@router.post("/stress-test", response_model=StressTestOut)
def post_stress_test(payload: StressTestRequest, db: Session = Depends(get_db)) -> StressTestOut:
    return _stress(db, payload.shocks_pct)


@router.get("/performance", response_model=PerformanceOut)
def get_performance(db: Session = Depends(get_db)) -> PerformanceOut:
    snapshot = load_snapshot(db)
    return PerformanceOut.model_validate(
        performance_metrics(snapshot.facilities, snapshot.cash_flows, today=utcnow().date())
    )
