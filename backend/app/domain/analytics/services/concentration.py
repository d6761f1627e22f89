"""
Exposure concentration.

Shares are expressed in percent, so the Herfindahl-Hirschman Index runs on
a 0-10000 scale (a single exposure scores 10000; N equal exposures score
10000 / N).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Any

from app.domain.analytics.enums import ConcentrationLevel
from app.domain.facilities.models import Facility
from app.shared.utils import pct

HHI_MAX = 10_000.0


def top_n_concentration(exposures: Sequence[float], n: int = 5) -> tuple[float, float]:
    """Return (top-n share of total in percent, top-n exposure amount)."""
    total = sum(exposures)
    top = sum(sorted(exposures, reverse=True)[:n])
    return pct(top, total), top


def herfindahl_index(shares_pct: Iterable[float]) -> float:
    return sum(share * share for share in shares_pct)


def classify_hhi(
    hhi: float,
    *,
    moderate_threshold: float = 1500.0,
    high_threshold: float = 2500.0,
) -> ConcentrationLevel:
    if hhi < moderate_threshold:
        return ConcentrationLevel.LOW
    if hhi < high_threshold:
        return ConcentrationLevel.MODERATE
    return ConcentrationLevel.HIGH


def exposure_shares(exposures: Sequence[float]) -> list[float]:
    total = sum(exposures)
    return [pct(e, total) for e in exposures]


def _sector_key(facility: Facility) -> str:
    return facility.sector or "Unknown"


def _vintage_key(facility: Facility) -> str:
    return str(facility.vintage_year) if facility.vintage_year else "Unknown"


def _gp_key(facility: Facility) -> str:
    if facility.gp_name:
        return facility.gp_name
    if facility.gp_user_id is not None:
        return str(facility.gp_user_id)
    return "Unassigned"


def group_exposures(facilities: Sequence[Facility], key: Callable[[Facility], str]) -> list[dict[str, Any]]:
    groups: dict[str, dict[str, Any]] = {}
    for facility in facilities:
        bucket = groups.setdefault(key(facility), {"exposure": 0.0, "facility_count": 0})
        bucket["exposure"] += facility.outstanding_balance or 0.0
        bucket["facility_count"] += 1

    total = sum(g["exposure"] for g in groups.values())
    rows = [
        {
            "group": name,
            "exposure": g["exposure"],
            "facility_count": g["facility_count"],
            "percentage": pct(g["exposure"], total),
        }
        for name, g in groups.items()
    ]
    rows.sort(key=lambda r: (-r["exposure"], r["group"]))
    return rows


def _dimension(
    facilities: Sequence[Facility],
    key: Callable[[Facility], str],
    *,
    moderate_threshold: float,
    high_threshold: float,
) -> dict[str, Any]:
    groups = group_exposures(facilities, key)
    hhi = herfindahl_index(g["percentage"] for g in groups)
    return {
        "groups": groups,
        "herfindahl_index": hhi,
        "level": classify_hhi(hhi, moderate_threshold=moderate_threshold, high_threshold=high_threshold),
        "most_concentrated": groups[0] if groups else None,
    }


def concentration_analysis(
    facilities: Sequence[Facility],
    *,
    top_n: int = 5,
    moderate_threshold: float = 1500.0,
    high_threshold: float = 2500.0,
) -> dict[str, Any]:
    exposures = [f.outstanding_balance or 0.0 for f in facilities]
    ratio, top_exposure = top_n_concentration(exposures, top_n)
    hhi = herfindahl_index(exposure_shares(exposures))
    kwargs = {"moderate_threshold": moderate_threshold, "high_threshold": high_threshold}
    return {
        "total_exposure": sum(exposures),
        "facility_count": len(facilities),
        "top_n": top_n,
        "top_n_exposure": top_exposure,
        "top_n_concentration_ratio": ratio,
        "herfindahl_index": hhi,
        "concentration_level": classify_hhi(hhi, **kwargs),
        "by_sector": _dimension(facilities, _sector_key, **kwargs),
        "by_vintage": _dimension(facilities, _vintage_key, **kwargs),
        "by_gp": _dimension(facilities, _gp_key, **kwargs),
    }
