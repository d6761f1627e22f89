from __future__ import annotations

from enum import Enum


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ConcentrationLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
