from app.domain.facilities.models.cash_flows import CashFlow
from app.domain.facilities.models.covenants import Covenant
from app.domain.facilities.models.facilities import Facility

__all__ = ["CashFlow", "Covenant", "Facility"]
