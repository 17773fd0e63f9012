"""
Parental controls feature package.

Provides access decisions for apps, URLs and content, daily screen-time
budgets, and the age-group policy tables behind them.
"""

from .engine import AccessDecisionEngine
from .policy import DEFAULT_POLICY, AgePolicyTable
from .roster import load_roster
from .screen_time import UNLIMITED, ScreenTimeAccountant
from .service import ParentalControlService, create_parental_control_service
from .types import AgeGroup, FamilyMember, FamilyRole, ScreenTimeSettings

__all__ = [
    # Service
    "ParentalControlService",
    "create_parental_control_service",
    # Decisions
    "AccessDecisionEngine",
    "AgePolicyTable",
    "DEFAULT_POLICY",
    "ScreenTimeAccountant",
    "UNLIMITED",
    # Types
    "AgeGroup",
    "FamilyMember",
    "FamilyRole",
    "ScreenTimeSettings",
    "load_roster",
]
