# mlm_system/__init__.py
"""
MLM System - CVD commissions, team points and RC qualification.
"""

# Services
from mlm_system.services.cvd_service import CVDService, CVDCalculator, CVDResult, CommissionLedgerEntry
from mlm_system.services.team_service import TeamService, SalesTreeAggregator, TeamAggregate, RollupDepth
from mlm_system.services.qualification_service import (
    computeRCQualification, determineQualification, RCQualification, TeamPointSummary
)
from mlm_system.services.action_plan_service import (
    ActionPlanService, buildRCActionPlan, ActionPlanResult, ActionObjective, MLMMetrics
)

# Models and configuration
from mlm_system.config.products import Product, normalizeProduct
from mlm_system.config.qualifications import Qualification, QUALIFICATION_CONFIG
from mlm_system.utils.valuation import MLMConfiguration, PointValuation, CommissionSchedule

# Utilities
from mlm_system.utils.time_machine import timeMachine

# Events
from mlm_system.events.event_bus import (
    EventBus, CVDCalculated, CVDMonthClosed, TeamAggregated, RCEvaluated, ActionPlanGenerated
)

# Errors
from mlm_system.exceptions import MLMError, SellerNotFoundError, InvalidHierarchyError

__all__ = [
    # Services
    'CVDService',
    'CVDCalculator',
    'CVDResult',
    'CommissionLedgerEntry',
    'TeamService',
    'SalesTreeAggregator',
    'TeamAggregate',
    'RollupDepth',
    'computeRCQualification',
    'determineQualification',
    'RCQualification',
    'TeamPointSummary',
    'ActionPlanService',
    'buildRCActionPlan',
    'ActionPlanResult',
    'ActionObjective',
    'MLMMetrics',

    # Config
    'Product',
    'normalizeProduct',
    'Qualification',
    'QUALIFICATION_CONFIG',
    'MLMConfiguration',
    'PointValuation',
    'CommissionSchedule',

    # Utils
    'timeMachine',

    # Events
    'EventBus',
    'CVDCalculated',
    'CVDMonthClosed',
    'TeamAggregated',
    'RCEvaluated',
    'ActionPlanGenerated',

    # Errors
    'MLMError',
    'SellerNotFoundError',
    'InvalidHierarchyError',
]
