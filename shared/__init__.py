# =============================================================================
# RAIN ALERT ENGINE - SHARED MODULE
# =============================================================================
#
# Shared utilities with no business logic:
# - Enums (shared type definitions)
# - Logging setup
#
# =============================================================================

from .enums import CycleKind, ConfidenceLevel, DecisionStatus
from .logging_config import setup_logging, get_engine_logger

__all__ = [
    "CycleKind",
    "ConfidenceLevel",
    "DecisionStatus",
    "setup_logging",
    "get_engine_logger",
]
