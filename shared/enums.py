# =============================================================================
# RAIN ALERT ENGINE - SHARED ENUMS
# =============================================================================
#
# These enums define the shared vocabulary across the engine.
# Every decision the engine emits is expressed in these types so that
# callers (notification layer, UI, audit) never parse free-form strings.
#
# =============================================================================

from enum import Enum


class CycleKind(Enum):
    """
    The two independent decision cycles.

    RAIN: Stations are positive when their observation signals rain.
    FREEZE: Stations are positive when their temperature is at or below
            the configured freeze threshold.
    """
    RAIN = "RAIN"
    FREEZE = "FREEZE"


class ConfidenceLevel(Enum):
    """
    Confidence level of a cycle decision.

    LOW: score < 0.4
    MEDIUM: 0.4 <= score < 0.7
    HIGH: score >= 0.7
    """
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class DecisionStatus(Enum):
    """
    Outcome of one decision cycle.

    TRIGGERED: Enough reporting stations are positive to raise an alert.
    CLEAR: Stations reported, but not enough of them are positive.
    NO_DATA: Zero stations produced a usable observation.

    NO_DATA is NOT an alert and NOT an error. Callers should display it
    as "data unavailable", distinct from CLEAR ("no rain detected").
    """
    TRIGGERED = "TRIGGERED"
    CLEAR = "CLEAR"
    NO_DATA = "NO_DATA"
