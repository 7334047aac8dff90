"""
Calibration - reference orientations captured while the wearer holds a T-pose.
"""

from .calibration_engine import (
    CalibrationEngine,
    CalibrationResult,
    CalibrationState,
    StatusTally,
    compute_reference,
)

__all__ = [
    "CalibrationEngine",
    "CalibrationResult",
    "CalibrationState",
    "StatusTally",
    "compute_reference",
]
