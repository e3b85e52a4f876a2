"""
Configuration for the Shift Rotation Scheduler.

Holds the CCNL Commercio labour-rule constants, engine tuning, application
settings (logging, verbosity) and the default shift-type catalog and algorithm
configuration.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List

from models.constraints import (
    AlgorithmVariant,
    RotationAlgorithmConfig,
    RotationConstraints,
    ScoringWeights,
)
from models.compliance import ViolationSeverity
from models.shift import ShiftCategory, ShiftType


# =============================================================================
# LABOUR RULES (CCNL COMMERCIO)
# =============================================================================

@dataclass(frozen=True)
class LaborRules:
    """Rest-time rules enforced by the compliance validator."""

    # Art. 15: 11 consecutive hours of rest every 24 hours
    daily_rest_hours: float = 11.0
    daily_rest_article: str = "Art. 15 CCNL Commercio"

    # Art. 16: 35 hours of weekly rest (24h + 11h daily rest)
    weekly_rest_hours: float = 35.0
    weekly_rest_article: str = "Art. 16 CCNL Commercio"

    # Art. 16: at most 6 consecutive working days
    max_consecutive_days: int = 6
    consecutive_days_article: str = "Art. 16 CCNL Commercio"

    # Shifts must fall inside the store's opening hours
    min_store_overlap_minutes: int = 60
    store_hours_article: str = "Art. 2103 Codice Civile"

    # Compliance score penalties
    critical_penalty: float = 25.0
    warning_penalty: float = 10.0

    def penalty_for(self, severity: ViolationSeverity) -> float:
        if severity == ViolationSeverity.CRITICAL:
            return self.critical_penalty
        return self.warning_penalty


# =============================================================================
# ENGINE CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class EngineConfig:
    """Fixed engine parameters that are not part of the user-facing config."""

    # A shift type becomes a candidate slot when it overlaps opening hours by this much
    min_slot_overlap_hours: float = 2.0

    # Actor recorded on generated assignments
    assigned_by: str = "optimized-algorithm"


# =============================================================================
# DEFAULT CATALOG
# =============================================================================

DEFAULT_SHIFT_TYPES: List[ShiftType] = [
    ShiftType.from_hhmm("morning-early", "Mattino Presto", "07:00", "15:00",
                        ShiftCategory.MORNING, difficulty=2),
    ShiftType.from_hhmm("morning-standard", "Mattino Standard", "09:00", "17:00",
                        ShiftCategory.MORNING, difficulty=1),
    ShiftType.from_hhmm("afternoon", "Pomeriggio", "13:00", "21:00",
                        ShiftCategory.AFTERNOON, difficulty=2),
    ShiftType.from_hhmm("evening", "Sera", "17:00", "22:00",
                        ShiftCategory.EVENING, difficulty=3),
]


def default_algorithm_config() -> RotationAlgorithmConfig:
    """Fresh copy of the default rotation configuration."""
    return RotationAlgorithmConfig(
        algorithm=AlgorithmVariant.HYBRID,
        weights=ScoringWeights(equity=0.4, preference=0.3, rest=0.2, experience=0.1),
        look_ahead_days=14,
        max_iterations=1000,
        constraints=RotationConstraints(
            min_rest_hours=12.0,
            max_consecutive_shifts=5,
            max_weekly_hours=48.0,
            min_weekly_hours=20.0,
            require_weekend_rotation=True,
        ),
    )


# =============================================================================
# MAIN APPLICATION CONFIGURATION
# =============================================================================

def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class AppConfig:
    """Main application configuration."""

    labor: LaborRules = field(default_factory=LaborRules)
    engine: EngineConfig = field(default_factory=EngineConfig)

    # Logging settings
    log_dir: str = "output"
    file_logging: bool = False
    verbose: bool = True

    @classmethod
    def load(cls) -> "AppConfig":
        """
        Load configuration from environment and defaults.

        Environment:
            ROTATION_LOG_DIR: directory for the session log file (enables file logging)
            ROTATION_VERBOSE: "0"/"false" silences console output
        """
        log_dir = os.environ.get("ROTATION_LOG_DIR")
        return cls(
            log_dir=log_dir or "output",
            file_logging=bool(log_dir),
            verbose=_env_flag("ROTATION_VERBOSE", True),
        )

    def summary(self) -> Dict[str, object]:
        return {
            "log_dir": self.log_dir if self.file_logging else None,
            "verbose": self.verbose,
            "min_slot_overlap_hours": self.engine.min_slot_overlap_hours,
            "daily_rest_hours": self.labor.daily_rest_hours,
            "weekly_rest_hours": self.labor.weekly_rest_hours,
        }
