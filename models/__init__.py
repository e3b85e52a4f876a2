"""
Data models for the shift rotation system.
"""
from .shift import ShiftType, ShiftCategory
from .store import Store, Weekday, OpeningHours, ClosureDay
from .employee import Employee, EmployeePreference, PreferencePriority
from .schedule import (
    Schedule,
    ShiftAssignment,
    AssignmentStatus,
    SubstitutionRequest,
    SubstitutionStatus,
)
from .constraints import (
    AlgorithmVariant,
    ConstraintType,
    NO_OVERRIDE,
    RotationAlgorithmConfig,
    RotationConstraints,
    ScoringWeights,
    StaffRequirement,
    StaffRequirementTable,
)
from .compliance import (
    CCNLViolation,
    ComplianceReport,
    ComplianceStatus,
    DailyRestCheck,
    ViolationSeverity,
    ViolationType,
    WeeklyRestCheck,
)

__all__ = [
    "ShiftType", "ShiftCategory",
    "Store", "Weekday", "OpeningHours", "ClosureDay",
    "Employee", "EmployeePreference", "PreferencePriority",
    "Schedule", "ShiftAssignment", "AssignmentStatus",
    "SubstitutionRequest", "SubstitutionStatus",
    "AlgorithmVariant", "ConstraintType", "NO_OVERRIDE", "RotationAlgorithmConfig",
    "RotationConstraints", "ScoringWeights", "StaffRequirement", "StaffRequirementTable",
    "CCNLViolation", "ComplianceReport", "ComplianceStatus", "DailyRestCheck",
    "ViolationSeverity", "ViolationType", "WeeklyRestCheck",
]
