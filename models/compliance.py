"""
CCNL compliance report models.

Severity penalties and regulation references live in config.LaborRules; the
report only applies the penalty it is given.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional


class ViolationSeverity(Enum):
    CRITICAL = "critical"
    WARNING = "warning"


class ViolationType(Enum):
    """Labour rules checked by the compliance validator."""
    DAILY_REST = "daily_rest"
    WEEKLY_REST = "weekly_rest"
    CONSECUTIVE_DAYS = "consecutive_days"
    STORE_HOURS = "store_hours"


class ComplianceStatus(Enum):
    COMPLIANT = "compliant"
    MINOR_VIOLATIONS = "minor_violations"
    MAJOR_VIOLATIONS = "major_violations"


@dataclass
class CCNLViolation:
    """
    A labour-rule violation.

    Attributes:
        violation_type: Which rule was broken
        severity: Critical or warning
        description: Human-readable description
        regulation: Article of the collective agreement / civil code
        suggestion: Suggested resolution
        affected_date: Date the violation is anchored to
        measured_value: Value measured (rest hours, consecutive days, ...)
        required_value: Value the rule requires
    """
    violation_type: ViolationType
    severity: ViolationSeverity
    description: str
    regulation: str
    suggestion: str = ""
    affected_date: Optional[date] = None
    measured_value: Optional[float] = None
    required_value: Optional[float] = None

    @property
    def shortfall(self) -> Optional[float]:
        """How far the measured value falls short of the requirement."""
        if self.measured_value is None or self.required_value is None:
            return None
        return round(max(0.0, self.required_value - self.measured_value), 2)

    @property
    def is_critical(self) -> bool:
        return self.severity == ViolationSeverity.CRITICAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.violation_type.value,
            "severity": self.severity.value,
            "description": self.description,
            "regulation": self.regulation,
            "suggestion": self.suggestion,
            "date": self.affected_date.isoformat() if self.affected_date else None,
            "measured_value": self.measured_value,
            "required_value": self.required_value,
            "shortfall": self.shortfall,
        }

    def __str__(self) -> str:
        emoji = "🔴" if self.is_critical else "🟡"
        return f"{emoji} [{self.violation_type.value.upper()}] {self.description}"


@dataclass
class DailyRestCheck:
    """Rest measured around one worked day."""
    date: date
    rest_hours: float
    has_minimum_rest: bool


@dataclass
class WeeklyRestCheck:
    """Longest uninterrupted rest span inside the week."""
    longest_rest_hours: float
    required_hours: float

    @property
    def is_compliant(self) -> bool:
        return self.longest_rest_hours >= self.required_hours


@dataclass
class ComplianceReport:
    """
    Per-employee, per-week audit of rest-time rules.

    Attributes:
        employee_id: Audited employee
        week_start: First day of the 7-day window
        violations: Violations found
        daily_rest: One entry per worked day in the week
        weekly_rest: Weekly rest measurement
        consecutive_days_worked: Longest working-day run touching the week
        max_consecutive_days: Longest run allowed by the rules applied
        score: 0-100, reduced by each violation
    """
    employee_id: str
    week_start: date
    violations: List[CCNLViolation] = field(default_factory=list)
    daily_rest: List[DailyRestCheck] = field(default_factory=list)
    weekly_rest: Optional[WeeklyRestCheck] = None
    consecutive_days_worked: int = 0
    max_consecutive_days: int = 6
    score: float = 100.0

    @property
    def week_end(self) -> date:
        return self.week_start + timedelta(days=6)

    def add_violation(self, violation: CCNLViolation, penalty: float) -> None:
        """Record a violation and lower the score, floored at 0."""
        self.violations.append(violation)
        self.score = max(0.0, self.score - penalty)

    @property
    def status(self) -> ComplianceStatus:
        if not self.violations:
            return ComplianceStatus.COMPLIANT
        if any(v.is_critical for v in self.violations):
            return ComplianceStatus.MAJOR_VIOLATIONS
        return ComplianceStatus.MINOR_VIOLATIONS

    @property
    def is_compliant(self) -> bool:
        return self.status == ComplianceStatus.COMPLIANT

    @property
    def critical_violations(self) -> List[CCNLViolation]:
        return [v for v in self.violations if v.is_critical]

    @property
    def warnings(self) -> List[CCNLViolation]:
        return [v for v in self.violations if not v.is_critical]

    def summary(self) -> Dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "week_start": self.week_start.isoformat(),
            "week_end": self.week_end.isoformat(),
            "status": self.status.value,
            "score": self.score,
            "critical": len(self.critical_violations),
            "warnings": len(self.warnings),
            "longest_weekly_rest": self.weekly_rest.longest_rest_hours if self.weekly_rest else None,
            "consecutive_days_worked": self.consecutive_days_worked,
            "max_consecutive_days": self.max_consecutive_days,
        }

    def __str__(self) -> str:
        status_emoji = {
            ComplianceStatus.COMPLIANT: "✅",
            ComplianceStatus.MINOR_VIOLATIONS: "⚠️",
            ComplianceStatus.MAJOR_VIOLATIONS: "❌",
        }[self.status]
        return (
            f"{status_emoji} {self.employee_id} week of {self.week_start}: "
            f"{self.status.value} (score: {self.score:.0f}/100, "
            f"{len(self.critical_violations)} critical, {len(self.warnings)} warnings)"
        )
