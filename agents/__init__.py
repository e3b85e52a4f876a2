"""
Agents of the Shift Rotation Scheduler.

This module contains all agent implementations for the rotation system.
"""
from .base_agent import BaseAgent, AgentState
from .coordinator import CoordinatorAgent
from .rotation_engine import RotationEngineAgent, AssignmentResult, RunFailure
from .compliance_validator import ComplianceValidatorAgent, generate_weekly_report
from .rotation_statistics import RotationStatisticsAgent

__all__ = [
    "BaseAgent",
    "AgentState",
    "CoordinatorAgent",
    "RotationEngineAgent",
    "AssignmentResult",
    "RunFailure",
    "ComplianceValidatorAgent",
    "generate_weekly_report",
    "RotationStatisticsAgent",
]
