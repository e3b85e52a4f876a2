"""
Base Agent class shared by the engine, validator, statistics and coordinator agents.

This module defines:
- AgentState: Lifecycle state enumeration
- BaseAgent: Abstract base with console/file logging and error budget
"""
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from rich.console import Console
from pathlib import Path
import logging
import time
import traceback


LOGGER_NAME = "ShiftRotationScheduler"
LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(message)s'

# level name -> (rich colour, logging level)
LOG_LEVELS = {
    "info": ("blue", logging.INFO),
    "success": ("green", logging.INFO),
    "warning": ("yellow", logging.WARNING),
    "error": ("red", logging.ERROR),
    "debug": ("dim", logging.DEBUG),
}


class AgentState(Enum):
    """Agent lifecycle states."""
    INITIALIZING = "initializing"
    IDLE = "idle"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"
    SHUTDOWN = "shutdown"


class BaseAgent(ABC):
    """
    Abstract base class for the rotation agents.

    Every agent writes coloured lines to its own rich console and, once
    setup_file_logging() has been called, mirrors them into one session log
    shared by all agents.

    Attributes:
        name: Agent name shown as the log prefix
        agent_state: Current lifecycle state
        is_active: False after shutdown()
        verbose: Whether log lines reach the console
        max_errors: Failures tolerated by safe_execute() before it re-raises
    """

    _file_logger: Optional[logging.Logger] = None
    _log_file_path: Optional[str] = None

    @classmethod
    def setup_file_logging(cls, log_dir: str = "output") -> str:
        """
        Open the session log file used by every agent.

        Calling it again while a session log is open returns the same path.

        Args:
            log_dir: Directory for the log file, created if missing

        Returns:
            Path to the log file
        """
        if cls._file_logger is not None:
            return cls._log_file_path

        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        log_file = str(directory / f"rotation_log_{datetime.now():%Y%m%d_%H%M%S}.txt")

        handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))

        logger = logging.getLogger(LOGGER_NAME)
        logger.setLevel(logging.DEBUG)
        logger.addHandler(handler)

        cls._file_logger = logger
        cls._log_file_path = log_file

        logger.info("=" * 70)
        logger.info("SHIFT ROTATION SCHEDULER - SESSION LOG")
        logger.info(f"Opened: {datetime.now().isoformat()}")
        logger.info("=" * 70)
        return log_file

    @classmethod
    def close_file_logging(cls) -> None:
        """Flush and detach the session log."""
        if cls._file_logger is None:
            return
        for handler in list(cls._file_logger.handlers):
            handler.close()
            cls._file_logger.removeHandler(handler)
        cls._file_logger = None
        cls._log_file_path = None

    def __init__(self, name: str, verbose: bool = True, max_errors: int = 3):
        self.name = name
        self.verbose = verbose
        self.max_errors = max_errors
        self.agent_state = AgentState.INITIALIZING
        self.is_active = True
        self.console = Console(quiet=not verbose)
        self._error_count = 0
        self._execution_count = 0
        self._last_duration: Optional[float] = None

        self._transition_state(AgentState.IDLE)
        self.log("Agent ready", "debug")

    # ==================== Lifecycle ====================

    @abstractmethod
    def execute(self, **kwargs) -> Any:
        """Run the agent's task. Keyword arguments are agent specific."""

    def startup(self) -> None:
        """Clear the error budget and return to idle."""
        self.is_active = True
        self._error_count = 0
        self._transition_state(AgentState.IDLE)
        self.log("🟢 Agent started", "success")

    def shutdown(self) -> None:
        self.is_active = False
        self._transition_state(AgentState.SHUTDOWN)
        self.log(f"🔴 Agent stopped after {self._execution_count} runs ({self._error_count} errors)")

    def health_check(self) -> bool:
        """True while the agent is active and within its error budget."""
        if not self.is_active or self.agent_state in (AgentState.ERROR, AgentState.SHUTDOWN):
            return False
        return self._error_count < self.max_errors

    def get_metrics(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self.agent_state.value,
            "is_active": self.is_active,
            "executions": self._execution_count,
            "last_duration": self._last_duration,
            "error_count": self._error_count,
            "max_errors": self.max_errors,
            "is_healthy": self.health_check(),
        }

    # ==================== Logging ====================

    def log(self, message: str, level: str = "info") -> None:
        """
        Write a line to the console and, when open, to the session log.

        Args:
            message: Text to log
            level: info, success, warning, error or debug
        """
        color, log_level = LOG_LEVELS.get(level, ("white", logging.INFO))
        self.console.print(f"[{color}][{self.name}] {message}[/{color}]")

        if BaseAgent._file_logger:
            BaseAgent._file_logger.log(log_level, f"[{self.name}] {message}")

    def _transition_state(self, new_state: AgentState) -> None:
        previous, self.agent_state = self.agent_state, new_state
        if BaseAgent._file_logger:
            BaseAgent._file_logger.debug(f"[{self.name}] {previous.value} → {new_state.value}")

    # ==================== Error Handling ====================

    def _handle_error(self, error: Exception, context: str = "") -> bool:
        """
        Record a failure against the error budget.

        Returns:
            True while the agent may keep working, False once the budget is spent
        """
        self._error_count += 1
        self._transition_state(AgentState.ERROR)
        self.log(f"{context} failed: {type(error).__name__}: {error}", "error")

        if BaseAgent._file_logger:
            BaseAgent._file_logger.debug(f"[{self.name}] {traceback.format_exc()}")

        if self._error_count >= self.max_errors:
            self.log(f"Error budget spent ({self._error_count}/{self.max_errors})", "warning")
            return False

        self.log(f"Continuing after error {self._error_count}/{self.max_errors}", "warning")
        self._transition_state(AgentState.IDLE)
        return True

    def safe_execute(self, **kwargs) -> Any:
        """
        Call execute() and absorb failures until the error budget is spent.

        Returns:
            The result of execute(), or None after an absorbed failure
        """
        self._transition_state(AgentState.PROCESSING)
        started = time.perf_counter()
        try:
            result = self.execute(**kwargs)
        except Exception as e:
            if not self._handle_error(e, f"{type(self).__name__}.execute()"):
                raise
            return None
        finally:
            self._last_duration = time.perf_counter() - started

        self._execution_count += 1
        self._transition_state(AgentState.COMPLETED)
        return result

    def __str__(self) -> str:
        return f"{self.name} ({type(self).__name__}, {'active' if self.is_active else 'inactive'})"

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(name='{self.name}', state={self.agent_state.value})>"
