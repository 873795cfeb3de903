"""
Plumbing shared by the Cellar gates.

- GateLogger: one ``cellar.<Gate>`` logger per gate, one stream handler
- GateErrorHandler: log a failure and hand back a fallback value
- GateHealth: what the health route expects from every gate
"""

from __future__ import annotations

import logging
from typing import (
    Any,
    Dict,
    List,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

LOGGER_ROOT = "cellar"
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


# =============================================================================
# GateLogger
# =============================================================================


class GateLogger:
    """
    Per-gate loggers hanging off the ``cellar`` logger.

    The first call installs a stream handler on ``cellar`` unless the host
    application already attached one.
    """

    _loggers: Dict[str, logging.Logger] = {}
    _configured = False

    @classmethod
    def _ensure_configured(cls):
        if cls._configured:
            return

        base = logging.getLogger(LOGGER_ROOT)
        if not base.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            base.addHandler(handler)
            base.setLevel(logging.INFO)

        cls._configured = True

    @classmethod
    def get(cls, gate_name: str) -> logging.Logger:
        """
        Logger for one gate.

        Args:
            gate_name: Gate or component name, e.g. "IndexGate"

        Returns:
            The ``cellar.<gate_name>`` logger
        """
        cls._ensure_configured()

        name = f"{LOGGER_ROOT}.{gate_name}"
        logger = cls._loggers.get(name)
        if logger is None:
            logger = cls._loggers[name] = logging.getLogger(name)
        return logger

    @classmethod
    def set_level(cls, level: Union[int, str], gate_name: Optional[str] = None):
        """
        Change the log level.

        Args:
            level: A logging constant or a level name such as "debug";
                unknown names fall back to INFO
            gate_name: Only this gate's logger, or every gate when None
        """
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
            if not isinstance(level, int):
                level = logging.INFO

        if gate_name:
            cls.get(gate_name).setLevel(level)
            return

        cls._ensure_configured()
        logging.getLogger(LOGGER_ROOT).setLevel(level)


# =============================================================================
# GateErrorHandler
# =============================================================================


class GateErrorHandler:
    """Log-and-absorb for code paths that must not raise (worker threads, hooks)."""

    @staticmethod
    def handle(
        gate_name: str,
        operation: str,
        exception: Exception,
        default_return: Any = None,
        log_level: int = logging.ERROR,
    ) -> Any:
        """Log ``"<operation> failed: <exception>"`` on the gate's logger and return ``default_return``."""
        GateLogger.get(gate_name).log(log_level, f"{operation} failed: {exception}")
        return default_return


# =============================================================================
# GateHealth
# =============================================================================


@runtime_checkable
class GateHealth(Protocol):
    """Health surface shared by FileSystemGate, IndexGate and SecurityManager."""

    @classmethod
    def is_healthy(cls) -> bool:
        ...

    @classmethod
    def get_health_status(cls) -> Dict[str, Any]:
        """Status dict as produced by build_health_status()."""
        ...

    @classmethod
    def get_dependencies(cls) -> List[str]:
        ...


def build_health_status(
    gate_name: str,
    initialized: bool,
    dependencies: List[str],
    checks: Dict[str, bool],
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Assemble a gate's health report.

    A gate is healthy when it is initialized and every named check passed.

    Args:
        gate_name: Gate reporting
        initialized: Whether initialize() has succeeded
        dependencies: External things the gate relies on
        checks: Check name -> passed
        details: Free-form extra information

    Returns:
        Dict with gate, healthy, initialized, dependencies, checks, details
    """
    passed = all(checks.values()) if checks else True

    return {
        "gate": gate_name,
        "healthy": initialized and passed,
        "initialized": initialized,
        "dependencies": dependencies,
        "checks": checks,
        "details": details or {},
    }

