"""
Shared utilities for Cellar.

Provides access to common functionality used across Gate implementations.
"""

from cellar.shared.gate import (
    GateLogger,
    GateErrorHandler,
    GateHealth,
    build_health_status,
)

__all__ = [
    "GateLogger",
    "GateErrorHandler",
    "GateHealth",
    "build_health_status",
]
