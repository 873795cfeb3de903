"""
Health check API endpoints.

Aggregates health status from all Cellar Gates. The public route only
says whether each gate is up; the detailed report (served root, account
counts, insecure config defaults) is for admins.
"""

from __future__ import annotations

from typing import Any, Dict, Tuple

from fastapi import APIRouter, Depends, Response

from cellar import Config
from cellar.FileSystemGate import FileSystemGate
from cellar.IndexGate import IndexGate
from cellar.SecurityManager import SecurityManager
from cellar.shared.gate import GateHealth
from gateway.api.deps import require_admin


# Gate registry: name -> gate class
GATE_REGISTRY: Dict[str, GateHealth] = {
    "FileSystemGate": FileSystemGate,
    "IndexGate": IndexGate,
    "SecurityManager": SecurityManager,
}


def _collect_health_data() -> Tuple[bool, Dict[str, Any]]:
    """
    Collect health data from all gates.

    Returns:
        Tuple of (all_healthy, gates_dict)
    """
    gates = {}
    all_healthy = True

    for gate_name, gate in GATE_REGISTRY.items():
        try:
            gates[gate_name] = gate.get_health_status()
            if not gates[gate_name].get("healthy", False):
                all_healthy = False
        except Exception as e:
            gates[gate_name] = {"healthy": False, "error": str(e)}
            all_healthy = False

    return all_healthy, gates


def create_router() -> APIRouter:
    router = APIRouter(prefix="/api")

    @router.get("/health")
    def api_health(response: Response) -> Dict[str, Any]:
        """
        Up/down summary per gate. Public.

        Returns 200 when healthy, 503 when unhealthy.
        """
        all_healthy, gates = _collect_health_data()

        if not all_healthy:
            response.status_code = 503

        return {
            "healthy": all_healthy,
            "gates": {name: {"healthy": bool(status.get("healthy"))} for name, status in gates.items()},
        }

    @router.get("/health/details", dependencies=[Depends(require_admin)])
    def api_health_details(response: Response) -> Dict[str, Any]:
        """Full gate reports plus config keys still on insecure defaults (admin only)."""
        all_healthy, gates = _collect_health_data()

        if not all_healthy:
            response.status_code = 503

        return {
            "healthy": all_healthy,
            "gates": gates,
            "config_warnings": Config.get_manager().get_warnings(),
        }

    return router
