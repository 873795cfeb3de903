"""
Cellar HTTP gateway: the FastAPI application over the Cellar gates.
"""

from gateway.run import create_app

__all__ = ["create_app"]
