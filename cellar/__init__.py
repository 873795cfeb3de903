"""
Cellar - a self-hosted file browser API.

Gates:
- FileSystemGate: sandboxed file operations on the served root
- IndexGate: in-memory snapshot of the served tree
- SecurityManager: accounts and bearer-token authentication
- Config: schema-driven configuration
"""

from cellar import Config
from cellar import FileSystemGate
from cellar import IndexGate
from cellar import SecurityManager

__version__ = "1.0.0"

__all__ = [
    "Config",
    "FileSystemGate",
    "IndexGate",
    "SecurityManager",
]
