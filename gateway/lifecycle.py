from __future__ import annotations

from pathlib import Path

from cellar import Config
from cellar.FileSystemGate import FileSystemGate
from cellar.IndexGate import IndexGate
from cellar.SecurityManager import SecurityManager
from cellar.shared import db_service
from cellar.shared.gate import GateLogger

# Lifecycle logger
_log = GateLogger.get("Lifecycle")


def startup():
    """Initialize subsystems on server startup."""
    config = Config.get_manager()
    GateLogger.set_level(config.get("LOG_LEVEL") or "INFO")

    errors = config.validate()
    if errors:
        for error in errors:
            _log.error(error)
        raise RuntimeError("Invalid configuration: " + "; ".join(errors))

    serve_dir = Path(config.get("SERVE_DIR")).expanduser()
    if not serve_dir.exists():
        serve_dir.mkdir(parents=True, exist_ok=True)
        _log.info(f"Created serve directory {serve_dir}")

    db_path = config.get("DB_PATH")
    if db_path and db_path != ":memory:":
        Path(db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
    db_service.init_db(db_service.sqlite_url(db_path))

    # Initialize all gates explicitly
    SecurityManager.initialize(config.get("JWT_SECRET"), config.get("ADMIN_PASSWORD"))
    if not FileSystemGate.initialize(str(serve_dir), on_change=IndexGate.schedule_rebuild):
        raise RuntimeError(f"Cannot serve {serve_dir}")

    # Blocks until the first index build is done
    IndexGate.initialize(str(serve_dir))
    _log.info("Cellar ready")


def shutdown():
    """Cleanup on server shutdown."""
    try:
        IndexGate.wait_idle(timeout=5.0)
        IndexGate.shutdown()
        _log.info("Index worker stopped")
    except Exception as e:
        _log.error(f"IndexGate shutdown error: {e}")

    db_service.dispose()


__all__ = ["startup", "shutdown"]
