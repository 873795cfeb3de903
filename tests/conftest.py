"""
Pytest configuration and fixtures for Cellar tests.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from argon2 import PasswordHasher

from cellar.Config.schema import CONFIG_SCHEMA

TEST_SECRET = "test-secret-for-cellar"
TEST_ADMIN_PASSWORD = "adminpass"


@pytest.fixture(scope="session", autouse=True)
def cheap_password_hasher():
    """Use minimal Argon2 parameters so hashing doesn't dominate the run."""
    from cellar.SecurityManager import set_hasher

    set_hasher(PasswordHasher(time_cost=1, memory_cost=8, parallelism=1))
    yield
    set_hasher(None)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    # Cleanup
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sample_tree(temp_dir: Path) -> Path:
    """
    Create a served root with files, nested folders and symlinks.

        readme.txt            "Hello World"
        data.json             '{"key": "value"}'
        docs/notes.md         "Nested content"
        docs/deep/leaf.txt    "leaf"
        empty/
        link_to_readme     -> readme.txt
        docs_link          -> docs
        dangling           -> missing.txt
    """
    root = temp_dir / "served"
    root.mkdir(parents=True, exist_ok=True)

    (root / "readme.txt").write_text("Hello World")
    (root / "data.json").write_text('{"key": "value"}')

    (root / "docs" / "deep").mkdir(parents=True)
    (root / "docs" / "notes.md").write_text("Nested content")
    (root / "docs" / "deep" / "leaf.txt").write_text("leaf")
    (root / "empty").mkdir()

    os.symlink("readme.txt", root / "link_to_readme")
    os.symlink("docs", root / "docs_link")
    os.symlink("missing.txt", root / "dangling")

    return root


@pytest.fixture
def clean_env():
    """Remove Cellar settings from the environment for the duration of a test."""
    keys = [field.env_var for field in CONFIG_SCHEMA]
    saved = {key: os.environ.pop(key) for key in keys if key in os.environ}
    yield
    for key in keys:
        os.environ.pop(key, None)
    os.environ.update(saved)


@pytest.fixture
def user_db():
    """In-memory SQLite store with the users table."""
    from cellar.shared import db_service
    from cellar.SecurityManager import init_user_tables

    db_service.init_db(db_service.sqlite_url(":memory:"))
    init_user_tables()
    yield
    db_service.dispose()


@pytest.fixture
def security(user_db):
    """Initialized SecurityManager with the bootstrapped admin."""
    from cellar.SecurityManager import SecurityManager

    SecurityManager.initialize(TEST_SECRET, TEST_ADMIN_PASSWORD)
    return SecurityManager


@pytest.fixture
def fs_gate(sample_tree):
    """FileSystemGate serving the sample tree, without an index."""
    from cellar.FileSystemGate import FileSystemGate

    assert FileSystemGate.initialize(str(sample_tree))
    return FileSystemGate


@pytest.fixture
def client(sample_tree, temp_dir, clean_env):
    """TestClient over a fully started app serving the sample tree."""
    from fastapi.testclient import TestClient

    from cellar import Config
    from gateway.run import create_app

    os.environ["SERVE_DIR"] = str(sample_tree)
    os.environ["DB_PATH"] = ":memory:"
    os.environ["JWT_SECRET"] = TEST_SECRET
    os.environ["ADMIN_PASSWORD"] = TEST_ADMIN_PASSWORD
    Config.reload(temp_dir / ".env")

    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def admin_headers(client) -> dict:
    """Authorization header for the bootstrapped admin."""
    response = client.post("/api/login", json={"username": "admin", "password": TEST_ADMIN_PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def user_headers(client, admin_headers) -> dict:
    """Authorization header for a freshly created non-admin user."""
    response = client.post(
        "/api/users",
        json={"username": "alice", "password": "alicepass"},
        headers=admin_headers,
    )
    assert response.status_code == 201
    response = client.post("/api/login", json={"username": "alice", "password": "alicepass"})
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture(autouse=True)
def reset_module_state():
    """Reset module-level state between tests."""
    yield

    # Reset IndexGate (stops the worker thread)
    from cellar.IndexGate import IndexGate
    IndexGate.shutdown()

    # Reset FileSystemGate
    import cellar.FileSystemGate as fs_gate
    fs_gate._root = None
    fs_gate._on_change = None
    fs_gate._initialized = False

    # Reset SecurityManager
    import cellar.SecurityManager as security_manager
    security_manager._secret = None
    security_manager._store = None
    security_manager._initialized = False

    # Reset the database engine
    from cellar.shared import db_service
    db_service.dispose()

    # Reset Config
    import cellar.Config as config
    config._manager = None
