"""
Pytest configuration to ensure paths are set up correctly for tests.

This allows imports like `from handlers import main` to work
when running tests, simulating the Lambda environment where code
is deployed from the src/ directory.
"""

import os
import sys
from pathlib import Path

import boto3
import pytest


def _ensure_paths_on_sys_path() -> None:
    """Add repository root AND src/ to sys.path if missing.

    The src/ directory is added to simulate Lambda's import behavior,
    where Code.from_asset("src") makes src/ the root of the package.
    """
    repo_root = Path(__file__).resolve().parents[1]
    src_root = repo_root / "src"

    # Add repo root first (for imports like infrastructure.*)
    root_str = str(repo_root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)

    # Add src/ for Lambda-style imports (from handlers import ...)
    src_str = str(src_root)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)


_ensure_paths_on_sys_path()

# Ensure boto3 has offline-friendly defaults so tests do not require AWS access.
os.environ.setdefault("AWS_REGION", "eu-west-2")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-2")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")
os.environ.setdefault("AWS_SESSION_TOKEN", "test")
os.environ.setdefault("ENVIRONMENT", "dev")

# Portal defaults: in-memory storage and a virtual clock for auto replies.
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("SCHEDULER_BACKEND", "manual")
os.environ.setdefault("ATTACHMENTS_BUCKET", "test-attachments-bucket")

# Create a default boto3 session so resources/clients do not error during import.
boto3.setup_default_session(region_name="eu-west-2")


@pytest.fixture
def portal():
    """Fresh in-memory portal on a ManualScheduler, installed for the handlers."""
    from services.portal import build_portal, set_portal
    from utils.settings import PortalSettings

    built = build_portal(PortalSettings(scheduler_backend="manual"))
    set_portal(built)
    yield built
    set_portal(None)


@pytest.fixture
def admin():
    from models.identity import Principal, Role

    return Principal(user_id="admin-1", role=Role.ADMIN)


@pytest.fixture
def customer():
    from models.identity import Principal, Role

    return Principal(user_id="cust-1", role=Role.CUSTOMER)


@pytest.fixture
def other_customer():
    from models.identity import Principal, Role

    return Principal(user_id="cust-2", role=Role.CUSTOMER)
