"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add repo root to path (for 'classes.*' and 'server' imports)
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))

from fastapi.testclient import TestClient

from classes.db_connection_hlpr import DbConnection
from classes.form_service import FormService
from classes.submission_store import SubmissionStore


@pytest.fixture
def session_factory(tmp_path):
    """Fresh SQLite database per test."""
    return DbConnection(database_url=f"sqlite:///{tmp_path / 'forms.db'}").build_db_session_factory()


@pytest.fixture
def store(session_factory):
    return SubmissionStore(session_factory)


@pytest.fixture
def service(store):
    return FormService(store)


@pytest.fixture
def api(service):
    """TestClient bound to the FastAPI app, with the service pointed at the test database."""
    from server import app, get_form_service

    app.dependency_overrides[get_form_service] = lambda: service
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def personal_info():
    return {
        "name": "Jo Lee",
        "email": "jo@x.com",
        "addressLine1": "1 Main St",
        "city": "NYC",
        "state": "NY",
        "zipcode": "10001",
    }
