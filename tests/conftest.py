import os

os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from typing import Generator, Dict, Any
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from storefront.app import app as fastapi_app
from storefront.utils.security import require_user, require_admin

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app):
    fake_user: Dict[str, Any] = {
        "id": "test-user",
        "email": "test@example.com",
        "name": "Test User",
        "role": "user",
        "metadata": {"full_name": "Test User"},
        "token": "fake-token",
    }
    app.dependency_overrides[require_user] = lambda: fake_user
    try:
        yield fake_user
    finally:
        app.dependency_overrides.pop(require_user, None)

@pytest.fixture
def admin_client(app, client):
    app.dependency_overrides[require_admin] = lambda: {"id": "admin-user-id", "role": "admin", "email": "admin@example.com"}
    try:
        yield client
    finally:
        app.dependency_overrides.pop(require_admin, None)

# Aucun accès réseau: Supabase et SendGrid neutralisés pour tous les tests
@pytest.fixture(autouse=True)
def mock_db_dependency(monkeypatch):
    monkeypatch.setattr("storefront.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("storefront.infra.supabase_client.get_service_supabase", lambda: MagicMock())
    monkeypatch.setattr("storefront.emails.sender.SENDGRID_API_KEY", "")

@pytest.fixture
def sent_emails(monkeypatch):
    """Capture les envois (sender.send_email) au lieu d'appeler SendGrid."""
    outbox = []

    def _fake_send(to, subject, html, text=None):
        outbox.append({"to": to, "subject": subject, "html": html})
        return {"success": True}

    monkeypatch.setattr("storefront.emails.sender.send_email", _fake_send)
    return outbox
