from fastapi.testclient import TestClient

from app.api import deps
from app.core.config import Settings
from app.main import app


def test_root_reports_project_and_environment():
    app.dependency_overrides[deps.get_settings] = lambda: Settings(PROJECT_NAME="Tienda", APP_ENVIRONMENT="test")
    try:
        response = TestClient(app).get("/")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json() == {"message": "Bienvenido a Tienda v0.1.0", "environment": "test"}


def test_settings_defaults():
    settings = Settings()
    assert settings.DATABASE_URL.startswith("postgresql+asyncpg://")
    assert settings.STOCK_LOCK_WAIT_ATTEMPTS * settings.STOCK_LOCK_POLL_INTERVAL == 5.0
    assert settings.STOCK_REVALIDATION_INTERVAL >= 30
