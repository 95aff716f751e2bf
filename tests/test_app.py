import pytest

from api import create_app
from api.config import DevelopmentConfig, ProductionConfig, TestingConfig, get_config
from models import DBStorage


@pytest.mark.parametrize(
    "name, expected",
    [
        ("prod", ProductionConfig),
        ("production", ProductionConfig),
        ("test", TestingConfig),
        ("Testing", TestingConfig),
        ("dev", DevelopmentConfig),
        ("anything-else", DevelopmentConfig),
    ],
)
def test_get_config(name, expected):
    assert get_config(name) is expected


def test_get_config_falls_back_to_app_env(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    assert get_config(None) is ProductionConfig


def test_app_refuses_to_start_without_jwt_secrets(monkeypatch):
    monkeypatch.setattr(ProductionConfig, "JWT_ACCESS_SECRET", "")
    monkeypatch.setattr(ProductionConfig, "JWT_REFRESH_SECRET", "")
    storage = DBStorage("sqlite://")
    try:
        with pytest.raises(ValueError):
            create_app("production", storage=storage)
    finally:
        storage.dispose()


def test_handles_are_kept_on_the_app(app, storage):
    assert app.extensions["storage"] is storage
    assert app.extensions["token_service"].store is not None


def test_swagger_spec_lists_auth_routes(client):
    resp = client.get("/swagger.json")

    assert resp.status_code == 200
    paths = resp.get_json()["paths"]
    assert "/api/v1/auth/refresh" in paths
    assert "/api/v1/users/{user_id}/roles" in paths
