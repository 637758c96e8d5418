from fastapi.testclient import TestClient

from rentng.config import Settings
from rentng.database import Base
from rentng.main import create_app

from conftest import SQLALCHEMY_DATABASE_URL


def make_settings(**overrides) -> Settings:
    values = {
        "DATABASE_URL": SQLALCHEMY_DATABASE_URL,
        "SECRET_KEY": "test-secret-key",
        "RATE_LIMIT_ENABLED": False,
        "SCHEDULER_ENABLED": False,
        **overrides,
    }
    return Settings(_env_file=None, **values)


def test_schema_is_left_to_alembic_by_default():
    assert make_settings().CREATE_TABLES is False


def test_startup_skips_create_all_by_default(mocker):
    create_all = mocker.patch.object(Base.metadata, "create_all")

    with TestClient(create_app(make_settings())):
        pass

    create_all.assert_not_called()


def test_startup_creates_tables_when_enabled(mocker):
    create_all = mocker.patch.object(Base.metadata, "create_all")

    app = create_app(make_settings(CREATE_TABLES=True))
    with TestClient(app):
        pass

    create_all.assert_called_once_with(bind=app.state.engine)
