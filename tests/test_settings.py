import pytest

from taskdesk.settings import DEFAULT_JWT_SECRET, get_client_settings, get_settings


@pytest.fixture()
def clean_env(monkeypatch):
    for name in (
        "PERSISTENCE_BACKEND",
        "SQLITE_DB_PATH",
        "CORS_ALLOW_ORIGINS",
        "JWT_SECRET",
        "JWT_ALGORITHM",
        "ACCESS_TOKEN_EXPIRE_MINUTES",
        "LOG_LEVEL",
        "TASKDESK_API_URL",
        "TASKDESK_SESSION_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = get_settings()
    assert settings.persistence_backend == "memory"
    assert settings.sqlite_db_path == "./data/tasks.db"
    assert settings.cors_allow_origins == ["*"]
    assert settings.jwt_secret == DEFAULT_JWT_SECRET
    assert settings.uses_default_secret
    assert settings.jwt_algorithm == "HS256"
    assert settings.access_token_expire_minutes == 10080
    assert settings.log_level == "INFO"


def test_overrides(clean_env):
    clean_env.setenv("PERSISTENCE_BACKEND", " SQLite ")
    clean_env.setenv("CORS_ALLOW_ORIGINS", "http://a.test, http://b.test,")
    clean_env.setenv("JWT_SECRET", "s3")
    clean_env.setenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30")
    clean_env.setenv("LOG_LEVEL", "debug")
    settings = get_settings()
    assert settings.persistence_backend == "sqlite"
    assert settings.cors_allow_origins == ["http://a.test", "http://b.test"]
    assert not settings.uses_default_secret
    assert settings.access_token_expire_minutes == 30
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("value", ["postgres", ""])
def test_unknown_backend_falls_back_to_memory(clean_env, value):
    clean_env.setenv("PERSISTENCE_BACKEND", value)
    assert get_settings().persistence_backend == "memory"


@pytest.mark.parametrize("value", ["soon", "0", "-5"])
def test_bad_expiry_uses_default(clean_env, value):
    clean_env.setenv("ACCESS_TOKEN_EXPIRE_MINUTES", value)
    assert get_settings().access_token_expire_minutes == 10080


def test_client_settings(clean_env):
    defaults = get_client_settings()
    assert defaults.api_url == "http://localhost:5000/api"
    assert defaults.session_file is None

    clean_env.setenv("TASKDESK_API_URL", "https://tasks.example.com/api/")
    clean_env.setenv("TASKDESK_SESSION_FILE", "/tmp/session.json")
    configured = get_client_settings()
    assert configured.api_url == "https://tasks.example.com/api"
    assert configured.session_file == "/tmp/session.json"
