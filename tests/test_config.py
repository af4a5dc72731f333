import pytest
from pydantic import ValidationError

from code_vector_store.config import Settings

_QDRANT_VARS = (
    "QDRANT_URL",
    "QDRANT_API_KEY",
    "QDRANT_HOST",
    "QDRANT_PORT",
    "QDRANT_TIMEOUT",
    "STRICT_FILTERS",
)


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in _QDRANT_VARS:
        monkeypatch.delenv(var, raising=False)


def test_settings_defaults() -> None:
    """Connection fields are unset by default so precedence can fall through."""
    settings = Settings(_env_file=None)

    assert settings.qdrant_url is None
    assert settings.qdrant_api_key is None
    assert settings.qdrant_host is None
    assert settings.qdrant_port is None
    assert settings.qdrant_timeout is None
    assert settings.strict_filters is False


def test_settings_loads_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Environment variables populate the Qdrant settings."""
    monkeypatch.setenv("QDRANT_URL", "https://cluster.example.com:6333")
    monkeypatch.setenv("QDRANT_API_KEY", "qd-secret")
    monkeypatch.setenv("QDRANT_HOST", "qdrant.internal")
    monkeypatch.setenv("QDRANT_PORT", "6334")
    monkeypatch.setenv("QDRANT_TIMEOUT", "30")
    monkeypatch.setenv("STRICT_FILTERS", "true")

    settings = Settings(_env_file=None)

    assert settings.qdrant_url == "https://cluster.example.com:6333"
    assert settings.qdrant_api_key == "qd-secret"
    assert settings.qdrant_host == "qdrant.internal"
    assert settings.qdrant_port == 6334
    assert settings.qdrant_timeout == 30
    assert settings.strict_filters is True


@pytest.mark.parametrize(
    ("var", "value"),
    [
        ("QDRANT_PORT", "0"),
        ("QDRANT_PORT", "70000"),
        ("QDRANT_PORT", "not-a-port"),
        ("QDRANT_TIMEOUT", "0"),
    ],
)
def test_settings_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch, var: str, value: str
) -> None:
    """Out-of-range connection values raise a ValidationError."""
    monkeypatch.setenv(var, value)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)
