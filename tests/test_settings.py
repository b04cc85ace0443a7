import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from bundle_wizard.core.settings import DEFAULT_CORS_ORIGINS, load_settings


def test_defaults(monkeypatch):
    for name in ("CONVERTER_API_BASE", "CONVERTER_TIMEOUT_SECONDS", "API_CORS_ORIGINS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.converter_api_base == "http://localhost:8000"
    assert settings.converter_timeout == 300.0
    assert settings.cors_origins == DEFAULT_CORS_ORIGINS
    assert settings.log_level == "INFO"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("CONVERTER_API_BASE", "https://converter.example.org/")
    monkeypatch.setenv("CONVERTER_TIMEOUT_SECONDS", "45")
    monkeypatch.setenv("API_CORS_ORIGINS", "https://app.example.org, http://localhost:4000 ,")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.converter_api_base == "https://converter.example.org"
    assert settings.converter_timeout == 45.0
    assert settings.cors_origins == ["https://app.example.org", "http://localhost:4000"]
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("value", ["soon", "0", "-5"])
def test_invalid_timeout_is_rejected(monkeypatch, value):
    monkeypatch.setenv("CONVERTER_TIMEOUT_SECONDS", value)

    with pytest.raises(ValueError):
        load_settings()
