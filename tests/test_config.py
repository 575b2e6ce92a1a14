import pytest

from strategy_map.core import config


@pytest.fixture(autouse=True)
def no_dotenv(monkeypatch):
    monkeypatch.setattr(config, "load_dotenv", lambda: None)
    for name in (
        "GEMINI_API_KEY",
        "API_KEY",
        "GEMINI_FLASH_MODEL",
        "GEMINI_PRO_MODEL",
        "PORT",
        "MAP_CENTER_LAT",
        "MAP_CENTER_LNG",
        "MAP_ZOOM",
    ):
        monkeypatch.delenv(name, raising=False)


def setup_function(function):
    config.get_settings.cache_clear()


def teardown_function(function):
    config.get_settings.cache_clear()


def test_get_settings_reads_env(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "abc123")
    monkeypatch.setenv("GEMINI_PRO_MODEL", "gemini-pro-test")
    monkeypatch.setenv("PORT", "9100")
    monkeypatch.setenv("MAP_CENTER_LAT", "40.5")
    monkeypatch.setenv("MAP_ZOOM", "9")

    settings = config.get_settings()

    assert settings.gemini_api_key == "abc123"
    assert settings.flash_model == "gemini-3-flash-preview"
    assert settings.pro_model == "gemini-pro-test"
    assert settings.port == 9100
    assert settings.map_center_lat == 40.5
    assert settings.map_center_lng == -80.3582
    assert settings.map_zoom == 9


def test_get_settings_falls_back_to_api_key(monkeypatch):
    monkeypatch.setenv("API_KEY", "legacy")

    assert config.get_settings().gemini_api_key == "legacy"


def test_get_settings_warns_when_missing(monkeypatch, caplog):
    with caplog.at_level("WARNING"):
        settings = config.get_settings()

    assert "GEMINI_API_KEY is not configured" in " ".join(caplog.messages)
    assert settings.gemini_api_key == ""
    assert settings.port == 8080
    assert settings.map_zoom == 12


def test_get_settings_ignores_bad_center(monkeypatch, caplog):
    monkeypatch.setenv("GEMINI_API_KEY", "abc")
    monkeypatch.setenv("MAP_CENTER_LNG", "west")

    with caplog.at_level("WARNING"):
        settings = config.get_settings()

    assert settings.map_center_lng == -80.3582
    assert "MAP_CENTER_LNG" in " ".join(caplog.messages)
