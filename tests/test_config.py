from danmu_gateway.config import Settings


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("TOKEN", "/mytoken/")
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "0")
    monkeypatch.setenv("VOD_REQUEST_TIMEOUT", "8000")
    monkeypatch.setenv("LOG__LEVEL", "DEBUG")
    monkeypatch.setenv("DATABASE__URL", "sqlite+aiosqlite:///cache.db")

    settings = Settings(_env_file=None)

    assert settings.token == "mytoken"
    assert settings.rate_limit_max_requests == 0
    assert settings.request_timeout_seconds == 8.0
    assert settings.log.level == "DEBUG"
    assert settings.database.url == "sqlite+aiosqlite:///cache.db"


def test_defaults(monkeypatch):
    for key in ("TOKEN", "RATE_LIMIT_MAX_REQUESTS", "VOD_REQUEST_TIMEOUT"):
        monkeypatch.delenv(key, raising=False)

    settings = Settings(_env_file=None)

    assert settings.token == "87654321"
    assert settings.rate_limit_max_requests == 3
    assert settings.vod_request_timeout == 5000
    assert settings.public_envs()["TOKEN"] == "********"


def test_non_positive_timeout_falls_back_to_default():
    assert Settings(_env_file=None, vod_request_timeout=0).request_timeout_seconds == 5.0
    assert Settings(_env_file=None, vod_request_timeout=-1).request_timeout_seconds == 5.0
