from server.api.settings import Settings, _env_bool


def test_settings_from_env_cors_star(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "*")
    settings = Settings.from_env()

    assert settings.cors_allow_origins() == ["*"]
    assert settings.cors_allow_credentials is False


def test_settings_from_env_custom_origins(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "https://a.com, https://b.com")
    settings = Settings.from_env()

    assert settings.cors_allow_origins() == ["https://a.com", "https://b.com"]
    assert settings.cors_allow_credentials is True


def test_settings_batch_and_timeout_are_clamped(monkeypatch):
    monkeypatch.setenv("API_BATCH_MAX_IDS", "0")
    monkeypatch.setenv("API_RESOLVE_TIMEOUT_SECONDS", "0.01")
    settings = Settings.from_env()

    assert settings.batch_max_ids == 1
    assert settings.resolve_timeout_seconds == 0.5


def test_settings_invalid_numbers_fall_back(monkeypatch):
    monkeypatch.setenv("GZIP_MIN_SIZE", "lots")
    monkeypatch.setenv("API_RESOLVE_TIMEOUT_SECONDS", "soon")
    settings = Settings.from_env()

    assert settings.gzip_min_size == 800
    assert settings.resolve_timeout_seconds == 20.0


def test_env_bool_accepts_words(monkeypatch):
    monkeypatch.setenv("X_FLAG", "yes")
    assert _env_bool("X_FLAG", False) is True
    monkeypatch.setenv("X_FLAG", "off")
    assert _env_bool("X_FLAG", True) is False
    monkeypatch.setenv("X_FLAG", "maybe")
    assert _env_bool("X_FLAG", True) is True
    monkeypatch.delenv("X_FLAG")
    assert _env_bool("X_FLAG", False) is False
