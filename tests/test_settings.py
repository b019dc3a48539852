from app.config.settings import Settings, get_settings


def test_scheduling_defaults(monkeypatch):
    for name in ("SLOT_STEP_MINUTES", "TRIAL_DAYS", "BOOKING_LOCK_BACKEND", "MIN_WORKING_SPAN_MINUTES"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.SLOT_STEP_MINUTES == 30
    assert settings.MIN_WORKING_SPAN_MINUTES == 60
    assert settings.TRIAL_DAYS == 7
    assert settings.SUBSCRIPTION_PERIOD_MONTHS == 1
    assert settings.BOOKING_LOCK_BACKEND == "local"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SLOT_STEP_MINUTES", "15")
    monkeypatch.setenv("BOOKING_LOCK_BACKEND", "redis")

    settings = Settings(_env_file=None)

    assert settings.SLOT_STEP_MINUTES == 15
    assert settings.BOOKING_LOCK_BACKEND == "redis"


def test_get_settings_is_cached():
    assert get_settings() is get_settings()
    assert get_settings().NOTIFICATIONS_ENABLED is False
