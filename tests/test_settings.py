from households.core.settings import DEFAULT_HOUSE_NUMBER_ALIASES, DEFAULT_STREET_ALIASES, Settings, get_settings


def test_defaults():
    settings = Settings()

    assert settings.family_id_prefix == "FAM"
    assert settings.family_id_width == 4
    assert settings.assign_singleton_families is True
    assert settings.house_number_aliases == list(DEFAULT_HOUSE_NUMBER_ALIASES)
    assert settings.street_aliases == list(DEFAULT_STREET_ALIASES)
    assert settings.family_report_top == 20
    assert settings.resolution_lock_ttl_seconds == 3600


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("FAMILY_ID_PREFIX", "HH")
    monkeypatch.setenv("FAMILY_ID_WIDTH", "6")
    monkeypatch.setenv("ASSIGN_SINGLETON_FAMILIES", "false")
    monkeypatch.setenv("STREET_ALIASES", '["Street", "Locality"]')

    settings = Settings()

    assert settings.family_id_prefix == "HH"
    assert settings.family_id_width == 6
    assert settings.assign_singleton_families is False
    assert settings.street_aliases == ["Street", "Locality"]


def test_get_settings_is_cached():
    get_settings.cache_clear()
    assert get_settings() is get_settings()
    get_settings.cache_clear()
