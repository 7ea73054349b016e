from catalog_indexer.config import ROOT_DIR, Settings


def test_defaults(monkeypatch):
    for key in ("OS_URL", "INDEX_PREFIX", "MARC_RULES_PATH", "OS_BULK_SIZE", "INGEST_MAX_DECODE_ERRORS"):
        monkeypatch.delenv(key, raising=False)
    settings = Settings.from_env()
    assert settings.os_url == "http://localhost:9200"
    assert settings.index_prefix == "aleph"
    assert settings.rules_path == ROOT_DIR / "config" / "marc_rules.json"
    assert settings.bulk_size == 500
    assert settings.max_consecutive_decode_errors == 0


def test_env_values_and_bad_numbers(monkeypatch, tmp_path):
    monkeypatch.setenv("OS_URL", "http://search:9200")
    monkeypatch.setenv("MARC_RULES_PATH", str(tmp_path / "rules.json"))
    monkeypatch.setenv("OS_BULK_SIZE", "not-a-number")
    monkeypatch.setenv("OS_RETRY_BACKOFF_SEC", "0.5")
    settings = Settings.from_env()
    assert settings.os_url == "http://search:9200"
    assert settings.rules_path == tmp_path / "rules.json"
    assert settings.bulk_size == 500
    assert settings.retry_backoff_sec == 0.5


def test_override_ignores_missing_values(settings):
    updated = settings.override({"os_url": "http://other:9200", "bulk_size": None, "rules_path": "custom.json"})
    assert updated.os_url == "http://other:9200"
    assert updated.bulk_size == settings.bulk_size
    assert updated.rules_path == ROOT_DIR / "custom.json"
    assert settings.override({}) is settings
