import config


def test_load_config_copies_example_when_missing(tmp_path, monkeypatch):
    config_dir = tmp_path / ".studylog"
    config_path = config_dir / "config.toml"
    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_PATH", config_path)
    monkeypatch.delenv("STUDYLOG_LOCK_TIMEOUT", raising=False)
    monkeypatch.delenv("STUDYLOG_LOG_LEVEL", raising=False)

    loaded = config.load_config()

    assert config_path.exists()
    assert loaded["migrations"]["lock_timeout_seconds"] == 600
    assert loaded["translation"]["source_lang"] == "zh"
    assert loaded["database"]["backup_before_migrate"] is True


def test_environment_overrides_file_values(studylog_env, monkeypatch):
    monkeypatch.setenv("STUDYLOG_LOCK_TIMEOUT", "30")
    monkeypatch.setenv("STUDYLOG_LOG_LEVEL", "warning")
    monkeypatch.setenv("STUDYLOG_BACKUP_BEFORE_MIGRATE", "false")

    loaded = config.load_config()

    assert loaded["migrations"]["lock_timeout_seconds"] == 30
    assert loaded["logging"]["level"] == "WARNING"
    assert loaded["database"]["backup_before_migrate"] is False
    assert config.get_config_value("database", "busy_timeout") == 2000
    assert config.get_config_value("database", "missing", "fallback") == "fallback"
