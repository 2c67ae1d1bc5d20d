import pytest

import config
from db import database
from db.schema import build_registry

TEST_CONFIG = "\n".join(
    [
        "[database]",
        "busy_timeout = 2000",
        "backup_before_migrate = true",
        "backup_keep = 2",
        "",
        "[migrations]",
        "lock_timeout_seconds = 600",
        "",
        "[translation]",
        "source_lang = \"zh\"",
        "target_lang = \"en\"",
        "max_attempts = 3",
        "retry_delay = 0",
        "",
        "[logging]",
        "level = \"DEBUG\"",
    ]
)

OVERRIDE_VARS = (
    "STUDYLOG_BUSY_TIMEOUT",
    "STUDYLOG_BACKUP_BEFORE_MIGRATE",
    "STUDYLOG_BACKUP_KEEP",
    "STUDYLOG_LOCK_TIMEOUT",
    "STUDYLOG_SOURCE_LANG",
    "STUDYLOG_TARGET_LANG",
    "STUDYLOG_TRANSLATION_ATTEMPTS",
    "STUDYLOG_TRANSLATION_RETRY_DELAY",
    "STUDYLOG_LOG_LEVEL",
)


@pytest.fixture
def studylog_env(tmp_path, monkeypatch):
    config_dir = tmp_path / ".studylog"
    config_dir.mkdir()
    config_path = config_dir / "config.toml"
    config_path.write_text(TEST_CONFIG, encoding="utf-8")

    for var in OVERRIDE_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_PATH", config_path)
    monkeypatch.setattr(database, "DB_PATH", config_dir / "studylog.db")
    monkeypatch.setattr(database, "BACKUP_DIR", config_dir / "backups")
    return config_dir


@pytest.fixture
def migrated_db(studylog_env):
    with database.get_migration_conn() as conn:
        build_registry().apply_pending(conn)
    return studylog_env
