import tomllib
import shutil
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv
import os

CONFIG_DIR = Path.home() / ".studylog"
CONFIG_PATH = CONFIG_DIR / "config.toml"
PROJECT_CONFIG_EXAMPLE = Path(__file__).parent / "config.toml"

def load_config() -> Dict[str, Any]:
    """Load config from ~/.studylog/config.toml, copy example if missing, load .env overrides."""
    load_dotenv()  # Load .env for overrides (e.g., STUDYLOG_LOG_LEVEL env var)
    if not CONFIG_PATH.exists():
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        shutil.copy(PROJECT_CONFIG_EXAMPLE, CONFIG_PATH)
    with open(CONFIG_PATH, "rb") as f:
        config = tomllib.load(f)

    database_cfg = config.get("database", {})
    config["database"] = {
        "busy_timeout": int(os.getenv("STUDYLOG_BUSY_TIMEOUT", database_cfg.get("busy_timeout", 5000))),
        "backup_before_migrate": os.getenv(
            "STUDYLOG_BACKUP_BEFORE_MIGRATE",
            str(database_cfg.get("backup_before_migrate", True))
        ).lower() == "true",
        "backup_keep": int(os.getenv("STUDYLOG_BACKUP_KEEP", database_cfg.get("backup_keep", 7))),
    }
    migrations_cfg = config.get("migrations", {})
    config["migrations"] = {
        "lock_timeout_seconds": int(os.getenv(
            "STUDYLOG_LOCK_TIMEOUT",
            migrations_cfg.get("lock_timeout_seconds", 600)
        )),
    }
    translation_cfg = config.get("translation", {})
    config["translation"] = {
        "source_lang": os.getenv("STUDYLOG_SOURCE_LANG", translation_cfg.get("source_lang", "zh")),
        "target_lang": os.getenv("STUDYLOG_TARGET_LANG", translation_cfg.get("target_lang", "en")),
        "max_attempts": int(os.getenv(
            "STUDYLOG_TRANSLATION_ATTEMPTS",
            translation_cfg.get("max_attempts", 3)
        )),
        "retry_delay": float(os.getenv(
            "STUDYLOG_TRANSLATION_RETRY_DELAY",
            translation_cfg.get("retry_delay", 1.0)
        )),
    }
    logging_cfg = config.get("logging", {})
    config["logging"] = {
        "level": os.getenv("STUDYLOG_LOG_LEVEL", logging_cfg.get("level", "INFO")).upper(),
    }
    return config

def get_config_value(section: str, key: str, default: Optional[Any] = None) -> Any:
    """Get nested config value, e.g., get_config_value('migrations', 'lock_timeout_seconds')."""
    config = load_config()
    value = config.get(section, {}).get(key, default)
    return value
