import json
import logging
import os
import sqlite3
import zipfile
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from config import CONFIG_DIR, load_config
from .schema import SCHEMA_VERSION, build_registry

logger = logging.getLogger(__name__)

DB_PATH = Path(os.getenv("STUDYLOG_DB_PATH", str(CONFIG_DIR / "studylog.db")))
BACKUP_DIR = CONFIG_DIR / "backups"

def init_db() -> list:
    """Create the database if needed and apply every pending migration."""
    config = load_config()
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    registry = build_registry(lock_timeout=config["migrations"]["lock_timeout_seconds"])
    with get_migration_conn() as conn:
        pending = registry.pending(conn)
        if pending and config["database"]["backup_before_migrate"]:
            run_pre_migration_backup(registry.current_version(conn), config["database"]["backup_keep"])
        return registry.apply_pending(conn)

def get_schema_version(conn: sqlite3.Connection) -> Optional[str]:
    """Read the highest applied migration version."""
    return build_registry().current_version(conn)

def get_schema_version_from_db() -> Optional[str]:
    """Get the schema version from the on-disk database."""
    if not DB_PATH.exists():
        return None
    with get_conn() as conn:
        return get_schema_version(conn)

def build_backup_manifest(schema_version: Optional[str]) -> dict:
    """Build a manifest for backups with timestamp and schema version."""
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "schema_version": schema_version,
        "target_schema_version": SCHEMA_VERSION,
    }

def create_backup_archive_file(destination: Path, schema_version: Optional[str]) -> None:
    """Create a backup zip archive at the given destination."""
    if not DB_PATH.exists():
        raise FileNotFoundError("studylog.db not found")
    manifest = build_backup_manifest(schema_version)
    destination.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(destination, "w", compression=zipfile.ZIP_DEFLATED) as zipf:
        zipf.writestr("manifest.json", json.dumps(manifest, indent=2))
        zipf.write(DB_PATH, arcname="studylog.db")

def run_pre_migration_backup(schema_version: Optional[str], keep: int) -> Optional[Path]:
    """Snapshot the database before migrating it and prune old archives."""
    if not DB_PATH.exists() or schema_version is None:
        return None
    BACKUP_DIR.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    backup_path = BACKUP_DIR / f"backup-{schema_version}-{timestamp}.zip"
    create_backup_archive_file(backup_path, schema_version)
    logger.info("Wrote pre-migration backup %s", backup_path)
    existing = sorted(BACKUP_DIR.glob("*.zip"), key=lambda path: path.stat().st_mtime, reverse=True)
    for old_backup in existing[keep:]:
        old_backup.unlink(missing_ok=True)
    return backup_path

def _connect(isolation_level="") -> sqlite3.Connection:
    busy_timeout = load_config()["database"]["busy_timeout"]
    conn = sqlite3.connect(
        DB_PATH,
        detect_types=sqlite3.PARSE_DECLTYPES,
        check_same_thread=False,
        isolation_level=isolation_level,
        timeout=busy_timeout / 1000,
    )
    conn.row_factory = sqlite3.Row
    return conn

@contextmanager
def get_conn():
    """Context manager for SQLite connection with foreign keys enforced and dict-like rows."""
    conn = _connect()
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()

@contextmanager
def get_migration_conn():
    """Autocommit connection for the schema registry; it manages its own transactions."""
    conn = _connect(isolation_level=None)
    conn.execute("PRAGMA foreign_keys = OFF")
    try:
        yield conn
    finally:
        conn.close()

def get_db():
    """FastAPI dependency that yields a DB connection and closes it afterwards."""
    with get_conn() as conn:
        yield conn
