"""
Data Store — FraudGuard
Holds the loaded Home Credit sample (applications, bureau, previous
applications) plus the latest analysis summary, and snapshots it as a single
JSON blob in a key/value table.
"""

import json
from pathlib import Path
from datetime import datetime, timezone
from functools import lru_cache

from loguru import logger
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from fraudguard.config import DATABASE_URL

STORAGE_KEY = "fraud_detection_data_store"

_CREATE_TABLE = text(
    "CREATE TABLE IF NOT EXISTS kv_store ("
    "  key   VARCHAR(128) PRIMARY KEY,"
    "  value TEXT NOT NULL"
    ")"
)


def get_engine(db_url: str = DATABASE_URL) -> Engine:
    """Create a SQLAlchemy engine. In-memory SQLite shares one connection across threads."""
    if db_url in ("sqlite://", "sqlite:///:memory:"):
        engine = create_engine(
            db_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        if db_url.startswith("sqlite:///"):
            Path(db_url.removeprefix("sqlite:///")).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(db_url, pool_pre_ping=True)
    logger.info(f"DB engine created: {db_url.split('@')[-1]}")
    return engine


class DataStore:
    """
    Snapshot store for the dashboard dataset.

    Usage
    -----
    store = DataStore(engine)
    store.load()                                  # restore last snapshot
    store.set_kaggle_data(apps, bureau, prev)     # replace + persist
    store.set_analysis_results({...})             # persist summary
    store.clear_data()                            # wipe + delete key

    Storage failures are logged and swallowed: the in-memory state stays
    authoritative for the running process.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self.applications:     list[dict] = []
        self.bureau_records:   list[dict] = []
        self.previous_apps:    list[dict] = []
        self.analysis_results: dict | None = None
        self.loaded_at:        datetime | None = None
        self.data_loaded = False
        self.data_source: str | None = None

        try:
            with self._engine.begin() as conn:
                conn.execute(_CREATE_TABLE)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to prepare kv_store table: {e}")

    # ------------------------------------------------------------------ #
    # Properties                                                           #
    # ------------------------------------------------------------------ #

    @property
    def record_count(self) -> int:
        return len(self.applications)

    def find_application(self, sk_id_curr: int) -> dict | None:
        return next((a for a in self.applications if a.get("SK_ID_CURR") == sk_id_curr), None)

    def ping(self) -> bool:
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Store health check failed: {e}")
            return False

    # ------------------------------------------------------------------ #
    # Actions                                                              #
    # ------------------------------------------------------------------ #

    def load(self) -> bool:
        """
        Restore the persisted snapshot.

        Returns True if a snapshot with at least one application was restored.
        """
        try:
            with self._engine.connect() as conn:
                stored = conn.execute(
                    text("SELECT value FROM kv_store WHERE key = :key"), {"key": STORAGE_KEY}
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.warning(f"Failed to load from store: {e}")
            return False

        if not stored:
            return False

        try:
            parsed = json.loads(stored)
        except json.JSONDecodeError as e:
            logger.warning(f"Stored snapshot is not valid JSON: {e}")
            return False
        if not isinstance(parsed, dict):
            logger.warning(f"Stored snapshot is not an object: {type(parsed).__name__}")
            return False

        applications = parsed.get("applications") or []
        if not isinstance(applications, list) or not applications:
            return False

        loaded_at = parsed.get("loadedAt")
        try:
            loaded_at = datetime.fromisoformat(loaded_at) if loaded_at else None
        except (TypeError, ValueError) as e:
            logger.warning(f"Stored snapshot has an invalid loadedAt: {e}")
            return False

        self.applications     = applications
        self.bureau_records   = parsed.get("bureauRecords") or []
        self.previous_apps    = parsed.get("previousApps") or []
        self.analysis_results = parsed.get("analysisResults")
        self.loaded_at   = loaded_at
        self.data_loaded = True
        self.data_source = "kaggle"
        logger.info(f"Snapshot restored — {self.record_count} applications")
        return True

    def set_kaggle_data(
        self,
        applications: list[dict],
        bureau:       list[dict],
        previous:     list[dict],
    ) -> None:
        self.applications   = applications
        self.bureau_records = bureau
        self.previous_apps  = previous
        self.data_loaded = True
        self.data_source = "kaggle"
        self.loaded_at   = datetime.now(timezone.utc)
        self._save()

    def set_analysis_results(self, results: dict) -> None:
        self.analysis_results = results
        self._save()

    def clear_data(self) -> None:
        self.applications     = []
        self.bureau_records   = []
        self.previous_apps    = []
        self.analysis_results = None
        self.data_loaded = False
        self.data_source = None
        self.loaded_at   = None
        try:
            with self._engine.begin() as conn:
                conn.execute(text("DELETE FROM kv_store WHERE key = :key"), {"key": STORAGE_KEY})
        except SQLAlchemyError as e:
            logger.warning(f"Failed to clear store: {e}")

    def snapshot(self) -> dict:
        """JSON-ready view of the stored state."""
        return {
            "applications":    self.applications,
            "bureauRecords":   self.bureau_records,
            "previousApps":    self.previous_apps,
            "analysisResults": self.analysis_results,
            "loadedAt":        self.loaded_at.isoformat() if self.loaded_at else None,
        }

    # ------------------------------------------------------------------ #
    # Persistence                                                          #
    # ------------------------------------------------------------------ #

    def _save(self) -> None:
        payload = json.dumps(self.snapshot())
        try:
            with self._engine.begin() as conn:
                conn.execute(text("DELETE FROM kv_store WHERE key = :key"), {"key": STORAGE_KEY})
                conn.execute(
                    text("INSERT INTO kv_store (key, value) VALUES (:key, :value)"),
                    {"key": STORAGE_KEY, "value": payload},
                )
        except SQLAlchemyError as e:
            logger.warning(f"Failed to save to store: {e}")


@lru_cache(maxsize=1)
def get_store() -> DataStore:
    """Process-wide store bound to FRAUDGUARD_DATABASE_URL, restored on first use."""
    store = DataStore(get_engine())
    store.load()
    return store
