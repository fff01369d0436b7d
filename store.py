"""Persisted key-value state for the vocabulary screen (SQLite).

Three independent keys, each a full overwrite on save:
    vocab_db                  JSON array of saved VocabWord objects
    vocab_last_refresh_date   ISO date of the last counted generation
    vocab_refresh_count       generations on that date, as an integer string
Readers tolerate absent or malformed values and fall back to defaults.
"""
import os
import json
import sqlite3
import time
from typing import Optional, List
from pathlib import Path

from log import get_logger

logger = get_logger("taihua.store")

from pydantic import ValidationError

from models import VocabWord
from quota import QuotaCounter

DB_PATH = Path(os.environ.get("TAIHUA_DB_PATH", Path(__file__).parent / "taihua.db"))

SAVED_WORDS_KEY = "vocab_db"
LAST_RESET_KEY = "vocab_last_refresh_date"
COUNT_KEY = "vocab_refresh_count"


class StateStore:
    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path) if db_path else DB_PATH
        self._ready = False

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        if not self._ready:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS app_state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                );
            """)
            self._ready = True
        return conn

    def get(self, key: str) -> Optional[str]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT value FROM app_state WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        return row["value"] if row else None

    def put(self, key: str, value: str) -> None:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT INTO app_state (key, value, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
                (key, value, time.time()),
            )
            conn.commit()
        finally:
            conn.close()

    # --- Saved vocabulary ---

    def load_saved_words(self) -> List[VocabWord]:
        raw = self.get(SAVED_WORDS_KEY)
        if raw is None:
            return []
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Saved word list is not valid JSON, starting empty", extra={"component": "store"})
            return []
        if not isinstance(parsed, list):
            logger.warning("Saved word list is not an array, starting empty", extra={"component": "store"})
            return []
        words = []
        for item in parsed:
            try:
                words.append(VocabWord.model_validate(item))
            except ValidationError:
                logger.warning("Dropping malformed saved word", extra={"component": "store", "detail": str(item)[:200]})
        return words

    def save_saved_words(self, words: List[VocabWord]) -> None:
        data = [w.model_dump(exclude_none=True) for w in words]
        self.put(SAVED_WORDS_KEY, json.dumps(data, ensure_ascii=False))

    # --- Quota counter ---

    def load_counter(self) -> QuotaCounter:
        stored_date = self.get(LAST_RESET_KEY) or ""
        raw_count = self.get(COUNT_KEY)
        try:
            count = int(raw_count) if raw_count is not None else 0
        except ValueError:
            logger.warning("Refresh count is not an integer, using 0", extra={"component": "store", "detail": raw_count})
            count = 0
        return QuotaCounter(date=stored_date, count=max(count, 0))

    def save_counter(self, counter: QuotaCounter) -> None:
        self.put(LAST_RESET_KEY, counter.date)
        self.put(COUNT_KEY, str(counter.count))
