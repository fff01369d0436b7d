"""Vocabulary screen: daily-limited batch generation and the saved-word list."""
import os
import time
from typing import Callable, List, Optional

from log import get_logger

logger = get_logger("taihua.vocab")

from models import CATEGORIES, DIFFICULTY_DESCRIPTIONS, MAX_REFRESH_PER_DAY, VocabWord
from llm import BusyFlag
from quota import QuotaExceeded, local_today, can_generate, record_generation, effective_count
from store import StateStore
from tutor import generate_vocabulary


def _daily_limit() -> int:
    raw = os.environ.get("TAIHUA_DAILY_LIMIT")
    if raw is None:
        return MAX_REFRESH_PER_DAY
    try:
        limit = int(raw)
    except ValueError:
        limit = -1
    if limit < 0:
        logger.warning("TAIHUA_DAILY_LIMIT is not a non-negative integer, using the default",
                       extra={"component": "config", "detail": raw, "count": MAX_REFRESH_PER_DAY})
        return MAX_REFRESH_PER_DAY
    return limit


DAILY_LIMIT = _daily_limit()


class VocabularyService:
    def __init__(self, client, store: StateStore, today: Callable[[], str] = local_today,
                 limit: int = DAILY_LIMIT):
        self.client = client
        self.store = store
        self.today = today
        self.limit = limit
        self.batch: List[VocabWord] = []
        self._saved: Optional[List[VocabWord]] = None
        self.busy = BusyFlag()

    @property
    def saved(self) -> List[VocabWord]:
        if self._saved is None:
            self._saved = self.store.load_saved_words()
        return self._saved

    @saved.setter
    def saved(self, words: List[VocabWord]):
        self._saved = words

    def status(self) -> dict:
        today = self.today()
        used = effective_count(self.store.load_counter(), today)
        return {"date": today, "count": used, "limit": self.limit, "remaining": max(self.limit - used, 0)}

    async def generate(self, category: str, difficulty: str) -> List[VocabWord]:
        if category not in CATEGORIES:
            raise ValueError(f"Unsupported category: {category}")
        if difficulty not in DIFFICULTY_DESCRIPTIONS:
            raise ValueError(f"Unsupported difficulty: {difficulty}")

        with self.busy:
            # The day the request was admitted on is the day it is counted on
            today = self.today()
            counter = self.store.load_counter()
            if not can_generate(counter, self.limit, today):
                logger.info("Daily generation limit reached", extra={"component": "vocab", "count": counter.count})
                raise QuotaExceeded(self.limit)

            exclude = [w.chinese for w in self.batch] + [w.chinese for w in self.saved]
            self.batch = []
            words = await generate_vocabulary(self.client, category, difficulty, exclude)

            self.batch = words
            self.store.save_counter(record_generation(counter, today))
            logger.info("Vocabulary batch generated", extra={
                "component": "vocab", "category": category, "difficulty": difficulty, "count": len(words),
            })
            return words

    def _matches(self, saved: VocabWord, word: VocabWord) -> bool:
        return saved.id == word.id or saved.chinese == word.chinese

    def is_saved(self, word: VocabWord) -> bool:
        """Saved under the same id, or as the same Chinese word from an earlier batch."""
        return any(self._matches(w, word) for w in self.saved)

    def batch_view(self) -> List[dict]:
        return [dict(w.model_dump(), saved=self.is_saved(w)) for w in self.batch]

    def toggle_save(self, word: VocabWord) -> bool:
        """Unsave `word` if saved, otherwise append it with savedAt. Returns the new saved state."""
        if self.is_saved(word):
            self.saved = [w for w in self.saved if not self._matches(w, word)]
            now_saved = False
        else:
            self.saved = self.saved + [word.model_copy(update={"savedAt": time.time() * 1000})]
            now_saved = True
        self.store.save_saved_words(self.saved)
        return now_saved

    def remove(self, word_id: str) -> bool:
        before = len(self.saved)
        self.saved = [w for w in self.saved if w.id != word_id]
        if len(self.saved) == before:
            return False
        self.store.save_saved_words(self.saved)
        return True
