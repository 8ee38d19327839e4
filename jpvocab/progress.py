"""Learner progress store with simple spaced-repetition scheduling."""

from datetime import datetime, timezone
from typing import Callable, Iterable

from pydantic import ValidationError

import config
from jpvocab.logger import get_logger
from jpvocab.models import (
    Difficulty,
    DisplayMode,
    LearnerState,
    OverallStats,
    PersistedState,
    WordProgress,
)
from jpvocab.storage import LocalStorage
from jpvocab.utils import as_utc, percentage, round_half_up

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def schedule_next_review(
    now: datetime, known: bool, difficulty: Difficulty = Difficulty.MEDIUM
) -> datetime:
    """
    Compute when a word is due again.

    Known words come back after 7/3/1 days for easy/medium/hard; words not
    known come back after one hour whatever the difficulty.
    """
    if not known:
        return now + config.UNKNOWN_REVIEW_INTERVAL
    return now + config.REVIEW_INTERVALS[Difficulty(difficulty).value]


class ProgressStore:
    """Single-learner progress, saved to local storage after every change."""

    def __init__(
        self,
        storage: LocalStorage,
        clock: Clock | None = None,
        key: str = config.STORAGE_KEY,
    ):
        """
        Initialize the store and rehydrate any persisted state.

        Args:
            storage: Local key-value storage holding the persisted state
            clock: Returns the current time; defaults to UTC now
            key: Storage key of the persisted state
        """
        self.storage = storage
        self.key = key
        self._clock = clock or utc_now
        self._state = self._load()

    def _load(self) -> LearnerState:
        logger = get_logger()
        raw = self.storage.get_item(self.key)
        if raw is None:
            return LearnerState()

        try:
            persisted = PersistedState.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"  Stored progress is unreadable, starting fresh: {e.error_count()} errors")
            return LearnerState()

        if persisted.version != config.STATE_VERSION:
            # TODO: add migrations once a version 3 state shape exists
            logger.warning(
                f"  Stored progress has version {persisted.version}, "
                f"expected {config.STATE_VERSION}; loading as-is"
            )
        return persisted.state

    def _save(self) -> None:
        persisted = PersistedState(state=self._state, version=config.STATE_VERSION)
        self.storage.set_item(self.key, persisted.model_dump_json())

    def reload(self) -> LearnerState:
        """Discard in-memory state and read it back from storage."""
        self._state = self._load()
        return self.state

    @property
    def state(self) -> LearnerState:
        """Snapshot of the learner state (changes must go through the store)."""
        return self._state.model_copy(deep=True)

    @property
    def word_progress(self) -> dict[int, WordProgress]:
        """Copy of the word id -> record map; records themselves are frozen."""
        return dict(self._state.word_progress)

    def set_current_day(self, day: int) -> None:
        self._state.current_day = day
        self._save()

    def mark_day_completed(self, day: int) -> None:
        if day not in self._state.completed_days:
            self._state.completed_days.append(day)
        self._save()

    def is_day_completed(self, day: int) -> bool:
        return day in self._state.completed_days

    def mark_word_known(
        self,
        word_id: int,
        known: bool,
        difficulty: Difficulty = Difficulty.MEDIUM,
    ) -> WordProgress:
        """
        Record one evaluation of a word.

        Creates the record on first evaluation, bumps the review count by one
        every time and reschedules the next review from now.

        Args:
            word_id: Id of the evaluated word (not checked against any vocabulary)
            known: Whether the learner knew the word
            difficulty: How hard it felt; only affects scheduling when known

        Returns:
            The updated progress record
        """
        now = as_utc(self._clock())
        difficulty = Difficulty(difficulty)
        previous = self._state.word_progress.get(word_id)

        progress = WordProgress(
            word_id=word_id,
            known=known,
            difficulty=difficulty,
            review_count=(previous.review_count if previous else 0) + 1,
            last_reviewed=now,
            next_review_date=schedule_next_review(now, known, difficulty),
        )
        self._state.word_progress[word_id] = progress
        self._save()

        get_logger().debug(
            f"  Word {word_id}: known={known} difficulty={difficulty.value} "
            f"next review {progress.next_review_date.isoformat()}"
        )
        return progress

    def get_word_progress(self, word_id: int) -> WordProgress | None:
        return self._state.word_progress.get(word_id)

    def day_progress(self, word_ids: Iterable[int]) -> int:
        """Percentage of the given words currently marked known."""
        word_ids = list(word_ids)
        known = 0
        for word_id in word_ids:
            progress = self._state.word_progress.get(word_id)
            if progress and progress.known:
                known += 1
        return percentage(known, len(word_ids))

    def words_due_for_review(self, now: datetime | None = None) -> list[int]:
        """Ids of studied words whose next review time has passed, ascending."""
        now = as_utc(now or self._clock())
        return sorted(
            p.word_id
            for p in self._state.word_progress.values()
            if p.next_review_date <= now
        )

    def overall_stats(self) -> OverallStats:
        progress_values = list(self._state.word_progress.values())
        total_words = len(progress_values)
        if total_words == 0:
            return OverallStats()

        known_words = sum(1 for p in progress_values if p.known)
        review_words = sum(1 for p in progress_values if not p.known and p.review_count > 0)
        total_reviews = sum(p.review_count for p in progress_values)

        return OverallStats(
            total_words=total_words,
            known_words=known_words,
            review_words=review_words,
            completion_rate=percentage(known_words, total_words),
            average_review_count=round_half_up(total_reviews / total_words),
        )

    def set_study_mode(self, mode: DisplayMode) -> None:
        self._state.study_mode = DisplayMode(mode)
        self._save()

    def toggle_furigana(self) -> bool:
        self._state.show_furigana = not self._state.show_furigana
        self._save()
        return self._state.show_furigana

    def reset(self) -> None:
        """Wipe all progress, completed days and display settings."""
        self._state = LearnerState()
        self._save()
        get_logger().info("  Progress reset")
