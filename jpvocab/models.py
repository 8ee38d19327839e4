"""Pydantic data models for the Japanese vocabulary trainer."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

import config
from jpvocab.utils import as_utc


class Word(BaseModel):
    """A single vocabulary entry read from one workbook row."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(gt=0)
    reading: str = ""  # Phonetic form (hiragana/katakana)
    kanji: str = ""  # Logographic form, empty when the word has none
    meaning: str
    example: str = ""


class Day(BaseModel):
    """One study unit, sourced from one sheet of the workbook."""

    day: int = Field(ge=1)
    title: str
    words: list[Word] = Field(default_factory=list)


# Day number -> Day. Numbers may skip sheets that produced no words.
VocabularySet = dict[int, Day]
VOCABULARY_ADAPTER = TypeAdapter(VocabularySet)


class ColumnMapping(BaseModel):
    """Zero-based column index of each word field (None: column absent)."""

    model_config = ConfigDict(extra="forbid")

    reading: Optional[int] = Field(default=0, ge=0)
    kanji: Optional[int] = Field(default=1, ge=0)
    meaning: int = Field(default=2, ge=0)
    example: Optional[int] = Field(default=3, ge=0)


class IngestionOptions(BaseModel):
    """Options controlling how a workbook becomes a vocabulary set."""

    model_config = ConfigDict(extra="forbid")

    remove_duplicates: bool = True
    skip_empty_rows: bool = True
    auto_detect_columns: bool = True
    has_header_row: bool = False
    column_mapping: Optional[ColumnMapping] = None

    @model_validator(mode="after")
    def _require_mapping_without_detection(self) -> "IngestionOptions":
        if not self.auto_detect_columns and self.column_mapping is None:
            raise ValueError("column_mapping is required when auto_detect_columns is disabled")
        return self


class DuplicateDetail(BaseModel):
    """A dedup key seen more than once, with every day it appeared on."""

    key: str
    days: list[int]


class DuplicateAnalysis(BaseModel):
    """Read-only duplicate report for a vocabulary set."""

    total_words: int = 0
    unique_words: int = 0
    duplicates: int = 0
    duplicates_by_day: dict[int, int] = Field(default_factory=dict)
    duplicate_details: list[DuplicateDetail] = Field(default_factory=list)


class VocabularyStats(BaseModel):
    total_days: int = 0
    total_words: int = 0
    average_words_per_day: int = 0


class ValidationReport(BaseModel):
    """Non-fatal content problems found in a vocabulary set."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    stats: VocabularyStats


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class DisplayMode(str, Enum):
    READING = "hiragana"
    KANJI = "kanji"
    MIXED = "mixed"


class WordProgress(BaseModel):
    """Review state of one word. Absence of a record means never studied."""

    model_config = ConfigDict(frozen=True)

    word_id: int
    known: bool
    review_count: int = Field(default=0, ge=0)
    last_reviewed: datetime
    difficulty: Difficulty = Difficulty.MEDIUM
    next_review_date: datetime

    @field_validator("last_reviewed", "next_review_date")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Timestamps without an offset are taken as UTC
        return as_utc(value)


class LearnerState(BaseModel):
    """Everything persisted for the single learner on this device."""

    current_day: int = 1
    completed_days: list[int] = Field(default_factory=list)
    word_progress: dict[int, WordProgress] = Field(default_factory=dict)
    study_mode: DisplayMode = DisplayMode.MIXED
    show_furigana: bool = True


class PersistedState(BaseModel):
    """Envelope written to local storage."""

    state: LearnerState = Field(default_factory=LearnerState)
    version: int = config.STATE_VERSION


class OverallStats(BaseModel):
    total_words: int = 0
    known_words: int = 0
    review_words: int = 0
    completion_rate: int = 0
    average_review_count: int = 0


class QuestionType(str, Enum):
    READING_TO_MEANING = "hiragana-to-meaning"
    KANJI_TO_READING = "kanji-to-hiragana"
    MEANING_TO_READING = "meaning-to-hiragana"
    KANJI_TO_MEANING = "kanji-to-meaning"


class LearningFilter(str, Enum):
    ALL = "all"
    LEARNED = "learned"
    UNLEARNED = "unlearned"
    REVIEW = "review"


class QuizConfig(BaseModel):
    """Options for building one quiz."""

    model_config = ConfigDict(extra="forbid")

    selected_days: list[int] = Field(default_factory=list)
    question_count: int = Field(default=config.DEFAULT_QUESTION_COUNT, gt=0)
    question_types: list[QuestionType] = Field(
        default_factory=lambda: list(QuestionType), min_length=1
    )
    learning_filter: LearningFilter = LearningFilter.ALL


class QuizQuestion(BaseModel):
    word: Word
    type: QuestionType
    question: str
    correct_answer: str
    options: list[str]


class QuizResult(BaseModel):
    question_index: int
    correct: bool
    selected_answer: str
    correct_answer: str
    word: Word


class QuizScore(BaseModel):
    correct: int = 0
    total: int = 0
    percentage: int = 0
