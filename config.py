"""Configuration settings for the Japanese vocabulary trainer."""

import logging
from datetime import timedelta
from pathlib import Path

# Base paths
PROJECT_ROOT = Path(__file__).parent
DATA_DIR = PROJECT_ROOT / "data"
LOGS_DIR = PROJECT_ROOT / "logs"

# Logging
LOGGER_NAME = "jpvocab"
LOG_LEVEL = logging.INFO
LOG_FILE_PREFIX = "session"
LOG_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Input/Output files
VOCABULARY_FILE = DATA_DIR / "data.xlsx"
VOCABULARY_JSON = DATA_DIR / "vocabulary.json"  # Last accepted upload
SAMPLE_WORKBOOK = DATA_DIR / "sample_vocabulary.xlsx"
EXPORT_JSON = DATA_DIR / "vocabulary_data.json"

# Local storage (single learner, single device)
STORAGE_FILE = DATA_DIR / "local_storage.json"
STORAGE_KEY = "japanese-vocabulary-progress"
STATE_VERSION = 2

# Upload settings
SPREADSHEET_EXTENSIONS = (".xlsx", ".xls")

# Ingestion settings
DEFAULT_DAY_TITLE = "Day {day}"

# Header aliases used when auto-detecting columns from a header row
COLUMN_ALIASES = {
    "reading": {"reading", "hiragana", "kana", "furigana", "yomi", "ひらがな", "読み"},
    "kanji": {"kanji", "word", "term", "漢字", "単語"},
    "meaning": {"meaning", "definition", "translation", "nghĩa", "意味"},
    "example": {"example", "sentence", "example sentence", "例文"},
}

# Spaced repetition intervals
REVIEW_INTERVALS = {
    "easy": timedelta(days=7),
    "medium": timedelta(days=3),
    "hard": timedelta(days=1),
}
UNKNOWN_REVIEW_INTERVAL = timedelta(hours=1)

# Quiz settings
DEFAULT_QUESTION_COUNT = 10
QUIZ_OPTION_COUNT = 4
EXCELLENT_SCORE = 80
GOOD_SCORE = 60
