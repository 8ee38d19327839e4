"""Vocabulary repository - query surface over the loaded vocabulary set."""

import random
from pathlib import Path
from typing import Iterable, Mapping

from jpvocab.excel_reader import (
    WorkbookSource,
    analyze_duplicates,
    check_upload_filename,
    export_to_json,
    read_vocabulary_file,
    remove_duplicate_words,
    validate_data,
)
from jpvocab.logger import get_logger
from jpvocab.models import (
    Day,
    IngestionOptions,
    LearningFilter,
    ValidationReport,
    VocabularySet,
    Word,
    WordProgress,
)


class InvalidUpload(Exception):
    """Raised when an uploaded workbook parses but holds no usable vocabulary."""

    pass


class VocabularyRepository:
    """Read-only queries over a vocabulary set, replaced wholesale on upload."""

    def __init__(
        self,
        vocabulary: VocabularySet | None = None,
        rng: random.Random | None = None,
    ):
        """
        Initialize the repository.

        Args:
            vocabulary: Initial vocabulary set (empty if None)
            rng: Random source used for quiz sampling
        """
        self._data: VocabularySet = dict(vocabulary or {})
        self._rng = rng or random.Random()

    @property
    def data(self) -> VocabularySet:
        return dict(self._data)

    def replace(self, vocabulary: VocabularySet) -> None:
        self._data = dict(vocabulary)

    def get_day(self, day: int) -> Day | None:
        return self._data.get(day)

    def list_day_numbers(self) -> list[int]:
        return sorted(self._data)

    def total_days(self) -> int:
        return len(self._data)

    def all_words(self) -> list[Word]:
        return self.words_for_days(self.list_day_numbers())

    def words_by_ids(self, word_ids: Iterable[int]) -> list[Word]:
        wanted = set(word_ids)
        return [word for word in self.all_words() if word.id in wanted]

    def words_for_days(self, days: Iterable[int]) -> list[Word]:
        """Words of the given days, concatenated in ascending day order."""
        words = []
        for day_number in sorted(set(days)):
            day = self._data.get(day_number)
            if day:
                words.extend(day.words)
        return words

    def search(self, query: str) -> list[Word]:
        """
        Case-insensitive substring search over every text field.

        An empty or blank query returns no words.
        """
        if not query.strip():
            return []

        term = query.lower()
        return [
            word
            for word in self.all_words()
            if term in word.reading.lower()
            or term in word.kanji.lower()
            or term in word.meaning.lower()
            or term in word.example.lower()
        ]

    def sample_for_quiz(self, exclude_day: int | None = None, count: int = 10) -> list[Word]:
        """Random words from every day except exclude_day, at most count."""
        pool = [
            word
            for day_number in self.list_day_numbers()
            if day_number != exclude_day
            for word in self._data[day_number].words
        ]
        self._rng.shuffle(pool)
        return pool[:count]

    def filter_by_learning_state(
        self,
        days: Iterable[int],
        state: LearningFilter,
        progress: Mapping[int, WordProgress],
    ) -> list[Word]:
        """
        Words of the given days narrowed by learning state.

        learned: marked known; unlearned: never studied or not known;
        review: studied and currently not known.
        """
        words = self.words_for_days(days)
        state = LearningFilter(state)

        if state == LearningFilter.LEARNED:
            return [w for w in words if w.id in progress and progress[w.id].known]
        if state == LearningFilter.UNLEARNED:
            return [w for w in words if w.id not in progress or not progress[w.id].known]
        if state == LearningFilter.REVIEW:
            return [w for w in words if w.id in progress and not progress[w.id].known]
        return words

    def export_to_json(self) -> str:
        return export_to_json(self._data)

    def _read_clean(
        self, source: WorkbookSource, options: IngestionOptions | None
    ) -> tuple[VocabularySet, ValidationReport]:
        logger = get_logger()
        options = options or IngestionOptions()

        # Read raw first so the duplicate report sees every row
        raw_options = options.model_copy(update={"remove_duplicates": False})
        raw = read_vocabulary_file(source, raw_options)

        analysis = analyze_duplicates(raw)
        if options.remove_duplicates:
            cleaned = remove_duplicate_words(raw)
            logger.info(f"  Removed {analysis.duplicates} duplicate words")
        else:
            cleaned = raw

        report = validate_data(cleaned)
        stats = report.stats
        logger.info(
            f"  Vocabulary: {stats.total_days} days, {stats.total_words} words, "
            f"{stats.average_words_per_day} words/day"
        )
        return cleaned, report

    def load(
        self, source: WorkbookSource, options: IngestionOptions | None = None
    ) -> ValidationReport:
        """
        Load a workbook, warning about (but accepting) content problems.

        Raises:
            ParseError: If the workbook cannot be read; current data is kept
        """
        vocabulary, report = self._read_clean(source, options)
        if not report.is_valid:
            get_logger().warning(f"  Data validation warnings: {report.errors}")
        self.replace(vocabulary)
        return report

    def upload(self, path: Path, options: IngestionOptions | None = None) -> ValidationReport:
        """
        Replace the vocabulary with an uploaded workbook.

        Raises:
            UploadRejected: If the file is not a spreadsheet
            ParseError: If the workbook cannot be read
            InvalidUpload: If the parsed data is empty or fails validation
        """
        path = Path(path)
        check_upload_filename(path.name)

        vocabulary, report = self._read_clean(path, options)
        if not report.is_valid:
            raise InvalidUpload(f"Invalid data: {', '.join(report.errors)}")
        if not vocabulary:
            raise InvalidUpload(f"No vocabulary found in {path.name}")

        self.replace(vocabulary)
        get_logger().info(f"  Uploaded {path.name}")
        return report
