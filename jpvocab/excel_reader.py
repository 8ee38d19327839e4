"""Workbook ingestion - turn an uploaded spreadsheet into a vocabulary set.

One sheet per study day, one row per word:
    [reading, kanji, meaning, example, ...extra columns ignored]

Besides the streaming parse, this module holds the post-hoc helpers that
operate on an already parsed vocabulary set (dedup, duplicate analysis,
validation, JSON export) and the sample workbook generator.
"""

import io
import json
from pathlib import Path
from typing import BinaryIO, Mapping, Sequence

import pandas as pd
from tqdm import tqdm

import config
from jpvocab.logger import get_logger
from jpvocab.models import (
    ColumnMapping,
    Day,
    DuplicateAnalysis,
    DuplicateDetail,
    IngestionOptions,
    ValidationReport,
    VocabularySet,
    VocabularyStats,
    VOCABULARY_ADAPTER,
    Word,
)
from jpvocab.utils import round_half_up

WorkbookSource = str | Path | bytes | BinaryIO
Sheets = Mapping[str, Sequence[Sequence[object]]]

WORD_FIELDS = ("reading", "kanji", "meaning", "example")

# Hard-coded demonstration rows for the sample workbook
SAMPLE_SHEETS = {
    "Day1": [
        ["こんにちは", "今日は", "hello", "こんにちは、田中さん。"],
        ["ありがとう", "", "thank you", "手伝ってくれてありがとう。"],
        ["がくせい", "学生", "student", "私は学生です。"],
        ["ほん", "本", "book", "この本はおもしろい。"],
    ],
    "Day2": [
        ["せんせい", "先生", "teacher", "先生は日本人です。"],
        ["みず", "水", "water", "水をください。"],
        ["たべる", "食べる", "to eat", "朝ごはんを食べる。"],
        ["のむ", "飲む", "to drink", "お茶を飲む。"],
    ],
}


class WorkbookError(Exception):
    """Raised when a workbook cannot be turned into vocabulary."""

    pass


class ParseError(WorkbookError):
    """Raised when workbook bytes are unreadable or not a spreadsheet."""

    pass


class UploadRejected(WorkbookError):
    """Raised when an uploaded file does not carry a spreadsheet extension."""

    pass


def coerce_cell(value: object) -> str:
    """Coerce a raw cell value to trimmed text ("" for missing cells)."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if pd.isna(value):
        return ""
    return str(value).strip()


def is_empty_row(row: Sequence[object]) -> bool:
    return all(coerce_cell(cell) == "" for cell in row)


def check_upload_filename(filename: str) -> None:
    """
    Reject files that are not spreadsheets, before reading any bytes.

    Raises:
        UploadRejected: If the extension is not a recognized spreadsheet extension
    """
    if Path(filename).suffix.lower() not in config.SPREADSHEET_EXTENSIONS:
        allowed = ", ".join(config.SPREADSHEET_EXTENSIONS)
        raise UploadRejected(f"Please choose an Excel file ({allowed}): {filename}")


def read_workbook(source: WorkbookSource) -> dict[str, list[tuple]]:
    """
    Read every sheet of a workbook as raw rows, keeping sheet order.

    Args:
        source: Path, raw bytes or binary file object of an .xlsx/.xls file

    Returns:
        Mapping of sheet name to list of row tuples (uncoerced cell values)

    Raises:
        ParseError: If the workbook cannot be read
    """
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)

    try:
        frames = pd.read_excel(source, sheet_name=None, header=None, dtype=object)
    except Exception as e:
        raise ParseError(f"Failed to read workbook: {e}") from e

    return {
        str(name): list(frame.itertuples(index=False, name=None))
        for name, frame in frames.items()
    }


def resolve_column_mapping(
    options: IngestionOptions, header_row: Sequence[object] | None = None
) -> ColumnMapping:
    """
    Decide which column holds which word field.

    With auto-detection on, header labels are matched against
    config.COLUMN_ALIASES. Detection needs a header row and a meaning
    column; otherwise the default mapping {0, 1, 2, 3} is used.
    """
    if not options.auto_detect_columns:
        return options.column_mapping

    if header_row is None:
        return ColumnMapping()

    detected: dict[str, int] = {}
    for index, cell in enumerate(header_row):
        label = coerce_cell(cell).lower()
        for field, aliases in config.COLUMN_ALIASES.items():
            if field not in detected and label in aliases:
                detected[field] = index
                break

    if "meaning" not in detected or not ({"reading", "kanji"} & detected.keys()):
        get_logger().debug(f"  Column detection inconclusive ({detected}), using defaults")
        return ColumnMapping()

    # Undetected fields keep their default index unless a detected field took it
    defaults = ColumnMapping()
    taken = set(detected.values())
    for field in WORD_FIELDS:
        if field not in detected:
            default_index = getattr(defaults, field)
            detected[field] = None if default_index in taken else default_index

    return ColumnMapping(**detected)


def extract_fields(row: Sequence[object], mapping: ColumnMapping) -> dict[str, str]:
    """Pull the four word fields out of a row; missing cells become ""."""
    fields = {}
    for field in WORD_FIELDS:
        index = getattr(mapping, field)
        if index is None or index >= len(row):
            fields[field] = ""
        else:
            fields[field] = coerce_cell(row[index])
    return fields


def make_dedup_key(reading: str, kanji: str, meaning: str) -> str:
    return f"{reading}|{kanji}|{meaning}".lower()


def dedup_key(word: Word) -> str:
    """Case-insensitive identity of a word across the whole workbook."""
    return make_dedup_key(word.reading, word.kanji, word.meaning)


def generate_day_title(sheet_name: str, day_number: int) -> str:
    """Use the sheet name unless it is a generic "SheetN" style name."""
    if sheet_name and sheet_name.strip() and "sheet" not in sheet_name.lower():
        return sheet_name
    return config.DEFAULT_DAY_TITLE.format(day=day_number)


def parse_workbook(
    sheets: Sheets,
    options: IngestionOptions | None = None,
    progress: bool = False,
) -> VocabularySet:
    """
    Convert raw sheets into a vocabulary set.

    Rows without a reading or kanji, or without a meaning, are dropped
    silently. Word ids run from 1 across the whole workbook in sheet and
    row order. Sheets yielding no words leave their day number absent.

    Args:
        sheets: Sheet name -> rows, in workbook order
        options: Ingestion options (defaults used if None)
        progress: Show a progress bar over sheets

    Returns:
        Vocabulary set keyed by day number
    """
    options = options or IngestionOptions()
    logger = get_logger()

    result: VocabularySet = {}
    seen_keys: set[str] = set()
    next_id = 1
    skipped_duplicates = 0

    sheet_items = list(sheets.items())
    for index, (sheet_name, rows) in enumerate(
        tqdm(sheet_items, desc="  Parsing", disable=not progress)
    ):
        day_number = index + 1
        rows = list(rows)

        header_row = None
        if options.has_header_row and rows:
            header_row, rows = rows[0], rows[1:]
        mapping = resolve_column_mapping(options, header_row)

        words = []
        for row in rows:
            if options.skip_empty_rows and is_empty_row(row):
                continue

            fields = extract_fields(row, mapping)
            if not (fields["reading"] or fields["kanji"]) or not fields["meaning"]:
                continue

            if options.remove_duplicates:
                key = make_dedup_key(fields["reading"], fields["kanji"], fields["meaning"])
                if key in seen_keys:
                    skipped_duplicates += 1
                    continue
                seen_keys.add(key)

            words.append(Word(id=next_id, **fields))
            next_id += 1

        if words:
            result[day_number] = Day(
                day=day_number,
                title=generate_day_title(sheet_name, day_number),
                words=words,
            )
        else:
            logger.debug(f"  Sheet '{sheet_name}' produced no words, day {day_number} omitted")

    logger.info(f"  Parsed {len(result)} days, {next_id - 1} words")
    if skipped_duplicates:
        logger.info(f"  Skipped {skipped_duplicates} duplicate words")

    return result


def read_vocabulary_file(
    source: WorkbookSource,
    options: IngestionOptions | None = None,
    progress: bool = False,
) -> VocabularySet:
    """Read a workbook and parse it into a vocabulary set."""
    return parse_workbook(read_workbook(source), options, progress=progress)


def remove_duplicate_words(vocabulary: VocabularySet) -> VocabularySet:
    """
    Drop repeated words across the whole set, first occurrence wins.

    Surviving words are renumbered 1..n in day-then-row order and days left
    empty are dropped. The input is not modified.
    """
    seen_keys: set[str] = set()
    result: VocabularySet = {}
    next_id = 1

    for day_number in sorted(vocabulary):
        day = vocabulary[day_number]
        words = []
        for word in day.words:
            key = dedup_key(word)
            if key in seen_keys:
                continue
            seen_keys.add(key)
            words.append(word.model_copy(update={"id": next_id}))
            next_id += 1

        if words:
            result[day_number] = day.model_copy(update={"words": words})

    return result


def analyze_duplicates(vocabulary: VocabularySet) -> DuplicateAnalysis:
    """Count repeated words per day and list every key seen more than once."""
    occurrences: dict[str, list[int]] = {}
    duplicates_by_day: dict[int, int] = {}
    total_words = 0

    for day_number in sorted(vocabulary):
        repeated = 0
        for word in vocabulary[day_number].words:
            total_words += 1
            key = dedup_key(word)
            if key in occurrences:
                repeated += 1
            occurrences.setdefault(key, []).append(day_number)
        duplicates_by_day[day_number] = repeated

    unique_words = len(occurrences)
    return DuplicateAnalysis(
        total_words=total_words,
        unique_words=unique_words,
        duplicates=total_words - unique_words,
        duplicates_by_day=duplicates_by_day,
        duplicate_details=[
            DuplicateDetail(key=key, days=days)
            for key, days in occurrences.items()
            if len(days) > 1
        ],
    )


def validate_data(vocabulary: VocabularySet) -> ValidationReport:
    """
    Validate a vocabulary set.

    Args:
        vocabulary: The vocabulary set to validate

    Returns:
        Report with human-readable errors (empty if valid) and size stats
    """
    errors = []
    total_words = 0

    for day_number in sorted(vocabulary):
        day = vocabulary[day_number]

        if not day.words:
            errors.append(f"Day {day_number}: no words")

        for i, word in enumerate(day.words):
            if not word.reading.strip() and not word.kanji.strip():
                errors.append(f"Day {day_number}, word {i + 1}: missing reading or kanji")
            if not word.meaning.strip():
                errors.append(f"Day {day_number}, word {i + 1}: missing meaning")

        total_words += len(day.words)

    total_days = len(vocabulary)
    return ValidationReport(
        is_valid=not errors,
        errors=errors,
        stats=VocabularyStats(
            total_days=total_days,
            total_words=total_words,
            average_words_per_day=round_half_up(total_words / total_days) if total_days else 0,
        ),
    )


def export_to_json(vocabulary: VocabularySet) -> str:
    """Pretty-printed JSON of a vocabulary set, for download."""
    data = VOCABULARY_ADAPTER.dump_python(vocabulary, mode="json")
    return json.dumps(data, ensure_ascii=False, indent=2)


def load_from_json(text: str | bytes) -> VocabularySet:
    """Read back a vocabulary set written by export_to_json."""
    return VOCABULARY_ADAPTER.validate_json(text)


def create_sample_workbook(path: Path | None = None) -> bytes:
    """
    Build a minimal two-sheet workbook of demonstration rows.

    Args:
        path: Optional file to write the workbook to

    Returns:
        The .xlsx file content
    """
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        for sheet_name, rows in SAMPLE_SHEETS.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, index=False, header=False)

    content = output.getvalue()
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    return content
