import json

import pytest
from pydantic import ValidationError

from jpvocab.excel_reader import (
    ParseError,
    UploadRejected,
    analyze_duplicates,
    check_upload_filename,
    coerce_cell,
    create_sample_workbook,
    dedup_key,
    export_to_json,
    generate_day_title,
    load_from_json,
    parse_workbook,
    read_vocabulary_file,
    read_workbook,
    remove_duplicate_words,
    resolve_column_mapping,
    validate_data,
)
from jpvocab.models import ColumnMapping, Day, IngestionOptions

from conftest import make_word, write_workbook

SCENARIO_SHEETS = {
    "Day1": [["あ", "", "a-sound", ""], ["い", "", "i-sound", ""]],
    "Day2": [["あ", "", "a-sound", ""], ["う", "", "u-sound", ""]],
}


def _ids(vocabulary):
    return [w.id for day in sorted(vocabulary) for w in vocabulary[day].words]


def test_global_dedup_keeps_first_occurrence():
    result = parse_workbook(SCENARIO_SHEETS)

    assert sorted(result) == [1, 2]
    assert [(w.id, w.reading) for w in result[1].words] == [(1, "あ"), (2, "い")]
    assert [(w.id, w.reading) for w in result[2].words] == [(3, "う")]
    assert result[1].title == "Day1"


def test_scenario_from_real_workbook(tmp_path):
    path = write_workbook(tmp_path / "vocab.xlsx", SCENARIO_SHEETS)

    result = read_vocabulary_file(path)

    assert [w.reading for w in result[2].words] == ["う"]
    assert _ids(result) == [1, 2, 3]


def test_dedup_disabled_keeps_every_row():
    result = parse_workbook(SCENARIO_SHEETS, IngestionOptions(remove_duplicates=False))

    assert _ids(result) == [1, 2, 3, 4]
    assert [w.reading for w in result[2].words] == ["あ", "う"]


def test_dedup_key_is_case_insensitive():
    sheets = {"A": [["abc", "", "Meaning", ""]], "B": [["ABC", "", "meaning", ""]]}

    result = parse_workbook(sheets)

    assert list(result) == [1]


def test_rows_failing_content_rules_are_dropped():
    sheets = {
        "Words": [
            ["ねこ", "猫", "cat", ""],
            ["いぬ", "犬", "", "no meaning"],
            ["", "", "orphan meaning", ""],
            ["", "鳥", "bird", ""],  # kanji only is fine
            [],
            ["", "", "", ""],
        ]
    }

    result = parse_workbook(sheets)

    assert [(w.id, w.meaning) for w in result[1].words] == [(1, "cat"), (2, "bird")]


def test_empty_rows_still_rejected_when_not_skipped():
    sheets = {"Words": [["", "", "", ""], ["ねこ", "猫", "cat", ""]]}

    result = parse_workbook(sheets, IngestionOptions(skip_empty_rows=False))

    assert [w.id for w in result[1].words] == [1]


def test_sheet_without_words_leaves_gap_in_day_numbers():
    sheets = {
        "Day1": [["ねこ", "猫", "cat", ""]],
        "Broken": [["いぬ", "犬", "", ""]],
        "Day3": [["とり", "鳥", "bird", ""]],
    }

    result = parse_workbook(sheets)

    assert sorted(result) == [1, 3]
    assert result[3].day == 3
    assert _ids(result) == [1, 2]


def test_cells_are_coerced_and_trimmed():
    sheets = {"Numbers": [["  いち ", 1.0, " one ", None], ["に", 2, "two", float("nan")]]}

    result = parse_workbook(sheets)

    first, second = result[1].words
    assert (first.reading, first.kanji, first.meaning, first.example) == ("いち", "1", "one", "")
    assert second.kanji == "2"
    assert second.example == ""


def test_coerce_cell():
    assert coerce_cell(None) == ""
    assert coerce_cell(3.0) == "3"
    assert coerce_cell(2.5) == "2.5"
    assert coerce_cell(float("nan")) == ""
    assert coerce_cell("  x ") == "x"


def test_short_rows_use_blank_cells():
    result = parse_workbook({"Short": [["ねこ", "猫", "cat"]]})

    assert result[1].words[0].example == ""


@pytest.mark.parametrize(
    "sheet_name,expected",
    [
        ("Greetings", "Greetings"),
        ("Sheet1", "Day 4"),
        ("MYSHEET", "Day 4"),
        ("", "Day 4"),
    ],
)
def test_generate_day_title(sheet_name, expected):
    assert generate_day_title(sheet_name, 4) == expected


def test_header_row_is_skipped_and_columns_detected():
    sheets = {
        "Day1": [
            ["Meaning", "Reading", "Kanji", "Example"],
            ["cat", "ねこ", "猫", "猫がいる。"],
        ]
    }

    result = parse_workbook(sheets, IngestionOptions(has_header_row=True))

    word = result[1].words[0]
    assert (word.reading, word.kanji, word.meaning, word.example) == ("ねこ", "猫", "cat", "猫がいる。")


def test_detection_without_meaning_header_falls_back_to_defaults():
    options = IngestionOptions(has_header_row=True)

    assert resolve_column_mapping(options, ["foo", "bar", "baz"]) == ColumnMapping()


def test_detection_with_partial_header_leaves_missing_columns_absent():
    options = IngestionOptions(has_header_row=True)

    mapping = resolve_column_mapping(options, ["Reading", "Meaning"])

    assert mapping.reading == 0
    assert mapping.meaning == 1
    assert mapping.kanji is None
    assert mapping.example == 3


def test_auto_detect_without_header_uses_default_mapping():
    assert resolve_column_mapping(IngestionOptions(), None) == ColumnMapping()


def test_explicit_mapping():
    mapping = ColumnMapping(reading=1, kanji=0, meaning=3, example=2)
    options = IngestionOptions(auto_detect_columns=False, column_mapping=mapping)

    result = parse_workbook({"Day1": [["猫", "ねこ", "猫がいる。", "cat"]]}, options)

    word = result[1].words[0]
    assert (word.reading, word.kanji, word.meaning, word.example) == ("ねこ", "猫", "cat", "猫がいる。")


def test_options_reject_missing_mapping_and_unknown_keys():
    with pytest.raises(ValidationError):
        IngestionOptions(auto_detect_columns=False)
    with pytest.raises(ValidationError):
        IngestionOptions(remove_duplicate=True)


def test_read_workbook_keeps_sheet_order(tmp_path):
    path = write_workbook(
        tmp_path / "order.xlsx",
        {"Zeta": [["ねこ", "猫", "cat", ""]], "Alpha": [["いぬ", "犬", "dog", ""]]},
    )

    sheets = read_workbook(path)

    assert list(sheets) == ["Zeta", "Alpha"]


def test_garbage_bytes_raise_parse_error():
    with pytest.raises(ParseError):
        read_workbook(b"this is not a spreadsheet")


def test_garbage_file_raises_parse_error(tmp_path):
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"PK\x03\x04 definitely not a zip")

    with pytest.raises(ParseError):
        read_vocabulary_file(path)


@pytest.mark.parametrize("filename", ["words.xlsx", "words.xls", "WORDS.XLSX"])
def test_check_upload_filename_accepts_spreadsheets(filename):
    check_upload_filename(filename)


@pytest.mark.parametrize("filename", ["words.csv", "words", "words.xlsx.txt"])
def test_check_upload_filename_rejects_other_files(filename):
    with pytest.raises(UploadRejected):
        check_upload_filename(filename)


def test_remove_duplicate_words_renumbers_and_drops_empty_days():
    vocabulary = {
        1: Day(day=1, title="A", words=[make_word(1, "あ", "a"), make_word(2, "い", "i")]),
        2: Day(day=2, title="B", words=[make_word(7, "あ", "A")]),
        3: Day(day=3, title="C", words=[make_word(9, "う", "u"), make_word(10, "い", "i")]),
    }

    result = remove_duplicate_words(vocabulary)

    assert sorted(result) == [1, 3]
    assert _ids(result) == [1, 2, 3]
    assert [w.reading for w in result[3].words] == ["う"]
    # input untouched
    assert [w.id for w in vocabulary[2].words] == [7]


def test_remove_duplicate_words_is_idempotent(vocabulary):
    doubled = dict(vocabulary)
    doubled[5] = Day(day=5, title="Again", words=list(vocabulary[1].words))

    once = remove_duplicate_words(doubled)
    twice = remove_duplicate_words(once)

    assert once == twice
    assert _ids(once) == list(range(1, 9))
    keys = [dedup_key(w) for day in once.values() for w in day.words]
    assert len(keys) == len(set(keys))


def test_analyze_duplicates():
    raw = parse_workbook(
        {
            "Day1": [["あ", "", "a", ""], ["い", "", "i", ""]],
            "Day2": [["あ", "", "a", ""], ["う", "", "u", ""]],
            "Day3": [["あ", "", "A", ""]],
        },
        IngestionOptions(remove_duplicates=False),
    )

    analysis = analyze_duplicates(raw)

    assert analysis.total_words == 5
    assert analysis.unique_words == 3
    assert analysis.duplicates == 2
    assert analysis.duplicates_by_day == {1: 0, 2: 1, 3: 1}
    assert len(analysis.duplicate_details) == 1
    assert analysis.duplicate_details[0].key == "あ||a"
    assert analysis.duplicate_details[0].days == [1, 2, 3]
    # read-only
    assert len(raw[2].words) == 2


def test_validate_data_flags_problems_without_raising():
    vocabulary = {
        1: Day(day=1, title="A", words=[make_word(1, "あ", ""), make_word(2, "", "x")]),
        2: Day(day=2, title="B", words=[]),
    }

    report = validate_data(vocabulary)

    assert not report.is_valid
    assert report.errors == [
        "Day 1, word 1: missing meaning",
        "Day 1, word 2: missing reading or kanji",
        "Day 2: no words",
    ]
    assert report.stats.total_days == 2
    assert report.stats.total_words == 2
    assert report.stats.average_words_per_day == 1


def test_validate_data_stats(vocabulary):
    report = validate_data(vocabulary)

    assert report.is_valid
    assert report.errors == []
    # 8 words over 3 days -> 2.67
    assert report.stats.average_words_per_day == 3


def test_validate_data_rounds_halves_up():
    vocabulary = {
        1: Day(day=1, title="A", words=[make_word(1, "あ", "a"), make_word(2, "い", "i")]),
        2: Day(day=2, title="B", words=[make_word(3, "う", "u"), make_word(4, "え", "e"), make_word(5, "お", "o")]),
    }

    assert validate_data(vocabulary).stats.average_words_per_day == 3


def test_validate_empty_vocabulary():
    report = validate_data({})

    assert report.is_valid
    assert report.stats.average_words_per_day == 0


def test_export_to_json_is_pretty_and_readable(vocabulary):
    text = export_to_json(vocabulary)

    assert "\n  " in text
    assert "学生" in text
    data = json.loads(text)
    assert data["1"]["title"] == "Greetings"
    assert load_from_json(text) == vocabulary


def test_sample_workbook_parses(tmp_path):
    path = tmp_path / "sample.xlsx"
    content = create_sample_workbook(path)

    assert path.read_bytes() == content
    result = read_vocabulary_file(content)
    assert sorted(result) == [1, 2]
    assert result[1].title == "Day1"
    assert validate_data(result).is_valid
    assert _ids(result) == list(range(1, 9))
