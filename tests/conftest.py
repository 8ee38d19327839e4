import datetime
from pathlib import Path

import pandas as pd
import pytest

from jpvocab.models import Day, Word
from jpvocab.progress import ProgressStore
from jpvocab.storage import LocalStorage

T0 = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime.datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + datetime.timedelta(**kwargs)


def write_workbook(path: Path, sheets: dict[str, list[list[str]]]) -> Path:
    """Write sheets of plain rows (no header) to an .xlsx file."""
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=name, index=False, header=False)
    return path


def make_word(word_id: int, reading: str, meaning: str, kanji: str = "", example: str = "") -> Word:
    return Word(id=word_id, reading=reading, kanji=kanji, meaning=meaning, example=example)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage(tmp_path: Path) -> LocalStorage:
    return LocalStorage(tmp_path / "local_storage.json")


@pytest.fixture
def progress(storage: LocalStorage, clock: FakeClock) -> ProgressStore:
    return ProgressStore(storage, clock=clock)


@pytest.fixture
def vocabulary() -> dict[int, Day]:
    return {
        1: Day(
            day=1,
            title="Greetings",
            words=[
                make_word(1, "こんにちは", "hello", kanji="今日は", example="こんにちは、田中さん。"),
                make_word(2, "ありがとう", "thank you"),
                make_word(3, "がくせい", "student", kanji="学生", example="私は学生です。"),
            ],
        ),
        2: Day(
            day=2,
            title="Day 2",
            words=[
                make_word(4, "せんせい", "teacher", kanji="先生"),
                make_word(5, "みず", "water", kanji="水", example="水をください。"),
                make_word(6, "たべる", "to eat", kanji="食べる"),
            ],
        ),
        4: Day(
            day=4,
            title="Verbs",
            words=[
                make_word(7, "のむ", "to drink", kanji="飲む"),
                make_word(8, "みる", "to see", kanji="見る"),
            ],
        ),
    }
