#!/usr/bin/env python3
"""Japanese Vocabulary Trainer - command-line front end."""

import argparse
import random
import sys
from pathlib import Path

from pydantic import ValidationError

import config
from jpvocab.excel_reader import (
    ParseError,
    UploadRejected,
    analyze_duplicates,
    create_sample_workbook,
    load_from_json,
    read_vocabulary_file,
    validate_data,
)
from jpvocab.kana import display_text
from jpvocab.logger import get_logger, setup_logger
from jpvocab.models import (
    ColumnMapping,
    Difficulty,
    DisplayMode,
    IngestionOptions,
    LearningFilter,
    QuestionType,
    QuizConfig,
)
from jpvocab.progress import ProgressStore
from jpvocab.quiz import QuizGenerator, QuizSession, score_message, select_quiz_pool
from jpvocab.repository import InvalidUpload, VocabularyRepository
from jpvocab.storage import LocalStorage


def build_ingestion_options(args) -> IngestionOptions:
    """Translate import flags into ingestion options."""
    column_mapping = None
    if args.columns:
        reading, kanji, meaning, example = args.columns
        column_mapping = ColumnMapping(reading=reading, kanji=kanji, meaning=meaning, example=example)

    return IngestionOptions(
        remove_duplicates=not args.keep_duplicates,
        skip_empty_rows=not args.keep_empty_rows,
        auto_detect_columns=column_mapping is None,
        has_header_row=args.has_header,
        column_mapping=column_mapping,
    )


def load_repository() -> VocabularyRepository:
    """Last accepted upload if there is one, else the default workbook."""
    repository = VocabularyRepository()
    if config.VOCABULARY_JSON.exists():
        try:
            repository.replace(load_from_json(config.VOCABULARY_JSON.read_bytes()))
            return repository
        except ValidationError as e:
            get_logger().warning(
                f"Saved vocabulary {config.VOCABULARY_JSON} is unreadable "
                f"({e.error_count()} errors), falling back to the default workbook"
            )
    if config.VOCABULARY_FILE.exists():
        repository.load(config.VOCABULARY_FILE)
    return repository


def save_repository(repository: VocabularyRepository) -> None:
    config.VOCABULARY_JSON.parent.mkdir(parents=True, exist_ok=True)
    config.VOCABULARY_JSON.write_text(repository.export_to_json(), encoding="utf-8")


def cmd_sample(args, logger, repository, progress):
    output = Path(args.output)
    create_sample_workbook(output)
    logger.info(f"Sample workbook written to: {output}")


def cmd_import(args, logger, repository, progress):
    options = build_ingestion_options(args)
    report = repository.upload(Path(args.file), options)
    save_repository(repository)
    logger.info(
        f"Imported {report.stats.total_words} words in {report.stats.total_days} days"
    )


def cmd_analyze(args, logger, repository, progress):
    options = build_ingestion_options(args).model_copy(update={"remove_duplicates": False})
    raw = read_vocabulary_file(Path(args.file), options, progress=True)
    analysis = analyze_duplicates(raw)

    logger.info(f"Total words:  {analysis.total_words}")
    logger.info(f"Unique words: {analysis.unique_words}")
    logger.info(f"Duplicates:   {analysis.duplicates}")
    for day, count in analysis.duplicates_by_day.items():
        if count:
            logger.info(f"  Day {day}: {count} duplicates")
    for detail in analysis.duplicate_details[:10]:
        logger.info(f"  {detail.key} -> days {detail.days}")
    if len(analysis.duplicate_details) > 10:
        logger.info(f"  ... and {len(analysis.duplicate_details) - 10} more")


def cmd_validate(args, logger, repository, progress):
    report = validate_data(repository.data)
    stats = report.stats
    logger.info(
        f"Days: {stats.total_days}, words: {stats.total_words}, "
        f"average per day: {stats.average_words_per_day}"
    )
    if report.is_valid:
        logger.info("Vocabulary is valid")
    for error in report.errors:
        logger.warning(f"  {error}")


def cmd_export(args, logger, repository, progress):
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(repository.export_to_json(), encoding="utf-8")
    logger.info(f"Exported vocabulary to: {output}")


def cmd_days(args, logger, repository, progress):
    day_numbers = repository.list_day_numbers()
    if not day_numbers:
        logger.info("No vocabulary loaded. Use 'import' to upload a workbook.")
        return

    current = progress.state.current_day
    for day_number in day_numbers:
        day = repository.get_day(day_number)
        percent = progress.day_progress(w.id for w in day.words)
        marker = "*" if day_number == current else " "
        done = " (completed)" if progress.is_day_completed(day_number) else ""
        logger.info(f"{marker} {day_number:>3}. {day.title} - {len(day.words)} words, {percent}%{done}")


def cmd_show(args, logger, repository, progress):
    day = repository.get_day(args.day)
    if day is None:
        logger.error(f"Day {args.day} not found")
        sys.exit(1)

    progress.set_current_day(args.day)
    state = progress.state
    logger.info(f"{day.title} ({len(day.words)} words)")
    for word in day.words:
        record = progress.get_word_progress(word.id)
        status = "known" if record and record.known else ("learning" if record else "new")
        text = display_text(word, state.study_mode, state.show_furigana)
        logger.info(f"  [{word.id:>4}] {text} - {word.meaning} ({status})")
        if word.example:
            logger.info(f"         {word.example}")


def cmd_search(args, logger, repository, progress):
    results = repository.search(args.query)
    logger.info(f"{len(results)} matches")
    for word in results:
        logger.info(f"  [{word.id:>4}] {word.kanji or word.reading} ({word.reading}) - {word.meaning}")


def cmd_mark(args, logger, repository, progress):
    record = progress.mark_word_known(args.word_id, args.known, Difficulty(args.difficulty))
    logger.info(
        f"Word {record.word_id}: {'known' if record.known else 'not known'}, "
        f"reviews: {record.review_count}, next review: {record.next_review_date:%Y-%m-%d %H:%M}"
    )


def cmd_complete_day(args, logger, repository, progress):
    progress.mark_day_completed(args.day)
    logger.info(f"Day {args.day} marked completed")


def cmd_review(args, logger, repository, progress):
    due_ids = progress.words_due_for_review()
    words = repository.words_by_ids(due_ids)
    logger.info(f"{len(due_ids)} words due for review")
    for word in words:
        logger.info(f"  [{word.id:>4}] {word.kanji or word.reading} ({word.reading}) - {word.meaning}")
    missing = len(due_ids) - len(words)
    if missing:
        logger.info(f"  {missing} due ids are not in the current vocabulary")


def cmd_stats(args, logger, repository, progress):
    stats = progress.overall_stats()
    state = progress.state
    logger.info(f"Words studied:        {stats.total_words}")
    logger.info(f"Known:                {stats.known_words}")
    logger.info(f"Need review:          {stats.review_words}")
    logger.info(f"Completion rate:      {stats.completion_rate}%")
    logger.info(f"Average reviews/word: {stats.average_review_count}")
    logger.info(f"Completed days:       {len(state.completed_days)}/{repository.total_days()}")


def cmd_settings(args, logger, repository, progress):
    if args.mode:
        progress.set_study_mode(DisplayMode(args.mode))
    if args.toggle_furigana:
        progress.toggle_furigana()
    if args.current_day:
        progress.set_current_day(args.current_day)

    state = progress.state
    logger.info(f"Current day: {state.current_day}")
    logger.info(f"Study mode:  {state.study_mode.value}")
    logger.info(f"Furigana:    {'shown' if state.show_furigana else 'hidden'}")


def cmd_quiz(args, logger, repository, progress):
    rng = random.Random(args.seed)
    quiz_config = QuizConfig(
        selected_days=args.days or [],
        question_count=args.count,
        question_types=[QuestionType(t) for t in args.types] if args.types else list(QuestionType),
        learning_filter=LearningFilter(args.filter),
    )

    pool = select_quiz_pool(repository, progress, quiz_config)
    if not pool:
        logger.info("No words match this quiz configuration.")
        return

    session = QuizSession(QuizGenerator(rng).generate(pool, quiz_config), progress)
    while not session.is_complete:
        question = session.current_question
        print(f"\n[{session.current_index + 1}/{len(session.questions)}] {question.question}")
        for i, option in enumerate(question.options, start=1):
            print(f"  {i}. {option}")

        choice = input("Answer: ").strip()
        if choice.isdigit() and 1 <= int(choice) <= len(question.options):
            choice = question.options[int(choice) - 1]

        result = session.submit_answer(choice)
        if result.correct:
            print("Correct!")
        else:
            print(f"Wrong - the answer is: {result.correct_answer}")

    score = session.score()
    logger.info(f"Score: {score.correct}/{score.total} ({score.percentage}%) - {score_message(score.percentage)}")


def cmd_reset(args, logger, repository, progress):
    if not args.yes:
        confirm = input("Reset all progress? [y/N] ").strip().lower()
        if confirm != "y":
            logger.info("Reset cancelled")
            return
    progress.reset()


def add_ingestion_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("file", help="Workbook (.xlsx or .xls), one sheet per day")
    parser.add_argument("--keep-duplicates", action="store_true", help="Do not drop repeated words")
    parser.add_argument("--keep-empty-rows", action="store_true", help="Do not skip empty rows")
    parser.add_argument("--has-header", action="store_true", help="First row of each sheet is a header")
    parser.add_argument(
        "--columns",
        type=int,
        nargs=4,
        metavar=("READING", "KANJI", "MEANING", "EXAMPLE"),
        help="Explicit zero-based column indices (disables auto-detection)",
    )


def main():
    parser = argparse.ArgumentParser(
        description="Japanese Vocabulary Trainer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create and import a sample workbook
  python main.py sample
  python main.py import data/sample_vocabulary.xlsx

  # Study day 1, then quiz yourself on it
  python main.py show 1
  python main.py quiz --days 1 --count 5

  # Words due for review
  python main.py review
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p = subparsers.add_parser("sample", help="Write a sample workbook")
    p.add_argument("--output", default=str(config.SAMPLE_WORKBOOK))
    p.set_defaults(func=cmd_sample)

    p = subparsers.add_parser("import", help="Upload a workbook, replacing the vocabulary")
    add_ingestion_arguments(p)
    p.set_defaults(func=cmd_import)

    p = subparsers.add_parser("analyze", help="Report duplicate words in a workbook")
    add_ingestion_arguments(p)
    p.set_defaults(func=cmd_analyze)

    p = subparsers.add_parser("validate", help="Validate the loaded vocabulary")
    p.set_defaults(func=cmd_validate)

    p = subparsers.add_parser("export", help="Export the vocabulary as JSON")
    p.add_argument("--output", default=str(config.EXPORT_JSON))
    p.set_defaults(func=cmd_export)

    p = subparsers.add_parser("days", help="List study days")
    p.set_defaults(func=cmd_days)

    p = subparsers.add_parser("show", help="Show the words of a day")
    p.add_argument("day", type=int)
    p.set_defaults(func=cmd_show)

    p = subparsers.add_parser("search", help="Search all words")
    p.add_argument("query")
    p.set_defaults(func=cmd_search)

    p = subparsers.add_parser("mark", help="Record whether you knew a word")
    p.add_argument("word_id", type=int)
    group = p.add_mutually_exclusive_group(required=True)
    group.add_argument("--known", dest="known", action="store_true")
    group.add_argument("--unknown", dest="known", action="store_false")
    p.add_argument("--difficulty", choices=[d.value for d in Difficulty], default=Difficulty.MEDIUM.value)
    p.set_defaults(func=cmd_mark)

    p = subparsers.add_parser("complete-day", help="Mark a day completed")
    p.add_argument("day", type=int)
    p.set_defaults(func=cmd_complete_day)

    p = subparsers.add_parser("review", help="List words due for review")
    p.set_defaults(func=cmd_review)

    p = subparsers.add_parser("stats", help="Show overall statistics")
    p.set_defaults(func=cmd_stats)

    p = subparsers.add_parser("settings", help="Show or change display settings")
    p.add_argument("--mode", choices=[m.value for m in DisplayMode])
    p.add_argument("--toggle-furigana", action="store_true")
    p.add_argument("--current-day", type=int)
    p.set_defaults(func=cmd_settings)

    p = subparsers.add_parser("quiz", help="Take a multiple-choice quiz")
    p.add_argument("--days", type=int, nargs="+", help="Days to draw words from (default: all)")
    p.add_argument("--count", type=int, default=config.DEFAULT_QUESTION_COUNT)
    p.add_argument("--types", nargs="+", choices=[t.value for t in QuestionType])
    p.add_argument("--filter", choices=[f.value for f in LearningFilter], default=LearningFilter.ALL.value)
    p.add_argument("--seed", type=int, help="Random seed for a reproducible quiz")
    p.set_defaults(func=cmd_quiz)

    p = subparsers.add_parser("reset", help="Reset all progress")
    p.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    p.set_defaults(func=cmd_reset)

    args = parser.parse_args()

    logger = setup_logger()

    try:
        repository = load_repository()
        progress = ProgressStore(LocalStorage(config.STORAGE_FILE))
        args.func(args, logger, repository, progress)
    except (UploadRejected, ParseError, InvalidUpload) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    except ValidationError as e:
        logger.error(f"Invalid options: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user.")
        sys.exit(1)


if __name__ == "__main__":
    main()
