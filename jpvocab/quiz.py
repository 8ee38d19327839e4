"""Multiple-choice quiz generation and scoring."""

import random
from typing import Iterable

import config
from jpvocab.logger import get_logger
from jpvocab.models import (
    Difficulty,
    QuestionType,
    QuizConfig,
    QuizQuestion,
    QuizResult,
    QuizScore,
    Word,
)
from jpvocab.progress import ProgressStore
from jpvocab.repository import VocabularyRepository
from jpvocab.utils import percentage

# Question type -> (prompt template, field shown in the prompt, answer field)
QUESTION_FORMATS = {
    QuestionType.READING_TO_MEANING: ('What does "{prompt}" mean?', "reading", "meaning"),
    QuestionType.KANJI_TO_READING: ('How is "{prompt}" read?', "kanji", "reading"),
    QuestionType.MEANING_TO_READING: ('How is "{prompt}" written in hiragana?', "meaning", "reading"),
    QuestionType.KANJI_TO_MEANING: ('What does "{prompt}" mean?', "kanji", "meaning"),
}


def select_quiz_pool(
    repository: VocabularyRepository,
    progress: ProgressStore,
    quiz_config: QuizConfig,
) -> list[Word]:
    """Words eligible for a quiz: the selected days under the learning filter, else everything."""
    if quiz_config.selected_days:
        words = repository.filter_by_learning_state(
            quiz_config.selected_days,
            quiz_config.learning_filter,
            progress.word_progress,
        )
        get_logger().info(
            f"  Loaded {len(words)} words from days: "
            f"{', '.join(str(d) for d in quiz_config.selected_days)}"
        )
        return words
    return repository.all_words()


def is_correct(question: QuizQuestion, answer: str) -> bool:
    """Exact, case-sensitive comparison with the stored answer."""
    return answer == question.correct_answer


def score_message(score_percentage: int) -> str:
    if score_percentage >= config.EXCELLENT_SCORE:
        return "Excellent!"
    if score_percentage >= config.GOOD_SCORE:
        return "Good job!"
    return "Keep practicing!"


class QuizGenerator:
    """Builds shuffled multiple-choice questions from a word pool."""

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    def build_question(
        self, word: Word, pool: Iterable[Word], question_type: QuestionType
    ) -> QuizQuestion:
        """
        Build one question for a word.

        Distractors are the answer field of up to three other shuffled words
        from the pool. Options are not deduplicated, so repeated meanings or
        readings in the source data can produce look-alike options.

        Args:
            word: Word the question is about
            pool: Words to draw distractors from
            question_type: Which field is asked and which is answered

        Returns:
            Question with the correct answer and shuffled options
        """
        question_type = QuestionType(question_type)
        template, prompt_field, answer_field = QUESTION_FORMATS[question_type]

        prompt = getattr(word, prompt_field)
        if prompt_field == "kanji":
            prompt = word.kanji or word.reading

        others = [w for w in pool if w.id != word.id]
        self._rng.shuffle(others)
        distractors = others[: config.QUIZ_OPTION_COUNT - 1]

        correct_answer = getattr(word, answer_field)
        options = [correct_answer] + [getattr(w, answer_field) for w in distractors]
        self._rng.shuffle(options)

        return QuizQuestion(
            word=word,
            type=question_type,
            question=template.format(prompt=prompt),
            correct_answer=correct_answer,
            options=options,
        )

    def generate(self, pool: Iterable[Word], quiz_config: QuizConfig) -> list[QuizQuestion]:
        """
        Generate a quiz.

        Args:
            pool: Candidate words
            quiz_config: Question count and enabled question types

        Returns:
            min(question_count, pool size) questions, each of a randomly
            chosen enabled type
        """
        pool = list(pool)
        if not pool:
            return []

        shuffled = list(pool)
        self._rng.shuffle(shuffled)
        count = min(quiz_config.question_count, len(pool))

        return [
            self.build_question(word, pool, self._rng.choice(quiz_config.question_types))
            for word in shuffled[:count]
        ]


class QuizSession:
    """Walks through a quiz, scoring answers and feeding the progress store."""

    def __init__(self, questions: Iterable[QuizQuestion], progress: ProgressStore):
        self.questions = list(questions)
        self.progress = progress
        self.current_index = 0
        self.results: list[QuizResult] = []

    @property
    def current_question(self) -> QuizQuestion | None:
        if self.is_complete:
            return None
        return self.questions[self.current_index]

    @property
    def is_complete(self) -> bool:
        return self.current_index >= len(self.questions)

    def submit_answer(self, answer: str) -> QuizResult:
        """
        Answer the current question and move to the next one.

        A correct answer marks the word known/easy, a wrong one marks it
        not known.

        Raises:
            IndexError: If every question has already been answered
        """
        question = self.current_question
        if question is None:
            raise IndexError("Quiz is already complete")

        correct = is_correct(question, answer)
        if correct:
            self.progress.mark_word_known(question.word.id, True, Difficulty.EASY)
        else:
            self.progress.mark_word_known(question.word.id, False)

        result = QuizResult(
            question_index=self.current_index,
            correct=correct,
            selected_answer=answer,
            correct_answer=question.correct_answer,
            word=question.word,
        )
        self.results.append(result)
        self.current_index += 1
        return result

    def score(self) -> QuizScore:
        correct = sum(1 for r in self.results if r.correct)
        total = len(self.results)
        return QuizScore(correct=correct, total=total, percentage=percentage(correct, total))
