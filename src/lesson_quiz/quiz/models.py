"""Question, quiz and answer-state models for lesson quizzes.

Questions form a closed union of frozen dataclasses. Consumers dispatch on
the concrete class and finish with :func:`typing.assert_never`, so adding a
variant without handling it everywhere fails type checking instead of being
graded by some default path.
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Iterable, Mapping, Union, assert_never

from .gaps import DEFAULT_SEPARATOR, count_gaps, extract_gap_answers

__all__ = [
    "AnswerState",
    "ChoiceOption",
    "DisplayMode",
    "FillBlankQuestion",
    "GappedQuestion",
    "LongTextQuestion",
    "MediaKind",
    "MediaQuestion",
    "MultipleChoiceQuestion",
    "Question",
    "QuestionType",
    "Quiz",
    "QuizContentError",
    "QuizMedia",
    "Selection",
    "ShortAnswerQuestion",
    "SingleChoiceQuestion",
    "TextCompletionQuestion",
    "initial_answer_state",
    "is_gapped",
    "question_from_dict",
    "question_to_dict",
    "quiz_from_dict",
    "quiz_from_json",
    "quiz_to_dict",
    "refresh_answer_cache",
]

OPTION_LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"

Selection = Union[int, list[int], str]


class QuizContentError(RuntimeError):
    """Raised when a quiz or question payload cannot be interpreted."""


class QuestionType(str, Enum):
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    SHORT_ANSWER = "short_answer"
    FILL_BLANK = "fill_blank"
    TEXT_COMPLETION = "text_completion"
    LONG_TEXT = "long_text"
    MEDIA_QUESTION = "media_question"

    @classmethod
    def from_value(cls, value: object) -> "QuestionType":
        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise QuizContentError(
            f"Unknown question type '{value}'. Expected one of: {expected}."
        )

    @property
    def is_gapped(self) -> bool:
        return self in (QuestionType.FILL_BLANK, QuestionType.TEXT_COMPLETION)

    @property
    def is_choice(self) -> bool:
        return self in (
            QuestionType.SINGLE_CHOICE,
            QuestionType.MULTIPLE_CHOICE,
            QuestionType.MEDIA_QUESTION,
        )


class DisplayMode(str, Enum):
    ONE_BY_ONE = "one_by_one"
    ALL_AT_ONCE = "all_at_once"

    @classmethod
    def from_value(cls, value: object) -> "DisplayMode":
        if value is None or not str(value).strip():
            return cls.ONE_BY_ONE
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise QuizContentError(
            f"Unknown display mode '{value}'. Expected one_by_one or "
            "all_at_once."
        )


class MediaKind(str, Enum):
    AUDIO = "audio"
    PDF = "pdf"
    TEXT = "text"


@dataclass(frozen=True)
class ChoiceOption:
    id: str
    text: str
    letter: str
    image_url: str | None = None


@dataclass(frozen=True)
class QuizMedia:
    """Audio, PDF or text passage shown once above the whole quiz."""

    url: str
    kind: MediaKind


@dataclass(frozen=True)
class _QuestionBase:
    kind: ClassVar[QuestionType]

    id: str
    prompt_text: str = ""
    content_text: str = ""
    points: int = 1
    order_index: int = 0
    explanation: str | None = None


@dataclass(frozen=True)
class _ChoiceQuestion(_QuestionBase):
    options: tuple[ChoiceOption, ...] = ()

    def option_index(self, letter: str) -> int | None:
        """Return the index of the option labelled ``letter``."""

        wanted = letter.strip().upper()
        for index, option in enumerate(self.options):
            if option.letter.upper() == wanted:
                return index
        return None


@dataclass(frozen=True)
class SingleChoiceQuestion(_ChoiceQuestion):
    kind: ClassVar[QuestionType] = QuestionType.SINGLE_CHOICE

    correct_answer: int | None = None


@dataclass(frozen=True)
class MediaQuestion(_ChoiceQuestion):
    kind: ClassVar[QuestionType] = QuestionType.MEDIA_QUESTION

    correct_answer: int | None = None
    media_url: str | None = None
    media_type: str | None = None


@dataclass(frozen=True)
class MultipleChoiceQuestion(_ChoiceQuestion):
    kind: ClassVar[QuestionType] = QuestionType.MULTIPLE_CHOICE

    correct_answer: tuple[int, ...] = ()


@dataclass(frozen=True)
class ShortAnswerQuestion(_QuestionBase):
    kind: ClassVar[QuestionType] = QuestionType.SHORT_ANSWER

    correct_answer: str = ""


@dataclass(frozen=True)
class _GappedQuestion(_QuestionBase):
    gap_separator: str = DEFAULT_SEPARATOR
    # Cached per-gap answers; grading recomputes them from ``gap_text``.
    correct_answer: tuple[str, ...] = ()

    @property
    def gap_text(self) -> str:
        """Passage holding the gaps, falling back to the prompt."""

        return self.content_text or self.prompt_text

    def expected_answers(self) -> list[str]:
        return extract_gap_answers(self.gap_text, self.gap_separator)

    def gap_count(self) -> int:
        return count_gaps(self.gap_text)


@dataclass(frozen=True)
class FillBlankQuestion(_GappedQuestion):
    kind: ClassVar[QuestionType] = QuestionType.FILL_BLANK


@dataclass(frozen=True)
class TextCompletionQuestion(_GappedQuestion):
    kind: ClassVar[QuestionType] = QuestionType.TEXT_COMPLETION

    show_numbering: bool = False


@dataclass(frozen=True)
class LongTextQuestion(_QuestionBase):
    kind: ClassVar[QuestionType] = QuestionType.LONG_TEXT

    # Sample answer or grading notes; never used for grading.
    correct_answer: str = ""
    keywords: tuple[str, ...] = ()
    expected_length: int | None = None


Question = Union[
    SingleChoiceQuestion,
    MultipleChoiceQuestion,
    ShortAnswerQuestion,
    FillBlankQuestion,
    TextCompletionQuestion,
    LongTextQuestion,
    MediaQuestion,
]

GappedQuestion = Union[FillBlankQuestion, TextCompletionQuestion]


def is_gapped(question: Question) -> bool:
    return isinstance(question, (FillBlankQuestion, TextCompletionQuestion))


@dataclass(frozen=True)
class Quiz:
    title: str
    questions: tuple[Question, ...] = ()
    time_limit_minutes: int | None = None
    display_mode: DisplayMode = DisplayMode.ONE_BY_ONE
    media: QuizMedia | None = None

    def question(self, question_id: str) -> Question | None:
        for candidate in self.questions:
            if candidate.id == question_id:
                return candidate
        return None

    def question_types(self) -> dict[str, QuestionType]:
        return {question.id: question.kind for question in self.questions}


@dataclass
class AnswerState:
    """Learner answers: choice/text selections and per-gap strings.

    Only the quiz player mutates an instance; everything else reads it.
    """

    selections: dict[str, Selection] = field(default_factory=dict)
    gaps: dict[str, list[str]] = field(default_factory=dict)

    def selection(self, question_id: str) -> Selection | None:
        return self.selections.get(question_id)

    def gap_values(self, question_id: str) -> list[str]:
        return list(self.gaps.get(question_id, ()))

    def set_selection(self, question_id: str, value: Selection) -> None:
        if isinstance(value, (list, tuple)):
            value = [int(item) for item in value]
        self.selections[question_id] = value

    def set_gap(self, question_id: str, index: int, value: str) -> None:
        if index < 0:
            raise IndexError(f"Gap index must be non-negative, got {index}.")
        values = self.gaps.setdefault(question_id, [])
        if index >= len(values):
            values.extend([""] * (index + 1 - len(values)))
        values[index] = value

    def set_gaps(self, question_id: str, values: Iterable[str]) -> None:
        self.gaps[question_id] = [str(value) for value in values]

    def merged(self) -> dict[str, Selection | list[str]]:
        """Single question-id map: selections first, then gap lists."""

        combined: dict[str, Selection | list[str]] = {}
        for key, value in self.selections.items():
            combined[key] = list(value) if isinstance(value, list) else value
        for key, values in self.gaps.items():
            combined[key] = list(values)
        return combined

    def copy(self) -> "AnswerState":
        return AnswerState(
            selections={
                key: list(value) if isinstance(value, list) else value
                for key, value in self.selections.items()
            },
            gaps={key: list(values) for key, values in self.gaps.items()},
        )


def initial_answer_state(quiz: Quiz) -> AnswerState:
    """Fresh state with an empty slot for every gap in the quiz."""

    state = AnswerState()
    for question in quiz.questions:
        if isinstance(question, (FillBlankQuestion, TextCompletionQuestion)):
            state.gaps[question.id] = [""] * question.gap_count()
    return state


def refresh_answer_cache(question: Question) -> Question:
    """Recompute the cached gap answers after the passage changed."""

    if isinstance(question, (FillBlankQuestion, TextCompletionQuestion)):
        return dataclasses.replace(
            question, correct_answer=tuple(question.expected_answers())
        )
    return question


def question_from_dict(payload: Mapping[str, Any], index: int = 0) -> Question:
    """Build a question from a stored step payload."""

    if not isinstance(payload, Mapping):
        raise QuizContentError(
            f"Question #{index + 1} must be an object, found "
            f"{type(payload).__name__}."
        )
    kind = QuestionType.from_value(payload.get("question_type"))
    common: dict[str, Any] = {
        "id": str(payload.get("id") or f"question-{index + 1}"),
        "prompt_text": str(payload.get("question_text") or ""),
        "content_text": str(payload.get("content_text") or ""),
        "points": _coerce_int(payload.get("points"), default=1),
        "order_index": _coerce_int(payload.get("order_index"), default=index),
        "explanation": _optional_str(payload.get("explanation")),
    }
    raw_answer = payload.get("correct_answer")

    if kind in (QuestionType.SINGLE_CHOICE, QuestionType.MEDIA_QUESTION):
        options = _parse_options(payload.get("options"))
        correct = _coerce_index(raw_answer)
        if correct is None:
            flagged = _flagged_indices(payload.get("options"))
            correct = flagged[0] if flagged else None
        if kind is QuestionType.SINGLE_CHOICE:
            return SingleChoiceQuestion(
                options=options, correct_answer=correct, **common
            )
        return MediaQuestion(
            options=options,
            correct_answer=correct,
            media_url=_optional_str(payload.get("media_url")),
            media_type=_optional_str(payload.get("media_type")),
            **common,
        )
    if kind is QuestionType.MULTIPLE_CHOICE:
        options = _parse_options(payload.get("options"))
        if isinstance(raw_answer, (list, tuple)):
            indices = [_coerce_index(item) for item in raw_answer]
            correct_many = tuple(item for item in indices if item is not None)
        else:
            correct_many = tuple(_flagged_indices(payload.get("options")))
        return MultipleChoiceQuestion(
            options=options, correct_answer=correct_many, **common
        )
    if kind is QuestionType.SHORT_ANSWER:
        return ShortAnswerQuestion(
            correct_answer=str(raw_answer or ""), **common
        )
    if kind is QuestionType.FILL_BLANK or kind is QuestionType.TEXT_COMPLETION:
        separator = str(payload.get("gap_separator") or DEFAULT_SEPARATOR)
        if isinstance(raw_answer, (list, tuple)):
            cached = tuple(str(item) for item in raw_answer)
        else:
            text = common["content_text"] or common["prompt_text"]
            cached = tuple(extract_gap_answers(text, separator))
        if kind is QuestionType.FILL_BLANK:
            return FillBlankQuestion(
                gap_separator=separator, correct_answer=cached, **common
            )
        return TextCompletionQuestion(
            gap_separator=separator,
            correct_answer=cached,
            show_numbering=bool(payload.get("show_numbering", False)),
            **common,
        )
    if kind is QuestionType.LONG_TEXT:
        keywords = payload.get("keywords") or ()
        if isinstance(keywords, str):
            keywords = keywords.split(",")
        return LongTextQuestion(
            correct_answer=str(raw_answer or ""),
            keywords=tuple(str(k).strip() for k in keywords if str(k).strip()),
            expected_length=_coerce_index(payload.get("expected_length")),
            **common,
        )
    assert_never(kind)


def question_to_dict(question: Question) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": question.id,
        "question_type": question.kind.value,
        "question_text": question.prompt_text,
        "content_text": question.content_text,
        "points": question.points,
        "order_index": question.order_index,
        "explanation": question.explanation,
    }
    if isinstance(
        question,
        (SingleChoiceQuestion, MediaQuestion, MultipleChoiceQuestion),
    ):
        payload["options"] = [_option_to_dict(o) for o in question.options]
        if isinstance(question, MultipleChoiceQuestion):
            payload["correct_answer"] = list(question.correct_answer)
        else:
            payload["correct_answer"] = question.correct_answer
        if isinstance(question, MediaQuestion):
            payload["media_url"] = question.media_url
            payload["media_type"] = question.media_type
    elif isinstance(question, ShortAnswerQuestion):
        payload["correct_answer"] = question.correct_answer
    elif isinstance(question, (FillBlankQuestion, TextCompletionQuestion)):
        payload["correct_answer"] = list(question.correct_answer)
        payload["gap_separator"] = question.gap_separator
        if isinstance(question, TextCompletionQuestion):
            payload["show_numbering"] = question.show_numbering
    elif isinstance(question, LongTextQuestion):
        payload["correct_answer"] = question.correct_answer
        payload["keywords"] = list(question.keywords)
        payload["expected_length"] = question.expected_length
    else:
        assert_never(question)
    return payload


def quiz_from_dict(payload: Mapping[str, Any]) -> Quiz:
    if not isinstance(payload, Mapping):
        raise QuizContentError("Quiz content must be a JSON object.")
    raw_questions = payload.get("questions")
    if raw_questions is None:
        raw_questions = []
    if not isinstance(raw_questions, list):
        raise QuizContentError("Quiz 'questions' must be a list.")
    questions = tuple(
        question_from_dict(item, index)
        for index, item in enumerate(raw_questions)
    )
    return Quiz(
        title=str(payload.get("title") or ""),
        questions=questions,
        time_limit_minutes=_coerce_index(payload.get("time_limit_minutes")),
        display_mode=DisplayMode.from_value(payload.get("display_mode")),
        media=_parse_media(payload),
    )


def quiz_from_json(text: str) -> Quiz:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise QuizContentError(
            f"Quiz content is not valid JSON: {exc}"
        ) from exc
    return quiz_from_dict(payload)


def quiz_to_dict(quiz: Quiz) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "title": quiz.title,
        "questions": [question_to_dict(q) for q in quiz.questions],
        "time_limit_minutes": quiz.time_limit_minutes,
        "display_mode": quiz.display_mode.value,
    }
    if quiz.media is not None:
        payload["quiz_media_url"] = quiz.media.url
        payload["quiz_media_type"] = quiz.media.kind.value
    return payload


def _parse_media(payload: Mapping[str, Any]) -> QuizMedia | None:
    url = _optional_str(payload.get("quiz_media_url"))
    if not url:
        return None
    raw_kind = str(payload.get("quiz_media_type") or "").strip().lower()
    try:
        kind = MediaKind(raw_kind)
    except ValueError as exc:
        raise QuizContentError(
            f"Unknown quiz media type '{raw_kind}'. Expected audio, pdf or "
            "text."
        ) from exc
    return QuizMedia(url=url, kind=kind)


def _parse_options(raw: object) -> tuple[ChoiceOption, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise QuizContentError("Question 'options' must be a list.")
    options: list[ChoiceOption] = []
    for index, item in enumerate(raw):
        letter = OPTION_LETTERS[index] if index < len(OPTION_LETTERS) else "?"
        if isinstance(item, Mapping):
            options.append(
                ChoiceOption(
                    id=str(item.get("id") or index),
                    text=str(item.get("text") or ""),
                    letter=str(item.get("letter") or letter),
                    image_url=_optional_str(item.get("image_url")),
                )
            )
        else:
            options.append(ChoiceOption(str(index), str(item), letter))
    return tuple(options)


def _option_to_dict(option: ChoiceOption) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": option.id,
        "text": option.text,
        "letter": option.letter,
    }
    if option.image_url:
        payload["image_url"] = option.image_url
    return payload


def _flagged_indices(raw: object) -> list[int]:
    if not isinstance(raw, list):
        return []
    return [
        index
        for index, item in enumerate(raw)
        if isinstance(item, Mapping) and item.get("is_correct") is True
    ]


def _coerce_index(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def _coerce_int(value: object, *, default: int) -> int:
    coerced = _coerce_index(value)
    return default if coerced is None else coerced


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None
