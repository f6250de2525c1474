from .attempts import (
    AttemptPayload,
    AttemptRecorder,
    QuizAttempt,
    StepContext,
    build_attempt,
    deserialize_answers,
    load_latest_attempt,
    save_attempt,
    serialize_answers,
)
from .bulk import BulkImportResult, parse_bulk_questions
from .gaps import (
    convert_single_brackets,
    count_gaps,
    extract_gap_answers,
    mask_gaps,
    parse_gap,
    strip_markup,
)
from .loader import StepTracker, load_player, quiz_from_step_content
from .models import (
    AnswerState,
    DisplayMode,
    Question,
    QuestionType,
    Quiz,
    QuizContentError,
    initial_answer_state,
    quiz_from_dict,
    quiz_to_dict,
    refresh_answer_cache,
)
from .numbering import display_label, progress_percentage, total_item_count
from .player import PlayerState, QuizOutcome, QuizPlayer, QuizStateError
from .scoring import (
    autofill_correct_answers,
    can_proceed,
    is_correct,
    is_passed,
    score_quiz,
)
from .session import QuizSessionResult, run_quiz_session
from .stores import AttemptStoreError, FileAttemptStore, HttpAttemptStore
from .summary import LessonQuizSummary, summarize_lesson_attempts
from .validation import validate_question, validate_quiz

__all__ = [
    "AttemptPayload",
    "AttemptRecorder",
    "QuizAttempt",
    "StepContext",
    "build_attempt",
    "deserialize_answers",
    "load_latest_attempt",
    "save_attempt",
    "serialize_answers",
    "BulkImportResult",
    "parse_bulk_questions",
    "convert_single_brackets",
    "count_gaps",
    "extract_gap_answers",
    "mask_gaps",
    "parse_gap",
    "strip_markup",
    "StepTracker",
    "load_player",
    "quiz_from_step_content",
    "AnswerState",
    "DisplayMode",
    "Question",
    "QuestionType",
    "Quiz",
    "QuizContentError",
    "initial_answer_state",
    "quiz_from_dict",
    "quiz_to_dict",
    "refresh_answer_cache",
    "display_label",
    "progress_percentage",
    "total_item_count",
    "PlayerState",
    "QuizOutcome",
    "QuizPlayer",
    "QuizStateError",
    "autofill_correct_answers",
    "can_proceed",
    "is_correct",
    "is_passed",
    "score_quiz",
    "QuizSessionResult",
    "run_quiz_session",
    "AttemptStoreError",
    "FileAttemptStore",
    "HttpAttemptStore",
    "LessonQuizSummary",
    "summarize_lesson_attempts",
    "validate_question",
    "validate_quiz",
]
