from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Union


@dataclass
class BaseQuestion:
    text: str
    id: str | None = None
    points: int = 1
    image_url: str | None = None
    explanation: str | None = None

    question_type = ""

    def key(self, position: int) -> str | int:
        """Identifier used in submissions: the id, or the display position."""
        return self.id if self.id else position

    def public_dict(self) -> dict:
        """Question as shown to the learner (no correctness data)."""
        return {
            "id": self.id,
            "question_type": self.question_type,
            "text": self.text,
            "points": self.points,
            "image_url": self.image_url,
        }


@dataclass
class MultipleChoiceQuestion(BaseQuestion):
    options: list[str] = field(default_factory=list)
    correct_option: int = 0
    # Carried from authoring; scoring does not branch on these.
    allow_multiple_correct: bool = False
    partial_credit: bool = False

    question_type = "multiple-choice"

    def public_dict(self) -> dict:
        d = super().public_dict()
        d["options"] = list(self.options)
        return d


@dataclass
class TrueFalseQuestion(BaseQuestion):
    correct_answer: bool = True

    question_type = "true-false"


@dataclass
class FillBlankQuestion(BaseQuestion):
    correct_answers: list[str] = field(default_factory=list)
    case_sensitive: bool = False

    question_type = "fill-blank"


@dataclass
class ShortAnswerQuestion(BaseQuestion):
    correct_keywords: list[str] = field(default_factory=list)
    case_sensitive: bool = False

    question_type = "short-answer"


@dataclass
class EssayQuestion(BaseQuestion):
    word_limit: int | None = None
    rubric: str | None = None

    question_type = "essay"

    def public_dict(self) -> dict:
        d = super().public_dict()
        d["word_limit"] = self.word_limit
        return d


@dataclass
class MatchingQuestion(BaseQuestion):
    left_items: list[str] = field(default_factory=list)
    right_items: list[str] = field(default_factory=list)
    correct_matches: list[tuple[int, int]] = field(default_factory=list)

    question_type = "matching"

    def public_dict(self) -> dict:
        d = super().public_dict()
        d["left_items"] = list(self.left_items)
        d["right_items"] = list(self.right_items)
        return d


Question = Union[
    MultipleChoiceQuestion,
    TrueFalseQuestion,
    FillBlankQuestion,
    ShortAnswerQuestion,
    EssayQuestion,
    MatchingQuestion,
]



@dataclass(frozen=True)
class QuizDefinition:
    questions: tuple[Question, ...]
    allow_multiple_attempts: bool = True
    max_attempts: int = 3
    show_correct_answers: bool = True
    show_results_immediately: bool = True
    shuffle_questions: bool = False
    enabled: bool = True

    @property
    def total_points(self) -> int:
        return sum(q.points for q in self.questions)

    def with_questions(self, questions: list[Question]) -> QuizDefinition:
        return replace(self, questions=tuple(questions))


@dataclass(frozen=True)
class ShuffleMapping:
    """Display order of questions for one attempt (answers are never shuffled)."""
    question_order: tuple[str | int, ...]

    def to_list(self) -> list[str | int]:
        return list(self.question_order)


@dataclass(frozen=True)
class AttemptRecord:
    attempt_count: int
    score_percentage: float
    points_earned: int
    total_points: int
    passed: bool

    def to_dict(self) -> dict:
        return {
            "attempt_count": self.attempt_count,
            "score_percentage": self.score_percentage,
            "points_earned": self.points_earned,
            "total_points": self.total_points,
            "passed": self.passed,
        }


@dataclass
class AnswerSubmission:
    question_id: str | int
    user_answer: Any

    def to_dict(self) -> dict:
        return {"questionId": self.question_id, "userAnswer": self.user_answer}


@dataclass
class Lesson:
    id: str
    title: str
    quiz: QuizDefinition | None = None
    is_required: bool = False


@dataclass
class Course:
    id: str
    title: str
    lessons: list[Lesson]
    minimum_quiz_score: int = 50
    source_file: str = ""

    def get_lesson(self, lesson_id: str) -> Lesson | None:
        return next((l for l in self.lessons if l.id == str(lesson_id)), None)
