from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class CustomerType(StrEnum):
    NEW = "new"
    EXISTING = "existing"


@dataclass(slots=True, frozen=True)
class DualValue:
    """A number carried separately for new and existing customers (weight or score)."""

    new: float | None = None
    existing: float | None = None


@dataclass(slots=True)
class AnswerOption:
    answer_id: str
    text: str
    score: DualValue


@dataclass(slots=True)
class Question:
    question_id: str
    text: str
    weight: DualValue  # percentage
    answers: list[AnswerOption] = field(default_factory=list)
    status: str = "pending_approval"

    def find_answer(self, answer_id: str) -> AnswerOption | None:
        return next((a for a in self.answers if a.answer_id == answer_id), None)


@dataclass(slots=True)
class Category:
    category_id: str
    name: str
    questions: list[Question] = field(default_factory=list)

    def find_question(self, question_id: str) -> Question | None:
        return next((q for q in self.questions if q.question_id == question_id), None)


@dataclass(slots=True)
class TemplateDefinition:
    """Scoring view of a rating template: ordered categories of weighted questions."""

    id: int | None
    name: str
    categories: list[Category] = field(default_factory=list)

    def locate(self, question_id: str) -> tuple[Category, Question] | None:
        for category in self.categories:
            question = category.find_question(question_id)
            if question is not None:
                return category, question
        return None


@dataclass(slots=True, frozen=True)
class AnswerSelection:
    question_id: str
    answer_id: str


@dataclass(slots=True)
class ScoredAnswer:
    question_id: str
    answer_id: str
    customer_type: str
    category_name: str
    question_text: str
    answer_text: str
    weight: float
    score: float
    weighted_score: float


@dataclass(slots=True)
class CategoryScore:
    category_name: str
    score: float


@dataclass(slots=True)
class ScoreCard:
    answers: list[ScoredAnswer]
    category_scores: list[CategoryScore]
    total_score: float
    rating: str
    unknown: list[AnswerSelection] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        """True when every selection resolved against the template."""
        return not self.unknown
