"""
Weighted scoring and rating brackets for customer assessments.

Every selected answer contributes ``score * weight / 100`` where both the
answer score and the question weight are taken from the branch matching the
customer type (new or existing). Category scores sum their answered
questions and the total sums the categories. Totals are not clamped.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from .models import (
    AnswerSelection,
    CategoryScore,
    CustomerType,
    DualValue,
    ScoreCard,
    ScoredAnswer,
    TemplateDefinition,
)

# Lowest to highest.
RATING_ORDER: tuple[str, ...] = ("D", "C-", "C", "C+", "B", "A-", "A", "A+")

# Evaluated top-down; first threshold the total reaches wins.
RATING_BRACKETS: tuple[tuple[float, str], ...] = (
    (90, "A+"),
    (80, "A"),
    (70, "A-"),
    (60, "B"),
    (50, "C+"),
    (40, "C"),
    (30, "C-"),
)

_SEPARATORS = re.compile(r"[\s/,;\-_]+")


def normalize_customer_type(raw: Any) -> str:
    """
    Lower-case and strip separator characters.

    >>> normalize_customer_type(" New/ ")
    'new'
    >>> normalize_customer_type("EXISTING;")
    'existing'
    """
    if raw is None:
        return ""
    return _SEPARATORS.sub("", str(raw).lower())


def resolve_dual(value: DualValue | Mapping[str, Any] | None, customer_type: Any) -> float:
    """
    Pick the branch of a dual weight/score for a customer type.

    Unrecognised customer types fall back to the ``new`` value, then the
    ``existing`` value, then 0.
    """
    if value is None:
        return 0.0
    if isinstance(value, Mapping):
        new, existing = _as_number(value.get("new")), _as_number(value.get("existing"))
    else:
        new, existing = _as_number(value.new), _as_number(value.existing)

    ctype = normalize_customer_type(customer_type)
    if ctype == CustomerType.NEW:
        return new if new is not None else 0.0
    if ctype == CustomerType.EXISTING:
        return existing if existing is not None else 0.0
    if new is not None:
        return new
    if existing is not None:
        return existing
    return 0.0


def _as_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def weighted_score(answer_score: float, question_weight: float) -> float:
    """
    >>> weighted_score(40, 80)
    32.0
    """
    return float(answer_score) * float(question_weight) / 100


def rating_bracket(total: float) -> str:
    """
    Letter grade for a total score.

    >>> rating_bracket(89.9)
    'A'
    >>> rating_bracket(29.9)
    'D'
    """
    for threshold, rating in RATING_BRACKETS:
        if total >= threshold:
            return rating
    return "D"


def rating_rank(rating: str) -> int:
    """Position of a rating in RATING_ORDER; unknown ratings rank below D."""
    try:
        return RATING_ORDER.index(rating)
    except ValueError:
        return -1


def category_score(answers: Iterable[ScoredAnswer]) -> float:
    return sum((a.weighted_score for a in answers), 0.0)


def total_score(category_scores: Iterable[CategoryScore]) -> float:
    return sum((c.score for c in category_scores), 0.0)


def score_selections(
    template: TemplateDefinition,
    selections: Iterable[AnswerSelection],
    customer_type: str,
) -> ScoreCard:
    """
    Score a set of answer selections against a template.

    Every category of the template gets an entry in ``category_scores``, in
    template order, even when none of its questions were answered.
    Selections whose question or answer id is not in the template are
    returned in ``unknown`` and contribute nothing.
    """
    scored: list[ScoredAnswer] = []
    unknown: list[AnswerSelection] = []
    by_category: dict[int, list[ScoredAnswer]] = {id(c): [] for c in template.categories}

    for selection in selections:
        located = template.locate(selection.question_id)
        if located is None:
            unknown.append(selection)
            continue
        category, question = located
        option = question.find_answer(selection.answer_id)
        if option is None:
            unknown.append(selection)
            continue

        weight = resolve_dual(question.weight, customer_type)
        score = resolve_dual(option.score, customer_type)
        answer = ScoredAnswer(
            question_id=question.question_id,
            answer_id=option.answer_id,
            customer_type=customer_type,
            category_name=category.name,
            question_text=question.text,
            answer_text=option.text,
            weight=weight,
            score=score,
            weighted_score=weighted_score(score, weight),
        )
        scored.append(answer)
        by_category[id(category)].append(answer)

    categories = [
        CategoryScore(category_name=c.name, score=category_score(by_category[id(c)]))
        for c in template.categories
    ]
    total = total_score(categories)
    return ScoreCard(
        answers=scored,
        category_scores=categories,
        total_score=total,
        rating=rating_bracket(total),
        unknown=unknown,
    )
