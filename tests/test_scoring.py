import math

import pytest

from app.domain.models import (
    AnswerOption,
    AnswerSelection,
    Category,
    DualValue,
    Question,
    TemplateDefinition,
)
from app.domain.scoring import (
    RATING_ORDER,
    normalize_customer_type,
    rating_bracket,
    rating_rank,
    resolve_dual,
    score_selections,
    weighted_score,
)


def make_template():
    income = Category(
        category_id="C1",
        name="Income",
        questions=[
            Question(
                question_id="Q1",
                text="Income level",
                weight=DualValue(60, 40),
                answers=[
                    AnswerOption("A1", "High", DualValue(100, 80)),
                    AnswerOption("A2", "Low", DualValue(20, 10)),
                ],
            ),
            Question(
                question_id="Q2",
                text="Employment",
                weight=DualValue(40, 60),
                answers=[AnswerOption("A3", "Permanent", DualValue(50, 90))],
            ),
        ],
    )
    history = Category(
        category_id="C2",
        name="History",
        questions=[
            Question(
                question_id="Q3",
                text="Defaults",
                weight=DualValue(None, 50),
                answers=[AnswerOption("A4", "None", DualValue(None, 100))],
            )
        ],
    )
    return TemplateDefinition(id=1, name="Retail", categories=[income, history])


@pytest.mark.parametrize(
    "total, expected",
    [
        (100, "A+"),
        (90, "A+"),
        (89.9, "A"),
        (80, "A"),
        (70, "A-"),
        (60, "B"),
        (50, "C+"),
        (40, "C"),
        (30, "C-"),
        (29.9, "D"),
        (0, "D"),
        (-15, "D"),
        (250, "A+"),
    ],
)
def test_rating_bracket_boundaries(total, expected):
    assert rating_bracket(total) == expected


def test_rating_bracket_is_monotonic():
    ranks = [rating_rank(rating_bracket(x / 2)) for x in range(-20, 220)]
    assert ranks == sorted(ranks)
    assert rating_rank("A+") == len(RATING_ORDER) - 1
    assert rating_rank("Z") == -1


def test_weighted_score_formula():
    assert weighted_score(40, 80) == 32
    assert weighted_score(0, 100) == 0
    assert weighted_score(-10, 50) == -5


@pytest.mark.parametrize(
    "raw, expected",
    [(" New ", "new"), ("EXISTING", "existing"), ("ex-isting", "existing"), ("new/", "new"), (None, "")],
)
def test_normalize_customer_type(raw, expected):
    assert normalize_customer_type(raw) == expected


def test_resolve_dual_picks_branch_for_type():
    value = DualValue(70, 30)
    assert resolve_dual(value, "new") == 70
    assert resolve_dual(value, "Existing ") == 30
    assert resolve_dual({"new": "5", "existing": 9}, "existing") == 9


def test_resolve_dual_missing_branch_is_zero():
    assert resolve_dual(DualValue(None, 30), "new") == 0
    assert resolve_dual(None, "new") == 0


def test_resolve_dual_unknown_type_falls_back():
    assert resolve_dual(DualValue(70, 30), "corporate") == 70
    assert resolve_dual(DualValue(None, 30), "") == 30
    assert resolve_dual(DualValue(None, None), "x") == 0


def test_score_selections_for_new_customer():
    card = score_selections(
        make_template(),
        [AnswerSelection("Q1", "A1"), AnswerSelection("Q2", "A3")],
        "new",
    )
    assert card.is_complete
    assert [a.weighted_score for a in card.answers] == [60.0, 20.0]
    assert [(c.category_name, c.score) for c in card.category_scores] == [
        ("Income", 80.0),
        ("History", 0.0),
    ]
    assert card.total_score == 80.0
    assert card.rating == "A"


def test_score_selections_for_existing_customer():
    card = score_selections(
        make_template(),
        [AnswerSelection("Q1", "A2"), AnswerSelection("Q3", "A4")],
        "existing",
    )
    assert math.isclose(card.answers[0].weighted_score, 4.0)
    assert card.answers[1].weighted_score == 50.0
    assert card.total_score == sum(c.score for c in card.category_scores)
    assert card.rating == "C+"


def test_score_selections_reports_unknown_ids():
    card = score_selections(
        make_template(),
        [AnswerSelection("Q1", "A9"), AnswerSelection("Q7", "A1"), AnswerSelection("Q2", "A3")],
        "new",
    )
    assert not card.is_complete
    assert [(u.question_id, u.answer_id) for u in card.unknown] == [("Q1", "A9"), ("Q7", "A1")]
    assert card.total_score == 20.0


def test_total_is_not_clamped():
    template = TemplateDefinition(
        id=None,
        name="Heavy",
        categories=[
            Category(
                "C1",
                "Only",
                [Question("Q1", "Big", DualValue(200, 200), [AnswerOption("A1", "Max", DualValue(100, 100))])],
            )
        ],
    )
    card = score_selections(template, [AnswerSelection("Q1", "A1")], "new")
    assert card.total_score == 200.0
    assert card.rating == "A+"
