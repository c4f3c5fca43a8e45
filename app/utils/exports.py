from __future__ import annotations

import io
import json
from dataclasses import asdict
from typing import Any

import pandas as pd

from app.application.history import EnrichedAssessment
from app.infrastructure.exceptions import ExportError
from app.infrastructure.models import RatingTemplateORM

EXPORT_FORMATS = ("json", "xlsx")
FORMAT_ALIASES = {"excel": "xlsx"}
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

ANSWER_COLUMNS = [
    "Category",
    "QuestionID",
    "Question",
    "AnswerID",
    "Answer",
    "CustomerType",
    "Weight",
    "Score",
    "WeightedScore",
]


def _to_iso(val):
    if hasattr(val, "isoformat"):
        try:
            return val.isoformat()
        except Exception:
            return str(val)
    return val


def check_export_format(export_format: str | None) -> str:
    fmt = (export_format or "").strip().lower()
    fmt = FORMAT_ALIASES.get(fmt, fmt)
    if fmt not in EXPORT_FORMATS:
        raise ExportError(
            f"Unsupported export format '{export_format}'. Use json or xlsx.", export_format
        )
    return fmt


def summary_frame(assessment: EnrichedAssessment) -> pd.DataFrame:
    rows = [
        ("Assessment ID", assessment.id),
        ("Customer Name", assessment.customer_name),
        ("Customer ID", assessment.customer_id),
        ("Customer Type", assessment.customer_type),
        ("Template", assessment.assessment_template_name),
        ("Total Score", assessment.total_score),
        ("Rating", assessment.rating),
        ("Approval Status", assessment.approval_status),
        ("Assessed By", assessment.assessed_by),
        ("Assessment Date", _to_iso(assessment.assessment_date)),
        ("Approved By", assessment.approved_by),
        ("Rejected By", assessment.rejected_by),
        ("Rejection Remarks", assessment.rejection_remarks),
    ]
    return pd.DataFrame(rows, columns=["Field", "Value"])


def answers_frame(assessment: EnrichedAssessment) -> pd.DataFrame:
    records = [
        {
            "Category": a.category,
            "QuestionID": a.question_id,
            "Question": a.question_text,
            "AnswerID": a.answer_id,
            "Answer": a.answer_text,
            "CustomerType": a.customer_type,
            "Weight": a.weight,
            "Score": a.score,
            "WeightedScore": a.weighted_score,
        }
        for a in assessment.answers
    ]
    return pd.DataFrame(records, columns=ANSWER_COLUMNS)


def category_frame(assessment: EnrichedAssessment) -> pd.DataFrame:
    return pd.DataFrame(
        [(c["categoryName"], c["score"]) for c in assessment.category_scores],
        columns=["Category", "Score"],
    )


def make_json_export_payload(assessment: EnrichedAssessment) -> str:
    payload: dict[str, Any] = {
        k: _to_iso(v) for k, v in asdict(assessment).items() if k != "answers"
    }
    payload["answers"] = answers_frame(assessment).to_dict(orient="records")
    return json.dumps(payload, indent=2)


def make_xlsx_export_bytes(assessment: EnrichedAssessment) -> bytes:
    """Workbook with Summary, Categories and Answers sheets for one assessment."""
    bio = io.BytesIO()
    with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
        summary_frame(assessment).to_excel(writer, index=False, sheet_name="Summary")
        category_frame(assessment).to_excel(writer, index=False, sheet_name="Categories")
        answers_frame(assessment).to_excel(writer, index=False, sheet_name="Answers")
    return bio.getvalue()


# ---------- Template download ----------

QUESTION_COLUMNS = [
    "Category",
    "QuestionID",
    "Question",
    "WeightNew",
    "WeightExisting",
    "AnswerID",
    "Answer",
    "ScoreNew",
    "ScoreExisting",
]
NO_ANSWER = {"AnswerID": None, "Answer": None, "ScoreNew": None, "ScoreExisting": None}


def template_summary_rows(tpl: RatingTemplateORM) -> list[tuple[str, Any]]:
    return [
        ("Template ID", tpl.id),
        ("Template Name", tpl.name),
        ("Approval Status", tpl.approval_status),
        ("Approved By", tpl.approved_by),
        ("Approved Date", _to_iso(tpl.approved_at)),
        ("Total Categories", len(tpl.categories)),
        ("Total Questions", sum(len(c.questions) for c in tpl.categories)),
    ]


def template_category_frame(tpl: RatingTemplateORM) -> pd.DataFrame:
    return pd.DataFrame(
        [
            (pos, c.category_name or "Untitled Category", len(c.questions))
            for pos, c in enumerate(tpl.categories, start=1)
        ],
        columns=["#", "Category Name", "Number of Questions"],
    )


def template_question_records(tpl: RatingTemplateORM) -> list[dict[str, Any]]:
    """One record per answer option; questions without answers still get one."""
    records = []
    for c in tpl.categories:
        for q in c.questions:
            base = {
                "Category": c.category_name,
                "QuestionID": q.question_id,
                "Question": q.text,
                "WeightNew": q.weight_new,
                "WeightExisting": q.weight_existing,
            }
            if not q.answers:
                records.append({**base, **NO_ANSWER})
            for a in q.answers:
                records.append(
                    {
                        **base,
                        "AnswerID": a.answer_id,
                        "Answer": a.text,
                        "ScoreNew": a.score_new,
                        "ScoreExisting": a.score_existing,
                    }
                )
    return records


def make_template_json_export_payload(tpl: RatingTemplateORM) -> str:
    payload: dict[str, Any] = dict(template_summary_rows(tpl))
    payload["Categories"] = template_category_frame(tpl).to_dict(orient="records")
    payload["Questions"] = template_question_records(tpl)
    return json.dumps(payload, indent=2, default=str)


def make_template_xlsx_export_bytes(tpl: RatingTemplateORM) -> bytes:
    """Workbook with Summary, Categories and Questions sheets for one template."""
    summary = pd.DataFrame(template_summary_rows(tpl), columns=["Field", "Value"])
    questions = pd.DataFrame(template_question_records(tpl), columns=QUESTION_COLUMNS)
    bio = io.BytesIO()
    with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
        summary.to_excel(writer, index=False, sheet_name="Summary")
        template_category_frame(tpl).to_excel(writer, index=False, sheet_name="Categories")
        questions.to_excel(writer, index=False, sheet_name="Questions")
    return bio.getvalue()
