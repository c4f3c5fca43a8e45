"""
Pydantic schemas for input validation across the application.

Payload schemas accept both camelCase (as sent by the API) and snake_case
keys. ``parse_or_raise`` turns pydantic failures into the application's
ValidationError so every layer reports bad input the same way.
"""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from ..infrastructure.exceptions import ValidationError

NIC_PATTERN = re.compile(r"^(?:[0-9]{9}[VvXx]|[0-9]{12})$")


def nic_problem(value: Any) -> str | None:
    """
    Describe what is wrong with a NIC, or None when it is valid.

    Old format is 9 digits plus V or X, new format is 12 digits.

    >>> nic_problem("12345678")
    'NIC must be exactly 10 or 12 characters'
    """
    text = str(value).strip() if value is not None else ""
    if not text:
        return "NIC is required"
    if len(text) not in (10, 12):
        return "NIC must be exactly 10 or 12 characters"
    if len(text) == 10:
        if not text[:9].isdigit() or not text[:9].isascii():
            return "For 10-character NIC: first 9 characters must be numbers"
        if text[9] not in "xXvV":
            return "For 10-character NIC: last character must be X or V"
    elif not NIC_PATTERN.match(text):
        return "For 12-character NIC: all characters must be numbers"
    return None


def is_valid_nic(value: Any) -> bool:
    """
    >>> is_valid_nic("123456789v")
    True
    """
    return nic_problem(value) is None


def normalize_nic(value: str) -> str:
    """Trim and upper-case the trailing letter of an old-format NIC."""
    return str(value).strip().upper()


class BaseValidationSchema(BaseModel):
    """Base schema with common validation utilities."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        use_enum_values=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_validator("*", mode="before")
    @classmethod
    def sanitize_strings(cls, v):
        """Drop script blocks and control characters from string inputs."""
        if isinstance(v, str):
            cleaned = v.strip()
            cleaned = re.sub(
                r"<\s*script[^>]*>.*?<\s*/\s*script\s*>",
                "",
                cleaned,
                flags=re.IGNORECASE | re.DOTALL,
            )
            cleaned = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]", "", cleaned)
            return cleaned
        return v


def _zero_if_missing(v):
    if v is None or (isinstance(v, str) and not v.strip()):
        return 0.0
    return v


# ---------- Templates ----------


class DualWeightInput(BaseValidationSchema):
    """Question weight as a percentage for each customer type."""

    new: float = Field(0.0, ge=0)
    existing: float = Field(0.0, ge=0)

    @field_validator("new", "existing", mode="before")
    @classmethod
    def coerce_missing(cls, v):
        return _zero_if_missing(v)


class DualScoreInput(BaseValidationSchema):
    """Answer points for each customer type; negative points are allowed."""

    new: float = 0.0
    existing: float = 0.0

    @field_validator("new", "existing", mode="before")
    @classmethod
    def coerce_missing(cls, v):
        return _zero_if_missing(v)


class AnswerOptionInput(BaseValidationSchema):
    answer_id: str | None = Field(None, max_length=64)
    text: str = Field(..., min_length=1, max_length=2000)
    score: DualScoreInput = Field(default_factory=DualScoreInput)

    @field_validator("score", mode="before")
    @classmethod
    def default_score(cls, v):
        return v if v is not None else {}


class QuestionInput(BaseValidationSchema):
    question_id: str | None = Field(None, max_length=64)
    text: str = Field(..., min_length=1, max_length=2000)
    proposed_weight: DualWeightInput = Field(default_factory=DualWeightInput)
    answers: list[AnswerOptionInput] = Field(default_factory=list)

    @field_validator("proposed_weight", mode="before")
    @classmethod
    def default_weight(cls, v):
        return v if v is not None else {}

    @field_validator("answers", mode="before")
    @classmethod
    def default_answers(cls, v):
        return v if v is not None else []


class CategoryInput(BaseValidationSchema):
    category_id: str | None = Field(None, max_length=64)
    category_name: str = Field(..., min_length=1, max_length=255)
    questions: list[QuestionInput] = Field(default_factory=list)

    @field_validator("questions", mode="before")
    @classmethod
    def default_questions(cls, v):
        return v if v is not None else []


class TemplateInput(BaseValidationSchema):
    """Validation schema for creating or replacing a rating template."""

    name: str = Field(..., min_length=1, max_length=255, description="Template name")
    categories: list[CategoryInput] = Field(..., min_length=1)

    @field_validator("name")
    @classmethod
    def validate_template_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Template name cannot be empty")
        return v.strip()


class CatalogCategoryInput(BaseValidationSchema):
    name: str | None = Field(None, max_length=255, validate_default=True)

    @field_validator("name")
    @classmethod
    def require_name(cls, v):
        if not v:
            raise ValueError("Category name is required")
        return v


# ---------- Customer assessments ----------

CustomerTypeLiteral = Literal["new", "existing"]


class SelectionInput(BaseValidationSchema):
    """One chosen answer; cached scores sent by clients are accepted but recomputed."""

    question_id: str = Field(..., min_length=1, max_length=64)
    answer_id: str = Field(..., min_length=1, max_length=64)
    customer_type: str | None = Field(None, max_length=32)
    score: float | None = None
    weighted_score: float | None = None


class CategoryScoreInput(BaseValidationSchema):
    category_name: str = ""
    score: float = 0.0


class AssessmentScoresInput(BaseValidationSchema):
    """Answers plus the optional client-side totals shared by create and edit."""

    answers: list[SelectionInput] = Field(..., min_length=1)
    total_score: float | None = None
    rating: str | None = Field(None, max_length=4)
    category_scores: list[CategoryScoreInput] | None = None


class AssessmentInput(AssessmentScoresInput):
    """Validation schema for a new customer assessment."""

    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_id: str = Field(..., min_length=1, max_length=64)
    nic: str | None = Field(None, validate_default=True)
    customer_type: CustomerTypeLiteral
    assessment_template_id: int = Field(..., gt=0)
    assessed_by: str | None = Field(None, max_length=255)

    @field_validator("customer_type", mode="before")
    @classmethod
    def lower_customer_type(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("nic")
    @classmethod
    def validate_nic(cls, v):
        problem = nic_problem(v)
        if problem:
            raise ValueError(problem)
        return normalize_nic(v)


class CustomerInput(BaseValidationSchema):
    """Validation schema for registering a customer."""

    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_id: str = Field(..., min_length=1, max_length=64)
    nic: str | None = Field(None, validate_default=True)
    contact_number: str | None = Field(None, max_length=32)
    email: str | None = Field(None, max_length=255)
    address: str | None = Field(None, max_length=2000)

    @field_validator("nic")
    @classmethod
    def validate_nic(cls, v):
        problem = nic_problem(v)
        if problem:
            raise ValueError(problem)
        return normalize_nic(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        if v and not re.match(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", v):
            raise ValueError("Invalid email address")
        return v or None


class CustomerLookupInput(BaseValidationSchema):
    customer_id: str | None = Field(None, max_length=64)
    nic: str | None = None

    @field_validator("nic")
    @classmethod
    def validate_nic(cls, v):
        if not v:
            return None
        problem = nic_problem(v)
        if problem:
            raise ValueError(problem)
        return normalize_nic(v)

    @model_validator(mode="after")
    def require_identifier(self):
        if not self.customer_id and not self.nic:
            raise ValueError("Please provide Customer ID or NIC to check customer status")
        return self


# ---------- Validation helpers ----------


class ValidationErrorDetail(BaseModel):
    """Schema for validation error details."""

    field: str
    message: str
    value: Any = None


class ValidationResponse(BaseModel):
    """Schema for validation responses."""

    success: bool
    errors: list[ValidationErrorDetail] = []
    data: dict[str, Any] | None = None


def _error_details(exc: PydanticValidationError) -> list[ValidationErrorDetail]:
    details = []
    for error in exc.errors():
        message = error["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        details.append(
            ValidationErrorDetail(
                field=".".join(str(x) for x in error["loc"]) or "general",
                message=message,
                value=error.get("input"),
            )
        )
    return details


def validate_input(schema_class: type[BaseModel], data: dict[str, Any]) -> ValidationResponse:
    """
    Centralized validation function that returns structured validation results.

    Example:
        >>> result = validate_input(CustomerLookupInput, {"nic": "123456789V"})
        >>> result.success
        True
    """
    try:
        validated = schema_class.model_validate(data)
        return ValidationResponse(success=True, data=validated.model_dump())
    except PydanticValidationError as e:
        return ValidationResponse(success=False, errors=_error_details(e))


def parse_or_raise[M: BaseModel](schema_class: type[M], data: dict[str, Any]) -> M:
    """
    Validate ``data`` and return the model, or raise ValidationError.

    The first failing field is reported; every failure is kept in ``details``.
    """
    try:
        return schema_class.model_validate(data)
    except PydanticValidationError as e:
        errors = _error_details(e)
        first = errors[0]
        raise ValidationError(
            first.field,
            first.message,
            first.value,
            details={"errors": [err.model_dump(mode="json") for err in errors]},
        ) from e
