from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the timezone-less DateTime columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


# ---------- Rating templates ----------


class RatingTemplateORM(Base):
    __tablename__ = "rating_templates"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(32), default="pending_approval", nullable=False)
    approval_status: Mapped[str] = mapped_column(String(16), default="pending", nullable=False)
    approval_comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )
    updated_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )
    approved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    deleted_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "approval_status IN ('pending', 'approved', 'rejected')",
            name="ck_template_approval_status",
        ),
        CheckConstraint(
            "status IN ('pending_approval', 'active', 'rejected')", name="ck_template_status"
        ),
    )
    __mapper_args__ = {"version_id_col": version}

    categories: Mapped[list[TemplateCategoryORM]] = relationship(
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="TemplateCategoryORM.position",
    )


class TemplateCategoryORM(Base):
    __tablename__ = "template_categories"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    template_id: Mapped[int] = mapped_column(
        ForeignKey("rating_templates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id: Mapped[str] = mapped_column(String(64), nullable=False)
    category_name: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    template: Mapped[RatingTemplateORM] = relationship(back_populates="categories")
    questions: Mapped[list[TemplateQuestionORM]] = relationship(
        back_populates="category",
        cascade="all, delete-orphan",
        order_by="TemplateQuestionORM.position",
    )


class TemplateQuestionORM(Base):
    __tablename__ = "template_questions"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    category_pk: Mapped[int] = mapped_column(
        ForeignKey("template_categories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id: Mapped[str] = mapped_column(String(64), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    # percentages; NULL only for legacy rows that never carried the branch
    weight_new: Mapped[float | None] = mapped_column(Float, nullable=True)
    weight_existing: Mapped[float | None] = mapped_column(Float, nullable=True)
    status: Mapped[str] = mapped_column(String(32), default="pending_approval", nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    category: Mapped[TemplateCategoryORM] = relationship(back_populates="questions")
    answers: Mapped[list[TemplateAnswerORM]] = relationship(
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="TemplateAnswerORM.position",
    )


class TemplateAnswerORM(Base):
    __tablename__ = "template_answers"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    question_pk: Mapped[int] = mapped_column(
        ForeignKey("template_questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    answer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    score_new: Mapped[float | None] = mapped_column(Float, nullable=True)
    score_existing: Mapped[float | None] = mapped_column(Float, nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    question: Mapped[TemplateQuestionORM] = relationship(back_populates="answers")


# ---------- Customer assessments ----------


class CustomerAssessmentORM(Base):
    __tablename__ = "customer_assessments"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    nic: Mapped[str] = mapped_column(String(12), nullable=False)
    customer_type: Mapped[str] = mapped_column(String(16), nullable=False)
    assessment_template_id: Mapped[int | None] = mapped_column(
        ForeignKey("rating_templates.id", ondelete="SET NULL"), nullable=True, index=True
    )
    assessment_template_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)

    total_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    rating: Mapped[str] = mapped_column(String(4), default="D", nullable=False)

    approval_status: Mapped[str] = mapped_column(String(16), default="pending", nullable=False)
    rejection_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    rejected_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    assessed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    assessment_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )
    updated_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "approval_status IN ('pending', 'approved', 'rejected')",
            name="ck_assessment_approval_status",
        ),
        CheckConstraint(
            "(approval_status = 'rejected' AND rejection_remarks IS NOT NULL) "
            "OR (approval_status <> 'rejected' AND rejection_remarks IS NULL)",
            name="ck_assessment_rejection_remarks",
        ),
        CheckConstraint(
            "approved_by IS NULL OR rejected_by IS NULL", name="ck_assessment_single_decision"
        ),
        CheckConstraint("customer_type IN ('new', 'existing')", name="ck_assessment_customer_type"),
    )
    __mapper_args__ = {"version_id_col": version}

    answers: Mapped[list[AssessmentAnswerORM]] = relationship(
        back_populates="assessment",
        cascade="all, delete-orphan",
        order_by="AssessmentAnswerORM.position",
    )
    category_scores: Mapped[list[CategoryScoreORM]] = relationship(
        back_populates="assessment",
        cascade="all, delete-orphan",
        order_by="CategoryScoreORM.position",
    )


class AssessmentAnswerORM(Base):
    __tablename__ = "assessment_answers"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    assessment_pk: Mapped[int] = mapped_column(
        ForeignKey("customer_assessments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id: Mapped[str] = mapped_column(String(64), nullable=False)
    answer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    customer_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    # cached at write time; the enrichment join recomputes and prefers its own value
    score: Mapped[float | None] = mapped_column(Float, nullable=True)
    weighted_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    assessment: Mapped[CustomerAssessmentORM] = relationship(back_populates="answers")


class CategoryScoreORM(Base):
    __tablename__ = "assessment_category_scores"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    assessment_pk: Mapped[int] = mapped_column(
        ForeignKey("customer_assessments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_name: Mapped[str] = mapped_column(String(255), nullable=False)
    score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    assessment: Mapped[CustomerAssessmentORM] = relationship(back_populates="category_scores")


# ---------- Category catalog ----------


class CatalogCategoryORM(Base):
    """Reusable category names offered when authoring templates."""

    __tablename__ = "categories"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, onupdate=utcnow, nullable=False
    )


# ---------- Customers & activity ----------


class CustomerORM(Base):
    __tablename__ = "customers"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    customer_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    nic: Mapped[str] = mapped_column(String(12), unique=True, nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, onupdate=utcnow, nullable=False
    )


class ActivityLogORM(Base):
    __tablename__ = "activity_logs"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    # "metadata" is reserved on declarative classes
    metadata_json: Mapped[str | None] = mapped_column("metadata", Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False, index=True
    )
