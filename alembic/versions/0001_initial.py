"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "rating_templates",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("approval_status", sa.String(length=16), nullable=False),
        sa.Column("approval_comments", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_by", sa.String(length=255), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("approved_by", sa.String(length=255), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_by", sa.String(length=255), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.CheckConstraint(
            "approval_status IN ('pending', 'approved', 'rejected')",
            name="ck_template_approval_status",
        ),
        sa.CheckConstraint(
            "status IN ('pending_approval', 'active', 'rejected')", name="ck_template_status"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_rating_templates_name", "rating_templates", ["name"], unique=False)

    op.create_table(
        "template_categories",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("template_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.String(length=64), nullable=False),
        sa.Column("category_name", sa.String(length=255), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["template_id"], ["rating_templates.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_template_categories_template_id", "template_categories", ["template_id"], unique=False
    )

    op.create_table(
        "template_questions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("category_pk", sa.Integer(), nullable=False),
        sa.Column("question_id", sa.String(length=64), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("weight_new", sa.Float(), nullable=True),
        sa.Column("weight_existing", sa.Float(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["category_pk"], ["template_categories.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_template_questions_category_pk", "template_questions", ["category_pk"], unique=False
    )

    op.create_table(
        "template_answers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("question_pk", sa.Integer(), nullable=False),
        sa.Column("answer_id", sa.String(length=64), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("score_new", sa.Float(), nullable=True),
        sa.Column("score_existing", sa.Float(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["question_pk"], ["template_questions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_template_answers_question_pk", "template_answers", ["question_pk"], unique=False
    )

    op.create_table(
        "customer_assessments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("customer_id", sa.String(length=64), nullable=False),
        sa.Column("nic", sa.String(length=12), nullable=False),
        sa.Column("customer_type", sa.String(length=16), nullable=False),
        sa.Column("assessment_template_id", sa.Integer(), nullable=True),
        sa.Column("assessment_template_name", sa.String(length=255), nullable=False),
        sa.Column("total_score", sa.Float(), nullable=False),
        sa.Column("rating", sa.String(length=4), nullable=False),
        sa.Column("approval_status", sa.String(length=16), nullable=False),
        sa.Column("rejection_remarks", sa.Text(), nullable=True),
        sa.Column("approved_by", sa.String(length=255), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("rejected_by", sa.String(length=255), nullable=True),
        sa.Column("rejected_at", sa.DateTime(), nullable=True),
        sa.Column("assessed_by", sa.String(length=255), nullable=True),
        sa.Column("assessment_date", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("updated_by", sa.String(length=255), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.CheckConstraint(
            "approval_status IN ('pending', 'approved', 'rejected')",
            name="ck_assessment_approval_status",
        ),
        sa.CheckConstraint(
            "(approval_status = 'rejected' AND rejection_remarks IS NOT NULL) "
            "OR (approval_status <> 'rejected' AND rejection_remarks IS NULL)",
            name="ck_assessment_rejection_remarks",
        ),
        sa.CheckConstraint(
            "approved_by IS NULL OR rejected_by IS NULL", name="ck_assessment_single_decision"
        ),
        sa.CheckConstraint(
            "customer_type IN ('new', 'existing')", name="ck_assessment_customer_type"
        ),
        sa.ForeignKeyConstraint(
            ["assessment_template_id"], ["rating_templates.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_customer_assessments_customer_id", "customer_assessments", ["customer_id"], unique=False
    )
    op.create_index(
        "ix_customer_assessments_assessment_template_id",
        "customer_assessments",
        ["assessment_template_id"],
        unique=False,
    )
    op.create_index(
        "ix_customer_assessments_assessment_date",
        "customer_assessments",
        ["assessment_date"],
        unique=False,
    )

    op.create_table(
        "assessment_answers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("assessment_pk", sa.Integer(), nullable=False),
        sa.Column("question_id", sa.String(length=64), nullable=False),
        sa.Column("answer_id", sa.String(length=64), nullable=False),
        sa.Column("customer_type", sa.String(length=16), nullable=True),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("weighted_score", sa.Float(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["assessment_pk"], ["customer_assessments.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_assessment_answers_assessment_pk", "assessment_answers", ["assessment_pk"], unique=False
    )

    op.create_table(
        "assessment_category_scores",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("assessment_pk", sa.Integer(), nullable=False),
        sa.Column("category_name", sa.String(length=255), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["assessment_pk"], ["customer_assessments.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_assessment_category_scores_assessment_pk",
        "assessment_category_scores",
        ["assessment_pk"],
        unique=False,
    )

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("customer_id", sa.String(length=64), nullable=False),
        sa.Column("nic", sa.String(length=12), nullable=False),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("contact_number", sa.String(length=32), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("customer_id"),
        sa.UniqueConstraint("nic"),
    )

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("metadata", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_activity_logs_username", "activity_logs", ["username"], unique=False)
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"], unique=False)
    op.create_index("ix_activity_logs_created_at", "activity_logs", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_activity_logs_created_at", table_name="activity_logs")
    op.drop_index("ix_activity_logs_action", table_name="activity_logs")
    op.drop_index("ix_activity_logs_username", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_table("customers")
    op.drop_index(
        "ix_assessment_category_scores_assessment_pk", table_name="assessment_category_scores"
    )
    op.drop_table("assessment_category_scores")
    op.drop_index("ix_assessment_answers_assessment_pk", table_name="assessment_answers")
    op.drop_table("assessment_answers")
    op.drop_index("ix_customer_assessments_assessment_date", table_name="customer_assessments")
    op.drop_index(
        "ix_customer_assessments_assessment_template_id", table_name="customer_assessments"
    )
    op.drop_index("ix_customer_assessments_customer_id", table_name="customer_assessments")
    op.drop_table("customer_assessments")
    op.drop_index("ix_template_answers_question_pk", table_name="template_answers")
    op.drop_table("template_answers")
    op.drop_index("ix_template_questions_category_pk", table_name="template_questions")
    op.drop_table("template_questions")
    op.drop_index("ix_template_categories_template_id", table_name="template_categories")
    op.drop_table("template_categories")
    op.drop_index("ix_rating_templates_name", table_name="rating_templates")
    op.drop_table("rating_templates")
