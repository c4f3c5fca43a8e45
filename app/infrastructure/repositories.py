"""
Repository entry point.

Data access is split per aggregate; import from here so callers do not
depend on the module layout:

    from app.infrastructure.repositories import TemplateRepo, AssessmentRepo
"""

from __future__ import annotations

from .repositories_assessment import AssessmentRepo
from .repositories_category import CategoryRepo
from .repositories_customer import ActivityLogRepo, CustomerRepo
from .repositories_template import TemplateRepo

__all__ = [
    "TemplateRepo",
    "AssessmentRepo",
    "CustomerRepo",
    "ActivityLogRepo",
    "CategoryRepo",
]
