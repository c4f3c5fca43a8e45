"""
Hide/show flag shared by templates and assessments.

Visibility is independent of approval state. Toggling to the state a record
is already in is an error rather than a silent no-op, so two people hiding
the same record at once get one success and one conflict report.
"""

from __future__ import annotations

from ..infrastructure.exceptions import StateError


def visibility_label(hidden: bool) -> str:
    return "hidden" if hidden else "visible"


def ensure_toggle(entity_name: str, currently_hidden: bool, hidden: bool) -> None:
    """Raise StateError when the requested state equals the current one."""
    if bool(currently_hidden) == bool(hidden):
        raise redundant_toggle(entity_name, hidden)


def redundant_toggle(entity_name: str, hidden: bool) -> StateError:
    label = visibility_label(hidden)
    return StateError(
        f"{entity_name} is already {label}",
        current_state=label,
    )


def audit_action(entity_name: str, hidden: bool) -> str:
    """
    >>> audit_action("Template", True)
    'Template Hidden'
    >>> audit_action("Assessment", False)
    'Assessment Made Visible'
    """
    return f"{entity_name} Hidden" if hidden else f"{entity_name} Made Visible"
