"""
GST Return State Machine

This module is the SINGLE SOURCE OF TRUTH for GST return status transitions.
All status changes go through validate_transition().

Two modes, selected by settings.GST_ENFORCE_FORWARD_TRANSITIONS:
- permissive (default): any of the four statuses may follow any other,
  so a return marked filed by mistake can be moved back to draft
- forward-only: a return only moves forward along
  draft -> submitted -> filed -> paid (steps may be skipped)
"""

from typing import List, Dict

from erp.config import settings
from erp.models.gst import GstReturnStatus
from erp.core.enum_utils import enum_values, normalize_case


class GSTStatusError(Exception):
    """Invalid GST return status or transition."""
    def __init__(self, message: str, error_code: str = "INVALID_STATUS"):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


# =============================================================================
# TRANSITION RULES
# =============================================================================

# Format: current_status -> [list of allowed next statuses] (forward-only mode)
GST_FORWARD_TRANSITIONS: Dict[str, List[str]] = {
    GstReturnStatus.DRAFT.value: [
        GstReturnStatus.SUBMITTED.value,
        GstReturnStatus.FILED.value,
        GstReturnStatus.PAID.value,
    ],
    GstReturnStatus.SUBMITTED.value: [
        GstReturnStatus.FILED.value,
        GstReturnStatus.PAID.value,
    ],
    GstReturnStatus.FILED.value: [
        GstReturnStatus.PAID.value,
    ],
    GstReturnStatus.PAID.value: [],  # Terminal state
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def parse_status(value: str) -> str:
    """Return the canonical status for value (any casing) or raise GSTStatusError."""
    status = normalize_case(value, GstReturnStatus)
    if status not in enum_values(GstReturnStatus):
        raise GSTStatusError(
            f"Invalid status '{value}'. Allowed: {', '.join(enum_values(GstReturnStatus))}"
        )
    return status


def can_transition(current_status: str, new_status: str, forward_only: bool) -> bool:
    """Check if a transition is allowed."""
    if current_status == new_status:
        return True
    if not forward_only:
        return True
    return new_status in GST_FORWARD_TRANSITIONS.get(current_status, [])


def get_allowed_transitions(current_status: str, forward_only: bool) -> List[str]:
    """Get list of statuses that can follow current status."""
    if not forward_only:
        return enum_values(GstReturnStatus)
    return GST_FORWARD_TRANSITIONS.get(current_status, [])


def validate_transition(current_status: str, new_status: str, forward_only: bool = None) -> None:
    """
    Validate a status transition. Raises GSTStatusError if invalid.

    forward_only defaults to settings.GST_ENFORCE_FORWARD_TRANSITIONS.
    """
    if forward_only is None:
        forward_only = settings.GST_ENFORCE_FORWARD_TRANSITIONS

    if can_transition(current_status, new_status, forward_only):
        return

    allowed = get_allowed_transitions(current_status, forward_only)
    if not allowed:
        raise GSTStatusError(
            f"GST return in '{current_status}' status cannot be changed. This is a terminal state.",
            error_code="INVALID_TRANSITION",
        )
    raise GSTStatusError(
        f"Cannot change GST return from '{current_status}' to '{new_status}'. "
        f"Allowed transitions: {', '.join(allowed)}",
        error_code="INVALID_TRANSITION",
    )
