from __future__ import annotations

import logging
from types import MappingProxyType

from rest_framework.exceptions import ValidationError

from .models import Project

logger = logging.getLogger(__name__)

S = Project.Status

STATUS_TRANSITIONS = MappingProxyType({
    S.DRAFT: frozenset({S.ESTIMATION_PREPARED}),
    S.ESTIMATION_PREPARED: frozenset({S.QUOTATION_SENT, S.ON_HOLD, S.CANCELLED}),
    S.QUOTATION_SENT: frozenset({S.QUOTATION_APPROVED, S.QUOTATION_REJECTED, S.ON_HOLD, S.CANCELLED}),
    S.QUOTATION_APPROVED: frozenset({S.CONTRACT_SIGNED, S.ON_HOLD, S.CANCELLED}),
    S.CONTRACT_SIGNED: frozenset({S.WORK_STARTED, S.ON_HOLD, S.CANCELLED}),
    S.WORK_STARTED: frozenset({S.IN_PROGRESS, S.ON_HOLD, S.CANCELLED}),
    S.IN_PROGRESS: frozenset({S.WORK_COMPLETED, S.ON_HOLD, S.CANCELLED}),
    S.WORK_COMPLETED: frozenset({S.QUALITY_CHECK, S.ON_HOLD}),
    S.QUALITY_CHECK: frozenset({S.CLIENT_HANDOVER, S.WORK_COMPLETED}),
    S.CLIENT_HANDOVER: frozenset({S.FINAL_INVOICE_SENT, S.ON_HOLD}),
    S.FINAL_INVOICE_SENT: frozenset({S.PAYMENT_RECEIVED, S.ON_HOLD}),
    S.PAYMENT_RECEIVED: frozenset({S.PROJECT_CLOSED}),
    S.ON_HOLD: frozenset({S.IN_PROGRESS, S.WORK_STARTED, S.CANCELLED}),
    S.CANCELLED: frozenset(),
    S.PROJECT_CLOSED: frozenset(),
})

TERMINAL_STATUSES = frozenset(status for status, targets in STATUS_TRANSITIONS.items() if not targets)


def allowed_transitions(current: str) -> frozenset:
    return STATUS_TRANSITIONS.get(current, frozenset())


def is_transition_allowed(current: str, requested: str) -> bool:
    return requested in allowed_transitions(current)


def ensure_transition(current: str, requested: str) -> None:
    if not is_transition_allowed(current, requested):
        raise ValidationError(f"Invalid status transition from {current} to {requested}")


def infer_status_after_progress(status: str, previous_progress: int, new_progress: int) -> str:
    """Status implied by a progress report.

    This runs beside the transition table, not through it: an LPO-received
    project starts work on its first report, a started project is in progress
    once it had progress before, and 100% always means work completed.
    """
    inferred = status
    if inferred == S.LPO_RECEIVED and previous_progress >= 0:
        inferred = S.WORK_STARTED
    if inferred == S.WORK_STARTED and previous_progress > 0:
        inferred = S.IN_PROGRESS
    if new_progress == 100:
        inferred = S.WORK_COMPLETED
    if inferred != status and not is_transition_allowed(status, inferred):
        logger.info('Progress update moves status %s -> %s outside the transition table', status, inferred)
    return inferred
