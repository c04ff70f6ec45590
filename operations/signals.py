"""Domain events raised by the services and the handlers that cascade them.

Every event is sent inside the caller's ``transaction.atomic()`` block, so a
cascade either commits with the change that caused it or not at all.
Notifications are handed to ``run_after_commit`` and never run on rollback.
"""

import logging

from django.dispatch import Signal, receiver

from .models import Project
from .notifications.tasks import notify_engineer_assigned, notify_estimation_checked, run_after_commit
from .workflow import is_transition_allowed

logger = logging.getLogger(__name__)

# kwargs: estimation, actor
estimation_prepared = Signal()
# kwargs: estimation, actor, is_checked
estimation_checked = Signal()
# kwargs: quotation, actor
quotation_created = Signal()
# kwargs: quotation, actor, is_approved
quotation_decided = Signal()
# kwargs: project, actor
quotation_deleted = Signal()
# kwargs: lpo, actor
lpo_received = Signal()
# kwargs: project, engineer, actor
project_assigned = Signal()


def _set_project_status(project: Project, status: str, actor, *, reason: str) -> None:
    if project.status == status:
        return
    if not is_transition_allowed(project.status, status):
        logger.info(
            'Project %s moves %s -> %s outside the transition table (%s)',
            project.project_number,
            project.status,
            status,
            reason,
        )
    project.status = status
    fields = ['status', 'updated_at']
    if actor is not None and getattr(actor, 'is_authenticated', False):
        project.updated_by = actor
        fields.append('updated_by')
    project.save(update_fields=fields)


@receiver(estimation_prepared)
def move_draft_project_to_estimation_prepared(sender, estimation, actor=None, **kwargs):
    project = estimation.project
    if project.status == Project.Status.DRAFT:
        _set_project_status(project, Project.Status.ESTIMATION_PREPARED, actor, reason='estimation created')


@receiver(estimation_checked)
def handle_estimation_check(sender, estimation, is_checked, actor=None, **kwargs):
    if is_checked:
        run_after_commit(notify_estimation_checked, estimation.pk, getattr(actor, 'pk', None))
        return
    _set_project_status(estimation.project, Project.Status.DRAFT, actor, reason='estimation check rejected')


@receiver(quotation_created)
def mark_quotation_sent(sender, quotation, actor=None, **kwargs):
    _set_project_status(quotation.project, Project.Status.QUOTATION_SENT, actor, reason='quotation created')


@receiver(quotation_decided)
def apply_quotation_decision(sender, quotation, is_approved, actor=None, **kwargs):
    status = Project.Status.QUOTATION_APPROVED if is_approved else Project.Status.QUOTATION_REJECTED
    _set_project_status(quotation.project, status, actor, reason='quotation decided')


@receiver(quotation_deleted)
def revert_to_estimation_prepared(sender, project, actor=None, **kwargs):
    _set_project_status(project, Project.Status.ESTIMATION_PREPARED, actor, reason='quotation deleted')


@receiver(lpo_received)
def mark_lpo_received(sender, lpo, actor=None, **kwargs):
    _set_project_status(lpo.project, Project.Status.LPO_RECEIVED, actor, reason='LPO registered')


@receiver(project_assigned)
def notify_assigned_engineer(sender, project, engineer, actor=None, **kwargs):
    run_after_commit(notify_engineer_assigned, project.pk, engineer.pk)
