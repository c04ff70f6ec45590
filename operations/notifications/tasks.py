from __future__ import annotations

import logging

from django.conf import settings
from django.db import transaction

from operations.models import Estimation, Project, User
from operations.notifications.mail import send_action_email

logger = logging.getLogger(__name__)


def _display_name(user: User | None, fallback: str) -> str:
    if not user:
        return fallback
    return user.get_full_name() or user.first_name or user.username or fallback


def _project_url(project_id: int) -> str:
    return f"{settings.FRONTEND_URL}/app/project-view/{project_id}"


def run_after_commit(func, *args, **kwargs) -> None:
    """Schedule a notification once the surrounding transaction commits.

    Failures are logged and never reach the caller.
    """

    def _run():
        try:
            func(*args, **kwargs)
        except Exception:
            logger.exception('Notification %s failed', getattr(func, '__name__', func))

    transaction.on_commit(_run)


def notify_engineer_assigned(project_id: int, engineer_id: int) -> None:
    project = Project.objects.get(pk=project_id)
    engineer = User.objects.get(pk=engineer_id)
    name = _display_name(engineer, 'Engineer')
    project_name = project.project_name or 'the project'
    send_action_email(
        recipients=[engineer.email],
        subject=f"Project Assignment: {project_name}",
        user_name=name,
        headline=f"You have been assigned to {project_name}",
        body=f'You have been assigned to project "{project_name}" ({project.project_number}).',
        action_url=_project_url(project.pk),
    )


def notify_estimation_checked(estimation_id: int, checker_id: int | None) -> None:
    estimation = Estimation.objects.select_related('project').get(pk=estimation_id)
    checker = User.objects.filter(pk=checker_id).first() if checker_id else None
    checker_name = _display_name(checker, 'a team member')
    project_name = estimation.project.project_name or 'the project'
    super_admins = User.objects.filter(role=User.Roles.SUPER_ADMIN, is_active=True).exclude(email='')
    for admin in super_admins:
        send_action_email(
            recipients=[admin.email],
            subject=f"Estimation Checked: {estimation.estimation_number}",
            user_name=_display_name(admin, 'Admin'),
            headline=f"Estimation {estimation.estimation_number} for {project_name}",
            body=(
                f"Estimation {estimation.estimation_number} for project {project_name} has been checked "
                f"by {checker_name} and is ready for your approval."
            ),
            action_url=_project_url(estimation.project_id),
        )
