from __future__ import annotations

from typing import Optional

from django.contrib.auth import get_user_model

from operations.models import Comment, Project

User = get_user_model()


def log_project_comment(
    *,
    project: Project,
    actor: Optional[User],
    content: str,
    action_type: str = Comment.ActionType.GENERAL,
    progress: Optional[int] = None,
) -> Comment:
    """Append an audit entry to the project's activity log."""
    if actor is not None and not getattr(actor, 'is_authenticated', False):
        actor = None
    return Comment.objects.create(
        project=project,
        user=actor,
        content=(content or '').strip(),
        action_type=action_type,
        progress=progress,
    )
