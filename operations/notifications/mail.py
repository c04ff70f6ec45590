from __future__ import annotations

import logging
from typing import Iterable

from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)

HTML_TEMPLATE = 'operations/email/action_notification.html'
TEXT_TEMPLATE = 'operations/email/action_notification.txt'


def send_action_email(
    *,
    recipients: Iterable[str],
    subject: str,
    user_name: str,
    headline: str,
    body: str,
    action_url: str,
) -> int:
    """Send the action notification email; returns the number of messages delivered."""
    recipient_list = [email for email in recipients if email]
    if not recipient_list:
        logger.info('No recipients for "%s"; skipping email', subject)
        return 0
    company = getattr(settings, 'COMPANY_PROFILE', {}) or {}
    context = {
        'user_name': user_name,
        'headline': headline,
        'body': body,
        'action_url': action_url,
        'company': company,
    }
    return send_mail(
        subject=subject,
        message=render_to_string(TEXT_TEMPLATE, context),
        from_email=None,
        recipient_list=recipient_list,
        html_message=render_to_string(HTML_TEMPLATE, context),
    )
