from __future__ import annotations

import logging
from io import BytesIO

from django.http import HttpResponse
from django.template.loader import render_to_string
from django.utils import timezone
from rest_framework.exceptions import APIException
from xhtml2pdf import pisa

logger = logging.getLogger(__name__)


def render_pdf(html: str) -> bytes:
    with BytesIO() as pdf_file:
        result = pisa.CreatePDF(html, dest=pdf_file, encoding='UTF-8')
        if result.err:
            logger.error('PDF rendering reported %s error(s)', result.err)
            raise APIException('Failed to generate PDF')
        return pdf_file.getvalue()


def safe_filename(value: str) -> str:
    safe = ''.join(ch if ch.isalnum() or ch in '._-' else '-' for ch in value)
    safe = safe.strip('-') or 'document'
    return safe


def pdf_response(template: str, context: dict, *, kind: str, number: str) -> HttpResponse:
    context = {'generated_on': timezone.localtime(), **context}
    pdf_file = render_pdf(render_to_string(template, context))
    response = HttpResponse(pdf_file, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="{kind}-{safe_filename(number)}.pdf"'
    return response
