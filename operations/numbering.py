from __future__ import annotations

from django.conf import settings
from django.utils import timezone

from .models import Estimation, Project, Quotation

# Sequences are derived from counts, not a locked counter. Two concurrent
# creations can compute the same number; the unique constraint on each number
# field rejects the second one.


def _next_free(model, field: str, build, seq: int) -> str:
    candidate = build(seq)
    while model.objects.filter(**{field: candidate}).exists():
        seq += 1
        candidate = build(seq)
    return candidate


def generate_project_number(*, year: int | None = None) -> str:
    year = year or timezone.localdate().year
    prefix = (getattr(settings, 'PROJECT_NUMBER_PREFIX', '') or 'PRJ').strip() or 'PRJ'
    seq = Project.objects.filter(created_at__year=year).count() + 1
    return _next_free(Project, 'project_number', lambda n: f"{prefix}-{year}-{n:04d}", seq)


def generate_quotation_number(*, year: int | None = None) -> str:
    year = year or timezone.localdate().year
    seq = Quotation.objects.count() + 1
    return _next_free(Quotation, 'quotation_number', lambda n: f"QTN-{year}-{n:04d}", seq)


RELATED_DOCUMENTS = {
    'EST': (Estimation, 'estimation_number'),
}


def generate_related_document_number(project: Project, prefix: str = 'EST', *, year: int | None = None) -> str:
    """Number a document that belongs to a project, e.g. ``EST-2024-0007-01``.

    The middle block is the project's primary key and the trailing block counts
    the documents of that kind already attached to the project.
    """
    model, field = RELATED_DOCUMENTS[prefix]
    year = year or timezone.localdate().year
    seq = model.objects.filter(project=project).count() + 1
    return _next_free(model, field, lambda n: f"{prefix}-{year}-{project.pk:04d}-{n:02d}", seq)
