from __future__ import annotations

import logging
import os
import uuid
from concurrent.futures import ThreadPoolExecutor

from django.core.files.storage import default_storage
from rest_framework import status
from rest_framework.exceptions import APIException

logger = logging.getLogger(__name__)

QUOTATION_FOLDER = 'quotations'
WORK_COMPLETION_FOLDER = 'work-completions'
LPO_FOLDER = 'lpos'
MAX_UPLOAD_WORKERS = 4


class StorageError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'File storage failed.'
    default_code = 'storage_error'


def upload_file(file, folder: str) -> dict[str, str]:
    ext = os.path.splitext(getattr(file, 'name', '') or '')[1].lower()
    name = f"{folder}/{uuid.uuid4().hex}{ext}"
    try:
        key = default_storage.save(name, file)
    except Exception as exc:
        logger.exception('Upload of %s to %s failed', getattr(file, 'name', ''), folder)
        raise StorageError('Failed to upload file') from exc
    return {'url': default_storage.url(key), 'key': key}


def upload_files(files: dict, folder: str) -> dict:
    """Upload ``{slot: file}`` in parallel and return ``{slot: {url, key}}``.

    Files already stored when a later upload fails are left in place.
    """
    if not files:
        return {}
    if len(files) == 1:
        slot, file = next(iter(files.items()))
        return {slot: upload_file(file, folder)}
    with ThreadPoolExecutor(max_workers=min(MAX_UPLOAD_WORKERS, len(files))) as executor:
        futures = {slot: executor.submit(upload_file, file, folder) for slot, file in files.items()}
        return {slot: future.result() for slot, future in futures.items()}


def delete_file(key: str) -> None:
    if not key:
        return
    try:
        default_storage.delete(key)
    except Exception as exc:
        logger.exception('Delete of %s failed', key)
        raise StorageError('Failed to delete file') from exc


def discard_file(key: str) -> None:
    """Delete a stored file, logging instead of raising on failure."""
    try:
        delete_file(key)
    except StorageError:
        logger.warning('Leaving orphaned file %s in storage', key)
