from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Optional

from celery import shared_task
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.utils.privacy import mask_phone

from .exceptions import SmsErrorKind, SmsError
from .models import SmsSend


logger = logging.getLogger(__name__)


def cleanup_sms_logs(*, days: Optional[int] = None, dry_run: bool = False) -> int:
    """Delete SmsSend rows (and their events) older than the retention window.

    Suppressions and preferences are never touched. Returns the number of
    sends that were (or, with ``dry_run``, would be) deleted.
    """

    retention_days = int(days if days is not None else getattr(settings, "SMS_RETENTION_DAYS", 90))
    cutoff = timezone.now() - timedelta(days=retention_days)
    to_delete = SmsSend.objects.filter(created_at__lt=cutoff)
    count = to_delete.count()

    if not dry_run and count:
        with transaction.atomic():
            to_delete.delete()

    logger.info(
        "sms.cleanup.done",
        extra={"retention_days": retention_days, "deleted_sends": count, "dry_run": dry_run},
    )
    return count


@shared_task
def send_sms_from_template(
    template_key: str,
    language: str,
    recipient: str,
    data: Optional[dict[str, Any]] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> Optional[int]:
    from .services import build_sms_service  # noqa: PLC0415

    try:
        sms_send = build_sms_service().send_from_template(
            template_key,
            language,
            recipient,
            data or {},
            metadata=metadata,
        )
    except SmsError as exc:
        if exc.kind == SmsErrorKind.DELIVERY or exc.code == "template_not_found":
            raise
        logger.info(
            "sms.task.skip",
            extra={
                "template": template_key,
                "recipient": mask_phone(recipient),
                "reason": exc.code,
            },
        )
        return None

    return sms_send.id


@shared_task
def cleanup_old_sms_logs() -> int:
    return cleanup_sms_logs()
