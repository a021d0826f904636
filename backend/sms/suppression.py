from __future__ import annotations

import logging

from django.utils import timezone

from core.utils.privacy import mask_phone

from .gateway import normalize_phone_number
from .models import SmsSuppression


logger = logging.getLogger(__name__)


def is_suppressed(phone: str) -> bool:
    return SmsSuppression.objects.filter(phone=normalize_phone_number(phone)).exists()


def suppress(phone: str, reason: str) -> SmsSuppression:
    """Add a phone to the suppression list; an existing entry is left as is."""

    normalized = normalize_phone_number(phone)
    suppression, created = SmsSuppression.objects.get_or_create(
        phone=normalized,
        defaults={"reason": reason, "suppressed_at": timezone.now()},
    )
    if created:
        logger.info("sms.suppression.added", extra={"phone": mask_phone(normalized), "reason": reason})
    return suppression


def unsuppress(phone: str) -> bool:
    deleted, _ = SmsSuppression.objects.filter(phone=normalize_phone_number(phone)).delete()
    return deleted > 0
