from __future__ import annotations

import re
from typing import Any, Mapping, Optional

from django.conf import settings
from django.utils import timezone

from .gateway import normalize_phone_number
from .models import SmsPreference


MARKETING_TEMPLATE_PREFIXES = (
    "promotion-",
    "marketing-",
    "offer-",
    "discount-",
    "newsletter-",
    "campaign-",
)

OPT_OUT_KEYWORDS = (
    "STOP",
    "UNSUB",
    "UNSUBSCRIBE",
    "CANCEL",
    "END",
    "QUIT",
    "REZYGNACJA",
    "KONIEC",
    "ANULUJ",
)


def is_marketing_template(template_key: str, metadata: Optional[Mapping[str, Any]] = None) -> bool:
    metadata = metadata or {}
    if "is_marketing" in metadata:
        return bool(metadata["is_marketing"])
    return str(template_key or "").startswith(MARKETING_TEMPLATE_PREFIXES)


def is_opt_out_message(message: str) -> bool:
    words = set(re.findall(r"\w+", str(message or "").upper()))
    return any(keyword in words for keyword in OPT_OUT_KEYWORDS)


def get_preference(phone: str) -> Optional[SmsPreference]:
    return SmsPreference.objects.filter(phone=normalize_phone_number(phone)).first()


def get_or_create_preference(phone: str) -> SmsPreference:
    preference, _created = SmsPreference.objects.get_or_create(
        phone=normalize_phone_number(phone),
        defaults={
            "marketing_opt_in": bool(getattr(settings, "SMS_MARKETING_DEFAULT_OPT_IN", False)),
        },
    )
    return preference


def has_consent(phone: str, *, marketing: bool) -> bool:
    preference = get_preference(phone)
    if preference is None:
        if marketing:
            return bool(getattr(settings, "SMS_MARKETING_DEFAULT_OPT_IN", False))
        return True
    if marketing:
        return bool(preference.sms_opt_in and preference.marketing_opt_in)
    return bool(preference.sms_opt_in)


def revoke_consent(phone: str) -> SmsPreference:
    preference = get_or_create_preference(phone)
    if preference.sms_opt_in or preference.marketing_opt_in:
        preference.sms_opt_in = False
        preference.marketing_opt_in = False
        preference.opted_out_at = timezone.now()
        preference.save(update_fields=["sms_opt_in", "marketing_opt_in", "opted_out_at", "updated_at"])
    return preference
