from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Mapping, Optional

from django.core.cache import cache
from django.core.mail import send_mail
from django.db import IntegrityError, transaction
from django.utils import timezone

from core.utils.privacy import mask_phone

from .exceptions import (
    ConsentRequired,
    RecipientSuppressed,
    SendingDisabled,
    SpendingLimitExceeded,
)
from .gateway import SmsGateway, get_gateway, normalize_phone_number
from .models import SmsEvent, SmsSend, SmsTemplate
from .preferences import has_consent, is_marketing_template
from .runtime_settings import EffectiveSmsSettings, get_effective_sms_settings
from .suppression import is_suppressed
from .templating import find_template, render_template


logger = logging.getLogger(__name__)


TEST_MESSAGES = {
    "pl": "To jest testowa wiadomość SMS z systemu Paradocks.",
    "en": "This is a test SMS message from Paradocks system.",
}


def build_message_key(template_key: str, recipient: str, metadata: Optional[Mapping[str, Any]]) -> str:
    canonical_metadata = json.dumps(metadata or {}, sort_keys=True, separators=(",", ":"), default=str)
    raw = f"{template_key}:{recipient}:{canonical_metadata}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class SmsService:
    """Templated SMS dispatch with idempotency, suppression and audit trail.

    A logical notification (template key + recipient + metadata) is delivered
    at most once: its message key is unique in ``SmsSend`` and a repeated call
    returns the stored record without touching the gateway. Every delivery
    attempt is persisted as ``pending`` before the network call and finishes
    as ``sent`` or ``failed`` with a matching ``SmsEvent``.
    """

    def __init__(self, gateway: SmsGateway, settings: EffectiveSmsSettings):
        self.gateway = gateway
        self.settings = settings

    def send_from_template(
        self,
        template_key: str,
        language: str,
        recipient: str,
        data: Mapping[str, Any],
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> SmsSend:
        metadata = dict(metadata or {})
        recipient = normalize_phone_number(recipient)
        log_context = {"recipient": mask_phone(recipient), "template": template_key}

        if not self.settings.enabled:
            logger.warning("sms.dispatch.disabled", extra=log_context)
            raise SendingDisabled("SMS sending is currently disabled in system settings.")

        if is_suppressed(recipient):
            logger.warning("sms.dispatch.suppressed", extra=log_context)
            raise RecipientSuppressed(f"Phone number {mask_phone(recipient)} is suppressed and cannot receive SMS.")

        marketing = is_marketing_template(template_key, metadata)
        if not has_consent(recipient, marketing=marketing):
            logger.warning("sms.dispatch.no_consent", extra={**log_context, "marketing": marketing})
            if marketing:
                raise ConsentRequired("Recipient has not given SMS marketing consent or has opted out.")
            raise ConsentRequired("Recipient has not given SMS consent or has opted out.")

        self._check_spending_limits()

        template = find_template(template_key, language)

        message_key = build_message_key(template_key, recipient, metadata)
        existing = SmsSend.objects.filter(message_key=message_key).first()
        if existing is not None:
            logger.info(
                "sms.dispatch.duplicate",
                extra={"message_key": message_key, "sms_send_id": existing.id},
            )
            return existing

        message_body, length_info = self._render(template, data)

        try:
            with transaction.atomic():
                sms_send = SmsSend.objects.create(
                    template_key=template_key,
                    language=language,
                    phone_to=recipient,
                    message_body=message_body,
                    status=SmsSend.STATUS_PENDING,
                    metadata=metadata,
                    message_key=message_key,
                    message_length=length_info.length,
                    message_parts=length_info.parts,
                )
        except IntegrityError:
            existing = SmsSend.objects.filter(message_key=message_key).first()
            if existing is not None:
                return existing
            raise

        self._deliver(sms_send, metadata)
        return sms_send

    def send_test_sms(self, recipient: str, language: str = "pl") -> SmsSend:
        recipient = normalize_phone_number(recipient)
        message_body = TEST_MESSAGES.get(language, TEST_MESSAGES["en"])
        length_info = self.gateway.calculate_message_length(message_body)
        sms_send = SmsSend.objects.create(
            template_key="test-message",
            language=language,
            phone_to=recipient,
            message_body=message_body,
            status=SmsSend.STATUS_PENDING,
            metadata={"type": "test"},
            message_key=build_message_key("test-message", recipient, {"at": timezone.now().isoformat()}),
            message_length=length_info.length,
            message_parts=length_info.parts,
        )
        self._deliver(sms_send, {"test_mode": False})
        return sms_send

    def _render(self, template: SmsTemplate, data: Mapping[str, Any]):
        message_body = render_template(template, data)
        length_info = self.gateway.calculate_message_length(message_body)
        if length_info.length > template.max_length:
            # Truncation keeps the send going; it can cut a word or a token in half.
            logger.warning(
                "sms.dispatch.truncated",
                extra={
                    "template": template.key,
                    "length": length_info.length,
                    "max_length": template.max_length,
                },
            )
            message_body = message_body[: template.max_length]
            length_info = self.gateway.calculate_message_length(message_body)
        return message_body, length_info

    def _deliver(self, sms_send: SmsSend, metadata: Mapping[str, Any]) -> None:
        try:
            response = self.gateway.send(sms_send.phone_to, sms_send.message_body, dict(metadata))
        except Exception as exc:
            # invalid_number is reserved for provider callbacks; a rejected send is failed.
            self._record_failure(sms_send, exc)
            raise

        now = timezone.now()
        sms_send.status = SmsSend.STATUS_SENT
        sms_send.sent_at = now
        sms_send.provider_message_id = response.provider_message_id
        sms_send.error_message = ""
        sms_send.save(update_fields=["status", "sent_at", "provider_message_id", "error_message", "updated_at"])

        SmsEvent.objects.create(
            sms_send=sms_send,
            event_type=SmsEvent.EVENT_SENT,
            occurred_at=now,
            event_data={
                "sent_at": now.isoformat(),
                "provider_message_id": response.provider_message_id,
                "gateway": self.gateway.name,
            },
        )
        logger.info(
            "sms.dispatch.sent",
            extra={
                "sms_send_id": sms_send.id,
                "recipient": mask_phone(sms_send.phone_to),
                "template": sms_send.template_key,
                "provider_message_id": response.provider_message_id,
            },
        )

    def _record_failure(self, sms_send: SmsSend, exc: Exception) -> None:
        now = timezone.now()
        sms_send.status = SmsSend.STATUS_FAILED
        sms_send.error_message = str(exc) or exc.__class__.__name__
        sms_send.save(update_fields=["status", "error_message", "updated_at"])

        SmsEvent.objects.create(
            sms_send=sms_send,
            event_type=SmsEvent.EVENT_FAILED,
            occurred_at=now,
            event_data={"error": sms_send.error_message, "failed_at": now.isoformat()},
        )
        logger.error(
            "sms.dispatch.failed",
            extra={
                "sms_send_id": sms_send.id,
                "recipient": mask_phone(sms_send.phone_to),
                "template": sms_send.template_key,
                "error": sms_send.error_message,
            },
        )

    def _check_spending_limits(self) -> None:
        now = timezone.localtime()
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        month_start = day_start.replace(day=1)

        today_count = SmsSend.objects.filter(created_at__gte=day_start).count()
        month_count = SmsSend.objects.filter(created_at__gte=month_start).count()

        if today_count >= self.settings.daily_limit:
            logger.error(
                "sms.limits.daily_exceeded",
                extra={"today_count": today_count, "daily_limit": self.settings.daily_limit},
            )
            raise SpendingLimitExceeded("daily", today_count, self.settings.daily_limit)

        if month_count >= self.settings.monthly_limit:
            logger.error(
                "sms.limits.monthly_exceeded",
                extra={"month_count": month_count, "monthly_limit": self.settings.monthly_limit},
            )
            raise SpendingLimitExceeded("monthly", month_count, self.settings.monthly_limit)

        threshold = self.settings.alert_threshold / 100
        if today_count >= self.settings.daily_limit * threshold:
            self._send_spending_alert("daily", today_count, self.settings.daily_limit, f"sms_daily_alert_sent_{now:%Y-%m-%d}")
        if month_count >= self.settings.monthly_limit * threshold:
            self._send_spending_alert("monthly", month_count, self.settings.monthly_limit, f"sms_monthly_alert_sent_{now:%Y-%m}")

    def _send_spending_alert(self, period: str, count: int, limit: int, cache_key: str) -> None:
        # cache.add is a no-op when the key exists: one alert per period.
        if not cache.add(cache_key, True, timeout=32 * 24 * 3600):
            return

        percentage = round(count / limit * 100) if limit else 100
        logger.warning(
            "sms.limits.threshold_reached",
            extra={"period": period, "current_count": count, "limit": limit, "percentage": percentage},
        )
        if not self.settings.alert_email:
            logger.warning("sms.limits.alert_email_missing")
            return

        send_mail(
            subject=f"SMS {period} spending threshold reached ({percentage}%)",
            message=f"{count} of {limit} {period} SMS messages have been used ({percentage}%).",
            from_email=None,
            recipient_list=[self.settings.alert_email],
            fail_silently=True,
        )


def build_sms_service(
    gateway: Optional[SmsGateway] = None,
    settings: Optional[EffectiveSmsSettings] = None,
) -> SmsService:
    settings = settings or get_effective_sms_settings()
    return SmsService(gateway=gateway or get_gateway(settings), settings=settings)
