from __future__ import annotations

from enum import Enum


class SmsErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    POLICY = "policy"
    DELIVERY = "delivery"


class SmsError(Exception):
    """Base class for every failure the SMS pipeline reports to callers.

    Callers branch on ``kind`` (configuration / policy / delivery) or on the
    stable ``code`` instead of catching broad exception types. Configuration
    and policy errors are raised before any SmsSend row exists; delivery
    errors are raised after the row and its event have been recorded.
    """

    kind: SmsErrorKind = SmsErrorKind.DELIVERY
    code: str = "sms_error"


class SendingDisabled(SmsError):
    kind = SmsErrorKind.CONFIGURATION
    code = "sending_disabled"


class TemplateNotFound(SmsError):
    kind = SmsErrorKind.CONFIGURATION
    code = "template_not_found"

    def __init__(self, template_key: str, language: str):
        self.template_key = template_key
        self.language = language
        super().__init__(f"SMS template '{template_key}' not found for language '{language}'.")


class RecipientSuppressed(SmsError):
    kind = SmsErrorKind.POLICY
    code = "recipient_suppressed"


class ConsentRequired(SmsError):
    kind = SmsErrorKind.POLICY
    code = "consent_required"


class SpendingLimitExceeded(SmsError):
    kind = SmsErrorKind.POLICY
    code = "spending_limit_exceeded"

    def __init__(self, period: str, count: int, limit: int):
        self.period = period
        self.count = count
        self.limit = limit
        super().__init__(f"{period.capitalize()} SMS limit of {limit} messages exceeded. Sent: {count}.")


class DeliveryError(SmsError):
    kind = SmsErrorKind.DELIVERY
    code = "delivery_error"


class InvalidRecipient(DeliveryError):
    code = "invalid_recipient"
