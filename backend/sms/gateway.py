from __future__ import annotations

import logging
import math
import re
import uuid
from dataclasses import dataclass
from typing import Any, Optional

import requests

from core.utils.privacy import mask_phone

from .exceptions import DeliveryError, InvalidRecipient
from .runtime_settings import EffectiveSmsSettings, get_effective_sms_settings


logger = logging.getLogger(__name__)


ENCODING_GSM7 = "GSM-7"
ENCODING_UNICODE = "Unicode"

GSM7_SINGLE_PART_LIMIT = 160
GSM7_MULTI_PART_LIMIT = 153
UNICODE_SINGLE_PART_LIMIT = 70
UNICODE_MULTI_PART_LIMIT = 67

SMSAPI_URLS = {
    "pl": "https://api.smsapi.pl/sms.do",
    "com": "https://api.smsapi.com/sms.do",
}

_PHONE_SEPARATORS = re.compile(r"[\s\-]")
_PHONE_PATTERN = re.compile(r"^\+\d{1,4}\d{6,14}$")
_NON_GSM7 = re.compile(r"[^\x00-\x7F]")


@dataclass(frozen=True)
class MessageLength:
    length: int
    parts: int
    encoding: str


@dataclass(frozen=True)
class GatewayResponse:
    provider_message_id: str
    length: int
    parts: int


def normalize_phone_number(phone_number: str) -> str:
    return _PHONE_SEPARATORS.sub("", str(phone_number or ""))


def normalize_provider_number(phone_number: str) -> str:
    """Return a provider-reported MSISDN in the "+"-prefixed form stored on SmsSend.

    SMSAPI reports numbers as bare digits ("48501234567"), the same shape the
    gateway posts after stripping the "+". A "00" international prefix is
    accepted too.
    """

    normalized = normalize_phone_number(phone_number)
    if normalized.startswith("00"):
        normalized = normalized[2:]
    if normalized and not normalized.startswith("+"):
        normalized = f"+{normalized}"
    return normalized


def validate_phone_number(phone_number: str) -> bool:
    return bool(_PHONE_PATTERN.match(normalize_phone_number(phone_number)))


def contains_unicode(message: str) -> bool:
    return bool(_NON_GSM7.search(message or ""))


def calculate_message_length(message: str) -> MessageLength:
    """Count characters and billable parts the way SMS providers do.

    Any character outside 7-bit ASCII switches the whole message to UCS-2,
    which lowers the per-part limits from 160/153 to 70/67.
    """

    message = message or ""
    length = len(message)
    if contains_unicode(message):
        encoding = ENCODING_UNICODE
        single_part_limit = UNICODE_SINGLE_PART_LIMIT
        multi_part_limit = UNICODE_MULTI_PART_LIMIT
    else:
        encoding = ENCODING_GSM7
        single_part_limit = GSM7_SINGLE_PART_LIMIT
        multi_part_limit = GSM7_MULTI_PART_LIMIT

    if length <= single_part_limit:
        parts = 1
    else:
        parts = math.ceil(length / multi_part_limit)
    return MessageLength(length=length, parts=parts, encoding=encoding)


class SmsGateway:
    name = "base"

    def send(self, to: str, message: str, metadata: Optional[dict[str, Any]] = None) -> GatewayResponse:
        raise NotImplementedError

    def validate_phone_number(self, phone_number: str) -> bool:
        return validate_phone_number(phone_number)

    def calculate_message_length(self, message: str) -> MessageLength:
        return calculate_message_length(message)

    def _prepare_recipient(self, to: str) -> str:
        normalized = normalize_phone_number(to)
        if not self.validate_phone_number(normalized):
            raise InvalidRecipient(
                f"Invalid phone number format: {mask_phone(normalized)}. "
                "Must be in international format (e.g., +48501234567)"
            )
        return normalized


class ConsoleSmsGateway(SmsGateway):
    """Development backend: logs the message instead of calling a provider."""

    name = "console"

    def send(self, to: str, message: str, metadata: Optional[dict[str, Any]] = None) -> GatewayResponse:
        to = self._prepare_recipient(to)
        length_info = self.calculate_message_length(message)
        provider_message_id = f"console-{uuid.uuid4().hex}"
        logger.info(
            "sms.console.send",
            extra={
                "to": mask_phone(to),
                "provider_message_id": provider_message_id,
                "message_length": length_info.length,
                "message_parts": length_info.parts,
                "message_body": message,
            },
        )
        return GatewayResponse(
            provider_message_id=provider_message_id,
            length=length_info.length,
            parts=length_info.parts,
        )


class SmsApiGateway(SmsGateway):
    name = "smsapi"

    def __init__(self, settings: Optional[EffectiveSmsSettings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or get_effective_sms_settings()
        self.session = session or requests.Session()

    @property
    def api_url(self) -> str:
        return SMSAPI_URLS.get(self.settings.service, SMSAPI_URLS["pl"])

    def send(self, to: str, message: str, metadata: Optional[dict[str, Any]] = None) -> GatewayResponse:
        metadata = metadata or {}
        to = self._prepare_recipient(to)

        if not self.settings.api_token:
            raise DeliveryError("SMSAPI token not configured. Set SMSAPI_TOKEN in the environment.")

        sender_name = str(metadata.get("sender_name") or self.settings.sender_name or "Paradocks")
        test_mode = bool(metadata.get("test_mode", self.settings.test_mode))
        length_info = self.calculate_message_length(message)

        data = {
            "to": to.lstrip("+"),
            "message": message,
            "from": sender_name,
            "format": "json",
            "encoding": "utf-8",
        }
        if test_mode:
            data["test"] = "1"

        logger.debug(
            "sms.smsapi.send",
            extra={
                "to": mask_phone(to),
                "from": sender_name,
                "test_mode": test_mode,
                "message_length": length_info.length,
                "message_parts": length_info.parts,
            },
        )

        try:
            response = self.session.post(
                self.api_url,
                data=data,
                headers={"Authorization": f"Bearer {self.settings.api_token}"},
                timeout=self.settings.timeout_seconds,
            )
        except requests.RequestException as exc:
            logger.error(
                "sms.smsapi.transport_error",
                extra={"to": mask_phone(to), "error": str(exc), "error_class": exc.__class__.__name__},
            )
            raise DeliveryError(f"Failed to send SMS via SMSAPI: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if response.status_code >= 400 or payload.get("error"):
            error_code = payload.get("error") or response.status_code
            error_message = str(payload.get("message") or response.reason or "unknown error")
            logger.error(
                "sms.smsapi.provider_error",
                extra={"to": mask_phone(to), "error_code": error_code, "error": error_message},
            )
            raise DeliveryError(f"Failed to send SMS via SMSAPI: {error_message} (code {error_code})")

        items = payload.get("list") if isinstance(payload.get("list"), list) else []
        first = items[0] if items and isinstance(items[0], dict) else {}
        provider_message_id = str(first.get("id") or "unknown")

        logger.info(
            "sms.smsapi.sent",
            extra={
                "to": mask_phone(to),
                "provider_message_id": provider_message_id,
                "message_length": length_info.length,
                "message_parts": length_info.parts,
                "test_mode": test_mode,
            },
        )
        return GatewayResponse(
            provider_message_id=provider_message_id,
            length=length_info.length,
            parts=length_info.parts,
        )


def get_gateway(settings: Optional[EffectiveSmsSettings] = None) -> SmsGateway:
    settings = settings or get_effective_sms_settings()
    if settings.gateway_backend == "smsapi":
        return SmsApiGateway(settings=settings)
    return ConsoleSmsGateway()
