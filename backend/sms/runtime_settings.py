from __future__ import annotations

from dataclasses import dataclass

from django.conf import settings
from django.db.utils import OperationalError, ProgrammingError

from .models import SmsSettings


@dataclass(frozen=True)
class EffectiveSmsSettings:
    enabled: bool = True
    gateway_backend: str = "console"
    service: str = "pl"
    sender_name: str = "Paradocks"
    test_mode: bool = False
    api_token: str = ""
    timeout_seconds: int = 10
    daily_limit: int = 500
    monthly_limit: int = 10000
    alert_threshold: int = 80
    alert_email: str = ""


def _safe_env_bool(value: object, *, fallback: bool = False) -> bool:
    if value is None:
        return fallback
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes"}


def _safe_int(value: object, *, fallback: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback


def _normalize_service(value: object) -> str:
    service = str(value or "pl").strip().lower()
    if service not in {SmsSettings.SERVICE_PL, SmsSettings.SERVICE_COM}:
        service = SmsSettings.SERVICE_PL
    return service


def _normalize_backend(value: object) -> str:
    backend = str(value or "console").strip().lower()
    if backend not in {"console", "smsapi"}:
        backend = "console"
    return backend


def _build_from_env() -> EffectiveSmsSettings:
    return EffectiveSmsSettings(
        enabled=_safe_env_bool(getattr(settings, "SMS_ENABLED", True), fallback=True),
        gateway_backend=_normalize_backend(getattr(settings, "SMS_GATEWAY_BACKEND", "console")),
        service=_normalize_service(getattr(settings, "SMSAPI_SERVICE", "pl")),
        sender_name=str(getattr(settings, "SMSAPI_SENDER_NAME", "Paradocks") or "Paradocks").strip(),
        test_mode=_safe_env_bool(getattr(settings, "SMSAPI_TEST_MODE", False)),
        api_token=str(getattr(settings, "SMSAPI_TOKEN", "") or "").strip(),
        timeout_seconds=_safe_int(getattr(settings, "SMSAPI_TIMEOUT_SECONDS", 10), fallback=10),
        daily_limit=_safe_int(getattr(settings, "SMS_DAILY_LIMIT", 500), fallback=500),
        monthly_limit=_safe_int(getattr(settings, "SMS_MONTHLY_LIMIT", 10000), fallback=10000),
        alert_threshold=_safe_int(getattr(settings, "SMS_ALERT_THRESHOLD", 80), fallback=80),
        alert_email=str(getattr(settings, "SMS_ALERT_EMAIL", "") or "").strip(),
    )


def get_effective_sms_settings() -> EffectiveSmsSettings:
    """Resolve SMS configuration: latest SmsSettings row, else Django settings.

    The API token, gateway backend and HTTP timeout always come from the
    environment; the admin-editable row never stores secrets.
    """

    env = _build_from_env()
    try:
        config = SmsSettings.objects.order_by("-updated_at").first()
    except (OperationalError, ProgrammingError):
        config = None

    if config is None:
        return env

    return EffectiveSmsSettings(
        enabled=bool(config.enabled),
        gateway_backend=env.gateway_backend,
        service=_normalize_service(config.service),
        sender_name=str(config.sender_name or env.sender_name).strip(),
        test_mode=bool(config.test_mode),
        api_token=env.api_token,
        timeout_seconds=env.timeout_seconds,
        daily_limit=int(config.daily_limit),
        monthly_limit=int(config.monthly_limit),
        alert_threshold=int(config.alert_threshold),
        alert_email=str(config.alert_email or env.alert_email).strip(),
    )
