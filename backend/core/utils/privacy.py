from __future__ import annotations


def mask_phone(phone: str | None) -> str:
    """Mask a phone number for log output: "+48501234567" -> "+48***67"."""

    value = str(phone or "")
    if not value:
        return "[empty]"
    if len(value) <= 5:
        return value[:2] + "***"
    return f"{value[:3]}***{value[-2:]}"
