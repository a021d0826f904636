from __future__ import annotations

import re
from typing import Any, Mapping

from .exceptions import TemplateNotFound
from .models import SmsTemplate


PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def find_template(template_key: str, language: str) -> SmsTemplate:
    template = SmsTemplate.objects.filter(key=template_key, language=language, active=True).first()
    if template is None:
        raise TemplateNotFound(template_key, language)
    return template


def render_body(body: str, data: Mapping[str, Any]) -> str:
    """Replace ``{{name}}`` tokens with ``data[name]``.

    Tokens without a matching key are kept verbatim so a missing variable is
    visible in the stored message instead of silently disappearing.
    """

    def _substitute(match: re.Match) -> str:
        name = match.group(1)
        if name not in data:
            return match.group(0)
        value = data[name]
        return "" if value is None else str(value)

    return PLACEHOLDER_PATTERN.sub(_substitute, body or "")


def render_template(template: SmsTemplate, data: Mapping[str, Any]) -> str:
    rendered = render_body(template.message_body, data)
    opt_out_text = (template.opt_out_text or "").strip()
    if opt_out_text:
        rendered = f"{rendered} {opt_out_text}"
    return rendered
