from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from sms.exceptions import SmsError
from sms.services import build_sms_service


class Command(BaseCommand):
    help = "Send a test SMS through the configured gateway."

    def add_arguments(self, parser):
        parser.add_argument("phone", help="Recipient in international format, e.g. +48501234567")
        parser.add_argument("--language", choices=["pl", "en"], default="pl")

    def handle(self, *args, **options):
        service = build_sms_service()
        try:
            sms_send = service.send_test_sms(options["phone"], language=options["language"])
        except SmsError as exc:
            raise CommandError(f"{exc.code}: {exc}") from exc

        self.stdout.write(
            self.style.SUCCESS(
                f"send_test_sms: id={sms_send.id} status={sms_send.status} "
                f"provider_message_id={sms_send.provider_message_id or '-'}"
            )
        )
