from datetime import timedelta
from io import StringIO
from unittest.mock import patch

from django.conf import settings
from django.core import mail
from django.core.cache import cache
from django.core.management import call_command
from django.db import IntegrityError
from django.test import TestCase, override_settings
from django.utils import timezone

from .exceptions import (
	ConsentRequired,
	DeliveryError,
	InvalidRecipient,
	RecipientSuppressed,
	SendingDisabled,
	SmsErrorKind,
	SpendingLimitExceeded,
	TemplateNotFound,
)
from .gateway import ConsoleSmsGateway, GatewayResponse, SmsGateway
from .models import SmsEvent, SmsPreference, SmsSend, SmsSettings, SmsSuppression, SmsTemplate
from .runtime_settings import EffectiveSmsSettings, get_effective_sms_settings
from .services import SmsService, build_message_key
from .tasks import cleanup_old_sms_logs, cleanup_sms_logs, send_sms_from_template
from .templating import find_template, render_body


RECIPIENT = "+48501234567"


class RecordingGateway(SmsGateway):
	name = "recording"

	def __init__(self, error=None):
		self.calls = []
		self.error = error

	def send(self, to, message, metadata=None):
		self.calls.append((to, message, metadata))
		if self.error is not None:
			raise self.error
		length_info = self.calculate_message_length(message)
		return GatewayResponse(
			provider_message_id=f"msg-{len(self.calls)}",
			length=length_info.length,
			parts=length_info.parts,
		)


def _settings(**overrides) -> EffectiveSmsSettings:
	values = {"enabled": True, "daily_limit": 500, "monthly_limit": 10000, "alert_threshold": 80}
	values.update(overrides)
	return EffectiveSmsSettings(**values)


@override_settings(SMS_MARKETING_DEFAULT_OPT_IN=False)
class SmsDispatchTests(TestCase):
	def setUp(self):
		cache.clear()
		self.template = SmsTemplate.objects.create(
			key="visit-confirmed",
			language="pl",
			message_body="Witaj {{customer_name}}! Wizyta {{date}}.",
			max_length=160,
		)
		self.gateway = RecordingGateway()
		self.service = SmsService(gateway=self.gateway, settings=_settings())

	def _dispatch(self, **kwargs):
		params = {
			"template_key": "visit-confirmed",
			"language": "pl",
			"recipient": RECIPIENT,
			"data": {"customer_name": "Jan", "date": "2025-01-10"},
			"metadata": {"appointment_id": 1},
		}
		params.update(kwargs)
		return self.service.send_from_template(**params)

	def test_successful_dispatch_records_sent_with_event(self):
		sms_send = self._dispatch()

		self.assertEqual(sms_send.status, SmsSend.STATUS_SENT)
		self.assertEqual(sms_send.message_body, "Witaj Jan! Wizyta 2025-01-10.")
		self.assertEqual(sms_send.provider_message_id, "msg-1")
		self.assertIsNotNone(sms_send.sent_at)
		self.assertEqual(sms_send.message_key, build_message_key("visit-confirmed", RECIPIENT, {"appointment_id": 1}))
		events = list(sms_send.events.all())
		self.assertEqual(len(events), 1)
		self.assertEqual(events[0].event_type, SmsEvent.EVENT_SENT)
		self.assertEqual(events[0].event_data["provider_message_id"], "msg-1")

	def test_identical_dispatch_is_idempotent(self):
		first = self._dispatch()
		second = self._dispatch(data={"customer_name": "Other", "date": "x"})

		self.assertEqual(first.id, second.id)
		self.assertEqual(SmsSend.objects.count(), 1)
		self.assertEqual(len(self.gateway.calls), 1)

	def test_metadata_key_order_does_not_change_identity(self):
		first = self._dispatch(metadata={"a": 1, "b": 2})
		second = self._dispatch(metadata={"b": 2, "a": 1})
		self.assertEqual(first.id, second.id)

	def test_different_metadata_is_a_different_notification(self):
		self._dispatch(metadata={"appointment_id": 1})
		self._dispatch(metadata={"appointment_id": 2})
		self.assertEqual(SmsSend.objects.count(), 2)
		self.assertEqual(len(self.gateway.calls), 2)

	def test_recipient_separators_are_normalized(self):
		first = self._dispatch(recipient="+48 501-234-567")
		second = self._dispatch()
		self.assertEqual(first.id, second.id)
		self.assertEqual(first.phone_to, RECIPIENT)

	def test_insert_race_returns_winner_record(self):
		key = build_message_key("visit-confirmed", RECIPIENT, {"appointment_id": 1})
		winner = SmsSend.objects.create(
			template_key="visit-confirmed",
			language="pl",
			phone_to=RECIPIENT,
			message_body="winner",
			status=SmsSend.STATUS_SENT,
			message_key=key,
		)
		real_filter = SmsSend.objects.filter
		lookups = {"count": 0}

		def filter_hiding_winner_once(*args, **kwargs):
			if "message_key" in kwargs:
				lookups["count"] += 1
				if lookups["count"] == 1:
					return SmsSend.objects.none()
			return real_filter(*args, **kwargs)

		with patch.object(SmsSend.objects, "filter", side_effect=filter_hiding_winner_once), patch.object(
			SmsSend.objects, "create", side_effect=IntegrityError("duplicate key value")
		):
			result = self._dispatch()

		self.assertEqual(result.id, winner.id)
		self.assertEqual(self.gateway.calls, [])

	def test_suppressed_recipient_is_rejected_without_record(self):
		SmsSuppression.objects.create(phone=RECIPIENT, reason=SmsSuppression.REASON_OPTED_OUT, suppressed_at=timezone.now())

		with self.assertRaises(RecipientSuppressed) as ctx:
			self._dispatch()

		self.assertEqual(ctx.exception.kind, SmsErrorKind.POLICY)
		self.assertEqual(SmsSend.objects.count(), 0)
		self.assertEqual(self.gateway.calls, [])

	def test_disabled_sending_raises_configuration_error(self):
		self.service = SmsService(gateway=self.gateway, settings=_settings(enabled=False))

		with self.assertRaises(SendingDisabled) as ctx:
			self._dispatch()

		self.assertEqual(ctx.exception.kind, SmsErrorKind.CONFIGURATION)
		self.assertEqual(SmsSend.objects.count(), 0)

	def test_long_message_is_truncated_to_template_limit(self):
		SmsTemplate.objects.create(key="long-notice", language="pl", message_body="a" * 200, max_length=160)

		sms_send = self._dispatch(template_key="long-notice", data={})

		self.assertEqual(len(sms_send.message_body), 160)
		self.assertEqual(sms_send.message_length, 160)
		self.assertEqual(sms_send.message_parts, 1)
		self.assertEqual(self.gateway.calls[0][1], "a" * 160)

	def test_opt_out_text_is_appended(self):
		self.template.opt_out_text = "Wyslij STOP aby zrezygnowac"
		self.template.save()

		sms_send = self._dispatch()

		self.assertTrue(sms_send.message_body.endswith(". Wyslij STOP aby zrezygnowac"))

	def test_unresolved_placeholder_stays_literal(self):
		sms_send = self._dispatch(data={"customer_name": "Jan"})
		self.assertEqual(sms_send.message_body, "Witaj Jan! Wizyta {{date}}.")

	def test_gateway_failure_is_recorded_then_raised(self):
		self.gateway.error = DeliveryError("provider down")

		with self.assertRaises(DeliveryError):
			self._dispatch()

		sms_send = SmsSend.objects.get()
		self.assertEqual(sms_send.status, SmsSend.STATUS_FAILED)
		self.assertEqual(sms_send.error_message, "provider down")
		self.assertEqual(sms_send.events.filter(event_type=SmsEvent.EVENT_FAILED).count(), 1)
		self.assertEqual(sms_send.events.count(), 1)

	def test_unexpected_gateway_exception_propagates_unchanged(self):
		self.gateway.error = RuntimeError("socket closed")

		with self.assertRaises(RuntimeError):
			self._dispatch()

		self.assertEqual(SmsSend.objects.get().status, SmsSend.STATUS_FAILED)

	def test_rejected_recipient_is_recorded_as_failed(self):
		self.service = SmsService(gateway=ConsoleSmsGateway(), settings=_settings())

		with self.assertRaises(InvalidRecipient):
			self._dispatch(recipient="501234567")

		sms_send = SmsSend.objects.get()
		self.assertEqual(sms_send.status, SmsSend.STATUS_FAILED)
		self.assertIn("Invalid phone number format", sms_send.error_message)
		self.assertEqual(list(sms_send.events.values_list("event_type", flat=True)), [SmsEvent.EVENT_FAILED])

	def test_template_language_must_match(self):
		with self.assertRaises(TemplateNotFound):
			self._dispatch(language="en")
		self.assertEqual(SmsSend.objects.count(), 0)

	def test_inactive_template_is_not_found(self):
		self.template.active = False
		self.template.save()

		with self.assertRaises(TemplateNotFound):
			find_template("visit-confirmed", "pl")

	def test_transactional_requires_sms_opt_in_when_preference_exists(self):
		SmsPreference.objects.create(phone=RECIPIENT, sms_opt_in=False)

		with self.assertRaises(ConsentRequired):
			self._dispatch()
		self.assertEqual(SmsSend.objects.count(), 0)

	def test_marketing_template_requires_marketing_opt_in(self):
		SmsTemplate.objects.create(key="promotion-spring", language="pl", message_body="Rabat 20%!")

		with self.assertRaises(ConsentRequired):
			self._dispatch(template_key="promotion-spring", data={})

		SmsPreference.objects.create(phone=RECIPIENT, sms_opt_in=True, marketing_opt_in=True)
		sms_send = self._dispatch(template_key="promotion-spring", data={})
		self.assertEqual(sms_send.status, SmsSend.STATUS_SENT)

	def test_daily_limit_blocks_dispatch(self):
		self.service = SmsService(gateway=self.gateway, settings=_settings(daily_limit=1))
		self._dispatch()

		with self.assertRaises(SpendingLimitExceeded) as ctx:
			self._dispatch(metadata={"appointment_id": 2})

		self.assertEqual(ctx.exception.period, "daily")
		self.assertEqual(SmsSend.objects.count(), 1)

	def test_monthly_limit_blocks_dispatch(self):
		self.service = SmsService(gateway=self.gateway, settings=_settings(monthly_limit=1))
		self._dispatch()

		with self.assertRaises(SpendingLimitExceeded) as ctx:
			self._dispatch(metadata={"appointment_id": 2})

		self.assertEqual(ctx.exception.period, "monthly")

	@override_settings(EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend")
	def test_threshold_alert_is_emailed_once_per_day(self):
		self.service = SmsService(
			gateway=self.gateway,
			settings=_settings(daily_limit=10, alert_threshold=10, alert_email="ops@example.com"),
		)

		self._dispatch(metadata={"appointment_id": 1})
		self._dispatch(metadata={"appointment_id": 2})
		self._dispatch(metadata={"appointment_id": 3})

		self.assertEqual(len(mail.outbox), 1)
		self.assertEqual(mail.outbox[0].to, ["ops@example.com"])

	def test_send_test_sms_is_not_idempotent(self):
		first = self.service.send_test_sms(RECIPIENT, language="en")
		with patch("sms.services.timezone.now", return_value=timezone.now() + timedelta(seconds=1)):
			second = self.service.send_test_sms(RECIPIENT, language="en")

		self.assertNotEqual(first.id, second.id)
		self.assertEqual(first.message_body, "This is a test SMS message from Paradocks system.")
		self.assertEqual(first.status, SmsSend.STATUS_SENT)
		self.assertEqual(self.gateway.calls[0][2], {"test_mode": False})


class RenderBodyTests(TestCase):
	def test_tokens_with_spaces_and_none_values(self):
		self.assertEqual(render_body("{{ a }}-{{b}}", {"a": 1, "b": None}), "1-")


class RuntimeSettingsTests(TestCase):
	@override_settings(SMS_ENABLED=True, SMS_DAILY_LIMIT=42, SMS_GATEWAY_BACKEND="smsapi", SMSAPI_TOKEN="secret")
	def test_environment_is_used_without_settings_row(self):
		effective = get_effective_sms_settings()
		self.assertTrue(effective.enabled)
		self.assertEqual(effective.daily_limit, 42)
		self.assertEqual(effective.gateway_backend, "smsapi")

	@override_settings(SMS_ENABLED=True, SMSAPI_TOKEN="secret")
	def test_settings_row_overrides_environment_except_token(self):
		SmsSettings.objects.create(enabled=False, daily_limit=7, service=SmsSettings.SERVICE_COM)

		effective = get_effective_sms_settings()

		self.assertFalse(effective.enabled)
		self.assertEqual(effective.daily_limit, 7)
		self.assertEqual(effective.service, "com")
		self.assertEqual(effective.api_token, "secret")


class SendSmsTaskTests(TestCase):
	def setUp(self):
		SmsTemplate.objects.create(key="visit-confirmed", language="pl", message_body="Hej {{name}}")
		self.gateway = RecordingGateway()
		self.service = SmsService(gateway=self.gateway, settings=_settings())

	def test_task_returns_send_id(self):
		with patch("sms.services.build_sms_service", return_value=self.service):
			sms_send_id = send_sms_from_template("visit-confirmed", "pl", RECIPIENT, {"name": "Ala"})

		self.assertEqual(SmsSend.objects.get().id, sms_send_id)

	def test_policy_errors_are_skipped(self):
		SmsSuppression.objects.create(phone=RECIPIENT, reason=SmsSuppression.REASON_MANUAL, suppressed_at=timezone.now())

		with patch("sms.services.build_sms_service", return_value=self.service):
			result = send_sms_from_template("visit-confirmed", "pl", RECIPIENT, {"name": "Ala"})

		self.assertIsNone(result)

	def test_delivery_errors_propagate(self):
		self.gateway.error = DeliveryError("timeout")

		with patch("sms.services.build_sms_service", return_value=self.service):
			with self.assertRaises(DeliveryError):
				send_sms_from_template("visit-confirmed", "pl", RECIPIENT, {"name": "Ala"})


class CleanupSmsLogsTests(TestCase):
	def _create_send(self, key: str, days_old: int) -> SmsSend:
		sms_send = SmsSend.objects.create(
			template_key="visit-confirmed",
			language="pl",
			phone_to=RECIPIENT,
			message_body="x",
			status=SmsSend.STATUS_SENT,
			message_key=key,
		)
		SmsEvent.objects.create(sms_send=sms_send, event_type=SmsEvent.EVENT_SENT, occurred_at=timezone.now())
		SmsSend.objects.filter(id=sms_send.id).update(created_at=timezone.now() - timedelta(days=days_old))
		return sms_send

	def test_old_sends_and_events_are_deleted(self):
		self._create_send("old", days_old=120)
		recent = self._create_send("recent", days_old=1)
		SmsSuppression.objects.create(phone=RECIPIENT, reason=SmsSuppression.REASON_MANUAL, suppressed_at=timezone.now())

		deleted = cleanup_sms_logs(days=90)

		self.assertEqual(deleted, 1)
		self.assertEqual(list(SmsSend.objects.values_list("id", flat=True)), [recent.id])
		self.assertEqual(SmsEvent.objects.count(), 1)
		self.assertEqual(SmsSuppression.objects.count(), 1)

	def test_dry_run_command_keeps_rows(self):
		self._create_send("old", days_old=120)
		out = StringIO()

		call_command("cleanup_sms_logs", "--days", "90", "--dry-run", stdout=out)

		self.assertIn("sends=1 dry_run=True", out.getvalue())
		self.assertEqual(SmsSend.objects.count(), 1)

	def test_cleanup_task_runs_nightly_from_beat(self):
		entry = settings.CELERY_BEAT_SCHEDULE["sms-cleanup-old-logs"]

		self.assertEqual(entry["task"], cleanup_old_sms_logs.name)
		self.assertEqual(entry["schedule"].hour, {3})
		self.assertEqual(entry["schedule"].minute, {0})

	@override_settings(SMS_RETENTION_DAYS=30)
	def test_cleanup_task_uses_configured_retention(self):
		self._create_send("old", days_old=45)

		self.assertEqual(cleanup_old_sms_logs(), 1)
		self.assertEqual(SmsSend.objects.count(), 0)
