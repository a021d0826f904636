from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from .exceptions import DeliveryError, RecipientSuppressed
from .gateway import ConsoleSmsGateway
from .models import SmsEvent, SmsPreference, SmsSend, SmsSuppression, SmsTemplate
from .runtime_settings import EffectiveSmsSettings
from .services import SmsService
from .suppression import is_suppressed
from .views import map_smsapi_status


User = get_user_model()

RECIPIENT = "+48501234567"


def _create_send(*, provider_message_id: str, status: str = SmsSend.STATUS_SENT, key: str = "", phone: str = RECIPIENT) -> SmsSend:
	return SmsSend.objects.create(
		template_key="visit-confirmed",
		language="pl",
		phone_to=phone,
		message_body="Hej",
		status=status,
		message_key=key or f"key-{provider_message_id}",
		provider_message_id=provider_message_id,
	)


class StatusMappingTests(TestCase):
	def test_known_and_unknown_statuses(self):
		self.assertEqual(map_smsapi_status("queue"), SmsSend.STATUS_SENT)
		self.assertEqual(map_smsapi_status("ACCEPTED"), SmsSend.STATUS_DELIVERED)
		self.assertEqual(map_smsapi_status("INVALID_SENDER"), SmsSend.STATUS_INVALID_NUMBER)
		self.assertEqual(map_smsapi_status("NOT_DELIVERED"), SmsSend.STATUS_EXPIRED)
		self.assertEqual(map_smsapi_status("SOMETHING_NEW"), SmsSend.STATUS_FAILED)


@override_settings(SMSAPI_WEBHOOK_SECRET="")
class DeliveryStatusWebhookTests(TestCase):
	url = "/api/sms/webhooks/delivery-status/"

	def setUp(self):
		self.client = APIClient()

	def test_delivered_callback_updates_status_and_records_event(self):
		sms_send = _create_send(provider_message_id="abc")

		response = self.client.post(self.url, {"id": "abc", "status": "DELIVERED"}, format="json")

		self.assertEqual(response.status_code, 200)
		sms_send.refresh_from_db()
		self.assertEqual(sms_send.status, SmsSend.STATUS_DELIVERED)
		event = SmsEvent.objects.get(sms_send=sms_send)
		self.assertEqual(event.event_type, SmsEvent.EVENT_DELIVERED)
		self.assertEqual(event.event_data["smsapi_status"], "DELIVERED")

	def test_msgid_query_callback_is_accepted(self):
		sms_send = _create_send(provider_message_id="q1")

		response = self.client.get(self.url, {"MsgId": "q1", "status": "DELIVERED"})

		self.assertEqual(response.status_code, 200)
		sms_send.refresh_from_db()
		self.assertEqual(sms_send.status, SmsSend.STATUS_DELIVERED)

	def test_status_never_moves_backwards(self):
		sms_send = _create_send(provider_message_id="abc", status=SmsSend.STATUS_DELIVERED)

		self.client.post(self.url, {"id": "abc", "status": "SENT"}, format="json")

		sms_send.refresh_from_db()
		self.assertEqual(sms_send.status, SmsSend.STATUS_DELIVERED)
		self.assertEqual(sms_send.events.count(), 1)

	def test_invalid_number_suppresses_recipient(self):
		_create_send(provider_message_id="abc")

		self.client.post(self.url, {"id": "abc", "status": "INVALID"}, format="json")

		suppression = SmsSuppression.objects.get(phone=RECIPIENT)
		self.assertEqual(suppression.reason, SmsSuppression.REASON_INVALID_NUMBER)

	def test_third_failure_suppresses_recipient(self):
		_create_send(provider_message_id="f1", status=SmsSend.STATUS_FAILED)
		_create_send(provider_message_id="f2", status=SmsSend.STATUS_FAILED)
		_create_send(provider_message_id="f3")

		self.client.post(self.url, {"id": "f3", "status": "FAILED"}, format="json")

		suppression = SmsSuppression.objects.get(phone=RECIPIENT)
		self.assertEqual(suppression.reason, SmsSuppression.REASON_FAILED_REPEATEDLY)

	def test_invalid_callback_with_bare_msisdn_blocks_future_dispatch(self):
		_create_send(provider_message_id="abc")
		SmsTemplate.objects.create(key="visit-confirmed", language="pl", message_body="Hej")

		self.client.post(self.url, {"id": "abc", "status": "INVALID", "to": "48501234567"}, format="json")

		self.assertTrue(is_suppressed(RECIPIENT))
		self.assertFalse(SmsSuppression.objects.filter(phone="48501234567").exists())
		service = SmsService(gateway=ConsoleSmsGateway(), settings=EffectiveSmsSettings())
		with self.assertRaises(RecipientSuppressed):
			service.send_from_template("visit-confirmed", "pl", RECIPIENT, {}, metadata={"appointment_id": 9})

	def test_failure_count_matches_stored_recipient_for_bare_msisdn(self):
		_create_send(provider_message_id="f1", status=SmsSend.STATUS_FAILED)
		_create_send(provider_message_id="f2", status=SmsSend.STATUS_FAILED)
		_create_send(provider_message_id="f3")

		self.client.post(self.url, {"id": "f3", "status": "FAILED", "to": "48501234567"}, format="json")

		suppression = SmsSuppression.objects.get(phone=RECIPIENT)
		self.assertEqual(suppression.reason, SmsSuppression.REASON_FAILED_REPEATEDLY)

	def test_second_failure_does_not_suppress(self):
		_create_send(provider_message_id="f1", status=SmsSend.STATUS_FAILED)
		_create_send(provider_message_id="f2")

		self.client.post(self.url, {"id": "f2", "status": "FAILED"}, format="json")

		self.assertFalse(SmsSuppression.objects.exists())

	def test_unknown_message_id_is_accepted(self):
		response = self.client.post(self.url, {"id": "missing", "status": "DELIVERED"}, format="json")

		self.assertEqual(response.status_code, 200)
		self.assertEqual(SmsEvent.objects.count(), 0)

	def test_missing_fields_are_rejected(self):
		response = self.client.post(self.url, {"status": "DELIVERED"}, format="json")
		self.assertEqual(response.status_code, 400)

	@override_settings(SMSAPI_WEBHOOK_SECRET="s3cret")
	def test_secret_is_enforced_when_configured(self):
		sms_send = _create_send(provider_message_id="abc")

		denied = self.client.post(self.url, {"id": "abc", "status": "DELIVERED"}, format="json")
		allowed = self.client.post(
			f"{self.url}?secret=s3cret",
			{"id": "abc", "status": "DELIVERED"},
			format="json",
		)

		self.assertEqual(denied.status_code, 403)
		self.assertEqual(allowed.status_code, 200)
		sms_send.refresh_from_db()
		self.assertEqual(sms_send.status, SmsSend.STATUS_DELIVERED)


@override_settings(SMSAPI_WEBHOOK_SECRET="")
class IncomingMessageWebhookTests(TestCase):
	url = "/api/sms/webhooks/incoming/"

	def setUp(self):
		self.client = APIClient()

	def test_stop_reply_suppresses_and_revokes_consent(self):
		SmsPreference.objects.create(phone=RECIPIENT, sms_opt_in=True, marketing_opt_in=True)

		response = self.client.post(self.url, {"from": RECIPIENT, "message": "stop"}, format="json")

		self.assertEqual(response.status_code, 200)
		self.assertEqual(SmsSuppression.objects.get(phone=RECIPIENT).reason, SmsSuppression.REASON_OPTED_OUT)
		preference = SmsPreference.objects.get(phone=RECIPIENT)
		self.assertFalse(preference.sms_opt_in)
		self.assertFalse(preference.marketing_opt_in)
		self.assertIsNotNone(preference.opted_out_at)

	def test_stop_from_bare_msisdn_suppresses_stored_form(self):
		self.client.post(self.url, {"from": "48501234567", "message": "STOP"}, format="json")

		self.assertTrue(is_suppressed(RECIPIENT))
		self.assertFalse(SmsPreference.objects.get(phone=RECIPIENT).sms_opt_in)

	def test_polish_keyword_is_recognized(self):
		self.client.post(self.url, {"from": RECIPIENT, "message": "Rezygnacja"}, format="json")
		self.assertTrue(SmsSuppression.objects.filter(phone=RECIPIENT).exists())

	def test_regular_reply_is_ignored(self):
		response = self.client.post(self.url, {"from": RECIPIENT, "message": "Please send the weekend hours"}, format="json")

		self.assertEqual(response.status_code, 200)
		self.assertFalse(SmsSuppression.objects.exists())

	def test_missing_sender_is_rejected(self):
		response = self.client.post(self.url, {"message": "STOP"}, format="json")
		self.assertEqual(response.status_code, 400)


@override_settings(SMS_ENABLED=True, SMS_GATEWAY_BACKEND="console")
class SmsTestSendViewTests(TestCase):
	url = "/api/sms/test/"

	def setUp(self):
		self.client = APIClient()
		self.staff = User.objects.create_user(username="staff", password="pw", is_staff=True)
		self.user = User.objects.create_user(username="user", password="pw")

	def test_requires_staff(self):
		self.client.force_authenticate(user=self.user)
		response = self.client.post(self.url, {"phone": RECIPIENT}, format="json")
		self.assertEqual(response.status_code, 403)

	def test_staff_sends_test_message(self):
		self.client.force_authenticate(user=self.staff)

		response = self.client.post(self.url, {"phone": "+48 501 234 567", "language": "en"}, format="json")

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data["status"], SmsSend.STATUS_SENT)
		self.assertEqual(response.data["phone_to"], RECIPIENT)
		self.assertTrue(response.data["provider_message_id"].startswith("console-"))

	def test_invalid_phone_is_rejected(self):
		self.client.force_authenticate(user=self.staff)
		response = self.client.post(self.url, {"phone": "501234567"}, format="json")
		self.assertEqual(response.status_code, 400)
		self.assertEqual(SmsSend.objects.count(), 0)

	def test_gateway_error_is_reported(self):
		self.client.force_authenticate(user=self.staff)

		with patch("sms.gateway.ConsoleSmsGateway.send", side_effect=DeliveryError("down")):
			response = self.client.post(self.url, {"phone": RECIPIENT}, format="json")

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data["code"], "delivery_error")
		self.assertEqual(SmsSend.objects.get().status, SmsSend.STATUS_FAILED)


class SmsSendListViewTests(TestCase):
	url = "/api/sms/sends/"

	def setUp(self):
		self.client = APIClient()
		self.staff = User.objects.create_user(username="staff", password="pw", is_staff=True)
		self.user = User.objects.create_user(username="user", password="pw")
		_create_send(provider_message_id="a1", status=SmsSend.STATUS_DELIVERED)
		_create_send(provider_message_id="a2", status=SmsSend.STATUS_FAILED)
		_create_send(provider_message_id="b1", phone="+48600700800")

	def test_requires_staff(self):
		self.client.force_authenticate(user=self.user)
		response = self.client.get(self.url)
		self.assertEqual(response.status_code, 403)

	def test_lists_all_sends_for_staff(self):
		self.client.force_authenticate(user=self.staff)

		response = self.client.get(self.url)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(len(response.data), 3)

	def test_filters_by_status(self):
		self.client.force_authenticate(user=self.staff)

		response = self.client.get(self.url, {"status": SmsSend.STATUS_FAILED})

		self.assertEqual(response.status_code, 200)
		self.assertEqual([row["provider_message_id"] for row in response.data], ["a2"])

	def test_filters_by_phone_in_any_format(self):
		self.client.force_authenticate(user=self.staff)

		bare = self.client.get(self.url, {"phone": "48600700800"})
		spaced = self.client.get(self.url, {"phone": "+48 501 234 567"})

		self.assertEqual([row["provider_message_id"] for row in bare.data], ["b1"])
		self.assertEqual(len(spaced.data), 2)

	def test_unknown_status_is_rejected(self):
		self.client.force_authenticate(user=self.staff)
		response = self.client.get(self.url, {"status": "bogus"})
		self.assertEqual(response.status_code, 400)
