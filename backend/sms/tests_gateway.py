from unittest.mock import MagicMock

import requests
from django.test import SimpleTestCase

from .exceptions import DeliveryError, InvalidRecipient
from .gateway import (
	ENCODING_GSM7,
	ENCODING_UNICODE,
	ConsoleSmsGateway,
	SmsApiGateway,
	calculate_message_length,
	get_gateway,
	normalize_provider_number,
	validate_phone_number,
)
from .runtime_settings import EffectiveSmsSettings


class MessageLengthTests(SimpleTestCase):
	def test_single_gsm7_part(self):
		info = calculate_message_length("a" * 160)
		self.assertEqual((info.length, info.parts, info.encoding), (160, 1, ENCODING_GSM7))

	def test_gsm7_multipart(self):
		info = calculate_message_length("a" * 161)
		self.assertEqual((info.length, info.parts), (161, 2))
		self.assertEqual(calculate_message_length("a" * 306).parts, 2)
		self.assertEqual(calculate_message_length("a" * 307).parts, 3)

	def test_polish_character_switches_to_unicode(self):
		info = calculate_message_length("ł" + "a" * 70)
		self.assertEqual((info.length, info.parts, info.encoding), (71, 2, ENCODING_UNICODE))

	def test_unicode_single_part(self):
		info = calculate_message_length("ł" * 70)
		self.assertEqual((info.length, info.parts), (70, 1))

	def test_empty_message(self):
		info = calculate_message_length("")
		self.assertEqual((info.length, info.parts), (0, 1))


class PhoneValidationTests(SimpleTestCase):
	def test_international_numbers(self):
		self.assertTrue(validate_phone_number("+48501234567"))
		self.assertTrue(validate_phone_number("+48 501 234 567"))
		self.assertFalse(validate_phone_number("501234567"))
		self.assertFalse(validate_phone_number("+48abc"))

	def test_provider_numbers_gain_plus_prefix(self):
		self.assertEqual(normalize_provider_number("48501234567"), "+48501234567")
		self.assertEqual(normalize_provider_number("0048501234567"), "+48501234567")
		self.assertEqual(normalize_provider_number("+48 501 234 567"), "+48501234567")
		self.assertEqual(normalize_provider_number(""), "")


def _settings(**overrides) -> EffectiveSmsSettings:
	values = {"gateway_backend": "smsapi", "api_token": "token-1", "sender_name": "Paradocks"}
	values.update(overrides)
	return EffectiveSmsSettings(**values)


def _response(status_code=200, payload=None):
	response = MagicMock()
	response.status_code = status_code
	response.reason = "OK" if status_code < 400 else "Bad Request"
	response.json.return_value = payload if payload is not None else {}
	return response


class SmsApiGatewayTests(SimpleTestCase):
	def test_send_posts_to_smsapi_and_returns_provider_id(self):
		session = MagicMock()
		session.post.return_value = _response(payload={"count": 1, "list": [{"id": "abc123", "points": 0.16}]})
		gateway = SmsApiGateway(settings=_settings(), session=session)

		result = gateway.send("+48 501 234 567", "Hello")

		self.assertEqual(result.provider_message_id, "abc123")
		self.assertEqual((result.length, result.parts), (5, 1))
		url = session.post.call_args.args[0]
		kwargs = session.post.call_args.kwargs
		self.assertEqual(url, "https://api.smsapi.pl/sms.do")
		self.assertEqual(kwargs["data"]["to"], "48501234567")
		self.assertEqual(kwargs["data"]["from"], "Paradocks")
		self.assertNotIn("test", kwargs["data"])
		self.assertEqual(kwargs["headers"]["Authorization"], "Bearer token-1")

	def test_test_mode_and_com_service(self):
		session = MagicMock()
		session.post.return_value = _response(payload={"list": [{"id": "x"}]})
		gateway = SmsApiGateway(settings=_settings(test_mode=True, service="com"), session=session)

		gateway.send("+48501234567", "Hello")

		self.assertEqual(session.post.call_args.args[0], "https://api.smsapi.com/sms.do")
		self.assertEqual(session.post.call_args.kwargs["data"]["test"], "1")

	def test_invalid_recipient_never_reaches_network(self):
		session = MagicMock()
		gateway = SmsApiGateway(settings=_settings(), session=session)

		with self.assertRaises(InvalidRecipient):
			gateway.send("12345", "Hello")
		session.post.assert_not_called()

	def test_missing_token_is_delivery_error(self):
		session = MagicMock()
		gateway = SmsApiGateway(settings=_settings(api_token=""), session=session)

		with self.assertRaises(DeliveryError):
			gateway.send("+48501234567", "Hello")
		session.post.assert_not_called()

	def test_provider_error_payload(self):
		session = MagicMock()
		session.post.return_value = _response(payload={"error": 101, "message": "Authorization failed"})
		gateway = SmsApiGateway(settings=_settings(), session=session)

		with self.assertRaises(DeliveryError) as ctx:
			gateway.send("+48501234567", "Hello")
		self.assertIn("Authorization failed", str(ctx.exception))

	def test_transport_error_is_wrapped(self):
		session = MagicMock()
		session.post.side_effect = requests.Timeout("timed out")
		gateway = SmsApiGateway(settings=_settings(), session=session)

		with self.assertRaises(DeliveryError):
			gateway.send("+48501234567", "Hello")

	def test_missing_id_falls_back_to_unknown(self):
		session = MagicMock()
		session.post.return_value = _response(payload={"count": 0})
		gateway = SmsApiGateway(settings=_settings(), session=session)

		self.assertEqual(gateway.send("+48501234567", "Hello").provider_message_id, "unknown")


class GatewaySelectionTests(SimpleTestCase):
	def test_console_is_default(self):
		gateway = get_gateway(EffectiveSmsSettings())
		self.assertIsInstance(gateway, ConsoleSmsGateway)
		self.assertTrue(gateway.send("+48501234567", "Hi").provider_message_id.startswith("console-"))

	def test_smsapi_backend(self):
		self.assertIsInstance(get_gateway(_settings()), SmsApiGateway)
