from django.core.exceptions import ValidationError
from django.test import SimpleTestCase

from core.utils.privacy import mask_phone
from core.validators import (
	NIPChecksumError,
	NIPFormatError,
	NIPValidator,
	validate_nip,
)


class ValidateNipTests(SimpleTestCase):
	def test_valid_nip_returns_digits(self):
		self.assertEqual(validate_nip("7751001452"), "7751001452")

	def test_separators_are_accepted(self):
		self.assertEqual(validate_nip("775-100-14-52"), "7751001452")
		self.assertEqual(validate_nip("775 100 14 52"), "7751001452")

	def test_altered_last_digit_fails_checksum(self):
		with self.assertRaises(NIPChecksumError):
			validate_nip("7751001453")

	def test_checksum_ten_is_never_valid(self):
		# 1234567890 sums to 230, 230 % 11 == 10
		with self.assertRaises(NIPChecksumError):
			validate_nip("1234567890")

	def test_wrong_length_is_format_error(self):
		for value in ("", "775100145", "77510014521"):
			with self.subTest(value=value):
				with self.assertRaises(NIPFormatError):
					validate_nip(value)

	def test_non_digit_is_format_error(self):
		for value in ("77510O1452", "PL7751001452", "775.100.14.52"):
			with self.subTest(value=value):
				with self.assertRaises(NIPFormatError):
					validate_nip(value)

	def test_errors_are_value_errors(self):
		with self.assertRaises(ValueError):
			validate_nip("abc")


class NipValidatorTests(SimpleTestCase):
	def test_valid_value_passes(self):
		NIPValidator()("7751001452")

	def test_format_error_code(self):
		with self.assertRaises(ValidationError) as ctx:
			NIPValidator()("123")
		self.assertEqual(ctx.exception.code, "nip_format")

	def test_checksum_error_code(self):
		with self.assertRaises(ValidationError) as ctx:
			NIPValidator()("7751001453")
		self.assertEqual(ctx.exception.code, "nip_checksum")


class MaskPhoneTests(SimpleTestCase):
	def test_masks_middle_digits(self):
		self.assertEqual(mask_phone("+48501234567"), "+48***67")

	def test_short_and_empty_values(self):
		self.assertEqual(mask_phone("12345"), "12***")
		self.assertEqual(mask_phone(""), "[empty]")
		self.assertEqual(mask_phone(None), "[empty]")
