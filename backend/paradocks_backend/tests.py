import os
import tempfile
from pathlib import Path
from unittest.mock import patch

from django.test import SimpleTestCase

from .env import load_env


class LoadEnvTests(SimpleTestCase):
	def setUp(self):
		tmp = tempfile.TemporaryDirectory()
		self.addCleanup(tmp.cleanup)
		self.root = Path(tmp.name)
		self.backend_dir = self.root / "backend"
		self.backend_dir.mkdir()

	def test_backend_env_file_is_preferred(self):
		(self.backend_dir / ".env").write_text("SMSAPI_TOKEN=backend\n")
		(self.root / ".env").write_text("SMSAPI_TOKEN=root\n")

		with patch("paradocks_backend.env.load_dotenv") as load_dotenv:
			env_file = load_env(self.backend_dir)

		self.assertEqual(env_file, self.backend_dir / ".env")
		load_dotenv.assert_called_once_with(self.backend_dir / ".env")

	def test_project_root_env_file_is_the_fallback(self):
		(self.root / ".env").write_text("SMSAPI_TOKEN=root\n")

		with patch("paradocks_backend.env.load_dotenv") as load_dotenv:
			env_file = load_env(self.backend_dir)

		self.assertEqual(env_file, self.root / ".env")
		load_dotenv.assert_called_once_with(self.root / ".env")

	def test_values_reach_the_environment_without_overriding(self):
		(self.backend_dir / ".env").write_text("PARADOCKS_ENV_CHECK=from-file\nSMS_ENABLED=from-file\n")

		with patch.dict("os.environ", {"SMS_ENABLED": "false"}, clear=False):
			load_env(self.backend_dir)

			self.assertEqual(os.environ["PARADOCKS_ENV_CHECK"], "from-file")
			self.assertEqual(os.environ["SMS_ENABLED"], "false")
