import unittest
from unittest.mock import patch

from lingualink.core.config import Settings


class TestSettings(unittest.TestCase):

    def test_defaults(self):
        settings = Settings(_env_file=None)
        self.assertEqual(settings.API_BASE_URL, "http://127.0.0.1:3000/api")
        self.assertEqual(settings.UPLOAD_TIMEOUT, 30.0)
        self.assertEqual(settings.WS_CONNECT_TIMEOUT, 5.0)
        self.assertIsNone(settings.SHARED_MEDIA_DIR)

    def test_ws_url_is_derived_from_api_host(self):
        self.assertEqual(
            Settings(_env_file=None, API_BASE_URL="http://192.168.1.100:3000/api").ws_url,
            "ws://192.168.1.100:3000",
        )
        self.assertEqual(
            Settings(_env_file=None, API_BASE_URL="https://translate.example.com/api").ws_url,
            "wss://translate.example.com",
        )

    def test_explicit_ws_url_wins(self):
        settings = Settings(_env_file=None, WS_BASE_URL="ws://events.example.com/socket")
        self.assertEqual(settings.ws_url, "ws://events.example.com/socket")

    def test_environment_overrides(self):
        env = {"API_BASE_URL": "http://10.0.2.2:3000/api", "JOB_TIMEOUT": "45", "DEBUG_MODE": "true"}
        with patch.dict("os.environ", env):
            settings = Settings(_env_file=None)
        self.assertEqual(settings.API_BASE_URL, "http://10.0.2.2:3000/api")
        self.assertEqual(settings.JOB_TIMEOUT, 45.0)
        self.assertTrue(settings.DEBUG_MODE)


if __name__ == "__main__":
    unittest.main()
