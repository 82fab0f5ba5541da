import json
import os
import tempfile
import unittest
from unittest import mock

from .config import DEFAULT_API_URL, load_configuration, validate_config
from .exceptions import ConfigurationError


class TestLoadConfiguration(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        env_patch = mock.patch.dict(os.environ, {}, clear=True)
        env_patch.start()
        self.addCleanup(env_patch.stop)

    def write_config(self, data):
        path = os.path.join(self.tmp.name, "config.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f)
        return path

    def test_defaults(self):
        config = load_configuration(config_file=None, env_file=None)
        self.assertEqual(config["api_url"], DEFAULT_API_URL)
        self.assertEqual(config["page_size"], 50)
        self.assertIsNone(config["request_timeout"])

    def test_priority_file_env_overrides(self):
        path = self.write_config({"person_id": "from-file", "portfolio_id": "pf-file", "output_dir": "out"})
        os.environ["SCALABLE_PERSON_ID"] = "from-env"
        os.environ["SCALABLE_REQUEST_TIMEOUT"] = "12.5"
        config = load_configuration(config_file=path, overrides={"portfolio_id": "pf-cli", "output_dir": None},
                                    env_file=None)
        self.assertEqual(config["person_id"], "from-env")
        self.assertEqual(config["portfolio_id"], "pf-cli")
        self.assertEqual(config["output_dir"], "out")
        self.assertEqual(config["request_timeout"], 12.5)

    def test_env_file_is_loaded(self):
        env_path = os.path.join(self.tmp.name, ".env")
        with open(env_path, "w", encoding="utf-8") as f:
            f.write("SCALABLE_COOKIES=session=abc\n")
        config = load_configuration(config_file=None, env_file=env_path)
        self.assertEqual(config["cookies"], "session=abc")

    def test_invalid_timeout_is_rejected(self):
        os.environ["SCALABLE_REQUEST_TIMEOUT"] = "soon"
        with self.assertRaises(ConfigurationError):
            load_configuration(config_file=None, env_file=None)

    def test_malformed_config_file(self):
        path = os.path.join(self.tmp.name, "config.json")
        with open(path, "w", encoding="utf-8") as f:
            f.write("{not json")
        with self.assertRaises(ConfigurationError):
            load_configuration(config_file=path, env_file=None)

    def test_missing_cookies_file(self):
        with self.assertRaises(ConfigurationError):
            load_configuration(config_file=None, overrides={"cookies_file": "/nonexistent/cookies.txt"},
                               env_file=None)


class TestValidateConfig(unittest.TestCase):

    def test_page_size_must_be_positive(self):
        is_valid, errors = validate_config({"api_url": "x", "page_size": 0, "cookies": "a=b"})
        self.assertFalse(is_valid)
        self.assertEqual(len(errors), 1)


if __name__ == '__main__':
    unittest.main()
