import os
import unittest, tempfile, pathlib
from unittest import mock

from pydantic import ValidationError

from sshid.config import Config, save_to_env

class TestConfigSave(unittest.TestCase):
    def test_save_roundtrip(self):
        cfg = Config.from_env()
        cfg.strict = True
        cfg.lifetime_sec = 3600
        cfg.agent_env_file = None
        p = pathlib.Path(tempfile.gettempdir()) / "sshid_test.env"
        save_to_env(cfg, str(p))
        txt = p.read_text()
        self.assertIn("SSHID_STRICT=true", txt)
        self.assertIn("SSHID_LIFETIME=3600", txt)
        self.assertIn("SSHID_AGENT_ENV_FILE=\n", txt)

    def test_from_env_reads_variables(self):
        env = {
            "SSHID_KEY_DIR": "/srv/keys",
            "SSHID_LIFETIME": "600",
            "SSHID_STRICT": "TRUE",
            "SSHID_AGENT_ENV_FILE": "",
            "SSHID_LOG_LEVEL": "debug",
        }
        with mock.patch.dict(os.environ, env):
            cfg = Config.from_env()
        self.assertEqual(cfg.key_dir, "/srv/keys")
        self.assertEqual(cfg.lifetime_sec, 600)
        self.assertTrue(cfg.strict)
        self.assertIsNone(cfg.agent_env_file)
        self.assertEqual(cfg.log_level, "DEBUG")

    def test_lifetime_must_be_positive(self):
        for value in ("0", "-5", "soon"):
            with mock.patch.dict(os.environ, {"SSHID_LIFETIME": value}):
                with self.assertRaises(ValidationError):
                    Config.from_env()

    def test_defaults(self):
        cfg = Config()
        self.assertEqual(cfg.lifetime_sec, 4 * 60 * 60)
        self.assertFalse(cfg.strict)
        self.assertEqual(cfg.key_prefix, "id_")
