import inspect
import pathlib
import tempfile
import unittest

from sshid.keys import KeyFile, default_key_dir, list_candidate_keys


class TestCandidateKeys(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = pathlib.Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def _touch(self, name: str) -> pathlib.Path:
        p = self.dir / name
        p.write_text("x")
        return p

    def test_only_private_id_files_are_candidates(self):
        for name in ("id_rsa", "id_rsa.pub", "id_ed25519", "id_ed25519.pub", "id_stray.pub",
                     "config", "known_hosts", "authorized_keys", "github_rsa"):
            self._touch(name)
        (self.dir / "id_dir").mkdir()
        names = {k.name for k in list_candidate_keys(self.dir)}
        self.assertEqual(names, {"id_rsa", "id_ed25519"})

    def test_empty_directory_yields_nothing(self):
        self.assertEqual(list(list_candidate_keys(self.dir)), [])

    def test_missing_directory_yields_nothing(self):
        self.assertEqual(list(list_candidate_keys(self.dir / "nope")), [])

    def test_enumeration_is_lazy(self):
        self.assertTrue(inspect.isgenerator(list_candidate_keys(self.dir)))

    def test_custom_prefix(self):
        self._touch("id_rsa")
        self._touch("work_ed25519")
        names = {k.name for k in list_candidate_keys(self.dir, prefix="work_")}
        self.assertEqual(names, {"work_ed25519"})

    def test_public_companion(self):
        key = KeyFile(self._touch("id_ecdsa"))
        self.assertEqual(key.public_path, self.dir / "id_ecdsa.pub")
        self.assertFalse(key.has_public)
        self._touch("id_ecdsa.pub")
        self.assertTrue(key.has_public)

    def test_default_key_dir(self):
        self.assertEqual(default_key_dir(), pathlib.Path.home() / ".ssh")


if __name__ == "__main__":
    unittest.main()
