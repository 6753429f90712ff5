import json
import os
import pathlib
import stat
import sys
import tempfile
import unittest

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "scripts"))

from forge_image_mcp.core.credentials import ENV_VAR, CredentialResolver
from forge_image_mcp.core.errors import InvalidInputError


class CredentialTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmpdir = pathlib.Path(self._tmp.name)
        self.config_path = self.tmpdir / "config.json"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def write_record(self, payload) -> None:
        self.config_path.write_text(json.dumps(payload), encoding="utf-8")


class TestResolvePrecedence(CredentialTestCase):
    def test_environment_wins_over_config_record(self) -> None:
        self.write_record({"token": "from-file"})
        resolver = CredentialResolver(self.config_path, environ={ENV_VAR: "from-env"})
        credential = resolver.resolve()
        self.assertEqual(credential.token, "from-env")
        self.assertEqual(credential.source, "environment")

    def test_environment_wins_when_record_written_later(self) -> None:
        environ = {ENV_VAR: "from-env"}
        CredentialResolver(self.config_path, environ={}).persist("from-file")
        credential = CredentialResolver(self.config_path, environ=environ).resolve()
        self.assertEqual(credential.token, "from-env")

    def test_config_record_used_without_environment(self) -> None:
        self.write_record({"token": "from-file"})
        credential = CredentialResolver(self.config_path, environ={}).resolve()
        self.assertEqual(credential.token, "from-file")
        self.assertEqual(credential.source, "config record")

    def test_blank_environment_falls_back_to_record(self) -> None:
        self.write_record({"token": "from-file"})
        credential = CredentialResolver(self.config_path, environ={ENV_VAR: "   "}).resolve()
        self.assertEqual(credential.source, "config record")

    def test_unconfigured_when_nothing_present(self) -> None:
        resolver = CredentialResolver(self.config_path, environ={})
        self.assertIsNone(resolver.resolve())
        self.assertFalse(resolver.status().configured)

    def test_resolution_is_cached(self) -> None:
        environ = {}
        resolver = CredentialResolver(self.config_path, environ=environ)
        self.assertIsNone(resolver.resolve())
        environ[ENV_VAR] = "late"
        self.assertIsNone(resolver.resolve())


class TestConfigRecordSchema(CredentialTestCase):
    def test_unknown_fields_rejected(self) -> None:
        self.write_record({"token": "abc", "extra": "nope"})
        self.assertIsNone(CredentialResolver(self.config_path, environ={}).resolve())

    def test_non_string_token_rejected(self) -> None:
        self.write_record({"token": 1234})
        self.assertIsNone(CredentialResolver(self.config_path, environ={}).resolve())

    def test_empty_token_rejected(self) -> None:
        self.write_record({"token": ""})
        self.assertIsNone(CredentialResolver(self.config_path, environ={}).resolve())

    def test_malformed_json_rejected(self) -> None:
        self.config_path.write_text("{not json", encoding="utf-8")
        self.assertIsNone(CredentialResolver(self.config_path, environ={}).resolve())

    def test_legacy_field_name_rejected(self) -> None:
        self.write_record({"geminiApiKey": "abc"})
        self.assertIsNone(CredentialResolver(self.config_path, environ={}).resolve())


class TestPersist(CredentialTestCase):
    def test_persist_writes_closed_record(self) -> None:
        resolver = CredentialResolver(self.config_path, environ={})
        resolver.persist("secret-token")
        payload = json.loads(self.config_path.read_text(encoding="utf-8"))
        self.assertEqual(payload, {"token": "secret-token"})

    @unittest.skipIf(os.name == "nt", "POSIX permissions only")
    def test_persist_sets_owner_only_permissions(self) -> None:
        CredentialResolver(self.config_path, environ={}).persist("secret-token")
        mode = stat.S_IMODE(os.stat(self.config_path).st_mode)
        self.assertEqual(mode, 0o600)

    def test_persist_activates_immediately(self) -> None:
        resolver = CredentialResolver(self.config_path, environ={})
        self.assertIsNone(resolver.resolve())
        resolver.persist("secret-token")
        status = resolver.status()
        self.assertTrue(status.configured)
        self.assertEqual(status.source, "config record")
        self.assertEqual(resolver.resolve().token, "secret-token")

    def test_persist_replaces_whole_file(self) -> None:
        self.write_record({"token": "old", "stale": True})
        CredentialResolver(self.config_path, environ={}).persist("new")
        payload = json.loads(self.config_path.read_text(encoding="utf-8"))
        self.assertEqual(payload, {"token": "new"})
        leftovers = [p.name for p in self.tmpdir.iterdir() if p.name != self.config_path.name]
        self.assertEqual(leftovers, [])

    def test_persist_rejects_blank_token(self) -> None:
        resolver = CredentialResolver(self.config_path, environ={})
        with self.assertRaises(InvalidInputError):
            resolver.persist("  ")
        self.assertFalse(self.config_path.exists())
        self.assertIsNone(resolver.resolve())

    def test_status_never_exposes_token(self) -> None:
        resolver = CredentialResolver(self.config_path, environ={ENV_VAR: "super-secret"})
        self.assertNotIn("super-secret", repr(resolver.status()))
        self.assertNotIn("super-secret", repr(resolver.resolve()))


if __name__ == "__main__":
    unittest.main()
