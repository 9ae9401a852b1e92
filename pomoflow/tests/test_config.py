from __future__ import annotations

from pathlib import Path
import unittest
from unittest import mock

import requests

from pomoflow.auth import RemoteTokenResolver, StaticTokenResolver, bearer_token, build_token_resolver
from pomoflow.config import DEFAULT_SENTIMENT_URL, Settings, parse_token_map


class TestSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = Settings.from_env({})
        self.assertEqual(settings.journal_mode, "MEMORY")
        self.assertEqual(settings.sentiment_url, DEFAULT_SENTIMENT_URL)
        self.assertIsNone(settings.sentiment_api_key)
        self.assertEqual(settings.sentiment_timeout_sec, 10.0)
        self.assertEqual(settings.neutral_threshold, 0.6)
        self.assertEqual(settings.static_tokens, {})
        self.assertEqual(settings.db_path.name, "pomoflow.sqlite")

    def test_reads_environment(self) -> None:
        settings = Settings.from_env(
            {
                "POMOFLOW_DB_PATH": "/tmp/x.sqlite",
                "POMOFLOW_JOURNAL_MODE": "wal",
                "HUGGING_FACE_API_KEY": "hf-key",
                "POMOFLOW_SENTIMENT_TIMEOUT": "2.5",
                "POMOFLOW_SENTIMENT_THRESHOLD": "oops",
                "POMOFLOW_STATIC_TOKENS": "t1:alice, t2:bob",
                "POMOFLOW_LOG_LEVEL": "debug",
            }
        )
        self.assertEqual(settings.db_path, Path("/tmp/x.sqlite"))
        self.assertEqual(settings.journal_mode, "WAL")
        self.assertEqual(settings.sentiment_api_key, "hf-key")
        self.assertEqual(settings.sentiment_timeout_sec, 2.5)
        self.assertEqual(settings.neutral_threshold, 0.6)
        self.assertEqual(settings.static_tokens, {"t1": "alice", "t2": "bob"})
        self.assertEqual(settings.log_level, "DEBUG")

    def test_own_key_wins_over_fallback(self) -> None:
        settings = Settings.from_env({"POMOFLOW_SENTIMENT_API_KEY": "own", "HUGGING_FACE_API_KEY": "hf"})
        self.assertEqual(settings.sentiment_api_key, "own")

    def test_parse_token_map_skips_garbage(self) -> None:
        self.assertEqual(parse_token_map("a:1,,broken, :2,b:"), {"a": "1"})


class TestAuth(unittest.TestCase):
    def test_bearer_token(self) -> None:
        self.assertEqual(bearer_token("Bearer abc"), "abc")
        self.assertEqual(bearer_token("bearer abc"), "abc")
        self.assertIsNone(bearer_token("Basic abc"))
        self.assertIsNone(bearer_token("Bearer "))
        self.assertIsNone(bearer_token(None))

    def test_static_resolver(self) -> None:
        resolver = StaticTokenResolver({"t1": "alice"})
        self.assertEqual(resolver.resolve("t1"), "alice")
        self.assertIsNone(resolver.resolve("t2"))

    def test_remote_resolver(self) -> None:
        session = mock.Mock()
        response = mock.Mock(ok=True, status_code=200)
        response.json.return_value = {"id": "u-123", "email": "a@example.test"}
        session.get.return_value = response

        resolver = RemoteTokenResolver("https://auth.example.test/", "anon", session=session)

        self.assertEqual(resolver.resolve("tok"), "u-123")
        args, kwargs = session.get.call_args
        self.assertEqual(args[0], "https://auth.example.test/auth/v1/user")
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer tok")
        self.assertEqual(kwargs["headers"]["apikey"], "anon")

    def test_remote_resolver_failures(self) -> None:
        session = mock.Mock()
        resolver = RemoteTokenResolver("https://auth.example.test", session=session)

        session.get.side_effect = requests.ConnectionError("down")
        self.assertIsNone(resolver.resolve("tok"))

        session.get.side_effect = None
        session.get.return_value = mock.Mock(ok=False, status_code=401)
        self.assertIsNone(resolver.resolve("tok"))

        response = mock.Mock(ok=True, status_code=200)
        response.json.return_value = {"email": "no-id@example.test"}
        session.get.return_value = response
        self.assertIsNone(resolver.resolve("tok"))

    def test_build_token_resolver(self) -> None:
        self.assertIsInstance(build_token_resolver(Settings()), StaticTokenResolver)
        remote = build_token_resolver(Settings(auth_url="https://auth.example.test"))
        self.assertIsInstance(remote, RemoteTokenResolver)


if __name__ == "__main__":
    unittest.main()
