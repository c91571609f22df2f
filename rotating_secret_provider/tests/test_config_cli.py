# -*- coding: utf-8 -*-
"""
Tests for environment configuration and the command line interface

"""
import base64
import contextlib
import io
import logging
import os
import tempfile
import unittest
from datetime import timedelta
from unittest import mock

from pydantic import ValidationError

from rotating_secret_provider import *
from rotating_secret_provider.cli import main, parse_permissions
from rotating_secret_provider.config import parse_duration, load_settings, build_secret_provider

SECRET = "a-test-secret-that-is-long-enough-for-hs256"


def setup_module():
    logging.basicConfig(level=logging.DEBUG)


def run_cli(*argv):
    out, err = io.StringIO(), io.StringIO()
    with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
        code = main(list(argv))
    return code, out.getvalue(), err.getvalue()


class TestParseDuration(unittest.TestCase):

    def test_valid(self):
        self.assertEqual(parse_duration("24h"), timedelta(hours=24))
        self.assertEqual(parse_duration("1h30m"), timedelta(hours=1, minutes=30))
        self.assertEqual(parse_duration("45s"), timedelta(seconds=45))
        self.assertEqual(parse_duration("1m500ms"), timedelta(minutes=1, milliseconds=500))

    def test_invalid(self):
        for value in ("", "   ", "24", "h", "1d", "1h 30m", "-1h", "1hx"):
            with self.assertRaises(InvalidConfig):
                parse_duration(value)


class TestSettings(unittest.TestCase):

    def test_defaults(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            settings = load_settings(_env_file=None)
        self.assertEqual(settings.SECRET_PROVIDER, "env")
        self.assertEqual(settings.SECRETS_TCP_ADDR, ":8888")
        self.assertEqual(settings.SECRETS_MAX_DEPRECATED, 5)
        self.assertEqual(settings.jwt_expiry, timedelta(hours=24))

    def test_reads_environment(self):
        env = {"SECRET_PROVIDER": "FILE", "SECRETS_MAX_DEPRECATED": "3", "JWT_EXPIRY": "1h"}
        with mock.patch.dict(os.environ, env, clear=True):
            settings = load_settings(_env_file=None)
        self.assertEqual(settings.SECRET_PROVIDER, "file")
        self.assertEqual(settings.SECRETS_MAX_DEPRECATED, 3)
        self.assertEqual(settings.jwt_expiry, timedelta(hours=1))

    def test_invalid_values(self):
        for env in ({"SECRET_PROVIDER": "vault"}, {"JWT_EXPIRY": "tomorrow"},
                    {"SECRETS_MAX_DEPRECATED": "many"}):
            with mock.patch.dict(os.environ, env, clear=True):
                with self.assertRaises(ValidationError):
                    load_settings(_env_file=None)

    def test_build_env_provider(self):
        with mock.patch.dict(os.environ, {"JWT_SECRET": SECRET}, clear=True):
            provider = build_secret_provider(load_settings(_env_file=None))
            self.assertIsInstance(provider, EnvSecretProvider)
            self.assertEqual(provider.get_secret(), SECRET)

    def test_build_file_provider(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            settings = load_settings(_env_file=None,
                                     SECRET_PROVIDER="file",
                                     SECRETS_FILE_PATH=os.path.join(tmpdir, "s.json"),
                                     SECRETS_TCP_ADDR="127.0.0.1:0",
                                     SECRETS_MAX_DEPRECATED=2)
            provider = build_secret_provider(settings)
            try:
                self.assertIsInstance(provider, FileSecretProvider)
                self.assertEqual(provider.max_deprecated, 2)
                self.assertTrue(provider.get_secret())
            finally:
                provider.close()


class TestCli(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        cwd = os.getcwd()
        # keep any developer .env out of the settings
        os.chdir(self.tmpdir.name)
        self.addCleanup(os.chdir, cwd)

    def test_parse_permissions(self):
        self.assertEqual(parse_permissions(" banks:read, ,banks:write "),
                         ["banks:read", "banks:write"])
        self.assertEqual(parse_permissions(""), [])

    def test_generate_secret(self):
        code, out, _ = run_cli("generate-secret", "--bytes", "16")
        self.assertEqual(code, 0)
        self.assertEqual(len(base64.b64decode(out.strip())), 16)

    def test_generate_secret_invalid_length(self):
        code, _, err = run_cli("generate-secret", "--bytes", "0")
        self.assertEqual(code, 1)
        self.assertIn("byte length must be positive", err)

    def test_token_with_env_secret(self):
        env = {"JWT_SECRET": SECRET, "API_KEY": "k"}
        with mock.patch.dict(os.environ, env, clear=True):
            code, out, _ = run_cli("token", "--apikey", "k",
                                   "--permissions", "banks:read,banks:write", "--expiry", "1h")
        self.assertEqual(code, 0)
        token = next(line[len("Token: "):] for line in out.splitlines()
                     if line.startswith("Token: "))
        claims = JWTService(StaticSecretProvider(SECRET)).validate_token(token)
        self.assertEqual(claims.permissions, ["banks:read", "banks:write"])

    def test_token_with_file_secret(self):
        path = os.path.join(self.tmpdir.name, "secrets.json")
        store = initialize_store(path)
        env = {"SECRET_PROVIDER": "file", "SECRETS_FILE_PATH": path}
        with mock.patch.dict(os.environ, env, clear=True):
            code, out, _ = run_cli("token")
        self.assertEqual(code, 0)
        token = next(line[len("Token: "):] for line in out.splitlines()
                     if line.startswith("Token: "))
        service = JWTService(StaticSecretProvider(store.current.secret))
        self.assertEqual(service.validate_token(token).permissions, ["banks:read"])

    def test_token_rejections(self):
        with mock.patch.dict(os.environ, {"API_KEY": "k"}, clear=True):
            self.assertEqual(run_cli("token", "--apikey", "wrong")[0], 1)
            self.assertEqual(run_cli("token", "--permissions", "banks:delete")[0], 1)
            self.assertEqual(run_cli("token", "--permissions", " , ")[0], 1)
            self.assertEqual(run_cli("token", "--expiry", "soon")[0], 1)

    def test_token_missing_store_file(self):
        env = {"SECRET_PROVIDER": "file",
               "SECRETS_FILE_PATH": os.path.join(self.tmpdir.name, "missing.json")}
        with mock.patch.dict(os.environ, env, clear=True):
            code, _, err = run_cli("token")
        self.assertEqual(code, 1)
        self.assertIn("does not exist", err)

    def test_rotate(self):
        path = os.path.join(self.tmpdir.name, "secrets.json")
        with FileSecretProvider(path, tcp_addr="127.0.0.1:0") as provider:
            self.assertTrue(provider.server.wait_until_running(5.0))
            old_secret = provider.get_secret()
            code, out, _ = run_cli("rotate", "--address", provider.server.get_address(),
                                   "--old-secret", old_secret)
            self.assertEqual(code, 0)
            self.assertIn(provider.get_secret(), out.splitlines())
            self.assertNotEqual(provider.get_secret(), old_secret)

    def test_rotate_with_wrong_secret(self):
        path = os.path.join(self.tmpdir.name, "secrets.json")
        with FileSecretProvider(path, tcp_addr="127.0.0.1:0") as provider:
            self.assertTrue(provider.server.wait_until_running(5.0))
            code, _, err = run_cli("rotate", "--address", provider.server.get_address(),
                                   "--old-secret", "not-the-secret")
        self.assertEqual(code, 1)
        self.assertIn("Rotation failed", err)

    def test_rotate_requires_old_secret(self):
        self.assertEqual(run_cli("rotate", "--address", "127.0.0.1:1")[0], 1)

    def test_rotate_connection_refused(self):
        code, _, err = run_cli("rotate", "--address", "127.0.0.1:1", "--old-secret", "x",
                               "--timeout", "1")
        self.assertEqual(code, 1)
        self.assertIn("Rotation failed", err)
