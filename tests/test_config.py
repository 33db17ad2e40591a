import json
import os
import tempfile
import unittest
from unittest.mock import patch

from koai.config import (
    API_KEY_ENV,
    BUILTIN_DEFAULTS,
    CompletionOptions,
    build_settings,
    load_settings,
)
from koai.errors import ConfigurationError


class TestCompletionOptions(unittest.TestCase):
    def setUp(self):
        self.options = CompletionOptions(model="gpt-4", max_tokens=100, temperature=0.5)

    def test_merged_applies_non_none_values(self):
        merged = self.options.merged({"model": "gpt-4o", "max_tokens": None, "temperature": 1.5})
        self.assertEqual(merged.model, "gpt-4o")
        self.assertEqual(merged.max_tokens, 100)
        self.assertEqual(merged.temperature, 1.5)

    def test_merged_ignores_unknown_keys(self):
        merged = self.options.merged({"colour": "blue"})
        self.assertEqual(merged, self.options)

    def test_temperature_bounds(self):
        self.options.merged({"temperature": 0})
        self.options.merged({"temperature": 2})
        with self.assertRaises(ConfigurationError):
            self.options.merged({"temperature": 2.1})
        with self.assertRaises(ConfigurationError):
            self.options.merged({"temperature": -0.1})

    def test_max_tokens_must_be_positive_integer(self):
        for bad in (0, -5, 1.5, "100", True):
            with self.subTest(max_tokens=bad):
                with self.assertRaises(ConfigurationError):
                    self.options.merged({"max_tokens": bad})


class TestSettings(unittest.TestCase):
    def test_builtin_defaults_when_no_file(self):
        settings = build_settings({})
        self.assertEqual(settings.provider, "openai")
        self.assertEqual(settings.options_for("chat"), BUILTIN_DEFAULTS["chat"])
        self.assertEqual(settings.options_for("edit").model, "gpt-4")

    def test_precedence_call_site_over_file_over_defaults(self):
        settings = build_settings({"chat": {"model": "gpt-4o-mini", "temperature": 1.0}})

        options = settings.options_for("chat", {"temperature": 0.1})

        # call-site value
        self.assertEqual(options.temperature, 0.1)
        # settings-file value
        self.assertEqual(options.model, "gpt-4o-mini")
        # built-in default
        self.assertEqual(options.max_tokens, BUILTIN_DEFAULTS["chat"].max_tokens)

    def test_invalid_file_values_are_rejected(self):
        with self.assertRaises(ConfigurationError):
            build_settings({"edit": {"temperature": 3}})

    def test_unknown_mode(self):
        with self.assertRaises(ConfigurationError):
            build_settings({}).options_for("draw")


class TestLoadSettings(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)

    def _write(self, name, content):
        path = os.path.join(self.tmpdir.name, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return path

    def test_credential_comes_from_environment(self):
        path = self._write("config.json", json.dumps({"chat": {"model": "gpt-4o"}}))

        settings = load_settings(path, environ={API_KEY_ENV: "sk-abc"})

        self.assertEqual(settings.api_key, "sk-abc")
        self.assertEqual(settings.options_for("chat").model, "gpt-4o")
        self.assertEqual(settings.source, path)

    def test_missing_credential_is_not_an_error_yet(self):
        path = self._write("config.json", "{}")
        settings = load_settings(path, environ={})
        self.assertIsNone(settings.api_key)

    def test_malformed_file(self):
        path = self._write("config.json", "{invalid json")
        with self.assertRaises(ConfigurationError) as cm:
            load_settings(path, environ={})
        self.assertIn("Error reading or parsing", str(cm.exception))

    def test_explicit_missing_file(self):
        with self.assertRaises(ConfigurationError):
            load_settings(os.path.join(self.tmpdir.name, "nope.json"), environ={})

    def test_non_object_file(self):
        path = self._write("config.json", "[1, 2]")
        with self.assertRaises(ConfigurationError):
            load_settings(path, environ={})

    @patch("koai.config.CONFIG_SEARCH_PATHS", [])
    @patch.dict(os.environ, {}, clear=True)
    def test_defaults_without_any_file(self):
        settings = load_settings(environ={})
        self.assertIsNone(settings.source)
        self.assertEqual(settings.options_for("edit"), BUILTIN_DEFAULTS["edit"])

    @patch.dict(os.environ, {}, clear=True)
    def test_config_path_from_environment(self):
        path = self._write("env.json", json.dumps({"provider": "anthropic"}))
        os.environ["KOAI_CONFIG"] = path

        settings = load_settings(environ={})

        self.assertEqual(settings.provider, "anthropic")


if __name__ == "__main__":
    unittest.main()
