from __future__ import annotations

import os
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import patch

from mxfuzz.alphabet import Alphabet, load_alphabet, wrap_tag
from mxfuzz.env_utils import env_bool, env_float, load_env_file, parse_bool
from mxfuzz.errors import ConfigurationError


class AlphabetLoadingTests(unittest.TestCase):
    def test_tags_are_wrapped_and_blank_lines_skipped(self) -> None:
        with TemporaryDirectory() as td:
            path = Path(td) / "tags.txt"
            path.write_text("b\n\ni\n   \nsvg\n", encoding="utf-8")
            alphabet = load_alphabet(path)

        self.assertEqual(alphabet.tokens, ("<b>", "<i>", "<svg>"))
        self.assertEqual(len(alphabet), 3)
        self.assertEqual(alphabet[1], "<i>")

    def test_windows_line_endings_do_not_leak_into_tokens(self) -> None:
        with TemporaryDirectory() as td:
            path = Path(td) / "tags.txt"
            path.write_bytes(b"b\r\ni\r\n")
            alphabet = load_alphabet(path)
        self.assertEqual(alphabet.tokens, ("<b>", "<i>"))

    def test_empty_source_is_a_configuration_error(self) -> None:
        with TemporaryDirectory() as td:
            path = Path(td) / "tags.txt"
            path.write_text("\n\n", encoding="utf-8")
            with self.assertRaises(ConfigurationError):
                load_alphabet(path)

    def test_missing_source_is_a_configuration_error(self) -> None:
        with TemporaryDirectory() as td:
            with self.assertRaises(ConfigurationError):
                load_alphabet(Path(td) / "missing.txt")

    def test_alphabet_is_immutable(self) -> None:
        alphabet = Alphabet.from_names(["b"])
        with self.assertRaises(AttributeError):
            alphabet.tokens = ("<i>",)  # type: ignore[misc]

    def test_wrap_tag(self) -> None:
        self.assertEqual(wrap_tag("annotation-xml"), "<annotation-xml>")


class EnvUtilsTests(unittest.TestCase):
    def test_load_env_file_parses_export_and_quotes(self) -> None:
        with TemporaryDirectory() as td:
            path = Path(td) / ".env"
            path.write_text(
                "# comment\nexport MXFUZZ_TEST_URL='http://lab.local/'\nMXFUZZ_TEST_DELAY=\"0.25\"\nnot a pair\n",
                encoding="utf-8",
            )
            with patch.dict(os.environ, {}, clear=False):
                os.environ.pop("MXFUZZ_TEST_URL", None)
                os.environ.pop("MXFUZZ_TEST_DELAY", None)
                self.assertTrue(load_env_file(str(path)))
                self.assertEqual(os.environ["MXFUZZ_TEST_URL"], "http://lab.local/")
                self.assertAlmostEqual(env_float(["MXFUZZ_TEST_DELAY"], default=0.6), 0.25, places=8)

    def test_missing_env_file_is_ignored(self) -> None:
        self.assertFalse(load_env_file(None))
        self.assertFalse(load_env_file("/nonexistent/.env"))

    def test_float_reader_allows_zero_and_falls_back(self) -> None:
        with patch.dict(os.environ, {"MXFUZZ_TEST_ZERO": "0", "MXFUZZ_TEST_BAD": "abc", "MXFUZZ_TEST_NEG": "-1"}, clear=False):
            self.assertEqual(env_float(["MXFUZZ_TEST_ZERO"], default=0.6), 0.0)
            self.assertEqual(env_float(["MXFUZZ_TEST_BAD", "MXFUZZ_TEST_ZERO"], default=0.6), 0.6)
            self.assertEqual(env_float(["MXFUZZ_TEST_NEG"], default=0.6), 0.6)
            self.assertEqual(env_float(["MXFUZZ_TEST_UNSET"], default=0.6), 0.6)

    def test_env_bool(self) -> None:
        with patch.dict(os.environ, {"MXFUZZ_TEST_FLAG": "no", "MXFUZZ_TEST_ODD": "maybe"}, clear=False):
            self.assertFalse(env_bool(["MXFUZZ_TEST_FLAG"], default=True))
            self.assertTrue(env_bool(["MXFUZZ_TEST_ODD"], default=True))

    def test_parse_bool_handles_config_file_values(self) -> None:
        self.assertFalse(parse_bool("false", default=True))
        self.assertFalse(parse_bool(" Off ", default=True))
        self.assertFalse(parse_bool(False, default=True))
        self.assertFalse(parse_bool(0, default=True))
        self.assertTrue(parse_bool("yes", default=False))
        self.assertTrue(parse_bool(None, default=True))
        self.assertTrue(parse_bool("sometimes", default=True))


if __name__ == "__main__":
    unittest.main()
