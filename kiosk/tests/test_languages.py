from __future__ import annotations

import unittest

from kiosk.app.translation.errors import (
    NETWORK_MESSAGE,
    QUOTA_MESSAGE,
    TIMEOUT_MESSAGE,
    ErrorKind,
    describe_failure,
    describe_status,
)
from kiosk.app.translation.languages import (
    UnsupportedLanguageError,
    detect_language,
    get_language_name,
    language_choices,
    normalize_language_code,
    resolve_language_pair,
)


class LanguageCodeTest(unittest.TestCase):
    def test_normalize_accepts_aliases_case_and_regions(self) -> None:
        cases = {
            "ja": "ja",
            "JA": "ja",
            "ja-JP": "ja",
            "ja_JP": "ja",
            "Japanese": "ja",
            "jp": "ja",
            "KR": "ko",
            "ko-KR": "ko",
            " it ": "it",
            "english": "en",
            "en-GB": "en",
        }
        for raw, expected in cases.items():
            self.assertEqual(normalize_language_code(raw), expected, msg=raw)

    def test_normalize_rejects_unknown(self) -> None:
        for raw in ("", "xx", "fr", None):
            self.assertIsNone(normalize_language_code(raw))

    def test_language_choices_cover_kiosk_languages(self) -> None:
        self.assertEqual(
            language_choices(),
            [("en", "English"), ("ja", "Japanese"), ("it", "Italian"), ("ko", "Korean")],
        )
        self.assertEqual(get_language_name("ko-KR"), "Korean")
        self.assertEqual(get_language_name("zz"), "zz")


class LanguageDetectionTest(unittest.TestCase):
    def test_scripts(self) -> None:
        japanese = detect_language("ゲートはどこですか")
        self.assertEqual(japanese.language, "ja")
        self.assertFalse(japanese.fallback)
        self.assertEqual(japanese.confidence, 1.0)

        korean = detect_language("감사합니다")
        self.assertEqual(korean.language, "ko")

    def test_latin_text_falls_back_to_english(self) -> None:
        detection = detect_language("Dov'è il gate?")
        self.assertEqual(detection.language, "en")
        self.assertTrue(detection.fallback)
        self.assertEqual(detection.confidence, 0.8)

    def test_blank_text(self) -> None:
        detection = detect_language("   ")
        self.assertEqual(detection.language, "en")
        self.assertEqual(detection.confidence, 0.7)

    def test_resolve_pair(self) -> None:
        self.assertEqual(resolve_language_pair("auto", "en", "안녕하세요"), ("ko", "en"))
        self.assertEqual(resolve_language_pair("English", "ja-JP", "Hello"), ("en", "ja"))
        with self.assertRaises(UnsupportedLanguageError):
            resolve_language_pair("auto", "en", "Hello")
        with self.assertRaises(UnsupportedLanguageError):
            resolve_language_pair("fr", "en", "Bonjour")


class ErrorMessageTest(unittest.TestCase):
    def test_status_messages(self) -> None:
        self.assertEqual(describe_status(503), "Translation service temporarily unavailable")
        self.assertEqual(
            describe_status(418),
            "Translation service error: I'm a teapot (418)",
        )

    def test_failure_messages(self) -> None:
        self.assertEqual(describe_failure(ErrorKind.NETWORK, "timeout"), TIMEOUT_MESSAGE)
        self.assertEqual(
            describe_failure(ErrorKind.NETWORK, "transport:ConnectError"),
            NETWORK_MESSAGE,
        )
        self.assertEqual(
            describe_failure(ErrorKind.SERVICE, "INVALID LANGUAGE PAIR"),
            "Translation service error: INVALID LANGUAGE PAIR",
        )
        self.assertEqual(
            describe_failure(ErrorKind.VALIDATION, "Text cannot be empty"),
            "Text cannot be empty",
        )
        self.assertEqual(describe_failure(ErrorKind.QUOTA_EXCEEDED), QUOTA_MESSAGE)


if __name__ == "__main__":
    unittest.main()
