from __future__ import annotations

import logging
import unittest

import httpx

from kiosk.app.settings import Settings
from kiosk.app.translation.errors import FORMAT_MESSAGE, QUOTA_MESSAGE, ErrorKind
from kiosk.app.translation.gateway import TranslationGateway
from kiosk.app.translation.providers.base import (
    ProviderFormatError,
    ProviderQuotaError,
    ProviderServiceError,
)
from kiosk.app.translation.providers.mymemory import MyMemoryProvider, decode_match_value


def _response(payload: object = None, content: bytes | None = None) -> httpx.Response:
    request = httpx.Request("GET", "http://mymemory.test/get")
    if content is not None:
        return httpx.Response(200, content=content, request=request)
    return httpx.Response(200, json=payload, request=request)


def _payload(text: object = "Grazie", match: object = 0.8, **extra: object) -> dict:
    body: dict = {
        "responseData": {"translatedText": text, "match": match},
        "quotaFinished": False,
        "responseDetails": "",
        "responseStatus": 200,
        "matches": [],
    }
    if match is None:
        del body["responseData"]["match"]
    body.update(extra)
    return body


class MatchDecodingTest(unittest.TestCase):
    def test_numeric_string_and_number_agree(self) -> None:
        self.assertAlmostEqual(decode_match_value("0.8"), 0.8)
        self.assertAlmostEqual(decode_match_value(0.8), 0.8)
        self.assertAlmostEqual(decode_match_value(" 0.8 "), 0.8)

    def test_booleans_and_words(self) -> None:
        self.assertEqual(decode_match_value(True), 1.0)
        self.assertEqual(decode_match_value(False), 0.0)
        self.assertEqual(decode_match_value("exact"), 1.0)
        self.assertEqual(decode_match_value("TRUE"), 1.0)

    def test_missing_or_unreadable_values_use_default(self) -> None:
        self.assertEqual(decode_match_value(None), 0.5)
        self.assertEqual(decode_match_value("n/a"), 0.5)
        self.assertEqual(decode_match_value(float("nan")), 0.5)
        self.assertEqual(decode_match_value({"score": 1}), 0.5)
        self.assertEqual(decode_match_value(None, default=0.3), 0.3)

    def test_values_are_clamped(self) -> None:
        self.assertEqual(decode_match_value(85), 1.0)
        self.assertEqual(decode_match_value("-0.2"), 0.0)


class MyMemoryParseTest(unittest.TestCase):
    def setUp(self) -> None:
        self.provider = MyMemoryProvider(default_confidence=0.5)

    def test_translated_text_and_match(self) -> None:
        parsed = self.provider.parse_response(_response(_payload(" Grazie ", "0.8")))
        self.assertEqual(parsed.text, "Grazie")
        self.assertAlmostEqual(parsed.confidence, 0.8)

    def test_missing_match_uses_default_confidence(self) -> None:
        parsed = self.provider.parse_response(_response(_payload(match=None)))
        self.assertEqual(parsed.confidence, 0.5)

    def test_quota_sentinels(self) -> None:
        for text in (
            "PLEASE SELECT TWO DISTINCT LANGUAGES",
            "MYMEMORY WARNING: YOU USED ALL AVAILABLE FREE TRANSLATIONS FOR TODAY.",
        ):
            with self.assertRaises(ProviderQuotaError):
                self.provider.parse_response(_response(_payload(text)))

        with self.assertRaises(ProviderQuotaError):
            self.provider.parse_response(_response(_payload(quotaFinished=True)))

    def test_in_body_error_status(self) -> None:
        body = _payload(
            "INVALID LANGUAGE PAIR SPECIFIED",
            responseStatus="403",
            responseDetails="INVALID LANGUAGE PAIR SPECIFIED",
        )
        with self.assertRaises(ProviderServiceError) as caught:
            self.provider.parse_response(_response(body))
        self.assertEqual(caught.exception.reason, "INVALID LANGUAGE PAIR SPECIFIED")

    def test_malformed_payloads(self) -> None:
        with self.assertRaises(ProviderFormatError):
            self.provider.parse_response(_response(content=b"<html>busy</html>"))
        with self.assertRaises(ProviderFormatError):
            self.provider.parse_response(_response(["not", "an", "object"]))
        with self.assertRaises(ProviderFormatError):
            self.provider.parse_response(_response({"responseStatus": 200}))

    def test_empty_text_falls_back_to_best_match(self) -> None:
        body = _payload(
            "",
            matches=[
                {"translation": "Grazie mille", "quality": "60", "match": 0.7},
                {"translation": "Grazie", "quality": 90, "match": "0.95"},
                {"translation": "", "quality": 100},
                "garbage",
            ],
        )
        parsed = self.provider.parse_response(_response(body))
        self.assertEqual(parsed.text, "Grazie")
        self.assertAlmostEqual(parsed.confidence, 0.95)

    def test_empty_text_without_matches_is_format_error(self) -> None:
        with self.assertRaises(ProviderFormatError):
            self.provider.parse_response(_response(_payload(None)))

    def test_request_carries_query_and_langpair(self) -> None:
        client = httpx.AsyncClient(base_url="https://api.mymemory.translated.net")
        request = self.provider.build_request(client, "Where is gate 5?", "en", "it")
        self.assertEqual(request.method, "GET")
        self.assertEqual(request.url.path, "/get")
        self.assertEqual(request.url.params["q"], "Where is gate 5?")
        self.assertEqual(request.url.params["langpair"], "en|it")


class GatewayPayloadErrorTest(unittest.IsolatedAsyncioTestCase):
    async def _translate_with(self, response_factory):  # type: ignore[no-untyped-def]
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return response_factory()

        gateway = TranslationGateway(
            settings=Settings(
                service_name="airport-kiosk-gateway",
                service_version="1.0.0-test",
                environment="test",
                log_level="INFO",
                host="127.0.0.1",
                port=7001,
                kiosk_id="kiosk-test",
                translation_mode="mymemory",
                translation_base_url="http://mymemory.test",
                translation_timeout_seconds=2.0,
                translation_retry_attempts=3,
                translation_retry_delay_ms=0,
                translation_default_confidence=0.5,
            ),
            logger=logging.getLogger("kiosk.test.payload"),
            client_factory=lambda: httpx.AsyncClient(
                base_url="http://mymemory.test",
                transport=httpx.MockTransport(handler),
            ),
        )
        try:
            result = await gateway.translate("Thank you", "en", "it")
        finally:
            await gateway.stop()
        return result, calls

    async def test_invalid_json_fails_after_one_attempt(self) -> None:
        result, calls = await self._translate_with(
            lambda: httpx.Response(200, content=b"{not json")
        )
        self.assertFalse(result.success)
        self.assertIs(result.error_kind, ErrorKind.FORMAT)
        self.assertEqual(result.error_message, FORMAT_MESSAGE)
        self.assertEqual(result.attempts, 1)
        self.assertEqual(len(calls), 1)
        self.assertEqual(result.translated_text, "Thank you")

    async def test_quota_sentinel_maps_to_quota_exceeded(self) -> None:
        result, calls = await self._translate_with(
            lambda: httpx.Response(
                200,
                json=_payload("MYMEMORY WARNING: YOU USED ALL AVAILABLE FREE TRANSLATIONS"),
            )
        )
        self.assertFalse(result.success)
        self.assertIs(result.error_kind, ErrorKind.QUOTA_EXCEEDED)
        self.assertEqual(result.error_message, QUOTA_MESSAGE)
        self.assertEqual(len(calls), 1)

    async def test_string_match_is_reported_as_confidence(self) -> None:
        result, _ = await self._translate_with(
            lambda: httpx.Response(200, json=_payload("Grazie", "0.8"))
        )
        self.assertTrue(result.success)
        self.assertAlmostEqual(result.confidence, 0.8)
        self.assertEqual(result.provider, "MyMemory")


if __name__ == "__main__":
    unittest.main()
