from __future__ import annotations

from abc import ABC, abstractmethod

import httpx

from kiosk.app.translation.errors import ErrorKind
from kiosk.app.translation.types import ProviderPayload


class TranslationProviderError(Exception):
    """Raised when a provider response cannot be turned into a translation."""

    kind = ErrorKind.FORMAT

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ProviderFormatError(TranslationProviderError):
    kind = ErrorKind.FORMAT


class ProviderQuotaError(TranslationProviderError):
    kind = ErrorKind.QUOTA_EXCEEDED


class ProviderServiceError(TranslationProviderError):
    kind = ErrorKind.SERVICE


class TranslationProvider(ABC):
    @property
    @abstractmethod
    def name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def build_request(
        self,
        client: httpx.AsyncClient,
        text: str,
        source_language: str,
        target_language: str,
    ) -> httpx.Request:
        raise NotImplementedError

    @abstractmethod
    def parse_response(self, response: httpx.Response) -> ProviderPayload:
        raise NotImplementedError

    def build_availability_request(self, client: httpx.AsyncClient) -> httpx.Request:
        return self.build_request(client, "test", "en", "ja")
