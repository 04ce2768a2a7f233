"""
Narrative translation.

Two interchangeable backends:
  - AzureTranslatorBackend: Azure Translator REST v3 (default)
  - GoogleTranslatorBackend: deep_translator's GoogleTranslator, no key needed

UniversalTranslator applies the pipeline policy on top: translation is
best-effort and never raises; a failed call returns the untranslated text.
"""
from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import httpx
from deep_translator import GoogleTranslator

from guide.dto import CanonicalLocale
from guide.errors import TranslationFailure
from guide.logger import get_logger

logger = get_logger(__name__)


class AzureTranslatorBackend:
    API_VERSION = "3.0"

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        region: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.headers = {
            "Ocp-Apim-Subscription-Key": api_key,
            "Content-Type": "application/json",
        }
        if region:
            self.headers["Ocp-Apim-Subscription-Region"] = region
        self._client = client or httpx.AsyncClient(timeout=30.0)

    async def translate(self, text: str, source: str, target: str) -> str:
        response = await self._client.post(
            f"{self.endpoint}/translate",
            params={"api-version": self.API_VERSION, "from": source, "to": target},
            headers=self.headers,
            json=[{"text": text}],
        )
        response.raise_for_status()
        body = response.json()
        try:
            return body[0]["translations"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise TranslationFailure(f"Malformed translation response: {body!r}") from e

    async def languages(self) -> Dict[str, Any]:
        # The catalog endpoint is public; no key required
        response = await self._client.get(
            f"{self.endpoint}/languages",
            params={"api-version": self.API_VERSION, "scope": "translation"},
        )
        response.raise_for_status()
        return response.json()

    async def aclose(self):
        await self._client.aclose()


class GoogleTranslatorBackend:
    # Google's codes differ from the canonical translation codes for a few languages
    CODE_MAP = {
        "zh": "zh-CN",
        "zh-hans": "zh-CN",
        "zh-hant": "zh-TW",
        "he": "iw",
        "fil": "tl",
        "nb": "no",
        "pt-pt": "pt",
        "fr-ca": "fr",
    }
    RTL_CODES = {"ar", "iw", "he", "fa", "ur", "ps", "yi", "sd", "ug"}

    @classmethod
    def to_google_code(cls, code: str) -> str:
        return cls.CODE_MAP.get(code.lower(), code)

    def _translate_sync(self, text: str, source: str, target: str) -> str:
        translator = GoogleTranslator(source=self.to_google_code(source), target=self.to_google_code(target))
        return translator.translate(text)

    async def translate(self, text: str, source: str, target: str) -> str:
        return await asyncio.to_thread(self._translate_sync, text, source, target)

    def _languages_sync(self) -> Dict[str, Any]:
        supported = GoogleTranslator().get_supported_languages(as_dict=True)
        catalog = {}
        for name, code in supported.items():
            catalog[code] = {
                "name": name.title(),
                "nativeName": name.title(),
                "dir": "rtl" if code in self.RTL_CODES else "ltr",
            }
        return {"translation": catalog}

    async def languages(self) -> Dict[str, Any]:
        return await asyncio.to_thread(self._languages_sync)

    async def aclose(self):
        pass


class UniversalTranslator:
    def __init__(self, backend, default_source: str = "zh-Hant"):
        self.backend = backend
        self.default_source = default_source

    async def translate(self, text: str, source_locale_hint: Optional[str], target: CanonicalLocale) -> str:
        source = source_locale_hint or self.default_source
        target_code = target.translation_code

        if not text or source.lower() == target_code.lower():
            return text

        logger.info(f"🌐 Translating {len(text)} chars {source} → {target_code}")
        try:
            translated = await self.backend.translate(text, source, target_code)
            if not translated or not translated.strip():
                raise TranslationFailure("Translation came back empty")
        except Exception as e:
            logger.error(f"❌ Translation {source} → {target_code} failed, keeping original text: {e}")
            return text

        return translated

    async def languages(self) -> Dict[str, Any]:
        return await self.backend.languages()
