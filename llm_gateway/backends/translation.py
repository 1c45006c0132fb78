"""English/Polish translation through a LibreTranslate server."""

import asyncio
import logging
from typing import Any, Dict, List, NamedTuple, Optional

import httpx

from .http import UpstreamError, read_json, send

logger = logging.getLogger(__name__)

TARGET_LANGUAGES = ("en", "pl")
SOURCE_LANGUAGES = ("en", "pl", "auto")


class TranslationResult(NamedTuple):
    translated_text: str
    detected_language: Optional[str] = None
    confidence: Optional[float] = None


class TranslationBackend:
    """Client for the LibreTranslate HTTP API."""

    def __init__(self, client: httpx.AsyncClient, base_url: str, timeout: Optional[float] = None):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def translate(self, text: str, source: str, target: str) -> TranslationResult:
        """Translate text, skipping the backend when no translation is needed.

        Raises:
            ValueError: If text is empty
            UpstreamError: If LibreTranslate fails
        """
        if not text or not text.strip():
            raise ValueError("Text is required for translation")

        if source != "auto" and source == target:
            return TranslationResult(translated_text=text)

        logger.info(f"Translation request: {source} -> {target}, text length={len(text)}")
        response = await send(
            self.client, "POST", f"{self.base_url}/translate",
            service="Translation", timeout=self.timeout,
            json={"q": text, "source": source, "target": target, "format": "text"}
        )
        result = read_json(response, service="Translation", expected=dict)
        detected = result.get("detectedLanguage") or {}

        return TranslationResult(
            translated_text=result.get("translatedText", ""),
            detected_language=detected.get("language"),
            confidence=detected.get("confidence")
        )

    async def translate_batch(self, texts: List[str], source: str, target: str) -> List[TranslationResult]:
        # LibreTranslate has no batch endpoint
        return list(await asyncio.gather(*(self.translate(text, source, target) for text in texts)))

    async def detect(self, text: str) -> Dict[str, Any]:
        if not text or not text.strip():
            raise ValueError("Text is required for language detection")

        response = await send(
            self.client, "POST", f"{self.base_url}/detect",
            service="Language detection", timeout=self.timeout, json={"q": text}
        )
        results = read_json(response, service="Language detection", expected=list)
        if not results or not isinstance(results[0], dict) or not results[0].get("language"):
            raise UpstreamError("Could not detect language")
        return results[0]

    async def languages(self) -> List[Dict[str, Any]]:
        response = await send(
            self.client, "GET", f"{self.base_url}/languages",
            service="Translation", timeout=self.timeout
        )
        return read_json(response, service="Translation", expected=list)
