"""Google Cloud Translation (v2) adapter."""

from __future__ import annotations

import html
import logging

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import translate_v2
from starlette.concurrency import run_in_threadpool

from scribeline.adapters.translation.base import SegmentTranslator
from scribeline.errors import TranslationError

logger = logging.getLogger(__name__)


class GoogleSegmentTranslator(SegmentTranslator):
    def __init__(self, *, client: translate_v2.Client | None = None) -> None:
        self._client = client

    def _translate(self, text: str, target_language: str) -> str:
        if self._client is None:
            self._client = translate_v2.Client()
        result = self._client.translate(text, target_language=target_language, format_="text")
        return html.unescape(str(result["translatedText"]))

    async def translate(self, text: str, target_language: str) -> str:
        if not text.strip():
            return text
        try:
            return await run_in_threadpool(self._translate, text, target_language)
        except (GoogleAPIError, GoogleAuthError, KeyError, TypeError, ValueError) as exc:
            logger.warning("translate.failed target_lang=%s reason=%s", target_language, type(exc).__name__)
            raise TranslationError(f"Failed to translate text: {exc}") from exc


__all__ = ["GoogleSegmentTranslator"]
