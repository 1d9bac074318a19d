"""Text translation interface."""

from abc import ABC, abstractmethod


class SegmentTranslator(ABC):
    @abstractmethod
    async def translate(self, text: str, target_language: str) -> str:
        """Translate one segment of text; failures raise ``TranslationError``."""


__all__ = ["SegmentTranslator"]
