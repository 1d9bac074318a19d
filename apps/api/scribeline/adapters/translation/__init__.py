"""Translation adapters."""

from .base import SegmentTranslator
from .google import GoogleSegmentTranslator

__all__ = ["GoogleSegmentTranslator", "SegmentTranslator"]
