"""Durable storage adapters."""

from .base import DurableUploader
from .gcs import GcsUploader
from .local import LocalBlobUploader

__all__ = ["DurableUploader", "GcsUploader", "LocalBlobUploader"]
