"""Clients for the upstream AI backends."""

from .http import UpstreamError, read_json, send
from .chat import ChatBackend
from .images import ImageBackend, placeholder_image
from .translation import TranslationBackend, TranslationResult

__all__ = [
    "UpstreamError",
    "read_json",
    "send",
    "ChatBackend",
    "ImageBackend",
    "placeholder_image",
    "TranslationBackend",
    "TranslationResult"
]
