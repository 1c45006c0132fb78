"""Pydantic models package for API requests and responses."""

from .api_requests import (
    AuthResponse,
    ChatRequest,
    ChatResponse,
    ImageRequest,
    ImageResponse,
    RegisterRequest,
    SpeechRequest,
    TranslateRequest,
    UserInfo
)

__all__ = [
    "AuthResponse",
    "ChatRequest",
    "ChatResponse",
    "ImageRequest",
    "ImageResponse",
    "RegisterRequest",
    "SpeechRequest",
    "TranslateRequest",
    "UserInfo"
]
