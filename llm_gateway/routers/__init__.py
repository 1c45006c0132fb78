"""API routers for the LLM gateway."""

from .auth import auth_router
from .chat import chat_router
from .images import images_router
from .translation import translation_router
from .tts import tts_router

__all__ = [
    "auth_router",
    "chat_router",
    "images_router",
    "translation_router",
    "tts_router"
]
