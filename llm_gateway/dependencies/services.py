"""Accessors for the engines and stores created by the application factory."""

from typing import Annotated

from fastapi import Depends, Request

from ..backends import ChatBackend, ImageBackend, TranslationBackend
from ..config import Settings
from ..tts_engine import ChunkedSynthesizer, SpeakerProfileCache
from ..utils.security import TokenService
from ..utils.user_store import UserStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_user_store(request: Request) -> UserStore:
    return request.app.state.users


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_synthesizer(request: Request) -> ChunkedSynthesizer:
    return request.app.state.synthesizer


def get_speaker_cache(request: Request) -> SpeakerProfileCache:
    return request.app.state.speakers


def get_chat_backend(request: Request) -> ChatBackend:
    return request.app.state.chat


def get_image_backend(request: Request) -> ImageBackend:
    return request.app.state.images


def get_translation_backend(request: Request) -> TranslationBackend:
    return request.app.state.translation


SettingsDep = Annotated[Settings, Depends(get_settings)]
UserStoreDep = Annotated[UserStore, Depends(get_user_store)]
TokenServiceDep = Annotated[TokenService, Depends(get_token_service)]
SynthesizerDep = Annotated[ChunkedSynthesizer, Depends(get_synthesizer)]
SpeakerCacheDep = Annotated[SpeakerProfileCache, Depends(get_speaker_cache)]
ChatBackendDep = Annotated[ChatBackend, Depends(get_chat_backend)]
ImageBackendDep = Annotated[ImageBackend, Depends(get_image_backend)]
TranslationBackendDep = Annotated[TranslationBackend, Depends(get_translation_backend)]
