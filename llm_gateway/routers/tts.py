"""Text-to-speech router backed by the chunked XTTS synthesizer."""

import logging

from fastapi import APIRouter, HTTPException, Response

from ..backends.http import UpstreamError
from ..config import Settings
from ..dependencies.auth import AdminUser
from ..dependencies.services import SettingsDep, SpeakerCacheDep, SynthesizerDep
from ..models.api_requests import SpeakerRefreshResponse, SpeechRequest, VoiceListResponse
from ..tts_engine import (
    EmptyInputError,
    FormatMismatchError,
    SpeakerNotFoundError
)

logger = logging.getLogger(__name__)

tts_router = APIRouter(prefix="/api/tts", tags=["Audio"])


def validate_speech_request(request: SpeechRequest, settings: Settings) -> None:
    """Centralized validation for speech synthesis requests.

    Raises:
        HTTPException: For validation errors
    """
    xtts = settings.xtts

    if not request.text or not request.text.strip():
        raise HTTPException(
            status_code=400,
            detail={"error": {"message": "Text cannot be empty", "type": "invalid_request_error"}}
        )

    if len(request.text) > xtts.max_text_length:
        raise HTTPException(
            status_code=400,
            detail={
                "error": {
                    "message": f"Text too long: {len(request.text)} characters. Maximum allowed: {xtts.max_text_length}",
                    "type": "invalid_request_error",
                }
            },
        )

    if request.language.lower() not in xtts.supported_languages:
        raise HTTPException(
            status_code=400,
            detail={
                "error": {
                    "message": f"Unsupported language: {request.language}. Supported: {', '.join(xtts.supported_languages)}",
                    "type": "invalid_request_error",
                }
            },
        )

    if not (xtts.min_speed <= request.speed <= xtts.max_speed):
        raise HTTPException(
            status_code=400,
            detail={
                "error": {
                    "message": f"Speed must be between {xtts.min_speed} and {xtts.max_speed}",
                    "type": "invalid_request_error",
                }
            },
        )


@tts_router.post("", response_class=Response)
@tts_router.post("/", response_class=Response, include_in_schema=False)
async def synthesize_speech(request: SpeechRequest, synthesizer: SynthesizerDep, settings: SettingsDep):
    """Synthesize speech and return a single WAV file.

    Texts longer than the XTTS character limit are synthesized in chunks and
    spliced. ``X-Audio-Chunks`` reports how many clips were produced and
    ``X-Audio-Skipped-Chunks`` how many of them had to be left out.
    """
    validate_speech_request(request, settings)

    language = request.language.lower()
    speaker = request.speaker or settings.xtts.default_speaker

    try:
        result = await synthesizer.synthesize(request.text, language, speaker)
    except SpeakerNotFoundError as e:
        raise HTTPException(
            status_code=400,
            detail={"error": {"message": str(e), "type": "invalid_request_error"}}
        )
    except UpstreamError as e:
        logger.error(f"TTS error: {e}")
        raise HTTPException(
            status_code=500,
            detail={"error": {"message": f"Failed to generate speech: {e}", "type": "upstream_error"}}
        )
    except (EmptyInputError, FormatMismatchError) as e:
        logger.error(f"Audio assembly failed: {e}")
        raise HTTPException(
            status_code=500,
            detail={"error": {"message": f"Failed to assemble audio: {e}", "type": "internal_server_error"}}
        )

    logger.info(f"Generated audio: {len(result.audio)} bytes from {result.chunk_count} chunk(s)")
    return Response(
        content=result.audio,
        media_type="audio/wav",
        headers={
            "Content-Disposition": 'attachment; filename="speech.wav"',
            "X-Audio-Chunks": str(result.chunk_count),
            "X-Audio-Skipped-Chunks": str(result.skipped_chunks),
        }
    )


@tts_router.get("/voices", response_model=VoiceListResponse)
async def list_voices(speakers: SpeakerCacheDep, settings: SettingsDep):
    """List XTTS speakers, falling back to a static list when XTTS is down."""
    try:
        voices = await speakers.names()
        source = "xtts"
    except UpstreamError as e:
        logger.warning(f"Could not load speakers from XTTS, using fallback list: {e}")
        voices = list(settings.xtts.fallback_speakers)
        source = "fallback"

    return VoiceListResponse(voices=voices, default=settings.xtts.default_speaker, source=source)


@tts_router.post("/speakers/refresh", response_model=SpeakerRefreshResponse)
async def refresh_speakers(admin: AdminUser, speakers: SpeakerCacheDep):
    """Reload speaker profiles from XTTS (admin only)."""
    try:
        count = await speakers.refresh()
    except UpstreamError as e:
        raise HTTPException(
            status_code=500,
            detail={"error": {"message": f"Failed to refresh speakers: {e}", "type": "upstream_error"}}
        )

    logger.info(f"Speaker profiles refreshed by {admin.username}: {count} loaded")
    return SpeakerRefreshResponse(message="Speaker profiles refreshed", speakers=count)
