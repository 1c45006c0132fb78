"""English/Polish translation router."""

import logging

from fastapi import APIRouter, HTTPException

from ..backends.http import UpstreamError
from ..dependencies.services import TranslationBackendDep
from ..models.api_requests import (
    BatchTranslateRequest,
    BatchTranslateResponse,
    DetectLanguageRequest,
    DetectLanguageResponse,
    LanguageListResponse,
    TranslateRequest,
    TranslateResponse
)

logger = logging.getLogger(__name__)

translation_router = APIRouter(prefix="/api/translate", tags=["Translation"])


def _backend_error(action: str, error: Exception) -> HTTPException:
    logger.error(f"{action} failed: {error}")
    return HTTPException(
        status_code=500,
        detail={"error": {"message": f"{action} failed: {error}", "type": "upstream_error"}}
    )


def _invalid_request(error: Exception) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={"error": {"message": str(error), "type": "invalid_request_error"}}
    )


@translation_router.post("", response_model=TranslateResponse)
@translation_router.post("/", response_model=TranslateResponse, include_in_schema=False)
async def translate_text(request: TranslateRequest, translation: TranslationBackendDep):
    try:
        result = await translation.translate(request.text, request.source, request.target)
    except ValueError as e:
        raise _invalid_request(e)
    except UpstreamError as e:
        raise _backend_error("Translation", e)

    return TranslateResponse(
        translation=result.translated_text,
        source=result.detected_language or request.source,
        target=request.target,
        confidence=result.confidence
    )


@translation_router.post("/batch", response_model=BatchTranslateResponse)
async def translate_batch(request: BatchTranslateRequest, translation: TranslationBackendDep):
    try:
        results = await translation.translate_batch(request.texts, request.source, request.target)
    except ValueError as e:
        raise _invalid_request(e)
    except UpstreamError as e:
        raise _backend_error("Batch translation", e)

    return BatchTranslateResponse(
        translations=[result.translated_text for result in results],
        source=request.source,
        target=request.target
    )


@translation_router.post("/detect", response_model=DetectLanguageResponse)
async def detect_language(request: DetectLanguageRequest, translation: TranslationBackendDep):
    try:
        result = await translation.detect(request.text)
    except ValueError as e:
        raise _invalid_request(e)
    except UpstreamError as e:
        raise _backend_error("Language detection", e)

    return DetectLanguageResponse(language=result["language"], confidence=result.get("confidence"))


@translation_router.get("/languages", response_model=LanguageListResponse)
async def list_languages(translation: TranslationBackendDep):
    try:
        languages = await translation.languages()
    except UpstreamError as e:
        raise _backend_error("Fetching supported languages", e)

    return LanguageListResponse(languages=languages)
