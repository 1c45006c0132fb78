"""Chat completion router."""

import logging

from fastapi import APIRouter, HTTPException

from ..backends.http import UpstreamError
from ..dependencies.services import ChatBackendDep
from ..models.api_requests import ChatRequest, ChatResponse

logger = logging.getLogger(__name__)

chat_router = APIRouter(prefix="/api/chat", tags=["Chat"])


@chat_router.post("", response_model=ChatResponse)
@chat_router.post("/", response_model=ChatResponse, include_in_schema=False)
async def create_chat_completion(request: ChatRequest, chat: ChatBackendDep):
    try:
        result = await chat.complete(
            messages=[message.model_dump() for message in request.messages],
            model=request.model,
            provider=request.provider,
            temperature=request.temperature,
            max_tokens=request.max_tokens
        )
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail={"error": {"message": str(e), "type": "invalid_request_error"}}
        )
    except UpstreamError as e:
        logger.error(f"Chat error: {e}")
        raise HTTPException(
            status_code=500,
            detail={"error": {"message": f"Failed to generate chat completion: {e}", "type": "upstream_error"}}
        )

    return ChatResponse(**result)
