"""Image generation router."""

import logging

from fastapi import APIRouter, HTTPException

from ..dependencies.services import ImageBackendDep
from ..models.api_requests import ImageRequest, ImageResponse

logger = logging.getLogger(__name__)

images_router = APIRouter(prefix="/api/images", tags=["Images"])


@images_router.post("", response_model=ImageResponse)
@images_router.post("/", response_model=ImageResponse, include_in_schema=False)
async def generate_images(request: ImageRequest, images: ImageBackendDep):
    """Generate images from a prompt.

    LocalAI failures degrade to a placeholder image rather than an error.
    """
    try:
        urls = await images.generate(
            prompt=request.prompt,
            provider=request.provider,
            model=request.model,
            size=request.size,
            n=request.n
        )
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail={"error": {"message": str(e), "type": "invalid_request_error"}}
        )

    return ImageResponse(images=urls)
