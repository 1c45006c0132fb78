"""Image generation through LocalAI with a placeholder fallback."""

import base64
import logging
from html import escape
from typing import List, Optional

import httpx

from .http import UpstreamError, read_json, send

logger = logging.getLogger(__name__)

VALID_SIZES = ("256x256", "512x512", "1024x1024", "1792x1024", "1024x1792")
PROMPT_PREVIEW_CHARS = 50

PLACEHOLDER_TEMPLATE = """<svg width="{width}" height="{height}" xmlns="http://www.w3.org/2000/svg">
  <rect width="100%" height="100%" fill="#f0f0f0"/>
  <text x="50%" y="50%" font-family="Arial" font-size="24" fill="#666" text-anchor="middle" dy=".3em">
    AI Generated Image
  </text>
  <text x="50%" y="70%" font-family="Arial" font-size="16" fill="#999" text-anchor="middle" dy=".3em">
    {caption}
  </text>
</svg>
"""


def placeholder_image(prompt: str, size: str = "1024x1024") -> str:
    """Build an SVG data URL showing a shortened prompt."""
    width, height = (int(part) for part in size.split("x"))
    caption = prompt[:PROMPT_PREVIEW_CHARS]
    if len(prompt) > PROMPT_PREVIEW_CHARS:
        caption += "..."

    svg = PLACEHOLDER_TEMPLATE.format(width=width, height=height, caption=escape(caption))
    encoded = base64.b64encode(svg.encode("utf-8")).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"


class ImageBackend:
    """Generates images with LocalAI."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        localai_url: str,
        default_model: str = "stablediffusion",
        timeout: Optional[float] = None
    ):
        self.client = client
        self.localai_url = localai_url.rstrip("/")
        self.default_model = default_model
        self.timeout = timeout

    async def generate(
        self,
        prompt: str,
        provider: str = "stable-diffusion",
        model: Optional[str] = None,
        size: str = "1024x1024",
        n: int = 1
    ) -> List[str]:
        """Generate images for a prompt.

        LocalAI failures are logged and answered with a placeholder image, as
        are providers without a backend.

        Returns:
            List of image URLs or data URLs
        """
        if size not in VALID_SIZES:
            raise ValueError(f"Invalid size. Must be one of: {', '.join(VALID_SIZES)}")

        if provider == "localai":
            try:
                return await self._localai(prompt, model or self.default_model, size, n)
            except UpstreamError as e:
                logger.warning(f"LocalAI image generation failed, returning placeholder: {e}")

        logger.info(f"Generating placeholder image for prompt of {len(prompt)} characters")
        return [placeholder_image(prompt, size)]

    async def _localai(self, prompt: str, model: str, size: str, n: int) -> List[str]:
        response = await send(
            self.client, "POST", f"{self.localai_url}/v1/images/generations",
            service="LocalAI", timeout=self.timeout,
            json={"model": model, "prompt": prompt, "size": size, "n": n}
        )
        data = read_json(response, service="LocalAI", expected=dict).get("data") or []

        images = []
        for item in data:
            if not isinstance(item, dict):
                continue
            if item.get("b64_json"):
                images.append(f"data:image/png;base64,{item['b64_json']}")
            elif item.get("url"):
                images.append(item["url"])

        if not images:
            raise UpstreamError("No images returned from LocalAI")
        return images
