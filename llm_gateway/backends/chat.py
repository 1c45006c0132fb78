"""Chat completion clients for Ollama and LocalAI."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .http import read_json, send

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("ollama", "localai")

# Sampling options sent to Ollama with every request
OLLAMA_SAMPLING = {
    "top_p": 0.9,
    "top_k": 40,
    "repeat_penalty": 1.1,
}


def _empty_usage() -> Dict[str, int]:
    return {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}


class ChatBackend:
    """Dispatches chat completions to the configured provider."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        ollama_url: str,
        localai_url: str,
        ollama_model: str = "llama2",
        localai_model: str = "gpt-3.5-turbo",
        timeout: Optional[float] = None
    ):
        self.client = client
        self.ollama_url = ollama_url.rstrip("/")
        self.localai_url = localai_url.rstrip("/")
        self.ollama_model = ollama_model
        self.localai_model = localai_model
        self.timeout = timeout

    async def complete(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        provider: str = "ollama",
        temperature: float = 0.7,
        max_tokens: int = 2000
    ) -> Dict[str, Any]:
        """Generate a chat completion.

        Args:
            messages: Conversation as ``{"role", "content"}`` dicts
            model: Model name, provider default when None
            provider: ``ollama`` or ``localai``
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate

        Returns:
            Dict with ``content``, ``model`` and ``usage``

        Raises:
            ValueError: If the provider is not supported
            UpstreamError: If the backend call fails
        """
        if provider == "ollama":
            return await self._ollama(messages, model or self.ollama_model, temperature, max_tokens)
        if provider == "localai":
            return await self._localai(messages, model or self.localai_model, temperature, max_tokens)
        raise ValueError(f"Unsupported chat provider: {provider}")

    async def _ollama(self, messages, model: str, temperature: float, max_tokens: int) -> Dict[str, Any]:
        # Ollama takes the system prompt as a separate field
        system_message = next((m for m in messages if m["role"] == "system"), None)
        conversation = [
            {"role": "assistant" if m["role"] == "assistant" else "user", "content": m["content"]}
            for m in messages if m["role"] != "system"
        ]

        payload = {
            "model": model,
            "messages": conversation,
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_tokens, **OLLAMA_SAMPLING},
        }
        if system_message:
            payload["system"] = system_message["content"]

        logger.info(f"Ollama chat request: model={model}, messages={len(conversation)}")
        response = await send(
            self.client, "POST", f"{self.ollama_url}/api/chat",
            service="Ollama", timeout=self.timeout, json=payload
        )
        result = read_json(response, service="Ollama", expected=dict)

        return {
            "content": (result.get("message") or {}).get("content", ""),
            "model": result.get("model") or model,
            "usage": _empty_usage(),
        }

    async def _localai(self, messages, model: str, temperature: float, max_tokens: int) -> Dict[str, Any]:
        logger.info(f"LocalAI chat request: model={model}, messages={len(messages)}")
        response = await send(
            self.client, "POST", f"{self.localai_url}/v1/chat/completions",
            service="LocalAI", timeout=self.timeout,
            json={
                "model": model,
                "messages": [{"role": m["role"], "content": m["content"]} for m in messages],
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        result = read_json(response, service="LocalAI", expected=dict)

        choices = result.get("choices") or []
        content = ""
        if choices:
            content = (choices[0].get("message") or {}).get("content", "")

        return {
            "content": content,
            "model": result.get("model") or model,
            "usage": result.get("usage") or _empty_usage(),
        }
