"""LLM gateway: authenticated HTTP front end for chat, speech, image and translation backends."""

__version__ = "1.0.0"
