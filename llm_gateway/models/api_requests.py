"""Pydantic models for API requests and responses."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


# Authentication

class RegisterRequest(BaseModel):
    """Request model for registering a new user."""

    email: str = Field(..., min_length=3, max_length=254, description="Email address")
    username: str = Field(..., min_length=1, max_length=100, description="Display name")
    password: str = Field(..., min_length=6, max_length=128, description="Password (at least 6 characters)")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        v = v.strip()
        local, _, domain = v.partition('@')
        if not local or not domain:
            raise ValueError('Invalid email address')
        return v.lower()

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        if not v.strip():
            raise ValueError('Username cannot be blank')
        return v.strip()


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, description="Email address")
    password: str = Field(..., min_length=1, description="Password")


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1, description="Refresh token from login or register")


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)
    confirm_password: str = Field(..., min_length=1)


class DeleteAccountRequest(BaseModel):
    password: str = Field(..., min_length=1, description="Password confirmation")


class ValidatePasswordRequest(BaseModel):
    password: str = Field(..., min_length=1)


class UserInfo(BaseModel):
    """Public view of a user record."""

    id: str
    email: str
    username: str
    role: str
    created_at: str
    last_login: Optional[str] = None


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(BaseModel):
    message: str
    user: UserInfo
    tokens: TokenPair


class TokenRefreshResponse(BaseModel):
    message: str
    tokens: TokenPair


class UserListResponse(BaseModel):
    users: List[UserInfo]
    total: int


class PasswordValidationResponse(BaseModel):
    is_valid: bool
    errors: List[str]


class MessageResponse(BaseModel):
    message: str
    note: Optional[str] = None


# Text-to-speech

class SpeechRequest(BaseModel):
    """Speech synthesis request model.

    Length, language and speed limits depend on configuration and are checked
    by the route.
    """

    text: str = Field(..., description="Text to convert to speech")
    language: str = Field(..., min_length=1, description="XTTS language code, e.g. 'en' or 'pl'")
    speaker: Optional[str] = Field(default=None, description="XTTS studio speaker name")
    speed: float = Field(default=1.0, description="Speech speed")


class VoiceListResponse(BaseModel):
    voices: List[str] = Field(..., description="Available speaker names")
    default: str = Field(..., description="Speaker used when none is given")
    source: Literal["xtts", "fallback"] = Field(..., description="Where the list came from")


class SpeakerRefreshResponse(BaseModel):
    message: str
    speakers: int


# Chat

class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str = Field(..., max_length=100000)


class ChatRequest(BaseModel):
    """Chat completion request model."""

    messages: List[ChatMessage] = Field(..., min_length=1, description="Conversation so far")
    model: Optional[str] = Field(default=None, description="Model name, provider default when omitted")
    provider: Literal["ollama", "localai"] = Field(default="ollama", description="Chat backend")
    temperature: float = Field(default=0.7, ge=0, le=2, description="Sampling temperature")
    max_tokens: int = Field(default=2000, ge=1, le=100000, description="Maximum tokens to generate")


class ChatUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatResponse(BaseModel):
    content: str
    model: str
    usage: ChatUsage


# Images

class ImageRequest(BaseModel):
    """Image generation request model."""

    prompt: str = Field(..., min_length=1, max_length=10000, description="Image description")
    provider: Literal["localai", "stable-diffusion"] = Field(default="stable-diffusion")
    model: Optional[str] = Field(default=None)
    size: Literal["256x256", "512x512", "1024x1024", "1792x1024", "1024x1792"] = Field(default="1024x1024")
    quality: Literal["standard", "hd"] = Field(default="hd")
    n: int = Field(default=1, ge=1, le=10, description="Number of images")

    @field_validator('prompt')
    @classmethod
    def validate_prompt(cls, v):
        if not v.strip():
            raise ValueError('Prompt cannot be empty')
        return v


class ImageResponse(BaseModel):
    images: List[str]


# Translation

class TranslateRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Text to translate")
    source: Literal["en", "pl", "auto"] = Field(default="auto")
    target: Literal["en", "pl"]


class BatchTranslateRequest(BaseModel):
    texts: List[str] = Field(..., min_length=1, max_length=100, description="Texts to translate (max 100)")
    source: Literal["en", "pl", "auto"] = Field(default="auto")
    target: Literal["en", "pl"]


class DetectLanguageRequest(BaseModel):
    text: str = Field(..., min_length=1)


class TranslateResponse(BaseModel):
    success: bool = True
    translation: str
    source: str
    target: str
    confidence: Optional[float] = None


class BatchTranslateResponse(BaseModel):
    success: bool = True
    translations: List[str]
    source: str
    target: str


class DetectLanguageResponse(BaseModel):
    success: bool = True
    language: str
    confidence: Optional[float] = None


class LanguageListResponse(BaseModel):
    success: bool = True
    languages: List[Dict[str, Any]]
