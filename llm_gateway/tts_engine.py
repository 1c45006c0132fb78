"""Text-to-speech engine backed by an XTTS streaming server.

XTTS v2 refuses inputs longer than 250 characters, so long texts are split
into sentence-aligned chunks, each chunk is synthesized separately and the
resulting WAV files are spliced back into one container.
"""

import asyncio
import base64
import binascii
import logging
import re
import struct
import time
from typing import Any, Awaitable, Callable, Dict, List, NamedTuple, Optional, Sequence

import httpx

from .backends.http import UpstreamError, read_json, send

logger = logging.getLogger(__name__)

# Configuration Constants
DEFAULT_MAX_CHARS = 240
DEFAULT_CHUNK_TIMEOUT = 180.0

# Sentence terminators followed by whitespace or the end of the text
SENTENCE_BOUNDARY = re.compile(r'([.!?]+\s+|[.!?]+$)')
WORD_BOUNDARY = re.compile(r'(\s+)')

# RIFF/WAVE layout
RIFF_SIZE_OFFSET = 4
DATA_MARKER = b"data"
FMT_MARKER = b"fmt "
FMT_FIELDS = struct.Struct('<HHIIHH')


class EmptyInputError(ValueError):
    """Raised when there is no audio left to splice."""


class MalformedContainerError(ValueError):
    """Raised when a buffer has no locatable data chunk."""


class FormatMismatchError(RuntimeError):
    """Raised when spliced clips disagree on their encoding parameters."""


class SpeakerNotFoundError(ValueError):
    """Raised when the requested speaker is not offered by XTTS."""


class UpstreamSynthesisError(UpstreamError):
    """Raised when a synthesis call to XTTS fails or times out."""


class WavFormat(NamedTuple):
    """Encoding parameters from a WAV ``fmt `` chunk."""
    audio_format: int
    channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int


class WavClip(NamedTuple):
    """One parsed WAV buffer.

    Attributes:
        header_length: Bytes up to and including the data size field
        size_field_offset: Offset of the data chunk size field
        payload: Audio bytes following the data chunk header
        format: Parsed fmt chunk, None when the buffer has none
    """
    header_length: int
    size_field_offset: int
    payload: bytes
    format: Optional[WavFormat]


class SpliceResult(NamedTuple):
    """Outcome of a synthesis request.

    Attributes:
        audio: The single WAV buffer returned to the caller
        chunk_count: Number of clips that were spliced
        skipped_chunks: Clips dropped because they had no data chunk
    """
    audio: bytes
    chunk_count: int
    skipped_chunks: int


class SpeakerProfile(NamedTuple):
    """Voice conditioning data for one XTTS studio speaker."""
    name: str
    speaker_embedding: List[float]
    gpt_cond_latent: List[List[float]]


def split_text_into_chunks(text: str, max_chars: int = DEFAULT_MAX_CHARS) -> List[str]:
    """Split text into chunks at sentence boundaries within a character limit.

    Sentences are accumulated greedily. A sentence that alone exceeds the limit
    is split on whitespace instead. Words are never cut, so a single word longer
    than ``max_chars`` is returned as one oversized chunk.

    Args:
        text: Input text
        max_chars: Maximum characters per chunk

    Returns:
        Ordered list of stripped, non-empty chunks

    Raises:
        ValueError: If max_chars is not positive, or if text longer than
            max_chars contains nothing but whitespace
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")

    if len(text) <= max_chars:
        return [text]

    if not text.strip():
        raise ValueError("Text contains only whitespace")

    chunks: List[str] = []
    current = ""

    for segment in SENTENCE_BOUNDARY.split(text):
        if len(current) + len(segment) <= max_chars:
            current += segment
            continue

        if current.strip():
            chunks.append(current.strip())

        if len(segment) > max_chars:
            word_chunks, current = _split_by_words(segment, max_chars)
            chunks.extend(word_chunks)
        else:
            current = segment

    if current.strip():
        chunks.append(current.strip())

    return [chunk for chunk in chunks if chunk]


def _split_by_words(segment: str, max_chars: int):
    """Greedily pack whitespace-separated words, keeping the separators.

    Returns the completed chunks and the unfinished remainder, which becomes
    the running chunk of the caller.
    """
    completed: List[str] = []
    current = ""

    for word in WORD_BOUNDARY.split(segment):
        if len(current) + len(word) <= max_chars:
            current += word
        else:
            if current.strip():
                completed.append(current.strip())
            current = word

    return completed, current


def _read_format(buffer: bytes, limit: int) -> Optional[WavFormat]:
    fmt_index = buffer.find(FMT_MARKER, 0, limit)
    if fmt_index == -1 or fmt_index + 8 + FMT_FIELDS.size > len(buffer):
        return None
    return WavFormat(*FMT_FIELDS.unpack_from(buffer, fmt_index + 8))


def parse_wav_clip(buffer: bytes) -> WavClip:
    """Locate the data chunk of a WAV buffer and extract its payload.

    Args:
        buffer: Complete WAV file bytes

    Returns:
        Parsed clip; the payload holds the declared number of bytes, or fewer
        when the buffer is truncated

    Raises:
        MalformedContainerError: If no data chunk header can be found
    """
    data_index = buffer.find(DATA_MARKER)
    if data_index == -1 or data_index + 8 > len(buffer):
        raise MalformedContainerError("Invalid WAV buffer - no data chunk found")

    size_offset = data_index + 4
    (payload_size,) = struct.unpack_from('<I', buffer, size_offset)
    audio_start = data_index + 8

    return WavClip(
        header_length=audio_start,
        size_field_offset=size_offset,
        payload=buffer[audio_start:audio_start + payload_size],
        format=_read_format(buffer, data_index)
    )


def splice_wav_buffers(buffers: Sequence[bytes]) -> SpliceResult:
    """Concatenate WAV buffers into a single WAV file.

    The header of the first well-formed buffer is reused with its RIFF size and
    data size fields patched. Buffers without a data chunk are skipped and
    counted; buffers whose fmt chunk differs from the template are rejected.

    Args:
        buffers: WAV files in playback order

    Returns:
        SpliceResult with the combined audio

    Raises:
        EmptyInputError: If no buffers are given or none has a data chunk
        FormatMismatchError: If the clips were encoded differently
    """
    if not buffers:
        raise EmptyInputError("No audio buffers to concatenate")

    if len(buffers) == 1:
        return SpliceResult(audio=buffers[0], chunk_count=1, skipped_chunks=0)

    clips: List[WavClip] = []
    template_buffer: Optional[bytes] = None
    template: Optional[WavClip] = None
    skipped = 0

    for index, buffer in enumerate(buffers):
        try:
            clip = parse_wav_clip(buffer)
        except MalformedContainerError as e:
            skipped += 1
            logger.warning(f"Skipping audio chunk {index + 1}/{len(buffers)}: {e}")
            continue

        if template is None:
            template_buffer, template = buffer, clip
        elif (
            clip.format is not None
            and template.format is not None
            and clip.format != template.format
        ):
            raise FormatMismatchError(
                f"Audio chunk {index + 1} is encoded as {clip.format}, expected {template.format}"
            )

        clips.append(clip)

    if template is None:
        raise EmptyInputError(f"None of the {len(buffers)} audio buffers contained a data chunk")

    total_audio_size = sum(len(clip.payload) for clip in clips)

    header = bytearray(template_buffer[:template.header_length])
    struct.pack_into('<I', header, RIFF_SIZE_OFFSET, len(header) + total_audio_size - 8)
    struct.pack_into('<I', header, template.size_field_offset, total_audio_size)

    audio = b"".join([bytes(header)] + [clip.payload for clip in clips])

    return SpliceResult(audio=audio, chunk_count=len(buffers), skipped_chunks=skipped)


ProfileLoader = Callable[[], Awaitable[Dict[str, Any]]]


class SpeakerProfileCache:
    """Speaker profiles fetched once and kept until explicitly invalidated.

    The cache is owned by the application and handed to the synthesizer, so
    tests and alternative profile sets can supply their own loader.
    """

    def __init__(self, loader: ProfileLoader):
        self._loader = loader
        self._profiles: Optional[Dict[str, SpeakerProfile]] = None
        self._lock = asyncio.Lock()
        self.loaded_at: Optional[float] = None

    @property
    def is_loaded(self) -> bool:
        return self._profiles is not None

    async def _load(self) -> Dict[str, SpeakerProfile]:
        raw = await self._loader()
        profiles = {}
        for name, data in raw.items():
            if (
                not isinstance(data, dict)
                or data.get("speaker_embedding") is None
                or data.get("gpt_cond_latent") is None
            ):
                logger.warning(f"Ignoring incomplete speaker profile: {name}")
                continue
            profiles[name] = SpeakerProfile(
                name=name,
                speaker_embedding=data["speaker_embedding"],
                gpt_cond_latent=data["gpt_cond_latent"]
            )

        self.loaded_at = time.time()
        logger.info(f"Loaded {len(profiles)} speaker profiles")
        return profiles

    async def _ensure_loaded(self) -> Dict[str, SpeakerProfile]:
        if self._profiles is None:
            async with self._lock:
                if self._profiles is None:
                    self._profiles = await self._load()
        return self._profiles

    async def get(self, name: str) -> Optional[SpeakerProfile]:
        profiles = await self._ensure_loaded()
        return profiles.get(name)

    async def names(self) -> List[str]:
        profiles = await self._ensure_loaded()
        return list(profiles.keys())

    def invalidate(self) -> None:
        """Drop cached profiles; the next lookup fetches them again."""
        self._profiles = None
        self.loaded_at = None

    async def refresh(self) -> int:
        """Fetch profiles now, replacing the cached set.

        Returns:
            Number of profiles loaded
        """
        async with self._lock:
            self._profiles = await self._load()
            return len(self._profiles)


class XTTSClient:
    """HTTP client for the XTTS streaming server."""

    def __init__(self, base_url: str, client: httpx.AsyncClient, timeout: float = DEFAULT_CHUNK_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.client = client
        self.timeout = timeout

    async def fetch_speakers(self) -> Dict[str, Any]:
        """Fetch the studio speaker table (name -> conditioning data)."""
        response = await send(
            self.client, "GET", f"{self.base_url}/studio_speakers",
            service="XTTS", error_cls=UpstreamSynthesisError, timeout=self.timeout
        )
        return read_json(response, service="XTTS", error_cls=UpstreamSynthesisError, expected=dict)

    async def list_languages(self) -> List[str]:
        response = await send(
            self.client, "GET", f"{self.base_url}/languages",
            service="XTTS", error_cls=UpstreamSynthesisError, timeout=self.timeout
        )
        return read_json(response, service="XTTS", error_cls=UpstreamSynthesisError, expected=list)

    async def synthesize(self, text: str, language: str, profile: SpeakerProfile) -> bytes:
        """Synthesize one chunk of text.

        Args:
            text: Text within the XTTS character limit
            language: XTTS language code
            profile: Speaker conditioning data

        Returns:
            WAV file bytes

        Raises:
            UpstreamSynthesisError: If XTTS fails or returns no audio
        """
        response = await send(
            self.client, "POST", f"{self.base_url}/tts",
            service="XTTS", error_cls=UpstreamSynthesisError, timeout=self.timeout,
            json={
                "text": text,
                "language": language,
                "speaker_embedding": profile.speaker_embedding,
                "gpt_cond_latent": profile.gpt_cond_latent,
            }
        )

        # XTTS returns base64-encoded WAV audio wrapped in JSON quotes
        base64_audio = re.sub(r'^"|"$', '', response.text.strip())
        if not base64_audio:
            raise UpstreamSynthesisError("XTTS returned empty audio data")

        try:
            return base64.b64decode(base64_audio)
        except (binascii.Error, ValueError) as e:
            raise UpstreamSynthesisError(f"XTTS returned undecodable audio data: {e}") from e


class ChunkedSynthesizer:
    """Synthesizes arbitrarily long text through a character-limited backend.

    Chunk calls run with at most ``max_parallel_chunks`` in flight; results are
    always spliced in chunk order. A single failed or timed out chunk fails the
    whole request and cancels the remaining calls.
    """

    def __init__(
        self,
        client: XTTSClient,
        speakers: SpeakerProfileCache,
        max_chars: int = DEFAULT_MAX_CHARS,
        max_parallel_chunks: int = 1,
        chunk_timeout: float = DEFAULT_CHUNK_TIMEOUT
    ):
        self.client = client
        self.speakers = speakers
        self.max_chars = max_chars
        self.max_parallel_chunks = max_parallel_chunks
        self.chunk_timeout = chunk_timeout

    async def resolve_speaker(self, speaker: str) -> SpeakerProfile:
        profile = await self.speakers.get(speaker)
        if profile is None:
            available = ", ".join((await self.speakers.names())[:5])
            raise SpeakerNotFoundError(f'Speaker "{speaker}" not found. Available: {available}...')
        return profile

    async def synthesize(self, text: str, language: str, speaker: str) -> SpliceResult:
        """Synthesize text, chunking and splicing when it exceeds the limit.

        Raises:
            ValueError: If text is empty
            SpeakerNotFoundError: If the speaker is unknown
            UpstreamSynthesisError: If any chunk call fails
            FormatMismatchError: If chunk clips were encoded differently
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        profile = await self.resolve_speaker(speaker)

        if len(text) <= self.max_chars:
            audio = await self._synthesize_chunk(0, 1, text, language, profile)
            return SpliceResult(audio=audio, chunk_count=1, skipped_chunks=0)

        chunks = split_text_into_chunks(text, self.max_chars)
        logger.info(
            f"Chunked synthesis: {len(text)} characters in {len(chunks)} chunks "
            f"(language={language}, speaker={speaker}, parallel={self.max_parallel_chunks})"
        )

        buffers = await self._synthesize_all(chunks, language, profile)
        result = splice_wav_buffers(buffers)

        if result.skipped_chunks:
            logger.warning(
                f"{result.skipped_chunks} of {result.chunk_count} audio chunks had no data chunk "
                f"and were left out of the response"
            )
        return result

    async def _synthesize_all(self, chunks: List[str], language: str, profile: SpeakerProfile) -> List[bytes]:
        semaphore = asyncio.Semaphore(self.max_parallel_chunks)

        async def run(index: int, chunk: str) -> bytes:
            async with semaphore:
                return await self._synthesize_chunk(index, len(chunks), chunk, language, profile)

        tasks = [asyncio.ensure_future(run(index, chunk)) for index, chunk in enumerate(chunks)]
        try:
            # gather keeps results in task order, not completion order
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _synthesize_chunk(
        self, index: int, total: int, text: str, language: str, profile: SpeakerProfile
    ) -> bytes:
        logger.debug(f"Synthesizing chunk {index + 1}/{total}: {text[:50]}...")
        try:
            return await asyncio.wait_for(
                self.client.synthesize(text, language, profile),
                timeout=self.chunk_timeout
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Chunk {index + 1}/{total} timed out after {self.chunk_timeout:.0f}s")
            raise UpstreamSynthesisError(
                f"Chunk {index + 1}/{total} timed out after {self.chunk_timeout:.0f}s"
            ) from e
