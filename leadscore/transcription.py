"""Transcription gateway: validates audio assets and turns them into text."""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import httpx

from .config import Settings
from .errors import GatewayError, UnsupportedFormatError
from .models import TranscriptionResult
from .stats import count_words

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = frozenset(
    {".mp3", ".mp4", ".mpeg", ".mpga", ".m4a", ".wav", ".webm", ".ogg", ".flac"}
)


class TranscriptionGateway(ABC):
    """Abstract interface over an external speech-to-text provider."""

    @abstractmethod
    async def validate(self, path: str) -> None:
        """
        Check that an audio asset can be sent to the provider.

        Args:
            path: Path to the audio file

        Raises:
            UnsupportedFormatError: If the file is missing, unreadable,
                too large or not a supported audio format
        """
        pass

    @abstractmethod
    async def transcribe(self, path: str) -> TranscriptionResult:
        """
        Transcribe an audio asset.

        Args:
            path: Path to the audio file

        Returns:
            TranscriptionResult with text, language, duration and word count

        Raises:
            GatewayError: If the provider fails or rejects the asset
        """
        pass

    async def aclose(self) -> None:
        """Release any open connections."""
        pass


def check_audio_file(path: str, max_bytes: int) -> Path:
    """Validate an audio file on disk and return its resolved path."""
    file_path = Path(path)
    context = {"audioFilePath": path}

    if not file_path.is_file():
        raise UnsupportedFormatError("Audio file does not exist", context)
    if file_path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFormatError(
            f"Unsupported audio format: {file_path.suffix or '(none)'}",
            {**context, "supported": sorted(SUPPORTED_EXTENSIONS)},
        )
    size = file_path.stat().st_size
    if size == 0:
        raise UnsupportedFormatError("Audio file is empty", context)
    if size > max_bytes:
        raise UnsupportedFormatError(
            f"File size ({size / 1024 / 1024:.2f}MB) exceeds maximum allowed size "
            f"({max_bytes / 1024 / 1024:.0f}MB)",
            {**context, "size": size},
        )
    if not os.access(file_path, os.R_OK):
        raise UnsupportedFormatError("Audio file is not readable", context)
    return file_path


class WhisperTranscriptionGateway(TranscriptionGateway):
    """
    OpenAI Whisper transcription over httpx.
    - Auth: Bearer API key
    - Upload: multipart, verbose_json response with language hint
    - Retries: 429 & 5xx & network errors with exponential backoff
    """

    def __init__(
        self,
        settings: Settings,
        *,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize the Whisper gateway."""
        if not settings.whisper_api_url.startswith("http"):
            raise ValueError("whisper_api_url must include scheme, e.g. https://...")

        self.url = settings.whisper_api_url.rstrip("/") + "/audio/transcriptions"
        self.api_key = settings.openai_api_key
        self.model = settings.whisper_model
        self.language = settings.transcription_language
        self.max_bytes = settings.max_audio_file_mb * 1024 * 1024
        self.max_retries = settings.gateway_max_retries
        self.backoff_factor = settings.gateway_backoff_factor

        self._client = client or httpx.AsyncClient(
            timeout=timeout or settings.transcription_timeout_seconds,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "WhisperTranscriptionGateway":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def validate(self, path: str) -> None:
        check_audio_file(path, self.max_bytes)

    async def transcribe(self, path: str) -> TranscriptionResult:
        if not self.api_key:
            raise GatewayError("OPENAI_API_KEY is not configured", {"audioFilePath": path})

        file_path = check_audio_file(path, self.max_bytes)
        audio = file_path.read_bytes()
        logger.info("Transcribing %s (%.2f MB)", file_path.name, len(audio) / 1024 / 1024)

        data = await self._request_with_retries(file_path.name, audio, path)

        text = (data.get("text") or "").strip()
        result = TranscriptionResult(
            text=text,
            language=data.get("language") or self.language,
            duration=float(data.get("duration") or 0.0),
            word_count=count_words(text),
        )
        logger.info(
            "Transcription done: %d chars, %.1fs, language=%s",
            len(result.text),
            result.duration,
            result.language,
        )
        return result

    async def _request_with_retries(self, filename: str, audio: bytes, path: str) -> dict[str, Any]:
        """POST the audio with retry logic."""
        context = {"audioFilePath": path}
        attempt = 0
        while True:
            try:
                resp = await self._client.post(
                    self.url,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    data={
                        "model": self.model,
                        "language": self.language,
                        "response_format": "verbose_json",
                    },
                    files={"file": (filename, audio, "application/octet-stream")},
                )
            except httpx.TimeoutException as e:
                raise GatewayError(f"Transcription request timed out: {e}", context) from e
            except httpx.RequestError as e:
                if attempt >= self.max_retries:
                    raise GatewayError(f"Request failed after retries: {e}", context) from e
                await asyncio.sleep(self._backoff_sleep(attempt))
                attempt += 1
                continue

            # Retry on rate limit or server errors
            if resp.status_code in (429, 500, 502, 503, 504):
                if attempt >= self.max_retries:
                    raise GatewayError(
                        f"HTTP {resp.status_code}: {resp.text}",
                        {**context, "status": resp.status_code},
                    )
                logger.warning("Whisper returned %s, retrying (attempt %d)", resp.status_code, attempt + 1)
                await asyncio.sleep(self._backoff_sleep(attempt))
                attempt += 1
                continue

            if resp.status_code == 401:
                raise GatewayError("Invalid OpenAI API key", {**context, "status": 401})
            if resp.status_code == 413:
                raise UnsupportedFormatError("Audio file too large for provider", {**context, "status": 413})
            if resp.status_code >= 400:
                raise GatewayError(
                    f"HTTP {resp.status_code}: {resp.text}",
                    {**context, "status": resp.status_code},
                )

            try:
                return resp.json()
            except ValueError as e:
                raise GatewayError(f"Invalid JSON response: {e}", context) from e

    def _backoff_sleep(self, attempt: int) -> float:
        """Calculate exponential backoff sleep time."""
        base = (2 ** attempt) * self.backoff_factor
        return min(base, 30.0)
