"""Hosted TTS clients: ElevenLabs over HTTP and edge-tts with retry logic."""

import asyncio
import logging
import os
import time

import edge_tts
import requests

from story_voices.constants import (
    ELEVENLABS_API_URL,
    ELEVENLABS_MODEL_ID,
    ELEVENLABS_TIMEOUT,
    ELEVENLABS_VOICE_SETTINGS,
    TTS_RETRY_BASE_DELAY,
    TTS_RETRY_COUNT,
)

logger = logging.getLogger(__name__)


class HostedTTSError(Exception):
    """A hosted synthesis request failed."""


class InvalidAPIKeyError(HostedTTSError):
    """The vendor rejected the API key (HTTP 401)."""


class QuotaExceededError(HostedTTSError):
    """The vendor quota is used up (HTTP 429)."""


class ElevenLabsClient:
    """One ElevenLabs text-to-speech request per call, returning MP3 bytes.

    Auth and quota failures are raised as their own error types and never
    retried.
    """

    def __init__(self, api_key: str | None = None, session: requests.Session | None = None,
                 timeout: float = ELEVENLABS_TIMEOUT):
        self.api_key = api_key if api_key is not None else os.environ.get("ELEVENLABS_API_KEY")
        self.session = session or requests.Session()
        self.timeout = timeout

    def synthesize(self, text: str, character: str, voice_id: str) -> bytes:
        if not self.api_key:
            raise InvalidAPIKeyError("ElevenLabs API key not configured")

        logger.info("Generating AI voice for %s: %r", character, text[:50])
        try:
            response = self.session.post(
                f"{ELEVENLABS_API_URL}/{voice_id}",
                headers={
                    "Accept": "audio/mpeg",
                    "Content-Type": "application/json",
                    "xi-api-key": self.api_key,
                },
                json={
                    "text": text,
                    "model_id": ELEVENLABS_MODEL_ID,
                    "voice_settings": ELEVENLABS_VOICE_SETTINGS,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise HostedTTSError(f"Failed to generate AI voice: {e}") from e

        if not response.ok:
            logger.error("ElevenLabs API error %d: %s", response.status_code, response.text[:200])
            if response.status_code == 401:
                raise InvalidAPIKeyError("Invalid ElevenLabs API key")
            if response.status_code == 429:
                raise QuotaExceededError("ElevenLabs quota exceeded. Try again later or upgrade plan.")
            raise HostedTTSError(f"ElevenLabs API error: {response.status_code}")

        audio = response.content
        logger.info("Generated %d bytes of audio for %s", len(audio), character)
        return audio


async def _stream_audio(text: str, voice: str) -> bytes:
    communicate = edge_tts.Communicate(text, voice)
    audio = bytearray()
    async for chunk in communicate.stream():
        if chunk["type"] == "audio":
            audio.extend(chunk["data"])
    return bytes(audio)


class EdgeTTSClient:
    """Microsoft Edge neural voices via edge-tts; no API key needed."""

    def __init__(self, retries: int = TTS_RETRY_COUNT, base_delay: float = TTS_RETRY_BASE_DELAY,
                 sleep=time.sleep):
        self.retries = retries
        self.base_delay = base_delay
        self.sleep = sleep

    def synthesize(self, text: str, character: str, voice_id: str) -> bytes:
        """Synthesize one clip with retry logic.

        Sync wrapper around edge_tts.Communicate(). Retries on network errors
        or empty output, with exponential backoff.
        """
        last_error = None
        for attempt in range(self.retries):
            try:
                audio = asyncio.run(_stream_audio(text, voice_id))
                if audio:
                    logger.info("Generated %d bytes of audio for %s", len(audio), character)
                    return audio
                last_error = Exception(f"TTS produced no audio for: {text[:50]}...")
            except Exception as e:
                last_error = e

            if attempt < self.retries - 1:
                delay = self.base_delay * (2 ** attempt)
                logger.warning("Edge TTS attempt %d failed for %s (%s); retrying in %.1fs",
                               attempt + 1, character, last_error, delay)
                self.sleep(delay)

        raise HostedTTSError(f"Edge TTS failed for {character}: {last_error}") from last_error


def make_client(provider: str, api_key: str | None = None):
    """Client for a provider name from HOSTED_VOICE_TABLES."""
    if provider == "elevenlabs":
        return ElevenLabsClient(api_key=api_key)
    if provider == "edge":
        return EdgeTTSClient()
    raise ValueError(f"Unknown TTS provider: {provider}")
