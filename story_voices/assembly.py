"""Hosted audiobook generation, sequential playback and clip concatenation."""

import io
import logging
import time

from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError
from pydub.playback import play

from story_voices.constants import ERROR_PAUSE_MS, HOSTED_PAUSE_MS, HOSTED_REQUEST_DELAY
from story_voices.models import HostedAudioSegment, Segment
from story_voices.playback import PlaybackError, PlaybackSession, play_sequentially
from story_voices.tts import HostedTTSError, InvalidAPIKeyError, QuotaExceededError
from story_voices.voices import ELEVENLABS_VOICES, hosted_voice_for

logger = logging.getLogger(__name__)


def decode_clip(segment: HostedAudioSegment) -> AudioSegment:
    return AudioSegment.from_file(io.BytesIO(segment.audio), format=segment.format)


def combine_audio(audio_segments: list[HostedAudioSegment]) -> bytes:
    """Append every clip's raw bytes in order.

    No re-muxing: MP3 frames tolerate naive concatenation, so the result plays
    as one file.
    """
    return b"".join(seg.audio for seg in audio_segments)


def mixdown(audio_segments: list[HostedAudioSegment], pause_ms: int = HOSTED_PAUSE_MS) -> AudioSegment:
    """Decode and join clips with silence between them."""
    if not audio_segments:
        return AudioSegment.silent(duration=0)

    result = decode_clip(audio_segments[0])
    for seg in audio_segments[1:]:
        result += AudioSegment.silent(duration=pause_ms) + decode_clip(seg)
    return result


class HostedAudiobookGenerator:
    """Voice story segments through a hosted TTS client, one request at a time."""

    def __init__(self, client, voices=ELEVENLABS_VOICES, request_delay: float = HOSTED_REQUEST_DELAY,
                 sleep=time.sleep, player=play):
        self.client = client
        self.voices = voices
        self.request_delay = request_delay
        self.sleep = sleep
        self.player = player
        self._is_generating = False

    @property
    def is_generating(self) -> bool:
        return self._is_generating

    def generate_clip(self, segment: Segment) -> HostedAudioSegment:
        voice = hosted_voice_for(segment.character, self.voices)
        logger.info("Generating AI voice for %s using %s", segment.character, voice.voice_name)
        audio = self.client.synthesize(segment.text, segment.character, voice.voice_id)
        return HostedAudioSegment(
            character=segment.character,
            text=segment.text,
            audio=audio,
            voice_id=voice.voice_id,
        )

    def generate(self, segments: list[Segment], on_progress=None) -> list[HostedAudioSegment] | None:
        """Synthesize every segment in order.

        Invalid-key and quota errors abort the run. Any other synthesis error
        skips that segment. Returns None if a run is already in progress.
        """
        if self._is_generating:
            logger.warning("AI audiobook generation already in progress; ignoring request")
            return None

        self._is_generating = True
        total = len(segments)
        clips = []
        try:
            logger.info("Starting AI audiobook generation for %d segments", total)
            for i, seg in enumerate(segments):
                if on_progress is not None:
                    on_progress(i + 1, total)
                try:
                    clips.append(self.generate_clip(seg))
                except (InvalidAPIKeyError, QuotaExceededError):
                    raise
                except HostedTTSError as e:
                    logger.error("Failed to generate AI voice for segment %d (%s): %s", i + 1, seg.character, e)

                # Fixed delay between requests to stay under vendor rate limits
                if i < total - 1:
                    self.sleep(self.request_delay)

            logger.info("AI audiobook generation complete: %d/%d segments", len(clips), total)
            return clips
        finally:
            self._is_generating = False

    def play(self, audio_segments: list[HostedAudioSegment], session: PlaybackSession | None = None) -> PlaybackSession:
        """Play clips in order, advancing when each one ends."""
        if session is None:
            session = PlaybackSession()
        total = len(audio_segments)

        def play_clip(seg: HostedAudioSegment) -> None:
            logger.info("Playing AI voice %d/%d: %s", session.current_index + 1, total, seg.character)
            try:
                audio = decode_clip(seg)
            except (CouldntDecodeError, OSError) as e:
                raise PlaybackError(f"Could not decode audio for {seg.character}: {e}") from e
            # simpleaudio, pyaudio and ffplay each fail with their own error types
            try:
                self.player(audio)
            except Exception as e:
                raise PlaybackError(f"Audio playback error for {seg.character}: {e}") from e

        return play_sequentially(
            audio_segments, play_clip, session,
            pause_ms=HOSTED_PAUSE_MS,
            error_pause_ms=ERROR_PAUSE_MS,
            sleep=self.sleep,
        )
