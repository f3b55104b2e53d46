"""Local speech synthesis via the device's pyttsx3 engine."""

import logging
import time
from dataclasses import dataclass

import pyttsx3

from story_voices.constants import (
    ERROR_PAUSE_MS,
    LOCAL_BASE_PITCH,
    LOCAL_BASE_RATE_WPM,
    LOCAL_PAUSE_MS,
    NARRATOR,
)
from story_voices.models import VoiceProfile
from story_voices.parser import build_script, parse_story_segments
from story_voices.playback import PlaybackError, PlaybackSession, play_sequentially
from story_voices.voices import assign_voices, character_index, voice_for_segment

logger = logging.getLogger(__name__)


@dataclass
class Utterance:
    character: str
    text: str
    profile: VoiceProfile
    voice_id: str | None = None    # None = engine default voice


def voice_languages(voice) -> list[str]:
    """Normalise a voice's language tags; espeak reports them as bytes."""
    languages = []
    for lang in getattr(voice, "languages", None) or []:
        if isinstance(lang, bytes):
            lang = lang.decode("utf-8", errors="ignore")
        languages.append(lang.lstrip("\x00\x01\x02\x03\x04\x05").lower())
    return languages


def _is_english(voice) -> bool:
    return any(lang.startswith("en") for lang in voice_languages(voice))


class LocalVoiceGenerator:
    """Speak an audiobook on the local engine, one segment after another."""

    def __init__(self, engine=None, sleep=time.sleep):
        self.engine = engine if engine is not None else pyttsx3.init()
        self.sleep = sleep
        self._voices = None
        self._is_generating = False
        self._active_session = None
        self._errors = {}
        self._supports_pitch = self._probe_pitch()
        self.engine.connect("started-utterance", self._on_start)
        self.engine.connect("error", self._on_error)

    def _probe_pitch(self) -> bool:
        # Only some drivers (espeak) expose pitch; the rest raise KeyError.
        try:
            self.engine.getProperty("pitch")
        except KeyError:
            logger.info("Speech driver has no pitch control; using rate/volume only")
            return False
        return True

    def _on_start(self, name):
        logger.debug("Speaking utterance %s", name)

    def _on_error(self, name, exception):
        self._errors[name] = exception

    def available_voices(self) -> list:
        if self._voices is None:
            self._voices = list(self.engine.getProperty("voices") or [])
            logger.info(
                "Available voices: %s",
                [f"{v.name} ({', '.join(voice_languages(v))})" for v in self._voices],
            )
        return self._voices

    def select_voice(self, profile: VoiceProfile):
        """Pick the device voice for a profile, or None for the engine default."""
        voices = self.available_voices()
        english = [v for v in voices if _is_english(v)]
        candidates = english or voices

        if not candidates:
            logger.warning("No voices available; using engine default for %s", profile.character)
            return None

        if profile.voice_name:
            wanted = profile.voice_name.lower()
            for voice in candidates:
                if wanted in voice.name.lower():
                    return voice

        if len(candidates) == 1:
            # Pitch and rate carry the differentiation
            return candidates[0]

        index = character_index(profile.character)
        return candidates[index % len(candidates)]

    def prepare(self, character: str, text: str, profile: VoiceProfile) -> Utterance:
        voice = self.select_voice(profile)
        return Utterance(
            character=character,
            text=text,
            profile=profile,
            voice_id=voice.id if voice is not None else None,
        )

    def voice_sample(self, voice) -> Utterance:
        """Neutral-settings line that introduces a device voice by name."""
        profile = VoiceProfile(name=voice.name, character=NARRATOR, pitch=1.0, rate=1.0, volume=1.0)
        return Utterance(
            character=voice.name,
            text=f"Hello, I am {voice.name}. This is how I sound.",
            profile=profile,
            voice_id=voice.id,
        )

    def profile_sample(self, profile: VoiceProfile) -> Utterance:
        return self.prepare(
            profile.character,
            f"I am the {profile.character}. Listen to my unique voice settings.",
            profile,
        )

    def generate_audiobook(self, story: str, characters: list[str]):
        """Parse and voice a story.

        Returns ``(utterances, script)``, or None if a generation is already
        running.
        """
        if self._is_generating:
            logger.warning("Audiobook generation already in progress; ignoring request")
            return None

        self._is_generating = True
        try:
            segments = parse_story_segments(story, characters)
            voice_map = assign_voices(characters)
            utterances = [
                self.prepare(seg.character, seg.text, voice_for_segment(voice_map, seg.character))
                for seg in segments
            ]
            return utterances, build_script(segments)
        finally:
            self._is_generating = False

    def _apply_profile(self, utterance: Utterance) -> None:
        profile = utterance.profile
        if utterance.voice_id is not None:
            self.engine.setProperty("voice", utterance.voice_id)
        self.engine.setProperty("rate", int(round(LOCAL_BASE_RATE_WPM * profile.rate)))
        self.engine.setProperty("volume", profile.volume)
        if self._supports_pitch:
            pitch = int(round(LOCAL_BASE_PITCH * profile.pitch))
            self.engine.setProperty("pitch", max(0, min(100, pitch)))

    def play_audiobook(self, utterances: list[Utterance], session: PlaybackSession | None = None) -> PlaybackSession:
        """Speak utterances in order; a failed one is skipped."""
        if session is None:
            session = PlaybackSession()
        self._active_session = session
        total = len(utterances)

        def speak(utterance: Utterance) -> None:
            name = f"segment-{session.current_index}"
            logger.info("Playing segment %d/%d: %s", session.current_index + 1, total, utterance.character)
            self._apply_profile(utterance)
            self.engine.say(utterance.text, name)
            self.engine.runAndWait()
            error = self._errors.pop(name, None)
            if error is not None:
                raise PlaybackError(f"Speech synthesis failed for {utterance.character}: {error}")

        try:
            return play_sequentially(
                utterances, speak, session,
                pause_ms=LOCAL_PAUSE_MS,
                error_pause_ms=ERROR_PAUSE_MS,
                sleep=self.sleep,
            )
        finally:
            self._active_session = None

    def stop(self, session: PlaybackSession | None = None) -> None:
        """Cancel everything queued on the engine."""
        for target in (session, self._active_session):
            if target is not None:
                target.cancel()
        self.engine.stop()
