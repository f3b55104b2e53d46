"""Shared fixtures for story voices tests."""

import io
from types import SimpleNamespace

import pytest
from pydub import AudioSegment

from story_voices.models import HostedAudioSegment, Segment


SAMPLE_STORY = (
    "Narrator: The laboratory was dark and quiet.\n"
    'Max: "Did you hear that strange noise?"\n'
    'Luna: "Yes, it came from the basement."\n'
    '\n'
    'Dr. Smith: "We should investigate immediately."\n'
    "They walked carefully down the stairs.\n"
    '"Look at this mysterious device!"\n'
)


@pytest.fixture
def sample_story():
    return SAMPLE_STORY


@pytest.fixture
def sample_characters():
    return ["Max", "Luna", "Dr. Smith", "Narrator"]


@pytest.fixture
def sample_segments():
    """Pre-built segments for voice/assembly tests."""
    return [
        Segment(character="Narrator", text="It was a dark night."),
        Segment(character="Max", text="Who's there?"),
        Segment(character="Luna", text="Only the wind."),
    ]


@pytest.fixture
def tiny_mp3_bytes():
    """A 100ms silent MP3 clip."""
    buffer = io.BytesIO()
    AudioSegment.silent(duration=100).export(buffer, format="mp3")
    return buffer.getvalue()


@pytest.fixture
def clips(tiny_mp3_bytes):
    return [
        HostedAudioSegment(character="Narrator", text="It was a dark night.",
                           audio=tiny_mp3_bytes, voice_id="pNInz6obpgDQGcFmaJgB"),
        HostedAudioSegment(character="Max", text="Who's there?",
                           audio=tiny_mp3_bytes, voice_id="IKne3meq5aSn9XLyUdCD"),
    ]


class FakeEngine:
    """Stand-in for a pyttsx3 engine that records what it is asked to do."""

    def __init__(self, voices=None, supports_pitch=True, failing=()):
        self.voices = voices if voices is not None else []
        self.supports_pitch = supports_pitch
        self.failing = set(failing)        # utterance texts that report an error
        self.properties = {"rate": 200, "volume": 1.0}
        self.callbacks = {}
        self.queue = []
        self.spoken = []
        self.property_log = []
        self.stopped = False

    def getProperty(self, name):
        if name == "voices":
            return self.voices
        if name == "pitch":
            if not self.supports_pitch:
                raise KeyError(f"unknown property {name}")
            return self.properties.get("pitch", 50)
        return self.properties[name]

    def setProperty(self, name, value):
        self.properties[name] = value
        self.property_log.append((name, value))

    def connect(self, topic, cb):
        self.callbacks.setdefault(topic, []).append(cb)

    def say(self, text, name=None):
        self.queue.append((text, name))

    def runAndWait(self):
        for text, name in self.queue:
            for cb in self.callbacks.get("started-utterance", []):
                cb(name)
            if text in self.failing:
                for cb in self.callbacks.get("error", []):
                    cb(name, RuntimeError("driver failure"))
                continue
            self.spoken.append((text, dict(self.properties)))
        self.queue = []

    def stop(self):
        self.stopped = True
        self.queue = []


def make_voice(name, languages=("en_US",), voice_id=None):
    return SimpleNamespace(id=voice_id or f"id.{name}", name=name, languages=list(languages))


@pytest.fixture
def fake_engine():
    return FakeEngine(voices=[make_voice("Alex"), make_voice("Samantha"), make_voice("Thomas", ["fr_FR"])])


@pytest.fixture
def engine_factory():
    return FakeEngine


@pytest.fixture
def voice_factory():
    return make_voice
