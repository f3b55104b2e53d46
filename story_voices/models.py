"""Data models for story segmentation and voicing."""

from dataclasses import dataclass, field
from enum import Enum


@dataclass
class Segment:
    character: str     # "Narrator" or a name from the character list
    text: str


class VoiceCategory(Enum):
    NARRATOR = 0
    HERO = 1
    VILLAIN = 2
    CHILD = 3
    ELDER = 4


@dataclass(frozen=True)
class VoiceProfile:
    name: str
    character: str              # archetype label, e.g. "Villain"
    pitch: float                # 0.5 to 2.0
    rate: float                 # 0.5 to 2.0
    volume: float               # 0.0 to 1.0
    voice_name: str | None = None  # preferred device voice, matched by substring

    @property
    def category(self) -> VoiceCategory:
        return VoiceCategory[self.character.upper()]


@dataclass(frozen=True)
class HostedVoice:
    character: str
    voice_id: str
    voice_name: str
    description: str


@dataclass
class HostedAudioSegment:
    character: str
    text: str
    audio: bytes
    voice_id: str
    format: str = "mp3"

    @property
    def size(self) -> int:
        return len(self.audio)


@dataclass
class GeneratedStory:
    story: str
    characters: list[str] = field(default_factory=list)
    word_count: int = 0
    model: str = ""
