"""Character indexing, voice tables and voice assignment."""

import logging

from story_voices.constants import NARRATOR
from story_voices.models import HostedVoice, VoiceCategory, VoiceProfile

logger = logging.getLogger(__name__)

# Indexed by VoiceCategory value. Pitch/rate spreads are wide so characters stay
# distinguishable even when the device only has a single voice.
CHARACTER_VOICES = (
    VoiceProfile(name="Narrator", character="Narrator", pitch=1.0, rate=0.85, volume=1.0, voice_name="Alex"),
    VoiceProfile(name="Hero", character="Hero", pitch=1.4, rate=1.1, volume=1.0, voice_name="Daniel"),
    VoiceProfile(name="Villain", character="Villain", pitch=0.6, rate=0.7, volume=1.0, voice_name="Fred"),
    VoiceProfile(name="Child", character="Child", pitch=1.8, rate=1.2, volume=1.0, voice_name="Princess"),
    VoiceProfile(name="Elder", character="Elder", pitch=0.7, rate=0.6, volume=0.9, voice_name="Ralph"),
)

ELEVENLABS_VOICES = (
    HostedVoice("Narrator", "pNInz6obpgDQGcFmaJgB", "Adam", "Professional narrator voice"),
    HostedVoice("Hero", "ErXwobaYiN019PkySvjV", "Antoni", "Confident hero voice"),
    HostedVoice("Villain", "VR6AewLTigWG4xSOukaG", "Arnold", "Deep, menacing voice"),
    HostedVoice("Child", "XB0fDUnXU5powFXDhCwa", "Charlotte", "Young, energetic voice"),
    HostedVoice("Elder", "IKne3meq5aSn9XLyUdCD", "Charlie", "Wise, elderly voice"),
)

EDGE_VOICES = (
    HostedVoice("Narrator", "en-US-RogerNeural", "Roger", "Deep, authoritative narrator"),
    HostedVoice("Hero", "en-US-DavisNeural", "Davis", "Confident hero voice"),
    HostedVoice("Villain", "en-GB-ThomasNeural", "Thomas", "Cold, clipped villain voice"),
    HostedVoice("Child", "en-US-AnaNeural", "Ana", "Young, energetic voice"),
    HostedVoice("Elder", "en-GB-RyanNeural", "Ryan", "Wise, elderly voice"),
)

HOSTED_VOICE_TABLES = {
    "elevenlabs": ELEVENLABS_VOICES,
    "edge": EDGE_VOICES,
}

# Checked in order; the first rule whose keyword appears in the name wins.
_KEYWORD_RULES = (
    (("hero", "detective", "main"), VoiceCategory.HERO),
    (("villain", "bad", "evil"), VoiceCategory.VILLAIN),
    (("child", "kid", "young"), VoiceCategory.CHILD),
    (("elder", "old", "wise"), VoiceCategory.ELDER),
)


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return value


def character_hash(character: str) -> int:
    """Signed 32-bit ``h = h * 31 + c`` hash over the name's UTF-16 code units.

    Wraps at every step, so results match the familiar Java string hash
    bit-for-bit (including surrogate pairs for non-BMP characters).
    """
    data = character.encode("utf-16-le")
    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = _to_int32(h * 31 + unit)
    return h


def character_index(character: str) -> int:
    """Map a character name to a voice bucket in [0, 5).

    Keyword heuristics first (narrator, hero, villain, child, elder), then the
    32-bit hash of the name as a stable fallback.
    """
    lower = character.lower()
    if lower == NARRATOR.lower():
        return VoiceCategory.NARRATOR.value
    for keywords, category in _KEYWORD_RULES:
        if any(keyword in lower for keyword in keywords):
            return category.value
    return abs(character_hash(character)) % len(CHARACTER_VOICES)


def character_category(character: str) -> VoiceCategory:
    return VoiceCategory(character_index(character))


def profile_for(category: VoiceCategory) -> VoiceProfile:
    return CHARACTER_VOICES[category.value]


def hosted_voice_for(character: str, table=ELEVENLABS_VOICES) -> HostedVoice:
    """Pick the vendor voice for a speaker from a parallel hosted table."""
    return table[character_index(character) % len(table)]


def assign_voices(characters: list[str]) -> dict[str, VoiceProfile]:
    """Build the character → profile mapping for one story.

    Narrator is always assigned first. Characters may share a profile; the
    table only has five slots.
    """
    voice_map = {NARRATOR: CHARACTER_VOICES[VoiceCategory.NARRATOR.value]}

    for character in characters:
        if character.lower() == NARRATOR.lower():
            continue
        profile = CHARACTER_VOICES[character_index(character) % len(CHARACTER_VOICES)]
        voice_map[character] = profile
        logger.info(
            "%s assigned %s voice: pitch=%s, rate=%s",
            character, profile.name, profile.pitch, profile.rate,
        )

    logger.debug("Total voice configurations assigned: %d", len(voice_map))
    return voice_map


def voice_for_segment(voice_map: dict[str, VoiceProfile], character: str) -> VoiceProfile:
    """Profile for a segment's speaker, falling back to the narrator."""
    profile = voice_map.get(character)
    if profile is None:
        profile = voice_map.get(NARRATOR, CHARACTER_VOICES[VoiceCategory.NARRATOR.value])
    return profile
