"""Tests for voices module."""

import pytest

from story_voices.models import VoiceCategory
from story_voices.voices import (
    CHARACTER_VOICES,
    EDGE_VOICES,
    ELEVENLABS_VOICES,
    assign_voices,
    character_category,
    character_hash,
    character_index,
    hosted_voice_for,
    profile_for,
    voice_for_segment,
)


# --- Character hash ---

def test_hash_matches_java_string_hash():
    """Same recurrence as the well-known h*31 + c string hash."""
    assert character_hash("hello") == 99162322
    assert character_hash("Max") == 77124
    assert character_hash("Luna") == 2380060


def test_hash_wraps_to_signed_32_bit():
    """Overflow wraps exactly; this name lands on INT32_MIN."""
    assert character_hash("polygenelubricants") == -2147483648


def test_hash_uses_utf16_code_units():
    """Non-BMP characters hash as their surrogate pair."""
    assert character_hash("\U0001F600") == 0xD83D * 31 + 0xDE00


def test_hash_empty_name():
    assert character_hash("") == 0


# --- Character index ---

def test_index_narrator_exact_match():
    """Only an exact (case-insensitive) narrator name maps to 0 by rule."""
    assert character_index("Narrator") == 0
    assert character_index("NARRATOR") == 0


@pytest.mark.parametrize("name, expected", [
    ("Hero", 1),
    ("Detective Smith", 1),
    ("Main Character", 1),
    ("The Villain", 2),
    ("Bad Wolf", 2),
    ("Evil Queen", 2),
    ("Child", 3),
    ("Kid Flash", 3),
    ("Young Tom", 3),
    ("Elder Oak", 4),
    ("Old Man", 4),
    ("Wise Owl", 4),
])
def test_index_keyword_rules(name, expected):
    """Keyword heuristics pick the archetype."""
    assert character_index(name) == expected


def test_index_keyword_substring_match():
    """Keywords match anywhere in the name, not just whole words."""
    assert character_index("Mold") == 4


def test_index_keyword_precedence():
    """Hero rules are checked before villain rules, and so on down the list."""
    assert character_index("Hero turned Villain") == 1
    assert character_index("Villain Hero") == 1
    assert character_index("Bad Kid") == 2
    assert character_index("Young Elder") == 3


def test_index_hash_fallback():
    """Names without keywords fall through to the hash."""
    assert character_index("Max") == 4
    assert character_index("Luna") == 0
    assert character_index("polygenelubricants") == 3


def test_index_is_pure():
    """Same name → same bucket on repeated calls."""
    first = character_index("Dr. Smith")
    assert all(character_index("Dr. Smith") == first for _ in range(50))
    assert 0 <= first < 5


def test_index_always_in_range():
    """Bucket is within [0, 5) for many names."""
    for i in range(200):
        assert 0 <= character_index(f"Speaker {i}") < 5


def test_character_category():
    assert character_category("Evil Queen") is VoiceCategory.VILLAIN


# --- Voice table ---

def test_voice_table_has_five_profiles_in_category_order():
    """Index i of the table is category i."""
    assert len(CHARACTER_VOICES) == 5
    assert [p.name for p in CHARACTER_VOICES] == ["Narrator", "Hero", "Villain", "Child", "Elder"]
    for category in VoiceCategory:
        assert profile_for(category).category is category


def test_voice_table_perceptual_spread():
    """Villain and elder are low and slow; child is highest and fastest."""
    narrator, hero, villain, child, elder = CHARACTER_VOICES
    assert villain.pitch < narrator.pitch < hero.pitch < child.pitch
    assert elder.rate < villain.rate < narrator.rate < hero.rate < child.rate


def test_hosted_tables_parallel_voice_table():
    """Hosted tables cover the same five archetypes in the same order."""
    for table in (ELEVENLABS_VOICES, EDGE_VOICES):
        assert [v.character for v in table] == [p.name for p in CHARACTER_VOICES]


def test_hosted_voice_for_character():
    assert hosted_voice_for("Narrator").voice_name == "Adam"
    assert hosted_voice_for("Evil Queen").voice_id == "VR6AewLTigWG4xSOukaG"
    assert hosted_voice_for("Old Man", EDGE_VOICES).voice_id == "en-GB-RyanNeural"


# --- Voice assignment ---

def test_assign_always_includes_narrator():
    """Narrator is present even with an empty list."""
    voice_map = assign_voices([])
    assert voice_map == {"Narrator": CHARACTER_VOICES[0]}


def test_assign_narrator_first():
    voice_map = assign_voices(["Max", "Luna"])
    assert list(voice_map) == ["Narrator", "Max", "Luna"]


def test_assign_each_character_once(sample_characters):
    """Every supplied character is a key exactly once."""
    voice_map = assign_voices(sample_characters + ["Max"])
    assert set(voice_map) == {"Narrator", "Max", "Luna", "Dr. Smith"}


def test_assign_skips_lowercase_narrator():
    """A differently-cased narrator entry doesn't add a second key."""
    voice_map = assign_voices(["narrator", "Max"])
    assert "narrator" not in voice_map
    assert voice_map["Narrator"] is CHARACTER_VOICES[0]


def test_assign_uses_index():
    """Each profile comes from the table slot the indexer picks."""
    voice_map = assign_voices(["Max", "Detective Smith", "Evil Queen"])
    assert voice_map["Max"] is CHARACTER_VOICES[4]
    assert voice_map["Detective Smith"] is CHARACTER_VOICES[1]
    assert voice_map["Evil Queen"] is CHARACTER_VOICES[2]


def test_assign_allows_collisions():
    """Characters can share a profile."""
    voice_map = assign_voices(["Old Man", "Wise Owl"])
    assert voice_map["Old Man"] is voice_map["Wise Owl"]


def test_assign_determinism():
    """Same character list → same assignments on repeated calls."""
    assert assign_voices(["Max", "Luna", "Dr. Smith"]) == assign_voices(["Max", "Luna", "Dr. Smith"])


def test_assign_stability():
    """Adding a speaker doesn't change existing speakers' voices."""
    before = assign_voices(["Max"])
    after = assign_voices(["Max", "Luna"])
    assert before["Max"] is after["Max"]


def test_voice_for_segment_falls_back_to_narrator():
    voice_map = assign_voices(["Max"])
    assert voice_for_segment(voice_map, "Max") is CHARACTER_VOICES[4]
    assert voice_for_segment(voice_map, "Stranger") is CHARACTER_VOICES[0]


@pytest.mark.parametrize("name", ["Protagonist", "Antagonist"])
def test_hosted_lookup_uses_shared_keyword_rules(name):
    """Hosted lookup has no protagonist/antagonist rules; those names hash."""
    expected = abs(character_hash(name)) % 5
    assert character_index(name) == expected
    assert hosted_voice_for(name) is ELEVENLABS_VOICES[expected]


def test_hosted_lookup_matches_local_archetype():
    """A name lands on the same archetype slot in both modes."""
    for name in ["Main Character", "Evil Queen", "Max", "Luna"]:
        index = character_index(name)
        assert hosted_voice_for(name).character == CHARACTER_VOICES[index].name
