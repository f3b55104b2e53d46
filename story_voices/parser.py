"""Parse story text into segments with speaker attribution."""

import logging
import re
from collections import Counter

from story_voices.constants import MIN_SEGMENT_LENGTH, NARRATOR, SCRIPT_HEADER
from story_voices.models import Segment

logger = logging.getLogger(__name__)

# Quoted line with no attribution: "I'm scared."
_QUOTED_LINE_RE = re.compile(r"""^["'](.+)["']""")
_EDGE_QUOTES_RE = re.compile(r"""^["']|["']$""")

# LLM response markers
_CHARACTERS_RE = re.compile(r"CHARACTERS: (.+)")
_STORY_RE = re.compile(r"STORY:\s*(.+)", re.DOTALL)


class StoryFormatError(ValueError):
    """The LLM response is missing the CHARACTERS: or STORY: marker."""


def _dialogue_patterns(character: str) -> list[re.Pattern]:
    """Dialogue formats for one speaker, in the order they are tried."""
    name = re.escape(character)
    return [
        re.compile(rf"""^{name}\s*:\s*["'](.+)["']""", re.IGNORECASE),        # Max: "Hello there"
        re.compile(rf"""^{name}\s*:\s*(.+)""", re.IGNORECASE),                # Max: Hello there
        re.compile(rf"""^["'](.+)["']\s*,?\s*said\s+{name}""", re.IGNORECASE),  # "Hello there," said Max
        re.compile(rf"""{name}\s+said[,:]?\s*["'](.+)["']""", re.IGNORECASE),  # Max said: "Hello there"
    ]


def _utf16_length(text: str) -> int:
    """Length in UTF-16 code units; a non-BMP character counts twice."""
    return len(text.encode("utf-16-le")) // 2


def _non_narrators(characters: list[str]) -> list[str]:
    return [c for c in characters if c.lower() != NARRATOR.lower()]


def _attribute_line(line: str, speakers: list[tuple[str, list[re.Pattern]]]) -> Segment:
    """Attribute one stripped line to a speaker, defaulting to the narrator."""
    for character, patterns in speakers:
        for pattern in patterns:
            match = pattern.search(line)
            if match:
                return Segment(character=character, text=match.group(1).strip())

    # Unattributed quote goes to the first non-narrator character
    if speakers and _QUOTED_LINE_RE.match(line):
        return Segment(character=speakers[0][0], text=_EDGE_QUOTES_RE.sub("", line))

    return Segment(character=NARRATOR, text=line)


def parse_story_segments(story: str, characters: list[str]) -> list[Segment]:
    """Split a story into ordered (character, text) segments.

    Each non-blank line becomes at most one segment. Lines are matched against
    the dialogue formats of every non-narrator character in list order; the
    first match wins. Anything unmatched is narration, except a line that opens
    with a quote, which is given to the first non-narrator character. Segments
    whose text is MIN_SEGMENT_LENGTH UTF-16 code units or shorter are dropped.
    """
    speakers = [(c, _dialogue_patterns(c)) for c in _non_narrators(characters)]
    logger.debug("Parsing story with characters: %s", characters)

    segments = []
    for raw_line in story.split("\n"):
        line = raw_line.strip()
        if not line:
            continue

        segment = _attribute_line(line, speakers)
        if _utf16_length(segment.text) > MIN_SEGMENT_LENGTH:
            segments.append(segment)

    logger.debug("Total segments parsed: %d", len(segments))
    logger.debug("Character distribution: %s", dict(Counter(s.character for s in segments)))
    return segments


def build_script(segments: list[Segment]) -> str:
    """Plain-text transcript of the segments in playback order."""
    script = f"{SCRIPT_HEADER}\n{'=' * 40}\n\n"
    for seg in segments:
        script += f"{seg.character}: {seg.text}\n\n"
    return script


def is_story_response(content: str) -> bool:
    """True when content carries both the CHARACTERS: and STORY: markers."""
    return bool(_CHARACTERS_RE.search(content) and _STORY_RE.search(content))


def parse_story_response(content: str) -> tuple[list[str], str]:
    """Extract the character list and story body from an LLM response.

    Expects a ``CHARACTERS: a, b, c`` line and a ``STORY:`` block. Raises
    StoryFormatError when either marker is missing.
    """
    characters_match = _CHARACTERS_RE.search(content)
    story_match = _STORY_RE.search(content)
    if not characters_match or not story_match:
        raise StoryFormatError("Failed to parse story format")

    characters = [c.strip() for c in characters_match.group(1).split(", ")]
    story = story_match.group(1).strip()
    return characters, story
