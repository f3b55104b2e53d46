"""Write the downloadable audiobook and transcript."""

import os
import re
import time

from pydub import AudioSegment

from story_voices.assembly import combine_audio
from story_voices.constants import DEFAULT_TITLE, OUTPUT_BITRATE
from story_voices.models import HostedAudioSegment


def slugify(title: str) -> str:
    """Convert a title to a filename slug.

    "The Lost Robot!" → "the-lost-robot"
    """
    slug = re.sub(r"[^a-zA-Z0-9]+", "-", title).strip("-").lower()
    return slug or DEFAULT_TITLE


def download_filename(title: str = DEFAULT_TITLE, timestamp_ms: int | None = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{slugify(title)}-complete-{timestamp_ms}.mp3"


def export_combined(
    audio_segments: list[HostedAudioSegment],
    output_dir: str,
    title: str = DEFAULT_TITLE,
    timestamp_ms: int | None = None,
) -> str | None:
    """Write every clip, concatenated byte-for-byte, as one MP3.

    Returns the file path, or None when there is nothing to write.
    """
    if not audio_segments:
        return None

    os.makedirs(output_dir, exist_ok=True)
    output_path = os.path.join(output_dir, download_filename(title, timestamp_ms))
    with open(output_path, "wb") as f:
        f.write(combine_audio(audio_segments))
    return output_path


def export_mixdown(
    assembled: AudioSegment,
    output_dir: str,
    title: str = DEFAULT_TITLE,
    timestamp_ms: int | None = None,
) -> str:
    """Re-encode a decoded mix as MP3 with a title tag."""
    os.makedirs(output_dir, exist_ok=True)
    output_path = os.path.join(output_dir, download_filename(title, timestamp_ms))
    assembled.export(
        output_path,
        format="mp3",
        bitrate=OUTPUT_BITRATE,
        tags={"title": title},
    )
    return output_path


def write_script(script: str, output_dir: str, title: str = DEFAULT_TITLE) -> str:
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, f"{slugify(title)}-script.txt")
    with open(path, "w") as f:
        f.write(script)
    return path
