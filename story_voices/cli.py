"""CLI interface with subcommand routing."""

import argparse
import logging
import os
import sys

import openai
from dotenv import load_dotenv

from story_voices.assembly import HostedAudiobookGenerator, mixdown
from story_voices.constants import DEFAULT_TITLE, OUTPUT_DIR, VERSION
from story_voices.exporter import export_combined, export_mixdown, write_script
from story_voices.local import LocalVoiceGenerator, voice_languages
from story_voices.models import VoiceCategory
from story_voices.parser import (
    StoryFormatError,
    build_script,
    is_story_response,
    parse_story_response,
    parse_story_segments,
)
from story_voices.story import StoryGenerationError, StoryGenerator
from story_voices.tts import HostedTTSError, make_client
from story_voices.voices import (
    CHARACTER_VOICES,
    HOSTED_VOICE_TABLES,
    assign_voices,
    character_index,
    hosted_voice_for,
    profile_for,
)


def _fail(message: str):
    print(f"Error: {message}", file=sys.stderr)
    raise SystemExit(1)


def _split_characters(value: str) -> list[str]:
    return [c.strip() for c in value.split(",") if c.strip()]


def _load_story(path: str, characters_arg: str | None) -> tuple[list[str], str]:
    """Read a story file; either a raw story or a CHARACTERS:/STORY: response."""
    if not os.path.exists(path):
        _fail(f"File not found: {path}")

    with open(path) as f:
        text = f.read()

    if not text.strip():
        _fail(f"File is empty: {path}")

    characters = _split_characters(characters_arg) if characters_arg else None
    if characters is not None and not is_story_response(text):
        return characters, text

    if characters is None and "CHARACTERS:" not in text and "STORY:" not in text:
        _fail("--characters is required when the file has no CHARACTERS: line")

    try:
        parsed_characters, story = parse_story_response(text)
    except StoryFormatError as e:
        _fail(f"{e}: {path}")
    return characters or parsed_characters, story


def _local_generator() -> LocalVoiceGenerator:
    # pyttsx3 raises driver-specific errors when no speech backend is installed
    try:
        return LocalVoiceGenerator()
    except Exception as e:
        _fail(f"Local speech engine unavailable: {e}")


def cmd_generate(args):
    """Generate a story from a prompt."""
    prompt = " ".join(args.prompt)
    try:
        result = StoryGenerator().generate(prompt)
    except (StoryGenerationError, StoryFormatError) as e:
        _fail(str(e))
    except openai.APIError as e:
        _fail(f"Story generation failed: {e}")

    output = f"CHARACTERS: {', '.join(result.characters)}\n\nSTORY:\n{result.story}\n"
    if args.out:
        with open(args.out, "w") as f:
            f.write(output)
        print(f"Story written to {args.out} ({result.word_count} words, model {result.model})")
    else:
        print(output)


def cmd_segments(args):
    """Show how a story is split and voiced."""
    characters, story = _load_story(args.file, args.characters)
    segments = parse_story_segments(story, characters)
    voice_map = assign_voices(characters)

    print("Cast:")
    for name, profile in voice_map.items():
        print(f"  {name:<20} → {profile.name} (pitch {profile.pitch}, rate {profile.rate})")
    print(f"Segments: {len(segments)}")
    for i, seg in enumerate(segments, 1):
        print(f"  {i:03d} [{seg.character}] {seg.text}")


def cmd_speak(args):
    """Play a story on the local speech engine."""
    characters, story = _load_story(args.file, args.characters)
    generator = _local_generator()
    utterances, _ = generator.generate_audiobook(story, characters)
    if not utterances:
        _fail(f"Could not parse any segments from: {args.file}")

    print(f"Speaking {len(utterances)} segments...")
    try:
        session = generator.play_audiobook(utterances)
    except KeyboardInterrupt:
        generator.stop()
        print("Stopped.")
        return
    if session.failed:
        print(f"{len(session.failed)} segment(s) failed and were skipped.")


def cmd_produce(args):
    """Synthesize a story with a hosted TTS provider and write the download MP3."""
    characters, story = _load_story(args.file, args.characters)
    segments = parse_story_segments(story, characters)
    if not segments:
        _fail(f"Could not parse any segments from: {args.file}")

    generator = HostedAudiobookGenerator(
        make_client(args.provider),
        voices=HOSTED_VOICE_TABLES[args.provider],
    )

    def progress(current, total):
        print(f"  Generating segment {current}/{total}")

    print(f"Generating {len(segments)} segments with {args.provider}...")
    try:
        clips = generator.generate(segments, on_progress=progress)
    except HostedTTSError as e:
        _fail(str(e))

    if not clips:
        _fail("No audio was generated.")

    if args.mixdown:
        output_path = export_mixdown(mixdown(clips), args.output_dir, args.title)
    else:
        output_path = export_combined(clips, args.output_dir, args.title)
    script_path = write_script(build_script(segments), args.output_dir, args.title)

    skipped = len(segments) - len(clips)
    if skipped:
        print(f"{skipped} segment(s) failed and were skipped.")
    print(f"Script: {script_path}")
    print(f"Done: {output_path} ({len(clips)} segments combined)")

    if args.play:
        generator.play(clips)


def _check_device_voices(args):
    """List the device voice inventory and speak test lines."""
    generator = _local_generator()
    voices = generator.available_voices()

    if args.device:
        print(f"Device voices: {len(voices)}")
        for voice in voices:
            languages = ", ".join(voice_languages(voice)) or "unknown"
            print(f"  {voice.name:<24} {languages:<12} {voice.id}")

    utterances = []
    if args.test_device:
        wanted = args.test_device.lower()
        matches = [v for v in voices if wanted in v.name.lower()]
        if not matches:
            _fail(f"No device voice matches: {args.test_device}")
        utterances.extend(generator.voice_sample(v) for v in matches)
    if args.test:
        profile = profile_for(VoiceCategory[args.test.upper()])
        utterances.append(generator.profile_sample(profile))

    if utterances:
        session = generator.play_audiobook(utterances)
        for index in session.completed:
            print(f"Played: {utterances[index].text}")
        if session.failed:
            _fail(f"{len(session.failed)} test line(s) failed to play")


def cmd_voices(args):
    """List voice profiles and hosted voice tables, or check device voices."""
    if args.device or args.test or args.test_device:
        _check_device_voices(args)
        return

    filter_str = args.filter.lower() if args.filter else None
    print("Voice profiles:")
    for i, profile in enumerate(CHARACTER_VOICES):
        if filter_str and filter_str not in profile.name.lower():
            continue
        print(f"  {i} {profile.name:<10} pitch={profile.pitch} rate={profile.rate} "
              f"volume={profile.volume} device={profile.voice_name}")
    for provider, table in HOSTED_VOICE_TABLES.items():
        print(f"{provider}:")
        for voice in table:
            if filter_str and filter_str not in voice.character.lower():
                continue
            print(f"  {voice.character:<10} {voice.voice_name:<10} {voice.voice_id}")
    if args.character:
        profile = CHARACTER_VOICES[character_index(args.character)]
        voice = hosted_voice_for(args.character, HOSTED_VOICE_TABLES["elevenlabs"])
        print(f"{args.character} → {profile.name} / {voice.voice_name}")


def _add_story_args(parser):
    parser.add_argument("file", help="Story text, or a CHARACTERS:/STORY: response")
    parser.add_argument("--characters", help='Comma-separated speaker names, e.g. "Max, Luna"')


def main(argv=None):
    """CLI entry point."""
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="story-voices",
        description="Story Voices: turn generated stories into multi-voice audiobooks",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # generate
    generate_parser = subparsers.add_parser("generate", help="Generate a story from a prompt")
    generate_parser.add_argument("prompt", nargs="+", help="What the story is about")
    generate_parser.add_argument("--out", help="Write the story to this file")
    generate_parser.set_defaults(func=cmd_generate)

    # segments
    segments_parser = subparsers.add_parser("segments", help="Show parsed segments and voices")
    _add_story_args(segments_parser)
    segments_parser.set_defaults(func=cmd_segments)

    # speak
    speak_parser = subparsers.add_parser("speak", help="Play a story with local speech synthesis")
    _add_story_args(speak_parser)
    speak_parser.set_defaults(func=cmd_speak)

    # produce
    produce_parser = subparsers.add_parser("produce", help="Create an MP3 with a hosted TTS provider")
    _add_story_args(produce_parser)
    produce_parser.add_argument("--provider", choices=sorted(HOSTED_VOICE_TABLES), default="elevenlabs")
    produce_parser.add_argument("--title", default=DEFAULT_TITLE, help="Title used for output filenames")
    produce_parser.add_argument("--output-dir", default=OUTPUT_DIR)
    produce_parser.add_argument("--mixdown", action="store_true",
                                help="Re-encode with pauses instead of joining raw clips")
    produce_parser.add_argument("--play", action="store_true", help="Play the clips when done")
    produce_parser.set_defaults(func=cmd_produce)

    # voices
    voices_parser = subparsers.add_parser("voices", help="List voice profiles")
    voices_parser.add_argument("--filter", help="Filter by archetype substring")
    voices_parser.add_argument("--character", help="Show which voice a character name gets")
    voices_parser.add_argument("--device", action="store_true", help="List the local speech engine's voices")
    voices_parser.add_argument("--test", choices=[c.name.lower() for c in VoiceCategory],
                               help="Speak a sample line with a voice profile")
    voices_parser.add_argument("--test-device", metavar="NAME",
                               help="Speak a sample line with each device voice matching NAME")
    voices_parser.set_defaults(func=cmd_voices)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    args.func(args)


if __name__ == "__main__":
    main()
