"""Story generation through Groq's OpenAI-compatible chat API."""

import logging
import os
from dataclasses import replace

import openai
from openai import OpenAI

from story_voices.constants import GROQ_BASE_URL, STORY_FALLBACK_MODEL, STORY_MODEL
from story_voices.models import GeneratedStory
from story_voices.parser import StoryFormatError, parse_story_response

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a creative storyteller. Create engaging stories with dialogue and multiple characters for voice generation.

CRITICAL FORMATTING RULES:
1. Include 3-4 different characters with SHORT, CLEAR names (e.g., "Max", "Luna", "Dr. Smith")
2. Use EXACT dialogue format: CharacterName: "exact dialogue text"
3. Include narrator descriptions on separate lines
4. Each character should speak at least 2-3 times
5. Keep each line under 50 words for voice generation
6. Use lots of dialogue, minimal narration

EXAMPLE FORMAT:
CHARACTERS: Max, Luna, Dr. Smith, Narrator

STORY:
Narrator: The laboratory was dark and quiet.
Max: "Did you hear that strange noise?"
Luna: "Yes, it came from the basement."
Dr. Smith: "We should investigate immediately."
Narrator: They walked carefully down the stairs.
Max: "Look at this mysterious device!"

Format your response exactly like this with clear character dialogue."""

# Returned when both models fail
DEMO_STORY = GeneratedStory(
    story=(
        "Narrator: Detective Smith entered the room.\n"
        'Detective Smith: "What happened here?"\n'
        'Witness: "I heard a loud noise at midnight."\n'
        'Detective Smith: "Can you describe it?"\n'
        'Witness: "It sounded like breaking glass."\n'
        "Narrator: The detective took careful notes.\n"
        'Detective Smith: "Thank you for your help."'
    ),
    characters=["Detective Smith", "Witness", "Narrator"],
    word_count=45,
    model="fallback-demo",
)

# Errors that mean the model itself is unavailable, not the request
_MODEL_ERROR_MARKERS = ("Internal Server Error", "decommissioned", "model_decommissioned")


class StoryGenerationError(Exception):
    """The story could not be requested (bad prompt or missing key)."""


def _is_model_error(error: Exception) -> bool:
    message = str(error)
    return any(marker in message for marker in _MODEL_ERROR_MARKERS)


class StoryGenerator:
    def __init__(self, api_key: str | None = None, client: OpenAI | None = None):
        if client is None:
            api_key = api_key if api_key is not None else os.environ.get("GROQ_API_KEY")
            if not api_key:
                raise StoryGenerationError(
                    "Groq API key not configured. Please add GROQ_API_KEY to your .env file."
                )
            client = OpenAI(api_key=api_key, base_url=GROQ_BASE_URL)
        self.client = client

    def _complete(self, prompt: str, model: str) -> GeneratedStory:
        response = self.client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": f"Create a story about: {prompt}"},
            ],
        )
        content = response.choices[0].message.content or ""
        characters, story = parse_story_response(content)
        return GeneratedStory(
            story=story,
            characters=characters,
            word_count=len(story.split(" ")),
            model=model,
        )

    def generate(self, prompt: str) -> GeneratedStory:
        """Ask the LLM for a story about ``prompt``.

        If the primary model is unavailable, the fallback model is tried once;
        if that fails too the built-in demo story is returned. A response
        without CHARACTERS:/STORY: markers raises StoryFormatError.
        """
        if not prompt.strip():
            raise StoryGenerationError("Please enter a story prompt")

        logger.info("Generating story for prompt: %s", prompt)
        try:
            result = self._complete(prompt, STORY_MODEL)
        except openai.APIError as e:
            if not _is_model_error(e):
                raise
            logger.warning("Groq model error (%s), trying fallback model...", e)
            try:
                result = self._complete(prompt, STORY_FALLBACK_MODEL)
            except (openai.APIError, StoryFormatError) as fallback_error:
                logger.error("Fallback model also failed: %s", fallback_error)
                return replace(DEMO_STORY, characters=list(DEMO_STORY.characters))

        logger.info("Story generated with %s; characters: %s", result.model, result.characters)
        return result
