"""All magic numbers and configuration constants."""

MIN_SEGMENT_LENGTH = 5              # chars; segment text this short or shorter is dropped
LOCAL_PAUSE_MS = 300                # ms pause between locally synthesized segments
HOSTED_PAUSE_MS = 500               # ms pause between hosted audio clips
ERROR_PAUSE_MS = 100                # ms pause after a failed segment before advancing
HOSTED_REQUEST_DELAY = 0.5          # seconds between hosted TTS requests
LOCAL_BASE_RATE_WPM = 200           # words per minute for a profile rate of 1.0
LOCAL_BASE_PITCH = 50               # engine pitch (0-100 scale) for a profile pitch of 1.0
NARRATOR = "Narrator"               # reserved speaker name, always present

ELEVENLABS_API_URL = "https://api.elevenlabs.io/v1/text-to-speech"
ELEVENLABS_MODEL_ID = "eleven_monolingual_v1"
ELEVENLABS_VOICE_SETTINGS = {
    "stability": 0.5,
    "similarity_boost": 0.5,
    "style": 0.0,
    "use_speaker_boost": True,
}
ELEVENLABS_TIMEOUT = 60             # seconds per request

GROQ_BASE_URL = "https://api.groq.com/openai/v1"
STORY_MODEL = "llama-3.1-8b-instant"
STORY_FALLBACK_MODEL = "llama3-8b-8192"

TTS_RETRY_COUNT = 3                 # max retries per Edge TTS clip
TTS_RETRY_BASE_DELAY = 1.0          # seconds, base delay for exponential backoff

SCRIPT_HEADER = "AI Generated Audiobook Script"
DEFAULT_TITLE = "ai-audiobook"
OUTPUT_DIR = "output"
OUTPUT_BITRATE = "192k"             # MP3 bitrate for mixdown exports
VERSION = "0.1.0"
