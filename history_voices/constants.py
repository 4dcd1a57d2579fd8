"""All magic numbers and configuration constants."""

RESEARCH_MODEL = "gemini-3-pro-preview"
TTS_MODEL = "gemini-2.5-pro-tts-preview-12-2025"
IMAGE_MODEL = "gemini-2.5-flash-image"

API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY")

RETRY_COUNT = 3                     # max retries on quota errors
RETRY_INITIAL_DELAY = 2.0           # seconds, doubled after every retry
AVATAR_RETRY_COUNT = 2              # portraits are optional, spend less time on them

SAMPLE_RATE = 24000                 # Hz; TTS returns 16-bit mono PCM at this rate
CHANNELS = 1
SAMPLE_WIDTH = 2                    # bytes per sample

MALE_VOICES = ["Puck", "Fenrir", "Charon", "Zephyr"]
FEMALE_VOICES = ["Kore", "Aoede"]
DEFAULT_MALE_VOICE = "Puck"
DEFAULT_FEMALE_VOICE = "Kore"
DEFAULT_GENDER = "male"

CHANNEL_LABELS = ["Speaker A", "Speaker B"]   # ASCII-safe speaker tags for the TTS model
UNKNOWN_SPEAKER = "Unknown"
DEFAULT_VISUAL_DESCRIPTION = "A person from this historical period."
DEFAULT_BIO = "A local inhabitant of this era."
DEFAULT_IMAGE_MIME = "image/png"

STATE_IDLE = "idle"
STATE_RESEARCHING = "researching"
STATE_GENERATING_MEDIA = "generating_media"

MAX_DATE = "1825-12-31"             # latest date the research prompt is tuned for
OUTPUT_DIR = "output"
OUTPUT_BITRATE = "192k"             # MP3 output bitrate
DEFAULT_AUDIO_FORMAT = "wav"

# Curated starting points (label, location, date)
PRESETS = [
    ("Tenochtitlan Market", "Tlatelolco, Mexico-Tenochtitlan", "1519-04-20"),
    ("Heian Kyoto", "Kyoto Imperial Palace, Japan", "1000-05-05"),
    ("Mansa Musa's Timbuktu", "Djinguereber Mosque, Timbuktu", "1324-10-15"),
    ("Taj Mahal Gardens", "Agra, India", "1650-02-14"),
    ("Baghdad House of Wisdom", "Baghdad, Iraq", "0850-03-21"),
    ("Great Zimbabwe", "Great Zimbabwe Ruins", "1400-07-01"),
    ("Machu Picchu", "Machu Picchu, Peru", "1460-06-21"),
    ("Tang Dynasty Chang'an", "Chang'an, China", "0715-01-28"),
    ("Benin City", "Benin City, Edo Kingdom", "1500-03-10"),
    ("Samarkand Silk Road", "Registan Square, Samarkand", "1420-09-15"),
]

VERSION = "0.1.0"
