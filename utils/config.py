"""Bot configuration"""
import os
from dotenv import load_dotenv

load_dotenv()

BOT_TOKEN = os.getenv("BOT_TOKEN")
ADMIN_IDS = [int(id.strip()) for id in os.getenv("ADMIN_IDS", "").split(",") if id.strip()]

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///data.db")
SURVEYS_FILE = os.getenv("SURVEYS_FILE", "surveys.json")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Speech service
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_TRANSCRIPTION_MODEL = os.getenv("OPENAI_TRANSCRIPTION_MODEL", "whisper-1")
OPENAI_CHAT_MODEL = os.getenv("OPENAI_CHAT_MODEL", "gpt-3.5-turbo")
TARGET_LANGUAGE = os.getenv("TARGET_LANGUAGE", "en")

# Voice limits
MAX_VOICE_DURATION_SECONDS = int(os.getenv("MAX_VOICE_DURATION_SECONDS", "60"))
MAX_VOICE_SIZE_BYTES = int(os.getenv("MAX_VOICE_SIZE_BYTES", str(10 * 1024 * 1024)))
VOICE_PROCESSING_TIMEOUT_SECONDS = float(os.getenv("VOICE_PROCESSING_TIMEOUT_SECONDS", "30"))

# Sessions not touched for this long are purged
SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "24"))

if not ADMIN_IDS:
    print("⚠️ Warning: ADMIN_IDS is not set. Admin commands will be unavailable.")
