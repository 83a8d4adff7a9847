"""Voice answer resolution: transcription -> translation -> summary"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from utils.config import (
    MAX_VOICE_DURATION_SECONDS,
    MAX_VOICE_SIZE_BYTES,
    TARGET_LANGUAGE,
    VOICE_PROCESSING_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)

# Whisper reports full language names, most other tools report ISO codes
LANGUAGE_NAMES = {
    "en": "english",
    "ru": "russian",
    "uk": "ukrainian",
    "es": "spanish",
    "fr": "french",
    "de": "german",
    "pt": "portuguese",
    "sw": "swahili",
    "hi": "hindi",
    "ar": "arabic",
}


class VoiceError(Exception):
    """Base class for voice processing failures"""
    message_key = "voice_failed"


class AudioTooLong(VoiceError):
    message_key = "voice_too_long"


class TranscriptionUnavailable(VoiceError):
    message_key = "voice_unavailable"


class TranscriptionTimeout(VoiceError):
    message_key = "voice_timeout"


class TranscriptionRateLimited(VoiceError):
    message_key = "voice_rate_limited"


class TranscriptionFailed(VoiceError):
    message_key = "voice_failed"


@dataclass(frozen=True)
class Transcription:
    text: str
    language: str
    duration: Optional[float] = None


@dataclass(frozen=True)
class VoiceResolution:
    transcript: str
    translation: str
    summary: str
    language: str
    duration: Optional[float] = None

    @property
    def was_translated(self) -> bool:
        return self.translation != self.transcript


class SpeechService(Protocol):
    is_configured: bool

    async def transcribe(self, audio: bytes) -> Transcription: ...

    async def translate(self, text: str, from_language: str) -> str: ...

    async def summarize(self, text: str, question_prompt: str, language: str) -> str: ...


def same_language(detected: Optional[str], target: str) -> bool:
    """Compare a detected language (code or name) with the target code"""
    if not detected:
        return True
    detected = detected.strip().lower()
    target = target.strip().lower()
    return detected in (target, LANGUAGE_NAMES.get(target, target))


class VoiceResolver:
    """Turns a voice message into a candidate follow-up answer"""

    def __init__(
        self,
        speech: SpeechService,
        timeout: float = VOICE_PROCESSING_TIMEOUT_SECONDS,
        max_bytes: int = MAX_VOICE_SIZE_BYTES,
        max_duration: int = MAX_VOICE_DURATION_SECONDS,
        target_language: str = TARGET_LANGUAGE,
    ):
        self.speech = speech
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.max_duration = max_duration
        self.target_language = target_language

    @property
    def is_available(self) -> bool:
        return bool(self.speech and self.speech.is_configured)

    def check_limits(self, size: Optional[int] = None, duration: Optional[float] = None):
        """Raise AudioTooLong if the audio is over the configured limits"""
        if size is not None and size > self.max_bytes:
            raise AudioTooLong(f"audio is {size} bytes, limit {self.max_bytes}")
        if duration is not None and duration > self.max_duration:
            raise AudioTooLong(f"audio is {duration}s, limit {self.max_duration}s")

    async def resolve(
        self, audio: bytes, question_text: str, duration: Optional[float] = None
    ) -> VoiceResolution:
        self.check_limits(len(audio), duration)
        if not self.is_available:
            raise TranscriptionUnavailable("speech service is not configured")

        transcription = await self._transcribe(audio)
        translation = await self._translate(transcription)
        summary = await self._summarize(translation, question_text, transcription.language)

        return VoiceResolution(
            transcript=transcription.text,
            translation=translation,
            summary=summary,
            language=transcription.language,
            duration=transcription.duration if transcription.duration is not None else duration,
        )

    async def _transcribe(self, audio: bytes) -> Transcription:
        try:
            transcription = await asyncio.wait_for(self.speech.transcribe(audio), self.timeout)
        except asyncio.TimeoutError as e:
            raise TranscriptionTimeout(f"transcription took longer than {self.timeout}s") from e
        except VoiceError:
            raise
        except Exception as e:
            raise TranscriptionFailed(str(e)) from e

        if not transcription.text or not transcription.text.strip():
            raise TranscriptionFailed("empty transcript")
        logger.info(
            "Transcribed voice message: language=%s duration=%s",
            transcription.language, transcription.duration,
        )
        return Transcription(
            text=transcription.text.strip(),
            language=transcription.language or self.target_language,
            duration=transcription.duration,
        )

    async def _translate(self, transcription: Transcription) -> str:
        if same_language(transcription.language, self.target_language):
            return transcription.text
        try:
            translated = await asyncio.wait_for(
                self.speech.translate(transcription.text, transcription.language), self.timeout
            )
        except Exception:
            logger.exception("Translation failed, keeping the original transcript")
            return transcription.text
        return translated.strip() if translated and translated.strip() else transcription.text

    async def _summarize(self, text: str, question_text: str, language: str) -> str:
        try:
            summary = await asyncio.wait_for(
                self.speech.summarize(text, question_text, language), self.timeout
            )
        except Exception:
            logger.exception("Summary failed, using the answer text")
            return text
        return summary.strip() if summary and summary.strip() else text
