"""OpenAI speech service: Whisper transcription, translation and summaries"""
import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

from utils.config import (
    OPENAI_API_KEY,
    OPENAI_CHAT_MODEL,
    OPENAI_TRANSCRIPTION_MODEL,
    VOICE_PROCESSING_TIMEOUT_SECONDS,
)
from .voice import (
    Transcription,
    TranscriptionFailed,
    TranscriptionRateLimited,
    TranscriptionTimeout,
    TranscriptionUnavailable,
    same_language,
)

logger = logging.getLogger(__name__)

TRANSLATE_PROMPT = (
    "You are a professional translator. Translate the following text to English "
    "while preserving the original meaning and tone. If the text is already in "
    "English, return it as-is."
)

SUMMARY_PROMPT = """You create clear, concise summaries of survey responses in relation to the question asked.

Rules:
1. Create a brief, clear summary of the user's response
2. Connect their response to the survey question context
3. Be positive and neutral - don't judge if the response is "good" or "bad"
4. Keep it concise but capture the key sentiment and meaning
5. Make it sound natural and conversational
6. Focus on what they DID say, not what they didn't say"""


def is_valid_api_key(api_key: Optional[str]) -> bool:
    """Basic format check of an OpenAI API key"""
    return bool(api_key) and api_key.startswith("sk-") and len(api_key) >= 20


class OpenAISpeechService:
    """Speech service backed by the OpenAI API"""

    def __init__(
        self,
        api_key: Optional[str] = OPENAI_API_KEY,
        transcription_model: str = OPENAI_TRANSCRIPTION_MODEL,
        chat_model: str = OPENAI_CHAT_MODEL,
        timeout: float = VOICE_PROCESSING_TIMEOUT_SECONDS,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.transcription_model = transcription_model
        self.chat_model = chat_model
        self.client = client
        if self.client is None and is_valid_api_key(api_key):
            self.client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=1)
        if self.client is None:
            logger.warning("OpenAI API key not configured or invalid. Voice transcription disabled.")

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    async def transcribe(self, audio: bytes) -> Transcription:
        if not self.is_configured:
            raise TranscriptionUnavailable("OpenAI API key not configured")
        try:
            result = await self.client.audio.transcriptions.create(
                model=self.transcription_model,
                file=("voice_message.ogg", audio),
                response_format="verbose_json",
                temperature=0.2,
            )
        except openai.RateLimitError as e:
            raise TranscriptionRateLimited(str(e)) from e
        except openai.APITimeoutError as e:
            raise TranscriptionTimeout(str(e)) from e
        except openai.AuthenticationError as e:
            raise TranscriptionUnavailable(str(e)) from e
        except openai.OpenAIError as e:
            raise TranscriptionFailed(str(e)) from e

        return Transcription(
            text=result.text,
            language=getattr(result, "language", None) or "",
            duration=getattr(result, "duration", None),
        )

    async def _chat(self, system: str, user: str, max_tokens: int) -> str:
        completion = await self.client.chat.completions.create(
            model=self.chat_model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            temperature=0.3,
            max_tokens=max_tokens,
        )
        return (completion.choices[0].message.content or "").strip()

    async def translate(self, text: str, from_language: str) -> str:
        if not self.is_configured:
            return text
        return await self._chat(TRANSLATE_PROMPT, text, max_tokens=500)

    async def summarize(self, text: str, question_prompt: str, language: str) -> str:
        if not self.is_configured:
            return text
        user = f'Survey Question: "{question_prompt}"\nUser\'s Response: "{text}"\n'
        if not same_language(language, "en"):
            user += f"Original Language: {language}\n"
        user += "\nPlease provide a clear summary of how their response relates to the question."
        return await self._chat(SUMMARY_PROMPT, user, max_tokens=100)
