"""Telegram implementation of the messaging transport"""
from typing import List, Optional

from aiogram import Bot
from aiogram.types import Message

from services.transport import InboundMessage

# Telegram limit is 4096 characters per message
MAX_MESSAGE_LENGTH = 4000


def split_text(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """Split a long text on line boundaries"""
    if len(text) <= max_length:
        return [text]

    parts = []
    current_part = ""
    for line in text.split("\n"):
        while len(line) >= max_length:
            if current_part:
                parts.append(current_part)
                current_part = ""
            parts.append(line[:max_length])
            line = line[max_length:]
        if len(current_part) + len(line) + 1 <= max_length:
            current_part += line + "\n"
        else:
            if current_part:
                parts.append(current_part)
            current_part = line + "\n"
    if current_part.strip():
        parts.append(current_part)
    return parts


def attachment_kind(message: Message) -> Optional[str]:
    if message.voice:
        return "voice"
    if message.audio:
        return "audio"
    if message.photo:
        return "photo"
    if message.video or message.video_note:
        return "video"
    if message.document:
        return "document"
    if message.sticker:
        return "sticker"
    return None


def to_inbound(message: Message) -> InboundMessage:
    """aiogram Message -> InboundMessage"""
    media = message.voice or message.audio
    return InboundMessage(
        sender=str(message.chat.id),
        text=message.text or message.caption or "",
        attachment_kind=attachment_kind(message),
        attachment_duration=media.duration if media else None,
        raw=message,
    )


class TelegramTransport:
    def __init__(self, bot: Bot):
        self.bot = bot

    async def send_text(self, recipient: str, text: str) -> None:
        for part in split_text(text):
            await self.bot.send_message(chat_id=int(recipient), text=part, parse_mode=None)

    async def download_attachment(self, message: InboundMessage) -> bytes:
        raw: Message = message.raw
        media = raw.voice or raw.audio
        if media is None:
            raise ValueError("Message has no audio attachment")
        buffer = await self.bot.download(media)
        return buffer.read()
