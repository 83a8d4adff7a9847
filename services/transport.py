"""Messaging transport interface used by the conversation engine"""
from dataclasses import dataclass
from typing import Any, Optional, Protocol

VOICE_KINDS = ("voice", "audio")


@dataclass(frozen=True)
class InboundMessage:
    sender: str
    text: str = ""
    attachment_kind: Optional[str] = None  # "voice", "audio", "photo", ...
    attachment_duration: Optional[int] = None
    raw: Any = None  # transport-specific message, for downloads

    @property
    def has_attachment(self) -> bool:
        return self.attachment_kind is not None

    @property
    def is_voice(self) -> bool:
        return self.attachment_kind in VOICE_KINDS

    @property
    def command(self) -> str:
        """Text normalized for keyword matching (yes/no/skip)"""
        return self.text.strip().lower()


class MessagingTransport(Protocol):
    async def send_text(self, recipient: str, text: str) -> None: ...

    async def download_attachment(self, message: InboundMessage) -> bytes: ...
