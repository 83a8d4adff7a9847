"""Survey conversation handlers"""
from aiogram import F, Router
from aiogram.types import Message

from services.engine import ConversationEngine
from .transport import to_inbound

router = Router()
router.message.filter(F.chat.type == "private")


@router.message()
async def handle_message(message: Message, engine: ConversationEngine):
    """Every private message goes to the conversation engine"""
    await engine.handle_inbound_message(to_inbound(message))
