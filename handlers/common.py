"""Basic commands (/help, /status)"""
from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import Message

from services.engine import ConversationEngine
from utils.i18n import get_text

router = Router()
router.message.filter(F.chat.type == "private")


@router.message(Command("help"))
async def cmd_help(message: Message, engine: ConversationEngine):
    """/help command"""
    await message.answer(get_text(engine.lang, "help_text"))


@router.message(Command("status"))
async def cmd_status(message: Message, engine: ConversationEngine):
    """/status command - survey progress"""
    await message.answer(await engine.describe_progress(str(message.chat.id)))
