"""Admin handlers"""
import csv
import os
from datetime import datetime, timedelta
from typing import Any, Dict

from aiogram import Bot, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import FSInputFile, Message

from services.engine import ConversationEngine
from services.notifier import SURVEY_COMPLETED
from services.responses import EXPORT_FIELDS
from utils.config import ADMIN_IDS, SESSION_TTL_HOURS

router = Router()


def admin_only(func):
    """Decorator checking admin rights"""
    async def wrapper(message: Message, **kwargs):
        if message.from_user.id not in ADMIN_IDS:
            await message.answer("⛔️ This command is only available to administrators.")
            return
        return await func(message, **kwargs)
    return wrapper


def format_stats(stats) -> str:
    status = "🟢 active" if stats.is_active else "⚪️ inactive"
    avg = f"{stats.avg_completion_seconds}s" if stats.avg_completion_seconds is not None else "-"
    return (
        f"{stats.title} (`{stats.id}`) {status}\n"
        f"  👥 Participants: {stats.participants}, completed: {stats.completed} ({stats.completion_rate}%)\n"
        f"  💬 Responses: {stats.responses}, avg time: {avg}"
    )


@router.message(Command("surveys"))
@admin_only
async def cmd_surveys(message: Message, engine: ConversationEngine, **kwargs):
    """/surveys - list surveys with statistics"""
    surveys = await engine.catalog.list_surveys()
    if not surveys:
        await message.answer("No surveys yet.")
        return
    text = "📊 Surveys\n\n" + "\n\n".join(format_stats(s) for s in surveys)
    await message.answer(text, parse_mode="Markdown")


@router.message(Command("activate"))
@admin_only
async def cmd_activate(message: Message, engine: ConversationEngine, command: CommandObject, **kwargs):
    """/activate <survey_id> - make the survey the only active one"""
    survey_id = (command.args or "").strip()
    if not survey_id:
        await message.answer("Usage: /activate <survey_id>")
        return
    if await engine.catalog.activate(survey_id):
        await message.answer(f"✅ Survey `{survey_id}` is now active.", parse_mode="Markdown")
    else:
        await message.answer(f"Survey `{survey_id}` not found.", parse_mode="Markdown")


@router.message(Command("export"))
@admin_only
async def cmd_export(message: Message, engine: ConversationEngine, **kwargs):
    """/export - CSV export of the active survey responses"""
    survey = await engine.catalog.get_active()
    if survey is None:
        await message.answer("No active survey to export.")
        return

    await message.answer("⏳ Preparing export...")
    data = await engine.responses.export_rows(survey.id)
    if not data:
        await message.answer("No data to export.")
        return

    os.makedirs("exports", exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filename = f"exports/{survey.id}_{timestamp}.csv"

    with open(filename, "w", newline="", encoding="utf-8-sig") as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=EXPORT_FIELDS)
        writer.writeheader()
        writer.writerows(data)

    await message.answer_document(
        document=FSInputFile(filename),
        caption=f"📊 {survey.title}: {len(data)} responses",
    )


@router.message(Command("cleanup"))
@admin_only
async def cmd_cleanup(message: Message, engine: ConversationEngine, **kwargs):
    """/cleanup - delete stale sessions"""
    removed = await engine.sessions.purge_stale(timedelta(hours=SESSION_TTL_HOURS))
    await message.answer(f"🧹 Removed {removed} sessions idle for more than {SESSION_TTL_HOURS}h.")


@router.message(Command("admin"))
@admin_only
async def cmd_admin_help(message: Message, **kwargs):
    """/admin - admin help"""
    help_text = """
🔧 Admin commands

📊 `/surveys` — surveys with statistics
✅ `/activate <id>` — activate a survey (deactivates the others)
💾 `/export` — CSV export of the active survey
🧹 `/cleanup` — delete idle sessions
"""
    await message.answer(help_text, parse_mode="Markdown")


def admin_notifier(bot: Bot):
    """Notification listener forwarding survey completions to admins"""
    async def notify(event: str, payload: Dict[str, Any]):
        if event != SURVEY_COMPLETED:
            return
        text = (
            f"✅ {payload['participant_code']} completed \"{payload['survey_title']}\" "
            f"in {payload['duration_seconds']}s"
        )
        for admin_id in ADMIN_IDS:
            await bot.send_message(chat_id=admin_id, text=text)
    return notify
