"""Bot entry point"""
import asyncio
import logging
from datetime import timedelta

from aiogram import Bot, Dispatcher

from utils.config import BOT_TOKEN, LOG_LEVEL, SESSION_TTL_HOURS, SURVEYS_FILE
from models import init_db
from handlers import common_router, survey_router, admin_router
from handlers.admin import admin_notifier
from handlers.transport import TelegramTransport
from services.catalog import SurveyCatalog
from services.engine import ConversationEngine
from services.notifier import Notifier, log_event
from services.sessions import SessionStore
from services.speech import OpenAISpeechService
from services.voice import VoiceResolver

# Logging setup
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def main():
    """Start the bot"""
    if not BOT_TOKEN:
        raise ValueError("BOT_TOKEN is not set in the .env file")

    logger.info("Initializing the database...")
    await init_db()

    catalog = SurveyCatalog()
    created = await catalog.load_definitions(SURVEYS_FILE)
    if created:
        logger.info("Loaded surveys: %s", ", ".join(created))

    sessions = SessionStore()
    await sessions.purge_stale(timedelta(hours=SESSION_TTL_HOURS))

    bot = Bot(token=BOT_TOKEN)
    dp = Dispatcher()

    notifier = Notifier()
    notifier.subscribe(log_event)
    notifier.subscribe(admin_notifier(bot))

    engine = ConversationEngine(
        transport=TelegramTransport(bot),
        resolver=VoiceResolver(OpenAISpeechService()),
        catalog=catalog,
        sessions=sessions,
        notifier=notifier,
    )
    dp["engine"] = engine

    # Commands first, the conversation router takes everything else
    dp.include_router(admin_router)
    dp.include_router(common_router)
    dp.include_router(survey_router)

    logger.info("Bot started!")

    try:
        await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
    finally:
        await notifier.drain()
        await bot.session.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
