"""Ephemeral Telegram Bot."""

import logging

from telegram import Bot, Update
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ConversationHandler,
    MessageHandler,
    filters,
)
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .config import Config, load_config
from .errors import RemoteError
from .journal import Journal
from .telegram_handlers import (
    delete_confirm_handler,
    delete_handler,
    edit_start_handler,
    help_handler,
    history_handler,
    mood_handler,
    note_handler,
    photo_handler,
    show_handler,
    start_handler,
    today_handler,
    write_action_handler,
    write_cancel_handler,
    write_start_handler,
)
from .telegram_states import WriteStates
from .workflows import build_journal

logger = logging.getLogger(__name__)


class AuthFilter(filters.BaseFilter):
    """Filter to only allow authorized users."""

    def __init__(self, allowed_users: list[int]):
        super().__init__()
        self.allowed_users = allowed_users

    def check_update(self, update: Update) -> bool:
        if not self.allowed_users:
            return True  # No restriction if no users configured
        user = update.effective_user
        if user is None:
            return False
        return user.id in self.allowed_users


def create_application(config: Config | None = None, journal: Journal | None = None) -> Application:
    """Create and configure the Telegram bot application."""
    if config is None:
        config = load_config()

    if not config.telegram_bot_token:
        raise ValueError(
            "TELEGRAM_BOT_TOKEN not configured. "
            "Get a token from @BotFather on Telegram and add it to ephemeral.conf"
        )

    app = Application.builder().token(config.telegram_bot_token).build()
    app.bot_data["journal"] = journal or build_journal(config)
    # Callback queries bypass command filters; handlers check this list themselves
    app.bot_data["allowed_users"] = config.telegram_allowed_users

    auth_filter = AuthFilter(config.telegram_allowed_users)

    app.add_handler(CommandHandler("start", start_handler, filters=auth_filter))
    app.add_handler(CommandHandler("help", help_handler, filters=auth_filter))
    app.add_handler(CommandHandler("today", today_handler, filters=auth_filter))
    app.add_handler(CommandHandler("history", history_handler, filters=auth_filter))
    app.add_handler(CommandHandler("show", show_handler, filters=auth_filter))
    app.add_handler(CommandHandler("delete", delete_handler, filters=auth_filter))
    app.add_handler(CallbackQueryHandler(delete_confirm_handler, pattern=r"^delete:"))

    # Write/edit conversation (multi-step)
    write_conv = ConversationHandler(
        entry_points=[
            CommandHandler("write", write_start_handler, filters=auth_filter),
            CommandHandler("edit", edit_start_handler, filters=auth_filter),
        ],
        states={
            WriteStates.MOOD: [
                CallbackQueryHandler(mood_handler, pattern=r"^mood:"),
            ],
            WriteStates.NOTE: [
                MessageHandler(filters.TEXT & ~filters.COMMAND, note_handler),
                CallbackQueryHandler(note_handler, pattern=r"^note:"),
            ],
            WriteStates.PHOTOS: [
                MessageHandler(filters.PHOTO, photo_handler),
                CallbackQueryHandler(write_action_handler, pattern=r"^write:"),
            ],
        },
        fallbacks=[CommandHandler("cancel", write_cancel_handler)],
        per_user=True,
    )
    app.add_handler(write_conv)

    async def unauthorized_handler(update: Update, context):
        user = update.effective_user
        logger.warning(f"Unauthorized access attempt from user {user.id} ({user.username})")
        await update.message.reply_text(
            "Unauthorized. This bot is private.\n"
            "If you're the owner, add your Telegram user ID to TELEGRAM_ALLOWED_USERS in ephemeral.conf"
        )

    if config.telegram_allowed_users:
        app.add_handler(
            MessageHandler(~auth_filter & filters.ALL, unauthorized_handler)
        )

    return app


def setup_scheduler(app: Application, config: Config | None = None) -> AsyncIOScheduler:
    """Set up the evening reminder."""
    if config is None:
        config = load_config()

    scheduler = AsyncIOScheduler(timezone=config.timezone or "America/Toronto")

    if config.telegram_reminder_time and config.telegram_allowed_users:
        try:
            hour, minute = map(int, config.telegram_reminder_time.split(":"))
            scheduler.add_job(
                send_entry_reminder,
                CronTrigger(hour=hour, minute=minute),
                args=[app.bot, config.telegram_allowed_users, app.bot_data["journal"]],
                id="entry_reminder",
            )
            logger.info(f"Scheduled entry reminder at {hour:02d}:{minute:02d}")
        except ValueError:
            logger.warning(f"Invalid reminder time format: {config.telegram_reminder_time}")

    return scheduler


async def send_entry_reminder(bot: Bot, user_ids: list[int], journal: Journal):
    """Remind authorized users to record today's mood if it is still missing."""
    if journal.identity is None:
        logger.info("Not logged in, skipping reminder")
        return

    try:
        await journal.refresh()
    except RemoteError as e:
        logger.warning(f"Could not refresh entries before reminder: {e}")

    if journal.entry_for(journal.today()) is not None:
        logger.info("Entry already recorded for today, skipping reminder")
        return

    logger.info("Sending entry reminder")
    for user_id in user_ids:
        try:
            await bot.send_message(
                chat_id=user_id,
                text=f"{journal.greeting()}\n\nUse /write to record today's mood.",
            )
        except Exception as e:
            logger.error(f"Failed to send reminder to user {user_id}: {e}")


def run_bot():
    """Run the Telegram bot."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.INFO,
    )

    config = load_config()
    app = create_application(config)
    scheduler = setup_scheduler(app, config)
    journal: Journal = app.bot_data["journal"]

    async def post_init(application: Application) -> None:
        """Adopt the stored session and start scheduler once the loop is running."""
        await journal.start()
        if journal.identity is None:
            logger.warning("No stored session - run 'ephemeral login' first")
        else:
            logger.info(f"Journal loaded for {journal.identity.email} ({len(journal.entries())} entries)")
        scheduler.start()
        logger.info("Scheduler started")

    app.post_init = post_init

    if config.telegram_allowed_users:
        logger.info(f"Bot authorized for users: {config.telegram_allowed_users}")
    else:
        logger.warning("No TELEGRAM_ALLOWED_USERS configured - bot is open to anyone!")

    logger.info("Starting Ephemeral Telegram bot...")

    app.run_polling(allowed_updates=Update.ALL_TYPES)
