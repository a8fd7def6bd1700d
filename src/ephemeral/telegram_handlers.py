"""Telegram command handlers."""

import logging
from datetime import date

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.ext import ContextTypes, ConversationHandler

from .core.moods import MOODS, Mood
from .core.entries import MAX_ATTACHMENTS
from .errors import EphemeralError, NotAuthenticatedError, RemoteError, ValidationError
from .journal import Journal
from .telegram_format import entry_markdown, month_markdown, send_markdown
from .telegram_states import WriteStates

logger = logging.getLogger(__name__)

NOT_LOGGED_IN = "Not logged in. Run `ephemeral login` on the CLI first."


def _journal(context: ContextTypes.DEFAULT_TYPE) -> Journal:
    return context.application.bot_data["journal"]


def _parse_date_arg(context: ContextTypes.DEFAULT_TYPE) -> date | None:
    if not context.args:
        return None
    try:
        return date.fromisoformat(context.args[0])
    except ValueError:
        return None


def _mood_keyboard() -> InlineKeyboardMarkup:
    rows = [
        [InlineKeyboardButton(MOODS[m].label, callback_data=f"mood:{m.value}")]
        for m in Mood
    ]
    return InlineKeyboardMarkup(rows)


# ============== Simple Commands ==============


async def start_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /start command."""
    journal = _journal(context)
    who = journal.identity.display_name if journal.identity else "stranger"
    await update.message.reply_text(
        f"Hey {who}! One mood, one note, up to {MAX_ATTACHMENTS} photos a day.\n\n"
        "Commands:\n"
        "/today - Today's entry\n"
        "/write - Record or update today's entry\n"
        "/edit YYYY-MM-DD - Edit a past entry\n"
        "/history [YYYY-MM] - Month timeline\n"
        "/show YYYY-MM-DD - View one entry\n"
        "/delete YYYY-MM-DD - Delete an entry\n"
        "/help - Show all commands"
    )


async def help_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /help command."""
    await update.message.reply_text(
        "*Ephemeral Commands*\n\n"
        "/today - Today's entry\n"
        "/write - Pick a mood, add a note and photos, save\n"
        "/edit YYYY-MM-DD - Same flow for a past entry\n"
        "/history [YYYY-MM] - Month timeline\n"
        "/show YYYY-MM-DD - View one entry\n"
        "/delete YYYY-MM-DD - Delete an entry\n"
        "/cancel - Cancel current operation\n",
        parse_mode="Markdown",
    )


async def today_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /today command - show today's entry."""
    journal = _journal(context)
    if journal.identity is None:
        await update.message.reply_text(NOT_LOGGED_IN)
        return

    day = journal.today()
    entry = journal.entry_for(day)
    if entry is None:
        await update.message.reply_text(
            f"{journal.greeting()}\n\nNo entry for {day.strftime('%A, %b %d')} yet. Use /write."
        )
        return
    await send_markdown(update.message, entry_markdown(entry))


async def history_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /history command - month timeline."""
    journal = _journal(context)
    if journal.identity is None:
        await update.message.reply_text(NOT_LOGGED_IN)
        return

    current = journal.today()
    year, month = current.year, current.month
    if context.args:
        try:
            year, month = (int(p) for p in context.args[0].split("-"))
        except ValueError:
            await update.message.reply_text("Usage: /history YYYY-MM")
            return

    await send_markdown(update.message, month_markdown(journal.month(year, month), year, month))


async def show_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /show command - one entry."""
    journal = _journal(context)
    if journal.identity is None:
        await update.message.reply_text(NOT_LOGGED_IN)
        return

    day = _parse_date_arg(context)
    if day is None:
        await update.message.reply_text("Usage: /show YYYY-MM-DD")
        return
    entry = journal.entry_for(day)
    if entry is None:
        await update.message.reply_text(f"No entry for {day.strftime('%A, %b %d')}.")
        return
    await send_markdown(update.message, entry_markdown(entry))


# ============== Delete ==============


async def delete_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /delete command - ask for confirmation."""
    journal = _journal(context)
    if journal.identity is None:
        await update.message.reply_text(NOT_LOGGED_IN)
        return

    day = _parse_date_arg(context)
    if day is None:
        await update.message.reply_text("Usage: /delete YYYY-MM-DD")
        return
    if journal.entry_for(day) is None:
        await update.message.reply_text(f"No entry for {day.isoformat()}.")
        return

    keyboard = [
        [
            InlineKeyboardButton("Yes, delete", callback_data=f"delete:{day.isoformat()}"),
            InlineKeyboardButton("Cancel", callback_data="delete:cancel"),
        ]
    ]
    await update.message.reply_text(
        f"Delete {day.isoformat()} from the cloud forever?",
        reply_markup=InlineKeyboardMarkup(keyboard),
    )


async def delete_confirm_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle delete confirmation buttons."""
    query = update.callback_query
    allowed = context.application.bot_data.get("allowed_users")
    user = update.effective_user
    if allowed and (user is None or user.id not in allowed):
        logger.warning(f"Unauthorized delete attempt from user {user.id if user else None}")
        await query.answer("Unauthorized.", show_alert=True)
        return

    await query.answer()

    value = query.data.removeprefix("delete:")
    if value == "cancel":
        await query.edit_message_text("Kept it.")
        return

    try:
        await _journal(context).delete_entry(date.fromisoformat(value))
    except EphemeralError as e:
        await query.edit_message_text(f"Delete failed: {e}")
        return
    await query.edit_message_text(f"Deleted {value}.")


# ============== Write Conversation ==============


async def _loaded(update: Update, journal: Journal) -> bool:
    """Retry a failed load before writing; reply and return False if it still fails."""
    try:
        await journal.ensure_loaded()
    except RemoteError as e:
        logger.error(f"Telegram write blocked, entries not loaded: {e}")
        await update.message.reply_text(f"Could not load your entries: {e}\n\nTry again in a moment.")
        return False
    return True


async def write_start_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Start composing today's entry."""
    journal = _journal(context)
    if journal.identity is None:
        await update.message.reply_text(NOT_LOGGED_IN)
        return ConversationHandler.END
    if not await _loaded(update, journal):
        return ConversationHandler.END

    journal.drafts.seed(journal.entry_for(journal.today()))
    await update.message.reply_text(
        f"{journal.greeting()}\n\nPick a mood:",
        reply_markup=_mood_keyboard(),
    )
    return WriteStates.MOOD


async def edit_start_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Start editing a past entry."""
    journal = _journal(context)
    if journal.identity is None:
        await update.message.reply_text(NOT_LOGGED_IN)
        return ConversationHandler.END

    day = _parse_date_arg(context)
    if day is None:
        await update.message.reply_text("Usage: /edit YYYY-MM-DD")
        return ConversationHandler.END
    if not await _loaded(update, journal):
        return ConversationHandler.END
    try:
        entry = journal.edit_entry(day)
    except ValidationError as e:
        await update.message.reply_text(str(e))
        return ConversationHandler.END

    await update.message.reply_text(
        f"Editing {day.strftime('%B %d, %Y')} (currently {MOODS[entry.mood].label}).\n\nPick a mood:",
        reply_markup=_mood_keyboard(),
    )
    return WriteStates.MOOD


async def mood_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle mood selection."""
    query = update.callback_query
    await query.answer()

    journal = _journal(context)
    try:
        journal.drafts.set_mood(query.data.removeprefix("mood:"))
    except (ValueError, NotAuthenticatedError) as e:
        await query.edit_message_text(str(e))
        return ConversationHandler.END

    info = MOODS[journal.draft.mood]
    keyboard = []
    if journal.draft.note:
        keyboard.append([InlineKeyboardButton("Keep current note", callback_data="note:keep")])
    await query.edit_message_text(
        f"{info.label} - {info.desc}\n\nNow write your note.",
        reply_markup=InlineKeyboardMarkup(keyboard) if keyboard else None,
    )
    return WriteStates.NOTE


async def _prompt_for_photos(update: Update, context: ContextTypes.DEFAULT_TYPE):
    journal = _journal(context)
    room = MAX_ATTACHMENTS - len(journal.draft.attachments)
    keyboard = [[InlineKeyboardButton("Save", callback_data="write:save")]]
    if journal.draft.attachments:
        keyboard.insert(0, [InlineKeyboardButton("Remove photos", callback_data="write:clear_photos")])
    message = f"Send up to {room} photo(s), or tap Save." if room else "Photo limit reached. Tap Save."

    if update.callback_query:
        await update.callback_query.edit_message_text(message, reply_markup=InlineKeyboardMarkup(keyboard))
    else:
        await update.message.reply_text(message, reply_markup=InlineKeyboardMarkup(keyboard))
    return WriteStates.PHOTOS


async def note_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle note input (text or keep button)."""
    journal = _journal(context)
    if update.callback_query:
        await update.callback_query.answer()
    elif update.message and update.message.text:
        journal.drafts.set_note(update.message.text.strip())
    return await _prompt_for_photos(update, context)


async def photo_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Attach a photo to the draft."""
    journal = _journal(context)
    photo = update.message.photo[-1]
    tg_file = await photo.get_file()
    data = await tg_file.download_as_bytearray()

    try:
        journal.drafts.add_attachment_bytes(bytes(data), "image/jpeg")
    except ValidationError as e:
        await update.message.reply_text(str(e))
        return WriteStates.PHOTOS

    return await _prompt_for_photos(update, context)


async def write_action_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle Save / Remove photos buttons."""
    query = update.callback_query
    await query.answer()
    journal = _journal(context)

    if query.data == "write:clear_photos":
        for index in reversed(range(len(journal.draft.attachments))):
            journal.drafts.remove_attachment(index)
        return await _prompt_for_photos(update, context)

    try:
        entry = await journal.save()
    except EphemeralError as e:
        logger.error(f"Telegram save failed: {e}")
        await query.edit_message_text(f"{e}\n\nTap Save to retry or /cancel.",
                                      reply_markup=query.message.reply_markup)
        return WriteStates.PHOTOS

    await query.edit_message_text(
        f"Saved to cloud! {entry.date.strftime('%b %d')}: {MOODS[entry.mood].label}"
    )
    return ConversationHandler.END


async def write_cancel_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Cancel the write conversation, discarding unsaved changes."""
    journal = _journal(context)
    if journal.identity is not None:
        journal.drafts.seed(journal.entry_for(journal.today()))
    await update.message.reply_text("Discarded unsaved changes.")
    return ConversationHandler.END
