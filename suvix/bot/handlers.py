import logging

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.ext import CallbackQueryHandler, CommandHandler, ContextTypes

from suvix.api.client import BackendClient
from suvix.db import SessionLocal
from suvix.errors import SuviXError
from suvix.i18n import LANGUAGES
from suvix.bot.session import get_session
from suvix.services import user_service
from suvix.services.ratings import respond_to_rating
from suvix.state import AuthUser, login, logout

logger = logging.getLogger(__name__)

NOTIFICATIONS_SHOWN = 10


async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    s = await get_session(update, context)
    await update.message.reply_text(s._("start.welcome") + "\n\n" + s._("help.text"))


async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE):
    s = await get_session(update, context)
    await update.message.reply_text(s._("help.text"))


async def cmd_login(update: Update, context: ContextTypes.DEFAULT_TYPE):
    s = await get_session(update, context)
    if not context.args:
        await update.message.reply_text(s._("usage", usage="/login <token>"))
        return
    token = context.args[0].strip()
    client = BackendClient(token)
    try:
        res = await client.get_me()
    except SuviXError as e:
        await update.message.reply_text(s._("auth.failed", error=e.message))
        return
    finally:
        await client.aclose()
    profile = res.user
    s.store.dispatch(
        login(AuthUser(id=profile.id, name=profile.name, email=profile.email,
                       role=profile.role, token=token))
    )
    logger.info("telegram user %s signed in as %s", s.tg_id, profile.id)
    await update.message.reply_text(s._("auth.logged_in", name=profile.name or profile.email))


async def cmd_logout(update: Update, context: ContextTypes.DEFAULT_TYPE):
    s = await get_session(update, context)
    s.store.dispatch(logout())
    s.flows.clear()
    await update.message.reply_text(s._("auth.logged_out"))


async def cmd_lang(update: Update, context: ContextTypes.DEFAULT_TYPE):
    s = await get_session(update, context)
    if not context.args or context.args[0] not in LANGUAGES:
        await update.message.reply_text(s._("usage", usage=f"/lang <{'|'.join(LANGUAGES)}>"))
        return
    db = SessionLocal()
    try:
        user_service.update_user_lang(db, s.tg_id, context.args[0])
    finally:
        db.close()
    s.lang = context.args[0]
    await update.message.reply_text(s._("lang.set", lang=s.lang))


def _notifications_view(s):
    channel = s.channel
    lines = [s._("notifications.header", unread=channel.unread)]
    keyboard = []
    for n in channel.notifications[:NOTIFICATIONS_SHOWN]:
        lines.append(f"{'•' if n.read else '🆕'} {n.title} {n.message}".strip())
        if not n.read:
            keyboard.append([InlineKeyboardButton(f"✓ {n.title or n.id}", callback_data=f"notif_read:{n.id}")])
    keyboard.append([InlineKeyboardButton(s._("notifications.mark_read"), callback_data="notif_read")])
    return "\n".join(lines), InlineKeyboardMarkup(keyboard)


async def cmd_notifications(update: Update, context: ContextTypes.DEFAULT_TYPE):
    s = await get_session(update, context)
    if not s.is_authenticated:
        await update.message.reply_text(s._("auth.required"))
        return
    channel = s.channel
    if not channel.notifications:
        await update.message.reply_text(s._("notifications.empty"))
        return
    text, markup = _notifications_view(s)
    await update.message.reply_text(text, reply_markup=markup)


async def notifications_read(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    s = await get_session(update, context)
    await s.channel.mark_all_read()
    await query.edit_message_text(s._("notifications.marked"))


async def notification_read_one(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    s = await get_session(update, context)
    notification_id = query.data.split(":", 1)[1]
    await s.channel.mark_read(notification_id)
    text, markup = _notifications_view(s)
    await query.edit_message_text(text, reply_markup=markup)


async def cmd_respond(update: Update, context: ContextTypes.DEFAULT_TYPE):
    s = await get_session(update, context)
    if not s.is_authenticated:
        await update.message.reply_text(s._("auth.required"))
        return
    if len(context.args) < 2:
        await update.message.reply_text(s._("usage", usage="/respond <rating_id> <text>"))
        return
    rating_id, text = context.args[0], " ".join(context.args[1:])
    try:
        await respond_to_rating(s.client, rating_id, text)
    except SuviXError as e:
        await update.message.reply_text(s._("respond.failed", error=e.message))
        return
    await update.message.reply_text(s._("respond.done"))


async def cmd_stats(update: Update, context: ContextTypes.DEFAULT_TYPE):
    s = await get_session(update, context)
    if not context.args:
        await update.message.reply_text(s._("usage", usage="/stats <editor_id>"))
        return
    try:
        res = await s.client.get_editor_stats(context.args[0])
    except SuviXError as e:
        await update.message.reply_text(s._("stats.failed", error=e.message))
        return
    st = res.stats
    await update.message.reply_text(s._(
        "stats.summary",
        average=f"{st.average_rating:.1f}",
        total=st.total_reviews,
        quality=f"{st.quality_avg:.1f}",
        communication=f"{st.communication_avg:.1f}",
        speed=f"{st.speed_avg:.1f}",
    ))


start_handler = CommandHandler("start", cmd_start)
help_handler = CommandHandler("help", cmd_help)
login_handler = CommandHandler("login", cmd_login)
logout_handler = CommandHandler("logout", cmd_logout)
lang_handler = CommandHandler("lang", cmd_lang)
notifications_handler = CommandHandler("notifications", cmd_notifications)
notifications_read_handler = CallbackQueryHandler(notifications_read, pattern="^notif_read$")
notification_read_one_handler = CallbackQueryHandler(notification_read_one, pattern="^notif_read:.+$")
respond_handler = CommandHandler("respond", cmd_respond)
stats_handler = CommandHandler("stats", cmd_stats)
