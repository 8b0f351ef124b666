import logging

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.ext import CallbackQueryHandler, CommandHandler, ContextTypes, MessageHandler, filters

from suvix.bot.session import UserSession, get_session
from suvix.errors import RatingValidationError, SuviXError
from suvix.schemas import RATING_CATEGORIES
from suvix.services.download import DownloadConfirmation, DownloadService, DownloadState
from suvix.services.payments.checkout import PaymentOrchestrator
from suvix.services.ratings import RatingForm

logger = logging.getLogger(__name__)

AWAITING_REVIEW = "review"
AWAITING_CONFIRM = "confirm_text"


def _chat_id(update: Update) -> int:
    return update.effective_chat.id if update.effective_chat else update.effective_user.id


def _format_amount(amount: int) -> str:
    # gateway amounts are in the smallest currency unit
    return f"{amount / 100:,.2f}"


# --- payment ---

def _pay_keyboard(s: UserSession, url: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[InlineKeyboardButton(s._("pay.button"), url=url)]])


def _new_orchestrator(s: UserSession, context: ContextTypes.DEFAULT_TYPE, chat_id: int,
                      order_id: str, title: str | None = None):
    async def on_open(session):
        opts = session.options
        text = s._("pay.open", amount=_format_amount(opts.amount), currency=opts.currency)
        fees = orchestrator.fee_breakdown
        if fees is not None and fees.platform_fee_percent:
            text += "\n" + s._("pay.fees", percent=fees.platform_fee_percent,
                               editor_amount=fees.editor_amount)
        await context.bot.send_message(chat_id=chat_id, text=text,
                                       reply_markup=_pay_keyboard(s, session.url))

    async def on_success(res):
        s.flows.pop("pay", None)
        await context.bot.send_message(chat_id=chat_id, text=s._("pay.success"))

    async def on_failure(error):
        keyboard = [[InlineKeyboardButton(s._("pay.retry"), callback_data="pay_retry")]]
        await context.bot.send_message(chat_id=chat_id, text=s._("pay.failed", error=error.message),
                                       reply_markup=InlineKeyboardMarkup(keyboard))

    async def on_close():
        await context.bot.send_message(chat_id=chat_id, text=s._("pay.closed"))

    orchestrator = PaymentOrchestrator(
        s.client,
        order_id,
        user=s.store.state.user,
        title=title,
        on_open=on_open,
        on_success=on_success,
        on_failure=on_failure,
        on_close=on_close,
    )
    return orchestrator


async def cmd_pay(update: Update, context: ContextTypes.DEFAULT_TYPE):
    s = await get_session(update, context)
    if not s.is_authenticated:
        await update.message.reply_text(s._("auth.required"))
        return
    if not context.args:
        await update.message.reply_text(s._("usage", usage="/pay <order_id>"))
        return
    order_id = context.args[0]
    current = s.flows.get("pay")
    if current is not None and (current.loading or current.processing):
        await update.message.reply_text(s._("pay.busy"))
        return
    try:
        order = await s.client.get_order(order_id)
    except SuviXError as e:
        await update.message.reply_text(s._("pay.failed", error=e.message))
        return
    if order.payment_status != "unpaid" or order.is_terminal:
        await update.message.reply_text(s._("pay.not_payable", status=order.payment_status))
        return
    if current is None or current.order_id != order_id:
        if current is not None:
            current.cancel()
        current = s.flows["pay"] = _new_orchestrator(
            s, context, _chat_id(update), order_id, title=order.title or None
        )
    await current.initiate_payment()


async def pay_retry(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    s = await get_session(update, context)
    orchestrator = s.flows.get("pay")
    if orchestrator is None:
        return
    orchestrator.retry()
    keyboard = [[InlineKeyboardButton(s._("pay.pay_now"), callback_data="pay_start")]]
    await query.edit_message_reply_markup(reply_markup=InlineKeyboardMarkup(keyboard))


async def pay_start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    s = await get_session(update, context)
    orchestrator = s.flows.get("pay")
    if orchestrator is None:
        return
    await query.edit_message_reply_markup(reply_markup=None)
    await orchestrator.initiate_payment()


# --- rating ---

def rating_keyboard(s: UserSession, form: RatingForm) -> InlineKeyboardMarkup:
    rows = []
    for category in RATING_CATEGORIES:
        score = form.scores[category]
        rows.append([
            InlineKeyboardButton("★" if n <= score else "☆", callback_data=f"rate:{category}:{n}")
            for n in range(1, 6)
        ])
    rows.append([
        InlineKeyboardButton(s._("rate.add_review"), callback_data="rate_review"),
        InlineKeyboardButton(s._("rate.submit"), callback_data="rate_submit"),
    ])
    return InlineKeyboardMarkup(rows)


def rating_text(s: UserSession, form: RatingForm) -> str:
    lines = [s._("rate.title", order_id=form.order_id)]
    for category in RATING_CATEGORIES:
        lines.append(f"{s._('rate.' + category)}: {form.scores[category]}/5")
    if form.review:
        lines.append(s._("rate.review", review=form.review))
    return "\n".join(lines)


async def start_rating(s: UserSession, context: ContextTypes.DEFAULT_TYPE, chat_id: int,
                       order_id: str, on_rated=None) -> RatingForm:
    async def alert(message):
        await context.bot.send_message(chat_id=chat_id, text=message)

    async def on_success():
        await context.bot.send_message(chat_id=chat_id, text=s._("rate.thanks"))
        if on_rated is not None:
            await on_rated()

    def on_close():
        if s.flows.get("rate") is form:
            del s.flows["rate"]
        if s.flows.get("awaiting") == AWAITING_REVIEW:
            del s.flows["awaiting"]

    form = RatingForm(s.client, order_id, on_success=on_success, on_close=on_close, alert=alert)
    s.flows["rate"] = form
    await context.bot.send_message(chat_id=chat_id, text=rating_text(s, form),
                                   reply_markup=rating_keyboard(s, form))
    return form


async def cmd_rate(update: Update, context: ContextTypes.DEFAULT_TYPE):
    s = await get_session(update, context)
    if not s.is_authenticated:
        await update.message.reply_text(s._("auth.required"))
        return
    if not context.args:
        await update.message.reply_text(s._("usage", usage="/rate <order_id>"))
        return
    await start_rating(s, context, _chat_id(update), context.args[0])


async def rate_score(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    s = await get_session(update, context)
    form = s.flows.get("rate")
    if form is None:
        return
    _, category, value = query.data.split(":")
    try:
        form.set_score(category, int(value))
    except ValueError as e:
        logger.warning("bad rating callback %r: %s", query.data, e)
        return
    await query.edit_message_text(rating_text(s, form), reply_markup=rating_keyboard(s, form))


async def rate_review(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    s = await get_session(update, context)
    if s.flows.get("rate") is None:
        return
    s.flows["awaiting"] = AWAITING_REVIEW
    await context.bot.send_message(chat_id=_chat_id(update), text=s._("rate.ask_review"))


async def rate_submit(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    s = await get_session(update, context)
    form = s.flows.get("rate")
    if form is None:
        return
    await form.submit()


# --- download ---

def download_keyboard(s: UserSession, confirmation: DownloadConfirmation) -> InlineKeyboardMarkup:
    agree = ("☑ " if confirmation.agreed else "☐ ") + s._("download.agree")
    return InlineKeyboardMarkup([
        [InlineKeyboardButton(agree, callback_data="dl_agree")],
        [
            InlineKeyboardButton(s._("download.proceed"), callback_data="dl_proceed"),
            InlineKeyboardButton(s._("download.cancel"), callback_data="dl_cancel"),
        ],
    ])


async def _show_confirm_prompt(s: UserSession, context: ContextTypes.DEFAULT_TYPE, chat_id: int,
                               confirmation: DownloadConfirmation):
    s.flows["awaiting"] = AWAITING_CONFIRM
    await context.bot.send_message(chat_id=chat_id, text=s._("download.warning"),
                                   reply_markup=download_keyboard(s, confirmation))


async def cmd_download(update: Update, context: ContextTypes.DEFAULT_TYPE):
    s = await get_session(update, context)
    if not s.is_authenticated:
        await update.message.reply_text(s._("auth.required"))
        return
    if not context.args:
        await update.message.reply_text(s._("usage", usage="/download <order_id>"))
        return
    order_id = context.args[0]
    chat_id = _chat_id(update)
    previous = s.flows.get("download")
    if previous is not None:
        await previous.close()

    async def on_confirm(confirm_text):
        confirmation.loading = True
        try:
            url = await DownloadService(s.client).confirm_and_get_url(order_id, confirm_text)
        except SuviXError as e:
            confirmation.loading = False
            await context.bot.send_message(chat_id=chat_id, text=s._("download.failed", error=e.message))
            return
        await context.bot.send_message(chat_id=chat_id, text=s._("download.ready", url=url))
        await confirmation.close()

    def on_close():
        if s.flows.get("download") is confirmation:
            del s.flows["download"]
        if s.flows.get("awaiting") == AWAITING_CONFIRM:
            del s.flows["awaiting"]

    confirmation = DownloadConfirmation(s.client, order_id, on_confirm=on_confirm, on_close=on_close)
    s.flows["download"] = confirmation
    await update.message.reply_text(s._("download.checking"))
    state = await confirmation.open()

    if state is DownloadState.RATING:
        async def on_rated():
            confirmation.on_rating_success()
            if confirmation.state is DownloadState.CONFIRMING:
                await _show_confirm_prompt(s, context, chat_id, confirmation)

        await update.message.reply_text(s._("download.rate_first"))
        await start_rating(s, context, chat_id, order_id, on_rated=on_rated)
    elif state is DownloadState.CONFIRMING:
        await _show_confirm_prompt(s, context, chat_id, confirmation)


async def download_agree(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    s = await get_session(update, context)
    confirmation = s.flows.get("download")
    if confirmation is None:
        return
    confirmation.set_agreed(not confirmation.agreed)
    await query.edit_message_reply_markup(reply_markup=download_keyboard(s, confirmation))


async def download_proceed(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    s = await get_session(update, context)
    confirmation = s.flows.get("download")
    if confirmation is None:
        await query.answer()
        return
    if not confirmation.proceed_enabled:
        await query.answer(s._("download.not_ready"), show_alert=True)
        return
    await query.answer()
    await confirmation.confirm()


async def download_cancel(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()
    s = await get_session(update, context)
    confirmation = s.flows.get("download")
    if confirmation is None:
        return
    await confirmation.close()
    await query.edit_message_text(s._("download.closed"))


# --- free text ---

async def on_text(update: Update, context: ContextTypes.DEFAULT_TYPE):
    s = await get_session(update, context)
    awaiting = s.flows.get("awaiting")
    text = update.message.text or ""
    if awaiting == AWAITING_REVIEW:
        form = s.flows.get("rate")
        if form is None:
            s.flows.pop("awaiting", None)
            return
        try:
            form.set_review(text)
        except RatingValidationError as e:
            await update.message.reply_text(e.message)
            return
        s.flows.pop("awaiting", None)
        await update.message.reply_text(rating_text(s, form), reply_markup=rating_keyboard(s, form))
    elif awaiting == AWAITING_CONFIRM:
        confirmation = s.flows.get("download")
        if confirmation is None:
            s.flows.pop("awaiting", None)
            return
        confirmation.set_confirm_text(text)
        mark = "✅" if confirmation.is_confirm_valid else "❌"
        await update.message.reply_text(s._("download.typed", text=text, mark=mark),
                                        reply_markup=download_keyboard(s, confirmation))


pay_handler = CommandHandler("pay", cmd_pay)
pay_retry_handler = CallbackQueryHandler(pay_retry, pattern="^pay_retry$")
pay_start_handler = CallbackQueryHandler(pay_start, pattern="^pay_start$")
rate_handler = CommandHandler("rate", cmd_rate)
rate_score_handler = CallbackQueryHandler(rate_score, pattern=r"^rate:\w+:[1-5]$")
rate_review_handler = CallbackQueryHandler(rate_review, pattern="^rate_review$")
rate_submit_handler = CallbackQueryHandler(rate_submit, pattern="^rate_submit$")
download_handler = CommandHandler("download", cmd_download)
download_agree_handler = CallbackQueryHandler(download_agree, pattern="^dl_agree$")
download_proceed_handler = CallbackQueryHandler(download_proceed, pattern="^dl_proceed$")
download_cancel_handler = CallbackQueryHandler(download_cancel, pattern="^dl_cancel$")
text_handler = MessageHandler(filters.TEXT & ~filters.COMMAND, on_text)
