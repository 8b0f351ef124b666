import logging

from suvix.config import settings

logger = logging.getLogger(__name__)

LANGUAGES = ("en", "it")

_CATALOG = {
    "en": {
        "start.welcome": "Welcome to SuviX 🎬\nHire video editors, pay safely through escrow, and download your final cut.",
        "help.text": (
            "Commands:\n"
            "/login <token> - Sign in with your SuviX token\n"
            "/logout - Sign out\n"
            "/pay <order_id> - Pay for an order\n"
            "/rate <order_id> - Rate your editor\n"
            "/download <order_id> - Download the final delivery\n"
            "/notifications - Your notifications\n"
            "/respond <rating_id> <text> - Reply to a rating (editors)\n"
            "/stats <editor_id> - An editor's rating summary\n"
            "/lang <en|it> - Change language\n"
            "/help - How it works"
        ),
        "usage": "Use: {usage}",
        "auth.required": "Please sign in first: /login <token>",
        "auth.logged_in": "Signed in as {name}.",
        "auth.logged_out": "Signed out.",
        "auth.failed": "Sign-in failed: {error}",
        "lang.set": "Language set to: {lang}",
        "pay.open": "Complete your payment of {amount} {currency} in the secure checkout:",
        "pay.button": "🔒 Open secure checkout",
        "pay.pay_now": "💳 Pay now",
        "pay.success": "🎉 Payment successful! Funds are held in escrow until you accept the delivery.",
        "pay.failed": "⚠️ Payment failed: {error}",
        "pay.retry": "🔁 Try Again",
        "pay.closed": "Payment cancelled.",
        "pay.busy": "A payment is already in progress.",
        "pay.not_payable": "This order cannot be paid (payment status: {status}).",
        "pay.fees": "Platform fee ({percent}%) included. Editor receives {editor_amount}.",
        "rate.title": "⭐ Rate your experience (order {order_id})",
        "rate.overall": "Overall Experience",
        "rate.quality": "Work Quality",
        "rate.communication": "Communication",
        "rate.deliverySpeed": "Delivery Speed",
        "rate.review": "Review: {review}",
        "rate.add_review": "✍️ Add review",
        "rate.submit": "Submit rating",
        "rate.ask_review": "Send your review as a message (max 1000 characters).",
        "rate.thanks": "Thank you! Your rating has been submitted successfully.",
        "download.checking": "Checking rating status...",
        "download.rate_first": "Please rate your editor before downloading.",
        "download.warning": (
            "⚠️ Confirm Download - this action is irreversible.\n"
            "• Payment will be released to the editor immediately\n"
            "• The chat will be closed and marked as completed\n"
            "• You cannot request changes or refunds after downloading\n\n"
            "Type CONFIRM to continue."
        ),
        "download.typed": "Typed: {text} {mark}",
        "download.agree": "I understand this is irreversible",
        "download.proceed": "⬇️ Proceed",
        "download.cancel": "Cancel",
        "download.not_ready": "Type CONFIRM and tick the acknowledgement first.",
        "download.ready": "🎉 Your file is ready: {url}",
        "download.failed": "Download failed: {error}",
        "download.closed": "Download cancelled.",
        "respond.done": "Your response has been published.",
        "respond.failed": "Could not publish your response: {error}",
        "stats.summary": "⭐ {average} from {total} reviews\nQuality {quality} · Communication {communication} · Speed {speed}",
        "stats.failed": "Could not load editor stats: {error}",
        "notifications.header": "🔔 Notifications ({unread} unread)",
        "notifications.empty": "No notifications yet.",
        "notifications.mark_read": "Mark all as read",
        "notifications.marked": "All notifications marked as read.",
        "notifications.new": "🔔 {title}\n{message}",
    },
    "it": {
        "start.welcome": "Benvenuto su SuviX 🎬\nTrova editor video, paga in sicurezza con l'escrow e scarica il tuo video finale.",
        "help.text": (
            "Comandi:\n"
            "/login <token> - Accedi con il tuo token SuviX\n"
            "/logout - Esci\n"
            "/pay <order_id> - Paga un ordine\n"
            "/rate <order_id> - Valuta il tuo editor\n"
            "/download <order_id> - Scarica la consegna finale\n"
            "/notifications - Le tue notifiche\n"
            "/respond <rating_id> <testo> - Rispondi a una valutazione (editor)\n"
            "/stats <editor_id> - Valutazioni di un editor\n"
            "/lang <en|it> - Cambia lingua\n"
            "/help - Come funziona"
        ),
        "usage": "Uso: {usage}",
        "auth.required": "Prima accedi: /login <token>",
        "auth.logged_in": "Accesso effettuato come {name}.",
        "auth.logged_out": "Disconnesso.",
        "auth.failed": "Accesso non riuscito: {error}",
        "lang.set": "Lingua impostata su: {lang}",
        "pay.open": "Completa il pagamento di {amount} {currency} nel checkout sicuro:",
        "pay.button": "🔒 Apri il checkout sicuro",
        "pay.pay_now": "💳 Paga ora",
        "pay.success": "🎉 Pagamento riuscito! I fondi restano in garanzia fino all'accettazione della consegna.",
        "pay.failed": "⚠️ Pagamento non riuscito: {error}",
        "pay.retry": "🔁 Riprova",
        "pay.closed": "Pagamento annullato.",
        "pay.busy": "Un pagamento è già in corso.",
        "pay.not_payable": "Questo ordine non può essere pagato (stato pagamento: {status}).",
        "rate.title": "⭐ Valuta la tua esperienza (ordine {order_id})",
        "rate.overall": "Esperienza complessiva",
        "rate.quality": "Qualità del lavoro",
        "rate.communication": "Comunicazione",
        "rate.deliverySpeed": "Velocità di consegna",
        "rate.add_review": "✍️ Aggiungi recensione",
        "rate.submit": "Invia valutazione",
        "rate.ask_review": "Invia la tua recensione come messaggio (max 1000 caratteri).",
        "rate.thanks": "Grazie! La tua valutazione è stata inviata.",
        "download.rate_first": "Valuta il tuo editor prima di scaricare.",
        "download.agree": "Ho capito che è irreversibile",
        "download.proceed": "⬇️ Procedi",
        "download.cancel": "Annulla",
        "download.not_ready": "Scrivi CONFIRM e spunta la conferma.",
        "download.ready": "🎉 Il tuo file è pronto: {url}",
        "download.failed": "Download non riuscito: {error}",
        "download.closed": "Download annullato.",
        "respond.done": "La tua risposta è stata pubblicata.",
        "respond.failed": "Impossibile pubblicare la risposta: {error}",
        "stats.summary": "⭐ {average} su {total} recensioni\nQualità {quality} · Comunicazione {communication} · Velocità {speed}",
        "stats.failed": "Impossibile caricare le statistiche: {error}",
        "notifications.header": "🔔 Notifiche ({unread} non lette)",
        "notifications.empty": "Ancora nessuna notifica.",
        "notifications.mark_read": "Segna tutte come lette",
        "notifications.marked": "Tutte le notifiche sono state segnate come lette.",
    },
}


def t(key: str, locale: str | None = None, default: str | None = None, **kwargs) -> str:
    loc = (locale or settings.DEFAULT_LOCALE or "en").split(",")[0].strip().lower()
    text = (_CATALOG.get(loc, {}).get(key)
            or _CATALOG.get("en", {}).get(key)
            or default
            or key)
    if kwargs:
        try:
            text = text.format(**kwargs)
        except (KeyError, IndexError) as e:
            logger.warning("bad placeholders for %s: %s", key, e)
    return text
