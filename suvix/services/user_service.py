import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from suvix.db import SessionLocal
from suvix.models import StoredSession
from suvix.state import AppState, AppStore, AuthUser

logger = logging.getLogger(__name__)


def get_or_create_user(db: Session, tg_id: str, username: str | None = None) -> StoredSession:
    """
    Retrieves the stored session for a Telegram user or creates an empty one.
    """
    row = db.query(StoredSession).filter(StoredSession.tg_id == tg_id).first()
    if not row:
        row = StoredSession(tg_id=tg_id, username=username or "")
        db.add(row)
        db.commit()
        db.refresh(row)
    return row


def update_user_lang(db: Session, tg_id: str, lang: str) -> None:
    row = db.query(StoredSession).filter(StoredSession.tg_id == tg_id).first()
    if row:
        row.lang = lang
        db.commit()


def save_session(db: Session, tg_id: str, user: Optional[AuthUser]) -> StoredSession:
    """Mirror the signed-in account (or its absence) into the sessions table."""
    row = get_or_create_user(db, tg_id)
    if user is None:
        row.user_id = None
        row.name = ""
        row.email = ""
        row.role = "client"
        row.token = None
    else:
        row.user_id = user.id
        row.name = user.name
        row.email = user.email
        row.role = user.role
        row.token = user.token
    db.commit()
    db.refresh(row)
    return row


def load_auth_user(db: Session, tg_id: str) -> Optional[AuthUser]:
    row = db.query(StoredSession).filter(StoredSession.tg_id == tg_id).first()
    if not row or not row.user_id or not row.token:
        return None
    return AuthUser(
        id=row.user_id, name=row.name, email=row.email, role=row.role, token=row.token
    )


def restore_store(
    tg_id: str, session_factory: Callable[[], Session] = SessionLocal
) -> AppStore:
    """Rehydrate a store from the sessions table and keep the table in sync."""
    db = session_factory()
    try:
        store = AppStore(AppState(user=load_auth_user(db, tg_id)))
    finally:
        db.close()

    def persist(new: AppState, old: AppState) -> None:
        db = session_factory()
        try:
            save_session(db, tg_id, new.user)
        finally:
            db.close()
        logger.debug("session for %s persisted", tg_id)

    store.subscribe(persist)
    return store
