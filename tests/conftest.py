import os
import sys
import tempfile

import pytest

# Add the project root to the PYTHONPATH
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

os.environ.setdefault("BOT_TOKEN", "")
os.environ.setdefault("DEFAULT_LOCALE", "en")
os.environ.setdefault("PAYMENTS_PROVIDER", "mock")
os.environ.setdefault("PAYMENT_SUCCESS_DELAY", "0")
os.environ.setdefault("RATING_SUCCESS_DELAY", "0")
os.environ.setdefault(
    "DATABASE_URL", "sqlite:///" + os.path.join(tempfile.mkdtemp(), "suvix-test.db")
)

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from suvix.db import Base  # noqa: E402
from suvix import models  # noqa: E402,F401


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def client():
    """A BackendClient stand-in whose endpoints are AsyncMocks."""
    c = MagicMock()
    c.token = "tok"
    for name in (
        "get_payment_config",
        "get_order",
        "get_editor_stats",
        "mark_notification_read",
        "create_payment_order",
        "verify_payment",
        "get_delivery_status",
        "confirm_download",
        "check_rating",
        "submit_rating",
        "respond_to_rating",
        "list_notifications",
        "mark_all_notifications_read",
        "get_me",
        "aclose",
    ):
        setattr(c, name, AsyncMock())
    return c
