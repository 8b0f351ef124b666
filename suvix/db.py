from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from suvix.config import settings


class Base(DeclarativeBase):
    pass


_connect_args = (
    {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}
)
engine = create_engine(settings.DATABASE_URL, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    from suvix import models  # noqa: F401  registers tables on Base.metadata

    Base.metadata.create_all(bind=engine)

