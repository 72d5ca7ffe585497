from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from journalflow.config import get_settings


def make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


engine = make_engine(get_settings().DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None) -> None:
    # models must be imported so their tables are registered on Base.metadata
    from journalflow import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


# ----------------------------------------
# Database dependency
# ----------------------------------------
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
