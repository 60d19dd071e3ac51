# app/data/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from app.utils.settings import DATABASE_URL, DB_CONNECT_TIMEOUT_SECONDS, DB_STATEMENT_TIMEOUT_MS


def _connect_args(url: str) -> dict:
    #kazde zapytanie do bazy ma limit czasu, zeby request nie wisial
    if url.startswith("postgresql"):
        return {
            "connect_timeout": DB_CONNECT_TIMEOUT_SECONDS,
            "options": f"-c statement_timeout={DB_STATEMENT_TIMEOUT_MS}",
        }
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": DB_CONNECT_TIMEOUT_SECONDS}
    return {}


engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    connect_args=_connect_args(DATABASE_URL),
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
