"""Database bootstrap helpers for the SQL payment store."""

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""

    pass


def make_session_factory(dsn: str) -> sessionmaker:
    """One engine per process; sessions keep objects readable after commit."""

    engine = create_engine(dsn, pool_pre_ping=True)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
