"""Database-backed key-value store for the web app.

The offer list is persisted through ``refi_calc.storage.OfferRepository``,
which only needs a string key-value store. This module provides one on top of
SQLAlchemy. It defaults to SQLite for local development, but accepts any
SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL) for shared deployments.
Keys are namespaced per browser session so visitors do not see each other's
offers.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from refi_calc.storage import KeyValueStore

logger = logging.getLogger(__name__)

Base = declarative_base()


class KeyValueEntry(Base):
    __tablename__ = "key_value_entries"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class SqlKeyValueStore(KeyValueStore):
    """Key-value pairs kept in a single SQL table."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def get(self, key: str) -> Optional[str]:
        with self._session_factory() as session:
            row = session.get(KeyValueEntry, key)
            return row.value if row else None

    def set(self, key: str, value: str) -> None:
        with self._session_factory() as session:
            row = session.get(KeyValueEntry, key)
            if row is None:
                session.add(KeyValueEntry(key=key, value=value))
            else:
                row.value = value
            session.commit()
        logger.debug("Stored %d characters under %r", len(value), key)


def create_store_from_env(url: str | None) -> SqlKeyValueStore:
    return SqlKeyValueStore(url or "sqlite:///refi_offers.sqlite3")
