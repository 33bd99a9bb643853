"""
SQLAlchemy-backed Key-Value Store.

============================================================
PURPOSE
============================================================
Persists configuration versions, history and A/B tests in a
relational database so every service instance reads the same
current configuration.

============================================================
TABLES
============================================================
- config_store_entries:    scalar keys (config:<version>, config:current, abtest:<id>)
- config_store_list_items: append-only lists (config:history)

============================================================
TRANSACTIONS
============================================================
Each call runs in its own session and commits before
returning. Database failures are wrapped in StoreError and the
session is rolled back.

============================================================
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, List, Optional

from sqlalchemy import DateTime, Integer, String, Text, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from core.exceptions import StoreError

from .store import KeyValueStore, slice_inclusive


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================
# ORM MODELS
# =============================================================


class Base(DeclarativeBase):
    """Declarative base for configuration store tables."""

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


class ConfigStoreEntry(Base):
    """One scalar key."""

    __tablename__ = "config_store_entries"

    key: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
        comment="Store key, e.g. config:current",
    )

    value: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Serialized JSON document",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        comment="Last write timestamp (UTC)",
    )

    def __repr__(self) -> str:
        return f"<ConfigStoreEntry(key={self.key})>"


class ConfigStoreListItem(Base):
    """One element of an append-only list; order is insertion order."""

    __tablename__ = "config_store_list_items"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    list_key: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="List key, e.g. config:history",
    )

    value: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    def __repr__(self) -> str:
        return f"<ConfigStoreListItem(list_key={self.list_key}, id={self.id})>"


# =============================================================
# ENGINE HELPERS
# =============================================================


def create_store_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the configuration store.

    In-memory SQLite gets a single shared connection so every
    session sees the same database.
    """
    logger.info(f"Creating configuration store engine for: {database_url.split('@')[-1]}")

    if database_url.startswith("sqlite") and (":memory:" in database_url or database_url == "sqlite://"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo,
        )
    return create_engine(database_url, echo=echo, pool_pre_ping=True)


def create_all(engine: Engine) -> None:
    """Create the store tables if they do not exist."""
    Base.metadata.create_all(engine)
    logger.info("Configuration store tables ensured")


# =============================================================
# STORE
# =============================================================


class SqlKeyValueStore(KeyValueStore):
    """
    KeyValueStore over two SQL tables.

    Usage:
        engine = create_store_engine("sqlite:///virality.db")
        create_all(engine)
        store = SqlKeyValueStore(engine)
    """

    def __init__(self, engine: Engine):
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str, create_tables: bool = True) -> "SqlKeyValueStore":
        engine = create_store_engine(database_url)
        if create_tables:
            create_all(engine)
        return cls(engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    @contextmanager
    def _session_scope(self, operation: str, key: str) -> Generator[Session, None, None]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Store {operation} failed for key {key}: {e}", exc_info=True)
            raise StoreError(
                f"Store {operation} failed for key {key}",
                operation=operation,
                key=key,
                cause=e,
            ) from e
        finally:
            session.close()

    def get(self, key: str) -> Optional[str]:
        with self._session_scope("get", key) as session:
            entry = session.get(ConfigStoreEntry, key)
            return entry.value if entry is not None else None

    def set(self, key: str, value: str) -> None:
        with self._session_scope("set", key) as session:
            entry = session.get(ConfigStoreEntry, key)
            if entry is None:
                session.add(ConfigStoreEntry(key=key, value=value))
            else:
                entry.value = value
            logger.debug(f"Stored key {key}")

    def list_append(self, key: str, value: str) -> None:
        with self._session_scope("list_append", key) as session:
            session.add(ConfigStoreListItem(list_key=key, value=value))

    def list_range(self, key: str, start: int = 0, end: int = -1) -> List[str]:
        with self._session_scope("list_range", key) as session:
            stmt = (
                select(ConfigStoreListItem.value)
                .where(ConfigStoreListItem.list_key == key)
                .order_by(ConfigStoreListItem.id)
            )
            values = list(session.scalars(stmt).all())
        return slice_inclusive(values, start, end)
