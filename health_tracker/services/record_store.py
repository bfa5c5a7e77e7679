"""
Durable record store backed by SQLAlchemy.

Each entity type lives in its own table (a "collection") keyed by a
store-assigned integer id and indexed by the owning user. The store speaks
plain dicts so that it stays ignorant of the domain models; the repository
converts to and from typed entities.
"""

import copy
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Column, DateTime, Integer, String, create_engine, delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from health_tracker.config import StoreConfig
from health_tracker.errors import NotFoundError, StorageError, ValidationError
from health_tracker.observability import logger
from health_tracker.services.results import Result


Base = declarative_base()

StoredRecord = dict[str, Any]


class Collection(str, Enum):
    """Named collections persisted by the store."""

    HEART_RATES = "heart_rates"
    MEDICATIONS = "medications"
    CONTACTS = "contacts"


class HeartRateRow(Base):
    __tablename__ = Collection.HEART_RATES.value
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, index=True, nullable=False)
    bpm = Column(Integer, nullable=False)
    timestamp = Column(DateTime, nullable=False)  # UTC, naive in the database
    date = Column(String, nullable=False)
    time = Column(String, nullable=False)


class MedicationRow(Base):
    __tablename__ = Collection.MEDICATIONS.value
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    dose = Column(String, nullable=False)
    time = Column(String, nullable=False)
    timing = Column(String, nullable=False)
    records = Column(JSON, nullable=False, default=list)


class ContactRow(Base):
    __tablename__ = Collection.CONTACTS.value
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, index=True, nullable=False)
    name = Column(String, nullable=False)
    relationship = Column(String, nullable=False)
    phone = Column(String, nullable=False)


_ROW_TYPES: dict[Collection, type] = {
    Collection.HEART_RATES: HeartRateRow,
    Collection.MEDICATIONS: MedicationRow,
    Collection.CONTACTS: ContactRow,
}


def _is_memory_url(url: str) -> bool:
    return url in {"sqlite://", "sqlite:///:memory:"} or "mode=memory" in url


def create_store_engine(config: StoreConfig) -> Engine:
    """Build an engine; in-memory SQLite shares one connection for the process."""
    kwargs: dict[str, Any] = {"echo": config.echo}
    if config.url.startswith("sqlite"):
        # SQLite needs check_same_thread=False when sessions hop threads
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_url(config.url):
            kwargs["poolclass"] = StaticPool
    return create_engine(config.url, **kwargs)


def _to_column_value(value: Any) -> Any:
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return copy.deepcopy(value)


def _from_column_value(value: Any) -> Any:
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return copy.deepcopy(value)


def _row_to_record(row: Any) -> StoredRecord:
    return {col.key: _from_column_value(getattr(row, col.key)) for col in row.__table__.columns}


class RecordStore:
    """
    Keyed storage over the three collections.

    Every call runs in its own short-lived session: there is no cached state
    between calls, so a read always reflects the last committed write.
    """

    def __init__(self, config: StoreConfig | None = None, engine: Engine | None = None) -> None:
        self.config = config or StoreConfig()
        self.engine = engine or create_store_engine(self.config)
        self._session_factory = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )
        self.logger = logger.bind(component="record_store")
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            self.logger.error("store_initialization_failed", error=str(e))
            raise StorageError(f"Could not initialize store: {e}") from e

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except (SQLAlchemyError, OverflowError) as e:
            # sqlite3 raises OverflowError for integers beyond 64 bits
            session.rollback()
            self.logger.error("store_operation_failed", operation=operation, error=str(e))
            raise StorageError(f"{operation} failed: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @staticmethod
    def _check_fields(collection: Collection, fields: Mapping[str, Any]) -> None:
        row_type = _ROW_TYPES[collection]
        if "id" in fields:
            raise ValidationError("Record ids are assigned by the store", field="id")
        allowed = {col.key for col in row_type.__table__.columns}
        unknown = sorted(set(fields) - allowed)
        if unknown:
            raise ValidationError(
                f"Unknown fields for {collection.value}: {', '.join(unknown)}",
                field=unknown[0],
            )

    def put(self, collection: Collection, record: Mapping[str, Any]) -> int:
        """Insert a record and return its store-assigned id."""
        self._check_fields(collection, record)
        row_type = _ROW_TYPES[collection]
        with self._session("put") as session:
            row = row_type(**{k: _to_column_value(v) for k, v in record.items()})
            session.add(row)
            session.flush()
            record_id = int(row.id)
        self.logger.debug("record_put", collection=collection.value, record_id=record_id)
        return record_id

    def get(self, collection: Collection, record_id: int) -> Result[StoredRecord, NotFoundError]:
        """Fetch one record; a missing id is an Err, not an exception."""
        with self._session("get") as session:
            row = session.get(_ROW_TYPES[collection], record_id)
            if row is None:
                return Result.err(NotFoundError(collection.value, record_id))
            return Result.ok(_row_to_record(row))

    def get_all_by_user(self, collection: Collection, user_id: str) -> list[StoredRecord]:
        """All records owned by a user, in id order."""
        row_type = _ROW_TYPES[collection]
        with self._session("get_all_by_user") as session:
            rows = session.scalars(
                select(row_type).where(row_type.user_id == user_id).order_by(row_type.id)
            ).all()
            return [_row_to_record(row) for row in rows]

    def update(self, collection: Collection, record_id: int, fields: Mapping[str, Any]) -> None:
        """Overwrite the given fields; raises NotFoundError for a missing id."""
        self._check_fields(collection, fields)
        with self._session("update") as session:
            row = session.get(_ROW_TYPES[collection], record_id)
            if row is None:
                raise NotFoundError(collection.value, record_id)
            for key, value in fields.items():
                setattr(row, key, _to_column_value(value))
        self.logger.debug(
            "record_updated",
            collection=collection.value,
            record_id=record_id,
            fields=sorted(fields),
        )

    def delete(self, collection: Collection, record_id: int) -> None:
        """Remove a record; raises NotFoundError for a missing id."""
        with self._session("delete") as session:
            row = session.get(_ROW_TYPES[collection], record_id)
            if row is None:
                raise NotFoundError(collection.value, record_id)
            session.delete(row)
        self.logger.debug("record_deleted", collection=collection.value, record_id=record_id)

    def delete_all_by_user(self, collection: Collection, user_id: str) -> int:
        """Remove every record a user owns in one collection."""
        row_type = _ROW_TYPES[collection]
        with self._session("delete_all_by_user") as session:
            result = session.execute(delete(row_type).where(row_type.user_id == user_id))
            removed = int(result.rowcount or 0)
        self.logger.info(
            "user_records_deleted", collection=collection.value, user_id=user_id, count=removed
        )
        return removed

    def close(self) -> None:
        self.engine.dispose()
