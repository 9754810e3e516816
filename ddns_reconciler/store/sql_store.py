"""
SQL record store backed by SQLAlchemy.

Timestamps are stored as naive UTC so that comparisons behave the same on
SQLite (which drops offsets) and on server databases.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import DateTime, Integer, String, create_engine, delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from .base_store import RecordStore
from ..exceptions import DuplicateAccountError, DuplicateHostnameError, StoreError
from ..models import LIVE_STATES, Account, Record, RecordState, utcnow

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class RecordRow(Base):
    __tablename__ = "records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_token: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    hostname: Mapped[str] = mapped_column(String(63), nullable=False, unique=True)
    ip_address: Mapped[str] = mapped_column(String(15), nullable=False)
    previous_hostname: Mapped[Optional[str]] = mapped_column(String(63))
    state: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    last_refreshed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self):
        return f"<RecordRow(id={self.id}, hostname='{self.hostname}', state='{self.state}')>"


class AccountRow(Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


def _to_db_time(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db_time(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SQLRecordStore(RecordStore):
    """Record store on any SQLAlchemy-supported database."""

    def __init__(self, url: str = "sqlite:///ddns_records.db", echo: bool = False):
        self.url = url
        self.engine = create_engine(url, echo=echo, **self._engine_options(url))
        self._session_factory = sessionmaker(self.engine, expire_on_commit=False)
        Base.metadata.create_all(self.engine)
        logger.info(f"Record store ready at {self.engine.url.render_as_string()}")

    @staticmethod
    def _engine_options(url: str) -> dict:
        if not url.startswith("sqlite"):
            return {"pool_pre_ping": True}

        options = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every session sees an empty database
            options["poolclass"] = StaticPool
        return options

    def close(self):
        self.engine.dispose()

    def _to_record(self, row: RecordRow) -> Optional[Record]:
        state = RecordState.parse(row.state)
        if state is None:
            logger.warning(
                f"Ignoring record ID={row.id} ({row.hostname}) with unknown state '{row.state}'"
            )
            return None

        return Record(
            id=row.id,
            owner_token=row.owner_token,
            hostname=row.hostname,
            ip_address=row.ip_address,
            previous_hostname=row.previous_hostname,
            state=state,
            last_refreshed_at=_from_db_time(row.last_refreshed_at),
        )

    def _to_records(self, rows) -> List[Record]:
        records = []
        for row in rows:
            record = self._to_record(row)
            if record is not None:
                records.append(record)
        return records

    def list_records_by_state(self, state: RecordState) -> List[Record]:
        query = select(RecordRow).where(RecordRow.state == state.value).order_by(RecordRow.id)
        try:
            with self._session_factory() as session:
                return self._to_records(session.scalars(query))
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list {state.value} records: {e}") from e

    def list_expired_records(
        self, ttl_seconds: int, now: Optional[datetime] = None
    ) -> List[Record]:
        threshold = _to_db_time((now or utcnow()) - timedelta(seconds=ttl_seconds))
        query = (
            select(RecordRow)
            .where(RecordRow.state.in_([state.value for state in LIVE_STATES]))
            .where(RecordRow.last_refreshed_at < threshold)
            .order_by(RecordRow.id)
        )
        try:
            with self._session_factory() as session:
                return self._to_records(session.scalars(query))
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list expired records: {e}") from e

    def save_record(self, record: Record) -> bool:
        try:
            with self._session_factory() as session, session.begin():
                row = session.get(RecordRow, record.id)
                if row is None:
                    return False
                row.hostname = record.hostname
                row.ip_address = record.ip_address
                row.previous_hostname = record.previous_hostname
                row.state = record.state.value
                row.last_refreshed_at = _to_db_time(record.last_refreshed_at)
            return True
        except IntegrityError as e:
            raise DuplicateHostnameError(
                f"Hostname '{record.hostname}' is already in use"
            ) from e
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to save record ID={record.id}: {e}") from e

    def delete_record(self, record_id: int) -> bool:
        try:
            with self._session_factory() as session, session.begin():
                result = session.execute(delete(RecordRow).where(RecordRow.id == record_id))
                return result.rowcount > 0
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to delete record ID={record_id}: {e}") from e

    def add_record(self, record: Record) -> Record:
        row = RecordRow(
            owner_token=record.owner_token,
            hostname=record.hostname,
            ip_address=record.ip_address,
            previous_hostname=record.previous_hostname,
            state=record.state.value,
            last_refreshed_at=_to_db_time(record.last_refreshed_at),
        )
        try:
            with self._session_factory() as session, session.begin():
                session.add(row)
                session.flush()
                record.id = row.id
        except IntegrityError as e:
            raise DuplicateHostnameError(
                f"Hostname '{record.hostname}' is already in use"
            ) from e
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to add record {record.hostname}: {e}") from e
        return record

    def get_record(self, record_id: int) -> Optional[Record]:
        try:
            with self._session_factory() as session:
                row = session.get(RecordRow, record_id)
                return self._to_record(row) if row is not None else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load record ID={record_id}: {e}") from e

    def find_by_hostname(self, hostname: str) -> Optional[Record]:
        query = select(RecordRow).where(RecordRow.hostname == hostname)
        try:
            with self._session_factory() as session:
                row = session.scalars(query).first()
                return self._to_record(row) if row is not None else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to look up hostname {hostname}: {e}") from e

    def find_by_previous_hostname(self, hostname: str) -> Optional[Record]:
        query = (
            select(RecordRow)
            .where(RecordRow.previous_hostname == hostname)
            .order_by(RecordRow.id)
        )
        try:
            with self._session_factory() as session:
                row = session.scalars(query).first()
                return self._to_record(row) if row is not None else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to look up previous hostname {hostname}: {e}") from e

    def list_records_by_owner(self, owner_token: str) -> List[Record]:
        query = (
            select(RecordRow)
            .where(RecordRow.owner_token == owner_token)
            .order_by(RecordRow.id)
        )
        try:
            with self._session_factory() as session:
                return self._to_records(session.scalars(query))
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list records: {e}") from e

    def create_account(self, email: str, token: str) -> Account:
        account = Account(email=email, token=token)
        row = AccountRow(
            email=account.email,
            token=account.token,
            created_at=_to_db_time(account.created_at),
        )
        try:
            with self._session_factory() as session, session.begin():
                session.add(row)
        except IntegrityError as e:
            raise DuplicateAccountError(f"Account {email} already exists") from e
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to create account {email}: {e}") from e
        return account

    def get_account_by_email(self, email: str) -> Optional[Account]:
        return self._get_account(AccountRow.email == email)

    def get_account_by_token(self, token: str) -> Optional[Account]:
        return self._get_account(AccountRow.token == token)

    def _get_account(self, condition) -> Optional[Account]:
        try:
            with self._session_factory() as session:
                row = session.scalars(select(AccountRow).where(condition)).first()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load account: {e}") from e

        if row is None:
            return None
        return Account(
            email=row.email,
            token=row.token,
            created_at=_from_db_time(row.created_at),
        )
