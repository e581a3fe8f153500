"""
teleport/sync/store.py

Checkpoint persistence (SQLAlchemy).

    synchronizer_status   (name, domain) → block   next exclusive start
    teleports             hash → GUID fields, block_number

A synchronizer batch and its checkpoint are written in the same session
inside SyncStatusRepository.transaction(); on any error the session is
rolled back and neither is applied.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional

from sqlalchemy import BigInteger, Engine, String, create_engine, select
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from teleport.core.guid import TeleportGUID

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class SyncStatusRow(Base):
    __tablename__ = "synchronizer_status"

    name:   Mapped[str] = mapped_column(String(128), primary_key=True)
    domain: Mapped[str] = mapped_column(String(64), primary_key=True)
    block:  Mapped[int] = mapped_column(BigInteger, nullable=False)


class TeleportRow(Base):
    __tablename__ = "teleports"

    hash:          Mapped[str] = mapped_column(String(66), primary_key=True)
    source_domain: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    target_domain: Mapped[str] = mapped_column(String(32), nullable=False)
    receiver:      Mapped[str] = mapped_column(String(66), nullable=False)
    operator:      Mapped[str] = mapped_column(String(66), nullable=False)
    # uint128 / uint80 do not fit in BIGINT
    amount:        Mapped[str] = mapped_column(String(40), nullable=False)
    nonce:         Mapped[str] = mapped_column(String(25), nullable=False)
    timestamp:     Mapped[int] = mapped_column(BigInteger, nullable=False)
    block_number:  Mapped[int] = mapped_column(BigInteger, nullable=False)

    @classmethod
    def from_guid(cls, guid: TeleportGUID, block_number: int) -> "TeleportRow":
        return cls(
            hash=          guid.hash_hex(),
            source_domain= guid.source_domain,
            target_domain= guid.target_domain,
            receiver=      guid.receiver,
            operator=      guid.operator,
            amount=        str(guid.amount),
            nonce=         str(guid.nonce),
            timestamp=     guid.timestamp,
            block_number=  block_number,
        )

    def to_guid(self) -> TeleportGUID:
        return TeleportGUID(
            source_domain= self.source_domain,
            target_domain= self.target_domain,
            receiver=      self.receiver,
            operator=      self.operator,
            amount=        int(self.amount),
            nonce=         int(self.nonce),
            timestamp=     self.timestamp,
        )


@dataclass(frozen=True)
class SyncStatus:
    name:   str
    domain: str
    block:  int


def create_store_engine(database_url: str = "sqlite://", echo: bool = False) -> Engine:
    """
    Engine for the checkpoint database. In-memory SQLite gets a single
    shared connection so synchronizer threads see the same database.
    """
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        engine = create_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(database_url, echo=echo)
    Base.metadata.create_all(engine)
    return engine


class SyncStatusRepository:

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str) -> "SyncStatusRepository":
        return cls(create_store_engine(database_url))

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Session that commits on clean exit and rolls back on any exception."""
        with self._sessions.begin() as session:
            yield session

    def find_by_name(self, name: str, domain: str) -> Optional[SyncStatus]:
        with self._sessions() as session:
            row = session.get(SyncStatusRow, (name, domain))
            if row is None:
                return None
            return SyncStatus(name=row.name, domain=row.domain, block=row.block)

    def upsert(self, status: SyncStatus, session: Session) -> None:
        row = session.get(SyncStatusRow, (status.name, status.domain))
        if row is None:
            session.add(SyncStatusRow(name=status.name, domain=status.domain, block=status.block))
        else:
            row.block = status.block
        session.flush()

    def all(self) -> List[SyncStatus]:
        with self._sessions() as session:
            rows = session.scalars(
                select(SyncStatusRow).order_by(SyncStatusRow.name, SyncStatusRow.domain)
            )
            return [SyncStatus(name=r.name, domain=r.domain, block=r.block) for r in rows]


class TeleportRepository:

    def __init__(self, engine: Engine) -> None:
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def save(self, guid: TeleportGUID, block_number: int, session: Session) -> None:
        """Idempotent: replaying a block range rewrites the same row."""
        session.merge(TeleportRow.from_guid(guid, block_number))

    def find_by_hash(self, digest_hex: str) -> Optional[TeleportGUID]:
        with self._sessions() as session:
            row = session.get(TeleportRow, digest_hex)
            return row.to_guid() if row is not None else None

    def find_by_source(self, source_domain: str) -> List[TeleportGUID]:
        with self._sessions() as session:
            rows = session.scalars(
                select(TeleportRow)
                .where(TeleportRow.source_domain == source_domain)
                .order_by(TeleportRow.block_number)
            )
            return [r.to_guid() for r in rows]

    def count(self) -> int:
        with self._sessions() as session:
            return len(session.scalars(select(TeleportRow.hash)).all())
