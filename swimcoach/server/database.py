from __future__ import annotations

import datetime as dt
import math
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from loguru import logger
from sqlalchemy import Column, DateTime, Text
from sqlmodel import Field, Session, SQLModel, col, create_engine, select

DATA_DIR = Path("data")
DB_PATH = DATA_DIR / "swimcoach.db"
DATABASE_URL_ENV = "DATABASE_URL"
MAX_PRACTICE_RECORDS = 100
PERFECT_SCORE_THRESHOLD = 15


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _as_utc(value: dt.datetime) -> dt.datetime:
    # SQLite hands timestamps back without an offset; they are stored as UTC
    return value.replace(tzinfo=dt.timezone.utc) if value.tzinfo is None else value.astimezone(dt.timezone.utc)


class ClassifierBlob(SQLModel, table=True):
    key: str = Field(primary_key=True, index=True)
    payload: str = Field(sa_column=Column(Text, nullable=False))
    updated_at: dt.datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class PracticeRecord(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    motion_id: int = Field(index=True)
    score: int
    cycles_done: int
    hold_sec: float = 0.0
    completed: bool = Field(default=False)
    started_at: dt.datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    ended_at: dt.datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


def _normalize_database_url(url: str) -> str:
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://") and "+" not in url:
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def _build_engine(database_url: Optional[str]):
    url = database_url or os.getenv(DATABASE_URL_ENV)
    if not url:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        url = f"sqlite:///{DB_PATH}"
    if url.startswith("sqlite"):
        return create_engine(url, echo=False, connect_args={"check_same_thread": False})
    return create_engine(_normalize_database_url(url), echo=False, pool_pre_ping=True)


class SQLStore:
    """Key/blob store for classifier state plus the practice history table."""

    def __init__(self, database_url: Optional[str] = None) -> None:
        self.engine = _build_engine(database_url)
        SQLModel.metadata.create_all(self.engine)
        logger.info("Database initialized at {}", self.engine.url.render_as_string(hide_password=True))

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        with Session(self.engine) as session:
            yield session

    def save(self, key: str, blob: str) -> None:
        with self.session_scope() as session:
            row = session.get(ClassifierBlob, key)
            if row is None:
                row = ClassifierBlob(key=key, payload=blob)
            else:
                row.payload = blob
                row.updated_at = _utcnow()
            session.add(row)
            session.commit()

    def load(self, key: str) -> Optional[str]:
        with self.session_scope() as session:
            row = session.get(ClassifierBlob, key)
            return row.payload if row is not None else None

    def delete(self, key: str) -> None:
        with self.session_scope() as session:
            row = session.get(ClassifierBlob, key)
            if row is not None:
                session.delete(row)
                session.commit()
                logger.info("Deleted stored blob {}", key)

    def record_practice(
        self,
        *,
        motion_id: int,
        score: int,
        cycles_done: int,
        hold_sec: float,
        completed: bool,
        started_at: dt.datetime,
        ended_at: dt.datetime,
    ) -> PracticeRecord:
        with self.session_scope() as session:
            record = PracticeRecord(
                motion_id=motion_id,
                score=score,
                cycles_done=cycles_done,
                hold_sec=round(float(hold_sec), 2),
                completed=completed,
                started_at=_as_utc(started_at),
                ended_at=_as_utc(ended_at),
            )
            session.add(record)
            session.commit()
            stale = session.exec(
                select(PracticeRecord).order_by(col(PracticeRecord.id).desc()).offset(MAX_PRACTICE_RECORDS)
            ).all()
            for row in stale:
                session.delete(row)
            session.commit()
            session.refresh(record)
            logger.info("Recorded practice for motion {} score={} cycles={}", motion_id, score, cycles_done)
            return record

    def list_practice(self, limit: int = 20) -> List[Dict[str, object]]:
        with self.session_scope() as session:
            rows = session.exec(
                select(PracticeRecord).order_by(col(PracticeRecord.id).desc()).limit(max(1, limit))
            ).all()
            return [
                {
                    "id": row.id,
                    "motion_id": row.motion_id,
                    "score": row.score,
                    "cycles_done": row.cycles_done,
                    "hold_sec": row.hold_sec,
                    "completed": row.completed,
                    "started_at": _as_utc(row.started_at).isoformat(),
                    "ended_at": _as_utc(row.ended_at).isoformat(),
                }
                for row in rows
            ]

    def practice_stats(self) -> Dict[str, int]:
        with self.session_scope() as session:
            scores = list(session.exec(select(PracticeRecord.score)).all())
        total = len(scores)
        return {
            "total_sessions": total,
            "average_score": int(math.floor(sum(scores) / total + 0.5)) if total else 0,
            "perfect_sessions": sum(1 for score in scores if score >= PERFECT_SCORE_THRESHOLD),
        }
