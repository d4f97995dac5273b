"""
locks.py — Fleet-wide coordination locks
Non-blocking try-acquire mutexes shared through the database, used to elect the one
replica that runs a background job cycle.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import timedelta

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from config import LOCK_LEASE_TTL_SECONDS
from database import utc_now
from models.job_lock import JobLock

logger = logging.getLogger(__name__)


class AdvisoryLock(ABC):
    """A named mutex identified by one fixed key."""

    @abstractmethod
    def try_acquire(self) -> bool:
        """Take the lock without waiting. False means another holder has it."""
        ...

    @abstractmethod
    def release(self) -> None:
        """Give the lock back. Only called after a successful try_acquire."""
        ...

    @contextmanager
    def hold(self):
        """Yield whether the lock was taken; release it on every exit path if it was."""
        acquired = self.try_acquire()
        try:
            yield acquired
        finally:
            if acquired:
                self.release()


class PostgresAdvisoryLock(AdvisoryLock):
    """pg_try_advisory_lock / pg_advisory_unlock on a dedicated connection.

    Session-level advisory locks belong to the server session that took them, so the
    connection is held from acquire to release.
    """

    def __init__(self, engine, key: int):
        self.engine = engine
        self.key = key
        self._connection = None

    def try_acquire(self) -> bool:
        conn = self.engine.connect()
        try:
            acquired = conn.execute(
                text("SELECT pg_try_advisory_lock(:key) AS acquired"), {"key": self.key}
            ).scalar()
            conn.commit()
        except Exception:
            conn.close()
            raise

        if not acquired:
            conn.close()
            return False
        self._connection = conn
        return True

    def release(self) -> None:
        conn, self._connection = self._connection, None
        if conn is None:
            return
        try:
            conn.execute(text("SELECT pg_advisory_unlock(:key)"), {"key": self.key})
            conn.commit()
        except Exception:
            # Dropping the server session frees the lock
            conn.invalidate()
            raise
        finally:
            conn.close()


class TableLeaseLock(AdvisoryLock):
    """Lease row in job_locks for databases without advisory locks (SQLite).

    The primary key on lock_key makes the INSERT the atomic try-acquire. A lease older
    than ttl_seconds is treated as abandoned by a crashed holder and can be taken over.
    """

    def __init__(self, engine, key, ttl_seconds: int = LOCK_LEASE_TTL_SECONDS):
        self.session_factory = sessionmaker(bind=engine)
        self.key = str(key)
        self.ttl = timedelta(seconds=ttl_seconds)
        self.holder_id = uuid.uuid4().hex

    def try_acquire(self) -> bool:
        with self.session_factory() as db:
            now = utc_now()
            db.query(JobLock).filter(
                JobLock.lock_key == self.key,
                JobLock.acquired_at < now - self.ttl,
            ).delete(synchronize_session=False)
            db.add(JobLock(lock_key=self.key, holder_id=self.holder_id, acquired_at=now))
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                return False
        return True

    def release(self) -> None:
        with self.session_factory() as db:
            db.query(JobLock).filter(
                JobLock.lock_key == self.key,
                JobLock.holder_id == self.holder_id,
            ).delete(synchronize_session=False)
            db.commit()


def create_advisory_lock(engine, key: int) -> AdvisoryLock:
    """Pick the lock implementation for the engine's database."""
    if engine.dialect.name == "postgresql":
        return PostgresAdvisoryLock(engine, key)
    logger.info(f"Database dialect '{engine.dialect.name}' has no advisory locks, using table lease lock")
    return TableLeaseLock(engine, key)
