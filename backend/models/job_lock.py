from sqlalchemy import Column, String, DateTime
from database import Base, utc_now


class JobLock(Base):
    """Lease row backing the coordination lock on databases without advisory locks."""
    __tablename__ = "job_locks"

    lock_key = Column(String(64), primary_key=True)
    holder_id = Column(String(64), nullable=False)
    acquired_at = Column(DateTime, nullable=False, default=utc_now)
