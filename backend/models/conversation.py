import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON
from database import Base, utc_now


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=lambda: uuid.uuid4().hex)
    workspace_id = Column(String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(300), nullable=False, default="New chat")
    messages = Column(JSON, nullable=True)  # list of {id, role, parts: [...]}
    # NULL = never attempted; otherwise pending/processing/completed/failed
    extraction_status = Column(String(20), nullable=True, index=True)
    last_extraction_attempt_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)
