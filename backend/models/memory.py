import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index
from database import Base, utc_now


class Memory(Base):
    """
    A durable fact about a user, extracted from conversations.
    workspace_id NULL = user-level memory (applies in every workspace of the user),
    otherwise the memory only applies inside that workspace.
    """
    __tablename__ = "memories"

    id = Column(String(36), primary_key=True, default=lambda: uuid.uuid4().hex)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    workspace_id = Column(String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=True)
    conversation_id = Column(String(36), ForeignKey("conversations.id", ondelete="SET NULL"), nullable=True)
    entity_type = Column(String(20), nullable=False)  # preference/fact/goal/constraint/style/person
    entity_name = Column(Text, nullable=False)
    observation = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now)

    __table_args__ = (
        Index("idx_memory_user_workspace", "user_id", "workspace_id"),
    )

    @property
    def scope(self) -> str:
        return "workspace" if self.workspace_id else "user"
