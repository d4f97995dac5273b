import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON
from database import Base, utc_now


class Provider(Base):
    """
    LLM provider credentials configured for a workspace.
    The API key is stored as an encrypted blob.
    """
    __tablename__ = "providers"

    id = Column(String(36), primary_key=True, default=lambda: uuid.uuid4().hex)
    workspace_id = Column(String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(32), nullable=False)
    provider_type = Column(String(32), nullable=False)  # OpenAI, OpenRouter, Anthropic, Google, Bedrock
    encrypted_api_key = Column(Text, nullable=False)
    region = Column(String(64), nullable=True)
    base_url = Column(String(500), nullable=True)
    headers = Column(JSON, nullable=True)
    extra_body = Column(JSON, nullable=True)
    organization = Column(String(200), nullable=True)
    project = Column(String(200), nullable=True)
    model_ids = Column(JSON, nullable=False, default=list)
    task_model_id = Column(String(200), nullable=False)
    memory_extraction_model_id = Column(String(200), nullable=False)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    @property
    def api_key(self) -> str:
        from services.key_manager import key_manager
        return key_manager.decrypt_key(self.encrypted_api_key)

    @api_key.setter
    def api_key(self, value: str):
        from services.key_manager import key_manager
        self.encrypted_api_key = key_manager.encrypt_key(value)
