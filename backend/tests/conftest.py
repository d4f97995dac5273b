"""Shared fixtures: an in-memory database and a fake LLM provider."""

import json
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401  (registers tables)
from database import Base
from models.conversation import Conversation
from models.provider import Provider
from models.user import User
from models.workspace import Workspace
from providers.base import BaseProvider


class FakeProvider(BaseProvider):
    """Returns a canned reply (or failure) and records every call."""

    def __init__(self, reply: dict | str | None = None, error: str | None = None):
        super().__init__(api_key="test-key")
        self.reply = reply if reply is not None else {"new": [], "updates": [], "deletes": []}
        self.error = error
        self.calls: list[dict] = []

    @property
    def name(self) -> str:
        return "fake"

    async def chat(self, messages, model=None, temperature=None, response_format=None) -> dict:
        self.calls.append({
            "messages": messages,
            "model": model,
            "temperature": temperature,
            "response_format": response_format,
        })
        if self.error:
            return self._failure(model, self.error)
        text = self.reply if isinstance(self.reply, str) else json.dumps(self.reply)
        return self._success(text, model)


def text_message(role: str, text: str) -> dict:
    return {"id": f"{role}-{text[:8]}", "role": role, "parts": [{"type": "text", "text": text}]}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def owner(db) -> User:
    user = User(name="Owner", email="owner@example.com")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def make_workspace(db, owner):
    """Create a workspace (with an extraction provider unless opted out)."""

    def _make(name: str = "Workspace", enabled: bool = True, provider_type: str = "OpenAI", user: User | None = None):
        workspace = Workspace(name=name, owner_id=(user or owner).id)
        db.add(workspace)
        db.flush()
        provider = Provider(
            workspace_id=workspace.id,
            name="Main provider",
            provider_type=provider_type,
            model_ids=["gpt-4o", "gpt-4o-mini"],
            task_model_id="gpt-4o-mini",
            memory_extraction_model_id="gpt-4o-mini",
        )
        provider.api_key = "sk-test"
        db.add(provider)
        db.flush()
        if enabled:
            workspace.memory_extraction_provider_id = provider.id
        db.commit()
        return workspace, provider

    return _make


@pytest.fixture
def make_conversation(db):
    def _make(workspace: Workspace, messages=None, status=None, **kwargs) -> Conversation:
        conversation = Conversation(
            workspace_id=workspace.id,
            title="Chat",
            messages=messages if messages is not None else [
                text_message("user", "hi"),
                text_message("assistant", "hello"),
            ],
            extraction_status=status,
            **kwargs,
        )
        db.add(conversation)
        db.commit()
        return conversation

    return _make
