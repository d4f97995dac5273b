"""
memory_service.py — Memory store
Reads and writes a user's durable memories, scoped either to the user across all
workspaces (workspace_id NULL) or to one workspace, and formats them for prompts.
"""

import json
import logging

from sqlalchemy.orm import Session
from sqlalchemy import desc, or_

from database import utc_now
from models.memory import Memory
from schemas import NewMemory

logger = logging.getLogger(__name__)


class MemoryService:
    def __init__(self, db: Session):
        self.db = db

    def retrieve_user_level_memories(self, user_id: str) -> list[Memory]:
        """Memories that apply across all of the user's workspaces, newest first."""
        return (
            self.db.query(Memory)
            .filter(Memory.user_id == user_id, Memory.workspace_id.is_(None))
            .order_by(desc(Memory.created_at))
            .all()
        )

    def retrieve_workspace_level_memories(self, user_id: str, workspace_id: str) -> list[Memory]:
        """Memories the user has scoped to one workspace, newest first."""
        return (
            self.db.query(Memory)
            .filter(Memory.user_id == user_id, Memory.workspace_id == workspace_id)
            .order_by(desc(Memory.created_at))
            .all()
        )

    def retrieve_memories(self, user_id: str, workspace_id: str) -> list[Memory]:
        """User-level memories plus this workspace's memories in one query, newest first."""
        return (
            self.db.query(Memory)
            .filter(
                Memory.user_id == user_id,
                or_(Memory.workspace_id.is_(None), Memory.workspace_id == workspace_id),
            )
            .order_by(desc(Memory.created_at))
            .all()
        )

    def insert_memories(
        self,
        user_id: str,
        workspace_id: str,
        conversation_id: str | None,
        new_memories: list[NewMemory],
    ) -> list[Memory]:
        """Insert extracted memories owned by *user_id*.

        Items with scope "user" are stored without a workspace; "workspace" items are
        bound to *workspace_id*.
        """
        if not new_memories:
            return []
        now = utc_now()
        rows = [
            Memory(
                user_id=user_id,
                workspace_id=workspace_id if m.scope == "workspace" else None,
                conversation_id=conversation_id,
                entity_type=m.entity_type,
                entity_name=m.entity_name,
                observation=m.observation,
                created_at=now,
                updated_at=now,
            )
            for m in new_memories
        ]
        try:
            self.db.add_all(rows)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return rows

    def get_owned_memory(self, memory_id: str, user_id: str) -> Memory | None:
        """Return the memory only if it belongs to *user_id*."""
        return (
            self.db.query(Memory)
            .filter(Memory.id == memory_id, Memory.user_id == user_id)
            .first()
        )

    def update_observation(self, memory_id: str, user_id: str, observation: str) -> bool:
        """Overwrite the observation of an owned memory. False if the id is not the user's."""
        memory = self.get_owned_memory(memory_id, user_id)
        if memory is None:
            return False
        try:
            memory.observation = observation
            memory.updated_at = utc_now()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True

    def delete_memory(self, memory_id: str, user_id: str) -> bool:
        """Delete an owned memory. False if the id is not the user's."""
        memory = self.get_owned_memory(memory_id, user_id)
        if memory is None:
            return False
        try:
            self.db.delete(memory)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True


def format_memory_as_ndjson(memory: Memory) -> str:
    """One compact JSON line per memory."""
    return json.dumps(
        {
            "id": memory.id,
            "type": memory.entity_type,
            "entity": memory.entity_name,
            "observation": memory.observation,
            "scope": memory.scope,
        },
        ensure_ascii=False,
        separators=(",", ":"),
    )


def format_memories_for_prompt(memories: list[Memory]) -> str:
    """NDJSON listing for the extraction prompt."""
    if not memories:
        return "No existing memories."
    return "\n".join(format_memory_as_ndjson(m) for m in memories)


def format_memories_for_system_prompt(memories: list[Memory]) -> str:
    """Memory block injected into a chat system prompt, or "" when there is nothing to add."""
    if not memories:
        return ""
    lines = [
        "The following memories about the user have been extracted from previous "
        "conversations. Use these to personalize your responses:",
        "",
        *(format_memory_as_ndjson(m) for m in memories),
    ]
    return "\n".join(lines)
