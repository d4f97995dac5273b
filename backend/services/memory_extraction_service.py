"""
memory_extraction_service.py — Background memory extraction
Selects conversations that need (re)processing, asks the workspace's extraction
model for new/updated/deleted memories about the workspace owner, and merges the
result into the memory store.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.orm import Session
from sqlalchemy import and_, desc, or_

from config import (
    MEMORY_EXTRACTION_BATCH_SIZE,
    MEMORY_EXTRACTION_RETRY_COOLDOWN_SECONDS,
    MEMORY_EXTRACTION_TEMPERATURE,
)
from database import SessionLocal, utc_now
from models.conversation import Conversation
from models.provider import Provider
from models.workspace import Workspace
from providers import BaseProvider, ProviderError, create_provider
from schemas import ChatMessage, MemoryExtractionOutput, TextPart, parse_messages
from services.extraction_status import ExtractionStatus, update_extraction_status
from services.memory_service import MemoryService, format_memories_for_prompt

logger = logging.getLogger(__name__)

MIN_MESSAGES_FOR_EXTRACTION = 2


@dataclass
class ExtractionCandidate:
    conversation: Conversation
    workspace: Workspace
    provider: Provider


def format_conversation(messages: list[ChatMessage]) -> str:
    """Role-prefixed transcript built from text parts only."""
    lines = []
    for message in messages:
        text = "".join(part.text for part in message.parts if isinstance(part, TextPart))
        lines.append(f"{message.role}: {text}")
    return "\n\n".join(lines)


def build_extraction_prompt(conversation_text: str, existing_memories_formatted: str) -> str:
    return f"""You are a memory extraction assistant. Analyze the conversation and extract persistent facts about the user that should be remembered for future conversations.

The user's existing memories are listed below, one JSON object per line. You MUST:
- NOT re-extract information that already exists in the existing memories
- If the conversation contradicts an existing memory, put that memory's id in "updates" with the corrected observation instead of creating a new memory
- If the conversation shows that an existing memory is wrong or no longer accurate, put its id in "deletes"
- If the user asks to forget or remove something, put the matching memory's id in "deletes"
- Only return genuinely NEW information in "new"

Existing memories:
{existing_memories_formatted}

Entity types: "preference", "fact", "goal", "constraint", "style", "person"

Scope:
- "user": personal facts, general preferences, identity (applies across all of this user's workspaces)
- "workspace": project-specific context or preferences (applies only in this workspace for this user)

Conversation:
{conversation_text}"""


class MemoryExtractionService:
    """Runs memory extraction for conversations in opted-in workspaces."""

    def __init__(self, db: Session, provider_factory: Callable[[Provider], BaseProvider] = create_provider):
        self.db = db
        self.memories = MemoryService(db)
        self.provider_factory = provider_factory

    # ------------------------------------------------------------------
    def find_conversations_to_process(self, now: datetime | None = None) -> list[ExtractionCandidate]:
        """Conversations due for extraction, most recently updated first, capped per batch.

        Eligible: never processed, pending, or failed longer ago than the retry cooldown.
        """
        workspaces = (
            self.db.query(Workspace)
            .filter(Workspace.memory_extraction_provider_id.isnot(None))
            .all()
        )
        if not workspaces:
            logger.debug("No workspaces have memory extraction enabled, skipping")
            return []

        now = now or utc_now()
        retry_cutoff = now - timedelta(seconds=MEMORY_EXTRACTION_RETRY_COOLDOWN_SECONDS)
        workspace_map = {w.id: w for w in workspaces}

        conversations = (
            self.db.query(Conversation)
            .filter(
                Conversation.workspace_id.in_(list(workspace_map)),
                or_(
                    Conversation.extraction_status.is_(None),
                    Conversation.extraction_status == ExtractionStatus.PENDING.value,
                    and_(
                        Conversation.extraction_status == ExtractionStatus.FAILED.value,
                        Conversation.last_extraction_attempt_at < retry_cutoff,
                    ),
                ),
            )
            .order_by(desc(Conversation.updated_at))
            .limit(MEMORY_EXTRACTION_BATCH_SIZE)
            .all()
        )

        provider_ids = {w.memory_extraction_provider_id for w in workspaces}
        providers = self.db.query(Provider).filter(Provider.id.in_(provider_ids)).all()
        provider_map = {p.id: p for p in providers}

        candidates = []
        for conversation in conversations:
            workspace = workspace_map.get(conversation.workspace_id)
            if workspace is None or not workspace.memory_extraction_provider_id:
                continue
            provider = provider_map.get(workspace.memory_extraction_provider_id)
            if provider is None:
                continue
            candidates.append(ExtractionCandidate(conversation, workspace, provider))
        return candidates

    # ------------------------------------------------------------------
    async def process_conversation(self, candidate: ExtractionCandidate) -> None:
        conversation, workspace, provider = candidate.conversation, candidate.workspace, candidate.provider
        conversation_id = conversation.id

        update_extraction_status(self.db, conversation_id, ExtractionStatus.PROCESSING)

        try:
            messages = parse_messages(conversation.messages)
        except ValueError as e:
            logger.error(f"Conversation {conversation_id} has malformed messages: {e}")
            update_extraction_status(self.db, conversation_id, ExtractionStatus.FAILED)
            return

        if len(messages) < MIN_MESSAGES_FOR_EXTRACTION:
            logger.debug(f"Conversation {conversation_id} has insufficient messages, skipping")
            update_extraction_status(self.db, conversation_id, ExtractionStatus.COMPLETED)
            return

        # Memories always belong to the workspace owner
        user_id = workspace.owner_id

        existing = (
            self.memories.retrieve_user_level_memories(user_id)
            + self.memories.retrieve_workspace_level_memories(user_id, workspace.id)
        )
        prompt = build_extraction_prompt(
            format_conversation(messages),
            format_memories_for_prompt(existing),
        )
        model_id = provider.memory_extraction_model_id

        logger.debug(
            f"Running memory extraction: conversation={conversation_id} messages={len(messages)} "
            f"existing_memories={len(existing)} model={model_id} prompt_length={len(prompt)}"
        )

        try:
            client = self.provider_factory(provider)
            result = await client.generate_object(
                prompt,
                MemoryExtractionOutput,
                model=model_id,
                temperature=MEMORY_EXTRACTION_TEMPERATURE,
            )
        except ProviderError as e:
            logger.error(f"Memory extraction LLM call failed: conversation={conversation_id} model={model_id} error={e}")
            update_extraction_status(self.db, conversation_id, ExtractionStatus.FAILED)
            return

        if result.new:
            self.memories.insert_memories(user_id, workspace.id, conversation_id, result.new)
            logger.info(f"Inserted {len(result.new)} new memories for conversation {conversation_id}")

        for update in result.updates:
            if self.memories.update_observation(update.id, user_id, update.observation):
                logger.info(f"Updated memory {update.id} for conversation {conversation_id}")
            else:
                logger.warning(
                    f"Attempted to update memory {update.id} that doesn't exist or doesn't belong to user {user_id}"
                )

        for memory_id in result.deletes:
            if self.memories.delete_memory(memory_id, user_id):
                logger.info(f"Deleted memory {memory_id} for conversation {conversation_id}")
            else:
                logger.warning(
                    f"Attempted to delete memory {memory_id} that doesn't exist or doesn't belong to user {user_id}"
                )

        update_extraction_status(self.db, conversation_id, ExtractionStatus.COMPLETED)
        logger.info(
            f"Memory extraction completed for conversation {conversation_id}: "
            f"{len(result.new)} new, {len(result.updates)} updated, {len(result.deletes)} deleted"
        )

    # ------------------------------------------------------------------
    async def process_batch(self, now: datetime | None = None) -> int:
        """Process one batch sequentially. Returns the number of conversations attempted."""
        logger.info("Starting memory extraction batch")

        candidates = self.find_conversations_to_process(now)
        if not candidates:
            logger.info("No conversations to process for memory extraction")
            return 0

        logger.info(f"Found {len(candidates)} conversations to process")

        # Ids are read before the first commit expires the loaded rows
        conversation_ids = [c.conversation.id for c in candidates]

        # One at a time: bounds LLM request rate and keeps per-user memory writes serial
        for conversation_id, candidate in zip(conversation_ids, candidates):
            try:
                await self.process_conversation(candidate)
            except Exception:
                logger.exception(f"Error processing conversation {conversation_id} for memory extraction")
                self.db.rollback()
                update_extraction_status(self.db, conversation_id, ExtractionStatus.FAILED)

        logger.info("Memory extraction batch completed")
        return len(candidates)


async def process_memory_extraction_batch(session_factory=SessionLocal) -> None:
    """Entry point for the scheduler: one batch on a fresh session."""
    db = session_factory()
    try:
        await MemoryExtractionService(db).process_batch()
    finally:
        db.close()
