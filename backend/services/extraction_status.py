"""
extraction_status.py — Per-conversation memory extraction state
unset (NULL) / pending -> processing -> completed | failed

Every transition stamps last_extraction_attempt_at, which the batch selector's
retry cooldown reads.
"""

import enum
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from database import utc_now
from models.conversation import Conversation

logger = logging.getLogger(__name__)


class ExtractionStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def update_extraction_status(
    db: Session,
    conversation_id: str,
    status: ExtractionStatus,
    attempted_at: datetime | None = None,
) -> bool:
    """Persist a status transition. Returns False if the conversation no longer exists."""
    now = attempted_at or utc_now()
    try:
        updated = (
            db.query(Conversation)
            .filter(Conversation.id == conversation_id)
            .update(
                {
                    Conversation.extraction_status: status.value,
                    Conversation.last_extraction_attempt_at: now,
                    Conversation.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    if not updated:
        logger.debug(f"Conversation {conversation_id} vanished before status '{status.value}' was recorded")
    return bool(updated)
