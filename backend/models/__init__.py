# Import all models so they register with SQLAlchemy Base.metadata
# This ensures Base.metadata.create_all() creates all tables

from models.user import User
from models.workspace import Workspace
from models.provider import Provider
from models.conversation import Conversation
from models.memory import Memory
from models.job_lock import JobLock

__all__ = [
    "User",
    "Workspace",
    "Provider",
    "Conversation",
    "Memory",
    "JobLock",
]
