import os
from dotenv import load_dotenv

load_dotenv()

# --- Database ---
# Default to local SQLite, but prefer environment variable (PostgreSQL in production)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/workspace_memory.db")

# Fix for common SQLAlchemy issues with postgres:// vs postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# --- Secrets ---
SECRET_KEY = os.getenv("SECRET_KEY", "change-this-secret-key")

# --- Memory extraction job ---
MEMORY_EXTRACTION_ENABLED = os.getenv("MEMORY_EXTRACTION_ENABLED", "true").lower() in ("1", "true", "yes", "on")
MEMORY_EXTRACTION_INTERVAL_MS = int(os.getenv("MEMORY_EXTRACTION_INTERVAL_MS", "300000"))  # 5 minutes
MEMORY_EXTRACTION_LOCK_ID = int(os.getenv("MEMORY_EXTRACTION_LOCK_ID", "123456789"))
MEMORY_EXTRACTION_BATCH_SIZE = 50
MEMORY_EXTRACTION_RETRY_COOLDOWN_SECONDS = 60 * 60
MEMORY_EXTRACTION_TEMPERATURE = 0.3

# Abandoned table leases (non-PostgreSQL databases) can be taken over after this
LOCK_LEASE_TTL_SECONDS = int(os.getenv("LOCK_LEASE_TTL_SECONDS", "3600"))

# --- LLM providers ---
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))
