"""Project-wide constants (upload limits, chunk size, expiry windows)."""

MAX_UPLOAD_BYTES: int = 40 * 1024 * 1024  # 40 MiB
CHUNK_SIZE_BYTES: int = 512 * 1024  # 512 KiB, fixed for every session

SESSION_TTL_SECONDS: int = 24 * 3600
SWEEP_INTERVAL_SECONDS: int = 3600

DEFAULT_RETRY_LIMIT: int = 2
DEFAULT_RETRY_BASE_DELAY: float = 0.3

DEFAULT_STORAGE_ROOT: str = "/app/data/storage"
DEFAULT_DATABASE_PATH: str = "/app/data/uploads.db"

CHUNKS_DIRNAME: str = "temp_chunks"
ATTACHMENTS_DIRNAME: str = "temp_attachments"

UPLOAD_ID_PATTERN: str = r"[A-Za-z0-9_-]+"
