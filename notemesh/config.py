from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Session settings
    session_secret: str = "your-super-secret-session-key-change-in-production"

    # Storage settings
    local_note_store_path: str = "data/notes.json"
    local_vector_db_path: str = "data/vectors.json"

    # Embedding settings
    embedder: Literal["voyage", "openai"] = "voyage"
    voyage_ai_api_key: str = ""
    openai_api_key: str = ""

    # Organization settings
    cache_ttl_seconds: float = 30.0
    archive_after_days: float = 2.0
    cluster_random_seed: int = 42
    similar_notes_limit: int = 5
    search_results_limit: int = 10

    log_level: str = "INFO"  # Can be DEBUG, INFO, WARNING, ERROR, CRITICAL


settings = Settings()
