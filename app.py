import sys

from loguru import logger

from notemesh.api import create_app
from notemesh.cache import TTLCache
from notemesh.config import settings
from notemesh.embedders.base import Embedder
from notemesh.embedders.openai_embedder import OpenAIEmbedder
from notemesh.embedders.voyage_embedder import VoyageEmbedder
from notemesh.services.canvas import CanvasService
from notemesh.services.folders import FolderService
from notemesh.services.graph import GraphLayoutService
from notemesh.services.notes import NoteService
from notemesh.stores.local import LocalNoteStore
from notemesh.vector_dbs.local_db import LocalSimilarityIndex

logger.configure(handlers=[{"sink": sys.stderr, "level": settings.log_level}])


def get_embedder() -> Embedder:
    if settings.embedder == "openai":
        return OpenAIEmbedder(api_key=settings.openai_api_key)
    return VoyageEmbedder(api_key=settings.voyage_ai_api_key)


logger.info(f"Initializing notemesh with {settings.embedder} embeddings")
note_store = LocalNoteStore(settings.local_note_store_path, autosave=True)
similarity_index = LocalSimilarityIndex(settings.local_vector_db_path, autosave=True)
note_service = NoteService(
    embedder=get_embedder(),
    store=note_store,
    index=similarity_index,
    cache=TTLCache(ttl_seconds=settings.cache_ttl_seconds),
    archive_after_days=settings.archive_after_days,
    cluster_random_seed=settings.cluster_random_seed,
    similar_notes_limit=settings.similar_notes_limit,
    search_results_limit=settings.search_results_limit,
)
app = create_app(
    note_service=note_service,
    graph_service=GraphLayoutService(store=note_store, note_service=note_service),
    folder_service=FolderService(store=note_store, note_service=note_service),
    canvas_service=CanvasService(store=note_store),
)
