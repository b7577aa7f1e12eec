import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from notemesh.api import create_app
from notemesh.api.auth import verify_session
from notemesh.cache import TTLCache
from notemesh.domain.note import Note
from notemesh.services.canvas import CanvasService
from notemesh.services.folders import FolderService
from notemesh.services.graph import GraphLayoutService
from notemesh.services.notes import NoteService
from notemesh.stores.local import LocalNoteStore
from notemesh.vector_dbs.local_db import LocalSimilarityIndex
from tests.fakes import FakeClock, FakeEmbedder

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> LocalNoteStore:
    return LocalNoteStore()


@pytest.fixture
def index() -> LocalSimilarityIndex:
    return LocalSimilarityIndex()


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def note_service(
    fake_embedder: FakeEmbedder,
    store: LocalNoteStore,
    index: LocalSimilarityIndex,
    clock: FakeClock,
) -> NoteService:
    return NoteService(
        embedder=fake_embedder,
        store=store,
        index=index,
        cache=TTLCache(ttl_seconds=30.0),
        clock=clock,
    )


@pytest.fixture
def graph_service(store: LocalNoteStore, note_service: NoteService) -> GraphLayoutService:
    return GraphLayoutService(store=store, note_service=note_service)


@pytest.fixture
def folder_service(store: LocalNoteStore, note_service: NoteService) -> FolderService:
    return FolderService(store=store, note_service=note_service)


@pytest.fixture
def canvas_service(store: LocalNoteStore, clock: FakeClock) -> CanvasService:
    return CanvasService(store=store, clock=clock)


@pytest.fixture
def make_note(store: LocalNoteStore, clock: FakeClock):
    """Add a note straight to the store, bypassing embedding and linking."""

    def _make_note(note_id: str, user_id: str = USER_ID, **fields) -> Note:
        fields.setdefault("created_at", clock())
        fields.setdefault("updated_at", clock())
        note = Note(id=note_id, user_id=user_id, **fields)
        store.add_note(note)
        return note

    return _make_note


@pytest.fixture
def app(
    note_service: NoteService,
    graph_service: GraphLayoutService,
    folder_service: FolderService,
    canvas_service: CanvasService,
) -> FastAPI:
    return create_app(
        note_service=note_service,
        graph_service=graph_service,
        folder_service=folder_service,
        canvas_service=canvas_service,
    )


@pytest.fixture
def test_client(app: FastAPI) -> TestClient:
    """Create test client with an in-memory store, authenticated as USER_ID."""
    app.dependency_overrides[verify_session] = lambda: USER_ID
    return TestClient(app)


@pytest.fixture
def anonymous_client(
    note_service: NoteService,
    graph_service: GraphLayoutService,
    folder_service: FolderService,
    canvas_service: CanvasService,
) -> TestClient:
    return TestClient(
        create_app(
            note_service=note_service,
            graph_service=graph_service,
            folder_service=folder_service,
            canvas_service=canvas_service,
        )
    )
