from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from notemesh.api.endpoints import get_endpoints_router
from notemesh.config import settings
from notemesh.services.canvas import CanvasService
from notemesh.services.folders import FolderService
from notemesh.services.graph import GraphLayoutService
from notemesh.services.notes import NoteService


def create_app(
    *,
    note_service: NoteService,
    graph_service: GraphLayoutService,
    folder_service: FolderService,
    canvas_service: CanvasService,
) -> FastAPI:
    """Create FastAPI app."""
    app = FastAPI()

    app.add_middleware(SessionMiddleware, secret_key=settings.session_secret)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        router=get_endpoints_router(
            note_service=note_service,
            graph_service=graph_service,
            folder_service=folder_service,
            canvas_service=canvas_service,
        )
    )

    return app
