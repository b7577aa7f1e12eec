from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger
from pydantic import ValidationError

from notemesh.api.auth import verify_session
from notemesh.api.schemas import (
    BatchDeleteRequest,
    BatchNotesRequest,
    CanvasBatchRequest,
    ClusterRequest,
    CreateAnnotationRequest,
    CreateFolderRequest,
    CreateLinkRequest,
    CreateNoteRequest,
    LinkerRequest,
    RenameFolderRequest,
    SaveCanvasRequest,
    SaveGraphRequest,
    UpdateAnnotationRequest,
    UpdateNoteRequest,
)
from notemesh.domain.canvas import Canvas
from notemesh.domain.graph import NodeLayout
from notemesh.domain.note import NoteChanges
from notemesh.exceptions import (
    AnnotationNotFoundError,
    CanvasNotFoundError,
    ClusteringError,
    FolderNotFoundError,
    GraphNotFoundError,
    InvalidEmbeddingError,
    InvalidReferenceError,
    LinkNotFoundError,
    NoteNotFoundError,
    OwnershipError,
)
from notemesh.services.canvas import CanvasService
from notemesh.services.folders import FolderService
from notemesh.services.graph import GraphLayoutService
from notemesh.services.notes import NoteService


def _internal_error(action: str, e: Exception) -> HTTPException:
    """Log an unexpected failure with its traceback and hide the details from the client."""
    logger.exception(f"Failed to {action}: {e}")
    return HTTPException(status_code=500, detail=f"Failed to {action}")


def _invalid_reference(
    e: InvalidReferenceError, error: str = "Invalid note reference. Please refresh and try again."
) -> HTTPException:
    logger.warning(f"Invalid reference: {e}")
    return HTTPException(
        status_code=400,
        detail={
            "error": error,
            "code": "FOREIGN_KEY_VIOLATION",
        },
    )


def _create_note_endpoints(router: APIRouter, note_service: NoteService) -> None:
    """Register note CRUD endpoints."""

    @router.get("/api/notes")
    async def list_notes(user_id: str = Depends(verify_session)):
        try:
            return note_service.list_notes(user_id)
        except Exception as e:
            raise _internal_error("load notes", e) from e

    @router.post("/api/notes")
    async def create_note(body: CreateNoteRequest, user_id: str = Depends(verify_session)):
        try:
            return note_service.create_note(
                user_id,
                title=body.title,
                raw_text=body.raw_text,
                x=body.x,
                y=body.y,
                color=body.color,
                folder_id=body.folder_id,
                ephemeral=body.ephemeral,
                archived=body.archived,
            )
        except InvalidReferenceError as e:
            raise _invalid_reference(e, "Invalid user or folder reference") from e
        except Exception as e:
            raise _internal_error("create note", e) from e

    # Must be registered before /api/notes/{note_id}
    @router.delete("/api/notes/all")
    async def delete_all_notes(confirm: str | None = None, user_id: str = Depends(verify_session)):
        try:
            deleted = note_service.delete_all_notes(user_id, confirm)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        except Exception as e:
            raise _internal_error("delete all notes", e) from e
        return {"deleted": deleted}

    @router.get("/api/notes/{note_id}")
    async def get_note(note_id: str, user_id: str = Depends(verify_session)):
        try:
            detail = note_service.get_note(user_id, note_id)
        except NoteNotFoundError as e:
            raise HTTPException(status_code=404, detail="Note not found") from e
        except Exception as e:
            raise _internal_error("load note", e) from e
        return {
            **detail.note.model_dump(mode="json", by_alias=True),
            "incoming": detail.incoming,
            "outgoing": detail.outgoing,
            "annotations": detail.annotations,
        }

    @router.put("/api/notes/{note_id}")
    async def update_note(
        note_id: str, body: UpdateNoteRequest, user_id: str = Depends(verify_session)
    ):
        fields = body.model_dump(exclude_unset=True, exclude={"plain_text", "messy_mode"})
        if "plain_text" in body.model_fields_set:
            fields["raw_text"] = body.plain_text
        changes = NoteChanges(**fields)

        try:
            return note_service.update_note(
                user_id, note_id, changes, auto_organize=body.messy_mode
            )
        except NoteNotFoundError as e:
            raise HTTPException(status_code=404, detail="Note not found") from e
        except InvalidReferenceError as e:
            raise _invalid_reference(e, "Invalid user or folder reference") from e
        except Exception as e:
            raise _internal_error("update note", e) from e

    @router.delete("/api/notes/{note_id}")
    async def delete_note(note_id: str, user_id: str = Depends(verify_session)):
        try:
            note_service.delete_note(user_id, note_id)
        except NoteNotFoundError as e:
            raise HTTPException(status_code=404, detail="Note not found") from e
        except Exception as e:
            raise _internal_error("delete note", e) from e
        return {"success": True}


def _create_link_endpoints(router: APIRouter, note_service: NoteService) -> None:
    """Register explicit link management and link suggestion endpoints."""

    @router.post("/api/links")
    async def create_link(body: CreateLinkRequest, user_id: str = Depends(verify_session)):
        try:
            return note_service.create_link(user_id, body.source_id, body.target_id, body.reason)
        except NoteNotFoundError as e:
            raise HTTPException(status_code=404, detail="One or both notes not found") from e
        except InvalidReferenceError as e:
            raise _invalid_reference(e) from e
        except Exception as e:
            raise _internal_error("create link", e) from e

    @router.delete("/api/links/{link_id}")
    async def delete_link(link_id: str, user_id: str = Depends(verify_session)):
        try:
            note_service.delete_link(user_id, link_id)
        except LinkNotFoundError as e:
            raise HTTPException(status_code=404, detail="Link not found") from e
        except Exception as e:
            raise _internal_error("delete link", e) from e
        return {"success": True}

    @router.post("/api/linker")
    async def suggest_links(body: LinkerRequest, user_id: str = Depends(verify_session)):
        try:
            suggestions = note_service.suggest_links(user_id, body.text, body.note_id)
        except Exception as e:
            raise _internal_error("find suggestions", e) from e
        return {"suggestions": suggestions}


def _create_organization_endpoints(router: APIRouter, note_service: NoteService) -> None:
    """Register search, clustering, archiving and rediscovery endpoints."""

    @router.get("/api/search")
    async def search(query: str, fuzzy: bool = False, user_id: str = Depends(verify_session)):
        try:
            return note_service.search(user_id, query, fuzzy=fuzzy)
        except Exception as e:
            raise _internal_error("search notes", e) from e

    @router.get("/api/mindmap")
    async def mindmap(
        show_archived: bool = Query(False, alias="showArchived"),
        folder_id: str | None = Query(None, alias="folderId"),
        user_id: str = Depends(verify_session),
    ):
        try:
            return note_service.mindmap(user_id, show_archived=show_archived, folder_id=folder_id)
        except Exception as e:
            raise _internal_error("load mindmap", e) from e

    @router.post("/api/cluster")
    async def cluster(body: ClusterRequest, user_id: str = Depends(verify_session)):
        try:
            result = note_service.cluster(user_id, preview=body.preview)
        except InvalidEmbeddingError as e:
            raise HTTPException(status_code=500, detail=str(e)) from e
        except ClusteringError as e:
            raise HTTPException(status_code=500, detail=f"Clustering failed: {e}") from e
        except Exception as e:
            raise _internal_error("cluster notes", e) from e
        return result.model_dump(by_alias=True, exclude_none=True)

    @router.post("/api/auto-archive")
    async def auto_archive(user_id: str = Depends(verify_session)):
        try:
            archived = note_service.auto_archive(user_id)
        except Exception as e:
            raise _internal_error("auto-archive notes", e) from e
        return {"archivedCount": len(archived), "notes": archived}

    @router.get("/api/rediscover")
    async def rediscover(user_id: str = Depends(verify_session)):
        try:
            return note_service.rediscover(user_id)
        except Exception as e:
            raise _internal_error("load suggestions", e) from e


def _create_graph_endpoints(router: APIRouter, graph_service: GraphLayoutService) -> None:
    """Register graph view layout endpoints."""

    @router.get("/api/graph")
    async def get_graph(user_id: str = Depends(verify_session)):
        try:
            return graph_service.get_graph(user_id)
        except Exception as e:
            raise _internal_error("load graph", e) from e

    @router.post("/api/graph")
    async def save_graph(body: SaveGraphRequest, user_id: str = Depends(verify_session)):
        nodes = {
            node.id: NodeLayout(x=node.x, y=node.y, vx=node.vx, vy=node.vy, radius=node.radius)
            for node in body.nodes
        }
        try:
            graph_service.save_graph(user_id, nodes, body.edges)
        except Exception as e:
            raise _internal_error("save graph", e) from e
        return {"success": True}

    @router.put("/api/graph/nodes/{node_id}")
    async def update_graph_node(node_id: str, changes: dict, user_id: str = Depends(verify_session)):
        try:
            node = graph_service.update_node(user_id, node_id, changes)
        except GraphNotFoundError as e:
            raise HTTPException(status_code=404, detail="Graph not found") from e
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=f"Invalid node update: {e}") from e
        except Exception as e:
            raise _internal_error("update node", e) from e
        return {"success": True, "node": {"id": node_id, **node.model_dump(by_alias=True)}}

    @router.delete("/api/graph/nodes/{node_id}")
    async def delete_graph_node(node_id: str, user_id: str = Depends(verify_session)):
        try:
            graph_service.delete_node(user_id, node_id)
        except NoteNotFoundError as e:
            raise HTTPException(status_code=404, detail="Note not found") from e
        except Exception as e:
            raise _internal_error("delete node", e) from e
        return {"success": True, "deletedNodeId": node_id}


def _create_batch_endpoints(router: APIRouter, note_service: NoteService) -> None:
    """Register multi-note operations."""

    @router.post("/api/notes/batch")
    async def batch_notes(body: BatchNotesRequest, user_id: str = Depends(verify_session)):
        try:
            results = note_service.apply_batch(user_id, body.operations)
        except NoteNotFoundError as e:
            raise HTTPException(status_code=404, detail="Note not found") from e
        except InvalidReferenceError as e:
            raise _invalid_reference(e, "Invalid user or folder reference") from e
        except Exception as e:
            raise _internal_error("execute batch operations", e) from e
        return {"results": results}

    @router.post("/api/notes/batch-delete")
    async def batch_delete(body: BatchDeleteRequest, user_id: str = Depends(verify_session)):
        try:
            deleted = note_service.delete_notes(user_id, body.note_ids or [])
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        except OwnershipError as e:
            raise HTTPException(status_code=403, detail=str(e)) from e
        except Exception as e:
            raise _internal_error("delete notes", e) from e
        return {"deleted": deleted}


def _create_annotation_endpoints(router: APIRouter, note_service: NoteService) -> None:
    @router.post("/api/notes/{note_id}/annotations")
    async def create_annotation(
        note_id: str, body: CreateAnnotationRequest, user_id: str = Depends(verify_session)
    ):
        try:
            return note_service.add_annotation(user_id, note_id, body.text, body.comment)
        except NoteNotFoundError as e:
            raise HTTPException(status_code=404, detail="Note not found") from e
        except Exception as e:
            raise _internal_error("create annotation", e) from e

    @router.put("/api/annotations/{annotation_id}")
    async def update_annotation(
        annotation_id: str, body: UpdateAnnotationRequest, user_id: str = Depends(verify_session)
    ):
        try:
            return note_service.update_annotation(user_id, annotation_id, body.comment)
        except AnnotationNotFoundError as e:
            raise HTTPException(status_code=404, detail="Annotation not found") from e
        except Exception as e:
            raise _internal_error("update annotation", e) from e

    @router.delete("/api/annotations/{annotation_id}")
    async def delete_annotation(annotation_id: str, user_id: str = Depends(verify_session)):
        try:
            note_service.delete_annotation(user_id, annotation_id)
        except AnnotationNotFoundError as e:
            raise HTTPException(status_code=404, detail="Annotation not found") from e
        except Exception as e:
            raise _internal_error("delete annotation", e) from e
        return {"success": True}


def _create_folder_endpoints(router: APIRouter, folder_service: FolderService) -> None:
    """Register folder management and the home overview."""

    @router.get("/api/home")
    async def home(user_id: str = Depends(verify_session)):
        try:
            return folder_service.home(user_id)
        except Exception as e:
            raise _internal_error("load home data", e) from e

    @router.post("/api/folders")
    async def create_folder(body: CreateFolderRequest, user_id: str = Depends(verify_session)):
        try:
            return folder_service.create_folder(user_id, body.name, body.parent_id)
        except InvalidReferenceError as e:
            raise _invalid_reference(e, "Invalid user or folder reference") from e
        except Exception as e:
            raise _internal_error("create folder", e) from e

    @router.put("/api/folders/{folder_id}")
    async def rename_folder(
        folder_id: str, body: RenameFolderRequest, user_id: str = Depends(verify_session)
    ):
        try:
            return folder_service.rename_folder(user_id, folder_id, body.name)
        except FolderNotFoundError as e:
            raise HTTPException(status_code=404, detail="Folder not found") from e
        except Exception as e:
            raise _internal_error("update folder", e) from e

    @router.delete("/api/folders/{folder_id}")
    async def delete_folder(folder_id: str, user_id: str = Depends(verify_session)):
        try:
            folder_service.delete_folder(user_id, folder_id)
        except FolderNotFoundError as e:
            raise HTTPException(status_code=404, detail="Folder not found") from e
        except Exception as e:
            raise _internal_error("delete folder", e) from e
        return {"success": True}


def _create_canvas_endpoints(router: APIRouter, canvas_service: CanvasService) -> None:
    """Register note and folder canvas endpoints."""

    def _payload(canvas: Canvas) -> dict:
        return {
            "nodes": list(canvas.nodes.values()),
            "edges": list(canvas.edges.values()),
            "updatedAt": canvas.updated_at,
        }

    # Must be registered before /api/canvas/{folder_id}
    @router.get("/api/canvas/list")
    async def list_canvases(user_id: str = Depends(verify_session)):
        try:
            canvases = canvas_service.list_canvases(user_id)
        except Exception as e:
            raise _internal_error("list canvases", e) from e
        return {"canvases": canvases, "total": len(canvases)}

    @router.get("/api/canvas/note/{note_id}")
    async def get_note_canvas(note_id: str, user_id: str = Depends(verify_session)):
        try:
            note, canvas = canvas_service.get_note_canvas(user_id, note_id)
        except NoteNotFoundError as e:
            raise HTTPException(status_code=404, detail="Note not found") from e
        except Exception as e:
            raise _internal_error("load canvas", e) from e
        return {"noteId": note_id, "noteName": note.title, **_payload(canvas)}

    @router.post("/api/canvas/note/{note_id}")
    async def save_note_canvas(
        note_id: str, body: SaveCanvasRequest, user_id: str = Depends(verify_session)
    ):
        try:
            canvas = canvas_service.save_note_canvas(user_id, note_id, body.nodes, body.edges)
        except NoteNotFoundError as e:
            raise HTTPException(status_code=404, detail="Note not found") from e
        except Exception as e:
            raise _internal_error("save canvas", e) from e
        return {"success": True, "noteId": note_id, **_payload(canvas)}

    @router.delete("/api/canvas/note/{note_id}")
    async def clear_note_canvas(note_id: str, user_id: str = Depends(verify_session)):
        try:
            canvas_service.clear_note_canvas(user_id, note_id)
        except NoteNotFoundError as e:
            raise HTTPException(status_code=404, detail="Note not found") from e
        except CanvasNotFoundError as e:
            raise HTTPException(status_code=404, detail="Canvas not found") from e
        except Exception as e:
            raise _internal_error("clear canvas", e) from e
        return {"success": True, "noteId": note_id}

    @router.get("/api/canvas/{folder_id}")
    async def get_folder_canvas(folder_id: str, user_id: str = Depends(verify_session)):
        try:
            folder, canvas = canvas_service.get_folder_canvas(user_id, folder_id)
        except FolderNotFoundError as e:
            raise HTTPException(status_code=404, detail="Folder not found") from e
        except Exception as e:
            raise _internal_error("load canvas", e) from e
        return {"folderId": folder_id, "folderName": folder.name, **_payload(canvas)}

    @router.post("/api/canvas/{folder_id}")
    async def save_folder_canvas(
        folder_id: str, body: SaveCanvasRequest, user_id: str = Depends(verify_session)
    ):
        try:
            canvas = canvas_service.save_folder_canvas(user_id, folder_id, body.nodes, body.edges)
        except FolderNotFoundError as e:
            raise HTTPException(status_code=404, detail="Folder not found") from e
        except Exception as e:
            raise _internal_error("save canvas", e) from e
        return {"success": True, "folderId": folder_id, **_payload(canvas)}

    @router.put("/api/canvas/{folder_id}/nodes/{node_id}")
    async def update_canvas_node(
        folder_id: str, node_id: str, changes: dict, user_id: str = Depends(verify_session)
    ):
        try:
            node = canvas_service.update_folder_node(user_id, folder_id, node_id, changes)
        except CanvasNotFoundError as e:
            raise HTTPException(status_code=404, detail="Canvas not found") from e
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=f"Invalid node update: {e}") from e
        except Exception as e:
            raise _internal_error("update canvas node", e) from e
        if node is None:
            raise HTTPException(status_code=404, detail="Node not found")
        return {"success": True, "node": node}

    @router.delete("/api/canvas/{folder_id}/nodes/{node_id}")
    async def delete_canvas_node(
        folder_id: str, node_id: str, user_id: str = Depends(verify_session)
    ):
        try:
            canvas_service.delete_folder_node(user_id, folder_id, node_id)
        except CanvasNotFoundError as e:
            raise HTTPException(status_code=404, detail="Canvas not found") from e
        except Exception as e:
            raise _internal_error("delete canvas node", e) from e
        return {"success": True, "deletedNodeId": node_id}

    @router.delete("/api/canvas/{folder_id}")
    async def clear_folder_canvas(folder_id: str, user_id: str = Depends(verify_session)):
        try:
            canvas_service.clear_folder_canvas(user_id, folder_id)
        except CanvasNotFoundError as e:
            raise HTTPException(status_code=404, detail="Canvas not found") from e
        except Exception as e:
            raise _internal_error("clear canvas", e) from e
        return {"success": True, "folderId": folder_id}

    @router.post("/api/canvas/{folder_id}/batch")
    async def batch_canvas(
        folder_id: str, body: CanvasBatchRequest, user_id: str = Depends(verify_session)
    ):
        try:
            canvas = canvas_service.apply_folder_batch(user_id, folder_id, body.operations)
        except CanvasNotFoundError as e:
            raise HTTPException(status_code=404, detail="Canvas not found") from e
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=f"Invalid canvas operation: {e}") from e
        except Exception as e:
            raise _internal_error("execute batch operations", e) from e
        return {
            "success": True,
            "processed": len(body.operations),
            "nodes": list(canvas.nodes.values()),
            "edges": list(canvas.edges.values()),
        }


def get_endpoints_router(
    *,
    note_service: NoteService,
    graph_service: GraphLayoutService,
    folder_service: FolderService,
    canvas_service: CanvasService,
) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    async def health_check():
        return {"status": "healthy"}

    _create_note_endpoints(router, note_service)
    _create_batch_endpoints(router, note_service)
    _create_annotation_endpoints(router, note_service)
    _create_link_endpoints(router, note_service)
    _create_organization_endpoints(router, note_service)
    _create_graph_endpoints(router, graph_service)
    _create_folder_endpoints(router, folder_service)
    _create_canvas_endpoints(router, canvas_service)

    return router
