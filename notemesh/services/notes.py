"""Request-scoped orchestration of note edits and the organization engine."""

import logging
import random
from datetime import datetime
from typing import Callable, Literal

from notemesh.cache import TTLCache
from notemesh.domain.base import CamelModel
from notemesh.domain.cluster import ClusteringResult
from notemesh.domain.note import (
    DEFAULT_TITLE,
    Annotation,
    ConnectedLink,
    Link,
    Note,
    NoteChanges,
    NoteRef,
    utcnow,
)
from notemesh.embedders.base import Embedder
from notemesh.exceptions import (
    AnnotationNotFoundError,
    InvalidReferenceError,
    LinkNotFoundError,
    NoteNotFoundError,
    OwnershipError,
)
from notemesh.organization import (
    AutoLinker,
    ClusterEngine,
    LifecycleGate,
    compute_weight,
    days_since,
    reinforce_link,
    rediscover,
)
from notemesh.organization.rediscovery import Rediscovery
from notemesh.stores.base import NoteStore
from notemesh.vector_dbs.base import SimilarityIndex

logger = logging.getLogger(__name__)

DELETE_ALL_CONFIRMATION = "DELETE_ALL"
EPHEMERAL_TEXT_LENGTH = 20
FUZZY_RESULTS_LIMIT = 20
CANVAS_SIZE = 500.0


class NoteDetail(CamelModel):
    note: Note
    incoming: list[ConnectedLink]
    outgoing: list[ConnectedLink]
    annotations: list[Annotation]


class LinkSuggestion(CamelModel):
    id: str
    title: str
    reason: str
    distance: float


class SearchResult(CamelModel):
    id: str
    title: str
    raw_text: str | None
    x: float
    y: float
    distance: float | None = None


class MindMap(CamelModel):
    nodes: list[Note]
    edges: list[Link]


class NoteOperation(CamelModel):
    """One step of a batch edit. ``data`` holds note fields for create and update."""

    type: Literal["create", "update", "delete"]
    id: str | None = None
    data: dict = {}


class DeletedNote(CamelModel):
    id: str
    deleted: bool = True


class NoteService:
    """Applies note edits and runs the organization engine for a single user request."""

    def __init__(
        self,
        *,
        embedder: Embedder,
        store: NoteStore,
        index: SimilarityIndex,
        cache: TTLCache | None = None,
        clock: Callable[[], datetime] = utcnow,
        archive_after_days: float = 2.0,
        cluster_random_seed: int = 42,
        similar_notes_limit: int = 5,
        search_results_limit: int = 10,
    ):
        """Initialize the service with its collaborators.

        Args:
            embedder: Text to vector function used for similarity features
            store: Persistent store for notes and links
            index: Similarity index holding one vector per note
            cache: Cache for note listings, defaults to a 30 second TTL cache
            clock: Source of the current time
            archive_after_days: Inactivity period after which ephemeral notes are archived
            cluster_random_seed: Seed for reproducible k-means runs
            similar_notes_limit: Number of link suggestions returned
            search_results_limit: Number of semantic search results returned
        """
        self.embedder = embedder
        self.store = store
        self.index = index
        self.cache = cache or TTLCache(ttl_seconds=30.0)
        self.clock = clock
        self.similar_notes_limit = similar_notes_limit
        self.search_results_limit = search_results_limit

        self.auto_linker = AutoLinker(store)
        self.cluster_engine = ClusterEngine(
            store=store, index=index, random_seed=cluster_random_seed
        )
        self.lifecycle_gate = LifecycleGate(
            store=store, index=index, archive_after_days=archive_after_days
        )

    def create_note(
        self,
        user_id: str,
        *,
        title: str | None = None,
        raw_text: str | None = None,
        x: float | None = None,
        y: float | None = None,
        color: str | None = None,
        folder_id: str | None = None,
        ephemeral: bool = True,
        archived: bool = False,
    ) -> Note:
        self._check_folder(user_id, folder_id)
        now = self.clock()
        note = Note(
            user_id=user_id,
            title=title or DEFAULT_TITLE,
            raw_text=raw_text,
            x=x if x is not None else random.uniform(0, CANVAS_SIZE),
            y=y if y is not None else random.uniform(0, CANVAS_SIZE),
            color=color or "#FFFFFF",
            folder_id=folder_id,
            ephemeral=ephemeral,
            archived=archived,
            weight=1.0,
            created_at=now,
            updated_at=now,
        )
        self.store.add_note(note)

        if raw_text and raw_text.strip():
            self._refresh_embedding(note, raw_text)

        self.invalidate(user_id)
        logger.debug(f"Created note {note.id} for user {user_id}")
        return note

    def get_note(self, user_id: str, note_id: str) -> NoteDetail:
        """A note with its annotations and the notes at the far end of each link."""
        note = self._get_owned_note(user_id, note_id)
        incoming, outgoing = self.store.links_for_note(note_id)
        return NoteDetail(
            note=note,
            incoming=[
                ConnectedLink(**link.model_dump(), source=self._note_ref(link.source_id))
                for link in incoming
            ],
            outgoing=[
                ConnectedLink(**link.model_dump(), target=self._note_ref(link.target_id))
                for link in outgoing
            ],
            annotations=self.store.annotations_for_note(note_id),
        )

    def update_note(
        self, user_id: str, note_id: str, changes: NoteChanges, auto_organize: bool = False
    ) -> Note:
        """Apply a partial update, refresh derived state and optionally auto-link.

        The weight is computed from the link count and ``updated_at`` as they
        were before this update. An embedding failure is logged and the update
        still goes through with the previous vector.
        """
        note = self._get_owned_note(user_id, note_id)
        now = self.clock()
        data = {
            field: value
            for field, value in changes.model_dump(exclude_unset=True).items()
            if value is not None
        }
        text = data.get("raw_text")
        if "folder_id" in data:
            self._check_folder(user_id, data["folder_id"])

        incoming, outgoing = self.store.links_for_note(note.id)
        data["weight"] = compute_weight(
            len(incoming) + len(outgoing), days_since(note.updated_at, now)
        )

        if text and text.strip():
            self._refresh_embedding(note, text)
            if len(text) > EPHEMERAL_TEXT_LENGTH:
                data["ephemeral"] = False

        data["updated_at"] = now
        updated = note.model_copy(update=data)
        self.store.update_note(updated)

        if updated.archived != note.archived:
            self.index.set_active(user_id, note.id, not updated.archived)

        if auto_organize and text:
            self.auto_linker.link_mentions(updated, text)

        self.invalidate(user_id)
        return updated

    def delete_note(self, user_id: str, note_id: str) -> None:
        self._get_owned_note(user_id, note_id)
        self.store.delete_note(note_id)
        self.index.remove(note_id)

        layout = self.store.get_graph_layout(user_id)
        if layout:
            layout.remove_node(note_id)
            self.store.save_graph_layout(layout)

        self.invalidate(user_id)

    def delete_all_notes(self, user_id: str, confirm: str | None) -> int:
        if confirm != DELETE_ALL_CONFIRMATION:
            raise ValueError(f"Must confirm deletion with ?confirm={DELETE_ALL_CONFIRMATION}")

        notes = self.store.list_notes(user_id, include_archived=True)
        logger.info(f"Deleting {len(notes)} notes for user {user_id}")
        for note in notes:
            self.store.delete_note(note.id)
            self.index.remove(note.id)

        layout = self.store.get_graph_layout(user_id)
        if layout:
            layout.nodes = {}
            layout.edges = []
            self.store.save_graph_layout(layout)

        self.invalidate(user_id)
        return len(notes)

    def list_notes(self, user_id: str) -> list[Note]:
        """Active notes of a user, most recently updated first, served from the cache when fresh."""
        cache_key = f"notes-{user_id}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        notes = sorted(
            self.store.list_notes(user_id), key=lambda note: note.updated_at, reverse=True
        )
        self.cache.set(cache_key, notes)
        return notes

    def create_link(
        self, user_id: str, source_id: str, target_id: str, reason: str | None = None
    ) -> Link:
        """Create a user-confirmed link, or strengthen it if the ordered pair already exists."""
        self._get_owned_note(user_id, source_id)
        self._get_owned_note(user_id, target_id)
        return reinforce_link(self.store, source_id, target_id, reason or "Manual link")

    def delete_link(self, user_id: str, link_id: str) -> None:
        link = self.store.get_link(link_id)
        source = self.store.get_note(link.source_id) if link else None
        if source is None or source.user_id != user_id:
            raise LinkNotFoundError(link_id)
        self.store.delete_link(link_id)

    def suggest_links(self, user_id: str, text: str, note_id: str | None) -> list[LinkSuggestion]:
        """Suggest semantically similar active notes to link ``note_id`` with."""
        vector = self.embedder.embed(text)
        matches = self.index.query(user_id, vector, note_id, self.similar_notes_limit)

        suggestions = []
        for match_id, distance in matches:
            note = self.store.get_note(match_id)
            if note is None:
                continue
            suggestions.append(
                LinkSuggestion(
                    id=note.id,
                    title=note.title,
                    reason=f'Similar content about "{text[:30]}..."',
                    distance=distance,
                )
            )
        return suggestions

    def search(self, user_id: str, query: str, fuzzy: bool = False) -> list[SearchResult]:
        if fuzzy:
            needle = query.lower()
            return [
                SearchResult(id=n.id, title=n.title, raw_text=n.raw_text, x=n.x, y=n.y)
                for n in self.store.list_notes(user_id)
                if needle in n.title.lower() or needle in (n.raw_text or "").lower()
            ][:FUZZY_RESULTS_LIMIT]

        vector = self.embedder.embed(query)
        results = []
        for note_id, distance in self.index.query(
            user_id, vector, None, self.search_results_limit
        ):
            note = self.store.get_note(note_id)
            if note is None:
                continue
            results.append(
                SearchResult(
                    id=note.id,
                    title=note.title,
                    raw_text=note.raw_text,
                    x=note.x,
                    y=note.y,
                    distance=distance,
                )
            )
        return results

    def mindmap(
        self, user_id: str, show_archived: bool = False, folder_id: str | None = None
    ) -> MindMap:
        notes = self.store.list_notes(user_id, include_archived=show_archived)
        if folder_id is not None:
            notes = [note for note in notes if note.folder_id == folder_id]
        note_ids = {note.id for note in notes}
        edges = [
            link
            for link in self.store.links_for_user(user_id)
            if link.source_id in note_ids and link.target_id in note_ids
        ]
        return MindMap(nodes=notes, edges=edges)

    def cluster(self, user_id: str, preview: bool) -> ClusteringResult:
        result = self.cluster_engine.cluster(user_id, preview, now=self.clock())
        if not preview:
            self.invalidate(user_id)
        return result

    def auto_archive(self, user_id: str) -> list[Note]:
        archived = self.lifecycle_gate.archive_stale(user_id, now=self.clock())
        self.invalidate(user_id)
        return archived

    def rediscover(self, user_id: str) -> Rediscovery:
        return rediscover(self.store, user_id, now=self.clock())

    def delete_notes(self, user_id: str, note_ids: list[str]) -> int:
        """Delete several notes at once. Nothing is deleted unless the user owns all of them.

        Raises:
            ValueError: If no note ids are given
            OwnershipError: If any note is missing or owned by another user
        """
        if not note_ids:
            raise ValueError("noteIds array required")

        for note_id in note_ids:
            note = self.store.get_note(note_id)
            if note is None or note.user_id != user_id:
                raise OwnershipError("Cannot delete notes you do not own")

        unique_ids = list(dict.fromkeys(note_ids))
        for note_id in unique_ids:
            self.delete_note(user_id, note_id)
        logger.info(f"Batch deleted {len(unique_ids)} notes for user {user_id}")
        return len(unique_ids)

    def apply_batch(
        self, user_id: str, operations: list[NoteOperation]
    ) -> list[Note | DeletedNote]:
        """Run note operations in order.

        Operations are not rolled back: if one fails, the earlier ones stay applied.
        """
        results: list[Note | DeletedNote] = []
        for operation in operations:
            if operation.type == "create":
                fields = NoteChanges(**operation.data).model_dump(exclude_none=True)
                results.append(self.create_note(user_id, **fields))
            elif operation.type == "update":
                changes = NoteChanges(**operation.data)
                results.append(self.update_note(user_id, operation.id or "", changes))
            else:
                self.delete_note(user_id, operation.id or "")
                results.append(DeletedNote(id=operation.id))
        return results

    def add_annotation(self, user_id: str, note_id: str, text: str, comment: str) -> Annotation:
        self._get_owned_note(user_id, note_id)
        annotation = Annotation(note_id=note_id, text=text, comment=comment)
        self.store.add_annotation(annotation)
        return annotation

    def update_annotation(self, user_id: str, annotation_id: str, comment: str) -> Annotation:
        annotation = self._get_owned_annotation(user_id, annotation_id)
        annotation.comment = comment
        self.store.update_annotation(annotation)
        return annotation

    def delete_annotation(self, user_id: str, annotation_id: str) -> None:
        self._get_owned_annotation(user_id, annotation_id)
        self.store.delete_annotation(annotation_id)

    def _get_owned_annotation(self, user_id: str, annotation_id: str) -> Annotation:
        annotation = self.store.get_annotation(annotation_id)
        note = self.store.get_note(annotation.note_id) if annotation else None
        if note is None or note.user_id != user_id:
            raise AnnotationNotFoundError(annotation_id)
        return annotation

    def _check_folder(self, user_id: str, folder_id: str | None) -> None:
        if folder_id is None:
            return
        folder = self.store.get_folder(folder_id)
        if folder is None or folder.user_id != user_id:
            raise InvalidReferenceError(f"Folder {folder_id} does not exist")

    def _note_ref(self, note_id: str) -> NoteRef | None:
        note = self.store.get_note(note_id)
        return NoteRef(id=note.id, title=note.title) if note else None

    def _get_owned_note(self, user_id: str, note_id: str) -> Note:
        note = self.store.get_note(note_id)
        if note is None or note.user_id != user_id:
            raise NoteNotFoundError(note_id)
        return note

    def _refresh_embedding(self, note: Note, text: str) -> None:
        try:
            vector = self.embedder.embed(text)
            self.index.upsert(note.user_id, note.id, vector)
            if note.archived:
                self.index.set_active(note.user_id, note.id, False)
        except Exception as e:
            logger.warning(f"Failed to generate embedding for note {note.id}: {e}")

    def invalidate(self, user_id: str) -> None:
        """Drop the cached note listing of a user."""
        self.cache.invalidate(f"notes-{user_id}")
