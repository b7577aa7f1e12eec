"""Folder management and the home overview."""

import logging

from notemesh.domain.base import CamelModel
from notemesh.domain.folder import DEFAULT_FOLDER_NAME, Folder, FolderSummary
from notemesh.domain.note import Note
from notemesh.exceptions import FolderNotFoundError, InvalidReferenceError
from notemesh.services.notes import NoteService
from notemesh.stores.base import NoteStore

logger = logging.getLogger(__name__)

RECENT_NOTES_LIMIT = 8


class HomeStats(CamelModel):
    total_notes: int
    total_links: int


class HomeView(CamelModel):
    folders: list[FolderSummary]
    recent_notes: list[Note]
    stats: HomeStats


class FolderService:
    def __init__(self, *, store: NoteStore, note_service: NoteService):
        self.store = store
        self.note_service = note_service

    def create_folder(
        self, user_id: str, name: str | None = None, parent_id: str | None = None
    ) -> FolderSummary:
        """Create a folder, optionally nested under another folder of the same user.

        Raises:
            InvalidReferenceError: If the parent folder is missing or belongs to another user
        """
        if parent_id is not None:
            parent = self.store.get_folder(parent_id)
            if parent is None or parent.user_id != user_id:
                raise InvalidReferenceError(f"Folder {parent_id} does not exist")

        folder = Folder(user_id=user_id, name=name or DEFAULT_FOLDER_NAME, parent_id=parent_id)
        self.store.add_folder(folder)
        logger.debug(f"Created folder {folder.id} for user {user_id}")
        return self._summary(folder, self.store.list_notes(user_id, include_archived=True))

    def rename_folder(self, user_id: str, folder_id: str, name: str) -> FolderSummary:
        folder = self._get_owned_folder(user_id, folder_id)
        folder.name = name
        self.store.update_folder(folder)
        return self._summary(folder, self.store.list_notes(user_id, include_archived=True))

    def delete_folder(self, user_id: str, folder_id: str) -> None:
        """Delete a folder and its canvas. Its notes stay, moved to the top level."""
        self._get_owned_folder(user_id, folder_id)
        self.store.delete_folder(folder_id)
        self.note_service.invalidate(user_id)

    def home(self, user_id: str) -> HomeView:
        """Top-level folders, the most recently updated notes and overall counts."""
        all_notes = self.store.list_notes(user_id, include_archived=True)
        active = [note for note in all_notes if not note.archived]
        folders = [
            self._summary(folder, all_notes)
            for folder in self.store.list_folders(user_id)
            if folder.parent_id is None
        ]
        recent = sorted(active, key=lambda note: note.updated_at, reverse=True)
        return HomeView(
            folders=folders,
            recent_notes=recent[:RECENT_NOTES_LIMIT],
            stats=HomeStats(
                total_notes=len(active),
                total_links=len(self.store.links_for_user(user_id)),
            ),
        )

    def _get_owned_folder(self, user_id: str, folder_id: str) -> Folder:
        folder = self.store.get_folder(folder_id)
        if folder is None or folder.user_id != user_id:
            raise FolderNotFoundError(folder_id)
        return folder

    @staticmethod
    def _summary(folder: Folder, notes: list[Note]) -> FolderSummary:
        count = sum(1 for note in notes if note.folder_id == folder.id)
        return FolderSummary(**folder.model_dump(), note_count=count)
