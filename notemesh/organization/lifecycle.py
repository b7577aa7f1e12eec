"""Automatic archiving of stale ephemeral notes."""

import logging
from datetime import datetime, timedelta

from notemesh.domain.note import Note, utcnow
from notemesh.stores.base import NoteStore
from notemesh.vector_dbs.base import SimilarityIndex

logger = logging.getLogger(__name__)


def is_stale(note: Note, now: datetime, threshold: timedelta) -> bool:
    return note.ephemeral and not note.archived and now - note.updated_at > threshold


class LifecycleGate:
    """Archives ephemeral notes that have gone unmodified for longer than a threshold.

    Archived notes keep their vectors but drop out of similarity search,
    auto-linking and clustering. Running the gate twice without intervening
    updates archives nothing the second time.
    """

    def __init__(self, *, store: NoteStore, index: SimilarityIndex, archive_after_days: float = 2.0):
        self.store = store
        self.index = index
        self.threshold = timedelta(days=archive_after_days)

    def archive_stale(self, user_id: str, now: datetime | None = None) -> list[Note]:
        now = now or utcnow()
        archived = []
        for note in self.store.list_notes(user_id):
            if not is_stale(note, now, self.threshold):
                continue
            note.archived = True
            self.store.update_note(note)
            self.index.set_active(user_id, note.id, False)
            archived.append(note)

        logger.info(f"Archived {len(archived)} stale ephemeral notes for user {user_id}")
        return archived
