"""Heuristic linking of notes that mention each other's titles."""

import logging

from notemesh.domain.note import Link, Note
from notemesh.stores.base import NoteStore

logger = logging.getLogger(__name__)

AUTO_LINK_DELTA = 0.3
MANUAL_LINK_DELTA = 0.5
INITIAL_STRENGTH = 1.0


def mentions(text: str, title: str) -> bool:
    """Case-insensitive substring check on the title as written. Blank titles never match."""
    title = title.lower()
    if not title.strip():
        return False
    return title in text.lower()


class AutoLinker:
    """Creates or strengthens links from an edited note to notes it shares a title mention with.

    Every call rescans all of the user's other active notes; nothing is indexed
    across calls.
    """

    def __init__(self, store: NoteStore):
        self.store = store

    def link_mentions(self, note: Note, text: str) -> list[Link]:
        """Link ``note`` to every active note it mentions or that mentions it.

        Args:
            note: The just-updated note (source of every created link)
            text: The note's new raw text

        Returns:
            Links that were created or strengthened, in candidate order
        """
        touched = []
        candidates = [
            other
            for other in self.store.list_notes(note.user_id)
            if other.id != note.id
        ]

        for candidate in candidates:
            if not (
                mentions(text, candidate.title) or mentions(candidate.raw_text or "", note.title)
            ):
                continue

            existing = self.store.find_link(note.id, candidate.id)
            if existing:
                link = self.store.increment_link_strength(existing.id, AUTO_LINK_DELTA)
            else:
                link = Link(
                    source_id=note.id,
                    target_id=candidate.id,
                    strength=INITIAL_STRENGTH,
                    reason=f'Both mention "{candidate.title.lower()}"',
                )
                self.store.add_link(link)
            touched.append(link)

        logger.debug(f"Auto-linked note {note.id} to {len(touched)} of {len(candidates)} notes")
        return touched


def reinforce_link(store: NoteStore, source_id: str, target_id: str, reason: str) -> Link:
    """Create an explicit link, or strengthen it by 0.5 if the ordered pair already exists."""
    existing = store.find_link(source_id, target_id)
    if existing:
        return store.increment_link_strength(existing.id, MANUAL_LINK_DELTA)

    link = Link(source_id=source_id, target_id=target_id, strength=INITIAL_STRENGTH, reason=reason)
    store.add_link(link)
    return link
