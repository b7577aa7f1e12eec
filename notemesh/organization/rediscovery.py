"""Suggestions for resurfacing forgotten notes and notable connections."""

from collections import Counter
from datetime import datetime, timedelta

from notemesh.domain.base import CamelModel
from notemesh.domain.note import ConnectedLink, Link, Note, NoteRef, utcnow
from notemesh.stores.base import NoteStore

FORGOTTEN_AFTER = timedelta(days=7)
MAX_ORPHANS = 5
MAX_WEAK_CONNECTIONS = 5
MAX_SURPRISING_CONNECTIONS = 3
WEAK_LINK_COUNT = 2
SURPRISING_STRENGTH = 3.0


class Rediscovery(CamelModel):
    orphans: list[Note]
    weak_connections: list[Note]
    surprising_connections: list[ConnectedLink]


def rediscover(store: NoteStore, user_id: str, now: datetime | None = None) -> Rediscovery:
    """Find neglected notes and strong links for a user.

    - orphans: active notes with no links, untouched for over a week, oldest first
    - weak_connections: of the first five notes untouched for over a week, those
      with at most two links
    - surprising_connections: links from active notes with strength of at least 3,
      with the id and title of both ends
    """
    now = now or utcnow()
    notes = store.list_notes(user_id)
    by_id = {note.id: note for note in notes}
    links = store.links_for_user(user_id)

    link_counts: Counter[str] = Counter()
    for link in links:
        link_counts[link.source_id] += 1
        link_counts[link.target_id] += 1

    forgotten = [note for note in notes if now - note.updated_at > FORGOTTEN_AFTER]
    orphans = sorted(
        (note for note in forgotten if link_counts[note.id] == 0),
        key=lambda note: note.updated_at,
    )[:MAX_ORPHANS]
    weak = [
        note
        for note in forgotten[:MAX_WEAK_CONNECTIONS]
        if link_counts[note.id] <= WEAK_LINK_COUNT
    ]
    surprising = [
        _connected(link, by_id, store)
        for link in links
        if link.source_id in by_id and link.strength >= SURPRISING_STRENGTH
    ][:MAX_SURPRISING_CONNECTIONS]

    return Rediscovery(orphans=orphans, weak_connections=weak, surprising_connections=surprising)


def _connected(link: Link, notes: dict[str, Note], store: NoteStore) -> ConnectedLink:
    source = notes[link.source_id]
    target = notes.get(link.target_id) or store.get_note(link.target_id)
    return ConnectedLink(
        **link.model_dump(),
        source=NoteRef(id=source.id, title=source.title),
        target=NoteRef(id=target.id, title=target.title) if target else None,
    )
