"""CLI for archiving stale ephemeral notes in the local stores, e.g. from a cron job"""

import argparse
import logging

from notemesh.config import settings
from notemesh.organization import LifecycleGate
from notemesh.stores.local import LocalNoteStore
from notemesh.vector_dbs.local_db import LocalSimilarityIndex


def main(
    user_id: str,
    note_store_path: str,
    vector_db_path: str,
    archive_after_days: float,
) -> None:
    note_store = LocalNoteStore(filepath=note_store_path)
    similarity_index = LocalSimilarityIndex(filepath=vector_db_path)

    gate = LifecycleGate(
        store=note_store,
        index=similarity_index,
        archive_after_days=archive_after_days,
    )
    archived = gate.archive_stale(user_id)

    note_store.save()
    similarity_index.save()
    for note in archived:
        print(f"Archived {note.id}: {note.title}")


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level)

    parser = argparse.ArgumentParser()
    parser.add_argument("--user-id", type=str, required=True, help="Owner of the notes to archive")
    parser.add_argument(
        "--note-store",
        type=str,
        required=False,
        help="Local note store file",
        default=settings.local_note_store_path,
    )
    parser.add_argument(
        "--vector-db",
        type=str,
        required=False,
        help="Local vector db file",
        default=settings.local_vector_db_path,
    )
    parser.add_argument(
        "--archive-after-days",
        type=float,
        required=False,
        help="Days without edits after which ephemeral notes are archived",
        default=settings.archive_after_days,
    )

    args = parser.parse_args()

    main(
        user_id=args.user_id,
        note_store_path=args.note_store,
        vector_db_path=args.vector_db,
        archive_after_days=args.archive_after_days,
    )
