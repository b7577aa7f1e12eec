from datetime import timedelta

import pytest

from notemesh.domain.folder import Folder
from notemesh.domain.graph import GraphEdge, NodeLayout
from notemesh.domain.note import NoteChanges
from notemesh.exceptions import (
    AnnotationNotFoundError,
    InvalidReferenceError,
    LinkNotFoundError,
    NoteNotFoundError,
    OwnershipError,
)
from notemesh.services.graph import GraphLayoutService
from notemesh.services.notes import DeletedNote, NoteOperation, NoteService
from notemesh.stores.local import LocalNoteStore
from notemesh.vector_dbs.local_db import LocalSimilarityIndex
from tests.fakes import FailingEmbedder, FakeClock


def test_create_note_defaults(note_service: NoteService, index: LocalSimilarityIndex) -> None:
    note = note_service.create_note("user-1")

    assert note.title == "Untitled Thought"
    assert note.ephemeral is True
    assert note.weight == 1.0
    assert 0 <= note.x < 500 and 0 <= note.y < 500
    assert not index.has_vector(note.id)


def test_create_note_with_text_is_embedded(
    note_service: NoteService, index: LocalSimilarityIndex
) -> None:
    note = note_service.create_note("user-1", title="Ideas", raw_text="Some thoughts", x=1, y=2)

    assert (note.x, note.y) == (1, 2)
    assert index.has_vector(note.id)


def test_get_note_of_another_user_is_not_found(note_service: NoteService) -> None:
    note = note_service.create_note("user-2")

    with pytest.raises(NoteNotFoundError):
        note_service.get_note("user-1", note.id)


def test_update_with_long_text_makes_note_permanent(
    note_service: NoteService, index: LocalSimilarityIndex
) -> None:
    note = note_service.create_note("user-1")

    updated = note_service.update_note(
        "user-1", note.id, NoteChanges(raw_text="A sufficiently long note body")
    )

    assert updated.ephemeral is False
    assert index.has_vector(note.id)


def test_update_with_short_text_stays_ephemeral(note_service: NoteService) -> None:
    note = note_service.create_note("user-1")

    updated = note_service.update_note("user-1", note.id, NoteChanges(raw_text="short"))

    assert updated.ephemeral is True


def test_update_ignores_unset_and_none_fields(note_service: NoteService) -> None:
    note = note_service.create_note("user-1", title="Keep me", x=5, y=6)

    updated = note_service.update_note("user-1", note.id, NoteChanges(title=None, x=10))

    assert updated.title == "Keep me"
    assert (updated.x, updated.y) == (10, 6)


def test_update_recomputes_weight_from_links_and_age(
    note_service: NoteService, store: LocalNoteStore, clock: FakeClock
) -> None:
    a = note_service.create_note("user-1")
    b = note_service.create_note("user-1")
    c = note_service.create_note("user-1")
    note_service.create_link("user-1", a.id, b.id)
    note_service.create_link("user-1", c.id, a.id)
    clock.advance(days=4)

    updated = note_service.update_note("user-1", a.id, NoteChanges(color="#000000"))

    assert updated.weight == pytest.approx(1 + 2 * 0.2 - 4 * 0.05)
    assert updated.updated_at == clock()
    assert store.get_note(a.id).weight == pytest.approx(1.2)


def test_embedding_failure_does_not_block_update(
    store: LocalNoteStore, index: LocalSimilarityIndex, clock: FakeClock
) -> None:
    service = NoteService(embedder=FailingEmbedder(), store=store, index=index, clock=clock)
    note = service.create_note("user-1", raw_text="embedding will fail")

    updated = service.update_note(
        "user-1", note.id, NoteChanges(raw_text="A sufficiently long note body")
    )

    assert updated.raw_text == "A sufficiently long note body"
    assert store.get_note(note.id).raw_text == "A sufficiently long note body"
    assert not index.has_vector(note.id)


def test_auto_organize_links_mentions(note_service: NoteService, store: LocalNoteStore) -> None:
    python = note_service.create_note("user-1", title="python")
    note = note_service.create_note("user-1", title="Today")

    note_service.update_note(
        "user-1", note.id, NoteChanges(raw_text="I love Python"), auto_organize=True
    )
    note_service.update_note(
        "user-1", note.id, NoteChanges(raw_text="I love Python"), auto_organize=True
    )

    link = store.find_link(note.id, python.id)
    assert link.strength == pytest.approx(1.3)
    assert link.reason == 'Both mention "python"'


def test_update_without_auto_organize_creates_no_links(
    note_service: NoteService, store: LocalNoteStore
) -> None:
    note_service.create_note("user-1", title="python")
    note = note_service.create_note("user-1", title="Today")

    note_service.update_note("user-1", note.id, NoteChanges(raw_text="I love Python"))

    assert store.links_for_user("user-1") == []


def test_archiving_through_update_hides_note_from_suggestions(
    note_service: NoteService,
) -> None:
    a = note_service.create_note("user-1", title="A", raw_text="alpha")
    note_service.create_note("user-1", title="B", raw_text="beta")

    note_service.update_note("user-1", a.id, NoteChanges(archived=True))

    suggestions = note_service.suggest_links("user-1", "alpha", None)
    assert a.id not in [suggestion.id for suggestion in suggestions]


def test_suggest_links_excludes_the_note_and_is_sorted(note_service: NoteService) -> None:
    notes = [
        note_service.create_note("user-1", title=f"Note {i}", raw_text=f"text {i}")
        for i in range(7)
    ]

    suggestions = note_service.suggest_links("user-1", "text 0", notes[0].id)

    assert len(suggestions) == 5
    assert notes[0].id not in [suggestion.id for suggestion in suggestions]
    distances = [suggestion.distance for suggestion in suggestions]
    assert distances == sorted(distances)
    assert suggestions[0].reason == 'Similar content about "text 0..."'


def test_semantic_search_finds_exact_text_first(note_service: NoteService) -> None:
    target = note_service.create_note("user-1", title="Target", raw_text="quantum gardening")
    note_service.create_note("user-1", title="Other", raw_text="something else")

    results = note_service.search("user-1", "quantum gardening")

    assert results[0].id == target.id
    assert results[0].distance == pytest.approx(0.0, abs=1e-6)


def test_fuzzy_search_matches_title_or_text(note_service: NoteService) -> None:
    by_title = note_service.create_note("user-1", title="Garden plans")
    by_text = note_service.create_note("user-1", title="Misc", raw_text="the GARDEN needs water")
    note_service.create_note("user-1", title="Unrelated")

    results = note_service.search("user-1", "garden", fuzzy=True)

    assert {result.id for result in results} == {by_title.id, by_text.id}
    assert all(result.distance is None for result in results)


def test_list_notes_is_cached_until_a_write(
    note_service: NoteService, store: LocalNoteStore
) -> None:
    note = note_service.create_note("user-1", title="Cached")
    assert [n.id for n in note_service.list_notes("user-1")] == [note.id]

    # A write that bypasses the service is not visible until the cache is invalidated
    store.delete_note(note.id)
    assert [n.id for n in note_service.list_notes("user-1")] == [note.id]

    note_service.create_note("user-1", title="Fresh")
    assert [n.title for n in note_service.list_notes("user-1")] == ["Fresh"]


def test_delete_note_removes_links_vector_and_layout(
    note_service: NoteService,
    graph_service: GraphLayoutService,
    store: LocalNoteStore,
    index: LocalSimilarityIndex,
) -> None:
    a = note_service.create_note("user-1", raw_text="alpha")
    b = note_service.create_note("user-1", raw_text="beta")
    note_service.create_link("user-1", a.id, b.id)
    graph_service.save_graph(
        "user-1",
        {a.id: NodeLayout(x=1.0, y=1.0), b.id: NodeLayout(x=2.0, y=2.0)},
        [GraphEdge(source=a.id, target=b.id)],
    )

    note_service.delete_note("user-1", a.id)

    assert store.get_note(a.id) is None
    assert store.links_for_user("user-1") == []
    assert not index.has_vector(a.id)
    layout = store.get_graph_layout("user-1")
    assert list(layout.nodes) == [b.id]
    assert layout.edges == []


def test_delete_all_requires_confirmation(note_service: NoteService) -> None:
    note_service.create_note("user-1")

    with pytest.raises(ValueError, match="DELETE_ALL"):
        note_service.delete_all_notes("user-1", None)


def test_delete_all_only_touches_the_user(note_service: NoteService) -> None:
    note_service.create_note("user-1")
    note_service.create_note("user-1", archived=True)
    other = note_service.create_note("user-2")

    assert note_service.delete_all_notes("user-1", "DELETE_ALL") == 2
    assert note_service.mindmap("user-1", show_archived=True).nodes == []
    assert [n.id for n in note_service.list_notes("user-2")] == [other.id]


def test_create_link_rejects_notes_of_other_users(note_service: NoteService) -> None:
    mine = note_service.create_note("user-1")
    theirs = note_service.create_note("user-2")

    with pytest.raises(NoteNotFoundError):
        note_service.create_link("user-1", mine.id, theirs.id)


def test_create_link_twice_strengthens_it(note_service: NoteService) -> None:
    a = note_service.create_note("user-1")
    b = note_service.create_note("user-1")

    first = note_service.create_link("user-1", a.id, b.id)
    second = note_service.create_link("user-1", a.id, b.id, "again")

    assert first.reason == "Manual link"
    assert second.strength == pytest.approx(1.5)


def test_delete_link_of_another_user_is_not_found(note_service: NoteService) -> None:
    a = note_service.create_note("user-2")
    b = note_service.create_note("user-2")
    link = note_service.create_link("user-2", a.id, b.id)

    with pytest.raises(LinkNotFoundError):
        note_service.delete_link("user-1", link.id)


def test_mindmap_hides_archived_notes_and_their_edges(note_service: NoteService) -> None:
    a = note_service.create_note("user-1")
    b = note_service.create_note("user-1")
    note_service.create_link("user-1", a.id, b.id)
    note_service.update_note("user-1", b.id, NoteChanges(archived=True))

    mindmap = note_service.mindmap("user-1")
    assert [note.id for note in mindmap.nodes] == [a.id]
    assert mindmap.edges == []

    full = note_service.mindmap("user-1", show_archived=True)
    assert len(full.nodes) == 2
    assert len(full.edges) == 1


def test_auto_archive_uses_the_service_clock(note_service: NoteService, clock: FakeClock) -> None:
    stale = note_service.create_note("user-1")
    clock.advance(days=3)
    fresh = note_service.create_note("user-1")

    archived = note_service.auto_archive("user-1")

    assert [note.id for note in archived] == [stale.id]
    assert [note.id for note in note_service.list_notes("user-1")] == [fresh.id]


def test_cluster_commit_is_visible_in_listing(note_service: NoteService) -> None:
    for i in range(4):
        note_service.create_note("user-1", raw_text=f"A note body that is long enough {i}")
    before = {note.id: (note.x, note.y) for note in note_service.list_notes("user-1")}

    result = note_service.cluster("user-1", preview=False)

    after = {note.id: (note.x, note.y) for note in note_service.list_notes("user-1")}
    assert result.stats.total_notes == 4
    assert after != before


def test_rediscover_uses_the_service_clock(note_service: NoteService, clock: FakeClock) -> None:
    note = note_service.create_note("user-1")
    clock.advance(days=8)

    assert [n.id for n in note_service.rediscover("user-1").orphans] == [note.id]


def test_timestamps_follow_the_clock(note_service: NoteService, clock: FakeClock) -> None:
    note = note_service.create_note("user-1")
    clock.advance(hours=5)

    updated = note_service.update_note("user-1", note.id, NoteChanges(title="Later"))

    assert updated.created_at == note.created_at
    assert updated.updated_at - note.updated_at == timedelta(hours=5)


def test_update_with_empty_text_keeps_the_previous_vector(
    note_service: NoteService, index: LocalSimilarityIndex
) -> None:
    note = note_service.create_note("user-1", raw_text="original body")
    before = index.snapshot("user-1")[note.id].copy()

    updated = note_service.update_note("user-1", note.id, NoteChanges(raw_text=""))

    assert updated.raw_text == ""
    assert (index.snapshot("user-1")[note.id] == before).all()


def test_auto_organize_weight_uses_the_link_count_before_linking(
    note_service: NoteService, store: LocalNoteStore
) -> None:
    note_service.create_note("user-1", title="python")
    note = note_service.create_note("user-1", title="Today")
    changes = NoteChanges(raw_text="I love Python")

    first = note_service.update_note("user-1", note.id, changes, auto_organize=True)
    second = note_service.update_note("user-1", note.id, changes, auto_organize=True)

    assert first.weight == pytest.approx(1.0)
    assert second.weight == pytest.approx(1.2)
    assert len(store.links_for_user("user-1")) == 1


def test_list_notes_newest_first(note_service: NoteService, clock: FakeClock) -> None:
    first = note_service.create_note("user-1", title="first")
    clock.advance(minutes=1)
    second = note_service.create_note("user-1", title="second")
    clock.advance(minutes=1)
    note_service.update_note("user-1", first.id, NoteChanges(title="edited"))

    assert [n.id for n in note_service.list_notes("user-1")] == [first.id, second.id]


def test_create_note_in_foreign_folder(note_service: NoteService, store: LocalNoteStore) -> None:
    store.add_folder(Folder(id="theirs", user_id="user-2"))

    with pytest.raises(InvalidReferenceError):
        note_service.create_note("user-1", folder_id="theirs")
    with pytest.raises(InvalidReferenceError):
        note_service.create_note("user-1", folder_id="missing")


def test_move_note_between_folders(note_service: NoteService, store: LocalNoteStore) -> None:
    store.add_folder(Folder(id="f", user_id="user-1"))
    note = note_service.create_note("user-1")

    moved = note_service.update_note("user-1", note.id, NoteChanges(folder_id="f"))

    assert moved.folder_id == "f"
    with pytest.raises(InvalidReferenceError):
        note_service.update_note("user-1", note.id, NoteChanges(folder_id="missing"))


def test_mindmap_filters_by_folder(note_service: NoteService, store: LocalNoteStore) -> None:
    store.add_folder(Folder(id="f", user_id="user-1"))
    a = note_service.create_note("user-1", folder_id="f")
    b = note_service.create_note("user-1", folder_id="f")
    c = note_service.create_note("user-1")
    note_service.create_link("user-1", a.id, b.id)
    note_service.create_link("user-1", a.id, c.id)

    mindmap = note_service.mindmap("user-1", folder_id="f")

    assert {n.id for n in mindmap.nodes} == {a.id, b.id}
    assert [(e.source_id, e.target_id) for e in mindmap.edges] == [(a.id, b.id)]


def test_get_note_names_linked_notes_and_lists_annotations(note_service: NoteService) -> None:
    a = note_service.create_note("user-1", title="A")
    b = note_service.create_note("user-1", title="B")
    note_service.create_link("user-1", a.id, b.id)
    annotation = note_service.add_annotation("user-1", b.id, "passage", "remark")

    detail = note_service.get_note("user-1", b.id)

    assert [(link.source.id, link.source.title) for link in detail.incoming] == [(a.id, "A")]
    assert detail.outgoing == []
    assert detail.annotations == [annotation]
    assert note_service.get_note("user-1", a.id).outgoing[0].target.title == "B"


def test_annotations_belong_to_the_note_owner(note_service: NoteService) -> None:
    note = note_service.create_note("user-1")
    annotation = note_service.add_annotation("user-1", note.id, "passage", "remark")

    with pytest.raises(NoteNotFoundError):
        note_service.add_annotation("user-2", note.id, "passage", "remark")
    with pytest.raises(AnnotationNotFoundError):
        note_service.update_annotation("user-2", annotation.id, "hijacked")

    assert note_service.update_annotation("user-1", annotation.id, "edited").comment == "edited"
    note_service.delete_annotation("user-1", annotation.id)
    with pytest.raises(AnnotationNotFoundError):
        note_service.delete_annotation("user-1", annotation.id)


def test_delete_note_removes_its_annotations(
    note_service: NoteService, store: LocalNoteStore
) -> None:
    note = note_service.create_note("user-1")
    annotation = note_service.add_annotation("user-1", note.id, "passage", "remark")

    note_service.delete_note("user-1", note.id)

    assert store.get_annotation(annotation.id) is None


def test_apply_batch(note_service: NoteService, store: LocalNoteStore) -> None:
    existing = note_service.create_note("user-1", title="Old")
    doomed = note_service.create_note("user-1")

    results = note_service.apply_batch(
        "user-1",
        [
            NoteOperation(type="create", data={"title": "New", "rawText": "body"}),
            NoteOperation(type="update", id=existing.id, data={"title": "Renamed"}),
            NoteOperation(type="delete", id=doomed.id),
        ],
    )

    assert results[0].title == "New"
    assert results[0].raw_text == "body"
    assert results[1].title == "Renamed"
    assert results[2] == DeletedNote(id=doomed.id)
    assert store.get_note(doomed.id) is None


def test_apply_batch_stops_at_a_foreign_note(note_service: NoteService) -> None:
    foreign = note_service.create_note("user-2")

    with pytest.raises(NoteNotFoundError):
        note_service.apply_batch(
            "user-1",
            [
                NoteOperation(type="create", data={"title": "Kept"}),
                NoteOperation(type="delete", id=foreign.id),
            ],
        )

    assert [n.title for n in note_service.list_notes("user-1")] == ["Kept"]


def test_delete_notes_requires_ownership_of_all(note_service: NoteService) -> None:
    mine = note_service.create_note("user-1")
    theirs = note_service.create_note("user-2")

    with pytest.raises(ValueError):
        note_service.delete_notes("user-1", [])
    with pytest.raises(OwnershipError):
        note_service.delete_notes("user-1", [mine.id, theirs.id])
    assert note_service.get_note("user-1", mine.id)

    assert note_service.delete_notes("user-1", [mine.id, mine.id]) == 1
    assert note_service.list_notes("user-1") == []
