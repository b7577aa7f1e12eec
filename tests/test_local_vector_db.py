"""Tests for LocalSimilarityIndex functionality."""

import json
import tempfile
from pathlib import Path

import numpy as np
import pytest

from notemesh.domain.note import EmbeddedNote
from notemesh.exceptions import EmbeddingDimensionError
from notemesh.vector_dbs.local_db import LocalSimilarityIndex


@pytest.fixture
def populated_index() -> LocalSimilarityIndex:
    index = LocalSimilarityIndex()
    index.upsert("user-1", "a", np.array([1.0, 0.0, 0.0]))
    index.upsert("user-1", "b", np.array([0.9, 0.1, 0.0]))
    index.upsert("user-1", "c", np.array([0.0, 1.0, 0.0]))
    index.upsert("user-2", "z", np.array([1.0, 0.0, 0.0]))
    return index


def test_query_orders_by_distance(populated_index: LocalSimilarityIndex) -> None:
    results = populated_index.query("user-1", np.array([1.0, 0.0, 0.0]), None, 3)

    assert [note_id for note_id, _ in results] == ["a", "b", "c"]
    assert results[0][1] == pytest.approx(0.0)
    distances = [distance for _, distance in results]
    assert distances == sorted(distances)


def test_query_excludes_the_note_itself(populated_index: LocalSimilarityIndex) -> None:
    results = populated_index.query("user-1", np.array([1.0, 0.0, 0.0]), "a", 5)

    assert "a" not in [note_id for note_id, _ in results]


def test_query_excludes_other_users(populated_index: LocalSimilarityIndex) -> None:
    results = populated_index.query("user-1", np.array([1.0, 0.0, 0.0]), None, 10)

    assert "z" not in [note_id for note_id, _ in results]


def test_query_excludes_inactive_notes(populated_index: LocalSimilarityIndex) -> None:
    populated_index.set_active("user-1", "b", False)

    results = populated_index.query("user-1", np.array([1.0, 0.0, 0.0]), None, 10)

    assert [note_id for note_id, _ in results] == ["a", "c"]
    assert populated_index.has_vector("b")


def test_query_respects_k(populated_index: LocalSimilarityIndex) -> None:
    assert len(populated_index.query("user-1", np.array([1.0, 0.0, 0.0]), None, 2)) == 2
    assert populated_index.query("user-1", np.array([1.0, 0.0, 0.0]), None, 0) == []


def test_query_breaks_ties_by_note_id() -> None:
    index = LocalSimilarityIndex()
    index.upsert("user-1", "n2", np.array([0.0, 1.0]))
    index.upsert("user-1", "n1", np.array([0.0, 1.0]))

    results = index.query("user-1", np.array([1.0, 0.0]), None, 2)

    assert [note_id for note_id, _ in results] == ["n1", "n2"]


def test_query_on_empty_index_returns_nothing() -> None:
    assert LocalSimilarityIndex().query("user-1", np.array([1.0, 0.0]), None, 5) == []


def test_upsert_rejects_dimension_mismatch(populated_index: LocalSimilarityIndex) -> None:
    with pytest.raises(EmbeddingDimensionError):
        populated_index.upsert("user-1", "d", np.array([1.0, 0.0]))


def test_upsert_allows_replacing_the_only_vector_with_new_dimension() -> None:
    index = LocalSimilarityIndex()
    index.upsert("user-1", "a", np.array([1.0, 0.0, 0.0]))

    index.upsert("user-1", "a", np.array([1.0, 0.0]))

    assert index.snapshot("user-1")["a"].shape == (2,)


def test_upsert_keeps_inactive_flag(populated_index: LocalSimilarityIndex) -> None:
    populated_index.set_active("user-1", "c", False)

    populated_index.upsert("user-1", "c", np.array([0.0, 0.0, 1.0]))

    assert "c" not in populated_index.snapshot("user-1")


def test_remove(populated_index: LocalSimilarityIndex) -> None:
    populated_index.remove("a")
    populated_index.remove("does-not-exist")

    assert not populated_index.has_vector("a")
    assert set(populated_index.snapshot("user-1")) == {"b", "c"}


def test_clear(populated_index: LocalSimilarityIndex) -> None:
    populated_index.clear()

    assert populated_index.snapshot("user-1") == {}
    assert populated_index.snapshot("user-2") == {}


def test_from_data() -> None:
    entry = EmbeddedNote(note_id="a", user_id="user-1", vector=[0.6, 0.8])

    index = LocalSimilarityIndex.from_data({"a": entry})

    np.testing.assert_allclose(index.snapshot("user-1")["a"], [0.6, 0.8], rtol=1e-6)


def test_save_and_load(populated_index: LocalSimilarityIndex) -> None:
    populated_index.set_active("user-1", "c", False)

    with tempfile.TemporaryDirectory() as temp_dir:
        filepath = Path(temp_dir) / "vectors.json"
        populated_index.save(str(filepath))

        with open(filepath) as f:
            data = json.load(f)
        assert set(data["vectors"]) == {"a", "b", "c", "z"}

        loaded = LocalSimilarityIndex(filepath=filepath)

    assert set(loaded.snapshot("user-1")) == {"a", "b"}
    assert loaded.has_vector("c")
    np.testing.assert_allclose(loaded.snapshot("user-2")["z"], [1.0, 0.0, 0.0])


def test_autosave_writes_after_every_mutation() -> None:
    with tempfile.TemporaryDirectory() as temp_dir:
        filepath = Path(temp_dir) / "vectors.json"
        index = LocalSimilarityIndex(filepath=filepath, autosave=True)

        index.upsert("user-1", "a", np.array([1.0, 0.0]))
        assert "a" in LocalSimilarityIndex(filepath=filepath).snapshot("user-1")

        index.remove("a")
        assert not LocalSimilarityIndex(filepath=filepath).has_vector("a")


def test_save_without_filepath_raises() -> None:
    with pytest.raises(ValueError, match="No filepath provided"):
        LocalSimilarityIndex().save()
