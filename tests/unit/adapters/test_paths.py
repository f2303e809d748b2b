import pytest

from learnit.quiz.adapters.paths import deep_merge, get_path, new_doc_id, set_path, split_path


def test_new_doc_id_shape():
    ids = {new_doc_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(len(i) == 20 and i.isalnum() for i in ids)


def test_split_path_rejects_empty_segments():
    with pytest.raises(ValueError):
        split_path("players..score")


def test_set_path_creates_parents():
    doc: dict = {}
    set_path(doc, "players.p1.score", 5)
    assert doc == {"players": {"p1": {"score": 5}}}


def test_set_path_keeps_siblings():
    doc = {"players": {"p1": {"name": "Ann", "score": 0}}}
    set_path(doc, "players.p1.score", 100)
    assert doc["players"]["p1"] == {"name": "Ann", "score": 100}


def test_get_path_default():
    assert get_path({"a": {"b": 1}}, "a.c", default=0) == 0
    assert get_path({"a": {"b": 1}}, "a.b") == 1


def test_deep_merge():
    target = {"a": {"x": 1, "y": 2}, "b": 1}
    deep_merge(target, {"a": {"y": 3}, "c": 4})
    assert target == {"a": {"x": 1, "y": 3}, "b": 1, "c": 4}
