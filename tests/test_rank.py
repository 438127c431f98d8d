from document_search.index.schema import RankedDocument
from document_search.retrieve.rank import as_score_map, rank


def _pairs(results):
    return [(r.doc_id, r.score) for r in results]


def test_sorts_descending_with_reverse_insertion_ties():
    out = rank({"a": 1, "b": 3, "c": 1}, ["a", "b", "c"])
    assert _pairs(out) == [("b", 3), ("c", 1), ("a", 1)]


def test_missing_documents_default_to_zero():
    out = rank({"x": 2}, ["x", "y", "z"])
    assert _pairs(out) == [("x", 2), ("z", 0), ("y", 0)]


def test_every_document_appears_once():
    out = rank({"a": 0, "b": 5}, {"a", "b", "c"})
    assert sorted(r.doc_id for r in out) == ["a", "b", "c"]


def test_ranking_is_idempotent():
    first = rank({"a": 0, "b": 2, "c": 0, "d": 2}, ["a", "b", "c", "d"])
    assert rank(first, ["a", "b", "c", "d"]) == first
    assert rank(as_score_map(first), ["a", "b", "c", "d"]) == first


def test_accepts_ranked_documents():
    ranked = [RankedDocument(doc_id="k", score=4), RankedDocument(doc_id="j", score=1)]
    assert _pairs(rank(ranked, ["j", "k", "m"])) == [("k", 4), ("j", 1), ("m", 0)]
