import json
import time

import pytest

from document_search.app import DocumentSearch, parse_method, search_document
from document_search.config import CorpusConfig, IndexConfig, SearchConfig
from document_search.errors import InvalidQuery, InvalidStrategy, QuerySyntaxError, QueryTimeout
from document_search.index.reader import CURRENT_FILE
from document_search.index.schema import SearchMethod
from document_search.index.writer import LOCK_FILE, IndexBuilder


def _pairs(outcome):
    return [(r.doc_id, r.score) for r in outcome.results]


def test_literal_warp(cfg, corpus):
    outcome = DocumentSearch(cfg, corpus).search_document("warp", "1")
    assert _pairs(outcome) == [
        ("warp_drive.txt", 6),
        ("hitchhikers.txt", 0),
        ("french_armed_forces.txt", 0),
    ]
    assert outcome.method is SearchMethod.LITERAL
    assert outcome.elapsed_ms >= 0


def test_pattern_and(cfg, corpus):
    outcome = DocumentSearch(cfg, corpus).search_document(" and ", "2")
    assert _pairs(outcome) == [
        ("french_armed_forces.txt", 27),
        ("hitchhikers.txt", 11),
        ("warp_drive.txt", 3),
    ]


def test_literal_long_phrase(cfg, corpus):
    outcome = DocumentSearch(cfg, corpus).search_document(
        "paved the way for European integration", "1"
    )
    assert _pairs(outcome) == [
        ("french_armed_forces.txt", 1),
        ("hitchhikers.txt", 0),
        ("warp_drive.txt", 0),
    ]


def test_indexed_warp_ranks_containing_document_first(cfg, corpus):
    outcome = DocumentSearch(cfg, corpus).search_document("warp", "3")
    ids = [r.doc_id for r in outcome.results]
    assert sorted(ids) == sorted(corpus)
    assert ids[0] == "warp_drive.txt"
    assert outcome.results[0].score > 0
    assert [r.score for r in outcome.results[1:]] == [0, 0]


def test_indexed_long_query(cfg, corpus):
    outcome = DocumentSearch(cfg, corpus).search_document(
        "paved the way for European integration", "3"
    )
    ids = [r.doc_id for r in outcome.results]
    assert len(ids) == 3
    assert ids[0] == "french_armed_forces.txt"


@pytest.mark.parametrize("method", ["1", "2", "3"])
@pytest.mark.parametrize("query", ["warp", "drive", "zzzz-no-match"])
def test_results_cover_the_whole_corpus(cfg, corpus, method, query):
    outcome = DocumentSearch(cfg, corpus).search_document(query, method)
    assert sorted(r.doc_id for r in outcome.results) == sorted(corpus)


def test_invalid_selector_is_reported(cfg, corpus):
    engine = DocumentSearch(cfg, corpus)
    with pytest.raises(InvalidStrategy):
        engine.search_document("warp", "4")
    # nothing was dispatched, so no index was built either
    assert not cfg.index.index_dir.exists()


def test_empty_queries(cfg, corpus):
    engine = DocumentSearch(cfg, corpus)
    for method in ("1", "2"):
        with pytest.raises(InvalidQuery):
            engine.search_document("", method)
    with pytest.raises(QuerySyntaxError):
        engine.search_document("", "3")


def test_session_survives_bad_queries(cfg, corpus):
    engine = DocumentSearch(cfg, corpus)
    with pytest.raises(QuerySyntaxError):
        engine.search_document('"open', "3")
    assert engine.search_document("warp", "3").results[0].doc_id == "warp_drive.txt"


def test_parse_method_accepts_names():
    assert parse_method("literal") is SearchMethod.LITERAL
    assert parse_method(" 2 ") is SearchMethod.PATTERN
    assert parse_method(SearchMethod.INDEXED) is SearchMethod.INDEXED
    with pytest.raises(InvalidStrategy):
        parse_method(3)


def test_functional_facade(cfg, corpus):
    outcome = search_document("warp", "2", corpus, cfg)
    assert outcome.results[0].doc_id == "warp_drive.txt"


def test_timeout_aborts_query(cfg, corpus, monkeypatch):
    engine = DocumentSearch(cfg, corpus)

    def slow(query, method):
        time.sleep(0.5)
        return {}

    monkeypatch.setattr(engine, "_dispatch", slow)
    with pytest.raises(QueryTimeout):
        engine.search_document("warp", "1", timeout_s=0.05)


def test_query_log(cfg, corpus, tmp_path):
    cfg.logging.query_log = tmp_path / "logs" / "queries.jsonl"
    DocumentSearch(cfg, corpus).search_document("warp", "1")
    [line] = cfg.logging.query_log.read_text(encoding="utf-8").splitlines()
    event = json.loads(line)
    assert event["method"] == "literal"
    assert event["results"][0] == {"doc_id": "warp_drive.txt", "score": 6}


def test_indexed_ignores_files_outside_corpus(cfg, corpus, tmp_path):
    other = tmp_path / "other.txt"
    other.write_text("warp warp warp", encoding="utf-8")
    IndexBuilder(cfg).build(other)

    outcome = DocumentSearch(cfg, corpus).search_document("warp", "3")
    ids = [r.doc_id for r in outcome.results]
    assert len(ids) == len(corpus)
    assert sorted(ids) == sorted(corpus)
    assert ids[0] == "warp_drive.txt"


def test_indexed_weak_match_ranks_above_non_matches(tmp_path):
    cfg = SearchConfig(
        corpus=CorpusConfig(texts_dir=tmp_path),
        index=IndexConfig(index_dir=tmp_path / "idx", scorer="okapi"),
    )
    corpus = {"a.txt": "alpha beta", "b.txt": "alpha gamma", "c.txt": "delta"}
    outcome = DocumentSearch(cfg, corpus).search_document("alpha", "3")
    assert outcome.results[-1].doc_id == "c.txt"
    assert outcome.results[-1].score == 0
    assert all(r.score >= 1 for r in outcome.results[:2])


def test_indexed_timeout_leaves_index_unlocked(cfg, corpus, monkeypatch):
    engine = DocumentSearch(cfg, corpus)

    def slow(query, method):
        time.sleep(0.5)
        return {}

    monkeypatch.setattr(engine, "_dispatch", slow)
    with pytest.raises(QueryTimeout):
        engine.search_document("warp", "3", timeout_s=0.05)
    assert not (cfg.index.index_dir / LOCK_FILE).exists()
    assert (cfg.index.index_dir / CURRENT_FILE).exists()
