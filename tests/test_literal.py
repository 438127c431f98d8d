import pytest

from document_search.errors import InvalidQuery
from document_search.retrieve.literal import count_literal, literal_match


def test_counts_case_insensitively():
    assert count_literal("WARP", "Warp drive, warp factor, WARP") == 3


def test_document_shorter_than_query_scores_zero():
    assert literal_match("longer query", {"a.txt": "short"}) == {"a.txt": 0}


def test_restart_at_zero_undercounts_overlaps():
    # the cursor restarts without re-testing the mismatching character
    assert count_literal("aa", "aaa") == 1
    assert count_literal("ana", "banana") == 1
    assert count_literal("ab", "aab") == 0


def test_empty_query_is_rejected():
    with pytest.raises(InvalidQuery):
        literal_match("", {"a.txt": "text"})


def test_fixture_counts(corpus):
    scores = literal_match("warp", corpus)
    assert scores == {"warp_drive.txt": 6, "french_armed_forces.txt": 0, "hitchhikers.txt": 0}
    assert list(scores) == list(corpus)
