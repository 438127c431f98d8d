from __future__ import annotations

from typing import Dict, Mapping

from ..errors import InvalidQuery


def count_literal(query: str, text: str) -> int:
    """
    Count case-insensitive occurrences of ``query`` in one left-to-right pass.

    On a mismatch the cursor restarts at zero without re-testing the current
    character, so overlapping or self-prefixed occurrences are undercounted
    ("aa" in "aaa" is 1, "ab" in "aab" is 0).
    """
    n = len(query)
    if len(text) < n:
        return 0
    q = [c.lower() for c in query]
    count = 0
    j = 0
    for ch in text:
        if ch.lower() == q[j]:
            j += 1
        else:
            j = 0
        if j == n:
            count += 1
            j = 0
    return count


def literal_match(query: str, corpus: Mapping[str, str]) -> Dict[str, int]:
    if not query:
        raise InvalidQuery()
    return {doc_id: count_literal(query, text) for doc_id, text in corpus.items()}
