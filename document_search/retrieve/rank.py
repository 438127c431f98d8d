from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Sequence, Union

from ..index.schema import RankedDocument

ScoreInput = Union[Mapping[str, int], Sequence[RankedDocument]]


def as_score_map(results: Sequence[RankedDocument]) -> Dict[str, int]:
    """
    Materialise a ranked result as a score map that ranks back to the same order.

    Entries are inserted last-to-first because ties resolve to the most
    recently inserted entry.
    """
    return {r.doc_id: r.score for r in reversed(results)}


def rank(scores: ScoreInput, all_document_ids: Iterable[str]) -> List[RankedDocument]:
    """
    Order documents by score, highest first, covering every known document.

    Ids missing from ``scores`` get 0 and are appended after the scored ones.
    Equal scores come out in reverse insertion order of the completed map.
    """
    if isinstance(scores, Mapping):
        completed: Dict[str, int] = dict(scores)
    else:
        completed = as_score_map(scores)
    for doc_id in all_document_ids:
        completed.setdefault(doc_id, 0)

    items = list(reversed(completed.items()))
    items.sort(key=lambda kv: kv[1], reverse=True)
    return [RankedDocument(doc_id=doc_id, score=score) for doc_id, score in items]
