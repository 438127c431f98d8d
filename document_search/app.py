from __future__ import annotations

import concurrent.futures
import logging
import time
from pathlib import Path
from typing import Dict, Mapping, Optional

from .config import SearchConfig, load_config
from .errors import InvalidStrategy, QueryTimeout
from .index.reader import IndexSearcher
from .index.schema import IndexStats, SearchMethod, SearchOutcome
from .index.writer import IndexBuilder
from .ingest.corpus import load_corpus
from .retrieve.literal import literal_match
from .retrieve.pattern import pattern_match
from .retrieve.rank import rank
from .utils.log import QueryLog

__all__ = ["DocumentSearch", "load_config", "parse_method", "search_document"]

logger = logging.getLogger(__name__)


def parse_method(selector: object) -> SearchMethod:
    """Map ``"1"``/``"2"``/``"3"`` (or a method name) to a SearchMethod."""
    if isinstance(selector, SearchMethod):
        return selector
    if isinstance(selector, str):
        s = selector.strip().lower()
        for m in SearchMethod:
            if s in (m.value, m.label):
                return m
    raise InvalidStrategy(selector)


class DocumentSearch:
    """
    Dispatches queries over a loaded corpus to one of the three strategies.

    The corpus is held for the lifetime of the object. The inverted index is
    built from it lazily on the first indexed query, or via ``ensure_index``.
    """

    def __init__(self, cfg: SearchConfig, corpus: Optional[Mapping[str, str]] = None):
        self.cfg = cfg
        self.corpus: Dict[str, str] = dict(corpus) if corpus is not None else load_corpus(cfg)
        self.index_dir = Path(cfg.index.index_dir)
        self._index_ready = False
        self._query_log = QueryLog(cfg.logging.query_log) if cfg.logging.query_log else None

    def ensure_index(self, force: bool = False) -> Optional[IndexStats]:
        """Index the corpus into ``index.index_dir`` unless already done in this session."""
        if self._index_ready and not force:
            return None
        stats = IndexBuilder(self.cfg).build_corpus(
            self.corpus, self.index_dir, source_dir=self.cfg.corpus.texts_dir
        )
        self._index_ready = True
        return stats

    def _dispatch(self, query: str, method: SearchMethod) -> Dict[str, int]:
        if method is SearchMethod.LITERAL:
            return literal_match(query, self.corpus)
        if method is SearchMethod.PATTERN:
            return pattern_match(query, self.corpus)
        # the shared index may hold files indexed from outside this corpus
        hits = IndexSearcher(self.index_dir, self.cfg).search(query)
        return {doc_id: score for doc_id, score in hits.items() if doc_id in self.corpus}

    def _run(self, query: str, method: SearchMethod, timeout_s: Optional[float]) -> Dict[str, int]:
        if method is SearchMethod.INDEXED:
            # built before the deadline starts; a timed-out worker must not own write.lock
            self.ensure_index()
        if timeout_s is None:
            return self._dispatch(query, method)
        pool = concurrent.futures.ThreadPoolExecutor(max_workers=1)
        try:
            future = pool.submit(self._dispatch, query, method)
            try:
                return future.result(timeout=timeout_s)
            except concurrent.futures.TimeoutError as e:
                future.cancel()
                raise QueryTimeout(timeout_s) from e
        finally:
            pool.shutdown(wait=False)

    def search_document(
        self, query: str, method: object, timeout_s: Optional[float] = None
    ) -> SearchOutcome:
        """
        Run one query and rank every corpus document.

        Raises:
            InvalidStrategy: unknown selector; nothing is dispatched.
            InvalidQuery, QuerySyntaxError, IndexReadError, IndexWriteError,
            QueryTimeout: the query is aborted.
        """
        m = parse_method(method)

        t0 = time.perf_counter()
        scores = self._run(query, m, timeout_s)
        elapsed_ms = (time.perf_counter() - t0) * 1000

        outcome = SearchOutcome(
            query=query,
            method=m,
            results=rank(scores, self.corpus.keys()),
            elapsed_ms=elapsed_ms,
        )
        logger.debug("%s search %r took %.3f ms", m.label, query, elapsed_ms)
        if self._query_log is not None:
            self._query_log.record(outcome)
        return outcome


def search_document(
    query: str,
    method: object,
    corpus: Mapping[str, str],
    cfg: Optional[SearchConfig] = None,
) -> SearchOutcome:
    return DocumentSearch(cfg or SearchConfig(), corpus).search_document(query, method)
