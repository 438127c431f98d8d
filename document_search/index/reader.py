from __future__ import annotations

import json
import logging
import math
import pickle
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set

from pydantic import ValidationError

from ..config import SearchConfig
from ..errors import IndexReadError
from .query import Clause, Occur, ParsedQuery, parse_query
from .schema import IndexedDocument

logger = logging.getLogger(__name__)

CURRENT_FILE = "CURRENT"
DOCUMENTS_FILE = "documents.jsonl"
POSTINGS_FILE = "postings.json"
BM25_FILE = "bm25.pkl"
META_FILE = "meta.json"


def tokenize(text: str, lowercase: bool = True) -> List[str]:
    toks = text.split()
    return [t.lower() for t in toks] if lowercase else toks


def doc_id_from_path(path: str) -> str:
    return re.split(r"[\\/]", path)[-1]


def generation_number(gen_dir: Path) -> int:
    try:
        return int(gen_dir.name.split("-", 1)[1].split(".", 1)[0])
    except (IndexError, ValueError):
        return 0


def current_generation(index_dir: Path) -> Optional[Path]:
    """The live generation directory named by ``CURRENT``, or None for an empty index."""
    pointer = Path(index_dir) / CURRENT_FILE
    try:
        name = pointer.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise IndexReadError(index_dir, "resolve current generation", e) from e
    gen = Path(index_dir) / name
    if not gen.is_dir():
        raise IndexReadError(index_dir, "resolve current generation", FileNotFoundError(str(gen)))
    return gen


def read_documents(gen_dir: Path) -> List[IndexedDocument]:
    path = gen_dir / DOCUMENTS_FILE
    docs: List[IndexedDocument] = []
    try:
        with open(path, "r", encoding="utf-8") as f:
            for i, ln in enumerate(f, start=1):
                s = ln.strip()
                if not s:
                    continue
                try:
                    docs.append(IndexedDocument.model_validate_json(s))
                except ValidationError as e:
                    raise IndexReadError(path, f"parse line {i}", e) from e
    except OSError as e:
        raise IndexReadError(path, "read documents", e) from e
    return docs


def _round_half_up(x: float) -> int:
    return max(0, int(math.floor(x + 0.5)))


class IndexSearcher:
    """
    Point-in-time reader over one index generation.

    The generation is resolved once at construction; later builds publish
    new generations without affecting this reader.
    """

    def __init__(self, index_dir: Path, cfg: Optional[SearchConfig] = None):
        self.index_dir = Path(index_dir)
        self.max_hits = cfg.index.max_hits if cfg is not None else 100

        gen = current_generation(self.index_dir)
        if gen is None:
            raise IndexReadError(self.index_dir, "open", FileNotFoundError("no index found"))
        self.generation = gen

        try:
            meta = json.loads((gen / META_FILE).read_text(encoding="utf-8"))
            raw_postings = json.loads((gen / POSTINGS_FILE).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise IndexReadError(gen, "load postings", e) from e
        self.lowercase = bool(meta.get("lowercase", True))

        self.documents = read_documents(gen)
        self.postings: Dict[str, Dict[str, int]] = {
            term: {path: tf for path, tf in plist} for term, plist in raw_postings.items()
        }

        self.scorer = None
        bm25_path = gen / BM25_FILE
        if bm25_path.exists():
            try:
                with open(bm25_path, "rb") as f:
                    self.scorer = pickle.load(f)
            except (OSError, pickle.UnpicklingError, EOFError, AttributeError, ImportError) as e:
                raise IndexReadError(bm25_path, "load scorer", e) from e

        self._tokens: Optional[List[List[str]]] = None
        logger.debug("Opened index %s (%d documents)", gen, len(self.documents))

    def _doc_tokens(self) -> List[List[str]]:
        if self._tokens is None:
            self._tokens = [tokenize(d.contents, self.lowercase) for d in self.documents]
        return self._tokens

    def _analyse(self, parsed: ParsedQuery) -> List[Clause]:
        if not self.lowercase:
            return list(parsed.clauses)
        return [Clause(c.occur, tuple(t.lower() for t in c.terms)) for c in parsed.clauses]

    def _clause_docs(self, clause: Clause) -> Set[int]:
        """Indexes of documents matching a single clause."""
        paths = [d.path for d in self.documents]
        if not clause.is_phrase:
            posting = self.postings.get(clause.terms[0], {})
            return {i for i, p in enumerate(paths) if p in posting}

        # phrase: candidates must hold every term, then check adjacency
        candidates: Optional[Set[str]] = None
        for term in clause.terms:
            have = set(self.postings.get(term, {}))
            candidates = have if candidates is None else candidates & have
        if not candidates:
            return set()
        n = len(clause.terms)
        out: Set[int] = set()
        for i, toks in enumerate(self._doc_tokens()):
            if paths[i] not in candidates:
                continue
            if any(tuple(toks[k:k + n]) == clause.terms for k in range(len(toks) - n + 1)):
                out.add(i)
        return out

    def _matching(self, clauses: Sequence[Clause]) -> List[int]:
        required = [self._clause_docs(c) for c in clauses if c.occur is Occur.MUST]
        optional = [self._clause_docs(c) for c in clauses if c.occur is Occur.SHOULD]
        prohibited = [self._clause_docs(c) for c in clauses if c.occur is Occur.MUST_NOT]

        if required:
            hits = set.intersection(*required)
        else:
            hits = set().union(*optional) if optional else set()
        for excluded in prohibited:
            hits -= excluded
        return sorted(hits)

    def search(self, query: str) -> Dict[str, int]:
        """
        Run ``query`` and return ``{document id: rounded score}`` for the top hits.

        Raises:
            QuerySyntaxError: the query cannot be parsed.
        """
        parsed = parse_query(query)
        clauses = self._analyse(parsed)
        hits = self._matching(clauses)
        if not hits:
            return {}

        terms = [t for c in clauses if c.occur is not Occur.MUST_NOT for t in c.terms]
        raw = self.scorer.get_scores(terms) if self.scorer is not None else [0.0] * len(self.documents)
        ranked = sorted(hits, key=lambda i: float(raw[i]), reverse=True)[: self.max_hits]

        # a matching document never scores 0, which is reserved for non-matches
        result: Dict[str, int] = {}
        for i in ranked:
            result.setdefault(doc_id_from_path(self.documents[i].path), max(1, _round_half_up(float(raw[i]))))
        logger.debug("Indexed query %r matched %d documents", query, len(result))
        return result


def search_index(query: str, index_dir: Path, cfg: Optional[SearchConfig] = None) -> Dict[str, int]:
    return IndexSearcher(index_dir, cfg).search(query)
