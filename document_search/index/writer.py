from __future__ import annotations

import json
import logging
import os
import pickle
import shutil
import time
from collections import Counter
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional

from rank_bm25 import BM25L, BM25Okapi, BM25Plus

from ..config import SearchConfig
from ..errors import IndexReadError, IndexWriteError
from ..ingest.corpus import iter_source_files
from .reader import (
    BM25_FILE,
    CURRENT_FILE,
    DOCUMENTS_FILE,
    META_FILE,
    POSTINGS_FILE,
    current_generation,
    generation_number,
    read_documents,
    tokenize,
)
from .schema import IndexedDocument, IndexStats

logger = logging.getLogger(__name__)

LOCK_FILE = "write.lock"
STALE_LOCK_S = 600

SCORERS = {"plus": BM25Plus, "okapi": BM25Okapi, "l": BM25L}


def _lock_is_stale(lock: Path) -> bool:
    """True when the lock's owner process is gone, or an unreadable lock is old."""
    try:
        raw = lock.read_text(encoding="ascii").strip()
        age = time.time() - lock.stat().st_mtime
    except (OSError, UnicodeDecodeError):
        return False
    try:
        pid = int(raw)
    except ValueError:
        return age > STALE_LOCK_S
    if pid == os.getpid():
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return True
    except OSError:
        return False
    return False


class IndexBuilder:
    """
    Writes a whitespace-analysed inverted index into ``index_dir``.

    The directory is opened create-or-append: documents already indexed are
    kept and re-indexed paths replace their previous entry. Each build
    publishes a new generation and swaps ``CURRENT`` to it, so readers see
    either the old or the new index, never a mix.
    """

    def __init__(self, cfg: SearchConfig):
        self.cfg = cfg
        self.index_dir = Path(cfg.index.index_dir)

    # ---- public API ----
    def build(self, source: Path, index_dir: Optional[Path] = None) -> IndexStats:
        """Index one file, or every file below a directory."""
        source = Path(source)
        if not source.exists():
            raise IndexWriteError(source, "scan", FileNotFoundError(str(source)))
        target = Path(index_dir) if index_dir is not None else self.index_dir

        with self._write_lock(target):
            docs = self._load_existing(target)
            for f in iter_source_files(source):
                self._upsert(docs, self._read_source(f))
            return self._publish(target, docs)

    def build_corpus(
        self,
        corpus: Mapping[str, str],
        index_dir: Optional[Path] = None,
        source_dir: Optional[Path] = None,
    ) -> IndexStats:
        """Index an in-memory corpus; each document is keyed as ``source_dir/doc_id``."""
        target = Path(index_dir) if index_dir is not None else self.index_dir
        base = Path(source_dir) if source_dir is not None else Path(self.cfg.corpus.texts_dir)
        now_ms = int(time.time() * 1000)

        with self._write_lock(target):
            docs = self._load_existing(target)
            for doc_id, text in corpus.items():
                path = base / doc_id
                try:
                    modified = int(path.stat().st_mtime * 1000)
                except OSError:
                    modified = now_ms
                self._upsert(docs, IndexedDocument(path=str(path), modified=modified, contents=text))
            return self._publish(target, docs)

    # ---- internals ----
    @contextmanager
    def _write_lock(self, index_dir: Path) -> Iterator[None]:
        try:
            index_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IndexWriteError(index_dir, "create", e) from e

        lock = index_dir / LOCK_FILE
        fd = self._acquire(lock, index_dir)
        try:
            try:
                os.write(fd, str(os.getpid()).encode("ascii"))
            finally:
                os.close(fd)
            yield
        finally:
            try:
                lock.unlink()
            except FileNotFoundError:
                pass

    @staticmethod
    def _acquire(lock: Path, index_dir: Path) -> int:
        for attempt in range(2):
            try:
                return os.open(lock, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError as e:
                if attempt == 0 and _lock_is_stale(lock):
                    logger.warning("Removing stale index lock %s", lock)
                    try:
                        lock.unlink()
                    except FileNotFoundError:
                        pass
                    continue
                raise IndexWriteError(index_dir, "lock", RuntimeError(f"{lock} is held by another writer")) from e
            except OSError as e:
                raise IndexWriteError(index_dir, "lock", e) from e
        raise IndexWriteError(index_dir, "lock", RuntimeError(f"{lock} is held by another writer"))

    def _load_existing(self, index_dir: Path) -> Dict[str, IndexedDocument]:
        try:
            gen = current_generation(index_dir)
            if gen is None:
                return {}
            return {d.path: d for d in read_documents(gen)}
        except IndexReadError as e:
            raise IndexWriteError(index_dir, "append", e) from e

    @staticmethod
    def _upsert(docs: Dict[str, IndexedDocument], doc: IndexedDocument) -> None:
        # delete-then-add: a re-indexed path moves to the end of the index
        docs.pop(doc.path, None)
        docs[doc.path] = doc

    def _read_source(self, path: Path) -> IndexedDocument:
        try:
            contents = path.read_text(encoding=self.cfg.corpus.encoding)
            modified = int(path.stat().st_mtime * 1000)
        except (OSError, UnicodeDecodeError) as e:
            raise IndexWriteError(path, "read source", e) from e
        return IndexedDocument(path=str(path), modified=modified, contents=contents)

    def _publish(self, index_dir: Path, docs: Dict[str, IndexedDocument]) -> IndexStats:
        lowercase = self.cfg.index.lowercase
        ordered: List[IndexedDocument] = list(docs.values())
        token_lists = [tokenize(d.contents, lowercase) for d in ordered]

        postings: Dict[str, List[list]] = {}
        for doc, tokens in zip(ordered, token_lists):
            for term, tf in Counter(tokens).items():
                postings.setdefault(term, []).append([doc.path, tf])

        # number past every directory on disk, including ones orphaned by an
        # interrupted publish that never reached the CURRENT swap
        number = max((generation_number(p) for p in index_dir.glob("gen-*")), default=0) + 1
        name = f"gen-{number:06d}"
        staging = index_dir / f"{name}.tmp"
        final = index_dir / name

        try:
            if staging.exists():
                shutil.rmtree(staging)
            staging.mkdir()
            with open(staging / DOCUMENTS_FILE, "w", encoding="utf-8") as out:
                for d in ordered:
                    out.write(d.model_dump_json() + "\n")
            (staging / POSTINGS_FILE).write_text(json.dumps(postings), encoding="utf-8")
            if any(token_lists):
                scorer = SCORERS[self.cfg.index.scorer](token_lists)
                with open(staging / BM25_FILE, "wb") as f:
                    pickle.dump(scorer, f)
            meta = {
                "lowercase": lowercase,
                "scorer": self.cfg.index.scorer,
                "documents": len(ordered),
                "created_ms": int(time.time() * 1000),
            }
            (staging / META_FILE).write_text(json.dumps(meta), encoding="utf-8")
            os.replace(staging, final)

            pointer_tmp = index_dir / f"{CURRENT_FILE}.tmp"
            pointer_tmp.write_text(name, encoding="utf-8")
            os.replace(pointer_tmp, index_dir / CURRENT_FILE)
        except OSError as e:
            raise IndexWriteError(index_dir, "publish", e) from e

        self._prune(index_dir)
        stats = IndexStats(documents=len(ordered), terms=len(postings), generation=number)
        logger.info(
            "Indexed %d documents (%d terms) into %s [%s]",
            stats.documents, stats.terms, index_dir, name,
        )
        return stats

    def _prune(self, index_dir: Path) -> None:
        keep = self.cfg.index.keep_generations
        gens = sorted(
            (p for p in index_dir.glob("gen-*") if p.is_dir() and not p.name.endswith(".tmp")),
            key=generation_number,
        )
        for old in gens[:-keep]:
            try:
                shutil.rmtree(old)
            except OSError as e:
                logger.warning("Could not remove old index generation %s: %s", old, e)


def build_index(cfg: SearchConfig, source: Optional[Path] = None) -> IndexStats:
    return IndexBuilder(cfg).build(Path(source) if source is not None else Path(cfg.corpus.texts_dir))
