from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterator, List

from ..config import CorpusConfig, SearchConfig
from ..errors import DocumentReadError

logger = logging.getLogger(__name__)


def read_document(path: Path, encoding: str = "utf-8") -> str:
    try:
        return path.read_text(encoding=encoding).strip()
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentReadError(path, e) from e


def load_corpus(cfg: SearchConfig | CorpusConfig) -> Dict[str, str]:
    """
    Read the fixed, configured set of documents keyed by file name.

    Insertion order follows ``corpus.documents``; ranking relies on it to
    break ties.
    """
    corpus_cfg = cfg.corpus if isinstance(cfg, SearchConfig) else cfg
    texts_dir = Path(corpus_cfg.texts_dir)

    documents: Dict[str, str] = {}
    for name in corpus_cfg.documents:
        documents[name] = read_document(texts_dir / name, corpus_cfg.encoding)
    logger.info("Loaded %d documents from %s", len(documents), texts_dir)
    return documents


def iter_source_files(source: Path) -> Iterator[Path]:
    """Yield ``source`` itself when it is a file, else every file below it."""
    source = Path(source)
    if source.is_file():
        yield source
        return
    files: List[Path] = sorted(p for p in source.rglob("*") if p.is_file())
    yield from files
