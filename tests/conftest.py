import logging
import sys
from pathlib import Path

import pytest

# Repo root = one level above tests/
REPO_ROOT = Path(__file__).resolve().parents[1]

# Ensure repo root is on sys.path so `import cli` works (root file).
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from document_search.config import CorpusConfig, IndexConfig, SearchConfig  # noqa: E402
from document_search.ingest.corpus import load_corpus  # noqa: E402

TEXTS_DIR = Path(__file__).resolve().parent / "data" / "sampleTexts"


@pytest.fixture
def texts_dir() -> Path:
    return TEXTS_DIR


@pytest.fixture
def cfg(tmp_path: Path) -> SearchConfig:
    return SearchConfig(
        corpus=CorpusConfig(texts_dir=TEXTS_DIR),
        index=IndexConfig(index_dir=tmp_path / "indexedFiles"),
    )


@pytest.fixture
def corpus(cfg: SearchConfig) -> dict:
    return load_corpus(cfg)


@pytest.fixture(autouse=True)
def _restore_root_logging():
    # cli.main() reconfigures the root logger; undo it between tests
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
