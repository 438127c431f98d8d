from __future__ import annotations

from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

# Order matters: ranking breaks score ties by reverse corpus order.
DEFAULT_DOCUMENTS = ["warp_drive.txt", "french_armed_forces.txt", "hitchhikers.txt"]


class CorpusConfig(BaseModel):
    texts_dir: Path = Path("resources/sampleTexts")
    documents: List[str] = Field(default_factory=lambda: list(DEFAULT_DOCUMENTS))
    encoding: str = "utf-8"


class IndexConfig(BaseModel):
    index_dir: Path = Path("resources/indexedFiles")
    max_hits: int = Field(default=100, gt=0)
    lowercase: bool = True
    scorer: Literal["plus", "okapi", "l"] = "plus"
    keep_generations: int = Field(default=2, ge=1)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_logs: bool = False
    query_log: Optional[Path] = None


class SearchConfig(BaseModel):
    corpus: CorpusConfig = Field(default_factory=CorpusConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def resolve_paths(self, base: Path) -> "SearchConfig":
        """Anchor relative directories at ``base`` (usually the config file's folder)."""
        cfg = self.model_copy(deep=True)
        if not cfg.corpus.texts_dir.is_absolute():
            cfg.corpus.texts_dir = base / cfg.corpus.texts_dir
        if not cfg.index.index_dir.is_absolute():
            cfg.index.index_dir = base / cfg.index.index_dir
        if cfg.logging.query_log is not None and not cfg.logging.query_log.is_absolute():
            cfg.logging.query_log = base / cfg.logging.query_log
        return cfg


def load_config(path: str | Path | None) -> SearchConfig:
    """
    Load a YAML config file into a validated SearchConfig.

    A missing file yields the defaults, anchored at the current directory.
    Relative paths inside the file are resolved against the file's directory.
    """
    if path is None:
        return SearchConfig().resolve_paths(Path.cwd())
    path = Path(path)
    if not path.exists():
        return SearchConfig().resolve_paths(Path.cwd())
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    try:
        cfg = SearchConfig.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid config {path}: {e}") from e
    return cfg.resolve_paths(path.resolve().parent)
