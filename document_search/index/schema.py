from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel


class SearchMethod(str, Enum):
    LITERAL = "1"
    PATTERN = "2"
    INDEXED = "3"

    @property
    def label(self) -> str:
        return self.name.lower()


class IndexedDocument(BaseModel):
    path: str                  # exact-match key
    modified: int              # epoch millis; carried, not searched
    contents: str


class IndexStats(BaseModel):
    documents: int
    terms: int
    generation: int


class RankedDocument(BaseModel):
    doc_id: str
    score: int


class SearchOutcome(BaseModel):
    query: str
    method: SearchMethod
    results: List[RankedDocument]
    elapsed_ms: float
