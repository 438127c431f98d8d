from __future__ import annotations

from pathlib import Path
from typing import Optional


class SearchError(Exception):
    """Base class for every error a search request can report."""


class InvalidStrategy(SearchError):
    def __init__(self, selector: object):
        self.selector = selector
        super().__init__(f"Invalid method selection: {selector!r}")


class InvalidQuery(SearchError):
    def __init__(self, reason: str = "query must not be empty"):
        self.reason = reason
        super().__init__(f"Invalid query: {reason}")


class DocumentReadError(SearchError):
    def __init__(self, path: str | Path, cause: Optional[BaseException] = None):
        self.path = Path(path)
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to read document {self.path}{detail}")


class _IndexIOError(SearchError):
    action = "access"

    def __init__(self, path: str | Path, operation: str, cause: Optional[BaseException] = None):
        self.path = Path(path)
        self.operation = operation
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to {self.action} index at {self.path} ({operation}){detail}")


class IndexWriteError(_IndexIOError):
    action = "write"


class IndexReadError(_IndexIOError):
    action = "read"


class QuerySyntaxError(SearchError):
    def __init__(self, query: str, reason: str):
        self.query = query
        self.reason = reason
        super().__init__(f"Cannot parse query {query!r}: {reason}")


class QueryTimeout(SearchError):
    def __init__(self, timeout_s: float):
        self.timeout_s = timeout_s
        super().__init__(f"Query did not finish within {timeout_s:g}s")
