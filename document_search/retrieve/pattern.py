from __future__ import annotations

import re
from typing import Dict, Mapping

from ..errors import InvalidQuery


def compile_literal(query: str) -> re.Pattern[str]:
    # Metacharacters in the query are escaped; only the literal text is matched.
    return re.compile(re.escape(query), re.IGNORECASE)


def pattern_match(query: str, corpus: Mapping[str, str]) -> Dict[str, int]:
    """Count non-overlapping, case-insensitive literal occurrences per document."""
    if not query:
        raise InvalidQuery()
    pattern = compile_literal(query)
    return {
        doc_id: sum(1 for _ in pattern.finditer(text)) for doc_id, text in corpus.items()
    }
