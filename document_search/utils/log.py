from __future__ import annotations

import datetime
import json
from pathlib import Path

from ..index.schema import SearchOutcome


class QueryLog:
    """Appends one JSON line per executed search to a .jsonl file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def record(self, outcome: SearchOutcome) -> None:
        event = {
            "ts": datetime.datetime.now().isoformat(timespec="seconds"),
            "query": outcome.query,
            "method": outcome.method.label,
            "elapsed_ms": round(outcome.elapsed_ms, 3),
            "results": [r.model_dump() for r in outcome.results],
        }
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(event, ensure_ascii=False) + "\n")
