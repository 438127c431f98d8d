from __future__ import annotations

import datetime
import json
import re
from pathlib import Path
from typing import List, Optional

from ..index.schema import SearchMethod, SearchOutcome

FORMATS = ("json", "md", "txt")


def _timestamp() -> str:
    return datetime.datetime.now().strftime("%Y%m%d_%H%M%S")


def _slug(s: str, max_len: int = 60) -> str:
    s = s.strip().lower()
    s = re.sub(r"[^a-z0-9\-\s_]+", "", s)
    s = re.sub(r"[\s_]+", "-", s)
    return s[:max_len].strip("-") or "query"


def result_lines(outcome: SearchOutcome) -> List[str]:
    """
    One line per ranked document.

    Counting strategies report ``"<id> - <n> matches"``; the indexed strategy
    reports only the id, since its scores are relevance, not counts.
    """
    if outcome.method is SearchMethod.INDEXED:
        return [r.doc_id for r in outcome.results]
    return [f"{r.doc_id} - {r.score} matches" for r in outcome.results]


def elapsed_line(outcome: SearchOutcome) -> str:
    return f"Elapsed time: {int(outcome.elapsed_ms)} ms"


def infer_format(out_path: Optional[str], fmt: Optional[str]) -> str:
    if fmt:
        return fmt.lower()
    if out_path:
        ext = Path(out_path).suffix.lower().lstrip(".")
        if ext in FORMATS:
            return ext
    return "json"


def ensure_outpath(out_path: Optional[str], fmt: str, save_dir: Optional[str], query: str) -> Path:
    if out_path:
        p = Path(out_path)
        p.parent.mkdir(parents=True, exist_ok=True)
        return p
    base_dir = Path(save_dir or "outputs")
    base_dir.mkdir(parents=True, exist_ok=True)
    return base_dir / f"{_timestamp()}_{_slug(query)}.{fmt}"


def as_markdown(outcome: SearchOutcome) -> str:
    lines: List[str] = [f"# {outcome.query}", "", f"Method: {outcome.method.label}", ""]
    lines += [f"{i}. {line}" for i, line in enumerate(result_lines(outcome), start=1)]
    lines += ["", elapsed_line(outcome)]
    return "\n".join(lines) + "\n"


def as_text(outcome: SearchOutcome) -> str:
    lines = [f"QUERY: {outcome.query}", f"METHOD: {outcome.method.label}", ""]
    lines += ["\t" + line for line in result_lines(outcome)]
    lines += ["", elapsed_line(outcome)]
    return "\n".join(lines) + "\n"


def write_output(
    outcome: SearchOutcome,
    out_path: Optional[str] = None,
    fmt: Optional[str] = None,
    save_dir: Optional[str] = None,
) -> Path:
    fmt2 = infer_format(out_path, fmt)
    if fmt2 not in FORMATS:
        raise ValueError(f"Unsupported format: {fmt2}")
    target = ensure_outpath(out_path, fmt2, save_dir, outcome.query)
    if fmt2 == "json":
        target.write_text(json.dumps(outcome.model_dump(mode="json"), ensure_ascii=False, indent=2), encoding="utf-8")
    elif fmt2 == "md":
        target.write_text(as_markdown(outcome), encoding="utf-8")
    else:
        target.write_text(as_text(outcome), encoding="utf-8")
    return target
