from __future__ import annotations

import logging
import random
import string
import time
from typing import Mapping, Optional

from .retrieve.literal import literal_match

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 2_000_000


def random_query(rng: random.Random, min_len: int = 1, max_len: int = 8) -> str:
    n = rng.randint(min_len, max_len)
    return "".join(rng.choice(string.ascii_lowercase) for _ in range(n))


def run_benchmark(
    corpus: Mapping[str, str],
    iterations: int = DEFAULT_ITERATIONS,
    seed: Optional[int] = None,
) -> float:
    """Run ``iterations`` random literal searches over the corpus; returns elapsed ms."""
    rng = random.Random(seed)
    logger.info("Running %d random literal searches over %d documents", iterations, len(corpus))
    t0 = time.perf_counter()
    for _ in range(iterations):
        literal_match(random_query(rng), corpus)
    elapsed_ms = (time.perf_counter() - t0) * 1000
    logger.info("Benchmark finished in %.0f ms", elapsed_ms)
    return elapsed_ms
