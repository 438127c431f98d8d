#!/usr/bin/env python3
import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Optional

from document_search.app import DocumentSearch
from document_search.bench import DEFAULT_ITERATIONS, run_benchmark
from document_search.config import SearchConfig, load_config
from document_search.errors import DocumentReadError, InvalidStrategy, SearchError
from document_search.index.schema import SearchOutcome
from document_search.index.writer import IndexBuilder
from document_search.logging_utils import setup_logging
from document_search.utils.output import FORMATS, elapsed_line, result_lines, write_output

logger = logging.getLogger(__name__)

EXIT_SIGNAL = "end"
METHOD_PROMPT = (
    "Select a search method, enter 1 for String Match, enter 2 for Regular Expression, "
    "and 3 for Indexed (does not return matches in documents but returns the order of "
    "relevance based on index): "
)


def print_outcome(outcome: SearchOutcome, write: Callable[[str], None] = print) -> None:
    write("Search results:")
    for line in result_lines(outcome):
        write("\t" + line)
    write(elapsed_line(outcome))


def _ask(read: Callable[[str], str], prompt: str) -> str:
    try:
        return read(prompt).strip()
    except EOFError:
        return EXIT_SIGNAL


def run_shell(
    engine: DocumentSearch,
    read: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
    bench_iterations: int = DEFAULT_ITERATIONS,
) -> None:
    """Prompt loop: query, then method, until the exit signal is entered."""
    term = _ask(read, "Enter a search term: ")
    if term.lower() != EXIT_SIGNAL:
        try:
            engine.ensure_index()
        except SearchError as e:
            # indexed searches will retry the build and report per query
            logger.error("Initial indexing failed: %s", e)

    while term.lower() != EXIT_SIGNAL:
        method = _ask(read, METHOD_PROMPT)
        while method not in ("1", "2", "3") and method.lower() != EXIT_SIGNAL:
            write("Invalid method selection.")
            method = _ask(read, METHOD_PROMPT)
        if method.lower() == EXIT_SIGNAL:
            break

        try:
            print_outcome(engine.search_document(term, method), write)
        except InvalidStrategy as e:
            write(str(e))
        except SearchError as e:
            logger.warning("Search failed: %s", e)
            write(f"Search failed: {e}")

        term = _ask(read, "Enter a search term or type end to exit the program: ")

    answer = _ask(
        read,
        "Would you like to run the performance test that performs two million searches? Yes or No ",
    )
    if answer.lower() == "yes":
        elapsed = run_benchmark(engine.corpus, iterations=bench_iterations)
        write(f"Simple Search took: {int(elapsed)} ms")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="document-search",
        description="Search a small document corpus by string match, literal pattern or inverted index.",
    )
    parser.add_argument("--config", type=str, default="config.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable DEBUG logs (to stderr).")
    parser.add_argument("--quiet", "-q", action="store_true", help="Reduce logs to WARN and above.")
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON lines (stderr).")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_idx = sub.add_parser("index", help="Build or update the inverted index")
    p_idx.add_argument("path", nargs="?", default=None, help="File or folder to index (default: corpus texts dir)")

    p_s = sub.add_parser("search", help="Run a single query")
    p_s.add_argument("query", type=str)
    p_s.add_argument("--method", "-m", default="1", help="1=string match, 2=regular expression, 3=indexed")
    p_s.add_argument("--timeout", type=float, default=None, help="Abort the query after N seconds")
    p_s.add_argument("--out", type=str, default=None, help="Write result to a file (format from extension)")
    p_s.add_argument("--format", type=str, default=None, choices=list(FORMATS))

    sub.add_parser("shell", help="Interactive prompt loop")

    p_b = sub.add_parser("bench", help="Random string-match performance test")
    p_b.add_argument("--iterations", type=int, default=DEFAULT_ITERATIONS)
    p_b.add_argument("--seed", type=int, default=None)
    return parser


def main(argv: Optional[list] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.verbose and args.quiet:
        print("Cannot use --verbose and --quiet together.", file=sys.stderr)
        return 2

    try:
        cfg: SearchConfig = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"Cannot load config: {e}", file=sys.stderr)
        return 2

    level = "DEBUG" if args.verbose else "WARNING" if args.quiet else cfg.logging.level
    setup_logging(level=level, json_logs=args.log_json or cfg.logging.json_logs)
    logger.debug("CLI args parsed: %s", vars(args))

    if args.cmd == "index":
        source = Path(args.path) if args.path else Path(cfg.corpus.texts_dir)
        try:
            stats = IndexBuilder(cfg).build(source)
        except SearchError as e:
            logger.error("Indexing failed: %s", e)
            return 2
        print(f"Indexed {stats.documents} documents ({stats.terms} terms) into {cfg.index.index_dir}")
        return 0

    try:
        engine = DocumentSearch(cfg)
    except DocumentReadError as e:
        logger.error("%s", e)
        return 2

    if args.cmd == "search":
        try:
            outcome = engine.search_document(args.query, args.method, timeout_s=args.timeout)
        except SearchError as e:
            print(str(e), file=sys.stderr)
            return 1
        print_outcome(outcome)
        if args.out:
            target = write_output(outcome, out_path=args.out, fmt=args.format)
            print(f"[saved] {target}")
        return 0

    if args.cmd == "shell":
        run_shell(engine)
        return 0

    if args.cmd == "bench":
        elapsed = run_benchmark(engine.corpus, iterations=args.iterations, seed=args.seed)
        print(f"Simple Search took: {int(elapsed)} ms")
        return 0

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
