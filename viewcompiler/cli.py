"""
Command-line runner for view functions over JSON-lines document files.

Usage:
    viewcompiler map examples/designs/by_author.json examples/documents.jsonl
    viewcompiler query examples/designs/word_count.json examples/documents.jsonl --group
    viewcompiler check examples/designs/by_author.json
"""

import argparse
import json
import logging
import sys
from typing import List

from viewcompiler.compiler import ViewCompiler
from viewcompiler.config import EngineConfig
from viewcompiler.errors import ReduceRuntimeError, ViewError
from viewcompiler.indexer import ViewIndexer, ViewRow

logger = logging.getLogger(__name__)


def load_design(path: str) -> dict:
    """Read a design file: {"language": ..., "map": ..., "reduce": ...}"""
    with open(path, 'r', encoding='utf-8') as f:
        design = json.load(f)
    if not isinstance(design, dict) or 'map' not in design:
        raise ValueError(f"Design file {path} must be an object with a 'map' function")
    design.setdefault('language', 'javascript')
    return design


def load_documents(path: str) -> List[dict]:
    """Read one JSON document per line, skipping blank lines."""
    documents = []
    with open(path, 'r', encoding='utf-8') as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                document = json.loads(line)
            except json.JSONDecodeError as e:
                raise ValueError(f"{path}:{line_num}: invalid JSON: {e}") from e
            if not isinstance(document, dict):
                raise ValueError(f"{path}:{line_num}: expected a JSON object, got {type(document).__name__}")
            documents.append(document)
    return documents


def print_rows(rows: List[ViewRow], out=None):
    out = out or sys.stdout
    for row in rows:
        out.write(json.dumps(row._asdict()) + '\n')


def build_config(args) -> EngineConfig:
    """Environment settings, overridden by command-line flags."""
    config = EngineConfig.from_env()
    return EngineConfig(
        script_timeout=args.timeout if args.timeout is not None else config.script_timeout,
        script_max_memory=args.max_memory if args.max_memory is not None else config.script_max_memory,
        log_level=args.log_level or config.log_level,
    )


def run_map(args, compiler: ViewCompiler):
    design = load_design(args.design)
    indexer = ViewIndexer(compiler, design['map'], language=design['language'],
                          max_workers=args.workers)
    rows = indexer.build(load_documents(args.documents))
    print_rows(rows)
    if args.metrics:
        indexer.metrics.save_to_file(args.metrics)


def run_query(args, compiler: ViewCompiler):
    design = load_design(args.design)
    indexer = ViewIndexer(compiler, design['map'], design.get('reduce'),
                          language=design['language'], max_workers=args.workers)
    try:
        rows = indexer.build(load_documents(args.documents))
        results = indexer.query(rows, reduce=not args.no_reduce, group=args.group,
                                group_level=args.group_level)
    finally:
        indexer.close()
    print_rows(results)
    if args.metrics:
        indexer.metrics.save_to_file(args.metrics)


def run_check(args, compiler: ViewCompiler):
    design = load_design(args.design)
    map_fn = compiler.compile_map(design['map'], design['language'])
    try:
        map_fn.map({}, lambda key, value: None)
        if map_fn.metrics.failures:
            print("Map function failed on an empty document, see log above", file=sys.stderr)
    finally:
        map_fn.close()

    if design.get('reduce'):
        reduce_fn = compiler.compile_reduce(design['reduce'], design['language'])
        try:
            reduce_fn.reduce([], [], False)
        except ReduceRuntimeError as e:
            logger.info(f"Reduce function compiled; calling it with no values raised: {e}")
        finally:
            reduce_fn.close()
    print(f"Design {args.design} OK ({design['language']})")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run view map/reduce functions over documents")
    parser.add_argument("--timeout", type=float, default=None,
                        help="Per-call script time limit in seconds (javascript only)")
    parser.add_argument("--max-memory", type=int, default=None,
                        help="Script heap limit in bytes (javascript only)")
    parser.add_argument("--log-level", default=None,
                        help="Logging level (default: $VIEW_LOG_LEVEL or INFO)")
    parser.add_argument("--workers", type=int, default=4,
                        help="Number of map worker threads")
    parser.add_argument("--metrics", default=None,
                        help="Write build metrics as JSON to this file")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    map_parser = subparsers.add_parser("map", help="Print the rows a view emits")
    map_parser.add_argument("design", help="Design JSON file")
    map_parser.add_argument("documents", help="JSON-lines document file")

    query_parser = subparsers.add_parser("query", help="Build a view and reduce it")
    query_parser.add_argument("design", help="Design JSON file")
    query_parser.add_argument("documents", help="JSON-lines document file")
    query_parser.add_argument("--group", action="store_true", help="Reduce per distinct key")
    query_parser.add_argument("--group-level", type=int, default=None,
                              help="Group array keys by their first N elements")
    query_parser.add_argument("--no-reduce", action="store_true", help="Skip the reduce step")

    check_parser = subparsers.add_parser("check", help="Compile a design and run it once")
    check_parser.add_argument("design", help="Design JSON file")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        config = build_config(args)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=config.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr
    )

    compiler = ViewCompiler(config)
    commands = {"map": run_map, "query": run_query, "check": run_check}
    try:
        commands[args.command](args, compiler)
    except (ViewError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
