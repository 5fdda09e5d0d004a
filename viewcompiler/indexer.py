"""
In-memory index builder that drives compiled view functions.

Map calls run on a thread pool with one compiled map function per worker
thread, since a compiled function must never be used by two threads at
once. The reduce function is shared and guarded by a lock instead.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from itertools import groupby
from typing import Any, Iterable, List, Mapping, NamedTuple, Optional

from viewcompiler.compiler import ViewCompiler
from viewcompiler.map_function import MapFunction
from viewcompiler.metrics import IndexMetrics
from viewcompiler.reduce_function import ReduceFunction

logger = logging.getLogger(__name__)

DEFAULT_REDUCE_CHUNK_SIZE = 100


class ViewRow(NamedTuple):
    key: Any
    id: Optional[str]
    value: Any


def collation_key(value: Any) -> tuple:
    """
    Sort key following view collation:
    null < false < true < numbers < strings < arrays < objects
    """
    if value is None:
        return (0,)
    if value is False:
        return (1,)
    if value is True:
        return (2,)
    if isinstance(value, (int, float)):
        return (3, value)
    if isinstance(value, str):
        return (4, value)
    if isinstance(value, (list, tuple)):
        return (5, tuple(collation_key(item) for item in value))
    if isinstance(value, Mapping):
        return (6, tuple((k, collation_key(v)) for k, v in value.items()))
    raise TypeError(f"Cannot collate value of type {type(value).__name__}")


def _row_sort_key(row: ViewRow) -> tuple:
    return collation_key(row.key), collation_key(row.id)


class ViewIndexer:
    """Builds and queries one view over a batch of documents."""

    def __init__(self, compiler: ViewCompiler, map_source: str,
                 reduce_source: Optional[str] = None, language: str = 'javascript',
                 max_workers: int = 4, reduce_chunk_size: int = DEFAULT_REDUCE_CHUNK_SIZE):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        if reduce_chunk_size < 2:
            raise ValueError(f"reduce_chunk_size must be at least 2, got {reduce_chunk_size}")

        self.compiler = compiler
        self.map_source = map_source
        self.reduce_source = reduce_source
        self.language = language
        self.max_workers = max_workers
        self.reduce_chunk_size = reduce_chunk_size
        self.metrics: Optional[IndexMetrics] = None

        # Fail fast on an unknown language before any document is read
        self.compiler.compile_map(map_source, language).close()
        self._reduce_fn: Optional[ReduceFunction] = None
        if reduce_source is not None:
            self._reduce_fn = compiler.compile_reduce(reduce_source, language)
        self._reduce_lock = threading.Lock()

        self._local = threading.local()
        self._map_functions: List[MapFunction] = []
        self._map_functions_lock = threading.Lock()

    def _thread_map_function(self) -> MapFunction:
        map_fn = getattr(self._local, 'map_fn', None)
        if map_fn is None or map_fn.context.closed:
            map_fn = self.compiler.compile_map(self.map_source, self.language)
            self._local.map_fn = map_fn
            with self._map_functions_lock:
                self._map_functions.append(map_fn)
        return map_fn

    def _map_document(self, document: Mapping) -> List[ViewRow]:
        rows = []
        doc_id = document.get('_id') if isinstance(document, Mapping) else None

        def emit(key, value):
            rows.append(ViewRow(key, doc_id, value))

        self._thread_map_function().map(document, emit)
        return rows

    def build(self, documents: Iterable[Mapping]) -> List[ViewRow]:
        """
        Map every document and return the collated rows

        Documents whose map call fails contribute no rows; the failure count
        is in self.metrics.
        """
        documents = list(documents)
        metrics = IndexMetrics(start_time=time.time(), workers=self.max_workers,
                               documents=len(documents))
        logger.info(f"Indexing {len(documents)} documents with {self.max_workers} workers")

        try:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                row_groups = list(pool.map(self._map_document, documents))
        finally:
            with self._map_functions_lock:
                map_functions, self._map_functions = self._map_functions, []
            for map_fn in map_functions:
                metrics.map_failures += map_fn.metrics.failures
                metrics.rows_dropped += map_fn.metrics.rows_dropped
                map_fn.close()

        rows = [row for group in row_groups for row in group]
        rows.sort(key=_row_sort_key)

        metrics.rows = len(rows)
        metrics.end_time = time.time()
        metrics.sample_memory()
        self.metrics = metrics
        logger.info(f"Indexed {metrics.rows} rows in {metrics.total_time_seconds:.3f}s, "
                    f"{metrics.map_failures} documents failed")
        return rows

    def query(self, rows: List[ViewRow], reduce: bool = True, group: bool = False,
              group_level: Optional[int] = None) -> List[ViewRow]:
        """
        Reduce collated rows, optionally grouped by key

        Args:
            rows: Output of build()
            reduce: When false, or when the view has no reduce function, rows are returned as is
            group: Reduce each distinct key separately
            group_level: Group array keys by their first group_level elements

        Returns:
            One ViewRow per group with id None

        Raises:
            ReduceCompileError, ReduceRuntimeError: From the reduce function
        """
        if not reduce or self._reduce_fn is None:
            return list(rows)

        if group_level is not None:
            if group_level < 0:
                raise ValueError(f"group_level must not be negative, got {group_level}")
            group_key = lambda key: key[:group_level] if isinstance(key, list) else key
        elif group:
            group_key = lambda key: key
        else:
            group_key = lambda key: None

        results = []
        for _, group_rows in groupby(rows, key=lambda row: collation_key(group_key(row.key))):
            group_rows = list(group_rows)
            key = group_key(group_rows[0].key)
            value = self._reduce_group([row.key for row in group_rows],
                                       [row.value for row in group_rows])
            results.append(ViewRow(key, None, value))
        return results

    def _reduce_group(self, keys: list, values: list) -> Any:
        size = self.reduce_chunk_size
        if len(values) <= size:
            return self._call_reduce(keys, values, False)

        partials = [self._call_reduce(keys[i:i + size], values[i:i + size], False)
                    for i in range(0, len(values), size)]
        while len(partials) > size:
            partials = [self._call_reduce(None, partials[i:i + size], True)
                        for i in range(0, len(partials), size)]
        return self._call_reduce(None, partials, True)

    def _call_reduce(self, keys, values, rereduce: bool):
        with self._reduce_lock:
            return self._reduce_fn.reduce(keys, values, rereduce)

    def close(self):
        if self._reduce_fn is not None:
            self._reduce_fn.close()
