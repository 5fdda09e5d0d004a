"""
Compiled map function.

A broken map function or an unserializable document must never stop an index
build, so every failure inside map() is logged and the document simply
contributes no rows.
"""

import logging
import time
from typing import Any, Callable, Mapping

from viewcompiler.context import ExecutionContext
from viewcompiler.engine import ScriptEnvironment
from viewcompiler.errors import (
    DocumentSerializationError,
    MalformedEmissionWarning,
    MapCompileError,
    MapError,
    MapRuntimeError,
    ScriptError,
    ScriptSyntaxError,
    ScriptValueError,
)
from viewcompiler.metrics import FunctionMetrics
from viewcompiler.values import from_script, to_script

logger = logging.getLogger(__name__)

FUNCTION_NAME = 'map'

Emitter = Callable[[Any, Any], None]


class MapFunction:
    """Runs one map function source against documents, one at a time."""

    def __init__(self, source: str, context: ExecutionContext):
        """
        Initialize the map function

        Args:
            source: Function source text, e.g. "function(doc) { emit(doc._id, null); }"
            context: Execution context this function owns for its lifetime
        """
        self.source = source
        self.context = context
        self.metrics = FunctionMetrics()

    @property
    def language(self) -> str:
        return self.context.language

    def map(self, document: Mapping, emit: Emitter):
        """
        Run the map function on one document

        Each (key, value) pair the script emits is passed to emit in script
        order. Script errors and serialization errors are logged, and the
        document then produces no rows. Errors raised by emit itself are
        not caught, and calling map() after close() raises
        ContextClosedError.

        Args:
            document: JSON-shaped mapping
            emit: Callable receiving each (key, value) pair
        """
        start_time = time.time()
        failed = False

        with self.context.acquire() as env:
            try:
                self._prepare(env)
                count = self._invoke(env, document)
            except MapError as e:
                failed = True
                logger.error(str(e))
            else:
                self._drain(env, emit, count)
            finally:
                self._forward_logs(env)
                self.metrics.record_call(time.time() - start_time, failed)

    __call__ = map

    def _prepare(self, env: ScriptEnvironment):
        try:
            env.reset_emissions()
            env.install_emit()
            env.bind(FUNCTION_NAME, self.source)
        except ScriptSyntaxError as e:
            raise MapCompileError(
                f"Syntax error in map function:\n{self.source}\n{e}", self.source) from e
        except ScriptError as e:
            raise MapRuntimeError(
                f"Could not prepare map function:\n{self.source}\n{e}", self.source) from e

    def _invoke(self, env: ScriptEnvironment, document: Mapping) -> int:
        if not isinstance(document, Mapping):
            raise DocumentSerializationError(
                f"Document must be a JSON object, got {type(document).__name__}: {document!r}",
                self.source, document)
        try:
            doc_json = to_script(document)
        except ScriptValueError as e:
            raise DocumentSerializationError(
                f"Error serializing document for map function: {e}\n{document!r}",
                self.source, document) from e

        try:
            env.invoke(FUNCTION_NAME, doc_json, discard_result=True)
            return env.emission_count()
        except ScriptError as e:
            raise MapRuntimeError(
                f"Error in map function:\n{self.source}\nwith document:\n{document!r}\n{e}",
                self.source, document) from e

    def _drain(self, env: ScriptEnvironment, emit: Emitter, count: int):
        for index in range(count):
            try:
                pair = from_script(env.emission(index))
            except ScriptValueError as e:
                self._drop(f"Could not convert emitted value: {e}")
                continue

            if not isinstance(pair, list) or len(pair) != 2:
                self._drop(f"Expected 2 element array with key and value. Got: {pair!r}")
                continue

            emit(pair[0], pair[1])
            self.metrics.rows_emitted += 1

    def _drop(self, message: str):
        self.metrics.rows_dropped += 1
        logger.warning(f"{MalformedEmissionWarning.__name__}: {message}")

    def _forward_logs(self, env: ScriptEnvironment):
        for message in env.drain_logs():
            logger.info(f"Map function log: {message}")

    def close(self):
        self.context.close()

    def __repr__(self):
        return f"<MapFunction language={self.language!r}>"
